"""Shared test fixtures for overlayforge."""

from __future__ import annotations

import zipfile
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from overlayforge.config import OverlayConfig
from overlayforge.core.hasher import sha256_hex
from overlayforge.core.identity import parse_identity
from overlayforge.core.registry import RegistryTable, ResolutionContext
from overlayforge.models.artifacts import Artifact, Manifest
from overlayforge.models.identity import RegistryEntry

REMOTE = "https://repo.example/artifacts"


@pytest.fixture
def overlay_config(tmp_path: Path) -> OverlayConfig:
    """Config rooted in a temp directory, with small download chunks."""
    return OverlayConfig(base_dir=tmp_path / "home", chunk_size=64)


@pytest.fixture
def repository_dir(overlay_config: OverlayConfig) -> Path:
    path = overlay_config.repository_dir
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def patches_dir(overlay_config: OverlayConfig) -> Path:
    path = overlay_config.patches_dir
    path.mkdir(parents=True, exist_ok=True)
    return path


# ---------------------------------------------------------------------------
# Archive factories
# ---------------------------------------------------------------------------


def _write_jar(path: Path, entries: dict[str, bytes]) -> Path:
    """Write a zip archive; names ending in "/" become directory entries."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return path


def _read_jar(path: Path) -> dict[str, bytes]:
    with zipfile.ZipFile(path) as zf:
        return {info.filename: zf.read(info) for info in zf.infolist()}


@pytest.fixture
def make_jar() -> Callable[[Path, dict[str, bytes]], Path]:
    """Factory fixture: write a jar at a path with the given entries."""
    return _write_jar


@pytest.fixture
def read_jar() -> Callable[[Path], dict[str, bytes]]:
    """Factory fixture: read a jar into a name -> bytes mapping."""
    return _read_jar


# ---------------------------------------------------------------------------
# Registry factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_entry() -> Callable[..., RegistryEntry]:
    """Factory fixture: build a RegistryEntry with a remote location."""

    def _factory(
        name: str, hash: str = "h", location: str | None = None
    ) -> RegistryEntry:
        return RegistryEntry(
            identity=parse_identity(name),
            location=location or f"{REMOTE}/{name}",
            hash=hash,
        )

    return _factory


@pytest.fixture
def make_context() -> Callable[..., ResolutionContext]:
    """Factory fixture: a context from lists of entries per registry."""

    def _factory(
        *,
        declared: list[RegistryEntry] = (),
        cached: list[RegistryEntry] = (),
        overrides: list[RegistryEntry] = (),
        snapshots: list[RegistryEntry] = (),
    ) -> ResolutionContext:
        return ResolutionContext(
            declared=RegistryTable("declared", declared).freeze(),
            cached=RegistryTable("cached", cached).freeze(),
            overrides=RegistryTable("overrides", overrides).freeze(),
            snapshots=RegistryTable("snapshots", snapshots),
        )

    return _factory


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


class FakeRemote:
    """Serves fixed payloads by URL and records every request."""

    def __init__(self) -> None:
        self.payloads: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []

    def publish(self, name: str, data: bytes) -> Artifact:
        url = f"{REMOTE}/{name}"
        self.payloads[url] = data
        return Artifact(name=name, path=url, hash=sha256_hex(data), size=len(data))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        data = self.payloads.get(str(request.url))
        if data is None:
            return httpx.Response(404)
        return httpx.Response(200, content=data)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def http_client(remote: FakeRemote):
    client = remote.client()
    yield client
    client.close()


@pytest.fixture
def make_manifest() -> Callable[..., Manifest]:
    def _factory(*artifacts: Artifact) -> Manifest:
        return Manifest(artifacts=list(artifacts))

    return _factory
