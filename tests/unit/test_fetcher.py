"""Tests for ArtifactFetcher: streaming, progress, cache verification."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx
import pytest

from overlayforge.core.fetcher import ArtifactFetcher
from overlayforge.core.hasher import sha256_file, sha256_hex
from overlayforge.core.locations import path_to_uri
from overlayforge.models.artifacts import Artifact


class RecordingReporter:
    def __init__(self) -> None:
        self.calls: list[tuple[str, int, int]] = []

    def report(self, name: str, downloaded: int, total: int) -> None:
        self.calls.append((name, downloaded, total))


class ExplodingReporter:
    def report(self, name: str, downloaded: int, total: int) -> None:
        raise RuntimeError("display crashed")


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def fetcher(repository_dir: Path, http_client: httpx.Client, reporter) -> ArtifactFetcher:
    return ArtifactFetcher(repository_dir, client=http_client, reporter=reporter, chunk_size=10)


class TestDownload:
    def test_streams_remote_content(self, fetcher, remote, tmp_path: Path):
        artifact = remote.publish("client-1.0.jar", b"0123456789abcdefghij!")
        dest = tmp_path / "out" / "client-1.0.jar"
        written = fetcher.download(artifact.path, dest)
        assert written == 21
        assert dest.read_bytes() == b"0123456789abcdefghij!"

    def test_sends_browser_user_agent(self, fetcher, remote, tmp_path: Path):
        artifact = remote.publish("a.jar", b"x")
        fetcher.download(artifact.path, tmp_path / "a.jar")
        assert remote.requests[0].headers["User-Agent"] == "Mozilla/5.0"

    def test_reports_progress_after_each_chunk(self, fetcher, remote, reporter, tmp_path: Path):
        artifact = remote.publish("a.jar", b"y" * 25)
        fetcher.download(artifact.path, tmp_path / "a.jar", total_size=25)
        downloaded = [call[1] for call in reporter.calls]
        assert downloaded == sorted(downloaded)
        assert downloaded[-1] == 25
        assert all(call[0] == "a.jar" and call[2] == 25 for call in reporter.calls)
        assert len(reporter.calls) >= 3

    def test_total_falls_back_to_content_length(self, fetcher, remote, reporter, tmp_path: Path):
        artifact = remote.publish("a.jar", b"z" * 5)
        fetcher.download(artifact.path, tmp_path / "a.jar")
        assert reporter.calls[-1] == ("a.jar", 5, 5)

    def test_progress_uses_label_when_given(self, fetcher, remote, reporter, tmp_path: Path):
        artifact = remote.publish("a.jar", b"z" * 5)
        dest = tmp_path / ".a.jar.tmp.part"
        fetcher.download(artifact.path, dest, label="a.jar")
        assert dest.read_bytes() == b"z" * 5
        assert {call[0] for call in reporter.calls} == {"a.jar"}

    def test_replaces_existing_file(self, fetcher, remote, tmp_path: Path):
        dest = tmp_path / "a.jar"
        dest.write_bytes(b"old content that is longer")
        artifact = remote.publish("a.jar", b"new")
        fetcher.download(artifact.path, dest)
        assert dest.read_bytes() == b"new"

    def test_copies_local_file_uri(self, fetcher, reporter, tmp_path: Path):
        source = tmp_path / "src" / "a.jar"
        source.parent.mkdir()
        source.write_bytes(b"local" * 5)
        dest = tmp_path / "dst" / "a.jar"
        fetcher.download(path_to_uri(source), dest)
        assert dest.read_bytes() == b"local" * 5
        assert reporter.calls[-1] == ("a.jar", 25, 25)

    def test_same_file_is_left_alone(self, fetcher, tmp_path: Path):
        path = tmp_path / "a.jar"
        path.write_bytes(b"keep")
        fetcher.download(path_to_uri(path), path)
        assert path.read_bytes() == b"keep"

    def test_http_error_propagates(self, fetcher, tmp_path: Path):
        with pytest.raises(httpx.HTTPStatusError):
            fetcher.download("https://repo.example/artifacts/missing.jar", tmp_path / "m.jar")

    def test_network_error_propagates(self, repository_dir: Path, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        with ArtifactFetcher(repository_dir, client=client) as fetcher:
            with pytest.raises(httpx.ConnectError):
                fetcher.download("https://repo.example/a.jar", tmp_path / "a.jar")
        client.close()

    def test_reporter_failure_does_not_fail_download(
        self, repository_dir: Path, http_client, remote, tmp_path: Path, caplog
    ):
        artifact = remote.publish("a.jar", b"payload")
        fetcher = ArtifactFetcher(repository_dir, client=http_client, reporter=ExplodingReporter())
        with caplog.at_level(logging.WARNING):
            fetcher.download(artifact.path, tmp_path / "a.jar")
        assert (tmp_path / "a.jar").read_bytes() == b"payload"
        assert "Progress reporter failed" in caplog.text


class TestVerifyArtifact:
    def test_valid_cache_skips_download(self, fetcher, remote, repository_dir: Path):
        artifact = remote.publish("a-1.0.jar", b"content")
        (repository_dir / "a-1.0.jar").write_bytes(b"content")
        assert fetcher.verify_artifact(artifact) is True
        assert remote.requests == []

    def test_missing_cache_is_fetched(self, fetcher, remote, repository_dir: Path):
        artifact = remote.publish("a-1.0.jar", b"content")
        assert fetcher.is_valid(artifact) is False
        assert fetcher.verify_artifact(artifact) is True
        assert sha256_file(repository_dir / "a-1.0.jar") == artifact.hash

    def test_stale_cache_is_replaced(self, fetcher, remote, repository_dir: Path):
        artifact = remote.publish("a-1.0.jar", b"fresh")
        (repository_dir / "a-1.0.jar").write_bytes(b"stale")
        assert fetcher.verify_artifact(artifact) is True
        assert (repository_dir / "a-1.0.jar").read_bytes() == b"fresh"

    def test_persistent_mismatch_reported_not_retried(self, fetcher, remote):
        remote.publish("a-1.0.jar", b"served")
        artifact = Artifact(
            name="a-1.0.jar",
            path="https://repo.example/artifacts/a-1.0.jar",
            hash=sha256_hex(b"expected"),
        )
        assert fetcher.verify_artifact(artifact) is False
        assert len(remote.requests) == 1

    def test_local_artifact_copied_into_cache(self, fetcher, repository_dir: Path, tmp_path: Path):
        source = tmp_path / "snap-1.0.jar"
        source.write_bytes(b"merged")
        artifact = Artifact.from_file(source)
        assert fetcher.verify_artifact(artifact) is True
        assert (repository_dir / "snap-1.0.jar").read_bytes() == b"merged"


class TestLifecycle:
    def test_owned_client_closed(self, repository_dir: Path):
        fetcher = ArtifactFetcher(repository_dir)
        fetcher.close()
        assert fetcher._client.is_closed

    def test_injected_client_left_open(self, repository_dir: Path, http_client):
        with ArtifactFetcher(repository_dir, client=http_client):
            pass
        assert not http_client.is_closed
