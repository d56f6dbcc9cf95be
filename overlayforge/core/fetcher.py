"""Artifact fetching and cache verification.

Downloads stream in fixed-size chunks and report progress after each one.
Local ``file://`` sources go through the same chunk loop, which is how
override and snapshot archives are copied into the repository cache.

Network failures (``httpx.HTTPError``) are never retried or wrapped; they
propagate to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

import httpx

from overlayforge.core.hasher import file_hash_or_none
from overlayforge.core.locations import is_file_uri, uri_to_path
from overlayforge.models.artifacts import Artifact
from overlayforge.monitor.progress import NullProgressReporter, ProgressReporter, notify

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024
DEFAULT_USER_AGENT = "Mozilla/5.0"


class ArtifactFetcher:
    """Fetches artifacts into place and keeps the repository cache current.

    Parameters
    ----------
    repository_dir:
        The local artifact cache that :meth:`verify_artifact` fills.
    client:
        Optional ``httpx.Client``. One is created (and closed by
        :meth:`close`) when not provided.
    reporter:
        Receives ``(name, downloaded, total)`` after every chunk.
    """

    def __init__(
        self,
        repository_dir: Path,
        *,
        client: httpx.Client | None = None,
        reporter: ProgressReporter | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.repository_dir = Path(repository_dir)
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout_seconds, follow_redirects=True
        )
        self._reporter = reporter or NullProgressReporter()
        self._chunk_size = chunk_size
        self._user_agent = user_agent

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    def download(
        self,
        location: str,
        dest: Path,
        *,
        total_size: int = 0,
        label: str | None = None,
    ) -> int:
        """Replace *dest* with the content at *location*.

        Any existing file at *dest* is deleted first; a failed delete is
        logged and the download proceeds. Progress is reported under
        *label*, which defaults to the destination filename. Returns the
        number of bytes written.
        """
        dest = Path(dest)
        label = label or dest.name
        if is_file_uri(location) and _same_file(uri_to_path(location), dest):
            logger.debug("%s is already in place", dest)
            return dest.stat().st_size

        if dest.exists():
            try:
                dest.unlink()
                logger.debug("Deleted old artifact %s", dest)
            except OSError as exc:
                logger.warning("Unable to delete old artifact %s: %s", dest, exc)

        logger.debug("Downloading %s", label)
        dest.parent.mkdir(parents=True, exist_ok=True)

        if is_file_uri(location):
            source = uri_to_path(location)
            total = total_size or source.stat().st_size
            with source.open("rb") as fin:
                return self._copy(_read_chunks(fin, self._chunk_size), dest, total, label)

        headers = {"User-Agent": self._user_agent}
        with self._client.stream("GET", location, headers=headers) as response:
            response.raise_for_status()
            total = total_size or int(response.headers.get("Content-Length", 0))
            return self._copy(
                response.iter_bytes(chunk_size=self._chunk_size), dest, total, label
            )

    def _copy(
        self, chunks: Iterator[bytes], dest: Path, total: int, label: str
    ) -> int:
        written = 0
        with dest.open("wb") as fout:
            for chunk in chunks:
                if not chunk:
                    continue
                fout.write(chunk)
                written += len(chunk)
                notify(self._reporter, label, written, total)
        return written

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def cached_path(self, artifact: Artifact) -> Path:
        return self.repository_dir / artifact.name

    def is_valid(self, artifact: Artifact) -> bool:
        """Whether the cached copy exists and matches the artifact's hash."""
        return file_hash_or_none(self.cached_path(artifact)) == artifact.hash

    def verify_artifact(self, artifact: Artifact) -> bool:
        """Ensure the cache holds *artifact*, fetching it on mismatch.

        Returns whether the cached copy matches after at most one fetch.
        A mismatch after fetching is reported, not retried.
        """
        if self.is_valid(artifact):
            logger.debug("Hash for %s up to date", artifact.name)
            return True

        self.download(artifact.path, self.cached_path(artifact), total_size=artifact.size)
        valid = self.is_valid(artifact)
        if not valid:
            logger.error("Hash mismatch for %s after download", artifact.name)
        return valid

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ArtifactFetcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _read_chunks(fh: BinaryIO, size: int) -> Iterator[bytes]:
    yield from iter(lambda: fh.read(size), b"")


def _same_file(source: Path, dest: Path) -> bool:
    try:
        return source.resolve() == dest.resolve()
    except OSError:
        return False
