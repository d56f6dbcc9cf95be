"""Content hashing helpers for integrity checks.

Every hash in overlayforge is a lowercase SHA-256 hex digest over the full
file content, matching the ``hash`` field of manifest artifacts.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

_READ_CHUNK = 1024 * 1024


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    """Return the SHA-256 hex digest of a file, read in chunks.

    Raises ``FileNotFoundError`` if the file does not exist.
    """
    digest = hashlib.sha256()
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(_READ_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def file_hash_or_none(path: Path) -> str | None:
    """Hash a file, treating a missing file as an absent hash."""
    try:
        return sha256_file(path)
    except FileNotFoundError:
        return None
