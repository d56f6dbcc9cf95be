"""Helpers for the URIs stored as artifact and registry locations.

Local files are always referenced by absolute ``file://`` URIs produced by
:func:`path_to_uri`, so two locations naming the same file compare equal as
plain strings.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname


def path_to_uri(path: Path) -> str:
    """Return the absolute ``file://`` URI of *path*."""
    return Path(path).resolve().as_uri()


def is_file_uri(location: str) -> bool:
    return urlparse(location).scheme == "file"


def uri_to_path(location: str) -> Path:
    """Convert a ``file://`` URI back into a local path.

    Raises ``ValueError`` for any other scheme.
    """
    parsed = urlparse(location)
    if parsed.scheme != "file":
        raise ValueError(f"Not a file URI: {location}")
    return Path(url2pathname(unquote(parsed.path)))


def location_filename(location: str) -> str:
    """Return the last path segment of a location (the artifact filename)."""
    return unquote(location.rstrip("/").rsplit("/", 1)[-1])
