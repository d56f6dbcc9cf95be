"""Artifact identity parsing and version comparison.

A filename such as ``client-1.10.2.jar`` splits into a short name
(``client-.jar``) and a dotted numeric version (``1.10.2``). The short name
is only ever used as a lookup key, so it is never re-joined with a version.

Version ordering is component-wise numeric: ``1.10.0`` is newer than
``1.2.0``. A candidate with a version always outranks one without, and on a
tie the left operand wins, which keeps every comparison deterministic.
"""

from __future__ import annotations

import re
from typing import Protocol, TypeVar

from overlayforge.core.errors import VersionFormatError
from overlayforge.models.identity import Identity

ARCHIVE_SUFFIX = ".jar"

# Hyphen, a digit, then the longest run of non-letter characters.
VERSION_PATTERN = re.compile(r"-\d[^a-zA-Z]*")

_TRAILING_NON_DIGITS = re.compile(r"[^0-9]+$")
_COMPONENT = re.compile(r"[0-9]+")
_TRAILING_SEPARATORS = "-_."


class Versioned(Protocol):
    @property
    def version(self) -> str | None: ...


V = TypeVar("V", bound=Versioned)


def parse_identity(name: str) -> Identity:
    """Split *name* into its short name and optional version."""
    version: str | None = None
    short_name = name

    match = VERSION_PATTERN.search(name)
    if match is not None:
        # The matched run usually swallows the separator before the
        # extension ("-1.0.0." in "client-1.0.0.jar"); it is not version text.
        version = _TRAILING_NON_DIGITS.sub("", match.group(0)[1:])
        short_name = name.replace(version, "", 1)

    return Identity(
        full_name=name,
        short_name=short_name,
        version=version,
        stem=_stem(short_name),
    )


def _stem(short_name: str) -> str:
    stem = short_name
    if stem.endswith(ARCHIVE_SUFFIX):
        stem = stem[: -len(ARCHIVE_SUFFIX)]
    stem = stem.rstrip(_TRAILING_SEPARATORS)
    return stem or short_name


def version_components(version: str) -> list[int]:
    """Parse a dotted version into integers.

    Raises
    ------
    VersionFormatError
        If any component is not a plain run of decimal digits.
    """
    parts = version.split(".")
    for part in parts:
        if not _COMPONENT.fullmatch(part):
            raise VersionFormatError(
                f"Invalid version component {part!r} in {version!r}"
            )
    return [int(part) for part in parts]


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0 or 1 as *left* is older, equal to or newer than *right*."""
    lhs = version_components(left)
    rhs = version_components(right)
    width = max(len(lhs), len(rhs))
    lhs += [0] * (width - len(lhs))
    rhs += [0] * (width - len(rhs))
    for a, b in zip(lhs, rhs):
        if a < b:
            return -1
        if a > b:
            return 1
    return 0


def newest(a: V | None, b: V | None) -> V | None:
    """Return whichever operand carries the newer version.

    The result is always one of the operands (never a copy), so callers may
    compare it with ``is``. Absent operands and operands without a version
    rank below any versioned operand; when neither side has a version, or
    the versions are equal, ``a`` is returned.
    """
    a_version = a.version if a is not None else None
    b_version = b.version if b is not None else None

    if a_version is None and b_version is None:
        return a
    if b_version is None:
        return a
    if a_version is None:
        return b
    if compare_versions(a_version, b_version) < 0:
        return b
    return a
