"""Exception hierarchy for artifact resolution.

Filesystem (``OSError``) and network (``httpx.HTTPError``) failures are not
wrapped; they propagate unchanged to the caller of the reconciler.
"""

from __future__ import annotations


class OverlayError(RuntimeError):
    """Base class for resolution failures raised by overlayforge."""


class VersionFormatError(OverlayError, ValueError):
    """Raised when a parsed version has a component that is not an integer."""


class SnapshotSlotError(OverlayError):
    """Raised when a snapshot slot holds more than one materialized archive."""


class ArtifactIntegrityError(OverlayError):
    """Raised when a fetched artifact still does not match its expected hash."""


class BaselineNotFoundError(OverlayError):
    """Raised when no registry offers a baseline for an override group."""
