"""Overlayforge data models: all Pydantic v2, all frozen (immutable)."""

from overlayforge.models.artifacts import Artifact, Manifest, ReconciliationResult
from overlayforge.models.identity import Identity, RegistryEntry

__all__ = [
    # artifacts
    "Artifact",
    "Manifest",
    "ReconciliationResult",
    # identity
    "Identity",
    "RegistryEntry",
]
