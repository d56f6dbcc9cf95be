"""Manifest and artifact models.

The manifest arrives already deserialized; these models only validate its
shape. Artifacts are immutable, and reconciliation produces a new manifest
rather than editing the one it was given.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from overlayforge.core.hasher import sha256_file
from overlayforge.core.locations import path_to_uri


class Artifact(BaseModel):
    """A named, hash-addressed archive required at launch."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str  # URL the archive can be fetched from
    hash: str  # SHA-256 hex
    size: int = 0

    @classmethod
    def from_file(cls, file: Path) -> Artifact:
        """Describe a local archive: its name, file URI, hash and size."""
        file = Path(file)
        return cls(
            name=file.name,
            path=path_to_uri(file),
            hash=sha256_file(file),
            size=file.stat().st_size,
        )


class Manifest(BaseModel):
    """The launch manifest: required artifacts plus JVM argument lists."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    artifacts: list[Artifact] = Field(default_factory=list)
    client_jvm_arguments: list[str] = Field(
        default_factory=list, alias="clientJvmArguments"
    )
    client_jvm9_arguments: list[str] = Field(
        default_factory=list, alias="clientJvm9Arguments"
    )

    def artifact_named(self, name: str) -> Artifact | None:
        for artifact in self.artifacts:
            if artifact.name == name:
                return artifact
        return None


class ReconciliationResult(BaseModel):
    """Outcome of one reconciliation run."""

    model_config = ConfigDict(frozen=True)

    manifest: Manifest
    launch_args: list[str]
    resolved: bool = True  # False when no overrides were installed
    integrity_failures: list[str] = Field(default_factory=list)
