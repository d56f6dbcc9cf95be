"""Identity and registry entry models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """Version-independent identity of an archive filename.

    ``short_name`` is the filename with its version text removed and is the
    key used to decide whether two files are the same logical artifact.
    ``stem`` additionally drops the archive suffix and any dangling
    separator, so ``client-.jar``, ``client.jar`` and an override group
    directory called ``client`` all share the stem ``client``.
    """

    model_config = ConfigDict(frozen=True)

    full_name: str
    short_name: str
    version: str | None = None
    stem: str

    @property
    def has_version(self) -> bool:
        return self.version is not None


class RegistryEntry(BaseModel):
    """One candidate location for an artifact, held by exactly one registry."""

    model_config = ConfigDict(frozen=True)

    identity: Identity
    location: str  # file:// URI or remote URL
    hash: str | None = None

    @property
    def name(self) -> str:
        return self.identity.full_name

    @property
    def version(self) -> str | None:
        return self.identity.version

    @property
    def short_name(self) -> str:
        return self.identity.short_name

    @property
    def stem(self) -> str:
        return self.identity.stem
