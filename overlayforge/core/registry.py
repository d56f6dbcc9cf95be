"""Source registries and the per-run resolution context.

Four tables describe where an artifact can come from:

- **declared**: the manifest's own artifacts (remote URLs)
- **cached**: archives previously resolved into the local repository
- **overrides**: user-supplied archives placed directly in ``patches/``
- **snapshots**: materialized baselines held in override group slots

Each table is keyed by full filename. The first three are built once and
frozen; only ``snapshots`` changes while override groups are materialized.
A :class:`ResolutionContext` owns all four for the length of one run and is
cleared when the run ends, so nothing carries over into the next run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from overlayforge.core.hasher import sha256_file
from overlayforge.core.identity import ARCHIVE_SUFFIX, newest, parse_identity
from overlayforge.core.locations import path_to_uri
from overlayforge.models.artifacts import Manifest
from overlayforge.models.identity import RegistryEntry

logger = logging.getLogger(__name__)


class RegistryFrozenError(RuntimeError):
    """Raised when a frozen registry table is modified."""


class RegistryTable:
    """A named map of full filename to :class:`RegistryEntry`.

    Parameters
    ----------
    label:
        Registry name used in log messages ("declared", "cached", ...).
    entries:
        Initial entries. Later entries replace earlier ones with the same name.
    """

    def __init__(self, label: str, entries: Iterable[RegistryEntry] = ()) -> None:
        self.label = label
        self._entries: dict[str, RegistryEntry] = {}
        self._frozen = False
        for entry in entries:
            self.add(entry)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, entry: RegistryEntry) -> None:
        self._check_mutable()
        self._entries[entry.name] = entry

    def remove(self, name: str) -> RegistryEntry | None:
        self._check_mutable()
        return self._entries.pop(name, None)

    def clear(self) -> None:
        """Drop every entry. Allowed on frozen tables (end of run)."""
        self._entries.clear()

    def freeze(self) -> RegistryTable:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"Registry {self.label!r} is frozen")

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> RegistryEntry | None:
        return self._entries.get(name)

    def names(self) -> list[str]:
        return list(self._entries)

    def newest_for(self, short_name: str) -> RegistryEntry | None:
        """Return the newest entry of the logical artifact *short_name*.

        Entries are visited in name order so equal-version ties always
        resolve to the same entry.
        """
        return self._newest(lambda entry: entry.short_name == short_name)

    def newest_for_stem(self, stem: str) -> RegistryEntry | None:
        """Like :meth:`newest_for`, matching the looser identity stem.

        Used for override group directories, which carry no suffix or
        version separator of their own.
        """
        return self._newest(lambda entry: entry.stem == stem)

    def _newest(
        self, matches: Callable[[RegistryEntry], bool]
    ) -> RegistryEntry | None:
        best: RegistryEntry | None = None
        for name in sorted(self._entries):
            entry = self._entries[name]
            if matches(entry):
                best = newest(entry, best)
        return best

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"RegistryTable({self.label!r}, {len(self)} entries, {state})"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def local_entry(file: Path) -> RegistryEntry:
    """Describe a local archive, hashing its current content."""
    return RegistryEntry(
        identity=parse_identity(file.name),
        location=path_to_uri(file),
        hash=sha256_file(file),
    )


def build_declared(manifest: Manifest) -> RegistryTable:
    """One entry per manifest artifact, located at its declared URL."""
    table = RegistryTable(
        "declared",
        (
            RegistryEntry(
                identity=parse_identity(artifact.name),
                location=artifact.path,
                hash=artifact.hash,
            )
            for artifact in manifest.artifacts
        ),
    )
    logger.debug("Declared registry: %d entries", len(table))
    return table.freeze()


def _scan_archives(directory: Path) -> list[Path]:
    return sorted(
        child
        for child in directory.iterdir()
        if child.name.endswith(ARCHIVE_SUFFIX) and child.is_file()
    )


def build_cached(repository_dir: Path) -> RegistryTable:
    """One entry per archive in the local repository.

    A missing repository is empty; an unreadable one raises ``OSError``.
    """
    files = _scan_archives(repository_dir) if repository_dir.exists() else []
    table = RegistryTable("cached", (local_entry(f) for f in files))
    logger.debug("Cached registry: %d entries from %s", len(table), repository_dir)
    return table.freeze()


def build_overrides(patches_dir: Path) -> RegistryTable:
    """One entry per archive placed directly in the patches directory.

    Archives inside override group subdirectories are not overrides; they
    are merged into their group's snapshot instead.
    """
    patches_dir.mkdir(parents=True, exist_ok=True)
    table = RegistryTable(
        "overrides", (local_entry(f) for f in _scan_archives(patches_dir))
    )
    logger.debug("Override registry: %d entries from %s", len(table), patches_dir)
    return table.freeze()


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


class ResolutionContext:
    """All registry state for a single resolution run.

    Usable as a context manager; leaving the ``with`` block clears every
    table whether or not the run succeeded.

    Parameters
    ----------
    declared, cached, overrides:
        Prebuilt (normally frozen) tables.
    snapshots:
        Mutable table filled during materialization. Empty by default.
    """

    def __init__(
        self,
        declared: RegistryTable,
        cached: RegistryTable,
        overrides: RegistryTable,
        snapshots: RegistryTable | None = None,
    ) -> None:
        self.declared = declared
        self.cached = cached
        self.overrides = overrides
        self.snapshots = snapshots if snapshots is not None else RegistryTable("snapshots")

    @classmethod
    def build(
        cls, manifest: Manifest, repository_dir: Path, patches_dir: Path
    ) -> ResolutionContext:
        """Scan the manifest and both directories into a fresh context."""
        return cls(
            declared=build_declared(manifest),
            cached=build_cached(repository_dir),
            overrides=build_overrides(patches_dir),
        )

    def tables(self) -> tuple[RegistryTable, ...]:
        return (self.declared, self.cached, self.overrides, self.snapshots)

    def clear(self) -> None:
        for table in self.tables():
            table.clear()
        logger.debug("Resolution context cleared")

    @property
    def is_empty(self) -> bool:
        return all(len(table) == 0 for table in self.tables())

    def __enter__(self) -> ResolutionContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.clear()
