"""Snapshot materialization for override groups.

An override group is a subdirectory of ``patches/`` holding override
archives and a ``snapshot/`` slot. The slot holds at most one file: the
group's baseline artifact with every override archive merged on top.

- Empty slot: resolve the baseline, download it, merge, register.
- One file: register it, re-resolve, and rebuild it only when a different
  (newer) baseline wins.
- More than one file: the slot is inconsistent; fail the run.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from overlayforge.core.archive_merger import DEFAULT_SNAPSHOT_DIR_NAME, merge_overrides
from overlayforge.core.errors import BaselineNotFoundError, SnapshotSlotError
from overlayforge.core.fetcher import ArtifactFetcher
from overlayforge.core.locations import location_filename, path_to_uri
from overlayforge.core.registry import ResolutionContext, local_entry
from overlayforge.core.resolver import PrecedenceResolver, Source

logger = logging.getLogger(__name__)


class SnapshotMaterializer:
    """Keeps each override group's snapshot slot current.

    Parameters
    ----------
    context:
        The run's registries. Snapshots are registered into
        ``context.snapshots`` as they are found or built.
    fetcher:
        Downloads baselines for empty or stale slots.
    snapshot_dir_name:
        Name of the slot subdirectory inside each group.
    """

    def __init__(
        self,
        context: ResolutionContext,
        fetcher: ArtifactFetcher,
        *,
        snapshot_dir_name: str = DEFAULT_SNAPSHOT_DIR_NAME,
    ) -> None:
        self._context = context
        self._fetcher = fetcher
        self._resolver = PrecedenceResolver(context)
        self._snapshot_dir_name = snapshot_dir_name

    def groups(self, patches_dir: Path) -> list[Path]:
        """Override group directories, sorted by name."""
        return sorted(child for child in patches_dir.iterdir() if child.is_dir())

    def materialize_all(self, patches_dir: Path) -> list[Path]:
        """Materialize every group; returns the resulting snapshot files."""
        return [self.materialize(group) for group in self.groups(patches_dir)]

    def materialize(self, group_dir: Path) -> Path:
        """Bring one group's slot up to date and return its snapshot file."""
        slot = group_dir / self._snapshot_dir_name
        slot.mkdir(parents=True, exist_ok=True)
        present = sorted(slot.iterdir())

        if len(present) > 1:
            raise SnapshotSlotError(
                f"Snapshot slot {slot} holds {len(present)} files; expected at most one"
            )

        if not present:
            resolution = self._resolver.resolve(group_dir)
            if resolution.source is Source.SELF:
                raise BaselineNotFoundError(
                    f"No baseline artifact matches override group {group_dir.name!r}"
                )
            return self._build(slot, resolution.location)

        current = present[0]
        self._context.snapshots.add(local_entry(current))
        location = self._resolver.resolve_location(current)
        if location == path_to_uri(current):
            logger.debug("Snapshot %s is up to date", current.name)
            return current

        logger.info("Newer baseline for %s found at %s", current.name, location)
        try:
            current.unlink()
            logger.debug("Deleted old artifact %s", current)
        except OSError as exc:
            logger.warning("Unable to delete old artifact %s: %s", current, exc)
        self._context.snapshots.remove(current.name)
        return self._build(slot, location)

    def _build(self, slot: Path, location: str) -> Path:
        """Download and merge next to the slot, then move the result in.

        A failed download or merge leaves the slot empty, so the next run
        rebuilds the snapshot instead of keeping a half-made one.
        """
        group_dir = slot.parent
        dest = slot / location_filename(location)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{dest.name}.", suffix=".part", dir=group_dir
        )
        os.close(fd)
        staged = Path(tmp_name)
        try:
            self._fetcher.download(location, staged, label=dest.name)
            merge_overrides(
                staged, group_dir, snapshot_dir_name=self._snapshot_dir_name
            )
            os.replace(staged, dest)
        except BaseException:
            staged.unlink(missing_ok=True)
            raise

        self._context.snapshots.add(local_entry(dest))
        logger.info("Materialized snapshot %s", dest)
        return dest
