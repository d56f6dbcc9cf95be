"""Overlay-merge override archives onto a materialized baseline.

Every entry of every sibling override archive is copied into the baseline.
A same-named file entry is overwritten; an entry whose name is a directory
in the baseline (explicit ``foo/`` entry, or implied by ``foo/...`` entries)
is skipped. Overrides apply in filename order, so the last archive wins a
conflict.

The baseline is rewritten into a temporary file next to the override group
and moved into place with ``os.replace``; the snapshot slot never holds the
half-written archive.
"""

from __future__ import annotations

import logging
import os
import tempfile
import zipfile
from collections.abc import Iterable
from pathlib import Path

from overlayforge.core.identity import ARCHIVE_SUFFIX

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_DIR_NAME = "snapshot"


def sibling_overrides(group_dir: Path, snapshot_dir_name: str = DEFAULT_SNAPSHOT_DIR_NAME) -> list[Path]:
    """Override archives of a group, sorted by filename, slot excluded."""
    return sorted(
        child
        for child in group_dir.iterdir()
        if child.name != snapshot_dir_name
        and child.name.endswith(ARCHIVE_SUFFIX)
        and child.is_file()
    )


def merge_overrides(
    destination: Path,
    group_dir: Path | None = None,
    *,
    snapshot_dir_name: str = DEFAULT_SNAPSHOT_DIR_NAME,
) -> int:
    """Merge the group's override archives into the snapshot *destination*.

    *group_dir* names the override group of a baseline staged outside its
    slot. Without it, only an archive that sits inside a snapshot slot is
    merged; anything else is left untouched. Returns the number of entries
    written.
    """
    destination = Path(destination)
    if group_dir is None:
        if (
            not destination.name.endswith(ARCHIVE_SUFFIX)
            or destination.parent.name != snapshot_dir_name
        ):
            logger.debug("%s is not a snapshot archive; nothing to merge", destination)
            return 0
        group_dir = destination.parent.parent

    overlays = sibling_overrides(group_dir, snapshot_dir_name)
    if not overlays:
        return 0
    return merge_archives(destination, overlays, workdir=group_dir)


def merge_archives(
    destination: Path, sources: Iterable[Path], *, workdir: Path | None = None
) -> int:
    """Copy every entry of each source archive into *destination*, in order."""
    destination = Path(destination)
    with zipfile.ZipFile(destination) as zin:
        entries: dict[str, tuple[zipfile.ZipInfo, bytes]] = {
            info.filename: (info, zin.read(info)) for info in zin.infolist()
        }
    directories = _directories(entries)

    written = 0
    for source in sources:
        with zipfile.ZipFile(source) as zsrc:
            for info in zsrc.infolist():
                if _dir_key(info.filename) in directories:
                    continue
                entries[info.filename] = (info, zsrc.read(info))
                directories.update(_parents(info.filename))
                written += 1
        logger.debug("Merged %s into %s", Path(source).name, destination.name)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=".merge", dir=workdir or destination.parent
    )
    try:
        with os.fdopen(fd, "wb") as raw, zipfile.ZipFile(raw, "w") as zout:
            for info, data in entries.values():
                zout.writestr(info, data)
        os.replace(tmp_name, destination)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Merged %d entries into %s", written, destination)
    return written


def _dir_key(name: str) -> str:
    return name.rstrip("/") + "/"


def _parents(name: str) -> set[str]:
    """Directory keys implied by an entry name, including itself if a dir."""
    parts = name.rstrip("/").split("/")
    found = {"/".join(parts[:i]) + "/" for i in range(1, len(parts))}
    if name.endswith("/"):
        found.add(name)
    return found


def _directories(entries: dict[str, tuple[zipfile.ZipInfo, bytes]]) -> set[str]:
    dirs: set[str] = set()
    for name in entries:
        dirs.update(_parents(name))
    return dirs
