"""Download progress reporters.

A reporter receives ``(name, downloaded, total)`` after every chunk read
during a download. Reporting is fire-and-forget: :func:`notify` swallows
and logs anything a reporter raises so a misbehaving display can never fail
a resolution run.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressReporter(Protocol):
    """Receives byte counts while an artifact downloads."""

    def report(self, name: str, downloaded: int, total: int) -> None: ...


class NullProgressReporter:
    """Discards every report."""

    def report(self, name: str, downloaded: int, total: int) -> None:
        return None


class LoggingProgressReporter:
    """Logs each completed download at DEBUG level.

    Intermediate chunks are not logged; a report is treated as the last
    one when ``downloaded`` reaches ``total``.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def report(self, name: str, downloaded: int, total: int) -> None:
        if total and downloaded >= total:
            self._log.debug("Downloaded %s (%d bytes)", name, downloaded)


class RichProgressReporter:
    """Renders one Rich progress bar per artifact.

    Use as a context manager so the live display is started and stopped
    around the reconciliation run.

    Parameters
    ----------
    console:
        Rich Console instance. A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._progress = Progress(
            TextColumn("[cyan]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=console or Console(stderr=True),
            transient=False,
        )
        self._tasks: dict[str, TaskID] = {}

    def report(self, name: str, downloaded: int, total: int) -> None:
        task = self._tasks.get(name)
        if task is None:
            task = self._progress.add_task(name, total=total or None)
            self._tasks[name] = task
        self._progress.update(task, completed=downloaded, total=total or None)

    def __enter__(self) -> RichProgressReporter:
        self._progress.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._progress.stop()


def notify(reporter: ProgressReporter, name: str, downloaded: int, total: int) -> None:
    """Deliver one report, logging and ignoring any reporter failure."""
    try:
        reporter.report(name, downloaded, total)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Progress reporter failed for %s: %s", name, exc)
