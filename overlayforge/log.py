"""Shared logging helpers for overlayforge."""

from __future__ import annotations

import logging


def configure_logging(*, level: int | str = logging.INFO, force: bool = False) -> None:
    """Route resolution logs to stderr for the ``overlayforge resolve`` run.

    *level* is a logging constant or a level name such as the
    ``OVERLAYFORGE_LOG_LEVEL`` setting; ``DEBUG`` shows every registry
    lookup and precedence decision. Records carry the emitting module, so
    fetcher, materializer and merger lines can be told apart. ``force``
    replaces handlers installed by an earlier call.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
