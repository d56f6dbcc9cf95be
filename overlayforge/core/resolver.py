"""Precedence resolution across the four source registries.

For one logical artifact the resolver takes the newest candidate from each
registry and walks a fixed decision tree:

====  ==========================  ==========================  ========
step  comparison                  outcome when it holds       else
====  ==========================  ==========================  ========
1     ``newest(p, s) is s``       go to 1a                    go to 2
1a    ``newest(s, r) is s``       ``s`` if ``newest(s, a)     1b
                                  is s`` else ``a``
1b    ``newest(r, a) is r``       ``r``, or ``a`` when ``a``  ``a``
                                  exists with another hash
2     ``newest(p, r) is p``       ``p`` if ``newest(p, a)     2b
                                  is p`` else ``a``
2b    ``newest(r, a) is r``       ``r``                       ``a``
====  ==========================  ==========================  ========

where ``p`` is overrides, ``r`` cached, ``a`` declared and ``s`` snapshots.
The tree is asymmetric: an override only wins through branch 2, and the
declared artifact wins every tie it is compared in from the right. That
ordering is the defined behavior and is kept as is.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from overlayforge.core.identity import ARCHIVE_SUFFIX, newest, parse_identity
from overlayforge.core.locations import path_to_uri
from overlayforge.core.registry import RegistryTable, ResolutionContext
from overlayforge.models.identity import RegistryEntry

logger = logging.getLogger(__name__)


class Source(str, Enum):
    """Registry a resolved location came from."""

    OVERRIDE = "override"
    CACHED = "cached"
    DECLARED = "declared"
    SNAPSHOT = "snapshot"
    SELF = "self"  # nothing matched; the target resolves to itself


class Candidates(BaseModel):
    """The newest entry of one logical artifact in each registry."""

    model_config = ConfigDict(frozen=True)

    p: RegistryEntry | None = None
    r: RegistryEntry | None = None
    a: RegistryEntry | None = None
    s: RegistryEntry | None = None

    @property
    def empty(self) -> bool:
        return self.p is None and self.r is None and self.a is None and self.s is None


class Resolution(BaseModel):
    """The location chosen for a target and where it came from."""

    model_config = ConfigDict(frozen=True)

    location: str
    source: Source
    entry: RegistryEntry | None = None


class PrecedenceResolver:
    """Chooses the most up-to-date location for a logical artifact.

    Never modifies the registries it reads.

    Parameters
    ----------
    context:
        The current run's registries.
    """

    def __init__(self, context: ResolutionContext) -> None:
        self._context = context

    def candidates(self, key: str, *, by_stem: bool = False) -> Candidates:
        """Newest entry per registry whose short name (or stem) is *key*."""
        ctx = self._context

        def pick(table: RegistryTable) -> RegistryEntry | None:
            return table.newest_for_stem(key) if by_stem else table.newest_for(key)

        return Candidates(
            p=pick(ctx.overrides),
            r=pick(ctx.cached),
            a=pick(ctx.declared),
            s=pick(ctx.snapshots),
        )

    def resolve(self, target: Path) -> Resolution:
        """Resolve the location for *target* (a group directory or slot file).

        A slot file matches archives with its own short name; a group
        directory carries no suffix, so it matches by stem.
        """
        identity = parse_identity(target.name)
        if target.name.endswith(ARCHIVE_SUFFIX):
            key = identity.short_name
            found = self.candidates(key)
        else:
            key = identity.stem
            found = self.candidates(key, by_stem=True)

        if found.empty:
            logger.debug("No candidates for %s; resolving to itself", key)
            return Resolution(location=path_to_uri(target), source=Source.SELF)

        entry, source = choose(found)
        if entry is None:
            entry, source = _first_present(found)
        logger.debug("Resolved %s to %s (%s)", key, entry.location, source.value)
        return Resolution(location=entry.location, source=source, entry=entry)

    def resolve_location(self, target: Path) -> str:
        return self.resolve(target).location


def choose(c: Candidates) -> tuple[RegistryEntry | None, Source]:
    """Apply the precedence tree. May pick an absent candidate (``None``)."""
    p, r, a, s = c.p, c.r, c.a, c.s

    if newest(p, s) is s:
        if newest(s, r) is s:
            if newest(s, a) is s:
                return s, Source.SNAPSHOT
            return a, Source.DECLARED
        # r is present here: newest(s, None) always returns s.
        if newest(r, a) is r:
            if a is not None and a.hash != r.hash:
                return a, Source.DECLARED
            return r, Source.CACHED
        return a, Source.DECLARED

    if newest(p, r) is p:
        if newest(p, a) is p:
            return p, Source.OVERRIDE
        return a, Source.DECLARED
    if newest(r, a) is r:
        return r, Source.CACHED
    return a, Source.DECLARED


def _first_present(c: Candidates) -> tuple[RegistryEntry, Source]:
    # Only reachable when every present candidate is versionless.
    for entry, source in (
        (c.s, Source.SNAPSHOT),
        (c.a, Source.DECLARED),
        (c.r, Source.CACHED),
        (c.p, Source.OVERRIDE),
    ):
        if entry is not None:
            return entry, source
    raise AssertionError("candidates unexpectedly empty")
