"""Reconciler: produces the corrected manifest for one launch.

A run patches the launch arguments, then (unless no overrides are installed
at all) builds a fresh :class:`ResolutionContext`, materializes every
override group, and layers the final artifact list:

1. override archives that are not also a snapshot,
2. materialized snapshots,
3. declared artifacts that were neither overridden nor snapshotted.

A later layer never adds a second artifact for a logical artifact an earlier
layer already supplied. Every override and snapshot artifact is verified
into the repository cache before it is listed.

There is no partial result: any error aborts the run, and the context is
cleared whether the run succeeded or not.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import httpx

from overlayforge.config import OverlayConfig
from overlayforge.config import config as default_config
from overlayforge.core.errors import ArtifactIntegrityError
from overlayforge.core.fetcher import ArtifactFetcher
from overlayforge.core.identity import parse_identity
from overlayforge.core.launch_args import enable_assertions, patch_launch_args
from overlayforge.core.locations import uri_to_path
from overlayforge.core.materializer import SnapshotMaterializer
from overlayforge.core.registry import RegistryTable, ResolutionContext
from overlayforge.models.artifacts import Artifact, Manifest, ReconciliationResult
from overlayforge.models.identity import RegistryEntry
from overlayforge.monitor.progress import ProgressReporter

logger = logging.getLogger(__name__)


class Reconciler:
    """Top-level resolution entry point.

    Parameters
    ----------
    config:
        Resolver configuration. Defaults to the env-driven singleton.
    fetcher:
        Optional prebuilt fetcher. When omitted, one is created per run
        from *config*, *client* and *reporter*, and closed afterwards.
    client:
        Optional ``httpx.Client`` for the fetcher this reconciler creates.
    reporter:
        Download progress reporter for the fetcher this reconciler creates.
    """

    def __init__(
        self,
        config: OverlayConfig | None = None,
        *,
        fetcher: ArtifactFetcher | None = None,
        client: httpx.Client | None = None,
        reporter: ProgressReporter | None = None,
    ) -> None:
        self.config = config or default_config
        self._fetcher = fetcher
        self._client = client
        self._reporter = reporter

    def _make_fetcher(self) -> ArtifactFetcher:
        return ArtifactFetcher(
            self.config.repository_dir,
            client=self._client,
            reporter=self._reporter,
            chunk_size=self.config.chunk_size,
            user_agent=self.config.user_agent,
            timeout_seconds=self.config.http_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def reconcile(
        self, manifest: Manifest, launch_args: Sequence[str] = ()
    ) -> ReconciliationResult:
        """Resolve *manifest* against the local cache and overrides."""
        cfg = self.config
        args = patch_launch_args(list(launch_args), cfg)
        manifest = enable_assertions(manifest, cfg)

        patches_dir = cfg.patches_dir
        patches_dir.mkdir(parents=True, exist_ok=True)
        if not any(patches_dir.iterdir()):
            logger.info("No overrides installed in %s; manifest unchanged", patches_dir)
            return ReconciliationResult(manifest=manifest, launch_args=args, resolved=False)

        fetcher = self._fetcher or self._make_fetcher()
        try:
            with ResolutionContext.build(
                manifest, cfg.repository_dir, patches_dir
            ) as context:
                materializer = SnapshotMaterializer(
                    context, fetcher, snapshot_dir_name=cfg.snapshot_dir_name
                )
                materializer.materialize_all(patches_dir)
                artifacts, failures = self._layer(manifest, context, fetcher)
        finally:
            if fetcher is not self._fetcher:
                fetcher.close()

        logger.info(
            "Reconciled %d artifacts (%d declared)",
            len(artifacts),
            len(manifest.artifacts),
        )
        return ReconciliationResult(
            manifest=manifest.model_copy(update={"artifacts": artifacts}),
            launch_args=args,
            integrity_failures=failures,
        )

    # ------------------------------------------------------------------
    # Layering
    # ------------------------------------------------------------------

    def _layer(
        self, manifest: Manifest, context: ResolutionContext, fetcher: ArtifactFetcher
    ) -> tuple[list[Artifact], list[str]]:
        artifacts: list[Artifact] = []
        failures: list[str] = []
        seen: set[str] = set()

        def add_local(entry: RegistryEntry) -> None:
            artifact = Artifact.from_file(uri_to_path(entry.location))
            if not fetcher.verify_artifact(artifact):
                if self.config.strict_integrity:
                    raise ArtifactIntegrityError(
                        f"Cached copy of {artifact.name} does not match {artifact.hash}"
                    )
                logger.warning("Integrity check failed for %s", artifact.name)
                failures.append(artifact.name)
            artifacts.append(artifact)
            seen.add(entry.short_name)

        overrides = [e for e in context.overrides if e.name not in context.snapshots]
        for entry in _newest_per_short_name(overrides):
            add_local(entry)

        for entry in _newest_per_short_name(context.snapshots):
            if entry.short_name not in seen:
                add_local(entry)

        for artifact in manifest.artifacts:
            name = artifact.name.rsplit("/", 1)[-1]
            if name in context.overrides or name in context.snapshots:
                continue
            if parse_identity(name).short_name in seen:
                logger.debug("Declared %s superseded by a local artifact", name)
                continue
            artifacts.append(artifact)

        return artifacts, failures


def _newest_per_short_name(entries: Iterable[RegistryEntry]) -> list[RegistryEntry]:
    """Keep the newest entry of each short name, ordered by short name."""
    table = RegistryTable("layer", entries)
    return [
        table.newest_for(short_name)
        for short_name in sorted({entry.short_name for entry in table})
    ]
