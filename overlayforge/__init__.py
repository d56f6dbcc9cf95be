"""Overlayforge: local artifact-overlay resolver.

Given a launch manifest, picks the most up-to-date usable variant of each
archive among the manifest, the local repository cache, user override
archives and materialized override snapshots; verifies content by SHA-256;
fetches what is missing; and returns the corrected manifest.
"""

__version__ = "0.1.0"
__description__ = "Local artifact-overlay resolver for launch manifests"

from overlayforge.core.reconciler import Reconciler
from overlayforge.models.artifacts import Artifact, Manifest, ReconciliationResult
from overlayforge.cli.app import app as cli

__all__ = [
    "Reconciler",
    "Artifact",
    "Manifest",
    "ReconciliationResult",
    "cli",
    "__version__",
]
