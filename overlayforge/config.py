"""Runtime configuration: env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
OVERLAYFORGE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OverlayConfig(BaseSettings):
    """Resolver configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export OVERLAYFORGE_BASE_DIR=/srv/launcher
        export OVERLAYFORGE_LOG_LEVEL=DEBUG
        export OVERLAYFORGE_STRICT_INTEGRITY=false
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="OVERLAYFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Filesystem layout
    base_dir: Path = Field(default_factory=lambda: Path.home() / ".overlayforge")
    repository_dir_name: str = "repository2"
    patches_dir_name: str = "patches"
    snapshot_dir_name: str = "snapshot"

    # Fetching
    user_agent: str = "Mozilla/5.0"
    chunk_size: int = 1024 * 1024
    http_timeout_seconds: float = 30.0

    # Integrity: raise when a fetched artifact still mismatches its hash
    strict_integrity: bool = True

    # Launch arguments
    client_args_flag: str = "--clientargs"
    developer_mode_flag: str = "--developer-mode"
    developer_mode_opt_out: str = "--no-developer-mode"
    assertions_flag: str = "-ea"

    # Observability
    log_level: str = "INFO"

    @property
    def repository_dir(self) -> Path:
        """Local cache of previously resolved archives."""
        return self.base_dir / self.repository_dir_name

    @property
    def patches_dir(self) -> Path:
        """Root of the override archives and override groups."""
        return self.base_dir / self.patches_dir_name


# Module-level singleton, import as `from overlayforge.config import config`
config = OverlayConfig()
