"""Launch argument patching applied before every reconciliation."""

from __future__ import annotations

from overlayforge.config import OverlayConfig
from overlayforge.models.artifacts import Manifest


def patch_launch_args(args: list[str], config: OverlayConfig) -> list[str]:
    """Return *args* with the client-args and developer-mode flags ensured.

    ``--developer-mode`` is not added when the user opted out with
    ``--no-developer-mode``.
    """
    patched = list(args)
    if config.client_args_flag not in patched:
        patched.append(config.client_args_flag)
    if (
        config.developer_mode_opt_out not in patched
        and config.developer_mode_flag not in patched
    ):
        patched.append(config.developer_mode_flag)
    return patched


def enable_assertions(manifest: Manifest, config: OverlayConfig) -> Manifest:
    """Ensure both JVM argument lists enable assertions.

    Developer mode only works with assertions on, for both the in-process
    and the forked-JVM launch paths.
    """
    flag = config.assertions_flag

    def _with_flag(arguments: list[str]) -> list[str]:
        return arguments if flag in arguments else [*arguments, flag]

    return manifest.model_copy(
        update={
            "client_jvm_arguments": _with_flag(manifest.client_jvm_arguments),
            "client_jvm9_arguments": _with_flag(manifest.client_jvm9_arguments),
        }
    )
