"""``overlayforge resolve``: reconcile a manifest against local overrides.

Reads a JSON manifest, runs one reconciliation, and writes the corrected
manifest as JSON (to a file, or stdout for piping into the launcher).
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from overlayforge.config import OverlayConfig
from overlayforge.config import config as default_config
from overlayforge.core.errors import OverlayError
from overlayforge.core.reconciler import Reconciler
from overlayforge.log import configure_logging
from overlayforge.models.artifacts import Manifest, ReconciliationResult
from overlayforge.monitor.progress import NullProgressReporter, RichProgressReporter

console = Console(stderr=True)


def _summary(result: ReconciliationResult) -> Table:
    table = Table(title="Reconciled artifacts", header_style="bold cyan")
    table.add_column("Artifact", style="cyan")
    table.add_column("Source")
    table.add_column("SHA-256", style="dim")
    for artifact in result.manifest.artifacts:
        source = "[green]local[/green]" if artifact.path.startswith("file:") else "remote"
        table.add_row(artifact.name, source, artifact.hash[:16])
    return table


def resolve_cmd(
    manifest_path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON manifest to reconcile.",
    ),
    launch_args: list[str] = typer.Argument(
        None,
        help="Launch arguments to patch and print (put them after --).",
    ),
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the corrected manifest here instead of stdout.",
    ),
    base_dir: Path = typer.Option(
        None,
        "--base-dir",
        "-b",
        help="Directory holding repository2/ and patches/.",
    ),
    no_progress: bool = typer.Option(
        False,
        "--no-progress",
        help="Do not draw download progress bars.",
    ),
) -> None:
    """Reconcile a manifest and emit the corrected artifact list."""
    cfg = OverlayConfig(base_dir=base_dir) if base_dir else default_config
    configure_logging(level=cfg.log_level)

    try:
        manifest = Manifest.model_validate(
            json.loads(manifest_path.read_text(encoding="utf-8"))
        )
    except (json.JSONDecodeError, ValidationError) as exc:
        console.print(f"[red]Invalid manifest:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    try:
        if no_progress:
            result = Reconciler(cfg, reporter=NullProgressReporter()).reconcile(
                manifest, launch_args or []
            )
        else:
            with RichProgressReporter(console) as reporter:
                result = Reconciler(cfg, reporter=reporter).reconcile(
                    manifest, launch_args or []
                )
    except (OverlayError, httpx.HTTPError, OSError) as exc:
        console.print(f"[red]Resolution failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    payload = result.manifest.model_dump_json(by_alias=True, indent=2)
    if output:
        output.write_text(payload + "\n", encoding="utf-8")
        console.print(f"[green]Wrote[/green] {output}")
    else:
        typer.echo(payload)

    if not result.resolved:
        console.print("[dim]No overrides installed; manifest passed through.[/dim]")
    else:
        console.print(_summary(result))
    if result.integrity_failures:
        console.print(
            "[yellow]Integrity check failed for:[/yellow] "
            + ", ".join(result.integrity_failures)
        )
    console.print(f"[bold]Launch args:[/bold] {' '.join(result.launch_args)}")
