"""``overlayforge groups``: list installed overrides and snapshot slots.

Read-only: nothing is resolved, downloaded or created.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from overlayforge.config import OverlayConfig
from overlayforge.config import config as default_config
from overlayforge.core.archive_merger import sibling_overrides
from overlayforge.core.identity import ARCHIVE_SUFFIX

console = Console()


def _slot_status(slot: Path) -> str:
    if not slot.is_dir():
        return "[dim]no slot[/dim]"
    files = sorted(p.name for p in slot.iterdir())
    if not files:
        return "[yellow]empty[/yellow]"
    if len(files) > 1:
        return f"[bold red]INVALID ({len(files)} files)[/bold red]"
    return f"[green]{files[0]}[/green]"


def groups_cmd(
    base_dir: Path = typer.Option(
        None,
        "--base-dir",
        "-b",
        help="Directory holding repository2/ and patches/.",
    ),
) -> None:
    """List override archives, override groups and their snapshots."""
    cfg = OverlayConfig(base_dir=base_dir) if base_dir else default_config
    patches_dir = cfg.patches_dir

    if not patches_dir.is_dir():
        console.print(f"[dim]No patches directory at {patches_dir}.[/dim]")
        return

    children = sorted(patches_dir.iterdir())
    loose = [p.name for p in children if p.is_file() and p.name.endswith(ARCHIVE_SUFFIX)]
    groups = [p for p in children if p.is_dir()]

    if not loose and not groups:
        console.print("[dim]No overrides installed.[/dim]")
        return

    if loose:
        console.print("[bold]Override archives:[/bold] " + ", ".join(loose))

    table = Table(title="Override groups", header_style="bold cyan")
    table.add_column("Group", style="cyan")
    table.add_column("Overrides")
    table.add_column("Snapshot")
    for group in groups:
        overrides = sibling_overrides(group, cfg.snapshot_dir_name)
        table.add_row(
            group.name,
            ", ".join(p.name for p in overrides) or "[dim]none[/dim]",
            _slot_status(group / cfg.snapshot_dir_name),
        )
    console.print(table)
