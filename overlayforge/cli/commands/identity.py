"""``overlayforge identity``: show how filenames parse into identities."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from overlayforge.core.identity import parse_identity

console = Console()


def identity_cmd(
    names: list[str] = typer.Argument(..., help="Archive filenames to parse."),
) -> None:
    """Print the short name, version and stem of each filename."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Short name")
    table.add_column("Version", style="green")
    table.add_column("Stem")

    for name in names:
        identity = parse_identity(name)
        table.add_row(
            identity.full_name,
            identity.short_name,
            identity.version or "[dim]none[/dim]",
            identity.stem,
        )
    console.print(table)
