"""Main Typer application: imports and registers all CLI commands.

Entry point: ``overlayforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from overlayforge.cli.commands.groups import groups_cmd
from overlayforge.cli.commands.identity import identity_cmd
from overlayforge.cli.commands.resolve import resolve_cmd

app = typer.Typer(
    name="overlayforge",
    help="Overlayforge: resolve launch artifacts against local overrides.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="resolve", help="Reconcile a JSON manifest.")(resolve_cmd)
app.command(name="identity", help="Show how filenames parse.")(identity_cmd)
app.command(name="groups", help="List override groups and snapshots.")(groups_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
