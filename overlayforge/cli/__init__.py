"""Overlayforge CLI: Typer-based command-line interface.

Provides the ``overlayforge`` command with subcommands for reconciling a
manifest, inspecting artifact identities, and listing override groups.

All output uses Rich for formatted terminal display.
"""
