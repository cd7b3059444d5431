"""streampack CLI — Typer-based command-line interface.

Provides the ``streampack`` command with subcommands for packing a
manifest into a zip archive and inspecting the result.

All output uses Rich for formatted terminal display.
"""
