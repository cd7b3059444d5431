"""Subcommands registered on the ``streampack`` Typer app."""
