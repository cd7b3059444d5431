"""``streampack inspect ARCHIVE`` — list the entries of a packed archive."""

from __future__ import annotations

import zipfile
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

console = Console()

_METHODS = {
    zipfile.ZIP_STORED: "stored",
    zipfile.ZIP_DEFLATED: "deflated",
}


def inspect_cmd(
    archive: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Zip archive to inspect.",
    ),
    verify: bool = typer.Option(
        False,
        "--verify",
        help="Read every entry and check its CRC.",
    ),
) -> None:
    """Show the entries of an archive in order."""
    try:
        zf = zipfile.ZipFile(archive)
    except zipfile.BadZipFile as exc:
        console.print(f"[bold red]Not a zip archive:[/bold red] {archive} ({exc})")
        raise typer.Exit(code=1)

    with zf:
        infos = zf.infolist()
        table = Table(title=f"{archive.name} ({len(infos)} entries)")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Size", justify="right")
        table.add_column("Packed", justify="right")
        table.add_column("Method")
        for position, info in enumerate(infos):
            table.add_row(
                str(position),
                info.filename,
                str(info.file_size),
                str(info.compress_size),
                _METHODS.get(info.compress_type, str(info.compress_type)),
            )
        console.print(table)

        if verify:
            bad = zf.testzip()
            if bad is not None:
                console.print(f"[bold red]CRC mismatch:[/bold red] {bad}")
                raise typer.Exit(code=1)
            console.print("[green]All entries verified.[/green]")
