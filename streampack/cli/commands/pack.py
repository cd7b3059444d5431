"""``streampack pack MANIFEST`` — build a zip archive from a manifest.

Reads the manifest, fetches every entry with bounded concurrency and
streams the archive to the output file.  Exit codes: 0 on success, 1 on
failure, 2 on an invalid manifest or options, 130 when cancelled (Ctrl-C).
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel

from streampack.builders.manifest import ManifestError, load_manifest
from streampack.config import config
from streampack.core.errors import PipelineCancelledError, PipelineError
from streampack.core.pipeline import run_pipeline
from streampack.cli.progress import RichProgressObserver
from streampack.models.pipeline import Compression, PipelineOptions, PipelineResult
from streampack.models.targets import Target
from streampack.notify import PipelineObserver
from streampack.sinks.local_file import FileSink

console = Console()


async def _pack(
    targets: list[Target],
    sink: FileSink,
    options: PipelineOptions,
    observers: list[PipelineObserver],
) -> PipelineResult:
    return await run_pipeline(targets, sink, options=options, observers=observers)


def pack_cmd(
    manifest: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="YAML or JSON manifest listing the archive entries.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Archive path.  Defaults to '<archive>.zip' from the manifest.",
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-k",
        min=1,
        help="Maximum number of concurrent fetches.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds for each remote fetch.",
    ),
    compression: Optional[Compression] = typer.Option(
        None,
        "--compression",
        "-c",
        case_sensitive=False,
        help="Entry compression.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Do not show the progress bar.",
    ),
) -> None:
    """Fetch every manifest entry and stream them, in order, into one zip."""
    try:
        plan = load_manifest(manifest)
    except ManifestError as exc:
        console.print(f"[bold red]Invalid manifest:[/bold red] {exc}")
        raise typer.Exit(code=2)

    destination = output or Path(f"{plan.archive}.zip")
    try:
        options = PipelineOptions.from_config(
            config,
            concurrency=concurrency,
            http_timeout_seconds=timeout,
            compression=compression,
        )
    except ValidationError as exc:
        console.print(f"[bold red]Invalid options:[/bold red] {exc}")
        raise typer.Exit(code=2)

    # The progress bar only draws; outcome messages are printed below.
    observers: list[PipelineObserver] = []
    if not quiet:
        observers.append(RichProgressObserver(console=console))

    try:
        result = asyncio.run(_pack(plan.targets, FileSink(destination), options, observers))
    except (KeyboardInterrupt, PipelineCancelledError):
        console.print("[yellow]Cancelled; partial archive discarded.[/yellow]")
        raise typer.Exit(code=130)
    except PipelineError as exc:
        target = exc.target_name or "<pipeline>"
        console.print(f"[bold red]Packing failed at {target}:[/bold red] {exc.cause}")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            "\n".join([
                f"[bold]Run ID:[/bold]   {result.run_id}",
                f"[bold]Archive:[/bold]  {destination}",
                f"[bold]Entries:[/bold]  {result.entries_written}",
                f"[bold]Bytes:[/bold]    {result.bytes_written}",
            ]),
            title="[bold green]streampack[/bold green]",
            border_style="green",
            padding=(1, 2),
        )
    )
