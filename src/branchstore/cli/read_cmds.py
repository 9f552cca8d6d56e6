"""Read commands: resolve, harvest."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from . import app

console = Console()


@app.command("resolve")
def resolve(
    dataset: str = typer.Argument(..., help="Dataset name"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the latest blob here"),
    repo_role: str = typer.Option("downloader", "--repo", help="Repository role: downloader|uploader|database"),
):
    """Show the current version pointer of DATASET, optionally downloading the blob."""
    from ..core.config import load_config, repo_url
    from ..core.errors import BranchStoreError, ConfigError
    from ..store.reader import read_latest, read_pointer
    from ..store.workspace import open_workspace

    config = load_config(Path.cwd())
    try:
        url = repo_url(config, repo_role)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    try:
        with open_workspace(url, config) as repo:
            if output is None:
                pointer, blob = read_pointer(repo, dataset), None
            else:
                latest = read_latest(repo, dataset)
                pointer, blob = latest if latest else (None, None)
    except BranchStoreError as e:
        console.print(f"[red]Resolve failed:[/red] {e}")
        raise typer.Exit(1)

    if pointer is None:
        console.print(f"[yellow]Nothing published for {dataset}.[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"{dataset}")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("version", pointer.version)
    table.add_row("file", pointer.file_name)
    table.add_row("url", pointer.data_url)
    console.print(table)

    if output is not None and blob is not None:
        output.write_bytes(blob)
        console.print(f"[green]Wrote[/green] {len(blob)} bytes to {output}")


@app.command("harvest")
def harvest(
    upload_type: str = typer.Argument(..., help="Upload type prefix, e.g. track"),
    file_path: str = typer.Argument(..., help="JSON file inside each upload branch"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write harvested records here"),
    window_hours: float = typer.Option(2.0, "--window-hours", help="Accept uploads within now ± this many hours"),
    delete: bool = typer.Option(False, "--delete", help="Delete processed upload branches"),
    repo_role: str = typer.Option("uploader", "--repo", help="Repository role: downloader|uploader|database"),
):
    """Collect JSON object records from client upload branches."""
    from ..core.clock import Clock
    from ..core.config import load_config, repo_url
    from ..core.errors import BranchStoreError, ConfigError
    from ..store.inbox import delete_processed, harvest_uploads
    from ..store.workspace import open_workspace

    config = load_config(Path.cwd())
    try:
        url = repo_url(config, repo_role)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    clock = Clock(config.get("clock", {}).get("utc_offset_hours", 8))
    try:
        with open_workspace(url, config) as repo:
            result = harvest_uploads(
                repo,
                upload_type,
                file_path,
                now_ms=clock.timestamp_ms(),
                validator=lambda record: isinstance(record, dict),
                window_ms=int(window_hours * 60 * 60 * 1000),
            )
            removed = delete_processed(repo, result, config["git"]["base_branch"]) if delete else []
    except BranchStoreError as e:
        console.print(f"[red]Harvest failed:[/red] {e}")
        raise typer.Exit(1)

    console.print(
        f"[bold]{len(result.records)}[/bold] records harvested, {result.rejected} rejected"
        f" (branches: {result.branches.summary()})"
    )
    for failure in result.branches.failed:
        console.print(f"  [yellow]{failure}[/yellow]")
    if removed:
        console.print(f"  Deleted {len(removed)} upload branches")
    if output is not None:
        output.write_text(json.dumps(result.records, ensure_ascii=False, indent=2), encoding="utf-8")
        console.print(f"[green]Wrote[/green] {len(result.records)} records to {output}")
