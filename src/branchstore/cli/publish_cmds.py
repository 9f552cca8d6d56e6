"""Write commands: publish, append."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console

from . import app

console = Console()


@app.command("publish")
def publish(
    dataset: str = typer.Argument(..., help="Dataset name, e.g. gdcj-train-detail"),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Blob to publish"),
    ext: str | None = typer.Option(None, "--ext", help="Blob extension (default: publish.extension)"),
    repo_role: str = typer.Option("downloader", "--repo", help="Repository role: downloader|uploader|database"),
):
    """Publish FILE as the newest version of DATASET (data branch, then version branch)."""
    from ..core.clock import Clock
    from ..core.config import load_config, repo_url
    from ..core.errors import BranchNameError, BranchStoreError, ConfigError
    from ..store.publisher import publish_dataset
    from ..store.workspace import open_workspace
    from ..store.writer import defaults_from_config

    config = load_config(Path.cwd())
    try:
        url = repo_url(config, repo_role)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    publish_cfg = config.get("publish", {})
    blob = file.read_bytes()
    console.print(f"[bold]Publishing {dataset}[/bold] ({len(blob)} bytes)")

    try:
        with open_workspace(url, config) as repo:
            result = asyncio.run(
                publish_dataset(
                    repo,
                    dataset,
                    blob,
                    extension=ext or publish_cfg.get("extension", "json"),
                    clock=Clock(config.get("clock", {}).get("utc_offset_hours", 8)),
                    raw_base_url=publish_cfg.get("raw_base_url", ""),
                    **defaults_from_config(config),
                )
            )
    except (BranchStoreError, BranchNameError) as e:
        console.print(f"[red]Publish failed:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"  Data file: {result.pointer.file_name}")
    if result.version_published:
        console.print(f"  [green]Version pointer updated[/green] -> {result.pointer.data_url}")
    else:
        console.print("  [yellow]Version pointer not updated; it will catch up on the next publish.[/yellow]")


@app.command("append")
def append(
    branch: str = typer.Argument(..., help="Append-only branch, e.g. backup_track_raw-data"),
    path: str = typer.Argument(..., help="JSON array file inside the branch"),
    records_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with new records"),
    dedupe_key: str | None = typer.Option(None, "--dedupe-key", help="Skip records whose key was already stored"),
    repo_role: str = typer.Option("database", "--repo", help="Repository role: downloader|uploader|database"),
):
    """Append the records in RECORDS_FILE to PATH on BRANCH."""
    from ..core.config import load_config, repo_url
    from ..core.errors import BranchStoreError, ConfigError
    from ..store.archive import append_records
    from ..store.workspace import open_workspace
    from ..store.writer import defaults_from_config

    config = load_config(Path.cwd())
    try:
        url = repo_url(config, repo_role)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    try:
        payload = json.loads(records_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {records_file}:[/red] {e}")
        raise typer.Exit(1)
    records = payload if isinstance(payload, list) else [payload]

    try:
        with open_workspace(url, config) as repo:
            outcome = asyncio.run(
                append_records(repo, branch, path, records, dedupe_key=dedupe_key, **defaults_from_config(config))
            )
    except (BranchStoreError, ValueError) as e:
        console.print(f"[red]Append failed:[/red] {e}")
        raise typer.Exit(1)

    if outcome.committed:
        console.print(f"[green]Appended {len(records)} records[/green] to {branch}:{path}")
    else:
        console.print(f"[yellow]No change[/yellow] on {branch}")
