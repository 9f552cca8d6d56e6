"""Config command."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from . import app

console = Console()


@app.command()
def config(
    key: str | None = typer.Argument(None, help="Config key (dotted notation, e.g. write.max_attempts)"),
    value: str | None = typer.Argument(None, help="Value to set"),
    global_: bool = typer.Option(False, "--global", help="Write to the global config instead of ./.branchstore"),
):
    """Get or set configuration."""
    from ..core.config import get_config_value, load_config, save_config

    project_path = Path.cwd()

    if key is None:
        cfg = load_config(project_path)
        console.print_json(data=cfg)
        return

    if value is None:
        cfg = load_config(project_path)
        val = get_config_value(cfg, key)
        if val is None:
            console.print(f"[yellow]Key not found:[/yellow] {key}")
        else:
            console.print(f"{key} = {val}")
        return

    save_config(None if global_ else project_path, key, value)
    console.print(f"[green]Set[/green] {key} = {value}")
