"""CLI interface using Typer."""

import logging

import typer

app = typer.Typer(name="bstore", help="branchstore: versioned blobs on git orphan branches")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# Import subcommand modules to register them
from . import publish_cmds  # noqa: F401, E402
from . import read_cmds  # noqa: F401, E402
from . import config_cmds  # noqa: F401, E402
