"""Main CLI entry point using Typer."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from vcluster_ops import __version__
from vcluster_ops.cli.commands import cleanup, cluster, release, secret
from vcluster_ops.logging.config import configure_logging, get_logger

app = typer.Typer(
    name="vcluster-ops",
    help="Lifecycle operations for virtual clusters, Helm releases and secrets.",
    add_completion=True,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"vcluster-ops version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
    log_json: bool = typer.Option(
        False,
        "--log-json",
        help="Write console logs as JSON lines.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (default: ~/.config/vcluster-ops/config.yaml).",
        envvar="VCLUSTER_CONFIG",
    ),
) -> None:
    """vcluster-ops - resilient lifecycle operations against the vcluster API."""
    configure_logging(verbose=verbose, debug=debug, json_output=log_json)
    get_logger(__name__).debug("CLI started", command=ctx.invoked_subcommand, config=str(config))
    ctx.obj = {"config_path": config}


# Register subcommands
app.add_typer(cluster.app, name="cluster")
app.add_typer(release.app, name="release")
app.add_typer(secret.app, name="secret")
app.add_typer(cleanup.app, name="cleanup")


if __name__ == "__main__":
    app()
