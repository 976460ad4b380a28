"""CLI command for removing orphaned apps from a cluster."""

from __future__ import annotations

from typing import Annotated

import typer

from vcluster_ops.cli.commands.base import (
    TimeoutOption,
    console,
    get_client,
    handle_vcluster_error,
    make_token,
)
from vcluster_ops.integrations.vcluster.exceptions import VClusterError
from vcluster_ops.integrations.vcluster.models import CleanupSpec
from vcluster_ops.services.cleanup_reconciler import CleanupReconciler

app = typer.Typer(help="Remove orphaned apps", no_args_is_help=True)


@app.command("run")
def run_cleanup(
    ctx: typer.Context,
    cluster: Annotated[str, typer.Argument(help="Cluster name")],
    apps: Annotated[
        list[str] | None,
        typer.Option("--app", "-a", help="App name to delete (can be repeated)"),
    ] = None,
    keep: Annotated[
        list[str] | None,
        typer.Option("--keep", "-k", help="Release to keep (logged only)"),
    ] = None,
    timeout: TimeoutOption = None,
) -> None:
    """Delete the given apps from a cluster, continuing past failures.

    Examples:
        vcluster-ops cleanup run prod --app vc-prod-old-api --app vc-prod-tmp
    """
    try:
        spec = CleanupSpec(
            cluster_name=cluster,
            apps_to_delete=tuple(apps or ()),
            keep_releases=tuple(keep or ()),
        )
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            handle = CleanupReconciler(client).create(spec, token=token)

        deleted = handle.state.deleted_apps if handle.state is not None else []
        if deleted:
            console.print(f"[green]Deleted {len(deleted)} app(s):[/green] {', '.join(deleted)}")
        else:
            console.print("[yellow]No apps deleted[/yellow]")

    except VClusterError as e:
        handle_vcluster_error(e)
