"""CLI commands for Helm releases on virtual clusters."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from vcluster_ops.cli.commands.base import (
    ForceOption,
    TimeoutOption,
    confirm_delete,
    console,
    get_client,
    handle_vcluster_error,
    make_token,
)
from vcluster_ops.integrations.vcluster.exceptions import VClusterError
from vcluster_ops.integrations.vcluster.identity import RELEASE_IDENTITY
from vcluster_ops.integrations.vcluster.models import ReleaseSpec, ReleaseState, ResourceHandle
from vcluster_ops.services.release_reconciler import ReleaseReconciler

app = typer.Typer(help="Manage Helm releases", no_args_is_help=True)


@app.command("install")
def install_release(
    ctx: typer.Context,
    cluster: Annotated[str, typer.Option("--cluster", "-c", help="Target cluster name")],
    namespace: Annotated[str, typer.Option("--namespace", "-n", help="Release namespace")],
    release: Annotated[str, typer.Option("--release", "-r", help="Release name")],
    chart: Annotated[str, typer.Option("--chart", help="Chart name")],
    repo: Annotated[str, typer.Option("--repo", help="Chart repository URL")],
    chart_version: Annotated[
        str | None, typer.Option("--version", help="Chart version")
    ] = None,
    values_file: Annotated[
        Path | None,
        typer.Option("--values-file", "-f", help="YAML values file", exists=True, dir_okay=False),
    ] = None,
    timeout: TimeoutOption = None,
) -> None:
    """Install a Helm release.

    Examples:
        vcluster-ops release install -c prod -n db -r mysql --chart mysql \\
            --repo https://charts.bitnami.com/bitnami --version 9.4.0
    """
    try:
        spec = ReleaseSpec(
            cluster_name=cluster,
            namespace=namespace,
            release=release,
            chart=chart,
            repo=repo,
            chart_version=chart_version,
            values_file=str(values_file) if values_file else None,
        )
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            handle = ReleaseReconciler(client).create(spec, token=token)
        console.print(f"[green]Release '{release}' installed[/green] (id: {handle.id})")

    except VClusterError as e:
        handle_vcluster_error(e)


@app.command("uninstall")
def uninstall_release(
    ctx: typer.Context,
    release_id: Annotated[str, typer.Argument(help="Release id as cluster:namespace:release")],
    force: ForceOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Uninstall a Helm release.

    Examples:
        vcluster-ops release uninstall prod:db:mysql
    """
    try:
        RELEASE_IDENTITY.decode(release_id)
    except VClusterError as e:
        handle_vcluster_error(e)

    if not force and not confirm_delete("release", release_id):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    try:
        handle = ResourceHandle[ReleaseState](id=release_id)
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            ReleaseReconciler(client).delete(handle, token)
        console.print(f"[green]Release '{release_id}' uninstalled[/green]")

    except VClusterError as e:
        handle_vcluster_error(e)
