"""CLI commands for virtual clusters.

- create: Submit a cluster from a YAML spec and wait until it is Healthy
- get: Show an existing cluster
- delete: Delete a cluster
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import yaml
from pydantic import ValidationError

from vcluster_ops.cli.commands.base import (
    ForceOption,
    TimeoutOption,
    confirm_delete,
    console,
    get_client,
    handle_vcluster_error,
    make_token,
)
from vcluster_ops.cli.output import state_table
from vcluster_ops.integrations.vcluster.exceptions import VClusterConfigError, VClusterError
from vcluster_ops.integrations.vcluster.models import ClusterSpec, ClusterState, ResourceHandle
from vcluster_ops.services.cluster_reconciler import ClusterReconciler

app = typer.Typer(help="Manage virtual clusters", no_args_is_help=True)


def load_cluster_spec(path: Path) -> ClusterSpec:
    """Read a cluster spec from a YAML file.

    Raises:
        VClusterConfigError: If the file is unreadable or invalid.
    """
    try:
        data = yaml.safe_load(path.read_text())
        return ClusterSpec.model_validate(data or {})
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise VClusterConfigError(f"Invalid cluster spec {path}", details=str(e)) from e


@app.command("create")
def create_cluster(
    ctx: typer.Context,
    spec_file: Annotated[
        Path,
        typer.Argument(help="YAML file with the cluster spec", exists=True, dir_okay=False),
    ],
    timeout: TimeoutOption = None,
    show_kubeconfig: Annotated[
        bool,
        typer.Option("--show-kubeconfig", help="Print the kubeconfig once Healthy"),
    ] = False,
) -> None:
    """Create a cluster and wait until it reports Healthy.

    Examples:
        vcluster-ops cluster create prod.yaml
        vcluster-ops cluster create prod.yaml --timeout 900
    """
    try:
        spec = load_cluster_spec(spec_file)
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            console.print(f"Creating cluster [bold]{spec.name}[/bold]...")
            handle = ClusterReconciler(client).create(spec, token=token)

        console.print(f"[green]Cluster '{spec.name}' is Healthy[/green] (id: {handle.id})\n")
        if handle.state is not None:
            console.print(state_table(handle.state, title=f"Cluster: {spec.name}"))
            if show_kubeconfig and handle.state.kubeconfig:
                console.print(handle.state.kubeconfig, markup=False, highlight=False)

    except VClusterError as e:
        handle_vcluster_error(e)


@app.command("get")
def get_cluster(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Cluster name")],
    timeout: TimeoutOption = None,
    show_kubeconfig: Annotated[
        bool,
        typer.Option("--show-kubeconfig", help="Print the kubeconfig when available"),
    ] = False,
) -> None:
    """Show a cluster by name.

    Examples:
        vcluster-ops cluster get prod
        vcluster-ops cluster get prod --show-kubeconfig
    """
    try:
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            state = ClusterReconciler(client).describe(name, token)

        console.print(state_table(state, title=f"Cluster: {name}"))
        if show_kubeconfig and state.kubeconfig:
            console.print(state.kubeconfig, markup=False, highlight=False)

    except VClusterError as e:
        handle_vcluster_error(e)


@app.command("delete")
def delete_cluster(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Cluster name")],
    namespace: Annotated[
        str | None,
        typer.Option("--namespace", "-n", help="Cluster namespace (looked up when omitted)"),
    ] = None,
    force: ForceOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Delete a cluster.

    Examples:
        vcluster-ops cluster delete prod
        vcluster-ops cluster delete prod --namespace vc-prod --force
    """
    if not force and not confirm_delete("cluster", name):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    try:
        handle = ResourceHandle[ClusterState](state=ClusterState(name=name, namespace=namespace or ""))
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            ClusterReconciler(client).delete(handle, token)
        console.print(f"[green]Cluster '{name}' deleted successfully[/green]")

    except VClusterError as e:
        handle_vcluster_error(e)
