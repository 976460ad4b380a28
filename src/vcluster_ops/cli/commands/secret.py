"""CLI commands for secrets."""

from __future__ import annotations

from typing import Annotated

import typer

from vcluster_ops.cli.commands.base import (
    DataOption,
    ForceOption,
    TimeoutOption,
    confirm_delete,
    console,
    get_client,
    handle_vcluster_error,
    make_token,
    parse_data_options,
)
from vcluster_ops.cli.output import state_table
from vcluster_ops.integrations.vcluster.exceptions import VClusterError, VClusterNotFoundError
from vcluster_ops.integrations.vcluster.models import ResourceHandle, SecretSpec, SecretState
from vcluster_ops.services.secret_reconciler import SecretReconciler

app = typer.Typer(help="Manage secrets", no_args_is_help=True)

ByNameOption = Annotated[
    bool,
    typer.Option("--by-name", help="Treat the identifier as the secret name"),
]


def _handle(identifier: str, by_name: bool) -> ResourceHandle[SecretState]:
    if by_name:
        return ResourceHandle[SecretState](state=SecretState(name=identifier))
    return ResourceHandle[SecretState](id=identifier)


@app.command("create")
def create_secret(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Secret name")],
    data: DataOption = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Secret description")
    ] = None,
    timeout: TimeoutOption = None,
) -> None:
    """Create a secret.

    Examples:
        vcluster-ops secret create db-creds -d user=admin -d password=s3cret
    """
    entries = parse_data_options(data)
    try:
        spec = SecretSpec(name=name, description=description, data=entries)
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            handle = SecretReconciler(client).create(spec, token=token)
        console.print(f"[green]Secret '{name}' created[/green] (id: {handle.id})")

    except VClusterError as e:
        handle_vcluster_error(e)


@app.command("get")
def get_secret(
    ctx: typer.Context,
    identifier: Annotated[str, typer.Argument(help="Secret id (or name with --by-name)")],
    by_name: ByNameOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Show a secret; values are not printed.

    Examples:
        vcluster-ops secret get 3f2a9c
        vcluster-ops secret get db-creds --by-name
    """
    try:
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            handle = SecretReconciler(client).read(_handle(identifier, by_name), token)
        if handle.state is None:
            raise VClusterNotFoundError(resource_type="secret", resource_id=identifier)

        console.print(state_table(handle.state, title=f"Secret: {handle.state.name}"))
        console.print(f"[dim]Keys: {', '.join(sorted(handle.state.data)) or '(none)'}[/dim]")

    except VClusterError as e:
        handle_vcluster_error(e)


@app.command("update")
def update_secret(
    ctx: typer.Context,
    secret_id: Annotated[str, typer.Argument(help="Secret id")],
    name: Annotated[str, typer.Option("--name", "-n", help="Secret name")],
    data: DataOption = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Secret description")
    ] = None,
    timeout: TimeoutOption = None,
) -> None:
    """Replace a secret's name, description and data.

    Examples:
        vcluster-ops secret update 3f2a9c -n db-creds -d password=rotated
    """
    entries = parse_data_options(data)
    try:
        spec = SecretSpec(name=name, description=description, data=entries)
        handle = ResourceHandle[SecretState](id=secret_id, state=SecretState(name=name))
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            SecretReconciler(client).update(spec, spec, handle, token)
        console.print(f"[green]Secret '{name}' updated[/green]")

    except VClusterError as e:
        handle_vcluster_error(e)


@app.command("delete")
def delete_secret(
    ctx: typer.Context,
    identifier: Annotated[str, typer.Argument(help="Secret id (or name with --by-name)")],
    by_name: ByNameOption = False,
    force: ForceOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Delete a secret.

    Examples:
        vcluster-ops secret delete 3f2a9c
        vcluster-ops secret delete db-creds --by-name --force
    """
    if not force and not confirm_delete("secret", identifier):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    try:
        token = make_token(timeout)
        with get_client(ctx, token) as client:
            SecretReconciler(client).delete(_handle(identifier, by_name), token)
        console.print(f"[green]Secret '{identifier}' deleted successfully[/green]")

    except VClusterError as e:
        handle_vcluster_error(e)
