"""Base utilities for vcluster CLI commands.

Common Typer options, client construction and error handling shared by
every command group.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, NoReturn

import typer
from rich.console import Console

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.client import VClusterClient
from vcluster_ops.integrations.vcluster.config import VClusterConfig
from vcluster_ops.integrations.vcluster.exceptions import (
    CleanupBatchError,
    ConvergenceTimeoutError,
    ImmutableFieldError,
    MalformedIdentifierError,
    OperationCancelledError,
    RetryExhaustedError,
    VClusterAPIError,
    VClusterAuthError,
    VClusterConfigError,
    VClusterConnectionError,
    VClusterError,
    VClusterNotFoundError,
)

# Shared console instance for all commands
console = Console()


# =============================================================================
# Common Typer Option Annotations
# =============================================================================

TimeoutOption = Annotated[
    float | None,
    typer.Option(
        "--timeout",
        help="Deadline in seconds for the whole operation, including retries and polling",
        min=1,
    ),
]

ForceOption = Annotated[
    bool,
    typer.Option(
        "--force",
        "-f",
        help="Skip confirmation prompts",
    ),
]

DataOption = Annotated[
    list[str] | None,
    typer.Option(
        "--data",
        "-d",
        help="Secret entry as key=value (can be repeated)",
    ),
]


# =============================================================================
# Client and token construction
# =============================================================================


def get_client(ctx: typer.Context, token: CancellationToken | None = None) -> VClusterClient:
    """Load configuration and log in.

    The config path comes from the global ``--config`` option. Login
    retries wait through ``token``, so the command deadline covers them.
    """
    obj = ctx.obj or {}
    config_path: Path | None = obj.get("config_path")
    config = VClusterConfig.load(config_path)
    return VClusterClient.connect(config, token=token)


def make_token(timeout: float | None) -> CancellationToken:
    """Return a cancellation token bounded by ``timeout`` seconds."""
    return CancellationToken(timeout=timeout)


def parse_data_options(items: list[str] | None) -> dict[str, str]:
    """Parse repeated ``key=value`` options into a dictionary.

    Raises:
        typer.BadParameter: If an item is malformed.

    Example:
        >>> parse_data_options(["user=admin", "password=s3cr=t"])
        {'user': 'admin', 'password': 's3cr=t'}
    """
    result: dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep:
            raise typer.BadParameter(f"Invalid data format: '{item}'. Expected 'key=value'.")
        if not key:
            raise typer.BadParameter(f"Empty key in data: '{item}'")
        result[key] = value
    return result


def confirm_delete(entity_type: str, name: str) -> bool:
    """Prompt user to confirm deletion."""
    return typer.confirm(
        f"Are you sure you want to delete {entity_type} '{name}'?",
        default=False,
    )


# =============================================================================
# Error Handling
# =============================================================================


def handle_vcluster_error(error: VClusterError) -> NoReturn:
    """Print a user-friendly message for ``error`` and exit.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    if isinstance(error, VClusterConnectionError):
        console.print("[red]Error:[/red] Cannot connect to vcluster API")
        console.print(f"  {error.message}")
        if error.original_error:
            console.print(f"  Cause: {error.original_error}")
        console.print("\n[dim]Hint: Check that the API is reachable and base_url is correct.[/dim]")

    elif isinstance(error, VClusterAuthError):
        console.print("[red]Error:[/red] Authentication failed")
        console.print(f"  {error.message}")
        console.print("\n[dim]Hint: Check username and password in your configuration.[/dim]")

    elif isinstance(error, VClusterNotFoundError):
        console.print(f"[red]Error:[/red] {error.resource_type or 'resource'} not found")
        console.print(f"  {error.message}")

    elif isinstance(error, RetryExhaustedError):
        console.print("[red]Error:[/red] Request kept failing after retries")
        console.print(f"  {error.message}")
        if error.endpoint:
            console.print(f"  Endpoint: {error.endpoint}")

    elif isinstance(error, CleanupBatchError):
        console.print(f"[red]Error:[/red] {error.message}")
        for name, err in error.failures.items():
            console.print(f"  - {name}: {err}")
        if error.deleted:
            console.print(f"\n[green]Deleted:[/green] {', '.join(error.deleted)}")

    elif isinstance(error, ImmutableFieldError):
        console.print("[red]Error:[/red] Update requires recreation")
        console.print(f"  {error.message}")

    elif isinstance(error, ConvergenceTimeoutError):
        console.print("[red]Error:[/red] Resource did not become Healthy")
        console.print(f"  {error.message}")

    elif isinstance(error, OperationCancelledError):
        console.print(f"[red]Error:[/red] Operation cancelled: {error.reason}")

    elif isinstance(error, VClusterConfigError | MalformedIdentifierError):
        console.print(f"[red]Error:[/red] {error}")

    elif isinstance(error, VClusterAPIError):
        console.print(f"[red]Error:[/red] {error.message}")
        if error.status_code:
            console.print(f"  HTTP Status: {error.status_code}")
        if error.endpoint:
            console.print(f"  Endpoint: {error.endpoint}")

    else:
        console.print(f"[red]Error:[/red] {error}")

    raise typer.Exit(1)
