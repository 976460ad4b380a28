"""Table output for CLI commands.

Wraps Rich's Table so every command renders resource state the same way.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Literal

from rich.table import Table as RichTable

if TYPE_CHECKING:
    from rich.console import ConsoleRenderable, RichCast
    from rich.style import Style

    from vcluster_ops.integrations.vcluster.models import RemoteResourceState

OverflowMethod = Literal["fold", "crop", "ellipsis", "ignore"]
JustifyMethod = Literal["default", "left", "center", "right", "full"]

# Fields never printed in tables
HIDDEN_FIELDS = frozenset({"kubeconfig", "data"})


class Table(RichTable):
    """Rich Table whose columns wrap long text instead of truncating.

    Usage:
        table = Table(title="Clusters")
        table.add_column("Name")
        table.add_column("ID", no_wrap=True)
        table.add_row("prod", "c-123")
    """

    def add_column(
        self,
        header: ConsoleRenderable | RichCast | str = "",
        footer: ConsoleRenderable | RichCast | str = "",
        *,
        header_style: Style | str | None = None,
        style: Style | str | None = None,
        justify: JustifyMethod = "default",
        overflow: OverflowMethod = "fold",
        width: int | None = None,
        no_wrap: bool = False,
    ) -> None:
        """Add a column with overflow="fold" by default."""
        super().add_column(
            header,
            footer,
            header_style=header_style,
            style=style,
            justify=justify,
            overflow=overflow,
            width=width,
            no_wrap=no_wrap,
        )


def state_table(
    state: RemoteResourceState,
    title: str,
    hidden: Iterable[str] = HIDDEN_FIELDS,
) -> Table:
    """Render a state snapshot as a two-column field/value table."""
    skip = set(hidden)
    table = Table(title=title)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")
    for field, value in state.model_dump().items():
        if field in skip:
            continue
        if isinstance(value, list | tuple):
            value = ", ".join(str(v) for v in value)
        table.add_row(field, "" if value is None else str(value))
    return table
