"""Tests for the cleanup command."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from vcluster_ops.integrations.vcluster.exceptions import CleanupBatchError, VClusterAPIError
from vcluster_ops.integrations.vcluster.models import CleanupState, ResourceHandle


@pytest.fixture
def reconciler() -> Generator[MagicMock]:
    """Mock CleanupReconciler instance."""
    with patch("vcluster_ops.cli.commands.cleanup.CleanupReconciler") as cls:
        yield cls.return_value


@pytest.mark.unit
class TestCleanupRun:
    """Tests for `cleanup run`."""

    def test_run(self, cli_runner: CliRunner, cli_app: typer.Typer, reconciler: MagicMock) -> None:
        """Deleted apps are listed."""
        handle = ResourceHandle[CleanupState]()
        handle.populate("prod-orphan-cleanup", CleanupState(deleted_apps=["a", "b"]))
        reconciler.create.return_value = handle

        result = cli_runner.invoke(cli_app, ["cleanup", "run", "prod", "-a", "a", "-a", "b", "-k", "mysql"])

        assert result.exit_code == 0
        assert "Deleted 2 app(s)" in result.stdout
        spec = reconciler.create.call_args.args[0]
        assert spec.apps_to_delete == ("a", "b")
        assert spec.keep_releases == ("mysql",)

    def test_nothing_deleted(
        self, cli_runner: CliRunner, cli_app: typer.Typer, reconciler: MagicMock
    ) -> None:
        """An empty batch says so."""
        reconciler.create.return_value = ResourceHandle[CleanupState]()

        result = cli_runner.invoke(cli_app, ["cleanup", "run", "prod"])

        assert result.exit_code == 0
        assert "No apps deleted" in result.stdout

    def test_partial_failure(
        self, cli_runner: CliRunner, cli_app: typer.Typer, reconciler: MagicMock
    ) -> None:
        """Failures are listed alongside what was deleted."""
        reconciler.create.side_effect = CleanupBatchError(
            "prod", deleted=["a", "c"], failures={"b": VClusterAPIError("deleteapp failed")}
        )

        result = cli_runner.invoke(cli_app, ["cleanup", "run", "prod", "-a", "a", "-a", "b", "-a", "c"])

        assert result.exit_code == 1
        assert "- b: deleteapp failed" in result.stdout
        assert "Deleted: a, c" in result.stdout
