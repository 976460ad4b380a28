"""Tests for the release command group."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from vcluster_ops.integrations.vcluster.models import ReleaseState, ResourceHandle

INSTALL_ARGS = [
    "release",
    "install",
    "-c",
    "prod",
    "-n",
    "db",
    "-r",
    "mysql",
    "--chart",
    "mysql",
    "--repo",
    "https://charts.example.com",
]


@pytest.fixture
def reconciler() -> Generator[MagicMock]:
    """Mock ReleaseReconciler instance."""
    with patch("vcluster_ops.cli.commands.release.ReleaseReconciler") as cls:
        yield cls.return_value


@pytest.mark.unit
class TestReleaseInstall:
    """Tests for `release install`."""

    def test_install(self, cli_runner: CliRunner, cli_app: typer.Typer, reconciler: MagicMock) -> None:
        """The composite id is printed."""
        reconciler.create.return_value = ResourceHandle[ReleaseState](id="prod:db:mysql")

        result = cli_runner.invoke(cli_app, [*INSTALL_ARGS, "--version", "9.4.0"])

        assert result.exit_code == 0
        assert "prod:db:mysql" in result.stdout
        spec = reconciler.create.call_args.args[0]
        assert spec.chart_version == "9.4.0"
        assert spec.values_file is None

    def test_install_with_values_file(
        self, cli_runner: CliRunner, cli_app: typer.Typer, reconciler: MagicMock, tmp_path: Path
    ) -> None:
        """The values file path is handed to the ReleaseSpec."""
        values = tmp_path / "values.yaml"
        values.write_text("replicas: 2\n")
        reconciler.create.return_value = ResourceHandle[ReleaseState](id="prod:db:mysql")

        result = cli_runner.invoke(cli_app, [*INSTALL_ARGS, "-f", str(values)])

        assert result.exit_code == 0
        assert reconciler.create.call_args.args[0].values_file == str(values)


@pytest.mark.unit
class TestReleaseUninstall:
    """Tests for `release uninstall`."""

    def test_uninstall(self, cli_runner: CliRunner, cli_app: typer.Typer, reconciler: MagicMock) -> None:
        """The handle carries the given id."""
        result = cli_runner.invoke(cli_app, ["release", "uninstall", "prod:db:mysql", "--force"])

        assert result.exit_code == 0
        assert "uninstalled" in result.stdout
        assert reconciler.delete.call_args.args[0].id == "prod:db:mysql"

    def test_malformed_id_rejected_before_prompt(
        self, cli_runner: CliRunner, cli_app: typer.Typer, reconciler: MagicMock, get_client: MagicMock
    ) -> None:
        """A malformed id fails without prompting or connecting."""
        result = cli_runner.invoke(cli_app, ["release", "uninstall", "prod:db"])

        assert result.exit_code == 1
        assert "malformed identifier" in result.stdout
        get_client.assert_not_called()
        reconciler.delete.assert_not_called()
