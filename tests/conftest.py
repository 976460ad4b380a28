"""Shared pytest fixtures for vcluster_ops tests."""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest
import respx
import typer
from pydantic import SecretStr
from typer.testing import CliRunner

from vcluster_ops.cli.main import app
from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.client import VClusterClient
from vcluster_ops.integrations.vcluster.config import VClusterConfig

BASE_URL = "http://vcluster.test"
LOGIN_TOKEN = "tok-123"


class FakeCancellationToken(CancellationToken):
    """Cancellation token that records waits instead of sleeping.

    Args:
        cancel_after: Cancel once this many waits have been recorded.
    """

    def __init__(self, cancel_after: int | None = None) -> None:
        super().__init__()
        self.waits: list[float] = []
        self.cancel_after = cancel_after

    def wait(self, seconds: float) -> None:
        self.raise_if_cancelled()
        self.waits.append(seconds)
        if self.cancel_after is not None and len(self.waits) >= self.cancel_after:
            self.cancel("cancelled by test")
        self.raise_if_cancelled()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_app() -> typer.Typer:
    """Return the CLI app for testing."""
    return app


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset environment variables for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("VCLUSTER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_token() -> FakeCancellationToken:
    """Token whose waits return immediately."""
    return FakeCancellationToken()


@pytest.fixture
def vcluster_config() -> VClusterConfig:
    """Test configuration with a small retry and polling budget."""
    return VClusterConfig(
        base_url=BASE_URL,
        username="admin",
        password=SecretStr("secret"),
        timeout=30,
        max_retries=2,
        poll_interval=10.0,
        poll_max_attempts=5,
        delete_grace_interval=2.0,
    )


@pytest.fixture
def api() -> Generator[respx.MockRouter]:
    """respx router mocking the vcluster API."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def vcluster_client(vcluster_config: VClusterConfig, api: respx.MockRouter) -> Generator[VClusterClient]:
    """Client holding a login token, talking to the respx-mocked API."""
    client = VClusterClient(vcluster_config, LOGIN_TOKEN)
    yield client
    client.close()


@pytest.fixture
def token_factory() -> type[FakeCancellationToken]:
    """Factory for tokens that cancel after a number of waits."""
    return FakeCancellationToken
