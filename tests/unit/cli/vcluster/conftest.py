"""Shared fixtures for vcluster command tests."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest

COMMAND_MODULES = ("cluster", "release", "secret", "cleanup")


@pytest.fixture(autouse=True)
def skip_logging_setup() -> Generator[None]:
    """Keep CLI invocations from attaching real log handlers."""
    with patch("vcluster_ops.cli.main.configure_logging"):
        yield


@pytest.fixture
def mock_client() -> MagicMock:
    """Logged-in client usable as a context manager."""
    client = MagicMock()
    client.__enter__.return_value = client
    return client


@pytest.fixture(autouse=True)
def get_client(mock_client: MagicMock) -> Generator[MagicMock]:
    """Route every command's get_client to the mock client."""
    factory = MagicMock(return_value=mock_client)
    patchers = [
        patch(f"vcluster_ops.cli.commands.{module}.get_client", factory)
        for module in COMMAND_MODULES
    ]
    for patcher in patchers:
        patcher.start()
    yield factory
    for patcher in reversed(patchers):
        patcher.stop()
