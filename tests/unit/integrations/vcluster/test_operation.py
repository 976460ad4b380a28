"""Unit tests for operations and the idempotent request builder."""

from __future__ import annotations

import io
import json

import pytest

from vcluster_ops.integrations.vcluster.operation import IdempotentRequestBuilder, Operation


@pytest.mark.unit
class TestIdempotentRequestBuilder:
    """Tests for IdempotentRequestBuilder."""

    def test_json_body_is_replayable(self) -> None:
        """A JSON body gets a supplier and a Content-Type header."""
        op = IdempotentRequestBuilder("POST", "http://api/createcluster").json({"Name": "prod"}).build()

        assert op.replayable
        assert op.headers["Content-Type"] == "application/json"
        assert json.loads(op.body_supplier().read()) == {"Name": "prod"}  # type: ignore[misc]

    def test_supplier_replays_identical_bytes(self) -> None:
        """Every supplier call yields the same bytes, however often it is called."""
        stream = io.BytesIO(b'{"Name": "prod", "Cpu": "2"}')
        op = IdempotentRequestBuilder.make_replayable(Operation("POST", "http://api/x", body=stream))

        assert op.body_supplier is not None
        copies = [op.body_supplier().read() for _ in range(5)]
        assert copies == [b'{"Name": "prod", "Cpu": "2"}'] * 5

    def test_original_body_restored_for_first_send(self) -> None:
        """Capturing the stream leaves a readable body for attempt 0."""
        op = IdempotentRequestBuilder("PUT", "http://api/x").body(b"payload").build()

        assert op.materialize(0).content == b"payload"

    def test_empty_header_values_skipped(self) -> None:
        """Empty header values are not sent."""
        op = IdempotentRequestBuilder("GET", "http://api/x").header("Authorization", "").build()

        assert "Authorization" not in op.headers
        assert not op.replayable


@pytest.mark.unit
class TestOperationMaterialize:
    """Tests for per-attempt request materialization."""

    def test_every_attempt_gets_same_body(self) -> None:
        """Retries re-derive the body from the supplier."""
        op = IdempotentRequestBuilder("POST", "http://api/x").json({"a": 1}).build()

        bodies = [op.materialize(attempt).content for attempt in range(4)]

        assert len(set(bodies)) == 1
        assert json.loads(bodies[0]) == {"a": 1}

    def test_retry_without_supplier_sends_empty_body(self) -> None:
        """Without a supplier the retried body is empty."""
        op = Operation("POST", "http://api/x", body=io.BytesIO(b"once"))

        assert op.materialize(0).content == b"once"
        assert op.materialize(1).content == b""

    def test_headers_and_method_copied(self) -> None:
        """The request carries the operation's method, URL and headers."""
        op = IdempotentRequestBuilder("DELETE", "http://api/deleteapp?Name=a").header("Accept", "*/*").build()

        request = op.materialize(0)

        assert request.method == "DELETE"
        assert str(request.url) == "http://api/deleteapp?Name=a"
        assert request.headers["Accept"] == "*/*"
