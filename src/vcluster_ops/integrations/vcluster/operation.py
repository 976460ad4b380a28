"""Outbound operation templates and replayable request bodies.

An :class:`Operation` is an immutable description of one HTTP call. The
retry executor materializes a fresh :class:`httpx.Request` from it for
every attempt instead of re-sending one request object, so each attempt
gets its own unread body.
"""

from __future__ import annotations

import io
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, BinaryIO

import httpx

BodySupplier = Callable[[], BinaryIO]


@dataclass(frozen=True)
class Operation:
    """A single outbound call.

    Attributes:
        method: HTTP method.
        url: Absolute target URL, including any query string.
        headers: Request headers.
        body: Single-read body stream used by the first attempt.
        body_supplier: Produces a fresh, unread copy of the body on demand.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: BinaryIO | None = None
    body_supplier: BodySupplier | None = None

    @property
    def replayable(self) -> bool:
        """Whether retries can resend the original body."""
        return self.body_supplier is not None

    def materialize(self, attempt: int) -> httpx.Request:
        """Build the request for a given attempt (0 is the first send).

        The first attempt consumes ``body``. Retries draw a fresh body from
        ``body_supplier``; without one the retried body is empty.
        """
        content = b""
        if attempt == 0 and self.body is not None:
            content = self.body.read()
        elif attempt > 0 and self.body_supplier is not None:
            content = self.body_supplier().read()
        return httpx.Request(
            self.method,
            self.url,
            headers=dict(self.headers),
            content=content if content else None,
        )


class IdempotentRequestBuilder:
    """Builds operations whose body survives any number of retries.

    Example:
        >>> op = (
        ...     IdempotentRequestBuilder("POST", "http://api/createcluster")
        ...     .header("Authorization", token)
        ...     .json({"Name": "prod"})
        ...     .build()
        ... )
    """

    def __init__(self, method: str, url: str) -> None:
        self._method = method
        self._url = url
        self._headers: dict[str, str] = {}
        self._body: BinaryIO | None = None

    def header(self, name: str, value: str | None) -> IdempotentRequestBuilder:
        """Set a header; empty values are skipped."""
        if value:
            self._headers[name] = value
        return self

    def json(self, payload: Any) -> IdempotentRequestBuilder:
        """Use the JSON encoding of ``payload`` as body."""
        self._headers.setdefault("Content-Type", "application/json")
        self._body = io.BytesIO(json.dumps(payload).encode())
        return self

    def body(self, stream: BinaryIO | bytes) -> IdempotentRequestBuilder:
        """Use a raw body, either bytes or a single-read stream."""
        self._body = io.BytesIO(stream) if isinstance(stream, bytes) else stream
        return self

    def build(self) -> Operation:
        """Return the operation, made replayable when it has a body."""
        operation = Operation(self._method, self._url, dict(self._headers), self._body)
        if operation.body is None:
            return operation
        return self.make_replayable(operation)

    @staticmethod
    def make_replayable(operation: Operation) -> Operation:
        """Capture a single-read body once and install a replaying supplier.

        The captured bytes are restored as the operation's own body so a
        first, non-retried send still works, and every supplier call
        returns a new stream over the same bytes.
        """
        if operation.body is None:
            return operation
        captured = operation.body.read()

        def supply() -> BinaryIO:
            return io.BytesIO(captured)

        return replace(operation, body=io.BytesIO(captured), body_supplier=supply)
