"""
Shared fixtures: mock HTTP endpoints wired through ``httpx.MockTransport``.
"""

from __future__ import annotations

import threading
from typing import Callable

import httpx
import pytest

from octetpost.core.engine import TransferEngine
from octetpost.core.policy import TransferPolicy
from octetpost.core.transport import HttpxTransport


class RecordingEndpoint:
    """Mock endpoint that records each request and answers via ``respond``."""

    def __init__(
        self,
        respond: Callable[[httpx.Request], httpx.Response] | None = None,
        *,
        status_code: int = 200,
        body: bytes = b"",
    ) -> None:
        self._respond = respond
        self._status_code = status_code
        self._body = body
        self._lock = threading.Lock()
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        if self._respond is not None:
            return self._respond(request)
        return httpx.Response(self._status_code, content=self._body)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "endpoint received no requests"
        return self.requests[-1]


def echo(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=b"echo:" + request.content)


@pytest.fixture
def endpoint() -> RecordingEndpoint:
    """Endpoint echoing the request body back with an ``echo:`` prefix."""
    return RecordingEndpoint(echo)


@pytest.fixture
def endpoint_factory() -> type[RecordingEndpoint]:
    return RecordingEndpoint


@pytest.fixture
def make_engine() -> Callable[..., TransferEngine]:
    """Build an engine talking to a mock endpoint."""

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        *,
        policy: TransferPolicy | None = None,
        read_chunk_size: int = 16 * 1024,
        **kwargs: object,
    ) -> TransferEngine:
        transport = HttpxTransport(
            transport=httpx.MockTransport(handler),
            read_chunk_size=read_chunk_size,
        )
        return TransferEngine(transport, policy, **kwargs)  # type: ignore[arg-type]

    return _make
