"""
End-to-end flows through ``AsyncPostClient`` against a mock endpoint.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

import httpx
import pytest

from octetpost import AsyncPostClient, HttpxTransport, ResponseStatusError, Settings
from octetpost.metrics import TransferMetrics

pytestmark = pytest.mark.integration

URL = "https://api.example.com/ingest"


def _tagged(index: int) -> bytes:
    return f"req-{index:04d}:".encode() + os.urandom(1000 + index * 37)


def _reverse(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=request.content[::-1])


def _client(handler: Any, **kwargs: Any) -> AsyncPostClient:
    settings = Settings(client={"max_workers": 8})
    transport = HttpxTransport(transport=httpx.MockTransport(handler), read_chunk_size=512)
    return AsyncPostClient(settings=settings, transport=transport, **kwargs)


@pytest.mark.critical
def test_concurrent_requests_do_not_cross_talk(endpoint_factory: Any, wait_timeout: float) -> None:
    ep = endpoint_factory(_reverse)
    payloads = [_tagged(i) for i in range(40)]
    metrics = TransferMetrics(enabled=True)
    with _client(ep, metrics=metrics) as client:
        futures = [client.post_async(URL, p) for p in payloads]
        bodies = [f.result(timeout=wait_timeout) for f in futures]

    assert bodies == [p[::-1] for p in payloads]
    assert sorted(r.content for r in ep.requests) == sorted(payloads)
    snap = metrics.snapshot()
    assert snap.transfers_succeeded == len(payloads)
    assert snap.bytes_sent == sum(len(p) for p in payloads)


def test_mixed_outcomes_resolve_independently(endpoint_factory: Any, wait_timeout: float) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.content.startswith(b"fail"):
            return httpx.Response(500)
        return httpx.Response(200, content=b"ok:" + request.content)

    with _client(endpoint_factory(handler)) as client:
        good = [client.post_async(URL, f"good-{i}".encode()) for i in range(10)]
        bad = [client.post_async(URL, f"fail-{i}".encode()) for i in range(10)]
        for i, f in enumerate(good):
            assert f.result(timeout=wait_timeout) == f"ok:good-{i}".encode()
        for f in bad:
            error = f.exception(timeout=wait_timeout)
            assert isinstance(error, ResponseStatusError)
            assert error.status_code == 500


async def test_gather_from_asyncio(endpoint_factory: Any) -> None:
    payloads = [_tagged(i) for i in range(12)]
    with _client(endpoint_factory(_reverse)) as client:
        bodies = await asyncio.gather(*(client.post(URL, p) for p in payloads))
    assert list(bodies) == [p[::-1] for p in payloads]
