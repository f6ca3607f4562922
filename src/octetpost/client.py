"""
Asynchronous POST client.

``post_async()`` returns immediately with a ``concurrent.futures.Future``
while the blocking transfer runs on a background worker. asyncio callers can
``await client.post(...)`` instead.

Usage:
    octetpost.initialize()
    with AsyncPostClient() as client:
        body = client.post_async("https://api.example.com/ingest", payload).result()
"""

from __future__ import annotations

import asyncio
import threading
from functools import partial
from concurrent.futures import Executor, Future, ThreadPoolExecutor

from .core import diagnostics
from .core.buffers import BytesLike
from .core.engine import TransferEngine, TransferResult
from .core.errors import SchedulingError, UnexpectedError
from .core.policy import TransferPolicy
from .core.settings import Settings
from .core.transport import HttpxTransport, Transport
from .metrics.metrics import TransferMetrics


class _CompletionToken:
    """One-shot resolver for a request's future."""

    __slots__ = ("_future", "_lock", "_used")

    def __init__(self, future: Future[bytes]) -> None:
        self._future = future
        self._lock = threading.Lock()
        self._used = False

    @property
    def used(self) -> bool:
        return self._used

    def resolve(self, result: TransferResult) -> bool:
        """Resolve the future from ``result``; only the first call has an effect."""
        with self._lock:
            if self._used:
                return False
            self._used = True
        if result.error is not None:
            self._future.set_exception(result.error)
        else:
            assert result.body is not None
            self._future.set_result(result.body)
        return True


class _PendingRequest:
    """In-flight association of a scheduled transfer with its future."""

    __slots__ = ("url", "payload", "future", "_token")

    def __init__(self, url: str, payload: bytes) -> None:
        self.url = url
        self.payload = payload
        self.future: Future[bytes] = Future()
        self._token = _CompletionToken(self.future)

    def start(self) -> bool:
        """Mark the future running; False if the caller already cancelled it."""
        return self.future.set_running_or_notify_cancel()

    def resolve(self, result: TransferResult) -> bool:
        return self._token.resolve(result)


class AsyncPostClient:
    """Posts opaque payloads on a background worker pool.

    Args:
        engine: Transfer engine; built from ``settings`` when omitted.
        executor: Worker pool. When omitted a ``ThreadPoolExecutor`` sized by
            ``settings.client.max_workers`` is created and owned by the client.
        settings: Configuration; read from the environment when omitted.
        transport: Transport capability for the default engine.
        max_pending: Maximum in-flight requests; overrides
            ``settings.client.max_pending``.
        metrics: Collector shared with the default engine.
    """

    def __init__(
        self,
        *,
        engine: TransferEngine | None = None,
        executor: Executor | None = None,
        settings: Settings | None = None,
        transport: Transport | None = None,
        max_pending: int | None = None,
        metrics: TransferMetrics | None = None,
    ) -> None:
        cfg = settings or Settings()
        self._metrics = metrics or TransferMetrics(enabled=cfg.core.enable_metrics)
        self._engine = engine or TransferEngine(
            transport or HttpxTransport(),
            cfg.to_policy(),
            initial_buffer_capacity=cfg.transfer.initial_buffer_capacity,
            max_response_bytes=cfg.transfer.max_response_bytes,
            metrics=self._metrics,
        )
        self._owns_executor = executor is None
        self._executor: Executor = executor or ThreadPoolExecutor(
            max_workers=cfg.client.max_workers,
            thread_name_prefix="octetpost-transfer",
        )
        limit = max_pending if max_pending is not None else cfg.client.max_pending
        if limit is not None and limit <= 0:
            raise ValueError("max_pending must be > 0")
        self._slots = threading.BoundedSemaphore(limit) if limit is not None else None
        self._closed = False

    @property
    def policy(self) -> TransferPolicy:
        return self._engine.policy

    @property
    def metrics(self) -> TransferMetrics:
        return self._metrics

    def post_async(self, url: str, payload: BytesLike) -> Future[bytes]:
        """Schedule a POST of ``payload`` to ``url``.

        The returned future resolves exactly once: with the response body on
        a 200, or with the typed ``OctetpostError`` describing the failure.
        A request the worker pool cancels before it starts resolves with a
        ``SchedulingError``.

        Raises:
            SchedulingError: the worker pool rejected the request. No future
                is returned in that case.
        """
        # Immutable snapshot owned by the worker, independent of the caller
        data = payload if isinstance(payload, bytes) else bytes(payload)
        pending = _PendingRequest(url, data)

        if self._closed:
            self._reject("client is closed", url)
        if self._slots is not None and not self._slots.acquire(blocking=False):
            self._reject("too many pending requests", url)
        try:
            submitted = self._executor.submit(self._run, pending)
        except RuntimeError as e:
            self._release_slot()
            self._reject(f"worker pool rejected the request: {e}", url, cause=e)
        submitted.add_done_callback(partial(self._on_submitted_done, pending))
        return pending.future

    async def post(self, url: str, payload: BytesLike) -> bytes:
        """Awaitable form of ``post_async`` for asyncio callers."""
        return await asyncio.wrap_future(self.post_async(url, payload))

    def _run(self, pending: _PendingRequest) -> None:
        try:
            if not pending.start():
                return
            try:
                result = self._engine.run(pending.url, pending.payload)
            except Exception as e:
                result = TransferResult.failure(
                    UnexpectedError.from_exception(e, url=pending.url)
                )
            pending.resolve(result)
        finally:
            self._release_slot()

    def _on_submitted_done(
        self, pending: _PendingRequest, submitted: Future[None]
    ) -> None:
        # A cancelled work item never entered _run
        if not submitted.cancelled():
            return
        self._release_slot()
        error = self._rejection("worker pool cancelled the request", pending.url)
        if pending.start():
            pending.resolve(TransferResult.failure(error))

    def _release_slot(self) -> None:
        if self._slots is not None:
            self._slots.release()

    def _rejection(
        self, reason: str, url: str, *, cause: BaseException | None = None
    ) -> SchedulingError:
        self._metrics.record_scheduling_rejected()
        diagnostics.warn("post-client", "request rejected", url=url, reason=reason)
        return SchedulingError(
            f"Failed to schedule transfer: {reason}", cause=cause, url=url
        )

    def _reject(
        self, reason: str, url: str, *, cause: BaseException | None = None
    ) -> None:
        raise self._rejection(reason, url, cause=cause)

    def close(self, *, wait: bool = True) -> None:
        """Stop accepting requests and shut down an owned worker pool."""
        self._closed = True
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> AsyncPostClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
