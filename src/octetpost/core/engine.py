"""
Transfer engine: drives one POST exchange against the transport capability.

Each exchange is a ``Transfer`` moving through

    CONFIGURING -> EXECUTING -> VALIDATING -> SUCCEEDED | FAILED

A transfer owns its transport handle, response buffer and payload cursor;
none of them is shared with any other transfer. The policy is immutable and
shared read-only. The handle is closed on every exit path.
"""

from __future__ import annotations

import time
from contextlib import closing
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from . import diagnostics, lifecycle
from .buffers import DEFAULT_INITIAL_CAPACITY, ByteCursor, BytesLike, GrowableBuffer
from .errors import (
    BufferAllocationError,
    ConfigurationError,
    OctetpostError,
    ResponseStatusError,
    TransferError,
    UnexpectedError,
)
from .policy import TransferPolicy
from .testmode import get_test_commands_enabled
from .transport import HttpxTransport, TransferOptions, Transport, TransportHandle
from ..metrics.metrics import TransferMetrics

SUCCESS_STATUS = 200


class TransferState(str, Enum):
    CONFIGURING = "configuring"
    EXECUTING = "executing"
    VALIDATING = "validating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class TransferResult:
    """Outcome of one transfer: a response body or a typed error, never both."""

    body: bytes | None = None
    error: OctetpostError | None = None

    def __post_init__(self) -> None:
        if (self.body is None) == (self.error is None):
            raise ValueError("TransferResult requires exactly one of body or error")

    @classmethod
    def success(cls, body: bytes) -> TransferResult:
        return cls(body=body)

    @classmethod
    def failure(cls, error: OctetpostError) -> TransferResult:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> bytes:
        if self.error is not None:
            raise self.error
        assert self.body is not None
        return self.body


class _InboundSink:
    """Push callback appending response bytes into the transfer's buffer.

    A failed append is remembered and reported to the transport as zero
    bytes accepted, which aborts the exchange.
    """

    __slots__ = ("_buffer", "error")

    def __init__(self, buffer: GrowableBuffer) -> None:
        self._buffer = buffer
        self.error: BufferAllocationError | None = None

    def __call__(self, chunk: bytes) -> int:
        if not chunk:
            return 0
        try:
            return self._buffer.append(chunk)
        except BufferAllocationError as e:
            self.error = e
            return 0


class Transfer:
    """A single request/response exchange and its state."""

    def __init__(
        self,
        transport: Transport,
        policy: TransferPolicy,
        url: str,
        payload: BytesLike,
        *,
        test_mode: Callable[[], bool] = get_test_commands_enabled,
        initial_buffer_capacity: int = DEFAULT_INITIAL_CAPACITY,
        max_response_bytes: int | None = None,
    ) -> None:
        self.url = url
        self.state = TransferState.CONFIGURING
        self.cursor = ByteCursor(payload)
        self.buffer = GrowableBuffer(initial_buffer_capacity, max_size=max_response_bytes)
        self.status_code: int | None = None
        self._transport = transport
        self._policy = policy
        self._test_mode = test_mode
        self._sink = _InboundSink(self.buffer)

    def execute(self) -> bytes:
        """Run the exchange to completion and return the response body.

        Raises:
            OctetpostError: the typed failure for whichever state failed.
        """
        try:
            body = self._execute()
        except BaseException:
            self.state = TransferState.FAILED
            raise
        self.state = TransferState.SUCCEEDED
        return body

    def _execute(self) -> bytes:
        if not lifecycle.is_initialized():
            raise ConfigurationError(
                "Transport library is not initialized; call octetpost.initialize()",
                url=self.url,
            )
        handle = self._create_handle()
        with closing(handle):
            self._configure(handle)

            self.state = TransferState.EXECUTING
            try:
                handle.perform()
            except TransferError as e:
                if self._sink.error is not None:
                    raise self._sink.error from e
                raise

            self.state = TransferState.VALIDATING
            self.status_code = handle.response_status()
            if self.status_code != SUCCESS_STATUS:
                raise ResponseStatusError(self.status_code, url=self.url)
            return self.buffer.to_bytes()

    def _create_handle(self) -> TransportHandle:
        try:
            handle = self._transport.create_handle()
        except OctetpostError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Transport handle initialization failed: {e}", cause=e, url=self.url
            ) from e
        if handle is None:
            raise ConfigurationError(
                "Transport handle initialization failed", url=self.url
            )
        return handle

    def _configure(self, handle: TransportHandle) -> None:
        policy = self._policy
        options = TransferOptions(
            url=self.url,
            protocols=policy.protocols_for(self._test_mode()),
            min_tls_version=policy.ssl_minimum_version,
            http_version=policy.http_version,
            connect_timeout_seconds=policy.connect_timeout_seconds,
            total_timeout_seconds=policy.total_timeout_seconds,
            follow_redirects=policy.follow_redirects,
            no_signal=policy.no_signal,
            headers=policy.headers,
            # Declared length comes from the same view the cursor streams
            body_length=self.cursor.length,
        )
        try:
            handle.configure(options)
            handle.set_write_callback(self._sink)
            handle.set_read_callback(self.cursor.read)
        except OctetpostError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to configure transport handle: {e}", cause=e, url=self.url
            ) from e


class TransferEngine:
    """Runs transfers end-to-end and turns every outcome into a ``TransferResult``.

    Args:
        transport: Transport capability; defaults to ``HttpxTransport()``.
        policy: Shared immutable policy; defaults to ``TransferPolicy()``.
        test_mode: Queried once per transfer; True allows plain HTTP.
        initial_buffer_capacity: Starting capacity of each response buffer.
        max_response_bytes: Optional ceiling on response size. The body is
            buffered before the status is checked, so an oversized reply
            fails with ``BufferAllocationError`` whatever its status.
        metrics: Optional collector for transfer outcomes.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        policy: TransferPolicy | None = None,
        *,
        test_mode: Callable[[], bool] = get_test_commands_enabled,
        initial_buffer_capacity: int = DEFAULT_INITIAL_CAPACITY,
        max_response_bytes: int | None = None,
        metrics: TransferMetrics | None = None,
    ) -> None:
        self._transport: Transport = transport or HttpxTransport()
        self._policy = policy or TransferPolicy()
        self._test_mode = test_mode
        self._initial_buffer_capacity = initial_buffer_capacity
        self._max_response_bytes = max_response_bytes
        self._metrics = metrics

    @property
    def policy(self) -> TransferPolicy:
        return self._policy

    def create_transfer(self, url: str, payload: BytesLike) -> Transfer:
        return Transfer(
            self._transport,
            self._policy,
            url,
            payload,
            test_mode=self._test_mode,
            initial_buffer_capacity=self._initial_buffer_capacity,
            max_response_bytes=self._max_response_bytes,
        )

    def run(self, url: str, payload: BytesLike) -> TransferResult:
        """Execute one transfer; never raises for per-request failures."""
        started = time.perf_counter()
        transfer: Transfer | None = None
        try:
            transfer = self.create_transfer(url, payload)
            body = transfer.execute()
        except OctetpostError as e:
            result = TransferResult.failure(e)
        except Exception as e:
            result = TransferResult.failure(UnexpectedError.from_exception(e, url=url))
        else:
            result = TransferResult.success(body)
        self._record(url, transfer, result, time.perf_counter() - started)
        return result

    def _record(
        self,
        url: str,
        transfer: Transfer | None,
        result: TransferResult,
        duration: float,
    ) -> None:
        if result.error is not None:
            fields = {"url": url, "state": transfer.state.value if transfer else None}
            fields.update(result.error.to_dict())
            diagnostics.warn("transfer-engine", "transfer failed", **fields)
            outcome = result.error.category.value
        else:
            outcome = "success"
        if self._metrics is not None:
            self._metrics.record_transfer(
                outcome=outcome,
                duration_seconds=duration,
                bytes_sent=transfer.cursor.offset if transfer else 0,
                bytes_received=len(result.body or b""),
            )
