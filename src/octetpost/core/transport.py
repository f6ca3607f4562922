"""
Transport capability boundary.

The engine never speaks HTTP, TLS or DNS itself. It drives a
``TransportHandle`` through a fixed sequence: ``configure()``, bind the
outbound pull callback and inbound push callback, ``perform()``, then
``response_status()``, and finally ``close()`` on every path.

``HttpxTransport`` is the production implementation on top of a blocking
``httpx.Client``. Tests inject an ``httpx.MockTransport`` through its
``transport`` argument.
"""

from __future__ import annotations

import ssl
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Protocol, runtime_checkable

import certifi
import httpx

from . import lifecycle
from .errors import ConfigurationError, TransferError

# Pull callback: max bytes wanted -> next chunk, b"" at end of body
ReadCallback = Callable[[int], bytes]
# Push callback: chunk received -> bytes accepted; anything short aborts
WriteCallback = Callable[[bytes], int]

READ_CHUNK_SIZE = 16 * 1024

_BAD_RESPONSE = "Bad HTTP response from API server"


@dataclass(frozen=True)
class TransferOptions:
    """Everything a handle needs to know about one exchange."""

    url: str
    protocols: frozenset[str]
    min_tls_version: ssl.TLSVersion
    http_version: str
    connect_timeout_seconds: float
    total_timeout_seconds: float
    follow_redirects: bool
    no_signal: bool
    headers: tuple[tuple[str, str], ...]
    body_length: int


@runtime_checkable
class TransportHandle(Protocol):
    """One-shot handle for a single request/response exchange."""

    def configure(self, options: TransferOptions) -> None:  # pragma: no cover
        ...

    def set_read_callback(self, callback: ReadCallback) -> None:  # pragma: no cover
        ...

    def set_write_callback(self, callback: WriteCallback) -> None:  # pragma: no cover
        ...

    def perform(self) -> None:  # pragma: no cover
        """Run the exchange, blocking; raise ``TransferError`` on failure."""
        ...

    def response_status(self) -> int:  # pragma: no cover
        ...

    def close(self) -> None:  # pragma: no cover
        ...


@runtime_checkable
class Transport(Protocol):
    def create_handle(self) -> TransportHandle:  # pragma: no cover
        ...


class HttpxTransport:
    """Creates ``HttpxHandle`` instances.

    Without ``transport`` every handle builds its own connection pool, TLS
    context included. An injected ``transport`` is shared by all handles and
    is closed along with each of them, so it must tolerate repeated
    ``close()`` calls (``httpx.MockTransport`` does).
    """

    def __init__(
        self,
        *,
        transport: httpx.BaseTransport | None = None,
        read_chunk_size: int = READ_CHUNK_SIZE,
    ) -> None:
        if read_chunk_size <= 0:
            raise ValueError("read_chunk_size must be > 0")
        self._transport = transport
        self._read_chunk_size = read_chunk_size

    def create_handle(self) -> HttpxHandle:
        return HttpxHandle(
            transport=self._transport, read_chunk_size=self._read_chunk_size
        )


class HttpxHandle:
    """Blocking single-POST handle backed by a private ``httpx.Client``."""

    def __init__(
        self,
        *,
        transport: httpx.BaseTransport | None = None,
        read_chunk_size: int = READ_CHUNK_SIZE,
    ) -> None:
        self._transport = transport
        self._read_chunk_size = read_chunk_size
        self._client: httpx.Client | None = None
        self._options: TransferOptions | None = None
        self._read: ReadCallback | None = None
        self._write: WriteCallback | None = None
        self._status: int | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def configure(self, options: TransferOptions) -> None:
        if self._closed:
            raise ConfigurationError("Transport handle is closed")
        if self._client is not None:
            raise ConfigurationError("Transport handle is already configured")
        try:
            url = httpx.URL(options.url)
        except (httpx.InvalidURL, TypeError) as e:
            raise ConfigurationError(
                f"Invalid URL: {e}", cause=e, url=options.url
            ) from e
        scheme = url.scheme.lower()
        if scheme not in options.protocols:
            raise ConfigurationError(
                f"Protocol {scheme or '<none>'!r} not supported or disabled",
                url=options.url,
                allowed_protocols=sorted(options.protocols),
            )
        if not url.host:
            raise ConfigurationError("URL has no host", url=options.url)
        if options.http_version != "1.1":
            raise ConfigurationError(
                f"Unsupported HTTP version {options.http_version!r}",
                url=options.url,
            )
        if not options.no_signal:
            # httpx timeouts are socket-level and never rely on signals
            raise ConfigurationError("Signal-driven timeouts are not supported")
        try:
            ssl_context = ssl.create_default_context(
                cafile=lifecycle.ca_bundle_path() or certifi.where()
            )
            ssl_context.minimum_version = options.min_tls_version
            self._client = httpx.Client(
                transport=self._transport,
                verify=ssl_context,
                timeout=httpx.Timeout(
                    options.total_timeout_seconds,
                    connect=options.connect_timeout_seconds,
                ),
                follow_redirects=options.follow_redirects,
                http1=True,
                http2=False,
            )
        except (ssl.SSLError, OSError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to configure transport: {e}", cause=e, url=options.url
            ) from e
        self._options = options

    def set_read_callback(self, callback: ReadCallback) -> None:
        self._read = callback

    def set_write_callback(self, callback: WriteCallback) -> None:
        self._write = callback

    def perform(self) -> None:
        client, options = self._client, self._options
        if client is None or options is None:
            raise ConfigurationError("Transport handle is not configured")
        if self._read is None or self._write is None:
            raise ConfigurationError("Transfer callbacks are not bound")
        write = self._write
        deadline = time.monotonic() + options.total_timeout_seconds
        headers = list(options.headers)
        headers.append(("Content-Length", str(options.body_length)))
        try:
            with client.stream(
                "POST",
                options.url,
                content=self._iter_body(deadline),
                headers=headers,
            ) as response:
                self._status = response.status_code
                for chunk in response.iter_bytes():
                    _check_deadline(deadline, options)
                    if write(chunk) != len(chunk):
                        raise TransferError(
                            f"{_BAD_RESPONSE}: Failed writing received data",
                            url=options.url,
                        )
        except httpx.TimeoutException as e:
            raise TransferError(
                f"{_BAD_RESPONSE}: Timeout was reached ({e})",
                cause=e,
                url=options.url,
            ) from e
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise TransferError(
                f"{_BAD_RESPONSE}: {e}", cause=e, url=options.url
            ) from e

    def _iter_body(self, deadline: float) -> Iterator[bytes]:
        read = self._read
        assert read is not None and self._options is not None
        while True:
            _check_deadline(deadline, self._options)
            chunk = read(self._read_chunk_size)
            if not chunk:
                return
            yield chunk

    def response_status(self) -> int:
        if self._status is None:
            raise TransferError(
                "Unexpected error retrieving response: no response received",
                url=self._options.url if self._options else None,
            )
        return self._status

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        client, self._client = self._client, None
        if client is not None:
            client.close()


def _check_deadline(deadline: float, options: TransferOptions) -> None:
    if time.monotonic() > deadline:
        raise TransferError(
            f"{_BAD_RESPONSE}: Timeout was reached "
            f"(total timeout {options.total_timeout_seconds}s)",
            url=options.url,
        )
