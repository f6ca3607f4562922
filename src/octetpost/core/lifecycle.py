"""
Explicit process-wide lifecycle of the transport library.

``initialize()`` must complete before any transfer is attempted and
``shutdown()`` runs once at process exit, after every transfer has finished.
Both are idempotent. Ordering is the host process's responsibility; nothing
here is triggered implicitly at import time.
"""

from __future__ import annotations

import os
import ssl
import threading

import certifi

from . import diagnostics
from .errors import InitializationError


class TransportLibraryManager:
    """Tracks one-time initialization of the HTTP transport stack."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._initialized = False
        self._ca_bundle: str | None = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def ca_bundle(self) -> str | None:
        return self._ca_bundle

    def initialize(self) -> None:
        with self._lock:
            if self._initialized:
                return
            if not getattr(ssl, "HAS_TLSv1_2", False):
                raise InitializationError(
                    "ssl module lacks TLS 1.2 support, cannot continue",
                    openssl_version=ssl.OPENSSL_VERSION,
                )
            ca_bundle = certifi.where()
            if not os.path.isfile(ca_bundle):
                raise InitializationError(
                    "CA certificate bundle is missing, cannot continue",
                    ca_bundle=ca_bundle,
                )
            try:
                ssl.create_default_context(cafile=ca_bundle)
            except (ssl.SSLError, OSError) as e:
                raise InitializationError(
                    f"Failed to initialize TLS: {e}",
                    cause=e,
                    ca_bundle=ca_bundle,
                ) from e
            self._ca_bundle = ca_bundle
            self._initialized = True
        diagnostics.debug(
            "lifecycle",
            "transport library initialized",
            openssl_version=ssl.OPENSSL_VERSION,
        )

    def shutdown(self) -> None:
        with self._lock:
            if not self._initialized:
                return
            self._initialized = False
            self._ca_bundle = None
        diagnostics.debug("lifecycle", "transport library shut down")


_manager = TransportLibraryManager()


def initialize() -> None:
    """Initialize the transport library once; raises ``InitializationError``."""
    _manager.initialize()


def shutdown() -> None:
    _manager.shutdown()


def is_initialized() -> bool:
    return _manager.initialized


def ca_bundle_path() -> str | None:
    return _manager.ca_bundle
