"""
Transfer metrics for octetpost.

Implements minimal Prometheus-compatible counters and a latency histogram
for the transfer engine and client.

Design goals:
- Thread-safe: transfers record from worker threads
- Zero global state; each collector owns an isolated registry
- Safe no-op exporting when metrics are disabled, while still tracking
  in-memory counters for tests
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class TransferStats:
    """Captured runtime counters for quick assertions in tests."""

    transfers_succeeded: int = 0
    transfers_failed: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0
    scheduling_rejected: int = 0


class TransferMetrics:
    """Collector shared by a client and its engine."""

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = TransferStats()

        self._c_transfers: Any | None = None
        self._c_bytes: Any | None = None
        self._c_rejected: Any | None = None
        self._h_latency: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_transfers = Counter(
                "octetpost_transfers_total",
                "Completed transfers by outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._c_bytes = Counter(
                "octetpost_transfer_bytes_total",
                "Payload and response bytes moved by successful transfers",
                ["direction"],
                registry=self._registry,
            )
            self._c_rejected = Counter(
                "octetpost_scheduling_rejected_total",
                "Requests rejected by the worker pool",
                registry=self._registry,
            )
            self._h_latency = Histogram(
                "octetpost_transfer_seconds",
                "Wall time of a single transfer, configuration included",
                buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 120.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def record_transfer(
        self,
        *,
        outcome: str,
        duration_seconds: float | None = None,
        bytes_sent: int = 0,
        bytes_received: int = 0,
    ) -> None:
        """Record one finished transfer; ``outcome`` is ``"success"`` or an error category."""
        with self._lock:
            if outcome == "success":
                self._state.transfers_succeeded += 1
                self._state.bytes_sent += bytes_sent
                self._state.bytes_received += bytes_received
            else:
                self._state.transfers_failed += 1
        if not self._enabled:
            return
        if self._c_transfers is not None:
            self._c_transfers.labels(outcome=outcome).inc()
        if outcome == "success" and self._c_bytes is not None:
            self._c_bytes.labels(direction="sent").inc(bytes_sent)
            self._c_bytes.labels(direction="received").inc(bytes_received)
        if duration_seconds is not None and self._h_latency is not None:
            self._h_latency.observe(duration_seconds)

    def record_scheduling_rejected(self) -> None:
        with self._lock:
            self._state.scheduling_rejected += 1
        if self._enabled and self._c_rejected is not None:
            self._c_rejected.inc()

    def snapshot(self) -> TransferStats:
        with self._lock:
            return TransferStats(
                transfers_succeeded=self._state.transfers_succeeded,
                transfers_failed=self._state.transfers_failed,
                bytes_sent=self._state.bytes_sent,
                bytes_received=self._state.bytes_received,
                scheduling_rejected=self._state.scheduling_rejected,
            )
