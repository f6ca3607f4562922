"""
Immutable transfer policy shared read-only by every concurrent transfer.
"""

from __future__ import annotations

import ssl
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Scheme = Literal["http", "https"]
TlsVersionName = Literal["TLSv1.2", "TLSv1.3"]

# Seconds; match the limits used for API-server exchanges
DEFAULT_CONNECT_TIMEOUT_SECONDS = 60.0
DEFAULT_TOTAL_TIMEOUT_SECONDS = 120.0

OCTET_STREAM = "application/octet-stream"

# Empty Expect suppresses 100-continue negotiation
DEFAULT_HEADERS: tuple[tuple[str, str], ...] = (
    ("Content-Type", OCTET_STREAM),
    ("Accept", OCTET_STREAM),
    ("Expect", ""),
)

_TLS_VERSIONS: dict[str, ssl.TLSVersion] = {
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}


class TransferPolicy(BaseModel):
    """Timeouts, protocol allow-list, TLS floor and headers for one POST.

    ``allowed_protocols`` applies in production; ``test_mode_protocols``
    replaces it when the test-mode flag is set for a transfer.
    Redirects are never followed and signal-based timeouts are never used.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    connect_timeout_seconds: float = Field(
        default=DEFAULT_CONNECT_TIMEOUT_SECONDS, gt=0.0
    )
    total_timeout_seconds: float = Field(default=DEFAULT_TOTAL_TIMEOUT_SECONDS, gt=0.0)
    allowed_protocols: frozenset[Scheme] = frozenset({"https"})
    test_mode_protocols: frozenset[Scheme] = frozenset({"https", "http"})
    min_tls_version: TlsVersionName = "TLSv1.2"
    http_version: Literal["1.1"] = "1.1"
    headers: tuple[tuple[str, str], ...] = DEFAULT_HEADERS
    follow_redirects: Literal[False] = False
    no_signal: Literal[True] = True

    @model_validator(mode="after")
    def _check_timeouts(self) -> TransferPolicy:
        if self.total_timeout_seconds < self.connect_timeout_seconds:
            raise ValueError(
                "total_timeout_seconds must be >= connect_timeout_seconds"
            )
        return self

    def protocols_for(self, test_mode: bool) -> frozenset[str]:
        return frozenset(self.test_mode_protocols if test_mode else self.allowed_protocols)

    @property
    def ssl_minimum_version(self) -> ssl.TLSVersion:
        return _TLS_VERSIONS[self.min_tls_version]


# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (TransferPolicy._check_timeouts,)
