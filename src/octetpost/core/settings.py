"""
Configuration models for octetpost using Pydantic v2 Settings.

Values come from keyword arguments or ``OCTETPOST_``-prefixed environment
variables, with ``__`` separating nested groups, e.g.
``OCTETPOST_TRANSFER__CONNECT_TIMEOUT_SECONDS=5``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

from .buffers import DEFAULT_INITIAL_CAPACITY
from .policy import (
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_TOTAL_TIMEOUT_SECONDS,
    TlsVersionName,
    TransferPolicy,
)


class CoreSettings(BaseModel):
    """Process-level switches."""

    test_commands_enabled: bool = Field(
        default=False,
        description=(
            "Test-only mode: allow plain HTTP in addition to HTTPS. Never enable "
            "in production"
        ),
    )
    internal_logging_enabled: bool = Field(
        default=False,
        description="Emit DEBUG/WARN diagnostics for transfer failures",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Enable Prometheus-compatible transfer metrics",
    )


class TransferSettings(BaseModel):
    """Per-transfer limits turned into a ``TransferPolicy``."""

    connect_timeout_seconds: float = Field(
        default=DEFAULT_CONNECT_TIMEOUT_SECONDS,
        gt=0.0,
        description="Maximum time to establish the connection",
    )
    total_timeout_seconds: float = Field(
        default=DEFAULT_TOTAL_TIMEOUT_SECONDS,
        gt=0.0,
        description="Maximum time for the whole exchange, connect included",
    )
    min_tls_version: TlsVersionName = Field(
        default="TLSv1.2",
        description="Lowest TLS protocol version accepted for HTTPS",
    )
    initial_buffer_capacity: int = Field(
        default=DEFAULT_INITIAL_CAPACITY,
        ge=1,
        description="Initial capacity in bytes of the response buffer",
    )
    max_response_bytes: int | None = Field(
        default=None,
        ge=1,
        description="Optional ceiling on response body size; None is unbounded",
    )

    @model_validator(mode="after")
    def _check_timeouts(self) -> TransferSettings:
        if self.total_timeout_seconds < self.connect_timeout_seconds:
            raise ValueError(
                "total_timeout_seconds must be >= connect_timeout_seconds"
            )
        return self


class ClientSettings(BaseModel):
    """Background worker pool sizing."""

    max_workers: int = Field(
        default=4,
        ge=1,
        description="Worker threads running blocking transfers",
    )
    max_pending: int | None = Field(
        default=None,
        ge=1,
        description=(
            "Maximum in-flight requests before post_async rejects with a "
            "SchedulingError; None is unbounded"
        ),
    )


class Settings(BaseSettings):
    """Top-level configuration model."""

    core: CoreSettings = Field(default_factory=CoreSettings)
    transfer: TransferSettings = Field(default_factory=TransferSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)

    model_config = SettingsConfigDict(
        env_prefix="OCTETPOST_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    def to_policy(self) -> TransferPolicy:
        return TransferPolicy(
            connect_timeout_seconds=self.transfer.connect_timeout_seconds,
            total_timeout_seconds=self.transfer.total_timeout_seconds,
            min_tls_version=self.transfer.min_tls_version,
        )


# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (TransferSettings._check_timeouts,)
