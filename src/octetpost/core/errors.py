"""
Typed error hierarchy for octetpost.

Every per-request failure is expressed as an ``OctetpostError`` subclass and
delivered through the request's future. Only ``InitializationError`` is
expected to escape to the host process, from ``initialize()``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    INITIALIZATION = "initialization"
    CONFIGURATION = "configuration"
    TRANSFER = "transfer"
    RESPONSE = "response"
    BUFFER = "buffer"
    SCHEDULING = "scheduling"
    UNEXPECTED = "unexpected"


class OctetpostError(Exception):
    """Base class for all octetpost errors.

    Args:
        message: Human readable description.
        cause: Underlying exception, if any.
        **context: Structured detail (url, status_code, ...) kept on
            ``self.context`` for diagnostics.
    """

    category: ErrorCategory = ErrorCategory.UNEXPECTED

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context: dict[str, Any] = dict(context)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error.type": type(self).__name__,
            "error.category": self.category.value,
            "error.message": self.message,
        }
        if self.cause is not None:
            data["error.cause"] = f"{type(self.cause).__name__}: {self.cause}"
        data.update(self.context)
        return data


class InitializationError(OctetpostError):
    """Transport library could not be initialized; fatal at startup."""

    category = ErrorCategory.INITIALIZATION


class ConfigurationError(OctetpostError):
    """A transport handle could not be created or configured."""

    category = ErrorCategory.CONFIGURATION


class TransferError(OctetpostError):
    """Transport-level failure while executing the exchange."""

    category = ErrorCategory.TRANSFER


class ResponseStatusError(OctetpostError):
    """The exchange completed with a status other than 200."""

    category = ErrorCategory.RESPONSE

    def __init__(
        self,
        status_code: int,
        *,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        super().__init__(
            f"Unexpected http status code from server: {status_code}",
            cause=cause,
            status_code=status_code,
            **context,
        )
        self.status_code = status_code


class BufferAllocationError(OctetpostError):
    """The inbound buffer could not grow to accept more data."""

    category = ErrorCategory.BUFFER


class SchedulingError(OctetpostError):
    """The worker pool rejected the unit of work."""

    category = ErrorCategory.SCHEDULING


class UnexpectedError(OctetpostError):
    """Any other failure raised while running a transfer."""

    category = ErrorCategory.UNEXPECTED

    @classmethod
    def from_exception(cls, exc: BaseException, **context: Any) -> UnexpectedError:
        return cls(
            f"Unexpected failure during transfer: {type(exc).__name__}: {exc}",
            cause=exc,
            **context,
        )


__all__ = [
    "ErrorCategory",
    "OctetpostError",
    "InitializationError",
    "ConfigurationError",
    "TransferError",
    "ResponseStatusError",
    "BufferAllocationError",
    "SchedulingError",
    "UnexpectedError",
]
