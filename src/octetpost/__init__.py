"""
Public entrypoints for octetpost.

Ships opaque binary payloads with a single HTTP POST and returns the
response body through a future:

    import octetpost

    octetpost.initialize()
    with octetpost.AsyncPostClient() as client:
        future = client.post_async("https://api.example.com/ingest", payload)
        body = future.result()
    octetpost.shutdown()
"""

from __future__ import annotations

from ._version import __version__
from .client import AsyncPostClient
from .core.buffers import ByteCursor, GrowableBuffer
from .core.engine import Transfer, TransferEngine, TransferResult, TransferState
from .core.errors import (
    BufferAllocationError,
    ConfigurationError,
    InitializationError,
    OctetpostError,
    ResponseStatusError,
    SchedulingError,
    TransferError,
    UnexpectedError,
)
from .core.lifecycle import initialize, is_initialized, shutdown
from .core.policy import TransferPolicy
from .core.settings import Settings
from .core.testmode import get_test_commands_enabled, set_test_commands_enabled
from .core.transport import HttpxTransport

__all__ = [
    "AsyncPostClient",
    "ByteCursor",
    "GrowableBuffer",
    "Transfer",
    "TransferEngine",
    "TransferResult",
    "TransferState",
    "TransferPolicy",
    "Settings",
    "HttpxTransport",
    "initialize",
    "shutdown",
    "is_initialized",
    "get_test_commands_enabled",
    "set_test_commands_enabled",
    "OctetpostError",
    "InitializationError",
    "ConfigurationError",
    "TransferError",
    "ResponseStatusError",
    "BufferAllocationError",
    "SchedulingError",
    "UnexpectedError",
    "__version__",
    "VERSION",
]

VERSION = __version__
