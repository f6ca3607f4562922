"""
Internal diagnostics for non-fatal conditions (transfer failures, lifecycle).

Diagnostics are structured JSON lines written to stderr. They are disabled
unless ``core.internal_logging_enabled`` is set, and emitting one never raises.
The enabled flag is resolved from settings on first use and cached; tests
reset it through ``_internal_logging_enabled``.
"""

from __future__ import annotations

import sys
import time
from typing import Any

import orjson

_internal_logging_enabled: bool | None = None


def _is_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        try:
            from .settings import Settings

            _internal_logging_enabled = bool(Settings().core.internal_logging_enabled)
        except Exception:
            _internal_logging_enabled = False
    return _internal_logging_enabled


def configure(*, enabled: bool) -> None:
    """Force diagnostics on or off, bypassing settings."""
    global _internal_logging_enabled
    _internal_logging_enabled = bool(enabled)


def _emit(level: str, component: str, message: str, fields: dict[str, Any]) -> None:
    if not _is_enabled():
        return
    payload = {
        "timestamp": time.time(),
        "level": level,
        "component": component,
        "message": message,
        **fields,
    }
    try:
        line = orjson.dumps(payload, default=str)
        sys.stderr.write(line.decode("utf-8") + "\n")
    except Exception:
        # Diagnostics must never break a transfer
        pass


def warn(component: str, message: str, **fields: Any) -> None:
    _emit("WARN", component, message, fields)


def debug(component: str, message: str, **fields: Any) -> None:
    _emit("DEBUG", component, message, fields)
