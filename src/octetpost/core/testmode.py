"""
Process-wide test-mode flag.

When set, transfers may use plain HTTP in addition to HTTPS. The flag is
read from ``OCTETPOST_CORE__TEST_COMMANDS_ENABLED`` on first use and can be
overridden by the host process (or test suites) afterwards.
"""

from __future__ import annotations

import threading

_lock = threading.Lock()
_test_commands_enabled: bool | None = None


def get_test_commands_enabled() -> bool:
    global _test_commands_enabled
    with _lock:
        if _test_commands_enabled is None:
            from .settings import Settings

            _test_commands_enabled = Settings().core.test_commands_enabled
        return _test_commands_enabled


def set_test_commands_enabled(enabled: bool | None) -> None:
    """Override the flag; ``None`` re-reads it from settings on next use."""
    global _test_commands_enabled
    with _lock:
        _test_commands_enabled = None if enabled is None else bool(enabled)
