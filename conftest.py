"""
Root pytest configuration.
"""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest


def get_test_timeout(base: float, max_multiplier: float = 5.0) -> float:
    """Apply CI timeout multiplier to a base timeout value.

    Environment:
        CI_TIMEOUT_MULTIPLIER: Multiplier for CI environments (default: 1.0)
    """
    raw = os.getenv("CI_TIMEOUT_MULTIPLIER", "1.0")
    try:
        multiplier = float(raw) if raw else 1.0
        multiplier = min(multiplier, max_multiplier)
    except ValueError:
        multiplier = 1.0
    return base * multiplier


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "security: Security-critical tests (protocol allow-list, TLS floor)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests driving the client end-to-end through a mock transport",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics_cache() -> Generator[None, None, None]:
    """Reset the cached diagnostics flag so tests don't inherit it."""
    import octetpost.core.diagnostics as diag

    diag._internal_logging_enabled = None
    yield
    diag._internal_logging_enabled = None


@pytest.fixture(autouse=True)
def production_mode() -> Generator[None, None, None]:
    """Start every test with the test-mode flag off (HTTPS only)."""
    from octetpost.core.testmode import set_test_commands_enabled

    set_test_commands_enabled(False)
    yield
    set_test_commands_enabled(None)


@pytest.fixture(autouse=True)
def transport_library() -> Generator[None, None, None]:
    """Initialize the transport library around each test."""
    from octetpost.core import lifecycle

    lifecycle.initialize()
    yield
    lifecycle.shutdown()


@pytest.fixture
def wait_timeout() -> float:
    """Seconds to wait on futures and events, scaled for CI."""
    return get_test_timeout(5.0)
