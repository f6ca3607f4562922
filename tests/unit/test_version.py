from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

import pytest

import octetpost


def test_version_attributes_agree() -> None:
    assert octetpost.VERSION == octetpost.__version__
    assert octetpost.__version__ != "0.0.0+local"


def test_version_matches_installed_distribution() -> None:
    try:
        installed = version("octetpost")
    except PackageNotFoundError:
        pytest.skip("octetpost is not installed")
    assert installed == octetpost.__version__
