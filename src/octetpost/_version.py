"""
Package version. Hatchling reads it from here at build time
(``[tool.hatch.version]`` in pyproject.toml).
"""

__version__ = "0.1.0"
