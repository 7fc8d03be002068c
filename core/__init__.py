"""
Escrow core package.

Shared substrate for the escrow program and its in-memory host: the error
taxonomy, structured logging and byte-level helpers. Higher-level packages
(`host`, `escrow`) build on top.

Only re-exports the version here to keep import-time side effects near zero.
"""

from __future__ import annotations

try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("escrow-program")
except Exception:  # pragma: no cover - running from a source checkout
    __version__ = "0.0.0+local"


def get_version() -> str:
    """Return the semantic version string for this package."""
    return __version__


__all__ = ["__version__", "get_version"]
