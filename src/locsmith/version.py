"""Version lookup for the installed distribution."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version


DISTRIBUTION = "locsmith"
UNKNOWN_VERSION = "0.0.0"


def get_version() -> str:
    """Installed version of locsmith, or ``0.0.0`` from a bare source tree."""
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return UNKNOWN_VERSION


__all__ = ["get_version"]
