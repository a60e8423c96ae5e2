"""Resolution of the locsmith user and cache directories."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import os
from pathlib import Path
from threading import RLock


__all__ = [
    "LocsmithUserDir",
    "configure_user_dir",
    "get_user_dir",
    "set_user_dir",
    "user_dir_context",
]

_USER_DIR: LocsmithUserDir | None = None
_LOCK: RLock = RLock()


def _resolve_roots(
    root: str | Path | None, cache_root: str | Path | None
) -> tuple[Path, Path]:
    explicit = root is not None or cache_root is not None
    if root is not None:
        user_root = Path(root).expanduser()
    elif os.environ.get("LOCSMITH_HOME"):
        user_root = Path(os.environ["LOCSMITH_HOME"]).expanduser()
        explicit = True
    else:
        user_root = Path.home() / ".locsmith"

    if cache_root is not None:
        return user_root, Path(cache_root).expanduser()
    if os.environ.get("LOCSMITH_CACHE_DIR"):
        return user_root, Path(os.environ["LOCSMITH_CACHE_DIR"]).expanduser()
    if os.environ.get("XDG_CACHE_HOME"):
        return user_root, Path(os.environ["XDG_CACHE_HOME"]).expanduser() / "locsmith"
    if explicit:
        return user_root, user_root / "cache"
    return user_root, Path.home() / ".cache" / "locsmith"


@dataclass(slots=True)
class LocsmithUserDir:
    """Resolved user and cache roots."""

    root: Path
    cache_root: Path
    explicit: bool = False

    def data_dir(self, *parts: str | Path, create: bool = True) -> Path:
        """Return a directory under the user root, creating it when requested."""
        target = self.root.joinpath(*parts)
        if create:
            target.mkdir(parents=True, exist_ok=True)
        return target

    def cache_dir(self, *parts: str | Path, create: bool = True) -> Path:
        """Return a directory under the cache root, creating it when requested."""
        target = self.cache_root.joinpath(*parts)
        if create:
            target.mkdir(parents=True, exist_ok=True)
        return target


def configure_user_dir(
    *,
    root: str | Path | None = None,
    cache_root: str | Path | None = None,
) -> LocsmithUserDir:
    """Replace the global user dir singleton with a freshly resolved instance."""
    user_root, resolved_cache = _resolve_roots(root, cache_root)
    explicit = root is not None or cache_root is not None
    return set_user_dir(LocsmithUserDir(root=user_root, cache_root=resolved_cache, explicit=explicit))


def get_user_dir() -> LocsmithUserDir:
    """Return the lazily created user dir singleton.

    Implicit roots are re-resolved on every call so that environment changes
    (``LOCSMITH_HOME``, ``LOCSMITH_CACHE_DIR``) are honoured.
    """
    global _USER_DIR
    with _LOCK:
        if _USER_DIR is None or not _USER_DIR.explicit:
            user_root, cache_root = _resolve_roots(None, None)
            _USER_DIR = LocsmithUserDir(root=user_root, cache_root=cache_root)
        return _USER_DIR


def set_user_dir(user_dir: LocsmithUserDir) -> LocsmithUserDir:
    """Replace the current user dir singleton and return it."""
    global _USER_DIR
    with _LOCK:
        _USER_DIR = user_dir
        return _USER_DIR


@contextmanager
def user_dir_context(
    *,
    root: str | Path | None = None,
    cache_root: str | Path | None = None,
) -> Iterator[LocsmithUserDir]:
    """Temporarily override the global user dir singleton."""
    global _USER_DIR
    with _LOCK:
        previous = _USER_DIR
    current = configure_user_dir(root=root, cache_root=cache_root)
    try:
        yield current
    finally:
        with _LOCK:
            _USER_DIR = previous
