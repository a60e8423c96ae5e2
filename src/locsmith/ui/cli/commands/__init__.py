"""CLI command implementations exposed via `locsmith.ui.cli`."""

from __future__ import annotations

from .audit import audit
from .generate import generate
from .hash import hash_command
from .resolve import resolve_command


__all__ = ["audit", "generate", "hash_command", "resolve_command"]
