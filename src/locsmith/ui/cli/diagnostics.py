"""Diagnostic emitter printing table and atlas diagnostics through the CLI."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from locsmith.core.diagnostics import format_event_message

from .state import CLIState, emit_error, emit_warning, get_cli_state, render_message


class CliEmitter:
    """Print diagnostics with the rich CLI helpers.

    Every event is recorded on the CLI state; its one-line summary is only
    printed from ``event_verbosity`` upwards.
    """

    def __init__(self, state: CLIState | None = None, *, event_verbosity: int = 1) -> None:
        self.state = state or get_cli_state()
        self.event_verbosity = event_verbosity

    @property
    def debug_enabled(self) -> bool:
        return self.state.show_tracebacks

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        emit_warning(message, exception=exc, state=self.state)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        emit_error(message, exception=exc, state=self.state)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        data = dict(payload)
        self.state.record_event(name, data)
        if self.state.verbosity < self.event_verbosity:
            return
        summary = format_event_message(name, data)
        if summary is not None:
            render_message("info", summary, state=self.state)


__all__ = ["CliEmitter"]
