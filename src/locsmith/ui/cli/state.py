"""Per-invocation CLI state: verbosity, traceback policy and rich consoles."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
import sys
from typing import Any, TextIO

import click
from rich.console import Console
from rich.text import Text
import typer

from locsmith.core.exceptions import exception_messages


__all__ = [
    "CLIState",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "render_message",
    "set_cli_state",
]

_LEVEL_STYLES = {"warning": "yellow", "error": "red"}


def _bound_console(console: Console | None, stream: TextIO, **options: Any) -> Console:
    """Reuse ``console`` while it still writes to ``stream``."""
    if console is not None and getattr(console, "file", None) is stream:
        return console
    return Console(file=stream, **options)


@dataclass(slots=True)
class CLIState:
    """Diagnostics settings shared by every command of one invocation.

    ``tally`` counts the warnings and errors rendered so far; the generate
    command reports it under its summary table.
    """

    verbosity: int = 0
    show_tracebacks: bool = False
    tally: Counter[str] = field(default_factory=Counter, init=False)
    events: dict[str, list[dict[str, Any]]] = field(default_factory=dict, init=False)
    _console: Console | None = field(default=None, init=False, repr=False)
    _err_console: Console | None = field(default=None, init=False, repr=False)

    @property
    def console(self) -> Console:
        """Console bound to the current ``sys.stdout``."""
        self._console = _bound_console(self._console, sys.stdout)
        return self._console

    @property
    def err_console(self) -> Console:
        """Console bound to the current ``sys.stderr``."""
        self._err_console = _bound_console(self._err_console, sys.stderr, highlight=False)
        return self._err_console

    def record_event(self, name: str, payload: Mapping[str, Any] | None = None) -> None:
        self.events.setdefault(name, []).append(dict(payload or {}))

    def consume_events(self, name: str) -> list[dict[str, Any]]:
        """Return and forget the events recorded under ``name``."""
        return self.events.pop(name, [])


_STATE_VAR: ContextVar[CLIState | None] = ContextVar("locsmith_cli_state", default=None)


def _attached_state(ctx: click.Context) -> CLIState | None:
    node: click.Context | None = ctx
    while node is not None:
        if isinstance(node.obj, CLIState):
            return node.obj
        node = node.parent
    return None


def get_cli_state(
    ctx: typer.Context | click.Context | None = None,
    *,
    create: bool = True,
) -> CLIState:
    """Return the state of the running command, or the process-wide fallback.

    Raises ``RuntimeError`` when no state exists yet and ``create`` is false.
    """
    ctx = ctx or click.get_current_context(silent=True)
    if ctx is not None:
        state = _attached_state(ctx)
        if state is None and create:
            state = ctx.obj = CLIState()
        if state is not None:
            _STATE_VAR.set(state)
            return state

    fallback = _STATE_VAR.get()
    if fallback is None:
        if not create:
            raise RuntimeError("CLI state is not initialised for this context.")
        fallback = CLIState()
        _STATE_VAR.set(fallback)
    return fallback


def set_cli_state(
    *,
    ctx: typer.Context | None = None,
    verbosity: int | None = None,
    debug: bool | None = None,
) -> CLIState:
    """Raise the verbosity and enable tracebacks; never lowers either."""
    state = get_cli_state(ctx)
    if verbosity is not None:
        state.verbosity = max(state.verbosity, verbosity)
    if debug:
        state.show_tracebacks = True
    return state


def _exception_details(message: str, exception: BaseException, verbosity: int) -> list[str]:
    chain = exception_messages(exception)
    lines: list[str] = []
    if chain and chain[0] not in message:
        lines.append(chain[0])
    lines.append(f"type: {type(exception).__name__}")
    if verbosity >= 2 and len(chain) > 1:
        lines.append("caused by:")
        lines.extend(f"  {cause}" for cause in chain[1:])
    return lines


def render_message(
    level: str,
    message: str,
    *,
    exception: BaseException | None = None,
    state: CLIState | None = None,
) -> None:
    """Print ``message``: info lines on stdout, warnings and errors on stderr."""
    state = state or get_cli_state()
    if level == "info":
        state.console.log(message)
        return

    state.tally[level] += 1
    style = _LEVEL_STYLES.get(level, "yellow")
    text = Text.assemble((f"{level}: ", f"bold {style}"), (message, style))
    if exception is not None and state.verbosity >= 1:
        for line in _exception_details(message, exception, state.verbosity):
            text.append(f"\n{line}", style=style)
    state.err_console.print(text)


def emit_warning(
    message: str, *, exception: BaseException | None = None, state: CLIState | None = None
) -> None:
    render_message("warning", message, exception=exception, state=state)


def emit_error(
    message: str, *, exception: BaseException | None = None, state: CLIState | None = None
) -> None:
    render_message("error", message, exception=exception, state=state)


def debug_enabled() -> bool:
    """Whether ``--debug`` asked for full tracebacks."""
    try:
        return get_cli_state(create=False).show_tracebacks
    except RuntimeError:
        return False
