"""Small logging helpers that integrate with the locsmith CLI."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
import typer


if TYPE_CHECKING:
    from locsmith.ui.cli.state import CLIState


def _resolve_state() -> CLIState | None:
    from locsmith.ui.cli.state import get_cli_state

    try:
        return get_cli_state(create=False)
    except RuntimeError:
        return None


@dataclass(slots=True)
class PipelineLogger:
    """Route pipeline messages to the CLI console, or plain echo without one.

    Every message is also kept in ``messages`` so a failed run can report
    them together.
    """

    verbose: bool = False
    messages: list[str] = field(default_factory=list)
    _state: CLIState | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self._state = _resolve_state()

    def _render_message(self, message: str, args: tuple[Any, ...]) -> str:
        if args:
            try:
                message = message % args
            except (TypeError, ValueError):
                message = " ".join([message, *(str(arg) for arg in args)])
        return message

    def info(self, message: str, *args: Any) -> None:
        message = self._render_message(message, args)
        self.messages.append(message)
        if self._state is not None:
            self._state.console.log(message)
            return
        typer.echo(message)

    def warning(self, message: str, *args: Any) -> None:
        message = self._render_message(message, args)
        self.messages.append(message)
        if self._state is not None:
            from locsmith.ui.cli.state import emit_warning

            emit_warning(message)
            return
        typer.secho(message, fg="yellow", err=True)

    def error(self, message: str, *args: Any) -> None:
        message = self._render_message(message, args)
        self.messages.append(message)
        if self._state is not None:
            from locsmith.ui.cli.state import emit_error

            emit_error(message)
            return
        typer.secho(message, fg="red", err=True)

    def debug(self, message: str, *args: Any) -> None:
        """Emit a verbose message when verbose mode is enabled."""
        if not self.verbose:
            return
        self.info(message, *args)

    @contextmanager
    def progress(self, task: str, total: int | None = None) -> Iterator[Callable[[float], None]]:
        """Yield an updater that sets the completed amount of ``task``."""
        console = self._state.console if self._state is not None else Console()
        with Progress(
            SpinnerColumn(),
            TextColumn(f"[bold cyan]{task}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=console,
            transient=not self.verbose,
        ) as progress:
            task_id = progress.add_task(task, total=total or 1.0)

            def _update(completed: float) -> None:
                progress.update(task_id, completed=completed)

            yield _update


__all__ = ["PipelineLogger"]
