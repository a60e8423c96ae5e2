"""Diagnostic emitters used while loading tables and building atlases.

Library code never prints. It reports through a :class:`DiagnosticEmitter`:
``warning``/``error`` for problems a user should see, ``event`` for
structured progress notes (a table was loaded, an atlas was generated) that
front-ends may summarise with :func:`format_event_message`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Discard every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        pass

    def error(self, message: str, exc: BaseException | None = None) -> None:
        pass

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        pass


@dataclass(slots=True)
class LoggingEmitter:
    """Forward diagnostics to a stdlib logger.

    Exception details are attached only when ``debug_enabled`` is set.
    Known events become INFO lines, unknown ones DEBUG records.
    """

    logger_obj: logging.Logger = logger
    debug_enabled: bool = False

    def _log(self, level: int, message: str, exc: BaseException | None) -> None:
        exc_info = exc if exc is not None and self.debug_enabled else None
        self.logger_obj.log(level, message, exc_info=exc_info)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self._log(logging.WARNING, message, exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self._log(logging.ERROR, message, exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        summary = format_event_message(name, payload)
        if summary is None:
            self.logger_obj.debug("diagnostic event %s: %s", name, dict(payload))
        else:
            self.logger_obj.info(summary)


@dataclass(slots=True)
class CollectingEmitter:
    """Keep every diagnostic in memory for later inspection."""

    debug_enabled: bool = False
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


def _table_loaded(data: dict[str, Any]) -> str:
    table = data.get("table") or "<unknown>"
    rows = data.get("rows")
    suffix = f" ({rows} rows)" if rows is not None else ""
    return f"Loaded localisation table '{table}'{suffix}"


def _atlas_generated(data: dict[str, Any]) -> str:
    languages = ", ".join(data.get("languages") or ()) or "<none>"
    return (
        f"Generated atlas for [{languages}]: FontSize={data.get('font_size')}, "
        f"AtlasWidth={data.get('atlas_width')}, AtlasHeight={data.get('atlas_height')}, "
        f"RenderMode={data.get('render_mode')}"
    )


_EVENT_FORMATTERS: dict[str, Callable[[dict[str, Any]], str]] = {
    "table_loaded": _table_loaded,
    "atlas_generated": _atlas_generated,
}


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return the one-line summary of a known event, ``None`` otherwise."""
    formatter = _EVENT_FORMATTERS.get(name)
    if formatter is None:
        return None
    return formatter(dict(payload))


__all__ = [
    "CollectingEmitter",
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "format_event_message",
]
