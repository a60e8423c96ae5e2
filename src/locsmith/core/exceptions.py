"""Custom exception hierarchy for the localisation data pipeline."""

from __future__ import annotations


class LocsmithError(RuntimeError):
    """Base exception for localisation pipeline failures."""


class ConfigError(LocsmithError):
    """Raised when the project configuration cannot be loaded or validated."""


class DataIntegrityError(LocsmithError):
    """Raised when spreadsheet or table content is unusable as-is."""


class DuplicateIdentifierError(DataIntegrityError):
    """Raised when the same identifier is defined twice."""


class IdentifierCollisionError(DataIntegrityError):
    """Raised when two identifiers hash to the same value, or one hashes to zero."""


class CultureIdError(DataIntegrityError):
    """Raised when a language declares an unrecognised culture identifier."""


class ExportError(DataIntegrityError):
    """Raised when a parsed document cannot be written as a canonical table."""


class TableFormatError(DataIntegrityError):
    """Raised when a canonical table file is malformed."""


class FetchError(LocsmithError):
    """Raised when a remote spreadsheet cannot be retrieved."""


class FontEngineError(LocsmithError):
    """Raised when the font construction engine is unusable."""


class AtlasGenerationError(LocsmithError):
    """Raised when a glyph atlas cannot be built for a font at all."""


class PipelineError(LocsmithError):
    """Raised when a generation run finishes in a failed state."""

    def __init__(self, message: str, messages: list[str] | None = None) -> None:
        super().__init__(message)
        self.messages = list(messages or [])


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "AtlasGenerationError",
    "ConfigError",
    "CultureIdError",
    "DataIntegrityError",
    "DuplicateIdentifierError",
    "ExportError",
    "FetchError",
    "FontEngineError",
    "IdentifierCollisionError",
    "LocsmithError",
    "PipelineError",
    "TableFormatError",
    "exception_hint",
    "exception_messages",
]
