"""Turn raw spreadsheet cells into sanitised localisation entries.

The parser walks every data sheet of a document, reads the language names
from the header row, and collects one :class:`ParsedEntry` per identifier.
Problems are aggregated rather than raised: data-integrity problems land in
``errors`` (the run must stop), data-quality problems in ``warnings`` (the row
is skipped, the run continues).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
import logging
import re
from typing import Any

from locsmith.core.hashing import sanitize_loc_id
from locsmith.core.tables import COLUMN_SEPARATOR, ENGLISH, ESCAPED_NEWLINE, ESCAPED_TAB

from .model import SheetData, SpreadsheetData


logger = logging.getLogger(__name__)

RESERVED_SHEET_TITLES = frozenset(
    {
        "HUB",
        "IMPORT",
        "[HIDDEN]Key",
        "[HIDDEN]Export",
        "TemplateSheet (do not use)",
    }
)
DEFAULT_FIRST_LANGUAGE_COLUMN = 5

_TRANSLATION_MARKER = re.compile(
    r"^(?:(?:Todo:\s*Translate\s*Properly)|(?:Google\s*Translate:))\n*\s*"
)
_SOFT_LINE_BREAK = "  "


def transcode_cell(value: Any) -> str:
    """Normalise a raw cell value to text through a UTF-8 byte round trip."""
    if value is None:
        return ""
    return str(value).encode("utf-8", "replace").decode("utf-8", "replace")


def sanitize_text(text: str) -> str:
    """Return the canonical single-line representation of a cell."""
    text = text.replace("\r", "")
    text = _TRANSLATION_MARKER.sub("", text)
    text = text.replace(_SOFT_LINE_BREAK, ESCAPED_NEWLINE)
    text = text.replace("\n", ESCAPED_NEWLINE)
    return text.replace(COLUMN_SEPARATOR, ESCAPED_TAB)


def format_line_number(row_index: int) -> str:
    """Spreadsheet line number as shown to humans (1-based, header offset)."""
    return f"{row_index + 2:02d}"


def should_skip_sheet(sheet: SheetData) -> bool:
    return len(sheet.cells) < 2 or sheet.hidden or sheet.title in RESERVED_SHEET_TITLES


@dataclass(slots=True)
class ParsedEntry:
    """One identifier row with its sanitised texts."""

    identity: str
    raw_identity: str
    english: str
    texts: dict[str, str]
    sheet: str
    line: str


@dataclass(slots=True)
class ParsedDocument:
    """Aggregated outcome of parsing one remote document."""

    document_id: str
    languages: list[str]
    entries: list[ParsedEntry] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class SpreadsheetParser:
    """Parse documents into entries for a declared set of foreign languages."""

    def __init__(
        self,
        languages: Sequence[str] = (),
        *,
        first_language_column: int = DEFAULT_FIRST_LANGUAGE_COLUMN,
    ) -> None:
        self.languages = [lang for lang in languages if lang.casefold() != ENGLISH.casefold()]
        self.first_language_column = first_language_column

    def parse(self, document: SpreadsheetData) -> ParsedDocument:
        parsed = ParsedDocument(document_id=document.document_id, languages=[])
        seen: dict[str, ParsedEntry] = {}
        discovered: list[str] = []

        for sheet in document.sheets:
            if should_skip_sheet(sheet):
                logger.debug("Skipping sheet [%s]", sheet.title)
                continue
            columns = self._language_columns(sheet)
            for language in columns.values():
                if language not in discovered:
                    discovered.append(language)
            self._parse_rows(sheet, columns, parsed, seen)

        declared = self.languages or discovered
        parsed.languages = sorted(declared, key=lambda name: (name.casefold(), name))
        return parsed

    def _language_columns(self, sheet: SheetData) -> dict[int, str]:
        header = sheet.cells[0]
        declared = {lang.casefold(): lang for lang in self.languages}
        columns: dict[int, str] = {}
        for index in range(self.first_language_column, len(header)):
            name = transcode_cell(header[index]).strip()
            if not name:
                continue
            if declared:
                language = declared.get(name.casefold())
                if language is None:
                    logger.debug(
                        "Ignoring undeclared language column [%s] in sheet [%s]", name, sheet.title
                    )
                    continue
            else:
                language = name
            columns[index] = language
        return columns

    def _parse_rows(
        self,
        sheet: SheetData,
        columns: dict[int, str],
        parsed: ParsedDocument,
        seen: dict[str, ParsedEntry],
    ) -> None:
        for row_index in range(1, len(sheet.cells)):
            row = sheet.cells[row_index]
            line = format_line_number(row_index)
            cells = [transcode_cell(value) for value in row]
            location = f"LocSheet [{sheet.title}] at Line {line}"

            if not any(cell.strip() for cell in cells):
                parsed.warnings.append(f"Empty Row: {location} is empty and was skipped.")
                continue

            raw_identity = cells[0].strip() if cells else ""
            if not raw_identity:
                parsed.errors.append(f"No Loc Id: {location}: No Loc ID has been assigned")
                continue

            identity = sanitize_loc_id(raw_identity)
            if not identity:
                parsed.errors.append(
                    f"No Loc Id: {location}: The Loc ID is invalid. Please fix this and try again."
                )
                continue

            english = sanitize_text(cells[1]) if len(cells) > 1 else ""
            if not english.strip():
                parsed.warnings.append(
                    f"Missing English Text: {location} has Loc ID [{raw_identity}] "
                    "but no English Text. Please add some."
                )
                continue

            existing = seen.get(identity)
            if existing is not None:
                parsed.errors.append(
                    f"Duplicated Loc Id [{raw_identity}]: LocSheet [{existing.sheet}] at Line "
                    f"{existing.line} is a duplicate of {location}"
                )
                continue

            texts = {
                language: sanitize_text(cells[index])
                for index, language in columns.items()
                if index < len(cells)
            }
            entry = ParsedEntry(
                identity=identity,
                raw_identity=raw_identity,
                english=english,
                texts=texts,
                sheet=sheet.title,
                line=line,
            )
            seen[identity] = entry
            parsed.entries.append(entry)


def parse_documents(
    documents: Iterable[SpreadsheetData],
    languages: Sequence[str] = (),
    *,
    first_language_column: int = DEFAULT_FIRST_LANGUAGE_COLUMN,
) -> list[ParsedDocument]:
    """Parse several documents with a shared parser configuration."""
    parser = SpreadsheetParser(languages, first_language_column=first_language_column)
    return [parser.parse(document) for document in documents]


__all__ = [
    "DEFAULT_FIRST_LANGUAGE_COLUMN",
    "RESERVED_SHEET_TITLES",
    "ParsedDocument",
    "ParsedEntry",
    "SpreadsheetParser",
    "format_line_number",
    "parse_documents",
    "sanitize_text",
    "should_skip_sheet",
    "transcode_cell",
]
