"""In-memory model of canonical localisation tables."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from locsmith.core.diagnostics import DiagnosticEmitter, NullEmitter
from locsmith.core.exceptions import TableFormatError


ENGLISH = "English"
ID_COLUMN = "ID"
ENGLISH_COLUMN = "ENGLISH"
COLUMN_SEPARATOR = "\t"
ROW_SEPARATOR = "\n"
ESCAPED_NEWLINE = "\\n"
ESCAPED_TAB = "\\t"


def escape_cell(text: str) -> str:
    """Return ``text`` in its single-line canonical form."""
    return (
        text.replace("\r", "")
        .replace("\n", ESCAPED_NEWLINE)
        .replace(COLUMN_SEPARATOR, ESCAPED_TAB)
    )


def unescape_cell(text: str) -> str:
    """Restore real newlines and tabs from the canonical escaped form."""
    return text.replace(ESCAPED_NEWLINE, "\n").replace(ESCAPED_TAB, COLUMN_SEPARATOR)


def split_table_lines(text: str) -> list[list[str]]:
    """Split canonical table text into raw cells, skipping blank lines."""
    lines: list[list[str]] = []
    for line in text.replace("\r\n", "\n").split(ROW_SEPARATOR):
        if not line.strip():
            continue
        lines.append(line.split(COLUMN_SEPARATOR))
    return lines


def _is_english(language: str) -> bool:
    return language.casefold() in (ENGLISH.casefold(), ENGLISH_COLUMN.casefold())


def resolve_language_columns(
    table_name: str,
    header: Sequence[str],
    languages: Iterable[str],
    emitter: DiagnosticEmitter | None = None,
) -> dict[str, int]:
    """Map declared languages to header columns.

    English always maps to column ``0``. Other languages are matched by name,
    case-insensitively; a language absent from the header falls back to
    column ``0`` and produces exactly one warning.
    """
    emitter = emitter or NullEmitter()
    lookup = {name.strip().casefold(): index for index, name in enumerate(header)}
    columns: dict[str, int] = {}
    for language in languages:
        if language in columns:
            continue
        if _is_english(language):
            columns[language] = 0
            continue
        index = lookup.get(language.casefold())
        if index is None:
            emitter.warning(
                f'Could not find "{language}" in the header of table [{table_name}]. '
                "Defaulting to English text."
            )
            index = 0
        columns[language] = index
    return columns


@dataclass(slots=True)
class LocTable:
    """One canonical table: a header row followed by 1-based data rows."""

    name: str
    header: tuple[str, ...]
    rows: list[tuple[str, ...]]
    identifiers: list[str]
    language_columns: dict[str, int] = field(default_factory=dict)
    location: str | None = None

    @classmethod
    def from_text(
        cls,
        name: str,
        text: str,
        languages: Iterable[str] = (),
        *,
        emitter: DiagnosticEmitter | None = None,
        location: str | None = None,
    ) -> LocTable:
        """Build a table from canonical tab-separated text."""
        lines = split_table_lines(text)
        if not lines:
            raise TableFormatError(f"Table [{name}] is empty; a header row is required.")

        header_cells = lines[0]
        header = tuple(cell.strip() for cell in header_cells[1:])
        rows: list[tuple[str, ...]] = [header]
        identifiers = [header_cells[0].strip()]
        width = len(header)
        for line_index, cells in enumerate(lines[1:], start=1):
            values = tuple(unescape_cell(cell) for cell in cells[1:])
            if len(values) < width:
                raise TableFormatError(
                    f"Incorrect number of columns in table [{name}] at row {line_index}: "
                    f"expected {width}, found {len(values)}."
                )
            identifiers.append(cells[0].strip())
            rows.append(values)

        columns = resolve_language_columns(name, header, languages, emitter)
        return cls(
            name=name,
            header=header,
            rows=rows,
            identifiers=identifiers,
            language_columns=columns,
            location=location,
        )

    def column_for(self, language: str) -> int | None:
        """Return the column index for ``language`` or ``None`` when unknown."""
        if language in self.language_columns:
            return self.language_columns[language]
        folded = language.casefold()
        for declared, index in self.language_columns.items():
            if declared.casefold() == folded:
                return index
        if _is_english(language):
            return 0
        for index, name in enumerate(self.header):
            if name.casefold() == folded:
                return index
        return None

    def row_count(self) -> int:
        return len(self.rows)

    def cell_text(self, row: int, language: str) -> str:
        """Return the text stored for ``language`` in ``row`` or ``""``."""
        if row < 0 or row >= len(self.rows):
            return ""
        column = self.column_for(language)
        if column is None:
            return ""
        cells = self.rows[row]
        if column >= len(cells):
            return ""
        return cells[column]


def row_count(table: LocTable) -> int:
    """Number of rows in ``table``, header included."""
    return table.row_count()


def cell_text(table: LocTable, row: int, language: str) -> str:
    """Text of ``row`` for ``language``; empty when the column is absent."""
    return table.cell_text(row, language)


__all__ = [
    "COLUMN_SEPARATOR",
    "ENGLISH",
    "ENGLISH_COLUMN",
    "ESCAPED_NEWLINE",
    "ESCAPED_TAB",
    "ID_COLUMN",
    "ROW_SEPARATOR",
    "LocTable",
    "cell_text",
    "escape_cell",
    "resolve_language_columns",
    "row_count",
    "split_table_lines",
    "unescape_cell",
]
