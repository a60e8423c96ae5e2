"""Canonical table export and re-import."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from locsmith.core.exceptions import ExportError
from locsmith.core.tables import (
    COLUMN_SEPARATOR,
    ENGLISH_COLUMN,
    ID_COLUMN,
    ROW_SEPARATOR,
    split_table_lines,
)

from .parser import ParsedDocument


@dataclass(frozen=True, slots=True)
class ExportedEntry:
    """A row read back from a canonical table file, cells kept escaped."""

    identity: str
    english: str
    texts: tuple[tuple[str, str], ...]

    def text_for(self, language: str) -> str:
        return dict(self.texts).get(language, "")


def render_table(parsed: ParsedDocument) -> str:
    """Render ``parsed`` as canonical table text.

    Raises :class:`ExportError` when the document carries parse errors or a
    row lacks text for one of the declared languages.
    """
    if not parsed.ok:
        raise ExportError(
            f"Document [{parsed.document_id}] has {len(parsed.errors)} parse error(s); "
            "export was not attempted."
        )

    languages = list(parsed.languages)
    lines = [COLUMN_SEPARATOR.join([ID_COLUMN, ENGLISH_COLUMN, *languages])]
    for entry in sorted(parsed.entries, key=lambda item: item.identity):
        cells = [entry.identity, entry.english]
        for language in languages:
            text = entry.texts.get(language, "")
            if not text:
                raise ExportError(
                    f"Loc Sheet [{entry.sheet}] is missing text for Language [{language}] "
                    f"on {entry.line}"
                )
            cells.append(text)
        lines.append(COLUMN_SEPARATOR.join(cells))
    return ROW_SEPARATOR.join(lines) + ROW_SEPARATOR


def export_table(parsed: ParsedDocument, path: Path) -> Path:
    """Write the canonical table for ``parsed`` to ``path``.

    Nothing is written when rendering fails.
    """
    content = render_table(parsed)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="")
    return path


def read_exported_entries(path: Path) -> list[ExportedEntry]:
    """Read a canonical table back as entries, keeping escapes untouched."""
    lines = split_table_lines(path.read_text(encoding="utf-8"))
    if not lines:
        return []
    languages = lines[0][2:]
    entries: list[ExportedEntry] = []
    for cells in lines[1:]:
        texts = tuple(
            (language, cells[index + 2] if index + 2 < len(cells) else "")
            for index, language in enumerate(languages)
        )
        entries.append(
            ExportedEntry(
                identity=cells[0],
                english=cells[1] if len(cells) > 1 else "",
                texts=texts,
            )
        )
    return entries


__all__ = ["ExportedEntry", "export_table", "read_exported_entries", "render_table"]
