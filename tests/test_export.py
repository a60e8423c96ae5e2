from pathlib import Path

import pytest

from locsmith.core.exceptions import ExportError
from locsmith.core.tables import LocTable
from locsmith.sheets import (
    SheetData,
    SpreadsheetData,
    SpreadsheetParser,
    export_table,
    read_exported_entries,
    render_table,
)


def _parse(rows: list[list[str]]):
    header = ["ID", "English", "French", "Spanish"]
    document = SpreadsheetData("doc", [SheetData("Main", [header, *rows])])
    return SpreadsheetParser(["Spanish", "French"], first_language_column=2).parse(document)


def test_render_sorts_rows_and_languages() -> None:
    parsed = _parse(
        [
            ["Zeta", "Last", "Dernier", "Ultimo"],
            ["Alpha", "First", "Premier", "Primero"],
        ]
    )
    assert render_table(parsed) == (
        "ID\tENGLISH\tFrench\tSpanish\n"
        "Alpha\tFirst\tPremier\tPrimero\n"
        "Zeta\tLast\tDernier\tUltimo\n"
    )


def test_multiline_text_survives_export_and_reload(tmp_path: Path) -> None:
    parsed = _parse([["Body", "Line one\nLine two", "Un  Deux", "Uno\r\nDos"]])
    path = export_table(parsed, tmp_path / "tables" / "Master.tsv")

    [entry] = read_exported_entries(path)
    assert entry.english == "Line one\\nLine two"
    assert entry.text_for("French") == "Un\\nDeux"

    table = LocTable.from_text("Master", path.read_text(encoding="utf-8"), ["Spanish"])
    assert table.cell_text(1, "English") == "Line one\nLine two"
    assert table.cell_text(1, "Spanish") == "Uno\nDos"


def test_missing_language_text_fails_without_writing(tmp_path: Path) -> None:
    parsed = _parse([["Body", "Text", "Texte", ""]])
    target = tmp_path / "Master.tsv"

    with pytest.raises(ExportError, match=r"Loc Sheet \[Main\] is missing text for Language \[Spanish\] on 03"):
        export_table(parsed, target)
    assert not target.exists()


def test_tabs_inside_cells_keep_the_column_layout(tmp_path: Path) -> None:
    parsed = _parse([["Key", "A\tB", "Un", "Uno"]])
    path = export_table(parsed, tmp_path / "Master.tsv")

    assert path.read_text(encoding="utf-8").splitlines()[1] == "Key\tA\\tB\tUn\tUno"
    [entry] = read_exported_entries(path)
    assert entry.english == "A\\tB"
    assert entry.text_for("French") == "Un"
    assert entry.text_for("Spanish") == "Uno"

    table = LocTable.from_text("Master", path.read_text(encoding="utf-8"), ["Spanish"])
    assert table.cell_text(1, "English") == "A\tB"
    assert table.cell_text(1, "Spanish") == "Uno"
