import pytest

from locsmith.core.exceptions import ExportError
from locsmith.sheets import SheetData, SpreadsheetData, SpreadsheetParser, render_table, sanitize_text
from locsmith.sheets.parser import format_line_number, transcode_cell


HEADER = ["ID", "English", "Spanish"]


def _document(*sheets: SheetData) -> SpreadsheetData:
    return SpreadsheetData(document_id="doc-1", sheets=list(sheets))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Google Translate:\n Hola", "Hola"),
        ("Todo: Translate Properly  Bonjour", "Bonjour"),
        ("first  second", "first\\nsecond"),
        ("line\r\nnext", "line\\nnext"),
        ("Name:\tValue", "Name:\\tValue"),
        ("plain", "plain"),
    ],
)
def test_sanitize_text(raw: str, expected: str) -> None:
    assert sanitize_text(raw) == expected


def test_transcode_and_line_numbers() -> None:
    assert transcode_cell(None) == ""
    assert transcode_cell(12) == "12"
    assert format_line_number(1) == "03"
    assert format_line_number(10) == "12"


def test_parses_entries_with_custom_first_language_column() -> None:
    sheet = SheetData("Main", [HEADER, ["Hello World", "Hello", "Hola"]])
    parser = SpreadsheetParser(["Spanish"], first_language_column=2)

    parsed = parser.parse(_document(sheet))

    assert parsed.ok
    assert parsed.languages == ["Spanish"]
    [entry] = parsed.entries
    assert entry.identity == "Hello_World"
    assert entry.raw_identity == "Hello World"
    assert entry.english == "Hello"
    assert entry.texts == {"Spanish": "Hola"}
    assert entry.line == "03"


def test_reserved_and_hidden_sheets_are_skipped() -> None:
    rows = [HEADER, ["Skipped", "Nope", "No"]]
    parsed = SpreadsheetParser(["Spanish"], first_language_column=2).parse(
        _document(
            SheetData("HUB", rows),
            SheetData("TemplateSheet (do not use)", rows),
            SheetData("Secret", rows, hidden=True),
            SheetData("HeaderOnly", [HEADER]),
        )
    )
    assert parsed.entries == []
    assert parsed.ok


def test_duplicate_across_sheets_is_one_error() -> None:
    parsed = SpreadsheetParser(["Spanish"], first_language_column=2).parse(
        _document(
            SheetData("A", [HEADER, ["Title", "Title", "Titulo"]]),
            SheetData("B", [HEADER, ["Other", "Other", "Otro"], ["Title", "Again", "Otra vez"]]),
        )
    )

    assert parsed.errors == [
        "Duplicated Loc Id [Title]: LocSheet [A] at Line 03 is a duplicate of "
        "LocSheet [B] at Line 04"
    ]
    assert [entry.identity for entry in parsed.entries] == ["Title", "Other"]
    with pytest.raises(ExportError, match="export was not attempted"):
        render_table(parsed)


def test_row_level_problems_are_aggregated() -> None:
    sheet = SheetData(
        "Main",
        [
            HEADER,
            ["", "", ""],
            ["", "Orphan", "Huerfano"],
            ["123", "Bad", "Malo"],
            ["NoEnglish", "", "Hola"],
            ["Good", "Fine", "Bien"],
        ],
    )
    parsed = SpreadsheetParser(["Spanish"], first_language_column=2).parse(_document(sheet))

    assert parsed.warnings == [
        "Empty Row: LocSheet [Main] at Line 03 is empty and was skipped.",
        "Missing English Text: LocSheet [Main] at Line 06 has Loc ID [NoEnglish] but no "
        "English Text. Please add some.",
    ]
    assert parsed.errors == [
        "No Loc Id: LocSheet [Main] at Line 04: No Loc ID has been assigned",
        "No Loc Id: LocSheet [Main] at Line 05: The Loc ID is invalid. Please fix this and try "
        "again.",
    ]
    assert [entry.identity for entry in parsed.entries] == ["Good"]


def test_undeclared_language_columns_are_ignored() -> None:
    sheet = SheetData(
        "Main", [["ID", "English", "Spanish", "German"], ["Key", "Text", "Texto", "Text"]]
    )
    parsed = SpreadsheetParser(["Spanish"], first_language_column=2).parse(_document(sheet))
    assert parsed.entries[0].texts == {"Spanish": "Texto"}


def test_languages_are_discovered_when_none_are_declared() -> None:
    sheet = SheetData(
        "Main", [["ID", "English", "spanish", "French"], ["Key", "Text", "Texto", "Texte"]]
    )
    parsed = SpreadsheetParser(first_language_column=2).parse(_document(sheet))
    assert parsed.languages == ["French", "spanish"]
