from pathlib import Path

import pytest

from locsmith.core.diagnostics import CollectingEmitter
from locsmith.core.hashing import EMPTY_HASH, hash_identity
from locsmith.core.resolution import (
    FileTableSource,
    GeneratedIndex,
    LocStatus,
    TableCache,
    TextTableSource,
    resolve,
    resolve_identity,
)


MASTER = "ID\tENGLISH\tSpanish\nHello\tHello\tHola\nBye\tBye\t\n"
EXTRA = "ID\tENGLISH\tSpanish\nHello\tHi from extra\tHola extra\nOnly\tOnly here\tSolo aqui\n"


def _cache(*sources: TextTableSource, generated: GeneratedIndex | None = None) -> TableCache:
    return TableCache(sources, languages=["English", "Spanish"], generated=generated)


def test_empty_hash_resolves_to_empty_text() -> None:
    result = resolve(EMPTY_HASH, "Spanish", cache=_cache())
    assert result.ok
    assert result.text == ""
    assert result.row == 0


def test_resolves_english_and_foreign_text() -> None:
    cache = _cache(TextTableSource("Master", MASTER))

    assert resolve_identity("Hello", "Spanish", cache=cache).text == "Hola"
    english = resolve(hash_identity("Hello"), "English", cache=cache)
    assert english.text == "Hello"
    assert (english.table, english.row) == ("Master", 1)


def test_unknown_hash_reports_table_files() -> None:
    cache = _cache(TextTableSource("Master", MASTER, label="tables/Master.tsv"))
    result = resolve(hash_identity("Missing"), "Spanish", cache=cache)

    assert result.status is LocStatus.BAD_LOC_HASH_ID
    assert "tables/Master.tsv" in result.text
    assert str(hash_identity("Missing")) in result.text


def test_missing_language_text_is_reported() -> None:
    cache = _cache(TextTableSource("Master", MASTER))
    result = resolve_identity("Bye", "Spanish", cache=cache)

    assert result.status is LocStatus.NO_TEXT_FOUND_FOR_LANGUAGE
    assert "Row 2" in result.text
    assert "[Spanish]" in result.text


def test_stale_generated_row_is_a_bad_line() -> None:
    stale = GeneratedIndex(
        hash_to_row={"Master": {EMPTY_HASH: 0, hash_identity("Gone"): 9}},
        table_order=("Master",),
    )
    cache = _cache(TextTableSource("Master", MASTER), generated=stale)
    result = resolve_identity("Gone", "Spanish", cache=cache)

    assert result.status is LocStatus.BAD_LOC_TABLE_LINE
    assert "Row 9" in result.text


def test_live_index_wins_over_generated_rows() -> None:
    stale = GeneratedIndex(
        hash_to_row={"Master": {hash_identity("Hello"): 2}},
        table_order=("Master",),
    )
    cache = _cache(TextTableSource("Master", MASTER), generated=stale)
    assert resolve_identity("Hello", "Spanish", cache=cache).text == "Hola"


def test_preferred_table_is_searched_first() -> None:
    cache = _cache(TextTableSource("Master", MASTER), TextTableSource("Extra", EXTRA))

    assert resolve_identity("Hello", "Spanish", cache=cache).text == "Hola"
    assert resolve_identity("Only", "Spanish", cache=cache).table == "Extra"

    cache.preferred_table = "Extra"
    assert resolve_identity("Hello", "Spanish", cache=cache).text == "Hola extra"


def test_language_missing_from_header_uses_english() -> None:
    cache = TableCache([TextTableSource("Master", MASTER)], languages=["Spanish", "German"])
    assert resolve_identity("Hello", "German", cache=cache).text == "Hello"


def test_reload_swaps_in_new_tables(tmp_path: Path) -> None:
    path = tmp_path / "Master.tsv"
    path.write_text(MASTER, encoding="utf-8")
    cache = TableCache([FileTableSource("Master", path)], languages=["Spanish"])

    before = cache.snapshot
    assert resolve_identity("Hello", "Spanish", cache=cache).text == "Hola"

    path.write_text("ID\tENGLISH\tSpanish\nHello\tHello\tBuenas\n", encoding="utf-8")
    assert resolve_identity("Hello", "Spanish", cache=cache).text == "Hola"

    cache.invalidate()
    assert not cache.is_loaded
    assert resolve_identity("Hello", "Spanish", cache=cache).text == "Buenas"
    assert cache.snapshot is not before


def test_unreadable_table_is_reported_and_skipped(tmp_path: Path) -> None:
    emitter = CollectingEmitter()
    cache = TableCache([FileTableSource("Master", tmp_path / "absent.tsv")], emitter=emitter)
    result = resolve_identity("Hello", "English", cache=cache)

    assert result.status is LocStatus.BAD_LOC_HASH_ID
    assert emitter.errors and emitter.errors[0].startswith("Unable to load table [Master]")


@pytest.mark.parametrize("language", ["English", "ENGLISH", "english"])
def test_english_aliases(language: str) -> None:
    cache = _cache(TextTableSource("Master", MASTER))
    assert resolve_identity("Hello", language, cache=cache).text == "Hello"
