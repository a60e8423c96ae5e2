import logging

import pytest

from locsmith.core.exceptions import AtlasGenerationError
from locsmith.fonts import search_atlas


LETTERS = [ord(char) for char in "ABCDEFGHIJ"]


def _grid(font_size: int, width: int, height: int) -> int:
    return (width // font_size) * (height // font_size)


def test_grows_font_until_glyphs_no_longer_fit(fake_engine, make_font) -> None:
    fake_engine.capacity = _grid

    result = search_atlas(fake_engine, make_font("body"), LETTERS, sizes=(256, 512))

    assert result.complete
    assert (result.atlas_width, result.atlas_height, result.font_size) == (256, 256, 64)
    assert result.attempts == 65 - 14 + 1


def test_font_size_is_capped(fake_engine, make_font) -> None:
    fake_engine.capacity = _grid

    result = search_atlas(fake_engine, make_font("body"), LETTERS, sizes=(256,), max_font_size=30)

    assert result.complete
    assert result.font_size == 30


def test_wider_atlas_is_tried_before_taller(fake_engine, make_font) -> None:
    fake_engine.capacity = lambda size, width, height: 10 if width * height >= 512 * 256 and size <= 20 else 0

    result = search_atlas(fake_engine, make_font("body"), LETTERS, sizes=(256, 512))

    assert (result.atlas_width, result.atlas_height, result.font_size) == (512, 256, 20)
    assert fake_engine.packs[0] == ("body", 14, 256, 256)


def test_best_partial_attempt_when_nothing_fits(fake_engine, make_font, caplog) -> None:
    fake_engine.capacity = lambda size, width, height: (width * height) // 65536 + 3

    with caplog.at_level(logging.WARNING, logger="locsmith.fonts.search"):
        result = search_atlas(fake_engine, make_font("body"), LETTERS, sizes=(256, 512))

    assert not result.complete
    assert (result.atlas_width, result.atlas_height, result.font_size) == (512, 512, 14)
    assert len(result.missing) == 3
    assert "cannot fit every character" in caplog.text


def test_characters_outside_the_font_are_reported(fake_engine, make_font) -> None:
    fake_engine.coverage["body"] = frozenset(LETTERS[:-1])

    result = search_atlas(fake_engine, make_font("body"), LETTERS, sizes=(256,), max_font_size=20)

    assert result.missing == (ord("J"),)
    assert not result.complete
    assert ord("J") not in {glyph.codepoint for glyph in result.attempt.glyphs}


def test_font_without_any_needed_glyph(fake_engine, make_font) -> None:
    fake_engine.coverage["empty"] = frozenset()

    result = search_atlas(fake_engine, make_font("empty"), LETTERS, min_font_size=18)

    assert result.attempts == 1
    assert result.font_size == 18
    assert result.missing == tuple(LETTERS)


def test_engine_failures_become_generation_errors(fake_engine, make_font) -> None:
    fake_engine.broken.add("broken")

    with pytest.raises(AtlasGenerationError, match="could not be loaded"):
        search_atlas(fake_engine, make_font("broken"), LETTERS)
