from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
import json
from pathlib import Path

import pytest

from locsmith.core.exceptions import FontEngineError
from locsmith.core.resolution import TableCache, set_table_cache
from locsmith.fonts.types import AtlasAsset, FontHandle, GlyphRect, PackAttempt, RenderMode


BASIC_COVERAGE = frozenset(range(0x20, 0x3000))


class FakeFontEngine:
    """In-memory font engine: each font holds a fixed number of glyphs per page."""

    def __init__(self) -> None:
        self.coverage: dict[str, frozenset[int]] = {}
        self.capacity: Callable[[int, int, int], int] = lambda size, width, height: 10_000
        self.broken: set[str] = set()
        self.initialised = False
        self.destroyed = False
        self.packs: list[tuple[str, int, int, int]] = []

    def initialise(self) -> None:
        self.initialised = True

    def destroy(self) -> None:
        self.destroyed = True

    def covered_codepoints(self, font: FontHandle) -> frozenset[int]:
        if font.name in self.broken:
            raise FontEngineError(f"font {font.name} is broken")
        return self.coverage.get(font.name, BASIC_COVERAGE)

    def open(self, font: FontHandle, font_size: int) -> object:
        return (font.name, font_size)

    def try_pack(
        self,
        font: FontHandle,
        codepoints: Sequence[int],
        *,
        font_size: int,
        atlas_width: int,
        atlas_height: int,
        padding: int,
        render_mode: RenderMode,
    ) -> PackAttempt:
        self.packs.append((font.name, font_size, atlas_width, atlas_height))
        coverage = self.covered_codepoints(font)
        unique = list(dict.fromkeys(codepoints))
        covered = [code for code in unique if code in coverage]
        uncovered = [code for code in unique if code not in coverage]
        room = max(0, self.capacity(font_size, atlas_width, atlas_height))
        placed, overflow = covered[:room], covered[room:]
        return PackAttempt(
            font_size=font_size,
            atlas_width=atlas_width,
            atlas_height=atlas_height,
            fits_on_one_page=not overflow,
            missing=tuple(uncovered + overflow),
            glyphs=[GlyphRect(code, index * 10, 0, 8, 8) for index, code in enumerate(placed)],
        )

    def materialise(
        self,
        font: FontHandle,
        attempt: PackAttempt,
        *,
        render_mode: RenderMode,
        padding: int,
        output_dir: Path,
        name: str,
    ) -> AtlasAsset:
        output_dir.mkdir(parents=True, exist_ok=True)
        metadata_path = output_dir / f"{name}.json"
        metadata_path.write_text(
            json.dumps({"font": font.name, "glyphs": {str(g.codepoint): {} for g in attempt.glyphs}}),
            encoding="utf-8",
        )
        return AtlasAsset(
            font_name=font.name,
            font_size=attempt.font_size,
            atlas_width=attempt.atlas_width,
            atlas_height=attempt.atlas_height,
            render_mode=render_mode,
            padding=padding,
            metadata_path=metadata_path,
            glyphs={glyph.codepoint: glyph for glyph in attempt.glyphs},
        )


class NamedFont:
    def __init__(self, name: str) -> None:
        self.name = name

    def read_bytes(self) -> bytes:
        return b""


@pytest.fixture
def fake_engine() -> FakeFontEngine:
    return FakeFontEngine()


@pytest.fixture
def make_font() -> Callable[[str], NamedFont]:
    return NamedFont


@pytest.fixture(autouse=True)
def isolated_table_cache() -> Iterator[TableCache]:
    cache = TableCache()
    set_table_cache(cache)
    yield cache
    set_table_cache(None)
