"""Font construction engine backed by Pillow and fontTools."""

from __future__ import annotations

from collections.abc import Sequence
from io import BytesIO
import json
import logging
import math
from pathlib import Path
from typing import Protocol, runtime_checkable

from fontTools.ttLib import TTFont
from PIL import Image, ImageDraw, ImageFont, features

from locsmith.core.exceptions import FontEngineError
from locsmith.fonts.types import AtlasAsset, FontHandle, GlyphRect, PackAttempt, RenderMode


logger = logging.getLogger(__name__)

# (left, top, width, height) of a rendered glyph relative to the pen origin.
GlyphMetrics = tuple[int, int, int, int]


@runtime_checkable
class FontEngine(Protocol):
    """Operations the atlas search and fallback chain need from a font backend."""

    def initialise(self) -> None: ...

    def destroy(self) -> None: ...

    def covered_codepoints(self, font: FontHandle) -> frozenset[int]: ...

    def open(self, font: FontHandle, font_size: int) -> object: ...

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
    ) -> PackAttempt: ...

    def materialise(
        self,
        font: FontHandle,
        attempt: PackAttempt,
        *,
        render_mode: RenderMode,
        padding: int,
        output_dir: Path,
        name: str,
    ) -> AtlasAsset: ...


def shelf_pack(
    sizes: Sequence[tuple[int, int, int]],
    atlas_width: int,
    atlas_height: int,
    padding: int,
) -> tuple[list[GlyphRect], list[int]]:
    """Place ``(codepoint, width, height)`` boxes on shelves.

    Boxes are sorted by decreasing height, then codepoint. Empty boxes take
    no room. Returns the placed rectangles and the codepoints that overflowed.
    """
    placed: list[GlyphRect] = []
    overflow: list[int] = []
    x = y = padding
    shelf_height = 0
    for codepoint, width, height in sorted(sizes, key=lambda item: (-item[2], item[0])):
        if width <= 0 or height <= 0:
            placed.append(GlyphRect(codepoint, 0, 0, 0, 0))
            continue
        if x > padding and x + width + padding > atlas_width:
            x = padding
            y += shelf_height + padding
            shelf_height = 0
        if x + width + padding > atlas_width or y + height + padding > atlas_height:
            overflow.append(codepoint)
            continue
        placed.append(GlyphRect(codepoint, x, y, width, height))
        x += width + padding
        shelf_height = max(shelf_height, height)
    return placed, overflow


class PillowFontEngine:
    """Rasterise glyphs with Pillow's FreeType bindings."""

    def __init__(self) -> None:
        self._initialised = False
        self._data: dict[str, bytes] = {}
        self._coverage: dict[str, frozenset[int]] = {}
        self._metrics: dict[tuple[str, int, int], GlyphMetrics] = {}

    @property
    def initialised(self) -> bool:
        return self._initialised

    def initialise(self) -> None:
        if not features.check("freetype2"):
            raise FontEngineError("Pillow was built without FreeType support.")
        self._initialised = True

    def destroy(self) -> None:
        self._data.clear()
        self._coverage.clear()
        self._metrics.clear()
        self._initialised = False

    def _require(self) -> None:
        if not self._initialised:
            raise FontEngineError("The font engine has not been initialised.")

    def _bytes(self, font: FontHandle) -> bytes:
        cached = self._data.get(font.name)
        if cached is None:
            try:
                cached = font.read_bytes()
            except OSError as exc:
                raise FontEngineError(f"Unable to read font '{font.name}': {exc}") from exc
            self._data[font.name] = cached
        return cached

    def covered_codepoints(self, font: FontHandle) -> frozenset[int]:
        self._require()
        cached = self._coverage.get(font.name)
        if cached is not None:
            return cached
        try:
            ttfont = TTFont(BytesIO(self._bytes(font)), fontNumber=0, lazy=True)
            cmap = ttfont.getBestCmap() or {}
        except FontEngineError:
            raise
        except Exception as exc:
            raise FontEngineError(f"Unable to read the cmap of font '{font.name}': {exc}") from exc
        coverage = frozenset(cmap)
        self._coverage[font.name] = coverage
        return coverage

    def open(self, font: FontHandle, font_size: int) -> ImageFont.FreeTypeFont:
        self._require()
        try:
            return ImageFont.truetype(BytesIO(self._bytes(font)), font_size)
        except OSError as exc:
            raise FontEngineError(
                f"Unable to construct font '{font.name}' at size {font_size}: {exc}"
            ) from exc

    def _glyph_metrics(
        self, font: FontHandle, face: ImageFont.FreeTypeFont, font_size: int, codepoint: int
    ) -> GlyphMetrics:
        key = (font.name, font_size, codepoint)
        cached = self._metrics.get(key)
        if cached is None:
            left, top, right, bottom = face.getbbox(chr(codepoint))
            cached = (
                math.floor(left),
                math.floor(top),
                max(0, math.ceil(right - left)),
                max(0, math.ceil(bottom - top)),
            )
            self._metrics[key] = cached
        return cached

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
        self._require()
        coverage = self.covered_codepoints(font)
        face = self.open(font, font_size)
        uncovered = [code for code in codepoints if code not in coverage]
        sizes = []
        for code in dict.fromkeys(codepoints):
            if code in coverage:
                _, _, width, height = self._glyph_metrics(font, face, font_size, code)
                sizes.append((code, width, height))
        placed, overflow = shelf_pack(sizes, atlas_width, atlas_height, padding)
        logger.debug(
            "Packed %s at %d (%dx%d): %d placed, %d overflow, %d uncovered",
            font.name,
            font_size,
            atlas_width,
            atlas_height,
            len(placed),
            len(overflow),
            len(uncovered),
        )
        return PackAttempt(
            font_size=font_size,
            atlas_width=atlas_width,
            atlas_height=atlas_height,
            fits_on_one_page=not overflow,
            missing=tuple(dict.fromkeys([*uncovered, *overflow])),
            glyphs=placed,
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
        """Draw ``attempt`` into a PNG page and write its JSON sidecar."""
        self._require()
        face = self.open(font, attempt.font_size)
        page = Image.new(render_mode.image_mode, (attempt.atlas_width, attempt.atlas_height), 0)
        draw = ImageDraw.Draw(page)
        if render_mode is RenderMode.RASTER:
            draw.fontmode = "1"
        for glyph in attempt.glyphs:
            if glyph.width == 0 or glyph.height == 0:
                continue
            left, top, _, _ = self._glyph_metrics(font, face, attempt.font_size, glyph.codepoint)
            draw.text(
                (glyph.x - left, glyph.y - top), chr(glyph.codepoint), font=face, fill=255
            )

        output_dir.mkdir(parents=True, exist_ok=True)
        image_path = output_dir / f"{name}.png"
        metadata_path = output_dir / f"{name}.json"
        page.save(image_path, "PNG")
        metadata = {
            "font": font.name,
            "font_size": attempt.font_size,
            "atlas_width": attempt.atlas_width,
            "atlas_height": attempt.atlas_height,
            "render_mode": render_mode.value,
            "padding": padding,
            "glyphs": {
                str(glyph.codepoint): {
                    "x": glyph.x,
                    "y": glyph.y,
                    "width": glyph.width,
                    "height": glyph.height,
                }
                for glyph in attempt.glyphs
            },
        }
        with metadata_path.open("w", encoding="utf-8") as handle:
            json.dump(metadata, handle, ensure_ascii=False, indent=2)
        logger.debug("Saved atlas page %s", image_path)
        return AtlasAsset(
            font_name=font.name,
            font_size=attempt.font_size,
            atlas_width=attempt.atlas_width,
            atlas_height=attempt.atlas_height,
            render_mode=render_mode,
            padding=padding,
            image_path=image_path,
            metadata_path=metadata_path,
            glyphs={glyph.codepoint: glyph for glyph in attempt.glyphs},
        )


def load_atlas_codepoints(metadata_path: Path) -> frozenset[int]:
    """Return the codepoints recorded in an atlas metadata sidecar."""
    with metadata_path.open(encoding="utf-8") as handle:
        data = json.load(handle)
    return frozenset(int(key) for key in (data.get("glyphs") or {}))


__all__ = [
    "FontEngine",
    "PillowFontEngine",
    "load_atlas_codepoints",
    "shelf_pack",
]
