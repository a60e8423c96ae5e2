"""Search for the smallest atlas and largest font size that fit a character set."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import logging

from locsmith.core.exceptions import AtlasGenerationError, FontEngineError
from locsmith.fonts.engine import FontEngine
from locsmith.fonts.types import ATLAS_SIZES, FontHandle, PackAttempt, RenderMode


logger = logging.getLogger(__name__)

DEFAULT_MAX_FONT_SIZE = 200


@dataclass(slots=True)
class AtlasSearchResult:
    """Chosen pack attempt plus every character the font could not hold."""

    font: FontHandle
    attempt: PackAttempt
    missing: tuple[int, ...]
    attempts: int

    @property
    def complete(self) -> bool:
        return not self.missing

    @property
    def font_size(self) -> int:
        return self.attempt.font_size

    @property
    def atlas_width(self) -> int:
        return self.attempt.atlas_width

    @property
    def atlas_height(self) -> int:
        return self.attempt.atlas_height


def format_codepoints(codepoints: Sequence[int]) -> str:
    return "".join(chr(code) for code in codepoints)


def search_atlas(
    engine: FontEngine,
    font: FontHandle,
    codepoints: Sequence[int],
    *,
    min_font_size: int = 14,
    padding: int = 5,
    render_mode: RenderMode = RenderMode.SMOOTH,
    sizes: Sequence[int] = ATLAS_SIZES,
    max_font_size: int = DEFAULT_MAX_FONT_SIZE,
    on_attempt: Callable[[PackAttempt], None] | None = None,
) -> AtlasSearchResult:
    """Find the atlas configuration for ``codepoints``.

    Widths are tried smallest first and, for each width, heights up to that
    width. Within one size the font grows from ``min_font_size`` while every
    glyph still fits; the first size that fits completely wins, at the
    largest font size reached there. When no size fits, the attempt with the
    fewest missing characters is returned, the earliest one on ties.

    Characters absent from the font's character map are never packed and are
    always reported as missing.
    """
    chars = list(dict.fromkeys(codepoints))
    try:
        coverage = engine.covered_codepoints(font)
    except FontEngineError as exc:
        raise AtlasGenerationError(f"Font '{font.name}' could not be loaded: {exc}") from exc
    packable = [code for code in chars if code in coverage]
    uncovered = tuple(code for code in chars if code not in coverage)
    if uncovered:
        logger.debug("Font %s has no glyph for %d characters", font.name, len(uncovered))

    attempts = 0

    def _pack(font_size: int, width: int, height: int) -> PackAttempt:
        nonlocal attempts
        attempts += 1
        try:
            attempt = engine.try_pack(
                font,
                packable,
                font_size=font_size,
                atlas_width=width,
                atlas_height=height,
                padding=padding,
                render_mode=render_mode,
            )
        except FontEngineError as exc:
            raise AtlasGenerationError(
                f"Font '{font.name}' could not be constructed at size {font_size}: {exc}"
            ) from exc
        if on_attempt is not None:
            on_attempt(attempt)
        return attempt

    def _result(attempt: PackAttempt) -> AtlasSearchResult:
        missing = tuple(dict.fromkeys([*uncovered, *attempt.missing]))
        return AtlasSearchResult(font=font, attempt=attempt, missing=missing, attempts=attempts)

    if not sizes:
        raise AtlasGenerationError("No atlas sizes were configured.")
    if not packable:
        return _result(_pack(min_font_size, sizes[0], sizes[0]))

    best_partial: PackAttempt | None = None
    for width_index, width in enumerate(sizes):
        for height in sizes[: width_index + 1]:
            best_complete: PackAttempt | None = None
            font_size = min_font_size
            while True:
                attempt = _pack(font_size, width, height)
                if attempt.complete:
                    best_complete = attempt
                    if font_size >= max_font_size:
                        return _result(best_complete)
                    font_size += 1
                    continue
                if best_complete is not None:
                    return _result(best_complete)
                if best_partial is None or len(attempt.missing) < len(best_partial.missing):
                    best_partial = attempt
                break

    if best_partial is None:
        raise AtlasGenerationError(f"No atlas attempt was made for font '{font.name}'.")
    logger.warning(
        "Font %s cannot fit every character on one atlas page; %d left out: %s",
        font.name,
        len(best_partial.missing),
        format_codepoints(best_partial.missing),
    )
    return _result(best_partial)


__all__ = ["DEFAULT_MAX_FONT_SIZE", "AtlasSearchResult", "format_codepoints", "search_atlas"]
