"""Glyph atlas synthesis: character collection, packing search and fallbacks."""

from __future__ import annotations

from .audit import audit_atlas_coverage
from .charset import ALWAYS_INCLUDE, RequiredCharacters, collect_required_characters
from .engine import FontEngine, PillowFontEngine, shelf_pack
from .fallback import FallbackChain, FallbackFont, FallbackReport
from .search import AtlasSearchResult, search_atlas
from .types import (
    ATLAS_SIZES,
    AtlasAsset,
    FileFontHandle,
    FontHandle,
    GlyphRect,
    PackAttempt,
    RenderMode,
)


__all__ = [
    "ALWAYS_INCLUDE",
    "ATLAS_SIZES",
    "AtlasAsset",
    "AtlasSearchResult",
    "FallbackChain",
    "FallbackFont",
    "FallbackReport",
    "FileFontHandle",
    "FontEngine",
    "FontHandle",
    "GlyphRect",
    "PackAttempt",
    "PillowFontEngine",
    "RenderMode",
    "RequiredCharacters",
    "audit_atlas_coverage",
    "collect_required_characters",
    "search_atlas",
    "shelf_pack",
]
