"""Value types shared by the atlas engine, search, and fallback chain."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable


ATLAS_SIZES: tuple[int, ...] = (256, 512, 1024, 2048, 4096)


class RenderMode(str, Enum):
    """How glyphs are rasterised into the atlas page."""

    SMOOTH = "smooth"
    RASTER = "raster"

    @property
    def image_mode(self) -> str:
        return "L" if self is RenderMode.SMOOTH else "1"


@runtime_checkable
class FontHandle(Protocol):
    """Opaque source of font bytes."""

    name: str

    def read_bytes(self) -> bytes: ...


@dataclass(slots=True)
class FileFontHandle:
    """Font handle backed by a file on disk."""

    path: Path
    name: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.path.stem

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


@dataclass(slots=True)
class GlyphRect:
    """Placement of one glyph on an atlas page."""

    codepoint: int
    x: int
    y: int
    width: int
    height: int


@dataclass(slots=True)
class PackAttempt:
    """Outcome of packing a character set at one font size and atlas size."""

    font_size: int
    atlas_width: int
    atlas_height: int
    fits_on_one_page: bool
    missing: tuple[int, ...] = ()
    glyphs: list[GlyphRect] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.fits_on_one_page and not self.missing


@dataclass(slots=True)
class AtlasAsset:
    """A materialised atlas page and its metadata sidecar."""

    font_name: str
    font_size: int
    atlas_width: int
    atlas_height: int
    render_mode: RenderMode
    padding: int
    image_path: Path | None = None
    metadata_path: Path | None = None
    glyphs: Mapping[int, GlyphRect] = field(default_factory=dict)


__all__ = [
    "ATLAS_SIZES",
    "AtlasAsset",
    "FileFontHandle",
    "FontHandle",
    "GlyphRect",
    "PackAttempt",
    "RenderMode",
]
