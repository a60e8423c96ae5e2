"""Fallback font chain for characters the primary atlases cannot hold."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path

from slugify import slugify

from locsmith.core.exceptions import FontEngineError
from locsmith.fonts.engine import FontEngine
from locsmith.fonts.types import AtlasAsset, FontHandle, PackAttempt, RenderMode


logger = logging.getLogger(__name__)


def describe_codepoint(codepoint: int) -> str:
    return f"U+{codepoint:04X} '{chr(codepoint)}'"


@dataclass(slots=True)
class FallbackFont:
    """A fallback atlas that accumulates characters first-fit."""

    handle: FontHandle
    font_size: int = 32
    atlas_width: int = 1024
    atlas_height: int = 1024
    padding: int = 5
    render_mode: RenderMode = RenderMode.SMOOTH
    default_coverage: bool = False
    assigned: list[int] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.handle.name

    def _pack(self, engine: FontEngine, codepoints: Sequence[int]) -> PackAttempt:
        return engine.try_pack(
            self.handle,
            codepoints,
            font_size=self.font_size,
            atlas_width=self.atlas_width,
            atlas_height=self.atlas_height,
            padding=self.padding,
            render_mode=self.render_mode,
        )

    def try_add(self, engine: FontEngine, codepoints: Sequence[int]) -> list[int]:
        """Add as many of ``codepoints`` as fit; return the ones left over."""
        coverage = engine.covered_codepoints(self.handle)
        candidates = [
            code for code in codepoints if code in coverage and code not in self.assigned
        ]
        if candidates:
            attempt = self._pack(engine, [*self.assigned, *candidates])
            rejected = set(attempt.missing)
            if rejected.isdisjoint(self.assigned):
                self.assigned.extend(code for code in candidates if code not in rejected)
            else:
                # Packing everything at once displaced earlier glyphs; add one at a time.
                for code in candidates:
                    if self._pack(engine, [*self.assigned, code]).complete:
                        self.assigned.append(code)
        return [code for code in codepoints if code not in self.assigned]

    def materialise(self, engine: FontEngine, output_dir: Path) -> AtlasAsset:
        attempt = self._pack(engine, self.assigned)
        return engine.materialise(
            self.handle,
            attempt,
            render_mode=self.render_mode,
            padding=self.padding,
            output_dir=output_dir,
            name=f"fallback-{slugify(self.name)}",
        )


@dataclass(slots=True)
class FallbackReport:
    """Where each missing character ended up."""

    assigned: dict[int, str] = field(default_factory=dict)
    unresolved: list[int] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unresolved


class FallbackChain:
    """Offer missing characters to each fallback font in order."""

    def __init__(self, fonts: Iterable[FallbackFont], engine: FontEngine) -> None:
        self.fonts = list(fonts)
        self.engine = engine

    def add_missing(
        self, codepoints: Iterable[int], owners: Mapping[int, str] | None = None
    ) -> FallbackReport:
        """Assign ``codepoints`` to the first fallback font able to hold each."""
        owners = owners or {}
        remaining = list(dict.fromkeys(codepoints))
        report = FallbackReport()
        for font in self.fonts:
            if not remaining:
                break
            if font.default_coverage:
                logger.debug("Skipping fallback font %s: covered by the runtime", font.name)
                continue
            try:
                left = font.try_add(self.engine, remaining)
            except FontEngineError as exc:
                logger.debug("Fallback font %s failed", font.name, exc_info=exc)
                report.warnings.append(
                    f"FallbackFont [{font.name}] could not be loaded and was skipped: {exc}"
                )
                continue
            for code in remaining:
                if code not in left:
                    report.assigned[code] = font.name
            if left:
                report.warnings.append(
                    f"FallbackFont [{font.name}] cannot generate the following characters "
                    f"either: [{''.join(chr(code) for code in left)}]"
                )
            remaining = left
        report.unresolved = remaining
        for code in remaining:
            owner = owners.get(code) or "<always included>"
            report.warnings.append(
                f"Missing glyph {describe_codepoint(code)} required by [{owner}] "
                "is not available in any fallback font."
            )
        return report

    def materialise(self, output_dir: Path) -> list[AtlasAsset]:
        return [
            font.materialise(self.engine, output_dir)
            for font in self.fonts
            if font.assigned and not font.default_coverage
        ]


__all__ = [
    "FallbackChain",
    "FallbackFont",
    "FallbackReport",
    "describe_codepoint",
]
