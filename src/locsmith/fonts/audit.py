"""Check generated atlases against the characters each language needs."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
import unicodedata

from locsmith.fonts.charset import RequiredCharacters
from locsmith.fonts.engine import load_atlas_codepoints
from locsmith.fonts.fallback import describe_codepoint


_IGNORED_CATEGORIES = frozenset({"So", "Cs"})


def needs_glyph(codepoint: int) -> bool:
    """Whitespace and symbol/emoji characters are not expected in atlases."""
    char = chr(codepoint)
    return not char.isspace() and unicodedata.category(char) not in _IGNORED_CATEGORIES


def audit_atlas_coverage(
    language: str,
    required: RequiredCharacters,
    metadata_paths: Iterable[Path],
) -> list[str]:
    """Return one problem per required character absent from every atlas."""
    available: set[int] = set()
    for path in metadata_paths:
        available.update(load_atlas_codepoints(path))
    problems = []
    for code in required:
        if code in available or not needs_glyph(code):
            continue
        owner = required.owners.get(code) or "<always included>"
        problems.append(
            f"[{language}] {describe_codepoint(code)} required by [{owner}] "
            "is not present in any atlas."
        )
    return problems


__all__ = ["audit_atlas_coverage", "needs_glyph"]
