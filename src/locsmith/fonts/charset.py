"""Required-character collection for glyph atlases."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from locsmith.core.culture import culture_lower, culture_upper, validate_culture_id
from locsmith.core.tables import unescape_cell


CURRENCY_SYMBOLS = "$€¥£元₩₹₽₺฿₪₱"
ALWAYS_INCLUDE = "".join(chr(code) for code in range(0x20, 0x7F)) + CURRENCY_SYMBOLS

_SKIPPED = frozenset({"\n", "\r", "\t"})


def iter_codepoints(text: str) -> Iterator[int]:
    """Yield the code points of ``text`` with surrogate pairs combined."""
    joined = text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")
    for char in joined:
        yield ord(char)


@dataclass(slots=True)
class RequiredCharacters:
    """Ordered, de-duplicated code points and the identifier needing each."""

    codepoints: list[int] = field(default_factory=list)
    owners: dict[int, str] = field(default_factory=dict)

    def add(self, text: str, owner: str) -> None:
        for codepoint in iter_codepoints(text):
            if chr(codepoint) in _SKIPPED or codepoint in self.owners:
                continue
            self.owners[codepoint] = owner
            self.codepoints.append(codepoint)

    def update(self, other: RequiredCharacters) -> None:
        """Merge ``other`` in, keeping the owners recorded first."""
        for codepoint in other.codepoints:
            if codepoint not in self.owners:
                self.owners[codepoint] = other.owners.get(codepoint, "")
                self.codepoints.append(codepoint)

    def __len__(self) -> int:
        return len(self.codepoints)

    def __iter__(self) -> Iterator[int]:
        return iter(self.codepoints)

    def __contains__(self, codepoint: object) -> bool:
        return codepoint in self.owners

    @property
    def text(self) -> str:
        return "".join(chr(code) for code in self.codepoints)


def collect_required_characters(
    strings: Iterable[tuple[str, str]],
    culture_id: str,
    *,
    always_include: str = ALWAYS_INCLUDE,
) -> RequiredCharacters:
    """Collect every character a language needs.

    ``strings`` yields ``(identifier, canonical text)`` pairs. Each character
    is added as authored and in its culture-aware upper and lower case forms.
    """
    validate_culture_id(culture_id)
    required = RequiredCharacters()
    required.add(always_include, "")
    for identity, text in strings:
        for codepoint in iter_codepoints(unescape_cell(text)):
            char = chr(codepoint)
            if char in _SKIPPED:
                continue
            required.add(char, identity)
            required.add(culture_upper(char, culture_id), identity)
            required.add(culture_lower(char, culture_id), identity)
    return required


__all__ = [
    "ALWAYS_INCLUDE",
    "CURRENCY_SYMBOLS",
    "RequiredCharacters",
    "collect_required_characters",
    "iter_codepoints",
]
