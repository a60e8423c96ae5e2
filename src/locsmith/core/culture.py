"""Culture identifiers and culture-aware case mapping."""

from __future__ import annotations

import re

from locsmith.core.exceptions import CultureIdError


_CULTURE_ID = re.compile(r"^[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})*$")

# Languages whose dotted/dotless I pairs differ from the invariant mapping.
_TURKIC = frozenset({"tr", "az"})


def is_valid_culture_id(culture_id: str) -> bool:
    return bool(_CULTURE_ID.match(culture_id or ""))


def validate_culture_id(culture_id: str) -> str:
    """Return ``culture_id`` unchanged or raise :class:`CultureIdError`."""
    if not is_valid_culture_id(culture_id):
        raise CultureIdError(f"Culture ID [{culture_id}] is not a valid culture identifier.")
    return culture_id


def _language(culture_id: str) -> str:
    return re.split(r"[-_]", culture_id, maxsplit=1)[0].lower()


def culture_upper(text: str, culture_id: str) -> str:
    """Uppercase ``text`` using the rules of ``culture_id``."""
    if _language(culture_id) in _TURKIC:
        text = text.replace("i", "İ")
    return text.upper()


def culture_lower(text: str, culture_id: str) -> str:
    """Lowercase ``text`` using the rules of ``culture_id``."""
    if _language(culture_id) in _TURKIC:
        text = text.replace("I", "ı").replace("İ", "i")
    return text.lower()


__all__ = [
    "culture_lower",
    "culture_upper",
    "is_valid_culture_id",
    "validate_culture_id",
]
