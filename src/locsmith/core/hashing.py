"""Deterministic identifier hashing.

Identifiers are authored as free text in spreadsheets, sanitised into valid
symbol names and then hashed into stable signed 32-bit integers. The hash is
the classic ``h * 31 + c`` string hash computed over UTF-16 code units, so the
values stay identical across processes, platforms, and regenerate cycles.

``0`` is reserved for the empty-string sentinel: it is what the empty
identity hashes to, and a non-empty identity that happens to hash to ``0`` is
rejected when the identifier module is regenerated.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import re
from typing import ClassVar


EMPTY_HASH = 0
EMPTY_IDENTITY = "Empty_Loc_String"

_ILLEGAL_CHARACTERS = re.compile(r"\W")
_LEADING_DIGITS = re.compile(r"^\d+")


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def hash_identity(identity: str) -> int:
    """Return the signed 32-bit hash of ``identity``."""
    data = identity.encode("utf-16-le", "surrogatepass")
    value = 0
    for index in range(0, len(data), 2):
        unit = data[index] | (data[index + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    return _to_int32(value)


def sanitize_loc_id(raw: str) -> str:
    """Turn an authored identifier into a valid symbol name.

    Non-word characters become underscores and leading digits are dropped.
    The result may be empty, which callers must treat as an invalid id.
    """
    sanitized = _ILLEGAL_CHARACTERS.sub("_", raw)
    return _LEADING_DIGITS.sub("", sanitized)


@dataclass(frozen=True, slots=True)
class LocId:
    """Tagged wrapper around a hash value.

    ``LocId`` is not an ``int``; use :func:`identifier_to_hash`
    to obtain the raw lookup key.
    """

    value: int

    EMPTY: ClassVar[LocId]

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TypeError("LocId wraps an integer hash value.")
        if _to_int32(self.value) != self.value:
            raise ValueError(f"LocId value {self.value} is outside the int32 range.")

    @classmethod
    def from_identity(cls, identity: str) -> LocId:
        """Sanitise and hash an authored identifier."""
        return cls(hash_identity(sanitize_loc_id(identity)))

    @property
    def is_empty(self) -> bool:
        return self.value == EMPTY_HASH


LocId.EMPTY = LocId(EMPTY_HASH)


def identifier_to_hash(loc_id: LocId) -> int:
    """Return the raw hash carried by ``loc_id``."""
    if not isinstance(loc_id, LocId):
        raise TypeError(f"Expected LocId, got {type(loc_id).__name__}.")
    return loc_id.value


def find_hash_collisions(identities: Iterable[str]) -> dict[int, list[str]]:
    """Group identities that share a hash or hash to the reserved value.

    Only problematic groups are returned: hashes shared by two or more
    distinct identities, and any non-empty identity hashing to ``0``.
    """
    buckets: dict[int, list[str]] = {}
    for identity in identities:
        bucket = buckets.setdefault(hash_identity(identity), [])
        if identity not in bucket:
            bucket.append(identity)

    problems: dict[int, list[str]] = {}
    for value, members in buckets.items():
        if value == EMPTY_HASH:
            offenders = [member for member in members if member]
            if offenders:
                problems[value] = offenders
        elif len(members) > 1:
            problems[value] = members
    return problems


__all__ = [
    "EMPTY_HASH",
    "EMPTY_IDENTITY",
    "LocId",
    "find_hash_collisions",
    "hash_identity",
    "identifier_to_hash",
    "sanitize_loc_id",
]
