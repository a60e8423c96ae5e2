"""Regenerate the identifier module from canonical tables."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
import keyword
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from locsmith.core.exceptions import (
    DataIntegrityError,
    DuplicateIdentifierError,
    IdentifierCollisionError,
)
from locsmith.core.hashing import (
    EMPTY_HASH,
    EMPTY_IDENTITY,
    find_hash_collisions,
    hash_identity,
    sanitize_loc_id,
)
from locsmith.core.tables import ESCAPED_NEWLINE, split_table_lines


TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
MODULE_TEMPLATE = "loc_ids.py.jinja"
EMPTY_SUMMARY = "Empty String Value: Will show nothing"


@dataclass(frozen=True, slots=True)
class LocEntry:
    """One identifier of a canonical table."""

    identity: str
    identity_with_category: str
    hash_value: int
    english_text: str
    row_id: int


@dataclass(slots=True)
class TableIds:
    """Entries of one table, in canonical file order."""

    name: str
    entries: list[LocEntry] = field(default_factory=list)
    source_file: str = ""


def category_path(identity: str) -> str:
    """Editor search path of ``identity``.

    ``Menu_Play_Button`` becomes ``M/Menu/Menu Play Button``; identities
    without an underscore are filed directly under their initial.
    """
    if not identity:
        return ""
    initial = identity[0].upper()
    if "_" not in identity:
        return f"{initial}/{identity}"
    parts = [part for part in identity.split("_") if part]
    if not parts:
        return f"{initial}/{identity}"
    return f"{initial}/{parts[0]}/{' '.join(parts)}"


def constant_name(identity: str) -> str:
    """Python attribute name used for ``identity``."""
    if keyword.iskeyword(identity):
        return f"{identity}_"
    if identity.startswith("__"):
        return f"ID{identity}"
    return identity


def collect_entries(table_name: str, text: str) -> list[LocEntry]:
    """Read entries from canonical table text.

    Row ids follow the canonical file order; duplicates and hash collisions
    are rejected.
    """
    lines = split_table_lines(text)
    entries: list[LocEntry] = []
    first_seen: dict[str, int] = {}
    for row_id, cells in enumerate(lines[1:], start=1):
        identity = cells[0].strip()
        if identity == EMPTY_IDENTITY:
            raise DataIntegrityError(
                f"Localisation ID '{identity}' (Line: {row_id}) in table [{table_name}] "
                "is reserved for the empty string."
            )
        if identity in first_seen:
            raise DuplicateIdentifierError(
                f"Localisation ID '{identity}' (Line: {row_id}) already exists at Line: "
                f"{first_seen[identity]} in table [{table_name}]"
            )
        first_seen[identity] = row_id
        if sanitize_loc_id(identity) != identity or not identity:
            raise DataIntegrityError(
                f"Localisation ID '{identity}' (Line: {row_id}) in table [{table_name}] "
                "is not a sanitised identifier."
            )
        entries.append(
            LocEntry(
                identity=identity,
                identity_with_category=category_path(identity),
                hash_value=hash_identity(identity),
                english_text=cells[1] if len(cells) > 1 else "",
                row_id=row_id,
            )
        )
    return entries


def check_collisions(tables: Sequence[TableIds]) -> None:
    """Raise when identities collide across every table."""
    identities = [entry.identity for table in tables for entry in table.entries]
    problems = find_hash_collisions(identities)
    if not problems:
        return
    details = "; ".join(
        f"{value}: {', '.join(members)}" for value, members in sorted(problems.items())
    )
    raise IdentifierCollisionError(f"Identifier hash collision(s) detected: {details}")


def _summary(text: str) -> str:
    return " ".join(text.replace(ESCAPED_NEWLINE, " ").split())


def _table_context(table: TableIds) -> dict[str, object]:
    prefix = sanitize_loc_id(table.name) or "Table"
    constants = [{"name": EMPTY_IDENTITY, "value": EMPTY_HASH, "summary": EMPTY_SUMMARY}]
    names = {EMPTY_IDENTITY}
    for entry in sorted(table.entries, key=lambda item: item.identity):
        name = constant_name(entry.identity)
        if name in names:
            raise DataIntegrityError(
                f"Identifier '{entry.identity}' in table [{table.name}] clashes with "
                f"constant '{name}'."
            )
        names.add(name)
        constants.append(
            {"name": name, "value": entry.hash_value, "summary": _summary(entry.english_text)}
        )

    hash_to_row: dict[int, int] = {EMPTY_HASH: 0}
    for entry in table.entries:
        hash_to_row.setdefault(entry.hash_value, entry.row_id)

    categories = [(EMPTY_IDENTITY, EMPTY_HASH)] + sorted(
        (entry.identity_with_category, entry.hash_value) for entry in table.entries
    )
    return {
        "name": table.name,
        "class_name": f"{prefix}_LocIds",
        "count_name": f"{prefix}_TotalLocIdsCount",
        "total": len(table.entries) + 1,
        "constants": constants,
        "hash_to_row": list(hash_to_row.items()),
        "row_ids": [EMPTY_HASH, *(entry.hash_value for entry in table.entries)],
        "categories": categories,
        "source_file": table.source_file,
    }


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["pyrepr"] = repr
    return env


def render_identifier_module(tables: Sequence[TableIds]) -> str:
    """Render the identifier module source for ``tables``.

    The output only depends on the table contents, so regenerating from the
    same canonical files is byte-identical.
    """
    check_collisions(tables)
    template = _environment().get_template(MODULE_TEMPLATE)
    return template.render(tables=[_table_context(table) for table in tables])


def write_identifier_module(path: Path, tables: Sequence[TableIds]) -> bool:
    """Write the module when its content changed; return whether it did."""
    content = render_identifier_module(tables)
    if path.exists() and path.read_text(encoding="utf-8") == content:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True


__all__ = [
    "EMPTY_SUMMARY",
    "LocEntry",
    "TableIds",
    "category_path",
    "check_collisions",
    "collect_entries",
    "constant_name",
    "render_identifier_module",
    "write_identifier_module",
]
