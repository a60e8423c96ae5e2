"""Identifier module regeneration."""

from __future__ import annotations

from .ids import (
    EMPTY_SUMMARY,
    LocEntry,
    TableIds,
    category_path,
    check_collisions,
    collect_entries,
    constant_name,
    render_identifier_module,
    write_identifier_module,
)


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
