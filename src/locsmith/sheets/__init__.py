"""Spreadsheet ingestion: fetch handles, parsing, sanitising and export."""

from __future__ import annotations

from .export import ExportedEntry, export_table, read_exported_entries, render_table
from .fetch import FetchHandle, SheetsApiFetch, StaticFetch, aggregate_progress
from .model import SheetData, SpreadsheetData
from .parser import (
    ParsedDocument,
    ParsedEntry,
    SpreadsheetParser,
    parse_documents,
    sanitize_text,
)


__all__ = [
    "ExportedEntry",
    "FetchHandle",
    "ParsedDocument",
    "ParsedEntry",
    "SheetData",
    "SheetsApiFetch",
    "SpreadsheetData",
    "SpreadsheetParser",
    "StaticFetch",
    "aggregate_progress",
    "export_table",
    "parse_documents",
    "read_exported_entries",
    "render_table",
    "sanitize_text",
]
