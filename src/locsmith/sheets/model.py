"""Raw spreadsheet data as delivered by a fetch handle."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class SheetData:
    """A single sheet: its title and a ragged grid of raw cell values."""

    title: str
    cells: list[list[Any]] = field(default_factory=list)
    hidden: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SheetData:
        return cls(
            title=str(data.get("title", "")),
            cells=[list(row) for row in data.get("cells") or []],
            hidden=bool(data.get("hidden", False)),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {"title": self.title, "hidden": self.hidden, "cells": self.cells}


@dataclass(slots=True)
class SpreadsheetData:
    """Every sheet of one remote document."""

    document_id: str
    sheets: list[SheetData] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SpreadsheetData:
        """Create spreadsheet data from a YAML/JSON dump."""
        return cls(
            document_id=str(data.get("document_id", "")),
            sheets=[SheetData.from_mapping(sheet) for sheet in data.get("sheets") or []],
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "sheets": [sheet.to_mapping() for sheet in self.sheets],
        }


__all__ = ["SheetData", "SpreadsheetData"]
