"""Runtime lookup from hash ids to localised text.

Architecture
------------

``TableSource``
    Anything that can hand over canonical table text (files on disk in
    practice, in-memory strings in tests).

``GeneratedIndex``
    The hash → row tables baked into the generated identifier module. It is
    only consulted when the live index does not know a hash.

``TableSnapshot``
    Immutable bundle of loaded tables plus the live index rebuilt by scanning
    them. Readers always work against one snapshot.

``TableCache``
    Process-wide owner of the current snapshot. ``load()`` builds a complete
    new snapshot and swaps it in one assignment; ``invalidate()`` drops it so
    the next read rebuilds lazily. Nothing mutates a snapshot in place.

``resolve``
    Never raises for a missing id: every failure comes back as a
    ``Resolution`` carrying a status and a human-readable placeholder.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
import importlib.util
import logging
from pathlib import Path
from threading import RLock
from types import ModuleType
from typing import Protocol, runtime_checkable

from locsmith.core.diagnostics import DiagnosticEmitter, LoggingEmitter
from locsmith.core.exceptions import TableFormatError
from locsmith.core.hashing import EMPTY_HASH, hash_identity, sanitize_loc_id
from locsmith.core.tables import LocTable


logger = logging.getLogger(__name__)

DEFAULT_MASTER_TABLE = "Master"


class LocStatus(Enum):
    """Outcome of a runtime lookup."""

    SUCCESS = "success"
    BAD_LOC_HASH_ID = "bad_loc_hash_id"
    BAD_LOC_TABLE_LINE = "bad_loc_table_line"
    NO_TEXT_FOUND_FOR_LANGUAGE = "no_text_found_for_language"


@dataclass(frozen=True, slots=True)
class Resolution:
    """Text returned by :func:`resolve` together with its status."""

    text: str
    status: LocStatus
    table: str | None = None
    row: int | None = None

    @property
    def ok(self) -> bool:
        return self.status is LocStatus.SUCCESS


@runtime_checkable
class TableSource(Protocol):
    """Provider of canonical table text."""

    name: str

    @property
    def location(self) -> str: ...

    def read_text(self) -> str: ...


@dataclass(slots=True)
class FileTableSource:
    """Canonical table stored on disk."""

    name: str
    path: Path

    @property
    def location(self) -> str:
        return str(self.path)

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass(slots=True)
class TextTableSource:
    """Canonical table held in memory."""

    name: str
    text: str
    label: str = ""

    @property
    def location(self) -> str:
        return self.label or f"<{self.name}>"

    def read_text(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class GeneratedIndex:
    """Hash → row tables exported by the generated identifier module."""

    hash_to_row: Mapping[str, Mapping[int, int]]
    table_order: tuple[str, ...]
    table_files: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_module(cls, module: ModuleType) -> GeneratedIndex:
        hash_to_row = getattr(module, "HASH_TO_ROW", None)
        if not isinstance(hash_to_row, Mapping):
            raise TableFormatError(
                f"Module '{module.__name__}' does not define a HASH_TO_ROW mapping."
            )
        order = tuple(getattr(module, "TABLE_ORDER", None) or hash_to_row.keys())
        files = dict(getattr(module, "TABLE_FILES", None) or {})
        return cls(hash_to_row=hash_to_row, table_order=order, table_files=files)

    @classmethod
    def load(cls, path: Path) -> GeneratedIndex:
        """Import a generated identifier module from ``path``."""
        spec = importlib.util.spec_from_file_location(f"_locsmith_ids_{abs(hash(path))}", path)
        if spec is None or spec.loader is None:
            raise TableFormatError(f"Unable to import identifier module '{path}'.")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return cls.from_module(module)


def build_live_index(table: LocTable) -> dict[int, int]:
    """Scan ``table`` and map each identifier hash to its row."""
    index: dict[int, int] = {EMPTY_HASH: 0}
    for row in range(1, len(table.identifiers)):
        index.setdefault(hash_identity(table.identifiers[row]), row)
    return index


@dataclass(frozen=True, slots=True)
class TableSnapshot:
    """Consistent view of the loaded tables and their indexes."""

    tables: Mapping[str, LocTable]
    table_order: tuple[str, ...]
    live_index: Mapping[str, Mapping[int, int]]
    generated: GeneratedIndex | None = None
    locations: Mapping[str, str] = field(default_factory=dict)

    def _ordered(self, order: Sequence[str], preferred: str | None) -> Iterator[str]:
        if preferred is not None and preferred in order:
            yield preferred
        for name in order:
            if name != preferred:
                yield name

    def find_row(self, hash_id: int, preferred: str | None = None) -> tuple[str, int] | None:
        """Locate ``hash_id``: live index first, then the generated index."""
        for name in self._ordered(self.table_order, preferred):
            row = self.live_index.get(name, {}).get(hash_id)
            if row is not None:
                return name, row
        if self.generated is not None:
            for name in self._ordered(self.generated.table_order, preferred):
                row = self.generated.hash_to_row.get(name, {}).get(hash_id)
                if row is None:
                    continue
                if row == 0 or name in self.tables:
                    return name, row
        return None

    def table_files(self) -> list[str]:
        files = [self.locations.get(name, name) for name in self.table_order]
        if self.generated is not None:
            for name in self.generated.table_order:
                location = self.generated.table_files.get(name, name)
                if name not in self.tables and location not in files:
                    files.append(location)
        return files


class TableCache:
    """Process-wide owner of the current :class:`TableSnapshot`."""

    def __init__(
        self,
        sources: Iterable[TableSource] = (),
        *,
        languages: Iterable[str] = (),
        generated: GeneratedIndex | Path | None = None,
        master: str = DEFAULT_MASTER_TABLE,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self._lock = RLock()
        self._snapshot: TableSnapshot | None = None
        self._sources: tuple[TableSource, ...] = tuple(sources)
        self._languages: tuple[str, ...] = tuple(languages)
        self._generated = generated
        self._master = master
        self._preferred: str | None = None
        self._emitter = emitter or LoggingEmitter(logger_obj=logger)

    def configure(
        self,
        sources: Iterable[TableSource],
        *,
        languages: Iterable[str] = (),
        generated: GeneratedIndex | Path | None = None,
        master: str | None = None,
    ) -> None:
        """Replace the table sources; the next read rebuilds the snapshot."""
        with self._lock:
            self._sources = tuple(sources)
            self._languages = tuple(languages)
            self._generated = generated
            if master is not None:
                self._master = master
            self._snapshot = None

    @property
    def preferred_table(self) -> str:
        return self._preferred or self._master

    @preferred_table.setter
    def preferred_table(self, name: str | None) -> None:
        self._preferred = name

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> TableSnapshot:
        current = self._snapshot
        if current is None:
            current = self.load()
        return current

    def load(self) -> TableSnapshot:
        """Rebuild every table and index, then swap the snapshot in."""
        with self._lock:
            snapshot = self._build()
            self._snapshot = snapshot
            return snapshot

    def invalidate(self) -> None:
        """Drop the current snapshot; the next read rebuilds it."""
        with self._lock:
            self._snapshot = None

    def _build(self) -> TableSnapshot:
        tables: dict[str, LocTable] = {}
        locations: dict[str, str] = {}
        for source in self._sources:
            try:
                table = LocTable.from_text(
                    source.name,
                    source.read_text(),
                    self._languages,
                    emitter=self._emitter,
                    location=source.location,
                )
            except (OSError, TableFormatError) as exc:
                self._emitter.error(f"Unable to load table [{source.name}]: {exc}", exc)
                continue
            tables[source.name] = table
            locations[source.name] = source.location
            self._emitter.event("table_loaded", {"table": source.name, "rows": table.row_count()})

        generated = self._generated
        if isinstance(generated, Path):
            try:
                generated = GeneratedIndex.load(generated) if generated.exists() else None
            except (OSError, SyntaxError, TableFormatError) as exc:
                self._emitter.error(f"Unable to load identifier module '{self._generated}': {exc}", exc)
                generated = None

        return TableSnapshot(
            tables=tables,
            table_order=tuple(tables),
            live_index={name: build_live_index(table) for name, table in tables.items()},
            generated=generated,
            locations=locations,
        )


_CACHE: TableCache | None = None
_CACHE_LOCK = RLock()


def get_table_cache() -> TableCache:
    """Return the process-wide table cache, creating an empty one on demand."""
    global _CACHE
    with _CACHE_LOCK:
        if _CACHE is None:
            _CACHE = TableCache()
        return _CACHE


def set_table_cache(cache: TableCache | None) -> TableCache | None:
    """Install ``cache`` as the process-wide table cache."""
    global _CACHE
    with _CACHE_LOCK:
        _CACHE = cache
        return _CACHE


def resolve(
    hash_id: int,
    language: str,
    *,
    cache: TableCache | None = None,
    preferred: str | None = None,
) -> Resolution:
    """Return the text for ``hash_id`` in ``language``."""
    cache = cache or get_table_cache()
    preferred = preferred or cache.preferred_table
    if hash_id == EMPTY_HASH:
        return Resolution("", LocStatus.SUCCESS, preferred, 0)

    snapshot = cache.snapshot
    found = snapshot.find_row(hash_id, preferred)

    if found is None:
        files = ", ".join(snapshot.table_files())
        message = (
            "Bad Loc Hash ID. This Loc Hash ID doesn't seem to exist in the "
            f"'{files}' files anymore. [{hash_id}]"
        )
        logger.warning(message)
        return Resolution(message, LocStatus.BAD_LOC_HASH_ID)

    table_name, row = found
    if row == 0:
        return Resolution("", LocStatus.SUCCESS, table_name, 0)

    table = snapshot.tables[table_name]
    location = snapshot.locations.get(table_name, table_name)
    if row < 1 or row >= table.row_count():
        message = (
            f"Bad Row ID. Searched for Row {row}, but could not find it in the {location} file. "
            "Please regenerate the localisation identifiers."
        )
        logger.warning(message)
        return Resolution(message, LocStatus.BAD_LOC_TABLE_LINE, table_name, row)

    text = table.cell_text(row, language)
    if not text:
        message = (
            f"Row {row} does not contain any text for Language [{language}] "
            f"in the {location} file."
        )
        logger.warning(message)
        return Resolution(message, LocStatus.NO_TEXT_FOUND_FOR_LANGUAGE, table_name, row)

    return Resolution(text, LocStatus.SUCCESS, table_name, row)


def resolve_identity(identity: str, language: str, *, cache: TableCache | None = None) -> Resolution:
    """Sanitise and hash ``identity`` before resolving it."""
    return resolve(hash_identity(sanitize_loc_id(identity)), language, cache=cache)


__all__ = [
    "DEFAULT_MASTER_TABLE",
    "FileTableSource",
    "GeneratedIndex",
    "LocStatus",
    "Resolution",
    "TableCache",
    "TableSnapshot",
    "TableSource",
    "TextTableSource",
    "build_live_index",
    "get_table_cache",
    "resolve",
    "resolve_identity",
    "set_table_cache",
]
