"""Asynchronous spreadsheet fetch handles.

The generation pipeline never blocks on the network: it polls a
:class:`FetchHandle` once per tick. :class:`SheetsApiFetch` runs the Google
Sheets v4 REST calls on a background thread and exposes its progress;
:class:`StaticFetch` wraps data that is already available (offline dumps,
cached payloads, tests).
"""

from __future__ import annotations

from collections.abc import Iterable
from hashlib import sha256
import json
import logging
from pathlib import Path
from threading import Lock, Thread
from typing import Any, Protocol, runtime_checkable

import requests
import yaml

from locsmith.core.exceptions import FetchError
from locsmith.core.user_dir import get_user_dir

from .model import SheetData, SpreadsheetData


logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
CACHE_NAMESPACE = "sheets"
PROGRESS_AFTER_METADATA = 0.25
FAILED_PROGRESS = -1.0


@runtime_checkable
class FetchHandle(Protocol):
    """Opaque handle on an outstanding spreadsheet fetch."""

    @property
    def progress(self) -> float: ...

    @property
    def is_completed(self) -> bool: ...

    @property
    def has_failed(self) -> bool: ...

    @property
    def error(self) -> str | None: ...

    def result(self) -> SpreadsheetData: ...


def aggregate_progress(handles: Iterable[FetchHandle]) -> float:
    """Combined progress of several fetches (product of the individual ones)."""
    total = 1.0
    for handle in handles:
        total *= max(0.0, min(1.0, handle.progress))
    return total


def _cache_path(document_id: str) -> Path:
    digest = sha256(document_id.encode("utf-8")).hexdigest()
    return get_user_dir().cache_dir(CACHE_NAMESPACE) / f"{digest}.json"


class StaticFetch:
    """Fetch handle over data that is already in memory."""

    def __init__(self, data: SpreadsheetData) -> None:
        self._data = data

    @classmethod
    def from_file(cls, path: Path) -> StaticFetch:
        """Load a YAML or JSON spreadsheet dump."""
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise FetchError(f"Unable to read spreadsheet dump '{path}': {exc}") from exc
        if not isinstance(payload, dict):
            raise FetchError(f"Spreadsheet dump '{path}' must contain a mapping.")
        return cls(SpreadsheetData.from_mapping(payload))

    @classmethod
    def from_cache(cls, document_id: str) -> StaticFetch:
        """Reuse the last payload fetched for ``document_id``."""
        path = _cache_path(document_id)
        if not path.exists():
            raise FetchError(f"No cached payload is available for document '{document_id}'.")
        return cls.from_file(path)

    @property
    def progress(self) -> float:
        return 1.0

    @property
    def is_completed(self) -> bool:
        return True

    @property
    def has_failed(self) -> bool:
        return False

    @property
    def error(self) -> str | None:
        return None

    def result(self) -> SpreadsheetData:
        return self._data


class SheetsApiFetch:
    """Fetch every sheet of a Google Sheets document on a background thread."""

    _DEFAULT_USER_AGENT = "locsmith-sheets-fetcher"

    def __init__(
        self,
        document_id: str,
        *,
        api_key: str | None = None,
        token: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        base_url: str = SHEETS_API_URL,
        enable_cache: bool = True,
    ) -> None:
        self.document_id = document_id
        self._api_key = api_key
        self._token = token
        self._session = session
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._enable_cache = enable_cache
        self._lock = Lock()
        self._progress = 0.0
        self._error: str | None = None
        self._data: SpreadsheetData | None = None
        self._thread: Thread | None = None

    def start(self) -> SheetsApiFetch:
        """Launch the background fetch; calling twice is a no-op."""
        with self._lock:
            if self._thread is not None:
                return self
            self._thread = Thread(
                target=self._run, name=f"sheets-fetch-{self.document_id}", daemon=True
            )
        self._thread.start()
        return self

    @property
    def progress(self) -> float:
        with self._lock:
            return self._progress

    @property
    def has_failed(self) -> bool:
        return self.progress <= FAILED_PROGRESS

    @property
    def is_completed(self) -> bool:
        progress = self.progress
        return progress >= 1.0 or progress <= FAILED_PROGRESS

    @property
    def error(self) -> str | None:
        with self._lock:
            return self._error

    def result(self) -> SpreadsheetData:
        with self._lock:
            if self._data is None:
                raise FetchError(
                    self._error or f"Document '{self.document_id}' has not finished fetching."
                )
            return self._data

    def _set_progress(self, value: float) -> None:
        with self._lock:
            self._progress = value

    def _fail(self, message: str) -> None:
        with self._lock:
            self._error = message
            self._progress = FAILED_PROGRESS

    def _run(self) -> None:
        try:
            data = self.fetch()
        except FetchError as exc:
            logger.debug("Fetch of %s failed", self.document_id, exc_info=exc)
            self._fail(str(exc))
            return
        except Exception as exc:
            # Any error settles the handle as failed.
            logger.exception("Unexpected error while fetching %s", self.document_id)
            self._fail(f"Document '{self.document_id}' could not be fetched: {exc}")
            return
        with self._lock:
            self._data = data
            self._progress = 1.0

    def fetch(self) -> SpreadsheetData:
        """Fetch synchronously; used by the background thread.

        Raises :class:`FetchError` for transport failures and for payloads
        that do not have the shape the Sheets API documents.
        """
        self._set_progress(0.0)
        metadata = self._get_json(
            f"{self._base_url}/{self.document_id}",
            params={"fields": "sheets.properties(title,hidden)"},
        )
        properties = [
            self._mapping(sheet.get("properties", {}), "sheets.properties")
            for sheet in self._records(metadata, "sheets")
        ]
        self._set_progress(PROGRESS_AFTER_METADATA)

        sheets: list[SheetData] = []
        if properties:
            ranges = [_quote_range(str(prop.get("title", ""))) for prop in properties]
            values = self._get_json(
                f"{self._base_url}/{self.document_id}/values:batchGet",
                params={"ranges": ranges, "majorDimension": "ROWS"},
            )
            value_ranges = self._records(values, "valueRanges")
            for index, prop in enumerate(properties):
                cells = self._rows(value_ranges[index]) if index < len(value_ranges) else []
                sheets.append(
                    SheetData(
                        title=str(prop.get("title", "")),
                        cells=cells,
                        hidden=bool(prop.get("hidden", False)),
                    )
                )

        data = SpreadsheetData(document_id=self.document_id, sheets=sheets)
        self._write_cache(data)
        return data

    def _malformed(self, key: str) -> FetchError:
        return FetchError(f"Document '{self.document_id}' returned a malformed '{key}' payload.")

    def _mapping(self, value: Any, key: str) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise self._malformed(key)
        return value

    def _records(self, payload: dict[str, Any], key: str) -> list[dict[str, Any]]:
        records = payload.get(key, [])
        if not isinstance(records, list):
            raise self._malformed(key)
        return [self._mapping(record, key) for record in records]

    def _rows(self, value_range: dict[str, Any]) -> list[list[Any]]:
        rows = value_range.get("values", [])
        if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
            raise self._malformed("valueRanges.values")
        return [list(row) for row in rows]

    def _get_json(self, url: str, *, params: dict[str, Any]) -> dict[str, Any]:
        headers = {"User-Agent": self._DEFAULT_USER_AGENT}
        query = dict(params)
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        elif self._api_key:
            query["key"] = self._api_key
        client = self._ensure_session()
        try:
            response = client.get(url, params=query, headers=headers, timeout=self._timeout)
        except requests.RequestException as exc:
            raise FetchError(f"Request to {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise FetchError(
                f"Document '{self.document_id}' could not be fetched: HTTP {response.status_code}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Document '{self.document_id}' returned invalid JSON.") from exc
        if not isinstance(payload, dict):
            raise FetchError(f"Document '{self.document_id}' returned an unexpected payload.")
        return payload

    def _ensure_session(self) -> requests.Session:
        with self._lock:
            if self._session is None:
                self._session = requests.Session()
            return self._session

    def _write_cache(self, data: SpreadsheetData) -> None:
        if not self._enable_cache:
            return
        try:
            _cache_path(self.document_id).write_text(
                json.dumps(data.to_mapping(), ensure_ascii=False), encoding="utf-8"
            )
        except OSError:
            logger.debug("Unable to cache payload for %s", self.document_id, exc_info=True)


def _quote_range(title: str) -> str:
    escaped = title.replace("'", "''")
    return f"'{escaped}'"


__all__ = [
    "FAILED_PROGRESS",
    "SHEETS_API_URL",
    "FetchHandle",
    "SheetsApiFetch",
    "StaticFetch",
    "aggregate_progress",
]
