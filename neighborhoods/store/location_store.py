"""Location record stores: in-memory and JSON-file backed."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from neighborhoods.common.errors import StoreUnavailableError
from neighborhoods.common.geo import GridSnapper
from neighborhoods.common.models import LocationRecord
from neighborhoods.store.color_store import write_json_atomic
from neighborhoods.store.records import record_from_row, record_to_row

logger = logging.getLogger(__name__)


class LocationStore(Protocol):
    def list(self) -> List[LocationRecord]: ...

    def append(self, record: LocationRecord) -> LocationRecord: ...


def merge_record(
    records: List[LocationRecord], record: LocationRecord
) -> Tuple[List[LocationRecord], LocationRecord]:
    """Fold ``record`` into an existing record for the same cell, if any.

    Only names, count and timestamp are amended; coordinates stay as first
    stored.
    """

    for index, existing in enumerate(records):
        if existing.cell_id != record.cell_id:
            continue
        names = tuple(dict.fromkeys(existing.safe_names + record.safe_names))
        merged = replace(
            existing,
            names=names,
            count=len(names),
            timestamp=max(existing.timestamp, record.timestamp),
        )
        updated = list(records)
        updated[index] = merged
        return updated, merged
    return list(records) + [record], record


class InMemoryLocationStore:
    """Keeps records in a list, in submission order."""

    def __init__(
        self,
        records: Optional[List[LocationRecord]] = None,
        merge_on_append: bool = False,
        list_limit: Optional[int] = None,
    ) -> None:
        self._records: List[LocationRecord] = list(records or [])
        self.merge_on_append = merge_on_append
        self.list_limit = list_limit
        self._lock = threading.Lock()

    def list(self) -> List[LocationRecord]:
        return _tail(self._records, self.list_limit)

    def append(self, record: LocationRecord) -> LocationRecord:
        with self._lock:
            if self.merge_on_append:
                self._records, stored = merge_record(self._records, record)
            else:
                self._records = self._records + [record]
                stored = record
        return stored


class JsonFileLocationStore:
    """Records persisted as a JSON array of flat rows.

    Rows written by older clients are adapted on read, and every write
    rewrites the whole file through a temp file so a failed write leaves the
    previous contents intact.
    """

    def __init__(
        self,
        path: str | Path,
        snapper: Optional[GridSnapper] = None,
        merge_on_append: bool = False,
        list_limit: Optional[int] = None,
    ) -> None:
        self.path = Path(path)
        self.snapper = snapper or GridSnapper()
        self.merge_on_append = merge_on_append
        self.list_limit = list_limit
        self._lock = threading.Lock()

    def list(self) -> List[LocationRecord]:
        return _tail(self._read(), self.list_limit)

    def append(self, record: LocationRecord) -> LocationRecord:
        with self._lock:
            records = self._read()
            if self.merge_on_append:
                records, stored = merge_record(records, record)
            else:
                records.append(record)
                stored = record
            write_json_atomic(self.path, [record_to_row(item) for item in records])
        logger.info("Stored %s with %d name(s)", stored.cell_id, len(stored.names))
        return stored

    def _read(self) -> List[LocationRecord]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                rows = json.load(handle)
        except (OSError, ValueError) as exc:
            raise StoreUnavailableError(f"Could not read locations from {self.path}: {exc}") from exc
        if not isinstance(rows, list):
            raise StoreUnavailableError(f"Location file {self.path} must contain a JSON array.")
        records = []
        for row in rows:
            if not isinstance(row, dict):
                logger.warning("Ignoring non-object row in %s: %r", self.path, row)
                continue
            records.append(record_from_row(row, self.snapper))
        return records


def _tail(records: List[LocationRecord], limit: Optional[int]) -> List[LocationRecord]:
    if limit is not None and limit > 0 and len(records) > limit:
        return list(records[-limit:])
    return list(records)
