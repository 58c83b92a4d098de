"""Group location records into per-cell aggregates."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pandas as pd

from neighborhoods.common.geo import GridSnapper
from neighborhoods.common.models import AggregatedCell, LocationRecord
from neighborhoods.core.colorizer import Colorizer

logger = logging.getLogger(__name__)

CELL_COLUMNS = [
    "cell_id",
    "names",
    "count",
    "lat",
    "lng",
    "most_recent_timestamp",
    "display_color",
]


class _CellGroup:
    __slots__ = ("cell_id", "lat", "lng", "names", "mentions", "timestamp")

    def __init__(self, record: LocationRecord) -> None:
        self.cell_id = record.cell_id
        self.lat = record.lat
        self.lng = record.lng
        self.names: Dict[str, None] = {}
        self.mentions: List[str] = []
        self.timestamp = record.timestamp

    def add(self, record: LocationRecord) -> None:
        for name in record.safe_names:
            self.names.setdefault(name, None)
            self.mentions.append(name)
        if record.timestamp > self.timestamp:
            self.timestamp = record.timestamp


class Aggregator:
    """Merges records sharing a cell into one display unit."""

    def __init__(self, snapper: GridSnapper, colorizer: Optional[Colorizer] = None) -> None:
        self.snapper = snapper
        self.colorizer = colorizer or Colorizer()

    def aggregate(self, records: Iterable[LocationRecord]) -> List[AggregatedCell]:
        groups: Dict[str, _CellGroup] = {}
        skipped = 0
        for record in records:
            if not self.is_valid(record):
                skipped += 1
                continue
            group = groups.get(record.cell_id)
            if group is None:
                group = groups[record.cell_id] = _CellGroup(record)
            group.add(record)

        if skipped:
            logger.info("Skipped %d invalid record(s) during aggregation", skipped)

        cells = []
        for group in groups.values():
            if not group.names:
                continue
            if not _in_range(group.lat, group.lng):
                logger.warning("Dropping cell %s with out-of-range coordinates", group.cell_id)
                continue
            names = tuple(group.names)
            cells.append(
                AggregatedCell(
                    cell_id=group.cell_id,
                    names=names,
                    count=len(names),
                    lat=group.lat,
                    lng=group.lng,
                    most_recent_timestamp=group.timestamp,
                    display_color=self.colorizer.display_color(names),
                    mentions=tuple(group.mentions),
                )
            )
        return cells

    def is_valid(self, record: LocationRecord) -> bool:
        if not record.cell_id:
            logger.warning("Skipping record without a cell id: %r", record)
            return False
        if not (_finite(record.lat) and _finite(record.lng)):
            logger.warning("Skipping record %s with non-finite coordinates", record.cell_id)
            return False
        if not self.snapper.matches(record.cell_id, record.lat, record.lng):
            logger.warning(
                "Skipping corrupt record %s: coordinates (%s, %s) belong to %s",
                record.cell_id,
                record.lat,
                record.lng,
                self.snapper.cell_id(record.lat, record.lng),
            )
            return False
        if not isinstance(record.timestamp, datetime) or record.timestamp.tzinfo is None:
            logger.warning("Skipping record %s without an aware timestamp: %r", record.cell_id, record.timestamp)
            return False
        return True


def cells_frame(cells: Iterable[AggregatedCell]) -> pd.DataFrame:
    """Tabular view of aggregated cells for export and inspection."""

    rows = [
        {
            "cell_id": cell.cell_id,
            "names": ", ".join(cell.names),
            "count": cell.count,
            "lat": cell.lat,
            "lng": cell.lng,
            "most_recent_timestamp": cell.most_recent_timestamp.isoformat(),
            "display_color": cell.display_color,
        }
        for cell in cells
    ]
    return pd.DataFrame(rows, columns=CELL_COLUMNS)


def _finite(value: object) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def _in_range(lat: float, lng: float) -> bool:
    return _finite(lat) and _finite(lng) and -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0
