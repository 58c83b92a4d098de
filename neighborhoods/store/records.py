"""Map stored rows of any historical shape onto LocationRecord and back."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from neighborhoods.common.geo import GridSnapper
from neighborhoods.common.models import LocationRecord

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def record_from_row(row: Mapping[str, Any], snapper: GridSnapper) -> LocationRecord:
    """Adapt a flat row into a canonical record.

    Three shapes are understood:

    * ``{id, names, lat, lng, exactLat, exactLng, date, count}``
    * ``{location_id, names, lat, lng, exact_lat, exact_lng, count,
      created_at, updated_at}`` (``id`` there is a surrogate key)
    * ``{id, name, lat, lng, date}`` with unrounded coordinates, where ``id``
      is a millisecond timestamp rather than a cell id

    Bad values are carried through as empty ids or NaN coordinates so the
    aggregator can skip the record instead of the load failing.
    """

    names = parse_names(row)
    lat = _float(row.get("lat"))
    lng = _float(row.get("lng"))
    exact_lat = _float(_first(row, "exactLat", "exact_lat"), default=lat)
    exact_lng = _float(_first(row, "exactLng", "exact_lng"), default=lng)
    timestamp = parse_timestamp(_first(row, "updated_at", "date", "created_at"))

    raw_id = _first(row, "location_id", "id")
    cell_id = snapper.canonical_cell_id(raw_id) if isinstance(raw_id, str) else None
    if cell_id is None and "names" not in row and row.get("name"):
        if math.isfinite(lat) and math.isfinite(lng):
            exact_lat, exact_lng = lat, lng
            cell_id = snapper.cell_id(lat, lng)
            lat, lng = snapper.snap(lat), snapper.snap(lng)

    return LocationRecord(
        cell_id=cell_id or "",
        names=names,
        lat=lat,
        lng=lng,
        exact_lat=exact_lat,
        exact_lng=exact_lng,
        timestamp=timestamp,
        count=_int(row.get("count"), default=len(names) or 1),
    )


def record_to_row(record: LocationRecord) -> Dict[str, Any]:
    """Serialize to the flat shape older clients read."""

    return {
        "id": record.cell_id,
        "names": list(record.names),
        "lat": record.lat,
        "lng": record.lng,
        "exactLat": record.exact_lat,
        "exactLng": record.exact_lng,
        "date": record.timestamp.isoformat(),
        "count": record.count,
    }


def parse_names(row: Mapping[str, Any]) -> Tuple[str, ...]:
    raw = row.get("names")
    if raw is None:
        raw = [row.get("name")]
    elif isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, Iterable):
        return tuple()
    return tuple(str(name).strip() for name in raw if name and str(name).strip())


def parse_timestamp(value: Any) -> datetime:
    """Best-effort conversion of stored dates into aware UTC datetimes."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and math.isfinite(value):
        # epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return EPOCH
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = datetime.strptime(text.split(" ")[0].split("T")[0], "%Y-%m-%d")
            except ValueError:
                return EPOCH
    else:
        return EPOCH

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _first(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return None


def _float(value: Any, default: Optional[float] = math.nan) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
