"""Geospatial helpers for grid-snapped neighborhood cells."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Tuple

from .models import CellBounds

DEFAULT_STEP = 0.001  # ~111 m at the equator
CELL_SEPARATOR = "_"


class GridSnapper:
    """Maps latitude/longitude pairs onto deterministic grid cells.

    Rounding happens in decimal arithmetic on the shortest repr of the float,
    so ``-122.4185`` snaps to ``-122.419`` no matter how the binary value
    happens to sit around the midpoint.
    """

    def __init__(self, step: float = DEFAULT_STEP) -> None:
        if not step or step <= 0 or not math.isfinite(step):
            raise ValueError(f"Grid step must be a positive number, got {step!r}.")
        self.step = float(step)
        self._step_decimal = Decimal(repr(self.step))
        self.places = max(0, -self._step_decimal.normalize().as_tuple().exponent)
        self._quantum = Decimal(1).scaleb(-self.places)

    def snap_decimal(self, value: float) -> Decimal:
        steps = (Decimal(repr(float(value))) / self._step_decimal).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
        snapped = (steps * self._step_decimal).quantize(self._quantum)
        if snapped.is_zero():
            snapped = abs(snapped)
        return snapped

    def snap(self, value: float) -> float:
        return float(self.snap_decimal(value))

    def cell_id(self, lat: float, lng: float) -> str:
        if lat is None or lng is None:
            raise ValueError("Latitude and longitude must be provided for grid snapping.")
        return f"{self._format(lat)}{CELL_SEPARATOR}{self._format(lng)}"

    def matches(self, cell_id: str, lat: float, lng: float) -> bool:
        """True when ``cell_id`` is what ``lat``/``lng`` snap to."""

        if not math.isfinite(lat) or not math.isfinite(lng):
            return False
        return self.cell_id(lat, lng) == cell_id

    def cell_center(self, cell_id: str) -> Tuple[float, float]:
        parts = _split(cell_id)
        if parts is None:
            raise ValueError(f"Malformed cell id: {cell_id!r}")
        return parts

    def cell_bounds(self, cell_id: str) -> CellBounds:
        lat, lng = self.cell_center(cell_id)
        half = self.step / 2
        return CellBounds(
            south=round(lat - half, self.places + 1),
            west=round(lng - half, self.places + 1),
            north=round(lat + half, self.places + 1),
            east=round(lng + half, self.places + 1),
        )

    def canonical_cell_id(self, raw_id: object) -> Optional[str]:
        """Reformat a legacy id such as ``"37.75_-122.4"``.

        Returns None when the id is unparseable or either coordinate is off
        the grid, so a corrupt id is never re-snapped onto a real cell.
        """

        parts = _split(str(raw_id)) if raw_id is not None else None
        if parts is None:
            return None
        pieces = str(raw_id).split(CELL_SEPARATOR)
        for value, piece in zip(parts, pieces):
            if self.snap_decimal(value) != Decimal(piece):
                return None
        return self.cell_id(*parts)

    def _format(self, value: float) -> str:
        return f"{self.snap_decimal(value):.{self.places}f}"


def _split(cell_id: str) -> Optional[Tuple[float, float]]:
    pieces = cell_id.split(CELL_SEPARATOR)
    if len(pieces) != 2:
        return None
    try:
        lat, lng = (float(Decimal(piece)) for piece in pieces)
    except (InvalidOperation, ValueError):
        return None
    if not math.isfinite(lat) or not math.isfinite(lng):
        return None
    return lat, lng
