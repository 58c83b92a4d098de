"""Dataclasses shared between the store, aggregation and render layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Tuple


@dataclass(frozen=True)
class RawSubmission:
    name: str
    lat: float
    lng: float


@dataclass(frozen=True)
class LocationRecord:
    """One persisted submission, keyed by its grid cell."""

    cell_id: str
    names: Tuple[str, ...]
    lat: float
    lng: float
    exact_lat: float
    exact_lng: float
    timestamp: datetime
    count: int = 1

    @property
    def safe_names(self) -> Tuple[str, ...]:
        """Drop blank entries left behind by older drafts."""

        return tuple(name for name in self.names if name)


@dataclass(frozen=True)
class AggregatedCell:
    cell_id: str
    names: Tuple[str, ...]
    count: int
    lat: float
    lng: float
    most_recent_timestamp: datetime
    display_color: str
    mentions: Tuple[str, ...] = field(default=())


@dataclass(frozen=True)
class NameShare:
    name: str
    color: str
    percentage: int


@dataclass(frozen=True)
class CellBounds:
    south: float
    west: float
    north: float
    east: float

    def polygon(self) -> list:
        """Closed ring in (lng, lat) order, as deck.gl expects."""

        return [
            [self.west, self.south],
            [self.east, self.south],
            [self.east, self.north],
            [self.west, self.north],
            [self.west, self.south],
        ]


@dataclass(frozen=True)
class PopupContent:
    title: str
    shares: Tuple[NameShare, ...]
    lat: float
    lng: float
    updated: datetime


@dataclass(frozen=True)
class RenderInstruction:
    cell_id: str
    bounds: CellBounds
    fill_color: str
    border_color: str
    popup: PopupContent
    popup_html: str
