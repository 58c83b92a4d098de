"""Wire map events, submissions, stores and redraws together."""

from __future__ import annotations

import logging
import math
import random
from typing import List, Optional, Tuple

from neighborhoods.app.map_surface import RecordingSurface
from neighborhoods.common.config import AppConfig
from neighborhoods.common.errors import SubmissionError
from neighborhoods.common.geo import GridSnapper
from neighborhoods.common.models import AggregatedCell, LocationRecord, RawSubmission
from neighborhoods.core.aggregator import Aggregator
from neighborhoods.core.colorizer import Colorizer
from neighborhoods.core.normalizer import LocationNormalizer
from neighborhoods.core.renderer import CellRenderer, MapSurface
from neighborhoods.store.color_store import InMemoryColorStore, JsonFileColorStore
from neighborhoods.store.location_store import (
    InMemoryLocationStore,
    JsonFileLocationStore,
    LocationStore,
)

logger = logging.getLogger(__name__)


def validate_submission(name: Optional[str], lat: Optional[float], lng: Optional[float]) -> RawSubmission:
    """Reject empty names and missing or out-of-range coordinates."""

    if lat is None or lng is None:
        raise SubmissionError("Please click on the map to set a location first.")
    cleaned = (name or "").strip()
    if not cleaned:
        raise SubmissionError("Please enter a name for this location.")
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError) as exc:
        raise SubmissionError(f"Coordinates must be numbers: {lat!r}, {lng!r}") from exc
    if not math.isfinite(lat) or not -90.0 <= lat <= 90.0:
        raise SubmissionError(f"Latitude {lat} is outside [-90, 90].")
    if not math.isfinite(lng) or not -180.0 <= lng <= 180.0:
        raise SubmissionError(f"Longitude {lng} is outside [-180, 180].")
    return RawSubmission(name=cleaned, lat=lat, lng=lng)


class MappingSession:
    """One user's view of the map: pending marker plus rendered cells."""

    def __init__(
        self,
        normalizer: LocationNormalizer,
        aggregator: Aggregator,
        renderer: CellRenderer,
        locations: LocationStore,
        surface: MapSurface,
    ) -> None:
        self.normalizer = normalizer
        self.aggregator = aggregator
        self.renderer = renderer
        self.locations = locations
        self.surface = surface
        self.pending: Optional[Tuple[float, float]] = None
        self.cells: List[AggregatedCell] = []

    @property
    def colorizer(self) -> Colorizer:
        return self.aggregator.colorizer

    def on_click(self, lat: float, lng: float) -> None:
        self.pending = (lat, lng)

    def on_drag_end(self, lat: float, lng: float) -> None:
        self.pending = (lat, lng)

    def submit(self, name: str, lat: Optional[float] = None, lng: Optional[float] = None) -> LocationRecord:
        """Validate, store and redraw. Store failures propagate unchanged."""

        if lat is None and lng is None and self.pending is not None:
            lat, lng = self.pending
        submission = validate_submission(name, lat, lng)
        record = self.normalizer.normalize_submission(submission)
        stored = self.locations.append(record)
        logger.info("Saved %r at %s", submission.name, stored.cell_id)
        self.refresh()
        return stored

    def refresh(self) -> List[AggregatedCell]:
        records = self.locations.list()
        cells = self.aggregator.aggregate(records)
        self.renderer.render(self.surface, cells)
        self.cells = cells
        return cells

    def recent(self, limit: int = 20) -> List[LocationRecord]:
        """Most recently stored records first."""

        records = self.locations.list()
        return list(reversed(records))[:limit]

    def neighborhood_names(self) -> List[str]:
        return sorted(self.colorizer.store.all())


def build_session(config: AppConfig, surface: Optional[MapSurface] = None) -> MappingSession:
    """Assemble a session from configuration."""

    snapper = GridSnapper(config.grid.step)
    if config.store.type == "file":
        color_store = JsonFileColorStore(config.store.colors_path)
        locations: LocationStore = JsonFileLocationStore(
            config.store.locations_path,
            snapper=snapper,
            merge_on_append=config.store.merge_on_append,
            list_limit=config.store.list_limit,
        )
    else:
        color_store = InMemoryColorStore()
        locations = InMemoryLocationStore(
            merge_on_append=config.store.merge_on_append,
            list_limit=config.store.list_limit,
        )

    colorizer = Colorizer(
        store=color_store,
        rng=random.Random(config.colors.seed),
        saturation=config.colors.saturation,
        lightness=config.colors.lightness,
        default_color=config.colors.default_color,
    )
    colorizer.load()
    return MappingSession(
        normalizer=LocationNormalizer(snapper),
        aggregator=Aggregator(snapper, colorizer),
        renderer=CellRenderer(
            snapper,
            colorizer,
            border_darken=config.colors.border_darken,
            share_basis=config.render.share_basis,
        ),
        locations=locations,
        surface=surface if surface is not None else RecordingSurface(),
    )
