"""Turn raw map submissions into canonical location records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from neighborhoods.common.geo import GridSnapper
from neighborhoods.common.models import LocationRecord, RawSubmission


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LocationNormalizer:
    """Snaps submissions onto the grid and stamps them."""

    def __init__(
        self,
        snapper: Optional[GridSnapper] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.snapper = snapper or GridSnapper()
        self.clock = clock

    def normalize(self, name: str, lat: float, lng: float) -> LocationRecord:
        """Build a single-name record; range checks are the caller's job."""

        lat = float(lat)
        lng = float(lng)
        return LocationRecord(
            cell_id=self.snapper.cell_id(lat, lng),
            names=(name,),
            lat=self.snapper.snap(lat),
            lng=self.snapper.snap(lng),
            exact_lat=lat,
            exact_lng=lng,
            timestamp=self.clock(),
            count=1,
        )

    def normalize_submission(self, submission: RawSubmission) -> LocationRecord:
        return self.normalize(submission.name, submission.lat, submission.lng)
