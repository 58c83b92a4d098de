import math
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pandas as pd

from neighborhoods.common.models import LocationRecord
from neighborhoods.core.aggregator import Aggregator, cells_frame

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _record(name, lat, lng, normalizer, minutes=0):
    record = normalizer.normalize(name, lat, lng)
    return replace(record, timestamp=FIXED_NOW + timedelta(minutes=minutes))


def test_aggregate_empty_input(snapper, colorizer):
    assert Aggregator(snapper, colorizer).aggregate([]) == []


def test_aggregator_merges_names_in_same_cell(snapper, colorizer, normalizer):
    records = [
        _record("Mission", 37.75901, -122.41850, normalizer),
        _record("Mission District", 37.75899, -122.41852, normalizer, minutes=5),
    ]

    cells = Aggregator(snapper, colorizer).aggregate(records)

    assert len(cells) == 1
    cell = cells[0]
    assert cell.cell_id == "37.759_-122.419"
    assert cell.names == ("Mission", "Mission District")
    assert cell.count == 2
    assert cell.most_recent_timestamp == FIXED_NOW + timedelta(minutes=5)


def test_grouping_ignores_submission_order(snapper, colorizer, normalizer):
    a = _record("Castro", 37.76091, -122.43502, normalizer)
    b = _record("Eureka Valley", 37.76089, -122.43498, normalizer)
    aggregator = Aggregator(snapper, colorizer)

    forward = aggregator.aggregate([a, b])
    backward = aggregator.aggregate([b, a])

    assert len(forward) == len(backward) == 1
    assert set(forward[0].names) == set(backward[0].names)


def test_name_dedup_is_case_sensitive(snapper, colorizer, normalizer):
    records = [
        _record("SoMa", 37.7785, -122.4056, normalizer),
        _record("Soma", 37.7785, -122.4056, normalizer),
        _record("SoMa", 37.7785, -122.4056, normalizer),
    ]

    cell = Aggregator(snapper, colorizer).aggregate(records)[0]

    assert cell.names == ("SoMa", "Soma")
    assert cell.count == 2
    assert cell.mentions == ("SoMa", "Soma", "SoMa")


def test_count_ignores_stale_stored_count(snapper, colorizer, normalizer):
    record = replace(_record("Sunset", 37.7535, -122.4946, normalizer), count=42)
    cell = Aggregator(snapper, colorizer).aggregate([record])[0]
    assert cell.count == 1


def test_corrupt_records_are_skipped(snapper, colorizer, normalizer):
    good = _record("Marina", 37.8037, -122.4368, normalizer)
    corrupt = LocationRecord(
        cell_id="1_1",
        names=("Nowhere",),
        lat=37.0,
        lng=1.0,
        exact_lat=37.0,
        exact_lng=1.0,
        timestamp=FIXED_NOW,
    )
    missing_id = replace(good, cell_id="")
    nan_coords = replace(good, lat=math.nan)

    cells = Aggregator(snapper, colorizer).aggregate([corrupt, good, missing_id, nan_coords])

    assert [cell.cell_id for cell in cells] == [good.cell_id]
    assert cells[0].names == ("Marina",)


def test_records_without_aware_timestamps_are_skipped(snapper, colorizer, normalizer):
    good = _record("Marina", 37.8037, -122.4368, normalizer)
    missing = replace(good, names=("Cow Hollow",), timestamp=None)
    naive = replace(good, names=("Pacific Heights",), timestamp=datetime(2024, 5, 2, 9, 0))

    cells = Aggregator(snapper, colorizer).aggregate([good, missing, naive])

    assert [cell.cell_id for cell in cells] == [good.cell_id]
    assert cells[0].names == ("Marina",)
    assert cells[0].most_recent_timestamp == FIXED_NOW


def test_only_corrupt_records_yield_nothing(snapper, colorizer):
    corrupt = LocationRecord(
        cell_id="1_1",
        names=("Nowhere",),
        lat=37.0,
        lng=1.0,
        exact_lat=37.0,
        exact_lng=1.0,
        timestamp=FIXED_NOW,
    )
    assert Aggregator(snapper, colorizer).aggregate([corrupt]) == []


def test_records_with_empty_names_contribute_nothing(snapper, colorizer, normalizer):
    named = _record("Dogpatch", 37.7575, -122.3880, normalizer)
    empty = replace(named, names=())
    empty_elsewhere = replace(_record("x", 37.7000, -122.4000, normalizer), names=())

    cells = Aggregator(snapper, colorizer).aggregate([empty, named, empty_elsewhere])

    assert len(cells) == 1
    assert cells[0].names == ("Dogpatch",)
    assert cells[0].count == 1


def test_out_of_range_cells_are_dropped(snapper, colorizer):
    record = LocationRecord(
        cell_id="95.000_10.000",
        names=("Beyond",),
        lat=95.0,
        lng=10.0,
        exact_lat=95.0,
        exact_lng=10.0,
        timestamp=FIXED_NOW,
    )
    assert Aggregator(snapper, colorizer).aggregate([record]) == []


def test_cells_keep_first_appearance_order(snapper, colorizer, normalizer):
    records = [
        _record("B", 37.1, -122.1, normalizer),
        _record("A", 37.2, -122.2, normalizer),
        _record("C", 37.1, -122.1, normalizer),
    ]
    cells = Aggregator(snapper, colorizer).aggregate(records)
    assert [cell.cell_id for cell in cells] == ["37.100_-122.100", "37.200_-122.200"]


def test_display_color_blends_name_colors(snapper, colorizer, normalizer):
    colorizer.store.put("red", "#ff0000")
    colorizer.store.put("blue", "#0000ff")
    records = [
        _record("Red", 37.5, -122.5, normalizer),
        _record("Blue", 37.5, -122.5, normalizer),
    ]

    cell = Aggregator(snapper, colorizer).aggregate(records)[0]

    assert cell.display_color == "rgb(128, 0, 128)"


def test_cells_frame(snapper, colorizer, normalizer):
    records = [
        _record("Mission", 37.75901, -122.41850, normalizer),
        _record("Mission District", 37.75899, -122.41852, normalizer),
    ]
    frame = cells_frame(Aggregator(snapper, colorizer).aggregate(records))

    assert isinstance(frame, pd.DataFrame)
    assert list(frame["cell_id"]) == ["37.759_-122.419"]
    assert frame.iloc[0]["count"] == 2
    assert frame.iloc[0]["names"] == "Mission, Mission District"


def test_cells_frame_empty_has_columns():
    frame = cells_frame([])
    assert frame.empty
    assert "display_color" in frame.columns
