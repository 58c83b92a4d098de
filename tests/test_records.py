import math
from datetime import datetime, timezone

from neighborhoods.core.aggregator import Aggregator
from neighborhoods.store.records import parse_timestamp, record_from_row, record_to_row


def test_local_storage_shape(snapper):
    row = {
        "id": "37.759_-122.419",
        "names": ["Mission"],
        "lat": 37.759,
        "lng": -122.419,
        "exactLat": 37.75901,
        "exactLng": -122.4185,
        "date": "2024-05-01T12:00:00.000Z",
        "count": 1,
    }
    record = record_from_row(row, snapper)

    assert record.cell_id == "37.759_-122.419"
    assert record.names == ("Mission",)
    assert record.exact_lat == 37.75901
    assert record.timestamp == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_database_shape_prefers_location_id_and_updated_at(snapper):
    row = {
        "id": 17,
        "location_id": "37.75_-122.4",
        "names": ["Mission", "", "Mission District"],
        "lat": "37.75",
        "lng": "-122.4",
        "exact_lat": 37.7501,
        "exact_lng": -122.4002,
        "count": "3",
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-02-01T00:00:00+00:00",
    }
    record = record_from_row(row, snapper)

    assert record.cell_id == "37.750_-122.400"
    assert record.names == ("Mission", "Mission District")
    assert record.lat == 37.75
    assert record.exact_lng == -122.4002
    assert record.count == 3
    assert record.timestamp == datetime(2024, 2, 1, tzinfo=timezone.utc)


def test_first_draft_shape_is_snapped(snapper):
    row = {"id": 1714564800000, "name": "Castro", "lat": 37.76091, "lng": -122.43502, "date": "2024-05-01"}
    record = record_from_row(row, snapper)

    assert record.cell_id == "37.761_-122.435"
    assert record.names == ("Castro",)
    assert record.lat == 37.761
    assert record.exact_lat == 37.76091
    assert snapper.matches(record.cell_id, record.lat, record.lng)


def test_garbage_row_becomes_skippable_record(snapper, colorizer):
    record = record_from_row({"names": ["X"], "lat": "north"}, snapper)

    assert record.cell_id == ""
    assert math.isnan(record.lat)
    assert Aggregator(snapper, colorizer).aggregate([record]) == []


def test_mismatched_legacy_row_is_excluded(snapper, colorizer):
    record = record_from_row({"id": "1_1", "names": ["Nowhere"], "lat": 37.0, "lng": 1.0}, snapper)
    assert Aggregator(snapper, colorizer).aggregate([record]) == []


def test_off_grid_legacy_id_is_not_resnapped(snapper, colorizer):
    row = {"id": "37.7591_-122.4189", "names": ["X"], "lat": 37.759, "lng": -122.419}
    record = record_from_row(row, snapper)

    assert record.cell_id == ""
    assert Aggregator(snapper, colorizer).aggregate([record]) == []


def test_record_round_trips_through_flat_row(snapper, normalizer):
    record = normalizer.normalize("Glen Park", 37.7337, -122.4336)
    row = record_to_row(record)

    assert set(row) == {"id", "names", "lat", "lng", "exactLat", "exactLng", "date", "count"}
    assert row["id"] == "37.734_-122.434"
    assert record_from_row(row, snapper) == record


def test_parse_timestamp_variants():
    epoch = datetime.fromtimestamp(0, tz=timezone.utc)
    assert parse_timestamp(None) == epoch
    assert parse_timestamp("not a date") == epoch
    assert parse_timestamp("2024-05-01 10:00:00 extra") == datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert parse_timestamp(1714564800000) == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    naive = datetime(2024, 5, 1, 9, 30)
    assert parse_timestamp(naive) == naive.replace(tzinfo=timezone.utc)


def test_parse_timestamp_out_of_range_number_is_epoch():
    epoch = datetime.fromtimestamp(0, tz=timezone.utc)
    assert parse_timestamp(1e20) == epoch
    assert parse_timestamp(-1e20) == epoch
