import pytest

from src.common.errors import InvalidCoordinate
from src.common.models import DatasetSource, HomeProfile
from src.ingest.records import (
    clean_incidents,
    clean_stations,
    parse_coordinate,
    parse_incident,
    parse_profile,
)


def test_parse_incident_coerces_numeric_strings():
    point = parse_incident(
        {"id": 9, "latitude": "45.5", "longitude": "-73.6", "category": "Vol", "date": "2024-01-01", "pdqId": "21"},
        DatasetSource.NEAR,
    )

    assert point.latitude == 45.5
    assert point.longitude == -73.6
    assert point.source is DatasetSource.NEAR
    assert point.pdq_id == 21
    assert point.occurred_at.year == 2024


def test_parse_coordinate_rejects_missing_and_non_finite_values():
    for bad in (None, "", "abc", float("nan"), float("inf"), True):
        with pytest.raises(InvalidCoordinate):
            parse_coordinate(bad, "latitude")


def test_clean_incidents_drops_invalid_records():
    records = [
        {"id": 1, "latitude": 45.5, "longitude": -73.6},
        {"id": 2, "latitude": None, "longitude": -73.6},
        {"id": 3, "latitude": "NaN", "longitude": -73.6},
        {"latitude": 45.5, "longitude": -73.6},
    ]

    points = clean_incidents(records)

    assert [p.id for p in points] == [1]
    assert points[0].category_label == "Unknown"


def test_clean_incidents_skips_records_that_are_not_objects():
    points = clean_incidents([{"id": 1, "latitude": 45.5, "longitude": -73.6}, None, "junk", 7])

    assert [p.id for p in points] == [1]


def test_clean_stations_skips_unusable_rows():
    stations = clean_stations(
        [
            {"id": 21, "name": "PDQ 21", "latitude": 45.52, "longitude": -73.58},
            {"id": None, "latitude": 45.52, "longitude": -73.58},
            {"id": 22, "latitude": "x", "longitude": -73.58},
            None,
        ]
    )

    assert [s.id for s in stations] == [21]
    assert stations[0].name == "PDQ 21"


def test_parse_profile_reads_nested_user_profile():
    payload = {"success": True, "user": {"id": 1, "profile": {"homeLat": 45.5, "homeLng": -73.6, "homeRadiusM": None}}}

    profile = parse_profile(payload)

    assert profile == HomeProfile(45.5, -73.6, None)
    assert profile.is_set
    assert profile.effective_radius_m == 400.0


def test_parse_profile_without_profile_returns_none():
    assert parse_profile({"success": True, "user": {"id": 1, "profile": None}}) is None
    assert parse_profile(None) is None
    assert parse_profile({"user": {"profile": {"homeLat": None, "homeLng": None}}}) == HomeProfile()
