from __future__ import annotations

import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from geocells.covering.ranges import (  # noqa: E402
    KeyRange,
    get_range_for_bounding_box,
    get_range_for_radius,
    get_ranges_for_bounding_box,
    get_ranges_for_radius,
)
from geocells.encoders import geohash  # noqa: E402
from geocells.model import Point, Rectangle, ValidationError  # noqa: E402


def test_range_for_bay_area_box() -> None:
    rect = Rectangle(Point(37.7, -122.5), Point(37.9, -122.3))
    key_range = get_range_for_bounding_box(rect, 6)
    assert key_range.low == geohash.encode(37.7, -122.5, 6)
    assert key_range.high == geohash.encode(37.9, -122.3, 6)
    assert key_range.low < key_range.high
    assert key_range.precision == 6


def test_every_point_of_the_box_falls_in_the_range() -> None:
    rng = np.random.default_rng(2)
    for _ in range(20):
        south = rng.uniform(-80.0, 70.0)
        west = rng.uniform(-180.0, 160.0)
        rect = Rectangle.from_bounds(
            south, west, south + rng.uniform(0.0, 10.0), west + rng.uniform(0.0, 20.0)
        )
        precision = int(rng.integers(1, 9))
        key_range = get_range_for_bounding_box(rect, precision)
        lats = rng.uniform(rect.southwest.latitude, rect.northeast.latitude, size=50)
        lons = rng.uniform(rect.southwest.longitude, rect.northeast.longitude, size=50)
        for lat, lon in zip(lats, lons):
            key = geohash.encode(lat, lon, precision)
            assert key_range.low <= key <= key_range.high
            assert key in key_range


def test_key_range_membership_uses_prefix() -> None:
    key_range = KeyRange("9q8yy", "9q8yz")
    assert "9q8yyk8" in key_range
    assert "9q8z0" not in key_range
    assert 5 not in key_range


def test_key_range_requires_matching_precision() -> None:
    with pytest.raises(ValidationError):
        KeyRange("9q8y", "9q8yz")
    with pytest.raises(ValidationError):
        KeyRange("9q8ya", "9q8yz")


def test_range_for_radius_contains_center() -> None:
    center = Point(37.7749, -122.4194)
    key_range = get_range_for_radius(center, 1.0, 6)
    assert geohash.to_geohash(center, 6) in key_range
    rect = Rectangle.from_center_and_radius(center, 1.0)
    assert key_range == get_range_for_bounding_box(rect, 6)


def test_range_for_radius_rejects_negative_radius() -> None:
    with pytest.raises(ValidationError):
        get_range_for_radius(Point(0.0, 0.0), -1.0, 5)


def test_single_range_rejects_antimeridian_box() -> None:
    rect = Rectangle.from_bounds(-1.0, 179.0, 1.0, -179.0)
    with pytest.raises(ValidationError):
        get_range_for_bounding_box(rect, 5)


def test_antimeridian_box_splits_into_two_ranges() -> None:
    rect = Rectangle.from_bounds(-1.0, 179.0, 1.0, -179.0)
    west, east = get_ranges_for_bounding_box(rect, 5)
    assert west.low == geohash.encode(-1.0, 179.0, 5)
    assert west.high == geohash.encode(1.0, 180.0, 5)
    assert east.low == geohash.encode(-1.0, -180.0, 5)
    assert east.high == geohash.encode(1.0, -179.0, 5)
    assert geohash.encode(0.0, 179.5, 5) in west
    assert geohash.encode(0.0, -179.5, 5) in east


def test_ranges_for_radius() -> None:
    plain = get_ranges_for_radius(Point(37.7749, -122.4194), 2.0, 6)
    assert len(plain) == 1
    crossing = get_ranges_for_radius(Point(0.0, 179.99), 5.0, 6)
    assert len(crossing) == 2
    assert geohash.encode(0.0, 179.99, 6) in crossing[0]
    assert geohash.encode(0.0, -179.99, 6) in crossing[1]
