from __future__ import annotations

import math
import pathlib
import sys

import h3
import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from geocells.encoders import h3_grid  # noqa: E402
from geocells.encoders.h3_grid import H3Cell  # noqa: E402
from geocells.model import Point, ValidationError, distance_km  # noqa: E402

SAN_FRANCISCO = Point(37.7749, -122.4194)


def test_encode_matches_library() -> None:
    cell = h3_grid.encode(SAN_FRANCISCO, 9)
    assert cell == h3.latlng_to_cell(37.7749, -122.4194, 9)
    assert h3_grid.resolution_of(cell) == 9
    assert h3_grid.to_h3(SAN_FRANCISCO) == cell


@pytest.mark.parametrize("resolution", [-1, 16])
def test_encode_rejects_bad_resolution(resolution: int) -> None:
    with pytest.raises(ValidationError):
        h3_grid.encode(SAN_FRANCISCO, resolution)


@pytest.mark.parametrize("cell", ["", "zzz", "ffffffffffffffff", "8928308280fffffx"])
def test_validate_cell_rejects_malformed(cell: str) -> None:
    with pytest.raises(ValidationError):
        h3_grid.decode(cell)


def test_round_trip_within_one_cell() -> None:
    rng = np.random.default_rng(21)
    lats = rng.uniform(-89.0, 89.0, size=100)
    lons = rng.uniform(-180.0, 180.0, size=100)
    for lat, lon in zip(lats, lons):
        point = Point(lat, lon)
        for resolution in (0, 3, 6, 9, 12, 15):
            cell = h3_grid.encode(point, resolution)
            center = h3_grid.from_h3(cell)
            assert distance_km(point, center) <= 1.5 * h3_grid.cell_width_km(resolution)


@pytest.mark.parametrize("resolution", [0, 1, 5, 9])
def test_twelve_pentagons_per_resolution(resolution: int) -> None:
    found = h3_grid.pentagons(resolution)
    assert len(found) == 12
    assert len(set(found)) == 12
    for cell in found:
        assert h3_grid.is_pentagon(cell)
        assert h3_grid.resolution_of(cell) == resolution
        assert len(h3_grid.neighbors(cell)) == 5
        if resolution < h3_grid.MAX_RESOLUTION:
            assert len(h3_grid.children(cell)) == 6


def test_hexagon_neighbors_and_children() -> None:
    cell = h3_grid.encode(SAN_FRANCISCO, 9)
    assert not h3_grid.is_pentagon(cell)
    found = h3_grid.neighbors(cell)
    assert len(found) == 6
    assert found == sorted(found)
    assert cell not in found
    assert len(h3_grid.children(cell)) == h3_grid.FANOUT == 7

    parent = h3_grid.parent(cell)
    assert h3_grid.resolution_of(parent) == 8
    assert cell in h3_grid.children(parent)
    assert h3_grid.parent(cell, 5) == h3_grid.encode(SAN_FRANCISCO, 5)


def test_parent_and_children_limits() -> None:
    with pytest.raises(ValidationError):
        h3_grid.parent(h3_grid.encode(SAN_FRANCISCO, 0))
    with pytest.raises(ValidationError):
        h3_grid.children(h3_grid.encode(SAN_FRANCISCO, 15))
    with pytest.raises(ValidationError):
        h3_grid.parent(h3_grid.encode(SAN_FRANCISCO, 5), 6)


def test_neighbor_adjacency_property() -> None:
    rng = np.random.default_rng(77)
    lats = rng.uniform(-90.0, 90.0, size=300)
    lons = rng.uniform(-180.0, 180.0, size=300)
    for lat, lon in zip(lats, lons):
        resolution = int(rng.integers(0, 16))
        cell = h3_grid.encode(Point(lat, lon), resolution)
        center = h3_grid.decode(cell)
        limit = 2.0 * h3_grid.cell_width_km(resolution)
        found = h3_grid.neighbors(cell)
        assert len(found) in (5, 6)
        for neighbor in found:
            assert h3_grid.resolution_of(neighbor) == resolution
            assert distance_km(center, h3_grid.decode(neighbor)) <= limit
            assert cell in h3_grid.neighbors(neighbor)


def test_neighbors_of_pentagons_are_adjacent() -> None:
    for resolution in (2, 7, 11):
        limit = 2.0 * h3_grid.cell_width_km(resolution)
        for cell in h3_grid.pentagons(resolution):
            center = h3_grid.decode(cell)
            for neighbor in h3_grid.neighbors(cell):
                assert distance_km(center, h3_grid.decode(neighbor)) <= limit


def test_cell_width_km() -> None:
    expected = math.sqrt(3.0) * h3.average_hexagon_edge_length(9, unit="km")
    assert h3_grid.cell_width_km(9) == pytest.approx(expected)
    assert h3_grid.cell_width_km(9) == pytest.approx(0.3478, rel=0.01)
    assert h3_grid.cell_width_km(8) > h3_grid.cell_width_km(9)


def test_polar_cell_bounds() -> None:
    north = h3_grid.encode(Point(90.0, 0.0), 2)
    assert h3_grid.contains_pole(north) == (True, False)
    bounds = h3_grid.decode_bounds(north)
    assert bounds.northeast.latitude == 90.0
    assert bounds.width_degrees == 360.0

    south = h3_grid.encode(Point(-90.0, 0.0), 2)
    assert h3_grid.contains_pole(south) == (False, True)
    assert h3_grid.decode_bounds(south).southwest.latitude == -90.0


def test_antimeridian_cell_bounds() -> None:
    cell = h3_grid.encode(Point(0.0, 180.0), 5)
    bounds = h3_grid.decode_bounds(cell)
    assert bounds.contains(Point(0.0, 180.0))
    assert bounds.contains(h3_grid.decode(cell))
    assert bounds.width_degrees < 5.0


def test_bounds_contain_center() -> None:
    rng = np.random.default_rng(13)
    lats = rng.uniform(-89.0, 89.0, size=100)
    lons = rng.uniform(-180.0, 180.0, size=100)
    for lat, lon in zip(lats, lons):
        cell = h3_grid.encode(Point(lat, lon), int(rng.integers(1, 12)))
        assert h3_grid.decode_bounds(cell).contains(h3_grid.decode(cell))


def test_h3_cell_value_type() -> None:
    cell = H3Cell.from_point(SAN_FRANCISCO, 8)
    assert cell.resolution == 8
    assert not cell.is_pentagon
    assert str(cell) == cell.index
    assert cell in cell.parent().children()
    assert len(cell.neighbors()) == 6
    assert cell.bounds.contains(cell.center)
    with pytest.raises(ValidationError):
        H3Cell("nope")
