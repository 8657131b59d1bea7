from __future__ import annotations

import math
import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from geocells.encoders import s2  # noqa: E402
from geocells.encoders.s2 import S2Cell  # noqa: E402
from geocells.model import Point, ValidationError, distance_km  # noqa: E402

SAN_FRANCISCO = Point(37.7749, -122.4194)


def _random_points(rng: np.random.Generator, count: int, max_lat: float = 90.0) -> list[Point]:
    lats = rng.uniform(-max_lat, max_lat, size=count)
    lons = rng.uniform(-180.0, 180.0, size=count)
    return [Point(lat, lon) for lat, lon in zip(lats, lons)]


@pytest.mark.parametrize(
    "latitude, longitude, face",
    [(0.0, 0.0, 0), (0.0, 90.0, 1), (90.0, 0.0, 2), (0.0, 180.0, 3), (0.0, -90.0, 4), (-90.0, 0.0, 5)],
)
def test_face_of_cardinal_points(latitude: float, longitude: float, face: int) -> None:
    token = s2.encode(Point(latitude, longitude), 10)
    assert s2.face_of(token) == face


def test_level_zero_tokens() -> None:
    assert s2.encode(Point(0.0, 0.0), 0) == "1"
    assert s2.encode(Point(0.0, 90.0), 0) == "3"
    assert s2.encode(Point(90.0, 0.0), 0) == "5"
    assert s2.encode(Point(0.0, 180.0), 0) == "7"
    assert s2.encode(Point(0.0, -90.0), 0) == "9"
    assert s2.encode(Point(-90.0, 0.0), 0) == "b"


def test_token_formatting() -> None:
    assert s2.cell_id_to_token(266) == "000000000000010a"
    assert s2.cell_id_to_token(0x1000000000000000) == "1"
    assert s2.token_to_cell_id("1") == 0x1000000000000000
    assert s2.token_to_cell_id("000000000000010a") == 266


@pytest.mark.parametrize("token", ["", "xyz", "0", "2", "c", "11111111111111111", "X"])
def test_validate_token_rejects_malformed(token: str) -> None:
    with pytest.raises(ValidationError):
        s2.validate_token(token)


@pytest.mark.parametrize("level", [-1, 31])
def test_encode_rejects_bad_level(level: int) -> None:
    with pytest.raises(ValidationError):
        s2.encode(SAN_FRANCISCO, level)


def test_lookup_tables_cover_every_entry() -> None:
    assert len(s2._LOOKUP_POS) == 1024
    assert len(s2._LOOKUP_IJ) == 1024
    # Each orientation maps the 256 positions of a 16x16 block one to one.
    for orientation in range(4):
        positions = {s2._LOOKUP_POS[(ij << 2) + orientation] >> 2 for ij in range(256)}
        assert positions == set(range(256))


def test_face_ij_round_trip() -> None:
    rng = np.random.default_rng(3)
    for _ in range(200):
        face = int(rng.integers(0, 6))
        i = int(rng.integers(0, 1 << 30))
        j = int(rng.integers(0, 1 << 30))
        leaf = s2._from_face_ij(face, i, j)
        assert s2._to_face_ij(leaf) == (face, i, j)


def test_level_and_round_trip() -> None:
    rng = np.random.default_rng(42)
    for point in _random_points(rng, 100):
        for level in (0, 1, 5, 10, 16, 23, 30):
            token = s2.encode(point, level)
            assert s2.level_of(token) == level
            center = s2.decode(token)
            assert distance_km(point, center) <= 1.5 * s2.cell_width_km(level) + 1e-6


def test_leaf_cells_are_tiny() -> None:
    token = s2.encode(SAN_FRANCISCO, 30)
    assert distance_km(SAN_FRANCISCO, s2.decode(token)) < 0.001


def test_parent_and_children() -> None:
    token = s2.to_s2_token(SAN_FRANCISCO)
    assert s2.level_of(token) == s2.DEFAULT_LEVEL == 16
    parent = s2.parent(token)
    assert s2.level_of(parent) == 15
    siblings = s2.children(parent)
    assert len(siblings) == s2.FANOUT == 4
    assert token in siblings
    assert s2.parent(token, 10) == s2.encode(SAN_FRANCISCO, 10)
    assert s2.parent(token, 16) == token
    for child in s2.children(token):
        assert s2.parent(child) == token
        assert s2.level_of(child) == 17

    with pytest.raises(ValidationError):
        s2.parent(s2.encode(SAN_FRANCISCO, 0))
    with pytest.raises(ValidationError):
        s2.parent(token, 17)
    with pytest.raises(ValidationError):
        s2.children(s2.encode(SAN_FRANCISCO, 30))


def test_children_contain_the_encoded_point() -> None:
    token = s2.encode(SAN_FRANCISCO, 12)
    assert s2.encode(SAN_FRANCISCO, 13) in s2.children(token)


def test_interior_cell_has_eight_neighbors() -> None:
    token = s2.encode(SAN_FRANCISCO, 12)
    found = s2.neighbors(token)
    assert len(found) == 8
    assert len(set(found)) == 8
    assert token not in found
    edges = s2.edge_neighbors(token)
    assert len(edges) == 4
    assert set(edges) <= set(found)
    for neighbor in found:
        assert s2.level_of(neighbor) == 12


def test_cube_corner_cell_has_seven_neighbors() -> None:
    level = 10
    corner_leaf = s2._from_face_ij(0, (1 << 30) - 1, (1 << 30) - 1)
    token = s2.cell_id_to_token(s2._parent_id(corner_leaf, level))
    found = s2.neighbors(token)
    assert len(found) == 7
    faces = {s2.face_of(neighbor) for neighbor in found}
    assert faces == {0, 1, 2}


def test_neighbor_adjacency_property() -> None:
    rng = np.random.default_rng(1234)
    for point in _random_points(rng, 300):
        level = int(rng.integers(2, 25))
        token = s2.encode(point, level)
        center = s2.decode(token)
        limit = 2.0 * s2.cell_width_km(level)
        found = s2.neighbors(token)
        assert len(found) in (7, 8)
        for neighbor in found:
            assert s2.level_of(neighbor) == level
            assert distance_km(center, s2.decode(neighbor)) <= limit


def test_edge_neighbor_symmetry_everywhere() -> None:
    rng = np.random.default_rng(99)
    for point in _random_points(rng, 150):
        level = int(rng.integers(2, 20))
        token = s2.encode(point, level)
        for neighbor in s2.edge_neighbors(token):
            assert token in s2.edge_neighbors(neighbor)


def test_neighbor_symmetry_away_from_cube_corners() -> None:
    rng = np.random.default_rng(5)
    for point in _random_points(rng, 150, max_lat=25.0):
        level = int(rng.integers(4, 20))
        token = s2.encode(point, level)
        for neighbor in s2.neighbors(token):
            assert token in s2.neighbors(neighbor)


def test_neighbors_cross_face_boundary() -> None:
    # Longitude 45 is the edge between faces 0 and 1 on the equator.
    west = s2.encode(Point(0.0, 44.9999), 12)
    east = s2.encode(Point(0.0, 45.0001), 12)
    assert s2.face_of(west) == 0
    assert s2.face_of(east) == 1
    assert east in s2.edge_neighbors(west)
    assert west in s2.edge_neighbors(east)


def test_level_zero_bounds() -> None:
    face0 = s2.decode_bounds("1")
    assert (face0.southwest.latitude, face0.southwest.longitude) == (-45.0, -45.0)
    assert (face0.northeast.latitude, face0.northeast.longitude) == (45.0, 45.0)
    north = s2.decode_bounds("5")
    assert north.northeast.latitude == 90.0
    assert north.southwest.latitude == pytest.approx(35.264389682754654)
    assert north.width_degrees == 360.0
    assert s2.decode_bounds("7").crosses_antimeridian


def test_polar_cell_bounds_span_all_longitudes() -> None:
    for level in (3, 8):
        bounds = s2.decode_bounds(s2.encode(Point(90.0, 0.0), level))
        assert bounds.northeast.latitude == 90.0
        assert bounds.width_degrees == 360.0
        south = s2.decode_bounds(s2.encode(Point(-90.0, 0.0), level))
        assert south.southwest.latitude == -90.0


def test_bounds_contain_center() -> None:
    rng = np.random.default_rng(8)
    for point in _random_points(rng, 100):
        level = int(rng.integers(1, 20))
        token = s2.encode(point, level)
        bounds = s2.decode_bounds(token)
        assert bounds.contains(s2.decode(token))


def test_antimeridian_cell_bounds() -> None:
    token = s2.encode(Point(0.0, 180.0), 6)
    bounds = s2.decode_bounds(token)
    assert bounds.contains(s2.decode(token))
    assert bounds.width_degrees < 10.0


def test_cell_width_km() -> None:
    assert s2.cell_width_km(0) == pytest.approx(6371.0 * math.sqrt(4 * math.pi / 6))
    assert s2.cell_width_km(10) == pytest.approx(s2.cell_width_km(0) / 1024)
    with pytest.raises(ValidationError):
        s2.cell_width_km(31)


def test_s2_cell_value_type() -> None:
    cell = S2Cell.from_point(SAN_FRANCISCO, 14)
    assert cell.level == 14
    assert cell.face == s2.face_of(cell.token)
    assert cell.cell_id == s2.token_to_cell_id(cell.token)
    assert str(cell) == cell.token
    assert cell in cell.parent().children()
    assert len(cell.neighbors()) == 8
    assert cell.bounds.contains(cell.center)
    assert s2.from_s2_token(cell.token) == cell.center
    with pytest.raises(ValidationError):
        S2Cell("not-a-token")


def test_level_zero_faces_have_four_neighbors() -> None:
    face = s2.encode(Point(0.0, 0.0), 0)
    assert sorted(s2.neighbors(face)) == ["3", "5", "9", "b"]
    assert sorted(s2.edge_neighbors(face)) == ["3", "5", "9", "b"]
