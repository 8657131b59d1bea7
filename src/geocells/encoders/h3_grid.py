"""Hexagonal cells backed by the H3 library.

Every resolution tiles the globe with hexagons plus exactly twelve pentagons
sitting on the vertices of the underlying icosahedron. Pentagons have five
neighbours and six children instead of six and seven.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass

import h3

from geocells.model import Point, Rectangle, ValidationError

__all__ = [
    "MIN_RESOLUTION",
    "MAX_RESOLUTION",
    "DEFAULT_RESOLUTION",
    "FANOUT",
    "H3Cell",
    "H3Scheme",
    "scheme",
    "encode",
    "decode",
    "decode_bounds",
    "neighbors",
    "is_pentagon",
    "pentagons",
    "contains_pole",
    "parent",
    "children",
    "resolution_of",
    "validate_cell",
    "cell_width_km",
    "to_h3",
    "from_h3",
]


MIN_RESOLUTION = 0
MAX_RESOLUTION = 15
DEFAULT_RESOLUTION = 9
FANOUT = 7

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}


def _check_resolution(resolution: int) -> int:
    if isinstance(resolution, bool) or not isinstance(resolution, int):
        raise ValidationError("H3 resolution must be an integer")
    if not MIN_RESOLUTION <= resolution <= MAX_RESOLUTION:
        raise ValidationError(
            f"H3 resolution must fall within the inclusive range "
            f"[{MIN_RESOLUTION}, {MAX_RESOLUTION}], got {resolution}"
        )
    return resolution


def validate_cell(cell: str) -> str:
    """Return ``cell`` unchanged or raise :class:`ValidationError`."""

    if not isinstance(cell, str) or not cell:
        raise ValidationError("H3 cell cannot be empty")
    if not h3.is_valid_cell(cell):
        raise ValidationError(f"Invalid H3 cell {cell!r}")
    return cell


def encode(point: Point, resolution: int = DEFAULT_RESOLUTION) -> str:
    _check_resolution(resolution)
    try:
        return h3.latlng_to_cell(point.latitude, point.longitude, resolution)
    except (h3.H3BaseException, ValueError) as exc:
        raise ValidationError(f"Cannot index {point} at resolution {resolution}") from exc


def decode(cell: str) -> Point:
    """Return the centre of ``cell``."""

    validate_cell(cell)
    lat, lng = h3.cell_to_latlng(cell)
    return Point(lat, lng)


def resolution_of(cell: str) -> int:
    return h3.get_resolution(validate_cell(cell))


def is_pentagon(cell: str) -> bool:
    return bool(h3.is_pentagon(validate_cell(cell)))


def pentagons(resolution: int) -> list[str]:
    """Return the twelve pentagon cells of ``resolution`` in sorted order."""

    _check_resolution(resolution)
    return sorted(h3.get_pentagons(resolution))


def contains_pole(cell: str) -> tuple[bool, bool]:
    """Return ``(north, south)`` flags telling whether ``cell`` contains a pole."""

    resolution = resolution_of(cell)
    north = h3.latlng_to_cell(90.0, 0.0, resolution) == cell
    south = h3.latlng_to_cell(-90.0, 0.0, resolution) == cell
    return north, south


def decode_bounds(cell: str) -> Rectangle:
    """Bounding rectangle of the cell boundary.

    Cells containing a pole span every longitude, and cells straddling the
    antimeridian come back as crossing rectangles.
    """

    validate_cell(cell)
    vertices = [Point(lat, lng) for lat, lng in h3.cell_to_boundary(cell)]
    north, south = contains_pole(cell)
    if north or south:
        lats = [p.latitude for p in vertices]
        low = -90.0 if south else min(lats)
        high = 90.0 if north else max(lats)
        return Rectangle.from_bounds(low, -180.0, high, 180.0)
    return Rectangle.from_vertices(vertices, decode(cell))


def neighbors(cell: str) -> list[str]:
    """Return the adjacent cells of ``cell`` in sorted order (6, or 5 for pentagons)."""

    validate_cell(cell)
    ring = set(h3.grid_disk(cell, 1))
    ring.discard(cell)
    return sorted(ring)


def parent(cell: str, resolution: int | None = None) -> str:
    current = resolution_of(cell)
    if resolution is None:
        if current == MIN_RESOLUTION:
            raise ValidationError("Cannot get the parent of a resolution 0 H3 cell")
        resolution = current - 1
    _check_resolution(resolution)
    if resolution > current:
        raise ValidationError(
            f"Parent resolution {resolution} must not exceed the cell resolution {current}"
        )
    return h3.cell_to_parent(cell, resolution)


def children(cell: str) -> list[str]:
    current = resolution_of(cell)
    if current == MAX_RESOLUTION:
        raise ValidationError(
            f"Cannot get children of a resolution {MAX_RESOLUTION} H3 cell"
        )
    return sorted(h3.cell_to_children(cell, current + 1))


def cell_width_km(resolution: int) -> float:
    """Centre-to-centre spacing of adjacent hexagons at ``resolution``."""

    _check_resolution(resolution)
    return math.sqrt(3.0) * h3.average_hexagon_edge_length(resolution, unit="km")


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class H3Cell:
    """A validated H3 cell index."""

    index: str

    def __post_init__(self) -> None:
        validate_cell(self.index)

    @classmethod
    def from_point(cls, point: Point, resolution: int = DEFAULT_RESOLUTION) -> H3Cell:
        return cls(encode(point, resolution))

    @property
    def resolution(self) -> int:
        return resolution_of(self.index)

    @property
    def is_pentagon(self) -> bool:
        return is_pentagon(self.index)

    @property
    def bounds(self) -> Rectangle:
        return decode_bounds(self.index)

    @property
    def center(self) -> Point:
        return decode(self.index)

    def neighbors(self) -> list[H3Cell]:
        return [H3Cell(index) for index in neighbors(self.index)]

    def parent(self) -> H3Cell:
        return H3Cell(parent(self.index))

    def children(self) -> list[H3Cell]:
        return [H3Cell(index) for index in children(self.index)]

    def __str__(self) -> str:
        return self.index


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class H3Scheme:
    """Grid-scheme adapter used by the ring-expansion covering."""

    name: str = "h3"
    min_level: int = MIN_RESOLUTION
    max_level: int = MAX_RESOLUTION
    fanout: int = FANOUT

    def check_level(self, level: int) -> int:
        return _check_resolution(level)

    def encode(self, point: Point, level: int) -> str:
        return encode(point, level)

    def decode(self, key: str) -> Point:
        return decode(key)

    def decode_bounds(self, key: str) -> Rectangle:
        return decode_bounds(key)

    def neighbors(self, key: str) -> list[str]:
        return neighbors(key)

    def parent(self, key: str) -> str:
        return parent(key)

    def children(self, key: str) -> list[str]:
        return children(key)

    def level_of(self, key: str) -> int:
        return resolution_of(key)

    def cell_width_km(self, level: int) -> float:
        return cell_width_km(level)


scheme = H3Scheme()


def to_h3(point: Point, resolution: int = DEFAULT_RESOLUTION) -> str:
    return encode(point, resolution)


def from_h3(cell: str) -> Point:
    return decode(cell)
