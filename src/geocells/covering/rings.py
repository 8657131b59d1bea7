"""Ring-expansion covering for grid schemes.

Starting from the cell that contains the query centre, the search walks the
neighbour graph breadth first and keeps every cell whose centre falls inside
the query area grown by one cell width. The walk stops when no new cell is
accepted or when ``max_cells`` cells have been collected, whichever comes
first. The result is sorted by distance from the query centre.

The search is only as good as the scheme's ``neighbors``: a neighbour function
returning cells that are not geometrically adjacent makes the first ring fail
the containment test and the covering collapses to the seed cell.
"""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import Callable, Iterator, Protocol, Sequence

from geocells.model import EARTH_RADIUS_M, Point, Rectangle, ValidationError, distance_km

__all__ = [
    "DEFAULT_MAX_CELLS",
    "ABSOLUTE_MAX_CELLS",
    "POLAR_LATITUDE",
    "GridScheme",
    "CoveredCell",
    "Covering",
    "get_cells_for_bounding_box",
    "get_cells_for_radius",
    "estimate_cell_count",
    "estimate_cell_count_for_bounding_box",
]


DEFAULT_MAX_CELLS = 100
ABSOLUTE_MAX_CELLS = 500

# Queries centred poleward of this latitude at a level finer than the one
# listed for the scheme are logged: cells crowd together near the poles and
# the cap is reached long before the area is covered.
POLAR_LATITUDE = 85.0
_POLAR_FINE_LEVEL = {"s2": 14, "h3": 5}

_KM_PER_DEGREE = math.radians(EARTH_RADIUS_M / 1000.0)

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}

logger = logging.getLogger(__name__)


class GridScheme(Protocol):
    """Operations a cell grid must provide to be covered by ring expansion."""

    name: str
    min_level: int
    max_level: int
    fanout: int

    def check_level(self, level: int) -> int: ...

    def encode(self, point: Point, level: int) -> str: ...

    def decode(self, key: str) -> Point: ...

    def decode_bounds(self, key: str) -> Rectangle: ...

    def neighbors(self, key: str) -> list[str]: ...

    def parent(self, key: str) -> str: ...

    def children(self, key: str) -> list[str]: ...

    def cell_width_km(self, level: int) -> float: ...


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class CoveredCell:
    """A cell key and the distance from the query centre to the cell centre."""

    key: str
    distance_km: float


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class Covering:
    """Result of a ring-expansion search.

    Attributes
    ----------
    cells:
        Accepted cells in ascending distance order, ties broken by key.
    complete:
        ``False`` when the search stopped because it reached ``max_cells``;
        the cells are then the closest found so far, not a full covering.
    cells_visited:
        Number of distinct cells examined, accepted or not.
    level:
        Level or resolution the covering was computed at.
    """

    cells: tuple[CoveredCell, ...]
    complete: bool
    cells_visited: int
    level: int

    @property
    def keys(self) -> list[str]:
        return [cell.key for cell in self.cells]

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator[CoveredCell]:
        return iter(self.cells)


def _check_max_cells(max_cells: int) -> int:
    if isinstance(max_cells, bool) or not isinstance(max_cells, int):
        raise ValidationError("max_cells must be an integer")
    if not 1 <= max_cells <= ABSOLUTE_MAX_CELLS:
        raise ValidationError(
            f"max_cells must be between 1 and {ABSOLUTE_MAX_CELLS}, got {max_cells}"
        )
    return max_cells


def _expand_by_cell(rect: Rectangle, width_km: float) -> Rectangle:
    lat_degrees = width_km / _KM_PER_DEGREE
    # Widen by the latitude edge closest to a pole, where a degree of longitude is shortest.
    edge_lat = max(abs(rect.southwest.latitude), abs(rect.northeast.latitude))
    cos_lat = math.cos(math.radians(edge_lat))
    lon_degrees = lat_degrees / cos_lat if cos_lat > 1e-12 else 360.0
    return rect.expanded(lat_degrees, lon_degrees)


def _warn_if_polar(scheme: GridScheme, center: Point, level: int) -> None:
    fine_level = _POLAR_FINE_LEVEL.get(scheme.name)
    if fine_level is None or level <= fine_level:
        return
    if center.is_near_pole(POLAR_LATITUDE):
        logger.warning(
            "%s covering centred at %s uses level %d near a pole; "
            "results are likely to be truncated by the cell cap",
            scheme.name,
            center,
            level,
        )


def _ring_search(
    scheme: GridScheme,
    center: Point,
    area: Rectangle,
    level: int,
    max_cells: int,
    accept: Callable[[Point, float], bool],
) -> Covering:
    seed = scheme.encode(center, level)
    seed_distance = distance_km(center, scheme.decode(seed))
    visited = {seed}
    result = [CoveredCell(seed, seed_distance)]
    frontier: Sequence[str] = [seed]
    capped = len(result) >= max_cells

    while not capped:
        next_frontier: list[str] = []
        for cell in frontier:
            for neighbor in scheme.neighbors(cell):
                if neighbor in visited:
                    continue
                visited.add(neighbor)
                neighbor_center = scheme.decode(neighbor)
                if not area.contains(neighbor_center):
                    continue
                distance = distance_km(center, neighbor_center)
                if not accept(neighbor_center, distance):
                    continue
                result.append(CoveredCell(neighbor, distance))
                next_frontier.append(neighbor)
                if len(result) >= max_cells:
                    capped = True
                    break
            if capped:
                break
        if not next_frontier:
            break
        frontier = next_frontier

    result.sort(key=lambda c: (c.distance_km, c.key))
    cells = tuple(result[:max_cells])
    if capped:
        logger.debug(
            "%s covering at level %d stopped at the %d cell cap after visiting %d cells",
            scheme.name,
            level,
            max_cells,
            len(visited),
        )
    return Covering(cells=cells, complete=not capped, cells_visited=len(visited), level=level)


def get_cells_for_bounding_box(
    scheme: GridScheme,
    rect: Rectangle,
    level: int,
    max_cells: int = DEFAULT_MAX_CELLS,
    *,
    center: Point | None = None,
) -> Covering:
    """Cover ``rect`` with cells of ``scheme`` at ``level``.

    Parameters
    ----------
    scheme:
        Grid scheme providing encode/decode/neighbors.
    rect:
        Query rectangle; antimeridian-crossing rectangles are supported.
    level:
        Level or resolution of the returned cells.
    max_cells:
        Hard cap on the number of returned cells, at most
        :data:`ABSOLUTE_MAX_CELLS`.
    center:
        Seed point and distance origin. Defaults to the rectangle centre.
    """

    scheme.check_level(level)
    _check_max_cells(max_cells)
    origin = rect.center if center is None else center
    estimate = estimate_cell_count_for_bounding_box(scheme, rect, level)
    if estimate > max_cells:
        logger.debug(
            "%s covering of %s at level %d needs about %d cells; capped at %d",
            scheme.name,
            rect,
            level,
            estimate,
            max_cells,
        )
    _warn_if_polar(scheme, origin, level)
    area = _expand_by_cell(rect, scheme.cell_width_km(level))
    return _ring_search(scheme, origin, area, level, max_cells, lambda _point, _distance: True)


def get_cells_for_radius(
    scheme: GridScheme,
    center: Point,
    radius_km: float,
    level: int,
    max_cells: int = DEFAULT_MAX_CELLS,
) -> Covering:
    """Cover the circle of ``radius_km`` around ``center``.

    A cell is kept when its centre lies within ``radius_km`` plus one cell
    width of ``center``. The search area is the exact bounding rectangle of
    that larger circle, so the distance check alone decides the cut-off.
    """

    scheme.check_level(level)
    _check_max_cells(max_cells)
    if not 0 <= radius_km < math.inf:
        raise ValidationError(f"Radius must be a finite non-negative number, got {radius_km}")
    width = scheme.cell_width_km(level)
    limit = radius_km + width

    estimate = estimate_cell_count(scheme, radius_km, level)
    if estimate > max_cells:
        logger.debug(
            "%s covering of %.3f km at level %d needs about %d cells; capped at %d",
            scheme.name,
            radius_km,
            level,
            estimate,
            max_cells,
        )

    _warn_if_polar(scheme, center, level)
    area = Rectangle.enclosing_circle(center, limit)
    return _ring_search(
        scheme, center, area, level, max_cells, lambda _point, distance: distance <= limit
    )


def estimate_cell_count(scheme: GridScheme, radius_km: float, level: int) -> int:
    """Rough number of cells needed to cover a circle of ``radius_km``."""

    if not 0 <= radius_km < math.inf:
        raise ValidationError(f"Radius must be a finite non-negative number, got {radius_km}")
    width = scheme.cell_width_km(level)
    return max(1, math.ceil(math.pi * (radius_km + width) ** 2 / (width * width)))


def estimate_cell_count_for_bounding_box(scheme: GridScheme, rect: Rectangle, level: int) -> int:
    """Rough number of cells needed to cover ``rect``.

    The rectangle area is measured with the cosine of its mean latitude, which
    is good enough to decide whether a query fits under the cell cap.
    """

    width = scheme.cell_width_km(level)
    height_km = rect.height_degrees * _KM_PER_DEGREE
    mean_lat = (rect.southwest.latitude + rect.northeast.latitude) / 2.0
    width_km = rect.width_degrees * _KM_PER_DEGREE * math.cos(math.radians(mean_lat))
    return max(1, math.ceil(height_km * width_km / (width * width)))
