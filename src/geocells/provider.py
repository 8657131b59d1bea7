"""Single entry point dispatching queries to the three indexing schemes.

Geohash queries return lexicographic key ranges; the S2 and H3 grids return a
ring-expansion :class:`~geocells.covering.rings.Covering`. Precision can be
given explicitly or as :data:`ADAPTIVE`, in which case it is picked from the
query radius by :mod:`geocells.precision`.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Union

from geocells.covering import rings
from geocells.covering.ranges import KeyRange, get_ranges_for_bounding_box, get_ranges_for_radius
from geocells.encoders import geohash, h3_grid, s2
from geocells.model import Point, Rectangle, ValidationError, distance_km
from geocells.precision import select_precision

__all__ = [
    "ADAPTIVE",
    "Scheme",
    "RangeCovering",
    "GeospatialProvider",
    "provider",
]


ADAPTIVE = "adaptive"

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}

logger = logging.getLogger(__name__)


class Scheme(str, Enum):
    GEOHASH = "geohash"
    S2 = "s2"
    H3 = "h3"

    @classmethod
    def parse(cls, value: Union[str, "Scheme"]) -> "Scheme":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as exc:
            raise ValidationError(
                f"Unknown scheme {value!r}; expected one of geohash, s2, h3"
            ) from exc


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class RangeCovering:
    """Geohash key ranges approximating a query area (one per antimeridian side)."""

    ranges: tuple[KeyRange, ...]
    precision: int

    @property
    def low(self) -> str:
        return self.ranges[0].low

    @property
    def high(self) -> str:
        return self.ranges[-1].high

    def __len__(self) -> int:
        return len(self.ranges)


Precision = Union[int, str]
CoverResult = Union[RangeCovering, rings.Covering]

_GRIDS = {Scheme.S2: s2.scheme, Scheme.H3: h3_grid.scheme}


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class GeospatialProvider:
    """Dispatch encode and cover requests to the configured schemes.

    ``default_max_cells`` is used when a caller does not pass ``max_cells``.
    """

    default_max_cells: int = rings.DEFAULT_MAX_CELLS

    def __post_init__(self) -> None:
        if not 1 <= self.default_max_cells <= rings.ABSOLUTE_MAX_CELLS:
            raise ValidationError(
                f"default_max_cells must be between 1 and {rings.ABSOLUTE_MAX_CELLS}"
            )

    def encode(self, scheme: Union[str, Scheme], point: Point, precision: int) -> str:
        """Return the key of the cell containing ``point``."""

        scheme = Scheme.parse(scheme)
        if scheme is Scheme.GEOHASH:
            return geohash.to_geohash(point, precision)
        return _GRIDS[scheme].encode(point, precision)

    def resolve_precision(
        self,
        scheme: Union[str, Scheme],
        precision: Precision,
        radius_km: float | None = None,
    ) -> int:
        """Turn ``precision`` (an integer or ``"adaptive"``) into a concrete value."""

        scheme = Scheme.parse(scheme)
        if isinstance(precision, str):
            if precision.lower() != ADAPTIVE:
                raise ValidationError(
                    f"Precision must be an integer or {ADAPTIVE!r}, got {precision!r}"
                )
            if radius_km is None:
                raise ValidationError("Adaptive precision needs a radius")
            resolved = select_precision(scheme.value, radius_km)
            logger.debug(
                "Adaptive precision for %s at %.3f km resolved to %d",
                scheme.value,
                radius_km,
                resolved,
            )
            return resolved
        return precision

    def cover_radius(
        self,
        scheme: Union[str, Scheme],
        center: Point,
        radius_km: float,
        precision: Precision = ADAPTIVE,
        max_cells: int | None = None,
    ) -> CoverResult:
        scheme = Scheme.parse(scheme)
        level = self.resolve_precision(scheme, precision, radius_km)
        if scheme is Scheme.GEOHASH:
            found = get_ranges_for_radius(center, radius_km, level)
            return RangeCovering(tuple(found), level)
        return rings.get_cells_for_radius(
            _GRIDS[scheme],
            center,
            radius_km,
            level,
            self.default_max_cells if max_cells is None else max_cells,
        )

    def cover_bounding_box(
        self,
        scheme: Union[str, Scheme],
        rect: Rectangle,
        precision: Precision = ADAPTIVE,
        max_cells: int | None = None,
    ) -> CoverResult:
        """Cover ``rect``.

        Adaptive precision uses the distance from the rectangle centre to its
        farthest corner as the radius.
        """

        scheme = Scheme.parse(scheme)
        radius = None
        if isinstance(precision, str):
            center = rect.center
            radius = max(distance_km(center, rect.southwest), distance_km(center, rect.northeast))
        level = self.resolve_precision(scheme, precision, radius)
        if scheme is Scheme.GEOHASH:
            found = get_ranges_for_bounding_box(rect, level)
            return RangeCovering(tuple(found), level)
        return rings.get_cells_for_bounding_box(
            _GRIDS[scheme],
            rect,
            level,
            self.default_max_cells if max_cells is None else max_cells,
        )


provider = GeospatialProvider()
