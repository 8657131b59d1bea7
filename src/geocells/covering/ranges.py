"""Lexicographic key ranges over geohash keys.

A rectangle is approximated by the range between the keys of its south-west
and north-east corners. Bit interleaving is monotone in each coordinate, so
every point of the rectangle encodes to a key inside the range, but the curve
folds back and forth and the range also takes in keys far outside the
rectangle, badly so for rectangles straddling a coarse cell boundary. Callers
post-filter candidates by exact distance.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass

from geocells.encoders import geohash
from geocells.model import Point, Rectangle, ValidationError

__all__ = [
    "KeyRange",
    "get_range_for_bounding_box",
    "get_range_for_radius",
    "get_ranges_for_bounding_box",
    "get_ranges_for_radius",
]


_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class KeyRange:
    """Inclusive range of geohash keys ``[low, high]``."""

    low: str
    high: str

    def __post_init__(self) -> None:
        geohash.validate_key(self.low)
        geohash.validate_key(self.high)
        if len(self.low) != len(self.high):
            raise ValidationError("Range bounds must share the same precision")

    @property
    def precision(self) -> int:
        return len(self.low)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        prefix = key[: self.precision]
        return self.low <= prefix <= self.high


def get_range_for_bounding_box(rect: Rectangle, precision: int) -> KeyRange:
    """Return the key range spanned by the corners of ``rect``.

    Raises :class:`ValidationError` when ``rect`` crosses the antimeridian; use
    :func:`get_ranges_for_bounding_box` for such rectangles.
    """

    if rect.crosses_antimeridian:
        raise ValidationError(
            "Rectangle crosses the antimeridian; a single key range cannot cover it"
        )
    low = geohash.to_geohash(rect.southwest, precision)
    high = geohash.to_geohash(rect.northeast, precision)
    return KeyRange(low, high)


def get_range_for_radius(center: Point, radius_km: float, precision: int) -> KeyRange:
    rect = Rectangle.from_center_and_radius(center, radius_km)
    return get_range_for_bounding_box(rect, precision)


def get_ranges_for_bounding_box(rect: Rectangle, precision: int) -> list[KeyRange]:
    """Return one range per antimeridian-free part of ``rect`` (west part first)."""

    return [get_range_for_bounding_box(part, precision) for part in rect.split_at_antimeridian()]


def get_ranges_for_radius(center: Point, radius_km: float, precision: int) -> list[KeyRange]:
    rect = Rectangle.from_center_and_radius(center, radius_km)
    return get_ranges_for_bounding_box(rect, precision)
