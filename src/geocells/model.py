"""Coordinate and bounding-box primitives shared by every encoding scheme."""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from typing import Iterable

import numpy as np


EARTH_RADIUS_M = 6_371_000.0
METERS_PER_MILE = 1609.344
METERS_PER_DEGREE_LAT = 111_320.0
# Absorbs floating-point rounding at the edge of exact circle bounds (about 1 cm).
_EDGE_MARGIN_DEGREES = 1e-7

__all__ = [
    "ValidationError",
    "Point",
    "Rectangle",
    "distance_m",
    "distance_km",
    "distance_miles",
    "haversine_km",
    "normalize_longitude",
]


_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}


class ValidationError(ValueError):
    """Raised when coordinates, precisions or cell keys are out of range."""


def _require_finite(name: str, value: float) -> float:
    value = float(value)
    if math.isnan(value):
        raise ValidationError(f"{name} must be a number, got NaN")
    return value


def normalize_longitude(longitude: float) -> float:
    """Wrap ``longitude`` into ``[-180, 180]`` keeping ``180`` as ``180``."""

    if -180.0 <= longitude <= 180.0:
        return longitude
    wrapped = math.fmod(longitude + 180.0, 360.0)
    if wrapped < 0:
        wrapped += 360.0
    return wrapped - 180.0


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class Point:
    """A validated latitude/longitude pair in degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        latitude = _require_finite("latitude", self.latitude)
        longitude = _require_finite("longitude", self.longitude)
        if not -90.0 <= latitude <= 90.0:
            raise ValidationError(
                f"Latitude must be between -90 and 90 degrees, got {latitude}"
            )
        if not -180.0 <= longitude <= 180.0:
            raise ValidationError(
                f"Longitude must be between -180 and 180 degrees, got {longitude}"
            )
        object.__setattr__(self, "latitude", latitude)
        object.__setattr__(self, "longitude", longitude)

    def distance_m(self, other: Point) -> float:
        return distance_m(self, other)

    def distance_km(self, other: Point) -> float:
        return distance_km(self, other)

    def distance_miles(self, other: Point) -> float:
        return distance_miles(self, other)

    def is_near_pole(self, threshold: float = 85.0) -> bool:
        """Return ``True`` when the point lies poleward of ``threshold`` degrees."""

        return abs(self.latitude) > threshold

    def __str__(self) -> str:
        return f"{self.latitude},{self.longitude}"


def distance_m(a: Point, b: Point) -> float:
    """Return the great-circle distance between ``a`` and ``b`` in metres."""

    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))
    return EARTH_RADIUS_M * c


def distance_km(a: Point, b: Point) -> float:
    return distance_m(a, b) / 1000.0


def distance_miles(a: Point, b: Point) -> float:
    return distance_m(a, b) / METERS_PER_MILE


def haversine_km(latitude: float, longitude: float, lats, lons) -> np.ndarray:
    """Vectorised haversine distance in kilometres from one point to many."""

    lat1 = np.radians(float(latitude))
    lat2 = np.radians(np.asarray(lats, dtype=float))
    dlat = lat2 - lat1
    dlon = np.radians(np.asarray(lons, dtype=float) - float(longitude))
    h = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(h), np.sqrt(np.clip(1 - h, 0.0, None)))
    return EARTH_RADIUS_M * c / 1000.0


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class Rectangle:
    """Latitude/longitude rectangle given by its south-west and north-east corners.

    A south-west longitude greater than the north-east longitude describes a
    rectangle that crosses the antimeridian, spanning ``[sw.lon, 180]`` and
    ``[-180, ne.lon]``.
    """

    southwest: Point
    northeast: Point

    def __post_init__(self) -> None:
        if self.southwest.latitude > self.northeast.latitude:
            raise ValidationError(
                "Southwest corner latitude must be less than or equal to "
                "northeast corner latitude"
            )

    @classmethod
    def from_bounds(
        cls, min_lat: float, min_lon: float, max_lat: float, max_lon: float
    ) -> Rectangle:
        return cls(Point(min_lat, min_lon), Point(max_lat, max_lon))

    @property
    def crosses_antimeridian(self) -> bool:
        return self.southwest.longitude > self.northeast.longitude

    @property
    def height_degrees(self) -> float:
        return self.northeast.latitude - self.southwest.latitude

    @property
    def width_degrees(self) -> float:
        width = self.northeast.longitude - self.southwest.longitude
        if self.crosses_antimeridian:
            width += 360.0
        return width

    @property
    def center(self) -> Point:
        lat = (self.southwest.latitude + self.northeast.latitude) / 2.0
        lon = self.southwest.longitude + self.width_degrees / 2.0
        return Point(lat, normalize_longitude(lon))

    @property
    def includes_pole(self) -> bool:
        return self.northeast.latitude >= 90.0 or self.southwest.latitude <= -90.0

    def contains(self, point: Point) -> bool:
        """Inclusive containment test, modular in longitude."""

        if not self.southwest.latitude <= point.latitude <= self.northeast.latitude:
            return False
        lon = point.longitude
        if self.crosses_antimeridian:
            return lon >= self.southwest.longitude or lon <= self.northeast.longitude
        return self.southwest.longitude <= lon <= self.northeast.longitude

    def split_at_antimeridian(self) -> tuple[Rectangle, ...]:
        """Return the rectangle as one or two non-crossing parts (west first)."""

        if not self.crosses_antimeridian:
            return (self,)
        south, north = self.southwest.latitude, self.northeast.latitude
        western = Rectangle.from_bounds(south, self.southwest.longitude, north, 180.0)
        eastern = Rectangle.from_bounds(south, -180.0, north, self.northeast.longitude)
        return (western, eastern)

    def expanded(self, lat_degrees: float, lon_degrees: float) -> Rectangle:
        """Grow the rectangle outward, clamping latitude and wrapping longitude."""

        south = max(-90.0, self.southwest.latitude - lat_degrees)
        north = min(90.0, self.northeast.latitude + lat_degrees)
        if self.width_degrees + 2 * lon_degrees >= 360.0:
            return Rectangle.from_bounds(south, -180.0, north, 180.0)
        west = self.southwest.longitude - lon_degrees
        east = self.northeast.longitude + lon_degrees
        return Rectangle.from_bounds(
            south, normalize_longitude(west), north, normalize_longitude(east)
        )

    @classmethod
    def from_center_and_distance_m(cls, center: Point, distance: float) -> Rectangle:
        """Approximate the square of half-side ``distance`` metres around ``center``.

        Latitude uses a constant 111.32 km per degree; longitude is widened by
        ``1 / cos(latitude)``. Latitude is clamped to the poles. Longitude wraps
        across the antimeridian, and the rectangle spans every longitude once it
        reaches a pole or its longitude half-width reaches 180 degrees.
        """

        distance = _require_finite("distance", distance)
        if distance < 0:
            raise ValidationError(f"Distance must be non-negative, got {distance}")

        lat_offset = distance / METERS_PER_DEGREE_LAT
        south = center.latitude - lat_offset
        north = center.latitude + lat_offset
        cos_lat = math.cos(math.radians(center.latitude))
        lon_offset = lat_offset / cos_lat if cos_lat > 0 else math.inf

        if south <= -90.0 or north >= 90.0 or lon_offset >= 180.0:
            return cls.from_bounds(max(-90.0, south), -180.0, min(90.0, north), 180.0)
        return cls.from_bounds(
            south,
            normalize_longitude(center.longitude - lon_offset),
            north,
            normalize_longitude(center.longitude + lon_offset),
        )

    @classmethod
    def from_center_and_distance_km(cls, center: Point, distance: float) -> Rectangle:
        return cls.from_center_and_distance_m(center, _require_finite("distance", distance) * 1000.0)

    @classmethod
    def from_center_and_distance_miles(cls, center: Point, distance: float) -> Rectangle:
        return cls.from_center_and_distance_m(
            center, _require_finite("distance", distance) * METERS_PER_MILE
        )

    @classmethod
    def from_center_and_radius(cls, center: Point, radius_km: float) -> Rectangle:
        """Alias of :meth:`from_center_and_distance_km`."""

        return cls.from_center_and_distance_km(center, radius_km)

    @classmethod
    def enclosing_circle(cls, center: Point, distance_km: float) -> Rectangle:
        """Smallest rectangle holding every point within ``distance_km`` of ``center``.

        Unlike :meth:`from_center_and_distance_km` this uses the same sphere as
        :func:`distance_km`, so any point passing the haversine check also
        passes :meth:`contains`. The longitude half-width of a spherical cap of
        angular radius ``d`` at latitude ``lat`` is ``asin(sin d / cos lat)``.
        """

        distance_km = _require_finite("distance", distance_km)
        if not 0 <= distance_km < math.inf:
            raise ValidationError(f"Distance must be finite and non-negative, got {distance_km}")

        angle = distance_km * 1000.0 / EARTH_RADIUS_M
        lat_offset = math.degrees(angle) + _EDGE_MARGIN_DEGREES
        south = center.latitude - lat_offset
        north = center.latitude + lat_offset
        if south <= -90.0 or north >= 90.0:
            return cls.from_bounds(max(-90.0, south), -180.0, min(90.0, north), 180.0)

        ratio = math.sin(angle) / math.cos(math.radians(center.latitude))
        if ratio >= 1.0:
            return cls.from_bounds(south, -180.0, north, 180.0)
        lon_offset = math.degrees(math.asin(ratio)) + _EDGE_MARGIN_DEGREES
        if lon_offset >= 180.0:
            return cls.from_bounds(south, -180.0, north, 180.0)
        return cls.from_bounds(
            south,
            normalize_longitude(center.longitude - lon_offset),
            north,
            normalize_longitude(center.longitude + lon_offset),
        )

    @classmethod
    def from_vertices(
        cls, vertices: Iterable[Point], center: Point | None = None
    ) -> Rectangle:
        """Bounding rectangle of a small polygon given by its vertices.

        ``center`` (when given) is always included, and a polygon whose
        vertex longitudes jump by more than 180 degrees is treated as wrapping
        the antimeridian.
        """

        points = list(vertices)
        if center is not None:
            points.append(center)
        if not points:
            raise ValidationError("At least one vertex is required")

        lats = [p.latitude for p in points]
        lons = [p.longitude for p in points]
        south, north = min(lats), max(lats)
        if max(lons) - min(lons) <= 180.0:
            return cls.from_bounds(south, min(lons), north, max(lons))

        west = min(lon for lon in lons if lon >= 0)
        east = max(lon for lon in lons if lon < 0)
        return cls.from_bounds(south, west, north, east)

    def __str__(self) -> str:
        return f"SW: {self.southwest}, NE: {self.northeast}"
