"""Spatial cell indexing with geohash, S2 and H3 schemes."""

from geocells.covering import (
    ABSOLUTE_MAX_CELLS,
    DEFAULT_MAX_CELLS,
    CoveredCell,
    Covering,
    KeyRange,
)
from geocells.model import Point, Rectangle, ValidationError, distance_km, distance_m, distance_miles
from geocells.provider import ADAPTIVE, GeospatialProvider, RangeCovering, Scheme
from geocells.provider import provider as default_provider

__all__ = [
    "ABSOLUTE_MAX_CELLS",
    "ADAPTIVE",
    "DEFAULT_MAX_CELLS",
    "CoveredCell",
    "Covering",
    "GeospatialProvider",
    "KeyRange",
    "Point",
    "RangeCovering",
    "Rectangle",
    "Scheme",
    "ValidationError",
    "distance_km",
    "distance_m",
    "distance_miles",
    "default_provider",
]
