"""Adaptive precision: map a query radius onto a fixed precision bucket.

The bucket decides which precomputed index a caller has to query, so the
mapping is a plain step function with named thresholds:

===========  ============  ========  ========  ==========
bucket       radius (km)   geohash   S2 level  H3 res
===========  ============  ========  ========  ==========
``fine``     <= 2          6         14        8
``medium``   <= 10         5         12        7
``coarse``   > 10          4         10        6
===========  ============  ========  ========  ==========
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass

from geocells.model import ValidationError

__all__ = [
    "FINE_MAX_RADIUS_KM",
    "MEDIUM_MAX_RADIUS_KM",
    "PrecisionBucket",
    "FINE",
    "MEDIUM",
    "COARSE",
    "BUCKETS",
    "select_bucket",
    "select_precision",
]


FINE_MAX_RADIUS_KM = 2.0
MEDIUM_MAX_RADIUS_KM = 10.0

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class PrecisionBucket:
    """Precision per scheme for one radius bucket."""

    name: str
    geohash_precision: int
    s2_level: int
    h3_resolution: int

    def for_scheme(self, scheme: str) -> int:
        """Return the precision this bucket uses for ``scheme``."""

        scheme = str(getattr(scheme, "value", scheme)).lower()
        if scheme == "geohash":
            return self.geohash_precision
        if scheme == "s2":
            return self.s2_level
        if scheme == "h3":
            return self.h3_resolution
        raise ValidationError(f"Unknown scheme {scheme!r}; expected geohash, s2 or h3")


FINE = PrecisionBucket("fine", geohash_precision=6, s2_level=14, h3_resolution=8)
MEDIUM = PrecisionBucket("medium", geohash_precision=5, s2_level=12, h3_resolution=7)
COARSE = PrecisionBucket("coarse", geohash_precision=4, s2_level=10, h3_resolution=6)

BUCKETS = (FINE, MEDIUM, COARSE)


def select_bucket(radius_km: float) -> PrecisionBucket:
    radius_km = float(radius_km)
    if math.isnan(radius_km) or radius_km < 0:
        raise ValidationError(f"Radius must be non-negative, got {radius_km}")
    if radius_km <= FINE_MAX_RADIUS_KM:
        return FINE
    if radius_km <= MEDIUM_MAX_RADIUS_KM:
        return MEDIUM
    return COARSE


def select_precision(scheme: str, radius_km: float) -> int:
    """Return the precision of ``scheme`` for a query of ``radius_km``."""

    return select_bucket(radius_km).for_scheme(scheme)
