"""Exact-distance post-filtering of covering candidates.

Coverings over-approximate the query area, so results read from the cells have
to be filtered by their true great-circle distance.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np

from geocells.model import Point, ValidationError, haversine_km

__all__ = ["filter_by_distance"]


def filter_by_distance(
    points: Iterable[Point], center: Point, radius_km: float
) -> list[tuple[int, float]]:
    """Return ``(index, distance_km)`` for points within ``radius_km`` of ``center``.

    Results are ordered by ascending distance, ties by index.
    """

    if radius_km < 0:
        raise ValidationError(f"Radius must be non-negative, got {radius_km}")
    candidates = list(points)
    if not candidates:
        return []
    lats = np.fromiter((p.latitude for p in candidates), dtype=float, count=len(candidates))
    lons = np.fromiter((p.longitude for p in candidates), dtype=float, count=len(candidates))
    distances = haversine_km(center.latitude, center.longitude, lats, lons)
    inside = np.flatnonzero(distances <= radius_km)
    order = inside[np.argsort(distances[inside], kind="stable")]
    return [(int(i), float(distances[i])) for i in order]
