"""Coverings: key ranges for geohash, ring expansion for the grid schemes."""

from geocells.covering.ranges import (
    KeyRange,
    get_range_for_bounding_box,
    get_range_for_radius,
    get_ranges_for_bounding_box,
    get_ranges_for_radius,
)
from geocells.covering.rings import (
    ABSOLUTE_MAX_CELLS,
    DEFAULT_MAX_CELLS,
    CoveredCell,
    Covering,
    GridScheme,
    estimate_cell_count,
    estimate_cell_count_for_bounding_box,
    get_cells_for_bounding_box,
    get_cells_for_radius,
)

__all__ = [
    "KeyRange",
    "get_range_for_bounding_box",
    "get_range_for_radius",
    "get_ranges_for_bounding_box",
    "get_ranges_for_radius",
    "ABSOLUTE_MAX_CELLS",
    "DEFAULT_MAX_CELLS",
    "CoveredCell",
    "Covering",
    "GridScheme",
    "estimate_cell_count",
    "estimate_cell_count_for_bounding_box",
    "get_cells_for_bounding_box",
    "get_cells_for_radius",
]
