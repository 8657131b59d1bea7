"""Cell encoders: the geohash curve and the S2 and H3 grids."""

from geocells.encoders import geohash, h3_grid, s2

__all__ = ["geohash", "s2", "h3_grid"]
