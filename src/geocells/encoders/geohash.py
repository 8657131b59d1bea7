"""Geohash encoding: recursive binary subdivision packed into base-32 keys.

Bits alternate between longitude and latitude, starting with longitude, and
are packed five at a time into the alphabet ``0-9`` plus the lowercase letters
without ``a``, ``i``, ``l`` and ``o``. A key at precision ``p + 1`` always
extends its precision ``p`` ancestor by one symbol, which is what makes a
lexicographic key range usable as a (lossy) spatial range.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from types import MappingProxyType

from geocells.model import Point, Rectangle, ValidationError

__all__ = [
    "BASE32",
    "FANOUT",
    "MIN_PRECISION",
    "MAX_PRECISION",
    "DEFAULT_PRECISION",
    "GeoHashCell",
    "encode",
    "decode",
    "decode_bounds",
    "validate_key",
    "adjacent",
    "neighbors",
    "parent",
    "children",
    "cell_size_km",
    "to_geohash",
    "from_geohash",
]


BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
FANOUT = len(BASE32)
MIN_PRECISION = 1
MAX_PRECISION = 12
DEFAULT_PRECISION = 6

_DECODE_MAP = MappingProxyType({char: index for index, char in enumerate(BASE32)})

# Substitution tables keyed by (direction, parity of the key length). The
# neighbour string lists, for each base-32 index, the symbol whose position in
# the string gives the neighbour; the border string lists the symbols sitting
# on that edge of their parent cell.
_NEIGHBORS = MappingProxyType(
    {
        ("n", "even"): "p0r21436x8zb9dcf5h7kjnmqesgutwvy",
        ("s", "even"): "14365h7k9dcfesgujnmqp0r2twvyx8zb",
        ("e", "even"): "bc01fg45238967deuvhjyznpkmstqrwx",
        ("w", "even"): "238967debc01fg45kmstqrwxuvhjyznp",
        ("n", "odd"): "bc01fg45238967deuvhjyznpkmstqrwx",
        ("s", "odd"): "238967debc01fg45kmstqrwxuvhjyznp",
        ("e", "odd"): "p0r21436x8zb9dcf5h7kjnmqesgutwvy",
        ("w", "odd"): "14365h7k9dcfesgujnmqp0r2twvyx8zb",
    }
)
_BORDERS = MappingProxyType(
    {
        ("n", "even"): "prxz",
        ("s", "even"): "028b",
        ("e", "even"): "bcfguvyz",
        ("w", "even"): "0145hjnp",
        ("n", "odd"): "bcfguvyz",
        ("s", "odd"): "0145hjnp",
        ("e", "odd"): "prxz",
        ("w", "odd"): "028b",
    }
)

_DIRECTIONS = ("n", "s", "e", "w")


def _check_precision(precision: int) -> int:
    if isinstance(precision, bool) or not isinstance(precision, int):
        raise ValidationError("Geohash precision must be an integer")
    if not MIN_PRECISION <= precision <= MAX_PRECISION:
        raise ValidationError(
            f"Geohash precision must be between {MIN_PRECISION} and "
            f"{MAX_PRECISION}, got {precision}"
        )
    return precision


def validate_key(key: str) -> str:
    """Return ``key`` unchanged or raise :class:`ValidationError`."""

    if not isinstance(key, str) or not key:
        raise ValidationError("Geohash key cannot be empty")
    if len(key) > MAX_PRECISION:
        raise ValidationError(
            f"Geohash key {key!r} is longer than {MAX_PRECISION} characters"
        )
    for char in key:
        if char not in _DECODE_MAP:
            raise ValidationError(
                f"Invalid character {char!r} in geohash {key!r}; "
                f"valid characters are {BASE32}"
            )
    return key


def encode(latitude: float, longitude: float, precision: int = DEFAULT_PRECISION) -> str:
    """Encode a coordinate into a geohash of ``precision`` symbols."""

    _check_precision(precision)
    point = Point(latitude, longitude)

    lat_lo, lat_hi = -90.0, 90.0
    lon_lo, lon_hi = -180.0, 180.0
    symbols: list[str] = []
    bits = 0
    bit_count = 0
    even = True
    while len(symbols) < precision:
        if even:
            mid = (lon_lo + lon_hi) / 2.0
            if point.longitude >= mid:
                bits = (bits << 1) | 1
                lon_lo = mid
            else:
                bits <<= 1
                lon_hi = mid
        else:
            mid = (lat_lo + lat_hi) / 2.0
            if point.latitude >= mid:
                bits = (bits << 1) | 1
                lat_lo = mid
            else:
                bits <<= 1
                lat_hi = mid
        even = not even
        bit_count += 1
        if bit_count == 5:
            symbols.append(BASE32[bits])
            bits = 0
            bit_count = 0
    return "".join(symbols)


def _intervals(key: str) -> tuple[float, float, float, float]:
    validate_key(key)
    lat_lo, lat_hi = -90.0, 90.0
    lon_lo, lon_hi = -180.0, 180.0
    even = True
    for char in key:
        value = _DECODE_MAP[char]
        for mask in (16, 8, 4, 2, 1):
            if even:
                mid = (lon_lo + lon_hi) / 2.0
                if value & mask:
                    lon_lo = mid
                else:
                    lon_hi = mid
            else:
                mid = (lat_lo + lat_hi) / 2.0
                if value & mask:
                    lat_lo = mid
                else:
                    lat_hi = mid
            even = not even
    return lat_lo, lat_hi, lon_lo, lon_hi


def decode_bounds(key: str) -> Rectangle:
    """Return the cell rectangle for ``key``."""

    lat_lo, lat_hi, lon_lo, lon_hi = _intervals(key)
    return Rectangle.from_bounds(lat_lo, lon_lo, lat_hi, lon_hi)


def decode(key: str) -> Point:
    """Return the centre of the cell identified by ``key``."""

    lat_lo, lat_hi, lon_lo, lon_hi = _intervals(key)
    return Point((lat_lo + lat_hi) / 2.0, (lon_lo + lon_hi) / 2.0)


def _shift(key: str, direction: str) -> str | None:
    # An empty key is the whole globe: stepping east or west wraps around,
    # stepping north or south leaves the domain.
    if not key:
        return None if direction in ("n", "s") else ""
    last = key[-1]
    base = key[:-1]
    parity = "even" if len(key) % 2 == 0 else "odd"
    if last in _BORDERS[direction, parity]:
        base = _shift(base, direction)
        if base is None:
            return None
    return base + BASE32[_NEIGHBORS[direction, parity].index(last)]


def adjacent(key: str, direction: str) -> str | None:
    """Return the same-precision cell next to ``key`` in a cardinal direction.

    ``direction`` is one of ``"n"``, ``"s"``, ``"e"`` or ``"w"``. ``None`` is
    returned when the step would cross a pole.
    """

    validate_key(key)
    direction = direction.lower()
    if direction not in _DIRECTIONS:
        raise ValidationError(f"Unknown direction {direction!r}; expected one of n, s, e, w")
    return _shift(key, direction)


def neighbors(key: str) -> list[str]:
    """Return the neighbours of ``key`` in the order N, S, E, W, NE, NW, SE, SW.

    Cells in the top or bottom row of the grid have no neighbours beyond the
    pole, so they return five keys instead of eight.
    """

    validate_key(key)
    north = _shift(key, "n")
    south = _shift(key, "s")
    east = _shift(key, "e")
    west = _shift(key, "w")
    result = [north, south, east, west]
    result.append(_shift(north, "e") if north is not None else None)
    result.append(_shift(north, "w") if north is not None else None)
    result.append(_shift(south, "e") if south is not None else None)
    result.append(_shift(south, "w") if south is not None else None)
    return [cell for cell in result if cell is not None]


def parent(key: str) -> str:
    validate_key(key)
    if len(key) == MIN_PRECISION:
        raise ValidationError("Cannot get the parent of a precision 1 geohash")
    return key[:-1]


def children(key: str) -> list[str]:
    validate_key(key)
    if len(key) >= MAX_PRECISION:
        raise ValidationError(
            f"Cannot get children of a precision {MAX_PRECISION} geohash"
        )
    return [key + char for char in BASE32]


def cell_size_km(precision: int) -> tuple[float, float]:
    """Approximate ``(width_km, height_km)`` of a cell at the equator."""

    _check_precision(precision)
    total_bits = 5 * precision
    lon_bits = math.ceil(total_bits / 2)
    lat_bits = total_bits // 2
    km_per_degree = 111.32
    return 360.0 / 2**lon_bits * km_per_degree, 180.0 / 2**lat_bits * km_per_degree


_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class GeoHashCell:
    """A geohash cell with its decoded bounds."""

    key: str

    def __post_init__(self) -> None:
        validate_key(self.key)

    @classmethod
    def from_point(cls, point: Point, precision: int = DEFAULT_PRECISION) -> GeoHashCell:
        return cls(encode(point.latitude, point.longitude, precision))

    @property
    def precision(self) -> int:
        return len(self.key)

    @property
    def bounds(self) -> Rectangle:
        return decode_bounds(self.key)

    @property
    def center(self) -> Point:
        return decode(self.key)

    def neighbors(self) -> list[GeoHashCell]:
        return [GeoHashCell(key) for key in neighbors(self.key)]

    def parent(self) -> GeoHashCell:
        return GeoHashCell(parent(self.key))

    def children(self) -> list[GeoHashCell]:
        return [GeoHashCell(key) for key in children(self.key)]

    def __str__(self) -> str:
        return self.key


def to_geohash(point: Point, precision: int = DEFAULT_PRECISION) -> str:
    return encode(point.latitude, point.longitude, precision)


def from_geohash(key: str) -> Point:
    return decode(key)
