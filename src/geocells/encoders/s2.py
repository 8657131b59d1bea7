"""S2-style quadtree cells on the faces of a cube.

A point is projected onto one of six cube faces, the face coordinates are
warped with the quadratic UV/ST transform for more uniform cell areas, and the
resulting leaf coordinates ``(i, j)`` are ordered along a Hilbert curve. A cell
id is a 64-bit integer: three face bits, two bits per level of Hilbert
position, then a single sentinel bit whose position encodes the level. Tokens
are the hexadecimal form of the id with trailing zeros removed.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass

from geocells.model import EARTH_RADIUS_M, Point, Rectangle, ValidationError

__all__ = [
    "MIN_LEVEL",
    "MAX_LEVEL",
    "DEFAULT_LEVEL",
    "FANOUT",
    "S2Cell",
    "S2Scheme",
    "scheme",
    "encode",
    "decode",
    "decode_bounds",
    "edge_neighbors",
    "neighbors",
    "parent",
    "children",
    "level_of",
    "face_of",
    "validate_token",
    "cell_id_to_token",
    "token_to_cell_id",
    "cell_width_km",
    "to_s2_token",
    "from_s2_token",
]


MIN_LEVEL = 0
MAX_LEVEL = 30
DEFAULT_LEVEL = 16
FANOUT = 4

_NUM_FACES = 6
_POS_BITS = 2 * MAX_LEVEL + 1
_MAX_SIZE = 1 << MAX_LEVEL
_MAX_SI_TI = 1 << (MAX_LEVEL + 1)
_ID_MASK = (1 << 64) - 1

_SWAP_MASK = 0x01
_INVERT_MASK = 0x02
_LOOKUP_BITS = 4

_POS_TO_IJ = (
    (0, 1, 3, 2),
    (0, 2, 3, 1),
    (3, 2, 0, 1),
    (3, 1, 0, 2),
)
_POS_TO_ORIENTATION = (_SWAP_MASK, 0, 0, _INVERT_MASK | _SWAP_MASK)

_AVERAGE_WIDTH_KM_LEVEL0 = EARTH_RADIUS_M / 1000.0 * math.sqrt(4 * math.pi / _NUM_FACES)


def _build_lookup_tables() -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Tables mapping 4 levels of (i, j) bits to Hilbert positions and back."""

    size = 1 << (2 * _LOOKUP_BITS + 2)
    lookup_pos = [0] * size
    lookup_ij = [0] * size

    def fill(level: int, i: int, j: int, orig_orientation: int, pos: int, orientation: int) -> None:
        if level == _LOOKUP_BITS:
            ij = (i << _LOOKUP_BITS) + j
            lookup_pos[(ij << 2) + orig_orientation] = (pos << 2) + orientation
            lookup_ij[(pos << 2) + orig_orientation] = (ij << 2) + orientation
            return
        level += 1
        i <<= 1
        j <<= 1
        pos <<= 2
        order = _POS_TO_IJ[orientation]
        for index in range(4):
            fill(
                level,
                i + (order[index] >> 1),
                j + (order[index] & 1),
                orig_orientation,
                pos + index,
                orientation ^ _POS_TO_ORIENTATION[index],
            )

    for orientation in (0, _SWAP_MASK, _INVERT_MASK, _SWAP_MASK | _INVERT_MASK):
        fill(0, 0, 0, orientation, 0, orientation)
    return tuple(lookup_pos), tuple(lookup_ij)


_LOOKUP_POS, _LOOKUP_IJ = _build_lookup_tables()


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------


def _latlng_to_xyz(latitude: float, longitude: float) -> tuple[float, float, float]:
    phi = math.radians(latitude)
    theta = math.radians(longitude)
    cos_phi = math.cos(phi)
    return math.cos(theta) * cos_phi, math.sin(theta) * cos_phi, math.sin(phi)


def _xyz_to_latlng(x: float, y: float, z: float) -> tuple[float, float]:
    lat = math.degrees(math.atan2(z, math.sqrt(x * x + y * y)))
    lon = math.degrees(math.atan2(y, x))
    return lat, lon


def _face_of_xyz(x: float, y: float, z: float) -> int:
    ax, ay, az = abs(x), abs(y), abs(z)
    if ax > ay:
        axis = 0 if ax > az else 2
    else:
        axis = 1 if ay > az else 2
    component = (x, y, z)[axis]
    return axis + 3 if component < 0 else axis


def _face_xyz_to_uv(face: int, x: float, y: float, z: float) -> tuple[float, float]:
    if face == 0:
        return y / x, z / x
    if face == 1:
        return -x / y, z / y
    if face == 2:
        return -x / z, -y / z
    if face == 3:
        return z / x, y / x
    if face == 4:
        return z / y, -x / y
    return -y / z, -x / z


def _face_uv_to_xyz(face: int, u: float, v: float) -> tuple[float, float, float]:
    if face == 0:
        return 1.0, u, v
    if face == 1:
        return -u, 1.0, v
    if face == 2:
        return -u, -v, 1.0
    if face == 3:
        return -1.0, -v, -u
    if face == 4:
        return v, -1.0, -u
    return v, u, -1.0


def _uv_to_st(u: float) -> float:
    if u >= 0:
        return 0.5 * math.sqrt(1 + 3 * u)
    return 1 - 0.5 * math.sqrt(1 - 3 * u)


def _st_to_uv(s: float) -> float:
    if s >= 0.5:
        return (1 / 3.0) * (4 * s * s - 1)
    return (1 / 3.0) * (1 - 4 * (1 - s) * (1 - s))


def _st_to_ij(s: float) -> int:
    return max(0, min(_MAX_SIZE - 1, int(math.floor(_MAX_SIZE * s))))


def _face_uv_to_latlng(face: int, u: float, v: float) -> tuple[float, float]:
    return _xyz_to_latlng(*_face_uv_to_xyz(face, u, v))


# ---------------------------------------------------------------------------
# Cell id bit manipulation
# ---------------------------------------------------------------------------


def _lsb(cell_id: int) -> int:
    return cell_id & -cell_id


def _lsb_for_level(level: int) -> int:
    return 1 << (2 * (MAX_LEVEL - level))


def _level(cell_id: int) -> int:
    return MAX_LEVEL - ((_lsb(cell_id).bit_length() - 1) >> 1)


def _parent_id(cell_id: int, level: int) -> int:
    new_lsb = _lsb_for_level(level)
    return (cell_id & -new_lsb) | new_lsb


def _is_valid_id(cell_id: int) -> bool:
    if cell_id <= 0 or cell_id > _ID_MASK:
        return False
    if (cell_id >> _POS_BITS) >= _NUM_FACES:
        return False
    return (_lsb(cell_id) & 0x1555555555555555) != 0


def _from_face_ij(face: int, i: int, j: int) -> int:
    """Leaf cell id for leaf coordinates ``(i, j)`` on ``face``."""

    n = face << (_POS_BITS - 1)
    bits = face & _SWAP_MASK
    mask = (1 << _LOOKUP_BITS) - 1
    for k in range(7, -1, -1):
        bits += ((i >> (k * _LOOKUP_BITS)) & mask) << (_LOOKUP_BITS + 2)
        bits += ((j >> (k * _LOOKUP_BITS)) & mask) << 2
        bits = _LOOKUP_POS[bits]
        n |= (bits >> 2) << (k * 2 * _LOOKUP_BITS)
        bits &= _SWAP_MASK | _INVERT_MASK
    return n * 2 + 1


def _to_face_ij(cell_id: int) -> tuple[int, int, int]:
    """Face and leaf coordinates of the leaf cell nearest the centre of ``cell_id``."""

    face = cell_id >> _POS_BITS
    bits = face & _SWAP_MASK
    i = 0
    j = 0
    for k in range(7, -1, -1):
        nbits = MAX_LEVEL - 7 * _LOOKUP_BITS if k == 7 else _LOOKUP_BITS
        bits += ((cell_id >> (k * 2 * _LOOKUP_BITS + 1)) & ((1 << (2 * nbits)) - 1)) << 2
        bits = _LOOKUP_IJ[bits]
        i += (bits >> (_LOOKUP_BITS + 2)) << (k * _LOOKUP_BITS)
        j += ((bits >> 2) & ((1 << _LOOKUP_BITS) - 1)) << (k * _LOOKUP_BITS)
        bits &= _SWAP_MASK | _INVERT_MASK
    return face, i, j


def _from_face_ij_wrap(face: int, i: int, j: int) -> int:
    """Leaf cell id for coordinates just beyond the edge of ``face``."""

    i = max(-1, min(_MAX_SIZE, i))
    j = max(-1, min(_MAX_SIZE, j))
    scale = 1.0 / _MAX_SIZE
    limit = 1.0 + sys.float_info.epsilon
    u = max(-limit, min(limit, scale * ((i << 1) + 1 - _MAX_SIZE)))
    v = max(-limit, min(limit, scale * ((j << 1) + 1 - _MAX_SIZE)))
    x, y, z = _face_uv_to_xyz(face, u, v)
    new_face = _face_of_xyz(x, y, z)
    new_u, new_v = _face_xyz_to_uv(new_face, x, y, z)
    # Just across the edge the quadratic warp is negligible, so the linear
    # mapping from UV to ST is sufficient here.
    return _from_face_ij(new_face, _st_to_ij(0.5 * (new_u + 1)), _st_to_ij(0.5 * (new_v + 1)))


def _from_face_ij_same(face: int, i: int, j: int, same_face: bool) -> int:
    if same_face:
        return _from_face_ij(face, i, j)
    return _from_face_ij_wrap(face, i, j)


def _center_latlng(cell_id: int) -> tuple[float, float]:
    face, i, j = _to_face_ij(cell_id)
    # The leaf returned by _to_face_ij sits on one of the two leaves nearest the
    # centre; the low bit tells which one, so the exact centre can be recovered.
    if _level(cell_id) == MAX_LEVEL:
        delta = 1
    elif (i ^ (cell_id >> 2)) & 1:
        delta = 2
    else:
        delta = 0
    si = 2 * i + delta
    ti = 2 * j + delta
    u = _st_to_uv(si / _MAX_SI_TI)
    v = _st_to_uv(ti / _MAX_SI_TI)
    return _face_uv_to_latlng(face, u, v)


# ---------------------------------------------------------------------------
# Tokens and validation
# ---------------------------------------------------------------------------


def cell_id_to_token(cell_id: int) -> str:
    if cell_id == 0:
        return "X"
    return format(cell_id, "016x").rstrip("0")


def token_to_cell_id(token: str) -> int:
    if not isinstance(token, str) or not token:
        raise ValidationError("S2 token cannot be empty")
    if len(token) > 16:
        raise ValidationError(
            f"Invalid S2 token {token!r}: tokens are 1-16 hexadecimal characters"
        )
    try:
        return int(token.ljust(16, "0"), 16)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid S2 token {token!r}: tokens contain only hexadecimal characters"
        ) from exc


def validate_token(token: str) -> int:
    """Parse ``token`` and return its cell id, raising on malformed input."""

    cell_id = token_to_cell_id(token)
    if not _is_valid_id(cell_id):
        raise ValidationError(f"S2 token {token!r} does not name a valid cell")
    return cell_id


def _check_level(level: int) -> int:
    if isinstance(level, bool) or not isinstance(level, int):
        raise ValidationError("S2 level must be an integer")
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        raise ValidationError(
            f"S2 level must be between {MIN_LEVEL} and {MAX_LEVEL}, got {level}"
        )
    return level


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def encode(point: Point, level: int = DEFAULT_LEVEL) -> str:
    """Return the token of the level ``level`` cell containing ``point``."""

    _check_level(level)
    x, y, z = _latlng_to_xyz(point.latitude, point.longitude)
    face = _face_of_xyz(x, y, z)
    u, v = _face_xyz_to_uv(face, x, y, z)
    leaf = _from_face_ij(face, _st_to_ij(_uv_to_st(u)), _st_to_ij(_uv_to_st(v)))
    return cell_id_to_token(_parent_id(leaf, level))


def decode(token: str) -> Point:
    """Return the centre of the cell named by ``token``."""

    lat, lon = _center_latlng(validate_token(token))
    return Point(lat, lon)


def level_of(token: str) -> int:
    return _level(validate_token(token))


def face_of(token: str) -> int:
    return validate_token(token) >> _POS_BITS


# Exact bounds of the six level-0 faces; the polar faces reach down to
# asin(sqrt(1/3)) at their corners.
_POLE_MIN_LAT = math.degrees(math.asin(math.sqrt(1.0 / 3.0)))
_FACE_BOUNDS = (
    (-45.0, -45.0, 45.0, 45.0),
    (-45.0, 45.0, 45.0, 135.0),
    (_POLE_MIN_LAT, -180.0, 90.0, 180.0),
    (-45.0, 135.0, 45.0, -135.0),
    (-45.0, -135.0, 45.0, -45.0),
    (-90.0, -180.0, -_POLE_MIN_LAT, 180.0),
)


def decode_bounds(token: str) -> Rectangle:
    """Approximate latitude/longitude bounds of the cell named by ``token``.

    Bounds are taken from the four cell vertices and the cell centre, so they
    can slightly undershoot the true extent of the curved cell edges.
    """

    cell_id = validate_token(token)
    level = _level(cell_id)
    face, i, j = _to_face_ij(cell_id)
    if level == 0:
        return Rectangle.from_bounds(*_FACE_BOUNDS[face])

    size = 1 << (MAX_LEVEL - level)
    i_lo = i & -size
    j_lo = j & -size
    u_lo = _st_to_uv(i_lo / _MAX_SIZE)
    u_hi = _st_to_uv((i_lo + size) / _MAX_SIZE)
    v_lo = _st_to_uv(j_lo / _MAX_SIZE)
    v_hi = _st_to_uv((j_lo + size) / _MAX_SIZE)
    vertices = [
        Point(*_face_uv_to_latlng(face, u, v))
        for u, v in ((u_lo, v_lo), (u_hi, v_lo), (u_hi, v_hi), (u_lo, v_hi))
    ]
    center = Point(*_center_latlng(cell_id))

    # Polar faces: the pole is the face centre (i = j = MAX_SIZE / 2).
    half = _MAX_SIZE // 2
    if face in (2, 5) and i_lo <= half <= i_lo + size and j_lo <= half <= j_lo + size:
        lats = [p.latitude for p in vertices]
        if face == 2:
            return Rectangle.from_bounds(min(lats), -180.0, 90.0, 180.0)
        return Rectangle.from_bounds(-90.0, -180.0, max(lats), 180.0)
    return Rectangle.from_vertices(vertices, center)


def _neighbor_ids(cell_id: int, include_vertices: bool) -> list[int]:
    level = _level(cell_id)
    size = 1 << (MAX_LEVEL - level)
    face, i, j = _to_face_ij(cell_id)
    i &= -size
    j &= -size

    found: list[int] = []

    def add(ni: int, nj: int) -> None:
        same_face = 0 <= ni < _MAX_SIZE and 0 <= nj < _MAX_SIZE
        neighbor = _parent_id(_from_face_ij_same(face, ni, nj, same_face), level)
        if neighbor != cell_id and neighbor not in found:
            found.append(neighbor)

    # Edge neighbours: south, east, north, west.
    add(i, j - size)
    add(i + size, j)
    add(i, j + size)
    add(i - size, j)
    if include_vertices:
        add(i - size, j - size)
        add(i + size, j - size)
        add(i + size, j + size)
        add(i - size, j + size)
    return found


def edge_neighbors(token: str) -> list[str]:
    """Return the four cells sharing an edge with ``token``."""

    return [cell_id_to_token(n) for n in _neighbor_ids(validate_token(token), False)]


def neighbors(token: str) -> list[str]:
    """Return every same-level cell sharing an edge or a vertex with ``token``.

    This is eight cells, except for the cells touching one of the eight cube
    corners, where only three faces meet and seven distinct cells remain. At
    level 0 a face touches each of its four edge neighbours at every corner as
    well, so only four cells come back.
    """

    return [cell_id_to_token(n) for n in _neighbor_ids(validate_token(token), True)]


def parent(token: str, level: int | None = None) -> str:
    cell_id = validate_token(token)
    current = _level(cell_id)
    if level is None:
        if current == MIN_LEVEL:
            raise ValidationError("Cannot get the parent of a level 0 S2 cell")
        level = current - 1
    _check_level(level)
    if level > current:
        raise ValidationError(
            f"Parent level {level} must not exceed the cell level {current}"
        )
    return cell_id_to_token(_parent_id(cell_id, level))


def children(token: str) -> list[str]:
    cell_id = validate_token(token)
    if _level(cell_id) == MAX_LEVEL:
        raise ValidationError(f"Cannot get children of a level {MAX_LEVEL} S2 cell")
    lsb = _lsb(cell_id)
    first = cell_id - lsb + (lsb >> 2)
    step = lsb >> 1
    return [cell_id_to_token(first + k * step) for k in range(FANOUT)]


def cell_width_km(level: int) -> float:
    """Square root of the average cell area at ``level``, in kilometres."""

    _check_level(level)
    return _AVERAGE_WIDTH_KM_LEVEL0 / (1 << level)


_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class S2Cell:
    """An S2 cell identified by its token."""

    token: str

    def __post_init__(self) -> None:
        validate_token(self.token)

    @classmethod
    def from_point(cls, point: Point, level: int = DEFAULT_LEVEL) -> S2Cell:
        return cls(encode(point, level))

    @property
    def cell_id(self) -> int:
        return token_to_cell_id(self.token)

    @property
    def level(self) -> int:
        return level_of(self.token)

    @property
    def face(self) -> int:
        return face_of(self.token)

    @property
    def bounds(self) -> Rectangle:
        return decode_bounds(self.token)

    @property
    def center(self) -> Point:
        return decode(self.token)

    def neighbors(self) -> list[S2Cell]:
        return [S2Cell(token) for token in neighbors(self.token)]

    def parent(self) -> S2Cell:
        return S2Cell(parent(self.token))

    def children(self) -> list[S2Cell]:
        return [S2Cell(token) for token in children(self.token)]

    def __str__(self) -> str:
        return self.token


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class S2Scheme:
    """Grid-scheme adapter used by the ring-expansion covering."""

    name: str = "s2"
    min_level: int = MIN_LEVEL
    max_level: int = MAX_LEVEL
    fanout: int = FANOUT

    def check_level(self, level: int) -> int:
        return _check_level(level)

    def encode(self, point: Point, level: int) -> str:
        return encode(point, level)

    def decode(self, key: str) -> Point:
        return decode(key)

    def decode_bounds(self, key: str) -> Rectangle:
        return decode_bounds(key)

    def neighbors(self, key: str) -> list[str]:
        return neighbors(key)

    def parent(self, key: str) -> str:
        return parent(key)

    def children(self, key: str) -> list[str]:
        return children(key)

    def level_of(self, key: str) -> int:
        return level_of(key)

    def cell_width_km(self, level: int) -> float:
        return cell_width_km(level)


scheme = S2Scheme()


def to_s2_token(point: Point, level: int = DEFAULT_LEVEL) -> str:
    return encode(point, level)


def from_s2_token(token: str) -> Point:
    return decode(token)
