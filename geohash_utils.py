"""Geohash encoding, decoding and cell navigation.

A geohash interleaves longitude and latitude bisection bits, starting with
longitude, and packs them five at a time into a base32 alphabet that omits
``a``, ``i``, ``l`` and ``o``. A prefix of a geohash is always a larger cell
that contains it.

Geohash Precision Reference (at the equator):
    Length  Width       Height
    1       5,000km     5,000km
    2       1,250km     625km
    3       156km       156km
    4       39.1km      19.5km
    5       4.89km      4.89km
    6       1.22km      0.61km
    7       153m        153m
    8       38.2m       19.1m
    9       4.77m       4.77m
    10      1.19m       0.596m
    11      149mm       149mm
    12      37.2mm      18.6mm
"""
from __future__ import annotations

from types import MappingProxyType
from typing import List, NamedTuple, Tuple

from geo_geometry import LAT_RANGE, LON_RANGE, BoundingBox, LonLat, validate
from geohash_errors import InvalidGeohashError, InvalidPrecisionError

# Constants -------------------------------------------------------------------
BASE32_ALPHABET = "0123456789bcdefghjkmnpqrstuvwxyz"
BASE32_DECODE_MAP = MappingProxyType({char: index for index, char in enumerate(BASE32_ALPHABET)})
BITS = (16, 8, 4, 2, 1)
BITS_PER_CHAR = len(BITS)

DEFAULT_GEOHASH_LENGTH = 12
LON_SPAN = 360.0

# Sub hash endings by position in the 4x8 subdivision layout:
#
#   0 2 8 b
#   1 3 9 c
#   4 6 d f
#   5 7 e g
#   h k s u
#   j m t v
#   n q w y
#   p r x z
NORTH_ENDINGS = "0123456789bcdefg"
SOUTH_ENDINGS = "hjkmnpqrstuvwxyz"
NORTH_WEST_ENDINGS = "01234567"
NORTH_EAST_ENDINGS = "89bcdefg"
SOUTH_WEST_ENDINGS = "hjkmnpqr"
SOUTH_EAST_ENDINGS = "stuvwxyz"


class _Bisection(NamedTuple):
    """Interval state while walking the bits of a geohash.

    ``lon_next`` says which axis the next bit bisects; geohashes start with
    longitude.
    """

    lat: Tuple[float, float] = LAT_RANGE
    lon: Tuple[float, float] = LON_RANGE
    lon_next: bool = True

    def apply(self, bit: int) -> _Bisection:
        """Return the state after keeping the upper (1) or lower (0) half."""
        low, high = self.lon if self.lon_next else self.lat
        mid = (low + high) / 2
        interval = (mid, high) if bit else (low, mid)
        if self.lon_next:
            return self._replace(lon=interval, lon_next=False)
        return self._replace(lat=interval, lon_next=True)

    def bit_for(self, latitude: float, longitude: float) -> int:
        """1 if the coordinate lies strictly above the midpoint of the next interval."""
        low, high = self.lon if self.lon_next else self.lat
        value = longitude if self.lon_next else latitude
        return 1 if value > (low + high) / 2 else 0

    def to_bbox(self) -> BoundingBox:
        return BoundingBox(south=self.lat[0], north=self.lat[1], west=self.lon[0], east=self.lon[1])


# Helper Functions ------------------------------------------------------------
def _check_length(length: int) -> None:
    if length < 1 or length > DEFAULT_GEOHASH_LENGTH:
        raise InvalidPrecisionError(
            f"Length must be between 1 and {DEFAULT_GEOHASH_LENGTH}, got {length}"
        )


def encode_with_bbox(latitude: float, longitude: float, length: int) -> Tuple[str, BoundingBox]:
    """Encode a coordinate and return the geohash together with its cell."""
    _check_length(length)
    validate(latitude, longitude)

    state = _Bisection()
    chars: List[str] = []
    while len(chars) < length:
        value = 0
        for weight in BITS:
            bit = state.bit_for(latitude, longitude)
            if bit:
                value |= weight
            state = state.apply(bit)
        chars.append(BASE32_ALPHABET[value])
    return "".join(chars), state.to_bbox()


def _wrap_longitude(lon: float) -> float:
    """Wrap longitude to [-180, 180) range."""
    wrapped = ((lon - LON_RANGE[0]) % LON_SPAN) + LON_RANGE[0]
    return LON_RANGE[0] if wrapped == LON_RANGE[1] else wrapped


def _with_endings(geohash: str, endings: str) -> List[str]:
    return [geohash + char for char in endings]


# Codec -----------------------------------------------------------------------
def encode(latitude: float, longitude: float, length: int = DEFAULT_GEOHASH_LENGTH) -> str:
    """Encode a coordinate into a geohash string.

    Args:
        latitude: Latitude in degrees [-90, 90]
        longitude: Longitude in degrees [-180, 180]
        length: Number of base32 characters, 1 to 12 (default: 12)

    Returns:
        Geohash string of the requested length

    Raises:
        InvalidCoordinateError: If coordinates are out of valid range
        InvalidPrecisionError: If length is out of range

    Examples:
        >>> encode(42.6, -5.6, 5)
        'ezs42'
    """
    geohash, _ = encode_with_bbox(latitude, longitude, length)
    return geohash


def encode_point(point: LonLat, length: int = DEFAULT_GEOHASH_LENGTH) -> str:
    """Encode a GeoJSON style (longitude, latitude) point."""
    longitude, latitude = point
    return encode(latitude, longitude, length)


def decode_bbox(geohash: str) -> BoundingBox:
    """Return the cell of a geohash by replaying its bisections.

    Raises:
        InvalidGeohashError: If geohash contains invalid characters
    """
    state = _Bisection()
    for char in geohash:
        try:
            value = BASE32_DECODE_MAP[char]
        except KeyError as exc:
            raise InvalidGeohashError(
                f"Invalid geohash character '{char}'. "
                f"Valid characters: {BASE32_ALPHABET}"
            ) from exc
        for weight in BITS:
            state = state.apply(value & weight)
    return state.to_bbox()


def decode(geohash: str) -> LonLat:
    """Return the center of a geohash cell as (lon, lat).

    The coordinate that produced the geohash may be anywhere in the cell,
    so do not expect the center to equal it.
    """
    return decode_bbox(geohash).center


def contains(geohash: str, latitude: float, longitude: float) -> bool:
    """True if the coordinate lies in the geohash cell."""
    return decode_bbox(geohash).contains(latitude, longitude)


# Navigation ------------------------------------------------------------------
def north(geohash: str) -> str:
    """Return the same-length geohash directly north of this one."""
    bbox = decode_bbox(geohash)
    lon, _ = bbox.center
    return encode(bbox.north + bbox.height_degrees / 2, lon, len(geohash))


def south(geohash: str) -> str:
    """Return the same-length geohash directly south of this one."""
    bbox = decode_bbox(geohash)
    lon, _ = bbox.center
    return encode(bbox.south - bbox.height_degrees / 2, lon, len(geohash))


def east(geohash: str) -> str:
    """Return the same-length geohash directly east, wrapping at 180."""
    bbox = decode_bbox(geohash)
    _, lat = bbox.center
    lon = _wrap_longitude(bbox.east + bbox.width_degrees / 2)
    return encode(lat, lon, len(geohash))


def west(geohash: str) -> str:
    """Return the same-length geohash directly west, wrapping at -180."""
    bbox = decode_bbox(geohash)
    _, lat = bbox.center
    lon = _wrap_longitude(bbox.west - bbox.width_degrees / 2)
    return encode(lat, lon, len(geohash))


def sub_hashes(geohash: str) -> List[str]:
    """Return the 32 geohashes one character longer, in alphabet order.

    They are sorted alphabetically; on the map they follow the layout in
    the comment next to the ending tables above.
    """
    return _with_endings(geohash, BASE32_ALPHABET)


def sub_hashes_north(geohash: str) -> List[str]:
    """Sub hashes ending in 0-g."""
    return _with_endings(geohash, NORTH_ENDINGS)


def sub_hashes_south(geohash: str) -> List[str]:
    """Sub hashes ending in h-z."""
    return _with_endings(geohash, SOUTH_ENDINGS)


def sub_hashes_north_west(geohash: str) -> List[str]:
    return _with_endings(geohash, NORTH_WEST_ENDINGS)


def sub_hashes_north_east(geohash: str) -> List[str]:
    return _with_endings(geohash, NORTH_EAST_ENDINGS)


def sub_hashes_south_west(geohash: str) -> List[str]:
    return _with_endings(geohash, SOUTH_WEST_ENDINGS)


def sub_hashes_south_east(geohash: str) -> List[str]:
    return _with_endings(geohash, SOUTH_EAST_ENDINGS)


def is_west(l1: float, l2: float) -> bool:
    """True if longitude l1 is west of l2 along the shorter way round."""
    ll1 = l1 + 180
    ll2 = l2 + 180
    if ll1 < ll2 and ll2 - ll1 < 180:
        return True
    return ll1 > ll2 and ll2 + 360 - ll1 < 180


def is_east(l1: float, l2: float) -> bool:
    """True if longitude l1 is east of l2 along the shorter way round."""
    ll1 = l1 + 180
    ll2 = l2 + 180
    if ll1 > ll2 and ll1 - ll2 < 180:
        return True
    return ll1 < ll2 and ll1 + 360 - ll2 < 180


def is_north(l1: float, l2: float) -> bool:
    return l1 > l2


def is_south(l1: float, l2: float) -> bool:
    return l1 < l2


# Public exports
__all__ = [
    # Codec
    "encode",
    "encode_point",
    "encode_with_bbox",
    "decode",
    "decode_bbox",
    "contains",

    # Navigation
    "north",
    "south",
    "east",
    "west",
    "sub_hashes",
    "sub_hashes_north",
    "sub_hashes_south",
    "sub_hashes_north_west",
    "sub_hashes_north_east",
    "sub_hashes_south_west",
    "sub_hashes_south_east",
    "is_west",
    "is_east",
    "is_north",
    "is_south",

    # Tables
    "BASE32_ALPHABET",
    "BASE32_DECODE_MAP",
    "BITS",
    "DEFAULT_GEOHASH_LENGTH",
]
