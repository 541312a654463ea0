# polyline.py
# Encoded polyline codec (signed varint deltas, 5-bit chunks offset by 63).
# No side effects; safe to share across sessions.

from typing import Iterable, List

from .errors import MalformedPolyline
from .models import GeoPoint


_CHUNK_MASK = 0x1F
_CONTINUATION = 0x20
_OFFSET = 63


def _read_value(encoded: str, index: int) -> tuple:
    """Read one zig-zag varint starting at index. Returns (value, next_index)."""
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise MalformedPolyline(f"Truncated polyline at offset {index}")
        byte = ord(encoded[index]) - _OFFSET
        if not 0 <= byte <= 0x3F:
            raise MalformedPolyline(
                f"Invalid character {encoded[index]!r} at offset {index}"
            )
        index += 1
        result |= (byte & _CHUNK_MASK) << shift
        shift += 5
        if byte < _CONTINUATION:
            break
    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode(encoded: str, precision: int = 5) -> List[GeoPoint]:
    """
    Decode an encoded polyline string into a list of points.

    Args:
        encoded:   Encoded polyline. An empty string yields an empty list.
        precision: Number of decimal digits the coordinates were encoded with.

    Returns:
        Points in encode order.

    Raises:
        MalformedPolyline: If the string is truncated or contains characters
            outside the polyline alphabet.
    """
    factor = 10 ** precision
    points: List[GeoPoint] = []
    index = 0
    lat = 0
    lon = 0

    while index < len(encoded):
        d_lat, index = _read_value(encoded, index)
        if index >= len(encoded):
            raise MalformedPolyline("Latitude without a matching longitude")
        d_lon, index = _read_value(encoded, index)
        lat += d_lat
        lon += d_lon
        try:
            points.append(GeoPoint(lat / factor, lon / factor))
        except ValueError as e:
            raise MalformedPolyline(str(e)) from e

    return points


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= _CONTINUATION:
        chunks.append(chr((_CONTINUATION | (value & _CHUNK_MASK)) + _OFFSET))
        value >>= 5
    chunks.append(chr(value + _OFFSET))
    return "".join(chunks)


def encode(points: Iterable[GeoPoint], precision: int = 5) -> str:
    """Encode points into a polyline string (inverse of decode)."""
    factor = 10 ** precision
    out = []
    prev_lat = 0
    prev_lon = 0
    for point in points:
        lat = int(round(point.lat * factor))
        lon = int(round(point.lon * factor))
        out.append(_encode_value(lat - prev_lat))
        out.append(_encode_value(lon - prev_lon))
        prev_lat, prev_lon = lat, lon
    return "".join(out)
