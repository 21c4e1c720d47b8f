"""Geospatial helpers for grouping and displacing co-located points."""

from __future__ import annotations

import math
import struct
from typing import NamedTuple

METERS_PER_DEGREE = 111_320.0  # Equatorial approximation, fine for small offsets
EARTH_RADIUS_M = 6_371_000.0
MIN_COS_LATITUDE = 1e-6

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
UINT32_MASK = 0xFFFFFFFF


class DegreeDelta(NamedTuple):
    lat_delta: float
    lng_delta: float


def _round_half_up(value: float, precision: int) -> float:
    factor = 10 ** precision
    # + 0.0 turns -0.0 into 0.0 so both print the same key.
    return math.floor(value * factor + 0.5) / factor + 0.0


def geo_key(latitude: float, longitude: float, precision: int = 5) -> str:
    """Canonical grouping key: both coordinates rounded to `precision` digits.

    Precision 5 is roughly 1.1 m of latitude.
    """

    return f"{_round_half_up(latitude, precision)!r},{_round_half_up(longitude, precision)!r}"


def _utf16_units(text: str) -> tuple[int, ...]:
    encoded = text.encode("utf-16-le", "surrogatepass")
    return struct.unpack(f"<{len(encoded) // 2}H", encoded)


def stable_unit(identity: str) -> float:
    """Map an identity string to [0, 1] with 32-bit FNV-1a.

    Code units are UTF-16 so the value matches implementations that hash
    JavaScript-style strings.
    """

    h = FNV_OFFSET_BASIS
    for unit in _utf16_units(identity):
        h ^= unit
        h = (h * FNV_PRIME) & UINT32_MASK
    return h / UINT32_MASK


def meters_to_degrees(meters: float, at_latitude: float) -> DegreeDelta:
    """Convert a linear offset to latitude/longitude deltas at `at_latitude`."""

    cos_lat = math.cos(math.radians(at_latitude))
    if abs(cos_lat) < MIN_COS_LATITUDE:
        cos_lat = math.copysign(MIN_COS_LATITUDE, cos_lat)
    return DegreeDelta(
        lat_delta=meters / METERS_PER_DEGREE,
        lng_delta=meters / (METERS_PER_DEGREE * cos_lat),
    )


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two points."""

    rlat1, rlat2 = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))
