# ============================================================================
# COORDINATE GEOMETRY
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - Pure functions, no I/O
# PURPOSE: Coordinate validation, fixed-point cache keys, haversine distance
# CREATED: 14 SEP 2026
# ============================================================================
"""
Coordinate Geometry

Cache keys are built by fixed-point truncation of the decimal string form
of each coordinate (ROUND_DOWN, i.e. toward zero). The key is an integer
count of 10^-precision degrees, so -15.00004 and -15.00006 land on the
same key on every platform regardless of binary float representation.

Distances use the haversine formula on a spherical Earth (R = 6371.0 km).
"""

import math
from decimal import Decimal, ROUND_DOWN
from typing import List, Tuple

from core.errors import ValidationError


EARTH_RADIUS_KM = 6371.0
DEFAULT_PRECISION = 4


def validate_coordinates(lat: float, lon: float) -> Tuple[float, float]:
    """
    Check a coordinate pair and return it as floats.

    Raises:
        ValidationError: non-numeric, NaN/inf, or out of range
    """
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        raise ValidationError("lat and lon must be numbers")

    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        raise ValidationError("lat and lon must be finite")
    if not -90.0 <= lat_f <= 90.0:
        raise ValidationError(f"lat must be in [-90, 90], got {lat_f}")
    if not -180.0 <= lon_f <= 180.0:
        raise ValidationError(f"lon must be in [-180, 180], got {lon_f}")
    return lat_f, lon_f


def round_key(value: float, precision: int = DEFAULT_PRECISION) -> int:
    """
    Fixed-point cache key for one coordinate.

    Digits beyond the precision are dropped:
    round_key(-15.05009) == -150500, round_key(15.05009) == 150500.
    """
    quantum = Decimal(1).scaleb(-precision)
    rounded = Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_DOWN)
    return int(rounded.scaleb(precision))


def key_to_degrees(key: int, precision: int = DEFAULT_PRECISION) -> float:
    """Inverse of round_key (exact for the rounded value)."""
    return float(Decimal(key).scaleb(-precision))


def round_coordinate(value: float, precision: int = DEFAULT_PRECISION) -> float:
    """Truncated coordinate as a float, using the same rule as round_key."""
    return key_to_degrees(round_key(value, precision), precision)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def search_window(
    lat: float, lon: float, radius_deg: float
) -> Tuple[Tuple[float, float], List[Tuple[float, float]]]:
    """
    Degree box around a coordinate for candidate queries.

    Returns the latitude range and one or two longitude ranges; the box is
    split in two when it crosses the antimeridian.
    """
    lat_range = (max(-90.0, lat - radius_deg), min(90.0, lat + radius_deg))
    lon_lo = lon - radius_deg
    lon_hi = lon + radius_deg

    if lon_lo < -180.0:
        lon_ranges = [(-180.0, lon_hi), (lon_lo + 360.0, 180.0)]
    elif lon_hi > 180.0:
        lon_ranges = [(lon_lo, 180.0), (-180.0, lon_hi - 360.0)]
    else:
        lon_ranges = [(lon_lo, lon_hi)]
    return lat_range, lon_ranges


__all__ = [
    "EARTH_RADIUS_KM",
    "DEFAULT_PRECISION",
    "validate_coordinates",
    "round_key",
    "key_to_degrees",
    "round_coordinate",
    "haversine_km",
    "search_window",
]
