"""Great-circle distance and coordinate helpers shared by the matcher and the marker layer."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

EARTH_RADIUS_M = 6_371_000.0
DEFAULT_KEY_PRECISION = 6


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float


def coordinate_from(latitude: Any, longitude: Any) -> Optional[Coordinate]:
    """Build a Coordinate from raw values, or None when they are not a usable location.

    Non-numeric, non-finite and out-of-range values are rejected, and so is the
    (0, 0) placeholder that upstream forms write when no location was picked.
    """
    lat = _safe_float(latitude)
    lng = _safe_float(longitude)
    if lat is None or lng is None:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    if lat == 0.0 and lng == 0.0:
        return None
    return Coordinate(lat, lng)


def is_valid(coordinate: Optional[Coordinate]) -> bool:
    if coordinate is None:
        return False
    return coordinate_from(coordinate.latitude, coordinate.longitude) is not None


def distance(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in meters."""
    if a == b:
        return 0.0
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push h just past 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def location_key(coordinate: Coordinate, precision: int = DEFAULT_KEY_PRECISION) -> str:
    # Fixed-point formatting keeps the key stable; "-0.000000" is folded to "0.000000".
    lat = round(coordinate.latitude, precision) + 0.0
    lng = round(coordinate.longitude, precision) + 0.0
    return f"{lat:.{precision}f},{lng:.{precision}f}"


def _safe_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result
