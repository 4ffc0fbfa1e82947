"""
radius_utils.py — Location-based radius filtering for alerts and SOS records.

Provides:
    - Haversine distance calculation between two (lat, lon) points
    - Parsing of the optional ``lat`` / ``lon`` / ``radius`` query triple
    - Radius filtering of any sequence of geotagged records

All distances are in **kilometers**. Coordinates are in **decimal degrees**.

Mathematical Foundation — Haversine Formula
============================================
Given two points P₁(φ₁, λ₁) and P₂(φ₂, λ₂):

    a = sin²(Δφ / 2) + cos(φ₁) · cos(φ₂) · sin²(Δλ / 2)
    c = 2 · atan2(√a, √(1 − a))
    d = R · c

Where:
    φ  = latitude in radians
    λ  = longitude in radians
    R  = Earth's mean radius, 6 371 km

Filtering rules
===============
    - A record is kept iff it carries BOTH lat and lon and its distance
      from the origin is ≤ radius (inclusive boundary).
    - Records without coordinates are excluded, not treated as "anywhere".
    - No filter at all unless lat, lon and radius are all present and
      parse as finite numbers. Garbage input means "no filter", never an
      error.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, TypeVar


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM: float = 6_371.0

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Core data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RadiusQuery:
    """A parsed, usable radius filter request."""
    latitude: float
    longitude: float
    radius_km: float


# ---------------------------------------------------------------------------
# Haversine implementation
# ---------------------------------------------------------------------------

def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in km between two points.

    Symmetric in its two points and exactly 0.0 for identical points.
    The result is not rounded so the inclusive ≤ radius check is exact.

    >>> haversine(0.0, 0.0, 0.0, 0.0)
    0.0
    >>> round(haversine(13.0827, 80.2707, 12.9716, 77.5946), 1)
    290.2
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    # Floating-point noise can push a fractionally outside [0, 1]
    a = min(1.0, max(0.0, a))

    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


# ---------------------------------------------------------------------------
# Query parsing
# ---------------------------------------------------------------------------

def _to_finite_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_radius_query(lat: Any, lon: Any, radius: Any) -> Optional[RadiusQuery]:
    """
    Build a RadiusQuery from raw query-string values.

    Returns None (meaning "do not filter") unless all three values are
    present and parse as finite numbers.

    >>> parse_radius_query("28.7041", "77.1025", "5")
    RadiusQuery(latitude=28.7041, longitude=77.1025, radius_km=5.0)
    >>> parse_radius_query("28.7", None, "5") is None
    True
    >>> parse_radius_query("abc", "77.1", "5") is None
    True
    """
    lat_f = _to_finite_float(lat)
    lon_f = _to_finite_float(lon)
    radius_f = _to_finite_float(radius)
    if lat_f is None or lon_f is None or radius_f is None:
        return None
    return RadiusQuery(latitude=lat_f, longitude=lon_f, radius_km=radius_f)


# ---------------------------------------------------------------------------
# Radius filtering
# ---------------------------------------------------------------------------

def _record_coords(record: Any) -> tuple[Optional[float], Optional[float]]:
    if isinstance(record, dict):
        return record.get("lat"), record.get("lon")
    return getattr(record, "lat", None), getattr(record, "lon", None)


def is_inside_radius(
    origin_lat: float,
    origin_lon: float,
    radius_km: float,
    record: Any,
) -> bool:
    """True iff the record has both coordinates and lies within radius_km."""
    lat, lon = _record_coords(record)
    if lat is None or lon is None:
        return False
    return haversine(origin_lat, origin_lon, lat, lon) <= radius_km


def within_radius(
    origin_lat: float,
    origin_lon: float,
    radius_km: float,
    records: Iterable[T],
) -> List[T]:
    """
    Keep only the records inside the circle, preserving input order.

    Records may be objects exposing ``lat`` / ``lon`` attributes or plain
    dicts with those keys.

    >>> pts = [{"lat": 28.7041, "lon": 77.1025}, {"lat": None, "lon": 77.0},
    ...        {"lat": 19.076, "lon": 72.8777}]
    >>> len(within_radius(28.7041, 77.1025, 5.0, pts))
    1
    """
    return [
        r for r in records
        if is_inside_radius(origin_lat, origin_lon, radius_km, r)
    ]


def apply_radius_query(query: Optional[RadiusQuery], records: Sequence[T]) -> List[T]:
    """Filter by ``query`` when one was given; otherwise return everything."""
    if query is None:
        return list(records)
    return within_radius(query.latitude, query.longitude, query.radius_km, records)
