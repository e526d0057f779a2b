"""
Great-circle helpers for proximity queries.

Coordinates are plain latitude/longitude floats.  Queries first narrow the
candidate rows with ``bounding_box`` (an indexable range filter) and then
apply the exact ``haversine_m`` distance in Python.
"""

from __future__ import annotations

import math

from core.constants import EARTH_RADIUS_M


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in metres between two points on the Earth's surface."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(lat: float, lng: float, radius_m: float) -> tuple[float, float, float, float]:
    """
    Return ``(min_lat, max_lat, min_lng, max_lng)`` enclosing the circle.

    Computed on the same sphere as ``haversine_m``, so every point with
    ``haversine_m <= radius_m`` lies inside the box.  The longitude
    half-width is the circle's widest reach, ``asin(sin(d) / cos(lat))``,
    which sits slightly poleward of ``lat``.  Near the poles or across the
    antimeridian the longitude range widens to the full ``[-180, 180]``.
    """
    angular = radius_m / EARTH_RADIUS_M
    d_lat = math.degrees(angular)
    min_lat = max(-90.0, lat - d_lat)
    max_lat = min(90.0, lat + d_lat)

    cos_lat = math.cos(math.radians(lat))
    if min_lat <= -90.0 or max_lat >= 90.0 or math.sin(angular) >= cos_lat:
        return min_lat, max_lat, -180.0, 180.0

    d_lng = math.degrees(math.asin(math.sin(angular) / cos_lat))
    min_lng = lng - d_lng
    max_lng = lng + d_lng
    if min_lng < -180.0 or max_lng > 180.0:
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, min_lng, max_lng


def within_radius(lat: float, lng: float, center_lat: float, center_lng: float, radius_m: float) -> bool:
    return haversine_m(lat, lng, center_lat, center_lng) <= radius_m
