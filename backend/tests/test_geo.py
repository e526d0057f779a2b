"""
Unit tests for the great-circle helpers in ``core.geo``.
"""

from __future__ import annotations

import math

import pytest

from core.constants import EARTH_RADIUS_M
from core.geo import bounding_box, haversine_m, within_radius


class TestHaversine:

    def test_same_point_is_zero(self):
        assert haversine_m(12.97, 77.59, 12.97, 77.59) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_m(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)

    def test_known_city_pair(self):
        # Bengaluru -> Chennai, roughly 290 km
        assert haversine_m(12.9716, 77.5946, 13.0827, 80.2707) == pytest.approx(290_000, rel=0.02)

    def test_symmetric(self):
        assert haversine_m(10, 20, -5, 40) == pytest.approx(haversine_m(-5, 40, 10, 20))


class TestWithinRadius:

    @pytest.mark.parametrize("lat,radius_m,expected", [
        (12.98, 2000, True),     # ~1.1 km away
        (12.98, 1000, False),
        (13.05, 10000, True),    # ~8.9 km away
        (13.05, 5000, False),
    ])
    def test_recipient_radius(self, lat, radius_m, expected):
        assert within_radius(12.97, 77.59, lat, 77.59, radius_m) is expected


def _destination(lat: float, lng: float, bearing_deg: float, distance_m: float) -> tuple[float, float]:
    """Point reached from ``(lat, lng)`` along ``bearing_deg`` on the haversine sphere."""
    delta = distance_m / EARTH_RADIUS_M
    theta = math.radians(bearing_deg)
    phi1, lambda1 = math.radians(lat), math.radians(lng)
    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    return math.degrees(phi2), math.degrees(lambda2)


class TestBoundingBox:

    @pytest.mark.parametrize("lat,lng,radius_m", [
        (12.97, 77.59, 2000),
        (12.97, 77.59, 25000),
        (60.17, 24.94, 25000),
        (-33.86, 151.21, 10000),
    ])
    def test_contains_every_point_on_the_circle(self, lat, lng, radius_m):
        min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius_m)

        for bearing in range(0, 360, 5):
            p_lat, p_lng = _destination(lat, lng, bearing, radius_m * 0.99999)
            assert haversine_m(lat, lng, p_lat, p_lng) <= radius_m
            assert min_lat <= p_lat <= max_lat, bearing
            assert min_lng <= p_lng <= max_lng, bearing

    def test_latitude_reach_matches_haversine(self):
        _, max_lat, _, _ = bounding_box(12.97, 77.59, 25000)
        assert haversine_m(12.97, 77.59, max_lat, 77.59) == pytest.approx(25000, abs=1e-3)

    def test_near_pole_spans_all_longitudes(self):
        _, max_lat, min_lng, max_lng = bounding_box(89.99, 10.0, 5000)
        assert max_lat == 90.0
        assert (min_lng, max_lng) == (-180.0, 180.0)

    def test_antimeridian_spans_all_longitudes(self):
        _, _, min_lng, max_lng = bounding_box(0.0, 179.99, 5000)
        assert (min_lng, max_lng) == (-180.0, 180.0)
