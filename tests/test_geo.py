# tests/test_geo.py

import math

import numpy as np
import pytest

from src.domain.errors import ValidationError
from src.domain.geo import (
    DISTANCE_EPSILON_KM,
    EARTH_RADIUS_KM,
    GeoPoint,
    bounding_box,
    haversine_km,
    haversine_km_array,
    within_radius,
)


SAO_PAULO = GeoPoint(-23.5505, -46.6333)
RIO = GeoPoint(-22.9068, -43.1729)


# ── GeoPoint ──────────────────────────────────────────────────────────────────

def test_geopoint_accepts_boundaries():
    assert GeoPoint(90, 180).latitude == 90.0
    assert GeoPoint(-90, -180).longitude == -180.0


@pytest.mark.parametrize("lat, lon, field", [
    (90.0001, 0, "latitude"),
    (-91, 0, "latitude"),
    (0, 180.5, "longitude"),
    (0, -181, "longitude"),
])
def test_geopoint_rejects_out_of_range(lat, lon, field):
    with pytest.raises(ValidationError) as info:
        GeoPoint(lat, lon)
    assert info.value.field == field


def test_geopoint_rejects_nan_and_non_numbers():
    with pytest.raises(ValidationError):
        GeoPoint(float("nan"), 0)
    with pytest.raises(ValidationError):
        GeoPoint("10", 0)
    with pytest.raises(ValidationError):
        GeoPoint(True, 0)


def test_geopoint_is_immutable():
    point = GeoPoint.create(1, 2)
    with pytest.raises(AttributeError):
        point.latitude = 5


# ── Distance ──────────────────────────────────────────────────────────────────

def test_distance_to_self_is_zero():
    assert SAO_PAULO.distance_km(SAO_PAULO) == 0.0


def test_distance_is_symmetric():
    assert SAO_PAULO.distance_km(RIO) == pytest.approx(RIO.distance_km(SAO_PAULO), abs=1e-9)


def test_sao_paulo_to_rio_is_about_357_km():
    assert SAO_PAULO.distance_km(RIO) == pytest.approx(357, abs=5)


def test_antipodal_distance_is_half_circumference():
    distance = haversine_km(0, 0, 0, 180)
    assert distance == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-9)


def test_distance_across_antimeridian_is_short():
    assert haversine_km(0, 179.9, 0, -179.9) == pytest.approx(22.24, abs=0.05)


def test_vectorised_haversine_matches_scalar():
    lats = np.array([RIO.latitude, 0.0, -23.56])
    lons = np.array([RIO.longitude, 0.0, -46.65])
    distances = haversine_km_array(SAO_PAULO.latitude, SAO_PAULO.longitude, lats, lons)

    for lat, lon, distance in zip(lats, lons, distances):
        expected = haversine_km(SAO_PAULO.latitude, SAO_PAULO.longitude, lat, lon)
        assert distance == pytest.approx(expected, abs=1e-9)


def test_within_radius_is_inclusive():
    assert within_radius(10.0, 10.0)
    assert within_radius(10.0 + DISTANCE_EPSILON_KM / 2, 10.0)
    assert not within_radius(10.001, 10.0)


# ── Bounding box ──────────────────────────────────────────────────────────────

def test_bounding_box_contains_circle_points():
    lat_min, lat_max, ranges = bounding_box(SAO_PAULO, 50)
    assert len(ranges) == 1
    lon_min, lon_max = ranges[0]

    for bearing in range(0, 360, 15):
        # Point roughly 49.9 km away along each bearing
        angular = 49.9 / EARTH_RADIUS_KM
        phi1 = math.radians(SAO_PAULO.latitude)
        lam1 = math.radians(SAO_PAULO.longitude)
        theta = math.radians(bearing)
        phi2 = math.asin(
            math.sin(phi1) * math.cos(angular)
            + math.cos(phi1) * math.sin(angular) * math.cos(theta)
        )
        lam2 = lam1 + math.atan2(
            math.sin(theta) * math.sin(angular) * math.cos(phi1),
            math.cos(angular) - math.sin(phi1) * math.sin(phi2),
        )
        assert lat_min <= math.degrees(phi2) <= lat_max
        assert lon_min <= math.degrees(lam2) <= lon_max


def test_bounding_box_splits_at_antimeridian():
    _, _, ranges = bounding_box(GeoPoint(0, 179.9), 50)
    assert len(ranges) == 2
    (east_min, east_max), (west_min, west_max) = ranges
    assert east_max == 180.0 and west_min == -180.0
    assert east_min < 179.9 and west_max > -180.0


def test_bounding_box_near_pole_covers_all_longitudes():
    lat_min, lat_max, ranges = bounding_box(GeoPoint(89.9, 10), 50)
    assert lat_max == 90.0
    assert ranges == [(-180.0, 180.0)]
