# src/domain/geo.py

import math
import numbers
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .errors import ValidationError


# Mean Earth radius (IUGG), kilometres
EARTH_RADIUS_KM = 6371.0088

# Shared tolerance for radius boundaries and distance tie-breaks
DISTANCE_EPSILON_KM = 1e-6


def _coordinate(field: str, value, low: float, high: float) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(field, f"{field} must be a number.", value)
    value = float(value)
    if math.isnan(value):
        raise ValidationError(field, f"{field} cannot be NaN.", value)
    if not low <= value <= high:
        raise ValidationError(
            field, f"{field} must be between {low:g} and {high:g}.", value
        )
    return value


@dataclass(frozen=True)
class GeoPoint:
    """
    Immutable latitude/longitude pair in decimal degrees.
    Construction fails with ValidationError outside [-90, 90] x [-180, 180].
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        object.__setattr__(
            self, "latitude", _coordinate("latitude", self.latitude, -90.0, 90.0)
        )
        object.__setattr__(
            self, "longitude", _coordinate("longitude", self.longitude, -180.0, 180.0)
        )

    @classmethod
    def create(cls, latitude, longitude) -> "GeoPoint":
        return cls(latitude=latitude, longitude=longitude)

    def distance_km(self, other: "GeoPoint") -> float:
        """Great-circle distance to `other` in kilometres."""
        return haversine_km(
            self.latitude, self.longitude, other.latitude, other.longitude
        )

    def __repr__(self) -> str:
        return f"GeoPoint({self.latitude:.6f}, {self.longitude:.6f})"


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    # Clamp guards asin against a drifting a > 1 for antipodal points
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def haversine_km_array(
    lat: float,
    lon: float,
    lats: np.ndarray,
    lons: np.ndarray,
) -> np.ndarray:
    """
    Vectorised haversine from one origin to N points.

    Args:
        lat, lon:   Origin in decimal degrees.
        lats, lons: Arrays of shape (N,) in decimal degrees.

    Returns:
        Distances in kilometres, shape (N,).
    """
    phi1 = np.radians(lat)
    phi2 = np.radians(lats)
    delta_phi = np.radians(lats - lat)
    delta_lambda = np.radians(lons - lon)

    a = (
        np.sin(delta_phi / 2) ** 2
        + np.cos(phi1) * np.cos(phi2) * np.sin(delta_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * np.arcsin(np.minimum(1.0, np.sqrt(a)))


def within_radius(distance_km: float, radius_km: float) -> bool:
    """Inclusive radius check with the shared tolerance."""
    return distance_km <= radius_km + DISTANCE_EPSILON_KM


def bounding_box(
    origin: GeoPoint,
    radius_km: float,
) -> Tuple[float, float, List[Tuple[float, float]]]:
    """
    Latitude/longitude box enclosing every point within `radius_km` of origin.

    Returns:
        (lat_min, lat_max, longitude_ranges). Longitude ranges are split in two
        when the box crosses the antimeridian, and cover the full [-180, 180]
        range when the circle contains a pole.

    The box is a superset: stores still apply the exact haversine check.
    """
    angular = (radius_km + DISTANCE_EPSILON_KM) / EARTH_RADIUS_KM
    # Small pad keeps points sitting exactly on an edge inside the box
    delta_lat = math.degrees(angular) + 1e-9

    lat_min = origin.latitude - delta_lat
    lat_max = origin.latitude + delta_lat

    if lat_min <= -90.0 or lat_max >= 90.0:
        return max(lat_min, -90.0), min(lat_max, 90.0), [(-180.0, 180.0)]

    delta_lon = math.degrees(
        math.asin(math.sin(angular) / math.cos(math.radians(origin.latitude)))
    ) + 1e-9

    lon_min = origin.longitude - delta_lon
    lon_max = origin.longitude + delta_lon

    if lon_min < -180.0:
        ranges = [(lon_min + 360.0, 180.0), (-180.0, lon_max)]
    elif lon_max > 180.0:
        ranges = [(lon_min, 180.0), (-180.0, lon_max - 360.0)]
    else:
        ranges = [(lon_min, lon_max)]

    return lat_min, lat_max, ranges
