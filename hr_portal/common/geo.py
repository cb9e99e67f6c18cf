"""Great-circle distance and office geofence checks."""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_METERS = 6_371_000


@dataclass(frozen=True)
class OfficeLocation:
    latitude: float
    longitude: float
    radius_meters: float

    @classmethod
    def from_settings(cls, settings) -> "OfficeLocation":
        return cls(
            latitude=settings.OFFICE_LATITUDE,
            longitude=settings.OFFICE_LONGITUDE,
            radius_meters=settings.OFFICE_RADIUS_METERS,
        )


@dataclass(frozen=True)
class GeofenceResult:
    is_within: bool
    distance: int
    allowed_radius: float


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in metres between two WGS84 coordinates."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def is_within_radius(latitude: float, longitude: float, office: OfficeLocation) -> GeofenceResult:
    """Classify a position against the office circle.

    The comparison uses the exact distance; the reported distance is
    rounded to whole metres.
    """
    distance = calculate_distance(latitude, longitude, office.latitude, office.longitude)
    return GeofenceResult(
        is_within=distance <= office.radius_meters,
        distance=round(distance),
        allowed_radius=office.radius_meters,
    )


def format_coordinates(latitude: float, longitude: float) -> str:
    return f"{latitude:.6f}, {longitude:.6f}"


def maps_url(latitude: float, longitude: float) -> str:
    return f"https://www.google.com/maps?q={latitude},{longitude}"
