"""
Geolocation utilities: Haversine distance, bounding boxes, coordinate checks.

Every distance and radius in this package is in miles. Kilometres only
appear in the display helpers at the bottom of this module.
"""

import math
from typing import NamedTuple, Optional

EARTH_RADIUS_MILES = 3959
MILES_PER_DEGREE_LAT = 69
KM_PER_MILE = 1.60934


class Coordinates(NamedTuple):
    latitude: float
    longitude: float


class BoundingBox(NamedTuple):
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float


def calculate_distance(point1: Coordinates, point2: Coordinates) -> float:
    """
    Great-circle distance between two points using the Haversine formula.

    Returns:
        Distance in miles, rounded to one decimal place.
    """
    d_lat = math.radians(point2.latitude - point1.latitude)
    d_lon = math.radians(point2.longitude - point1.longitude)
    lat1 = math.radians(point1.latitude)
    lat2 = math.radians(point2.latitude)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.sin(d_lon / 2) ** 2 * math.cos(lat1) * math.cos(lat2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_MILES * c, 1)


def get_bounding_box(center: Coordinates, radius_miles: float) -> BoundingBox:
    """
    Approximate lat/lng rectangle around ``center``, used as a cheap storage prefilter.

    Over-inclusive; the exact radius check runs afterwards on
    the fetched candidates.
    """
    lat_degrees = radius_miles / MILES_PER_DEGREE_LAT
    # cos() tends to 0 at the poles; clamp so the box stays finite
    cos_lat = max(math.cos(math.radians(center.latitude)), 1e-6)
    lng_degrees = radius_miles / (MILES_PER_DEGREE_LAT * cos_lat)

    return BoundingBox(
        min_lat=center.latitude - lat_degrees,
        max_lat=center.latitude + lat_degrees,
        min_lng=center.longitude - lng_degrees,
        max_lng=center.longitude + lng_degrees,
    )


def is_valid_coordinates(latitude: float | None, longitude: float | None) -> bool:
    """Both values numeric and within -90..90 / -180..180."""
    if latitude is None or longitude is None:
        return False
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        return False
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def parse_coordinates(text: str) -> Optional[Coordinates]:
    """Parse a ``"lat,lng"`` string. Returns None when malformed or out of range."""
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        return None
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not is_valid_coordinates(lat, lng):
        return None
    return Coordinates(lat, lng)


# --- Display helpers ---


def miles_to_km(miles: float) -> float:
    return round(miles * KM_PER_MILE, 1)


def format_distance(miles: float, unit: str = "miles") -> str:
    """Human-readable distance: ``"2.3 mi"``, ``"Nearby"``, ``"850m"``, ``"3.7km"``."""
    if unit == "km":
        km = miles_to_km(miles)
        return f"{round(km * 1000)}m" if km < 1 else f"{km}km"
    return "Nearby" if miles < 0.1 else f"{miles} mi"
