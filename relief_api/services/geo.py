"""Position math — DB independent haversine implementation"""
import math
from dataclasses import dataclass
from typing import Optional

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE_LAT = 111_000.0  # 1 degree ≈ 111km


@dataclass(frozen=True)
class Point:
    """Latitude/longitude in decimal degrees"""
    latitude: float
    longitude: float


def haversine_m(a: Point, b: Point) -> float:
    """Great-circle distance between two points in meters (haversine formula)"""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlng = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    # rounding can push h a hair outside [0, 1] for antipodal points
    h = min(max(h, 0.0), 1.0)
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def bounding_box(center: Point, radius_m: float) -> Optional[dict]:
    """Rectangular bounding box (for a coarse filter).

    Returns None when the box would wrap a pole or the ±180° meridian;
    a single lat/lng rectangle cannot describe those areas.
    """
    dlat = radius_m / METERS_PER_DEGREE_LAT
    min_lat = center.latitude - dlat
    max_lat = center.latitude + dlat
    if min_lat <= -90 or max_lat >= 90:
        return None

    # widen by the latitude edge closest to a pole so the box never undercuts the circle
    widest_lat = max(abs(min_lat), abs(max_lat))
    dlng = radius_m / (METERS_PER_DEGREE_LAT * math.cos(math.radians(widest_lat)))
    min_lng = center.longitude - dlng
    max_lng = center.longitude + dlng
    if min_lng < -180 or max_lng > 180:
        return None

    return {
        "min_lat": min_lat,
        "max_lat": max_lat,
        "min_lng": min_lng,
        "max_lng": max_lng,
    }
