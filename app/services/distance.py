"""
Distance estimation between driver, restaurant and customer.
Great-circle distances via the Haversine formula.
"""

from dataclasses import dataclass
from math import radians, cos, sin, sqrt, atan2
from typing import Any, Mapping, Optional, Union

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""
    lat: float
    lng: float

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> Optional["GeoPoint"]:
        """
        Build a point from a mapping with lat/lng or latitude/longitude keys.
        Returns None when either coordinate is missing.
        """
        if not data:
            return None
        lat = data.get("lat", data.get("latitude"))
        lng = data.get("lng", data.get("longitude"))
        if lat is None or lng is None:
            return None
        return cls(lat=float(lat), lng=float(lng))

    @classmethod
    def from_coordinates(cls, lat: Optional[float], lng: Optional[float]) -> Optional["GeoPoint"]:
        if lat is None or lng is None:
            return None
        return cls(lat=float(lat), lng=float(lng))

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


PointLike = Union[GeoPoint, Mapping[str, Any], None]


def _as_point(value: PointLike) -> Optional[GeoPoint]:
    if value is None or isinstance(value, GeoPoint):
        return value
    return GeoPoint.from_mapping(value)


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate the great circle distance between two points in kilometers.
    """
    lat1_rad = radians(lat1)
    lat2_rad = radians(lat2)
    delta_lat = radians(lat2 - lat1)
    delta_lng = radians(lng2 - lng1)

    a = sin(delta_lat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(delta_lng / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def estimate_distance_km(origin: PointLike, destination: PointLike) -> float:
    """
    Distance between two points in km, rounded to one decimal place.

    Returns 0.0 when the destination has no coordinates. Callers that need to
    tell "unknown" from "same place" should check the points with
    GeoPoint.from_mapping first, or use known_distance_km.

    Raises:
        ValueError: If the origin has no coordinates
    """
    dest = _as_point(destination)
    if dest is None:
        return 0.0
    start = _as_point(origin)
    if start is None:
        raise ValueError("Origin point has no coordinates")
    return round(haversine_distance(start.lat, start.lng, dest.lat, dest.lng), 1)


def known_distance_km(origin: PointLike, destination: PointLike) -> Optional[float]:
    """Like estimate_distance_km, but None when either end is unknown."""
    start = _as_point(origin)
    dest = _as_point(destination)
    if start is None or dest is None:
        return None
    return estimate_distance_km(start, dest)
