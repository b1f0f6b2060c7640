"""Geofence & distance primitives.

Great-circle distance between two coordinates (haversine) and fixed
bounding-box membership. Everything here is pure and deterministic; the
fee engine and service-area policies build on it.
"""

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude {self.latitude} out of range [-90, 90]")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude {self.longitude} out of range [-180, 180]")

    @classmethod
    def from_mapping(cls, data: dict | None) -> "Coordinate | None":
        """Build a coordinate from an address-like mapping.

        Accepts either ``latitude``/``longitude`` or ``lat``/``lng`` keys.
        Returns None when either component is missing, since an address
        without geolocation is a normal, degraded case.
        """
        if not data:
            return None
        lat = data.get("latitude", data.get("lat"))
        lng = data.get("longitude", data.get("lng"))
        if lat is None or lng is None:
            return None
        return cls(latitude=float(lat), longitude=float(lng))


@dataclass(frozen=True)
class BoundingBox:
    """Rectangular region bounded by two parallels and two meridians."""

    north: float
    south: float
    east: float
    west: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east


def haversine_distance(start: Coordinate, end: Coordinate) -> float:
    """Great-circle distance in kilometres, rounded to 2 decimals."""
    d_lat = math.radians(end.latitude - start.latitude)
    d_lng = math.radians(end.longitude - start.longitude)

    a = math.sin(d_lat / 2) ** 2 + math.cos(math.radians(start.latitude)) * math.cos(
        math.radians(end.latitude)
    ) * math.sin(d_lng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return round(EARTH_RADIUS_KM * c, 2)
