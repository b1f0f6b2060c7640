"""Deterministic fake router for testing and development.

Returns straight-line distances (or a fixed configured distance) without
any network access, and can be configured to fail so fallback paths can be
exercised.
"""

from delivery.errors import ExternalServiceError
from delivery.geo import Coordinate, haversine_distance
from delivery.routing.port import GeocodeResult, RouteResult, RoutingProvider

AVERAGE_SPEED_KMH = 30


class FakeRouter(RoutingProvider):
    """Configurable fake routing provider."""

    name = "fake"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Routing unavailable"
        self.fixed_distance_km: float | None = None
        self.places: dict[str, GeocodeResult] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Routing unavailable",
        fixed_distance_km: float | None = None,
    ) -> None:
        """Configure router behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.fixed_distance_km = fixed_distance_km

    def add_place(self, label: str, latitude: float, longitude: float) -> None:
        self.places[label.lower()] = GeocodeResult(label=label, latitude=latitude, longitude=longitude, confidence=1.0)

    def get_directions(self, start_lat, start_lng, end_lat, end_lng) -> RouteResult:
        self.calls.append(
            {
                "method": "get_directions",
                "start": (start_lat, start_lng),
                "end": (end_lat, end_lng),
            }
        )
        if not self.should_succeed:
            raise ExternalServiceError(self.name, self.failure_reason)

        if self.fixed_distance_km is not None:
            distance = self.fixed_distance_km
        else:
            distance = haversine_distance(Coordinate(start_lat, start_lng), Coordinate(end_lat, end_lng))
        return RouteResult(
            distance_km=distance,
            duration_min=round(distance / AVERAGE_SPEED_KMH * 60),
            provider=self.name,
        )

    def geocode(self, text: str, size: int = 5) -> list[GeocodeResult]:
        self.calls.append({"method": "geocode", "text": text})
        if not self.should_succeed:
            raise ExternalServiceError(self.name, self.failure_reason)
        needle = text.lower()
        return [place for label, place in self.places.items() if needle in label][:size]

    def reverse_geocode(self, lat: float, lng: float) -> GeocodeResult | None:
        self.calls.append({"method": "reverse_geocode", "point": (lat, lng)})
        if not self.should_succeed:
            raise ExternalServiceError(self.name, self.failure_reason)
        if not self.places:
            return None
        origin = Coordinate(lat, lng)
        return min(
            self.places.values(),
            key=lambda p: haversine_distance(origin, Coordinate(p.latitude, p.longitude)),
        )
