"""Routing provider port (abstract interface).

Defines the contract that every routing/geocoding adapter implements, so the
fee engine can switch between FakeRouter (dev/test) and the OpenRouteService
adapter (production) without changing any pricing code.

Adapters raise ``ExternalServiceError`` on any failure; the fallback to
haversine distance lives in ``delivery.routing.resolve_route``, not in the
adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RouteResult:
    """Distance and duration between two points.

    ``fallback`` is True when the figures are a straight-line estimate
    rather than a road-network route.
    """

    distance_km: float
    duration_min: int
    fallback: bool = False
    provider: str = ""


@dataclass(frozen=True)
class GeocodeResult:
    label: str
    latitude: float
    longitude: float
    confidence: float | None = None
    address: dict = field(default_factory=dict)


class RoutingProvider(ABC):
    """Abstract routing and geocoding interface."""

    name: str = "routing"

    @abstractmethod
    def get_directions(
        self,
        start_lat: float,
        start_lng: float,
        end_lat: float,
        end_lng: float,
    ) -> RouteResult:
        """Road-network distance (km) and duration (minutes) between two points."""
        ...

    @abstractmethod
    def geocode(self, text: str, size: int = 5) -> list[GeocodeResult]:
        """Resolve free-form address text to candidate coordinates."""
        ...

    @abstractmethod
    def reverse_geocode(self, lat: float, lng: float) -> GeocodeResult | None:
        """Resolve coordinates to the closest known address."""
        ...
