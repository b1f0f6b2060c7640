"""Delivery configuration loaded from the environment.

Pricing, the central dispatch location, service-area enforcement and the
routing provider are deployment concerns; every value has a default that
matches the reference deployment so tests and local runs need no setup.
"""

import os
from dataclasses import dataclass, field

from delivery.geo import BoundingBox, Coordinate

_TRUTHY = {"true", "1", "yes"}

# Operating region used for strict address registration
DEFAULT_SERVICE_REGION = BoundingBox(north=37.0, south=32.3, east=78.5, west=73.0)


@dataclass(frozen=True)
class DeliveryPricing:
    """Fee schedule for a single dispatch hub."""

    central_location: Coordinate
    base_fee: float
    per_km_rate: float
    free_delivery_threshold: float
    max_delivery_distance: float
    central_location_name: str = "Central Pharmacy"
    free_distance_km: float = 5.0


@dataclass(frozen=True)
class DeliverySettings:
    pricing: DeliveryPricing
    service_area_enforcement: bool = False
    service_region: BoundingBox = DEFAULT_SERVICE_REGION
    allowed_pincodes: tuple[str, ...] = field(default_factory=tuple)
    routing_adapter: str = "none"
    openroute_api_key: str = ""
    routing_timeout_seconds: float = 10.0
    tax_rate: float = 0.0

    @classmethod
    def from_env(cls, environ=None) -> "DeliverySettings":
        env = os.environ if environ is None else environ

        pricing = DeliveryPricing(
            central_location=Coordinate(
                latitude=float(env.get("DELIVERY_CENTRAL_LAT", "34.0837")),
                longitude=float(env.get("DELIVERY_CENTRAL_LNG", "74.7973")),
            ),
            central_location_name=env.get("DELIVERY_CENTRAL_NAME", "Srinagar"),
            base_fee=float(env.get("DELIVERY_BASE_FEE", "50")),
            per_km_rate=float(env.get("DELIVERY_PER_KM_RATE", "8")),
            free_delivery_threshold=float(env.get("DELIVERY_FREE_THRESHOLD", "500")),
            max_delivery_distance=float(env.get("DELIVERY_MAX_DISTANCE_KM", "50")),
        )
        pincodes = tuple(p.strip() for p in env.get("ALLOWED_PINCODES", "").split(",") if p.strip())

        return cls(
            pricing=pricing,
            service_area_enforcement=env.get("SERVICE_AREA_ENFORCEMENT", "").lower() in _TRUTHY,
            allowed_pincodes=pincodes,
            routing_adapter=env.get("ROUTING_ADAPTER", "none"),
            openroute_api_key=env.get("OPENROUTE_API_KEY", ""),
            routing_timeout_seconds=float(env.get("ROUTING_TIMEOUT_SECONDS", "10")),
            tax_rate=float(env.get("ORDER_TAX_RATE", "0")),
        )


_settings: DeliverySettings | None = None


def get_settings() -> DeliverySettings:
    """Return the active delivery settings, loading them from the environment once."""
    global _settings
    if _settings is None:
        _settings = DeliverySettings.from_env()
    return _settings


def set_settings(settings: DeliverySettings) -> None:
    """Override the active settings (useful for tests)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    global _settings
    _settings = None
