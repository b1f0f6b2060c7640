"""Delivery fee engine.

Turns a destination (optionally geolocated) and an order subtotal into a
``DeliveryQuote``:

    no coordinate      → base fee, distance unknown, still deliverable
    distance > max     → not deliverable, fee None (hard stop on checkout)
    otherwise          → base + max(0, distance - 5) * per_km_rate

Free delivery (subtotal >= threshold) zeroes the *final* fee only; the
computed fee and its breakdown are always returned for audit.
"""

import math
from dataclasses import dataclass

import structlog

from delivery.errors import NotServiceableError
from delivery.geo import Coordinate
from delivery.routing import resolve_route
from delivery.routing.port import RoutingProvider
from delivery.settings import DeliveryPricing

logger = structlog.get_logger(__name__)

DEFAULT_ESTIMATED_HOURS = 24
TRAFFIC_SPEED_KMH = 20

# (max distance km, hours), first match wins
_DELIVERY_HOUR_BANDS = (
    (10, 2),
    (25, 6),
    (50, 12),
)


@dataclass(frozen=True)
class FeeBreakdown:
    base_fee: float
    distance_fee: float
    free_delivery_applied: bool
    free_threshold: float
    exceeds_range: bool = False


@dataclass(frozen=True)
class DeliveryQuote:
    """Outcome of a fee computation. Transient: folded into the order at creation."""

    is_deliverable: bool
    fee: float | None
    final_fee: float | None
    is_free: bool
    distance_km: float | None
    breakdown: FeeBreakdown
    duration_min: int | None = None
    is_estimated: bool = False
    reason: str | None = None
    central_location: str = ""

    @property
    def estimated_delivery_hours(self) -> int:
        return estimate_delivery_hours(self.distance_km)

    def to_dict(self) -> dict:
        return {
            "is_deliverable": self.is_deliverable,
            "fee": self.fee,
            "final_fee": self.final_fee,
            "is_free": self.is_free,
            "distance_km": self.distance_km,
            "duration_min": self.duration_min,
            "is_estimated": self.is_estimated,
            "reason": self.reason,
            "central_location": self.central_location,
            "estimated_delivery_hours": self.estimated_delivery_hours,
            "breakdown": {
                "base_fee": self.breakdown.base_fee,
                "distance_fee": self.breakdown.distance_fee,
                "free_delivery_applied": self.breakdown.free_delivery_applied,
                "free_threshold": self.breakdown.free_threshold,
                "exceeds_range": self.breakdown.exceeds_range,
            },
        }


def quote_delivery(
    destination: Coordinate | None,
    subtotal: float,
    pricing: DeliveryPricing,
    router: RoutingProvider | None = None,
) -> DeliveryQuote:
    """Compute the delivery fee for a destination and order subtotal."""
    qualifies_for_free = subtotal >= pricing.free_delivery_threshold

    if destination is None:
        return DeliveryQuote(
            is_deliverable=True,
            fee=pricing.base_fee,
            final_fee=0.0 if qualifies_for_free else pricing.base_fee,
            is_free=qualifies_for_free,
            distance_km=None,
            central_location=pricing.central_location_name,
            breakdown=FeeBreakdown(
                base_fee=pricing.base_fee,
                distance_fee=0.0,
                free_delivery_applied=qualifies_for_free,
                free_threshold=pricing.free_delivery_threshold,
            ),
        )

    route = resolve_route(pricing.central_location, destination, router)
    distance = route.distance_km

    if distance > pricing.max_delivery_distance:
        reason = (
            f"Delivery not available beyond {pricing.max_delivery_distance:g}km "
            f"from {pricing.central_location_name}"
        )
        logger.info("Destination beyond delivery range", distance_km=distance, max_km=pricing.max_delivery_distance)
        return DeliveryQuote(
            is_deliverable=False,
            fee=None,
            final_fee=None,
            is_free=False,
            distance_km=distance,
            duration_min=route.duration_min,
            is_estimated=route.fallback,
            reason=reason,
            central_location=pricing.central_location_name,
            breakdown=FeeBreakdown(
                base_fee=pricing.base_fee,
                distance_fee=0.0,
                free_delivery_applied=False,
                free_threshold=pricing.free_delivery_threshold,
                exceeds_range=True,
            ),
        )

    distance_fee = max(0.0, distance - pricing.free_distance_km) * pricing.per_km_rate
    total_fee = pricing.base_fee + distance_fee

    return DeliveryQuote(
        is_deliverable=True,
        fee=total_fee,
        final_fee=0.0 if qualifies_for_free else total_fee,
        is_free=qualifies_for_free,
        distance_km=distance,
        duration_min=route.duration_min,
        is_estimated=route.fallback,
        central_location=pricing.central_location_name,
        breakdown=FeeBreakdown(
            base_fee=pricing.base_fee,
            distance_fee=distance_fee,
            free_delivery_applied=qualifies_for_free,
            free_threshold=pricing.free_delivery_threshold,
        ),
    )


def require_deliverable(quote: DeliveryQuote) -> DeliveryQuote:
    """Return the quote, or raise NotServiceableError if it is a rejection."""
    if not quote.is_deliverable:
        raise NotServiceableError(quote.reason or "Destination is not serviceable", distance_km=quote.distance_km)
    return quote


def estimate_delivery_hours(distance_km: float | None) -> int:
    if not distance_km:
        return DEFAULT_ESTIMATED_HOURS
    for max_km, hours in _DELIVERY_HOUR_BANDS:
        if distance_km <= max_km:
            return hours
    return DEFAULT_ESTIMATED_HOURS


def estimate_delivery_minutes(distance_km: float, duration_min: int | None = None) -> int:
    """Door-to-door ETA: travel time plus a preparation/traffic buffer.

    Uses the routed duration when available, otherwise city traffic speed.
    """
    buffer = max(15, distance_km * 2)
    if duration_min:
        return math.ceil(duration_min + buffer)
    return math.ceil(distance_km * 60 / TRAFFIC_SPEED_KMH + buffer)
