"""Bridges order addresses to the delivery fee engine."""

from protean.exceptions import ValidationError

from delivery.fees import DeliveryQuote, quote_delivery
from delivery.geo import Coordinate
from delivery.routing import get_router
from delivery.settings import get_settings


def address_location(address: dict | None) -> Coordinate | None:
    """Coordinate of an address, or None when it is not geolocated."""
    if not address:
        return None
    try:
        return Coordinate.from_mapping(address)
    except (TypeError, ValueError) as exc:
        raise ValidationError({"delivery_address": [str(exc)]}) from exc


def quote_for_address(address: dict | None, subtotal: float) -> DeliveryQuote:
    """Quote delivery to an address with the configured pricing and router."""
    return quote_delivery(
        address_location(address),
        subtotal,
        get_settings().pricing,
        router=get_router(),
    )


def items_subtotal(items_data: list[dict]) -> float:
    return round(sum((item.get("quantity") or 0) * (item.get("price") or 0) for item in items_data), 2)
