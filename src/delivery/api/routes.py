"""FastAPI routes for delivery quotes, service-area checks and geocoding."""

from fastapi import APIRouter, HTTPException, Query

from delivery.api.schemas import (
    DeliveryConfigResponse,
    GeocodeResponse,
    QuoteRequest,
    QuoteResponse,
    ServiceAreaCheckRequest,
    ServiceAreaResponse,
)
from delivery.errors import ExternalServiceError
from delivery.fees import estimate_delivery_minutes, quote_delivery
from delivery.geo import Coordinate
from delivery.routing import get_router
from delivery.service_area import policy_from_settings
from delivery.settings import get_settings

delivery_router = APIRouter(prefix="/delivery", tags=["delivery"])


@delivery_router.post("/quote", response_model=QuoteResponse)
def quote(body: QuoteRequest) -> QuoteResponse:
    """Price delivery to an address. A destination out of range comes back with is_deliverable false."""
    pricing = get_settings().pricing
    result = quote_delivery(
        Coordinate.from_mapping(body.address.model_dump()),
        body.subtotal,
        pricing,
        router=get_router(),
    )
    data = result.to_dict()
    if result.is_deliverable and result.distance_km is not None:
        data["estimated_delivery_minutes"] = estimate_delivery_minutes(result.distance_km, result.duration_min)
    return QuoteResponse(**data)


@delivery_router.get("/config", response_model=DeliveryConfigResponse)
def delivery_config() -> DeliveryConfigResponse:
    pricing = get_settings().pricing
    return DeliveryConfigResponse(
        central_location={
            "name": pricing.central_location_name,
            "latitude": pricing.central_location.latitude,
            "longitude": pricing.central_location.longitude,
        },
        base_fee=pricing.base_fee,
        per_km_rate=pricing.per_km_rate,
        free_delivery_threshold=pricing.free_delivery_threshold,
        max_delivery_distance=pricing.max_delivery_distance,
    )


@delivery_router.post("/service-area/check", response_model=ServiceAreaResponse)
def check_service_area(body: ServiceAreaCheckRequest) -> ServiceAreaResponse:
    decision = policy_from_settings(get_settings()).check(body.address.model_dump(exclude_none=True))
    return ServiceAreaResponse(allowed=decision.allowed, reason=decision.reason)


def _require_router():
    router = get_router()
    if router is None:
        raise HTTPException(status_code=503, detail="Geocoding service not configured")
    return router


@delivery_router.get("/geocode", response_model=list[GeocodeResponse])
def geocode(q: str = Query(min_length=3), size: int = Query(default=5, ge=1, le=10)) -> list[GeocodeResponse]:
    router = _require_router()
    try:
        results = router.geocode(q, size=size)
    except ExternalServiceError as exc:
        raise HTTPException(status_code=502, detail="Geocoding provider unavailable") from exc
    return [GeocodeResponse(**vars(result)) for result in results]


@delivery_router.get("/reverse-geocode", response_model=GeocodeResponse)
def reverse_geocode(
    lat: float = Query(ge=-90, le=90),
    lng: float = Query(ge=-180, le=180),
) -> GeocodeResponse:
    router = _require_router()
    try:
        result = router.reverse_geocode(lat, lng)
    except ExternalServiceError as exc:
        raise HTTPException(status_code=502, detail="Geocoding provider unavailable") from exc
    if result is None:
        raise HTTPException(status_code=404, detail="No address found for coordinates")
    return GeocodeResponse(**vars(result))
