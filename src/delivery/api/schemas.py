"""Pydantic request/response schemas for the Delivery API."""

from pydantic import BaseModel, Field


class LocatedAddressSchema(BaseModel):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class QuoteRequest(BaseModel):
    address: LocatedAddressSchema
    subtotal: float = Field(default=0.0, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [{"address": {"latitude": 34.07, "longitude": 74.81}, "subtotal": 300.0}]
        }
    }


class ServiceAreaCheckRequest(BaseModel):
    address: LocatedAddressSchema


class FeeBreakdownResponse(BaseModel):
    base_fee: float
    distance_fee: float
    free_delivery_applied: bool
    free_threshold: float
    exceeds_range: bool


class QuoteResponse(BaseModel):
    is_deliverable: bool
    fee: float | None
    final_fee: float | None
    is_free: bool
    distance_km: float | None
    duration_min: int | None
    is_estimated: bool
    reason: str | None
    central_location: str
    estimated_delivery_hours: int
    estimated_delivery_minutes: int | None = None
    breakdown: FeeBreakdownResponse


class ServiceAreaResponse(BaseModel):
    allowed: bool
    reason: str | None = None


class DeliveryConfigResponse(BaseModel):
    central_location: dict
    base_fee: float
    per_km_rate: float
    free_delivery_threshold: float
    max_delivery_distance: float


class GeocodeResponse(BaseModel):
    label: str
    latitude: float
    longitude: float
    confidence: float | None = None
    address: dict = Field(default_factory=dict)
