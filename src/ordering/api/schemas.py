"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

OrderTypeName = Literal["medicine", "doctor_booking", "test_booking"]
PaymentStatusName = Literal["pending", "processing", "paid", "failed", "refunded"]


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str
    city: str
    state: str | None = None
    zip_code: str
    phone: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class OrderItemSchema(BaseModel):
    medicine_id: str
    name: str | None = None
    quantity: int = Field(ge=1)
    price: float = Field(ge=0)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    customer_id: str
    order_type: OrderTypeName = "medicine"
    items: list[OrderItemSchema] = Field(default_factory=list)
    delivery_address: AddressSchema | None = None
    subtotal: float | None = Field(default=None, ge=0)
    payment_method: Literal["cash_on_delivery", "online"] = "cash_on_delivery"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "order_type": "medicine",
                    "items": [{"medicine_id": "med-001", "name": "Paracetamol 500mg", "quantity": 2, "price": 150.0}],
                    "delivery_address": {
                        "street": "Residency Road",
                        "city": "Srinagar",
                        "state": "J&K",
                        "zip_code": "190001",
                        "phone": "9999999999",
                        "latitude": 34.07,
                        "longitude": 74.81,
                    },
                    "payment_method": "online",
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
    cancelled_by: str | None = None


class DispatchOrderRequest(BaseModel):
    delivery_agent_id: str | None = None


class ChangeDeliveryAddressRequest(BaseModel):
    delivery_address: AddressSchema


class UpdatePaymentStatusRequest(BaseModel):
    status: PaymentStatusName
    source: Literal["user", "admin"] = "user"
    metadata: dict = Field(default_factory=dict)


class RecordPaymentAttemptRequest(BaseModel):
    status: str
    gateway_response: dict = Field(default_factory=dict)
    error: str | None = None


# ---------------------------------------------------------------------------
# Webhook Request Schemas
# ---------------------------------------------------------------------------
class PaymentWebhookRequest(BaseModel):
    """Gateway-neutral payment callback."""

    order_id: str  # order id, order number or gateway order id
    webhook_id: str
    status: PaymentStatusName
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    payload: dict = Field(default_factory=dict)


class CashfreeWebhookRequest(BaseModel):
    """Cashfree's native callback envelope (``PAYMENT_*_WEBHOOK`` types)."""

    type: str
    data: dict = Field(default_factory=dict)
    event_time: str | None = None


class RazorpayWebhookRequest(BaseModel):
    """Razorpay's event envelope (``payment.captured``, ``refund.processed``, ...)."""

    event: str
    payload: dict = Field(default_factory=dict)
    created_at: int | None = None
    id: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderCreatedResponse(BaseModel):
    order_id: str
    order_number: str
    total_amount: float
    delivery_charges: float


class CancellationResponse(BaseModel):
    cancelled: bool
    reason: str | None = None
    payment_failed: bool = False


class WebhookResponse(BaseModel):
    outcome: Literal["applied", "refreshed", "ignored"]
    accepted: bool


class PaymentStatusResponse(BaseModel):
    outcome: Literal["applied", "refreshed", "ignored"]
    payment_status: str


class PaymentHistoryEntry(BaseModel):
    sequence: int
    status: str
    source: str
    recorded_at: datetime
    metadata: dict


class PricingResponse(BaseModel):
    subtotal: float
    delivery_charges: float
    tax: float
    total_amount: float
    currency: str


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    order_type: str
    customer_id: str
    status: str
    items: list[OrderItemSchema]
    delivery_address: dict | None = None
    pricing: PricingResponse
    distance_km: float | None = None
    payment_method: str
    payment_status: str
    payment_history: list[PaymentHistoryEntry]
    last_webhook_id: str | None = None
    cancellation_reason: str | None = None
    delivery_agent_id: str | None = None
    created_at: datetime | None = None


class StatusResponse(BaseModel):
    status: str = "ok"
