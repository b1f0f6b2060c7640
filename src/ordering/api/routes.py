"""FastAPI routes for the Ordering domain — orders and payment callbacks."""

import json
import time

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    CancellationResponse,
    CancelOrderRequest,
    CashfreeWebhookRequest,
    ChangeDeliveryAddressRequest,
    CreateOrderRequest,
    DispatchOrderRequest,
    OrderCreatedResponse,
    OrderResponse,
    PaymentStatusResponse,
    PaymentWebhookRequest,
    RazorpayWebhookRequest,
    RecordPaymentAttemptRequest,
    StatusResponse,
    UpdatePaymentStatusRequest,
    WebhookResponse,
)
from ordering.gateway import DEFAULT_GATEWAY, get_verifier
from ordering.order.address import ChangeDeliveryAddress
from ordering.order.cancellation import CancelOrder
from ordering.order.concurrency import process_with_retry
from ordering.order.creation import CreateOrder
from ordering.order.order import Order, PaymentGateway
from ordering.order.payment import ApplyPaymentWebhook, RecordPaymentAttempt, UpdatePaymentStatus
from ordering.order.transitions import ConfirmOrder, DispatchOrder, MarkDelivered, StartProcessing

logger = structlog.get_logger(__name__)

# Cashfree callback type → payment status
_CASHFREE_STATUSES = {
    "PAYMENT_SUCCESS_WEBHOOK": "paid",
    "PAYMENT_FAILED_WEBHOOK": "failed",
}

# Razorpay event → payment status
_RAZORPAY_STATUSES = {
    "payment.captured": "paid",
    "refund.processed": "refunded",
}


def _order_view(order: Order) -> OrderResponse:
    address = order.delivery_address
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        order_type=order.order_type,
        customer_id=str(order.customer_id),
        status=order.status,
        items=[
            {"medicine_id": str(item.medicine_id), "name": item.name, "quantity": item.quantity, "price": item.price}
            for item in order.items or []
        ],
        delivery_address=address.to_dict() if address else None,
        pricing=order.pricing.to_dict(),
        distance_km=address.distance_km if address else None,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        payment_history=[
            {
                "sequence": entry.sequence,
                "status": entry.status.value,
                "source": entry.source.value,
                "recorded_at": entry.recorded_at,
                "metadata": entry.metadata,
            }
            for entry in order.payment_timeline
        ],
        last_webhook_id=order.last_webhook_id,
        cancellation_reason=order.cancellation_reason,
        delivery_agent_id=str(order.delivery_agent_id) if order.delivery_agent_id else None,
        created_at=order.created_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderCreatedResponse)
def create_order(body: CreateOrderRequest) -> OrderCreatedResponse:
    command = CreateOrder(
        customer_id=body.customer_id,
        order_type=body.order_type,
        items=json.dumps([item.model_dump() for item in body.items]),
        delivery_address=(
            json.dumps(body.delivery_address.model_dump(exclude_none=True)) if body.delivery_address else None
        ),
        subtotal=body.subtotal,
        payment_method=body.payment_method,
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return OrderCreatedResponse(
        order_id=order_id,
        order_number=order.order_number,
        total_amount=order.pricing.total_amount,
        delivery_charges=order.pricing.delivery_charges,
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    order.verify_pricing()
    return _order_view(order)


@order_router.post("/{order_id}/cancel", response_model=CancellationResponse)
def cancel_order(order_id: str, body: CancelOrderRequest) -> CancellationResponse:
    command = CancelOrder(
        order_id=order_id,
        reason=body.reason,
        cancelled_by=body.cancelled_by,
    )
    result = process_with_retry(command)
    if not result.cancelled:
        raise HTTPException(status_code=409, detail=result.reason)
    return CancellationResponse(
        cancelled=True,
        reason=result.reason,
        payment_failed=result.payment_failed,
    )


@order_router.put("/{order_id}/confirm", response_model=StatusResponse)
def confirm_order(order_id: str) -> StatusResponse:
    process_with_retry(ConfirmOrder(order_id=order_id))
    return StatusResponse(status="confirmed")


@order_router.put("/{order_id}/processing", response_model=StatusResponse)
def start_processing(order_id: str) -> StatusResponse:
    process_with_retry(StartProcessing(order_id=order_id))
    return StatusResponse(status="processing")


@order_router.put("/{order_id}/dispatch", response_model=StatusResponse)
def dispatch_order(order_id: str, body: DispatchOrderRequest) -> StatusResponse:
    process_with_retry(DispatchOrder(order_id=order_id, delivery_agent_id=body.delivery_agent_id))
    return StatusResponse(status="out_for_delivery")


@order_router.put("/{order_id}/deliver", response_model=StatusResponse)
def mark_delivered(order_id: str) -> StatusResponse:
    process_with_retry(MarkDelivered(order_id=order_id))
    return StatusResponse(status="delivered")


@order_router.put("/{order_id}/delivery-address", response_model=StatusResponse)
def change_delivery_address(order_id: str, body: ChangeDeliveryAddressRequest) -> StatusResponse:
    command = ChangeDeliveryAddress(
        order_id=order_id,
        delivery_address=json.dumps(body.delivery_address.model_dump(exclude_none=True)),
    )
    process_with_retry(command)
    return StatusResponse(status="address_changed")


@order_router.post("/{order_id}/payment/status", response_model=PaymentStatusResponse)
def update_payment_status(order_id: str, body: UpdatePaymentStatusRequest) -> PaymentStatusResponse:
    command = UpdatePaymentStatus(
        order_id=order_id,
        status=body.status,
        source=body.source,
        details=json.dumps(body.metadata),
    )
    outcome = process_with_retry(command)
    order = current_domain.repository_for(Order).get(order_id)
    return PaymentStatusResponse(outcome=outcome.value, payment_status=order.payment_status)


@order_router.post("/{order_id}/payment/attempts", status_code=201, response_model=StatusResponse)
def record_payment_attempt(order_id: str, body: RecordPaymentAttemptRequest) -> StatusResponse:
    command = RecordPaymentAttempt(
        order_id=order_id,
        status=body.status,
        gateway_response=json.dumps(body.gateway_response),
        error=body.error,
    )
    process_with_retry(command)
    return StatusResponse(status="recorded")


# ---------------------------------------------------------------------------
# Payment Webhook Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


async def _verify_signature(request: Request, signature: str, gateway: str = DEFAULT_GATEWAY) -> None:
    if not get_verifier(gateway).verify_webhook_signature(await request.body(), signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")


def _apply_gateway_callback(command: ApplyPaymentWebhook) -> WebhookResponse:
    """Apply a gateway's own callback. Unknown orders are acknowledged as ignored."""
    try:
        outcome = process_with_retry(command)
    except ObjectNotFoundError:
        logger.warning("Webhook for unknown order", gateway=command.gateway, order_ref=command.order_id)
        return WebhookResponse(outcome="ignored", accepted=False)
    return WebhookResponse(outcome=outcome.value, accepted=outcome.accepted)


@payment_router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(
    request: Request,
    body: PaymentWebhookRequest,
    x_webhook_signature: str = Header(default=""),
) -> WebhookResponse:
    """Reconcile a payment callback. Stale or duplicate deliveries are acknowledged as ignored."""
    await _verify_signature(request, x_webhook_signature)

    command = ApplyPaymentWebhook(
        order_id=body.order_id,
        webhook_id=body.webhook_id,
        status=body.status,
        gateway_order_id=body.gateway_order_id,
        gateway_payment_id=body.gateway_payment_id,
        payload=json.dumps(body.payload),
    )
    outcome = await run_in_threadpool(process_with_retry, command)
    return WebhookResponse(outcome=outcome.value, accepted=outcome.accepted)


@payment_router.post("/webhook/cashfree", response_model=WebhookResponse)
async def cashfree_webhook(
    request: Request,
    body: CashfreeWebhookRequest,
    x_webhook_signature: str = Header(default=""),
    x_webhook_timestamp: str | None = Header(default=None),
) -> WebhookResponse:
    """Cashfree callback. Delivery order is taken from the webhook timestamp."""
    await _verify_signature(request, x_webhook_signature, PaymentGateway.CASHFREE.value)

    status = _CASHFREE_STATUSES.get(body.type)
    if status is None:
        return WebhookResponse(outcome="ignored", accepted=False)

    order_ref = (body.data.get("order") or {}).get("order_id")
    if not order_ref:
        raise HTTPException(status_code=400, detail="Webhook is missing data.order.order_id")
    payment = body.data.get("payment") or {}
    payment_id = payment.get("cf_payment_id")

    command = ApplyPaymentWebhook(
        order_id=order_ref,
        webhook_id=x_webhook_timestamp or str(int(time.time() * 1000)),
        status=status,
        gateway_payment_id=str(payment_id) if payment_id else None,
        gateway=PaymentGateway.CASHFREE.value,
        payload=json.dumps({"webhook_type": body.type, "payment_id": payment_id, "amount": payment.get("payment_amount")}),
    )
    return await run_in_threadpool(_apply_gateway_callback, command)


@payment_router.post("/webhook/razorpay", response_model=WebhookResponse)
async def razorpay_webhook(
    request: Request,
    body: RazorpayWebhookRequest,
    x_razorpay_signature: str = Header(default=""),
    x_razorpay_event_id: str | None = Header(default=None),
) -> WebhookResponse:
    """Razorpay callback. Delivery order is taken from the event's ``created_at``."""
    await _verify_signature(request, x_razorpay_signature, PaymentGateway.RAZORPAY.value)

    status = _RAZORPAY_STATUSES.get(body.event)
    if status is None:
        return WebhookResponse(outcome="ignored", accepted=False)

    payment = (body.payload.get("payment") or {}).get("entity") or {}
    refund = (body.payload.get("refund") or {}).get("entity") or {}
    notes = refund.get("notes") or payment.get("notes") or {}
    order_ref = notes.get("entityId") or payment.get("order_id")
    if not order_ref:
        raise HTTPException(status_code=400, detail="Webhook carries no order reference")

    if body.created_at is not None:
        webhook_id = str(body.created_at)
    else:
        webhook_id = body.id or x_razorpay_event_id or str(int(time.time() * 1000))

    command = ApplyPaymentWebhook(
        order_id=str(order_ref),
        webhook_id=webhook_id,
        status=status,
        gateway_order_id=payment.get("order_id"),
        gateway_payment_id=payment.get("id") or refund.get("payment_id"),
        gateway=PaymentGateway.RAZORPAY.value,
        payload=json.dumps(
            {
                "event": body.event,
                "payment_id": payment.get("id"),
                "refund_id": refund.get("id"),
                "amount": (refund or payment).get("amount"),
            }
        ),
    )
    return await run_in_threadpool(_apply_gateway_callback, command)
