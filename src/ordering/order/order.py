"""Order aggregate (CQRS) — the core of the ordering domain.

The Order owns its payment record: status, an append-only status history,
an append-only log of gateway attempts, and the bookkeeping used to reject
stale or duplicate webhooks. Payment has no lifecycle of its own; every
payment change goes through ``apply_payment_status`` and the rules in
``ordering.order.reconciliation``.

State Machine:
    PENDING → CONFIRMED → PROCESSING → OUT_FOR_DELIVERY → DELIVERED
    PENDING → CANCELLED (only from PENDING)

DELIVERED and CANCELLED are terminal. Monetary fields are fixed once the
order leaves PENDING; before that, only a delivery address change reprices
the order.
"""

import json
import secrets
import string
import time
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from delivery.fees import DeliveryQuote, require_deliverable
from delivery.geo import Coordinate
from ordering.domain import ordering
from ordering.errors import StateViolationError
from ordering.order.events import (
    DeliveryAddressChanged,
    OrderCancelled,
    OrderConfirmed,
    OrderCreated,
    OrderDelivered,
    OrderOutForDelivery,
    OrderProcessing,
    PaymentStatusChanged,
)
from ordering.order.reconciliation import (
    Outcome,
    PaymentStatus,
    StatusChange,
    StatusSource,
    reconcile,
)

logger = structlog.get_logger(__name__)

DEFAULT_CANCELLATION_REASON = "Cancelled by customer"
PRICE_TOLERANCE = 0.01


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderType(Enum):
    MEDICINE = "medicine"
    DOCTOR_BOOKING = "doctor_booking"
    TEST_BOOKING = "test_booking"


class PaymentMethod(Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    ONLINE = "online"


class PaymentGateway(Enum):
    CASHFREE = "cashfree"
    RAZORPAY = "razorpay"


# Happy path, in order. Forward transitions may only move right.
_LIFECYCLE = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

_TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

ORDER_NUMBER_PREFIXES = {
    OrderType.MEDICINE: "MED",
    OrderType.DOCTOR_BOOKING: "DOC",
    OrderType.TEST_BOOKING: "TEST",
}

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number(order_type: str | None) -> str:
    """Human-readable order number: ``<PREFIX>-<epoch millis>-<6 chars>``."""
    try:
        prefix = ORDER_NUMBER_PREFIXES.get(OrderType(order_type), "ORD")
    except ValueError:
        prefix = "ORD"
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class DeliveryAddress:
    """Where a medicine order is delivered, captured at checkout.

    Coordinates are optional: addresses without geolocation are priced
    with the base fee.
    """

    street = String(max_length=255)
    city = String(max_length=100)
    state = String(max_length=100)
    zip_code = String(max_length=20)
    phone = String(max_length=20)
    latitude = Float(min_value=-90.0, max_value=90.0)
    longitude = Float(min_value=-180.0, max_value=180.0)
    distance_km = Float()

    @property
    def location(self) -> Coordinate | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Monetary summary, locked once the order is confirmed."""

    subtotal = Float(default=0.0, min_value=0.0)
    delivery_charges = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    total_amount = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="INR")


@ordering.value_object(part_of="Order")
class DeliveryQuoteSnapshot:
    """The delivery quote folded into the order's totals, kept for audit."""

    fee = Float()
    final_fee = Float()
    distance_km = Float()
    duration_min = Integer()
    base_fee = Float()
    distance_fee = Float()
    free_delivery_applied = Boolean(default=False)
    is_estimated = Boolean(default=False)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    medicine_id = Identifier(required=True)
    name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)
    total = Float(min_value=0.0)


@ordering.entity(part_of="Order")
class PaymentStatusChange:
    """One accepted payment status transition. Appended, never edited."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, max_length=20, choices=PaymentStatus)
    source = String(required=True, max_length=20, choices=StatusSource)
    recorded_at = DateTime(required=True)
    details = Text()  # JSON: free-form metadata


@ordering.entity(part_of="Order")
class PaymentAttempt:
    """A single call to the payment gateway, whatever its outcome."""

    attempted_at = DateTime(required=True)
    gateway_response = Text()  # JSON: request/response echo
    status = String(max_length=50)
    error = String(max_length=1000)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(max_length=50, unique=True)
    order_type = String(choices=OrderType, default=OrderType.MEDICINE.value)
    customer_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    items = HasMany(OrderItem)
    delivery_address = ValueObject(DeliveryAddress)
    pricing = ValueObject(OrderPricing)
    delivery_quote = ValueObject(DeliveryQuoteSnapshot)

    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=100)
    cancelled_at = DateTime()

    delivery_agent_id = Identifier()
    assigned_at = DateTime()
    delivered_at = DateTime()

    # Embedded payment record
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH_ON_DELIVERY.value)
    payment_gateway = String(choices=PaymentGateway, default=PaymentGateway.CASHFREE.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)
    payment_status_history = HasMany(PaymentStatusChange)
    payment_attempts = HasMany(PaymentAttempt)
    last_webhook_id = String(max_length=255)
    last_webhook_at = DateTime()

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id: str,
        items_data: list[dict],
        delivery_address: dict | None,
        quote: DeliveryQuote | None,
        order_type: str = OrderType.MEDICINE.value,
        payment_method: str = PaymentMethod.CASH_ON_DELIVERY.value,
        subtotal: float | None = None,
        tax_rate: float = 0.0,
        order_number: str | None = None,
    ):
        """Create a priced, pending order.

        Args:
            customer_id: The customer placing the order.
            items_data: List of dicts with medicine_id, name, quantity, price.
            delivery_address: Dict with street, city, state, zip_code, phone
                and optional latitude/longitude.
            quote: Delivery quote for the address. A non-deliverable quote
                raises NotServiceableError before anything is created.
            subtotal: Declared subtotal; must match the items when given.
            order_number: Pre-drawn order number, otherwise one is generated.
        """
        _validate_order_input(order_type, items_data, delivery_address)
        computed_subtotal = round(sum(item["quantity"] * item["price"] for item in items_data), 2)
        if subtotal is None:
            subtotal = computed_subtotal
        elif items_data and abs(subtotal - computed_subtotal) > PRICE_TOLERANCE:
            raise ValidationError(
                {"subtotal": [f"Subtotal {subtotal} does not match item total {computed_subtotal}"]}
            )

        if quote is not None:
            require_deliverable(quote)
        delivery_charges = quote.final_fee if quote is not None else 0.0
        tax = round(subtotal * tax_rate, 2)

        now = datetime.now(UTC)
        address = dict(delivery_address or {})
        if quote is not None and quote.distance_km is not None:
            address["distance_km"] = quote.distance_km

        order = cls(
            customer_id=customer_id,
            order_type=order_type,
            status=OrderStatus.PENDING.value,
            delivery_address=DeliveryAddress(**address) if address else None,
            pricing=OrderPricing(
                subtotal=subtotal,
                delivery_charges=delivery_charges,
                tax=tax,
                total_amount=round(subtotal + delivery_charges + tax, 2),
            ),
            delivery_quote=_snapshot(quote),
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        order.assign_order_number(order_number or generate_order_number(order_type))
        for item_data in items_data:
            order.add_items(
                OrderItem(
                    medicine_id=item_data["medicine_id"],
                    name=item_data.get("name"),
                    quantity=item_data["quantity"],
                    price=item_data["price"],
                    total=round(item_data["quantity"] * item_data["price"], 2),
                )
            )

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                order_number=order.order_number,
                order_type=order_type,
                customer_id=str(customer_id),
                items=json.dumps(items_data),
                delivery_address=json.dumps(address),
                subtotal=order.pricing.subtotal,
                delivery_charges=order.pricing.delivery_charges,
                tax=order.pricing.tax,
                total_amount=order.pricing.total_amount,
                payment_method=payment_method,
                distance_km=quote.distance_km if quote is not None else None,
                created_at=now,
            )
        )
        return order

    def assign_order_number(self, order_number: str) -> None:
        """Set the order number. It is assigned exactly once."""
        if self.order_number:
            raise StateViolationError({"order_number": [f"Order number already assigned: {self.order_number}"]})
        self.order_number = order_number

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_advance(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if current in _TERMINAL_STATES:
            raise StateViolationError({"status": [f"Order is {current.value}; no further transitions allowed"]})
        if _LIFECYCLE.index(target_status) <= _LIFECYCLE.index(current):
            raise StateViolationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _event_identity(self) -> dict:
        return {
            "order_id": str(self.id),
            "order_number": self.order_number,
            "customer_id": str(self.customer_id),
        }

    # -------------------------------------------------------------------
    # Forward transitions (operator / delivery actions)
    # -------------------------------------------------------------------
    def confirm(self) -> None:
        self._assert_can_advance(OrderStatus.CONFIRMED)
        now = datetime.now(UTC)
        self.status = OrderStatus.CONFIRMED.value
        self.updated_at = now
        self.raise_(OrderConfirmed(**self._event_identity(), confirmed_at=now))

    def start_processing(self) -> None:
        self._assert_can_advance(OrderStatus.PROCESSING)
        now = datetime.now(UTC)
        self.status = OrderStatus.PROCESSING.value
        self.updated_at = now
        self.raise_(OrderProcessing(**self._event_identity(), started_at=now))

    def dispatch(self, delivery_agent_id: str | None = None) -> None:
        """Hand the order to a delivery agent."""
        self._assert_can_advance(OrderStatus.OUT_FOR_DELIVERY)
        now = datetime.now(UTC)
        self.status = OrderStatus.OUT_FOR_DELIVERY.value
        if delivery_agent_id:
            self.delivery_agent_id = delivery_agent_id
            self.assigned_at = now
        self.updated_at = now
        self.raise_(
            OrderOutForDelivery(
                **self._event_identity(),
                delivery_agent_id=delivery_agent_id,
                dispatched_at=now,
            )
        )

    def mark_delivered(self) -> None:
        self._assert_can_advance(OrderStatus.DELIVERED)
        now = datetime.now(UTC)
        self.status = OrderStatus.DELIVERED.value
        self.delivered_at = now
        self.updated_at = now
        self.raise_(OrderDelivered(**self._event_identity(), delivered_at=now))

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    @property
    def can_be_cancelled(self) -> bool:
        return OrderStatus(self.status) == OrderStatus.PENDING

    def cancel(self, reason: str | None = None, cancelled_by: str | None = None) -> None:
        """Cancel a pending order.

        An outstanding payment (pending or processing) is failed in the same
        mutation; a paid payment is left for the refund workflow.
        """
        current = OrderStatus(self.status)
        if current == OrderStatus.CANCELLED:
            raise StateViolationError({"status": ["Order is already cancelled"]})
        if not self.can_be_cancelled:
            raise StateViolationError(
                {"status": [f"Cannot cancel order in {current.value} state; only pending orders can be cancelled"]}
            )

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason or DEFAULT_CANCELLATION_REASON
        self.cancelled_by = cancelled_by
        self.cancelled_at = now
        self.updated_at = now

        payment_failed = False
        if PaymentStatus(self.payment_status) in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            outcome = self.apply_payment_status(
                PaymentStatus.FAILED.value,
                source=StatusSource.USER.value,
                metadata={"reason": "order_cancelled"},
            )
            payment_failed = outcome is Outcome.APPLIED

        self.raise_(
            OrderCancelled(
                **self._event_identity(),
                reason=self.cancellation_reason,
                cancelled_by=cancelled_by,
                payment_failed=payment_failed,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment reconciliation
    # -------------------------------------------------------------------
    def apply_payment_status(
        self,
        new_status: str,
        source: str = StatusSource.USER.value,
        metadata: dict | None = None,
        webhook_id: str | None = None,
    ) -> Outcome:
        """Merge a payment status update from a user, admin or webhook.

        Returns the reconciliation outcome. A stale or duplicate update is
        ``Outcome.IGNORED``; it is expected and never an error.
        """
        try:
            target = PaymentStatus(new_status)
        except ValueError as exc:
            raise ValidationError({"payment_status": [f"Unknown payment status: {new_status}"]}) from exc
        StatusSource(source)

        previous = PaymentStatus(self.payment_status)
        decision = reconcile(previous, target, self.last_webhook_id, webhook_id)
        if not decision.outcome.accepted:
            return decision.outcome

        now = datetime.now(UTC)
        if decision.changes_status:
            self.add_payment_status_history(
                PaymentStatusChange(
                    sequence=len(self.payment_status_history or []) + 1,
                    status=target.value,
                    source=source,
                    recorded_at=now,
                    details=json.dumps(metadata or {}, default=str),
                )
            )
            self.payment_status = target.value
            self.raise_(
                PaymentStatusChanged(
                    **self._event_identity(),
                    previous_status=previous.value,
                    new_status=target.value,
                    source=source,
                    webhook_id=webhook_id,
                    changed_at=now,
                )
            )

        if decision.track_webhook:
            self.last_webhook_id = webhook_id
            self.last_webhook_at = now

        self.updated_at = now
        return decision.outcome

    def record_payment_attempt(self, gateway_response: dict | None, status: str, error: str | None = None) -> None:
        """Log a gateway call. Always appended, whatever the payment status."""
        self.add_payment_attempts(
            PaymentAttempt(
                attempted_at=datetime.now(UTC),
                gateway_response=json.dumps(gateway_response or {}, default=str),
                status=status,
                error=error,
            )
        )

    def record_gateway_reference(
        self,
        gateway_order_id: str | None = None,
        gateway_payment_id: str | None = None,
        gateway: str | None = None,
    ):
        if gateway:
            self.payment_gateway = PaymentGateway(gateway).value
        if gateway_order_id:
            self.gateway_order_id = gateway_order_id
        if gateway_payment_id:
            self.gateway_payment_id = gateway_payment_id

    @property
    def payment_timeline(self) -> tuple[StatusChange, ...]:
        """Payment status history in insertion order, as read-only entries."""
        entries = sorted(self.payment_status_history or [], key=lambda e: e.sequence)
        return tuple(
            StatusChange(
                sequence=entry.sequence,
                status=PaymentStatus(entry.status),
                source=StatusSource(entry.source),
                recorded_at=entry.recorded_at,
                metadata=json.loads(entry.details) if entry.details else {},
            )
            for entry in entries
        )

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def change_delivery_address(self, delivery_address: dict, quote: DeliveryQuote) -> None:
        """Replace the delivery address and reprice. Only while pending."""
        if OrderStatus(self.status) != OrderStatus.PENDING:
            raise StateViolationError({"status": ["Delivery address can only be changed while the order is pending"]})
        require_deliverable(quote)

        now = datetime.now(UTC)
        address = dict(delivery_address)
        if quote.distance_km is not None:
            address["distance_km"] = quote.distance_km

        subtotal = self.pricing.subtotal
        tax = self.pricing.tax
        self.delivery_address = DeliveryAddress(**address)
        self.delivery_quote = _snapshot(quote)
        self.pricing = OrderPricing(
            subtotal=subtotal,
            delivery_charges=quote.final_fee,
            tax=tax,
            total_amount=round(subtotal + quote.final_fee + tax, 2),
            currency=self.pricing.currency,
        )
        self.updated_at = now
        self.raise_(
            DeliveryAddressChanged(
                order_id=str(self.id),
                delivery_address=json.dumps(address),
                delivery_charges=self.pricing.delivery_charges,
                total_amount=self.pricing.total_amount,
                distance_km=quote.distance_km,
                changed_at=now,
            )
        )

    def verify_pricing(self) -> bool:
        """Recompute the total and report whether it matches the stored one.

        A mismatch is a data-integrity bug: it is logged, never corrected.
        """
        expected = round(self.pricing.subtotal + self.pricing.delivery_charges + self.pricing.tax, 2)
        if abs(expected - self.pricing.total_amount) > PRICE_TOLERANCE:
            logger.error(
                "Order total diverges from its components",
                order_id=str(self.id),
                order_number=self.order_number,
                stored_total=self.pricing.total_amount,
                recomputed_total=expected,
            )
            return False
        return True


def _validate_order_input(order_type: str, items_data: list[dict], delivery_address: dict | None) -> None:
    try:
        OrderType(order_type)
    except ValueError as exc:
        raise ValidationError({"order_type": [f"Unknown order type: {order_type}"]}) from exc

    for item in items_data:
        if not item.get("medicine_id"):
            raise ValidationError({"items": ["Each item needs a medicine_id"]})
        if item.get("quantity", 0) < 1:
            raise ValidationError({"items": ["Quantity must be at least 1"]})
        if item.get("price", -1) < 0:
            raise ValidationError({"items": ["Price cannot be negative"]})

    if order_type == OrderType.MEDICINE.value:
        if not items_data:
            raise ValidationError({"items": ["Medicine orders must have items"]})
        if not delivery_address or not delivery_address.get("street"):
            raise ValidationError({"delivery_address": ["Medicine orders must have a delivery address"]})


def _snapshot(quote: DeliveryQuote | None) -> DeliveryQuoteSnapshot | None:
    if quote is None:
        return None
    return DeliveryQuoteSnapshot(
        fee=quote.fee,
        final_fee=quote.final_fee,
        distance_km=quote.distance_km,
        duration_min=quote.duration_min,
        base_fee=quote.breakdown.base_fee,
        distance_fee=quote.breakdown.distance_fee,
        free_delivery_applied=quote.breakdown.free_delivery_applied,
        is_estimated=quote.is_estimated,
    )
