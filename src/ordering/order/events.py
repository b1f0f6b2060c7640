"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes.
They are dispatched after the unit of work commits and drive customer
notifications and any downstream read models.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderCreated:
    """A new order was placed at checkout and priced."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    order_type = String(required=True)
    customer_id = Identifier(required=True)
    items = Text()  # JSON: list of item dicts
    delivery_address = Text()  # JSON: address dict
    subtotal = Float(required=True)
    delivery_charges = Float(required=True)
    tax = Float(required=True)
    total_amount = Float(required=True)
    payment_method = String(required=True)
    distance_km = Float()
    created_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    confirmed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderProcessing:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    started_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderOutForDelivery:
    """A delivery agent picked up the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    delivery_agent_id = Identifier()
    dispatched_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled while still pending.

    ``payment_failed`` is True when the cancellation also forced an
    outstanding payment to ``failed``.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_by = String()
    payment_failed = Boolean(default=False)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class DeliveryAddressChanged:
    """The delivery address changed before confirmation and totals were repriced."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivery_address = Text(required=True)  # JSON: address dict
    delivery_charges = Float(required=True)
    total_amount = Float(required=True)
    distance_km = Float()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentStatusChanged:
    """The order's payment status moved as a result of reconciliation."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    source = String(required=True)
    webhook_id = String()
    changed_at = DateTime(required=True)
