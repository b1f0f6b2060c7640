"""Customer notices for order progress.

Runs after the unit of work commits. A failed or raising notifier is
logged and swallowed here: notification dispatch never rolls back or
blocks an order transition.
"""

import structlog
from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.notifier import get_notifier, templates
from ordering.notifier.port import Notice
from ordering.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderCreated,
    OrderDelivered,
    OrderOutForDelivery,
    PaymentStatusChanged,
)
from ordering.order.order import Order

logger = structlog.get_logger(__name__)

# Payment statuses the customer hears about
_NOTIFIED_PAYMENT_STATUSES = {"paid", "failed", "refunded"}


def _dispatch(event, render) -> None:
    context = event.to_dict()
    try:
        content = render(context)
        result = get_notifier().send(
            Notice(
                customer_id=str(event.customer_id),
                order_id=str(event.order_id),
                subject=content["subject"],
                body=content["body"],
            )
        )
    except Exception:
        logger.exception(
            "Notification dispatch raised",
            order_id=str(event.order_id),
            event_type=type(event).__name__,
        )
        return

    if result.get("status") != "sent":
        logger.warning(
            "Notification not delivered",
            order_id=str(event.order_id),
            event_type=type(event).__name__,
            error=result.get("error"),
        )


@ordering.event_handler(part_of=Order)
class OrderNotificationHandler:
    @handle(OrderCreated)
    def on_order_created(self, event: OrderCreated) -> None:
        _dispatch(event, templates.order_placed)

    @handle(OrderConfirmed)
    def on_order_confirmed(self, event: OrderConfirmed) -> None:
        _dispatch(event, templates.order_confirmed)

    @handle(OrderOutForDelivery)
    def on_order_out_for_delivery(self, event: OrderOutForDelivery) -> None:
        _dispatch(event, templates.order_out_for_delivery)

    @handle(OrderDelivered)
    def on_order_delivered(self, event: OrderDelivered) -> None:
        _dispatch(event, templates.order_delivered)

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        _dispatch(event, templates.order_cancelled)

    @handle(PaymentStatusChanged)
    def on_payment_status_changed(self, event: PaymentStatusChanged) -> None:
        # Cancellation already tells the customer about the voided payment
        if event.new_status not in _NOTIFIED_PAYMENT_STATUSES or event.source == "user":
            return
        _dispatch(event, templates.payment_update)
