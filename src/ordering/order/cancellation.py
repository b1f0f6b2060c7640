"""Order cancellation — command and handler.

A refused cancellation is a normal business answer, not an error: the
handler reports it as ``CancellationResult(cancelled=False, reason=...)``.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import StateViolationError
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CancellationResult:
    cancelled: bool
    reason: str | None = None
    payment_failed: bool = False


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(max_length=100)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.verify_pricing()
        payment_before = order.payment_status

        try:
            order.cancel(reason=command.reason, cancelled_by=command.cancelled_by)
        except StateViolationError as exc:
            logger.info("Cancellation refused", order_id=str(order.id), status=order.status, reason=exc.reason)
            return CancellationResult(cancelled=False, reason=exc.reason)

        repo.add(order)
        return CancellationResult(
            cancelled=True,
            reason=order.cancellation_reason,
            payment_failed=payment_before != order.payment_status,
        )
