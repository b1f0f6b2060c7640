"""Order payment — commands and handler.

Every payment status change, whether from a gateway webhook or a user or
admin action, goes through ``Order.apply_payment_status``. Webhooks arrive
at least once and in any order; stale and duplicate deliveries come back
as ``Outcome.IGNORED`` and are not errors.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.reconciliation import Outcome, StatusSource

logger = structlog.get_logger(__name__)


def _load_json(value) -> dict:
    if not value:
        return {}
    return json.loads(value) if isinstance(value, str) else value


def find_order(repo, reference: str) -> Order:
    """Look an order up by id, order number or gateway order id.

    Gateways echo back whichever reference was sent when the payment was
    created, so webhooks may carry any of the three.
    """
    try:
        return repo.get(reference)
    except ObjectNotFoundError:
        pass

    for field_name in ("order_number", "gateway_order_id"):
        matches = repo._dao.query.filter(**{field_name: reference}).all().items
        if matches:
            return matches[0]
    raise ObjectNotFoundError(f"Order with reference `{reference}` does not exist.")


@ordering.command(part_of="Order")
class ApplyPaymentWebhook:
    order_id = String(required=True, max_length=255)  # id, order number or gateway order id
    webhook_id = String(required=True, max_length=255)
    status = String(required=True, max_length=20)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)
    gateway = String(max_length=20)
    payload = Text()  # JSON: raw webhook body, kept as history metadata


@ordering.command(part_of="Order")
class UpdatePaymentStatus:
    """A user or admin initiated payment status change."""

    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    source = String(max_length=20, default=StatusSource.USER.value)
    details = Text()  # JSON: stored as history metadata


@ordering.command(part_of="Order")
class RecordPaymentAttempt:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    gateway_response = Text()  # JSON
    error = String(max_length=1000)


@ordering.command_handler(part_of=Order)
class PaymentHandler:
    @handle(ApplyPaymentWebhook)
    def apply_payment_webhook(self, command) -> Outcome:
        repo = current_domain.repository_for(Order)
        order = find_order(repo, command.order_id)
        order.verify_pricing()

        outcome = order.apply_payment_status(
            command.status,
            source=StatusSource.WEBHOOK.value,
            metadata=_load_json(command.payload),
            webhook_id=command.webhook_id,
        )
        log = logger.bind(order_id=str(order.id), webhook_id=command.webhook_id, status=command.status)
        if not outcome.accepted:
            log.info("Webhook ignored", current_status=order.payment_status, last_webhook_id=order.last_webhook_id)
            return outcome

        order.record_gateway_reference(
            gateway_order_id=command.gateway_order_id,
            gateway_payment_id=command.gateway_payment_id,
            gateway=command.gateway,
        )
        repo.add(order)
        log.info("Webhook reconciled", outcome=outcome.value, payment_status=order.payment_status)
        return outcome

    @handle(UpdatePaymentStatus)
    def update_payment_status(self, command) -> Outcome:
        source = command.source or StatusSource.USER.value
        if source == StatusSource.WEBHOOK.value:
            raise ValidationError({"source": ["Webhook updates must go through ApplyPaymentWebhook"]})

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.verify_pricing()
        outcome = order.apply_payment_status(
            command.status,
            source=source,
            metadata=_load_json(command.details),
        )
        if outcome.accepted:
            repo.add(order)
        return outcome

    @handle(RecordPaymentAttempt)
    def record_payment_attempt(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.verify_pricing()
        order.record_payment_attempt(
            gateway_response=_load_json(command.gateway_response),
            status=command.status,
            error=command.error,
        )
        repo.add(order)
