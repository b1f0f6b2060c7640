"""Ordering bounded context — order lifecycle and payment reconciliation.

Handles the order state machine (CQRS), reconciliation of payment gateway
webhooks against the order's embedded payment record, and checkout-time
delivery pricing via the delivery package.
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

ordering = Domain(name="ordering")
