"""Optimistic-concurrency retry.

Each order operation is one unit of work against the stored order. When a
concurrent writer wins, Protean raises ``ExpectedVersionError`` at commit;
the whole operation is re-run against fresh state a bounded number of
times before surfacing ``ConflictError``.
"""

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from ordering.errors import ConflictError

logger = structlog.get_logger(__name__)

DEFAULT_ATTEMPTS = 3


def retry_on_conflict(operation, order_id: str, attempts: int = DEFAULT_ATTEMPTS):
    """Run ``operation`` until it commits without a version conflict."""
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ExpectedVersionError:
            logger.warning("Concurrent order update, retrying", order_id=str(order_id), attempt=attempt)
    raise ConflictError(str(order_id), attempts)


def process_with_retry(command, attempts: int = DEFAULT_ATTEMPTS):
    """Process an order command synchronously, retrying on version conflicts."""
    return retry_on_conflict(
        lambda: current_domain.process(command, asynchronous=False),
        order_id=command.order_id,
        attempts=attempts,
    )
