"""Order number allocation.

Numbers are drawn at random (see ``generate_order_number``); a draw that
collides with a stored order is discarded and redrawn.
"""

import structlog
from protean.utils.globals import current_domain

from ordering.order.order import Order, generate_order_number

logger = structlog.get_logger(__name__)

MAX_DRAWS = 5


def is_order_number_taken(order_number: str) -> bool:
    repo = current_domain.repository_for(Order)
    return bool(repo._dao.query.filter(order_number=order_number).all().items)


def allocate_order_number(order_type: str, max_draws: int = MAX_DRAWS) -> str:
    for _ in range(max_draws):
        candidate = generate_order_number(order_type)
        if not is_order_number_taken(candidate):
            return candidate
        logger.warning("Order number collision, redrawing", order_number=candidate)
    raise RuntimeError(f"Could not allocate a unique order number after {max_draws} draws")
