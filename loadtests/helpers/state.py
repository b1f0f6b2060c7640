"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
"""

from dataclasses import dataclass


@dataclass
class OrderState:
    """Tracks state for a single simulated order."""

    order_id: str | None = None
    order_number: str | None = None
    last_webhook_id: int = 0
    payment_status: str = "pending"
