"""Ordering failure taxonomy.

- ``ValidationError`` (Protean): malformed input, rejected before any state change
- ``StateViolationError``: a transition the state machine refuses; reported
  to callers as a refused operation and never retried
- ``ConflictError``: a concurrent write won; retry the whole operation
  against fresh state

Serviceability and routing failures live in ``delivery.errors`` and are
re-exported here for callers that only import from ordering.
"""

from protean.exceptions import ValidationError

from delivery.errors import ExternalServiceError, NotServiceableError

__all__ = [
    "ConflictError",
    "ExternalServiceError",
    "NotServiceableError",
    "StateViolationError",
    "ValidationError",
]


class StateViolationError(ValidationError):
    """The requested transition is not allowed from the order's current state."""

    @property
    def reason(self) -> str:
        messages = self.messages if isinstance(self.messages, dict) else {}
        for errors in messages.values():
            if errors:
                return errors[0]
        return str(self)


class ConflictError(Exception):
    """The order was modified concurrently and retries were exhausted."""

    def __init__(self, order_id: str, attempts: int) -> None:
        super().__init__(f"Order {order_id} was modified concurrently ({attempts} attempts)")
        self.order_id = order_id
        self.attempts = attempts
