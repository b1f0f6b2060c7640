"""Payment reconciliation rules.

Merges two untrusted, unordered input streams (user/admin actions and
at-least-once gateway webhooks) into one payment status that only moves
forward. The rules are pure functions over a snapshot of the payment
record; the Order aggregate applies the resulting decision.

Priority order:

    failed = refunded = 0 < pending = 1 < processing = 2 < paid = 3

An update is accepted when it

1. moves to a strictly higher priority, or
2. is ``failed``/``refunded`` (overrides from any state), or
3. carries a webhook id newer than the last accepted one.

Rule 3 only refreshes webhook bookkeeping: a newer webhook never applies a
lower-or-equal priority status by itself. Re-delivery of the current status
refreshes bookkeeping without adding a history entry, so history holds one
entry per distinct accepted transition.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class StatusSource(Enum):
    USER = "user"
    WEBHOOK = "webhook"
    ADMIN = "admin"


class Outcome(Enum):
    APPLIED = "applied"  # status changed, history appended
    REFRESHED = "refreshed"  # webhook bookkeeping only
    IGNORED = "ignored"  # stale or duplicate, nothing changed

    @property
    def accepted(self) -> bool:
        return self is not Outcome.IGNORED


STATUS_PRIORITY: dict[PaymentStatus, int] = {
    PaymentStatus.FAILED: 0,
    PaymentStatus.REFUNDED: 0,
    PaymentStatus.PENDING: 1,
    PaymentStatus.PROCESSING: 2,
    PaymentStatus.PAID: 3,
}

OVERRIDE_STATUSES = frozenset({PaymentStatus.FAILED, PaymentStatus.REFUNDED})

# Every status needs an explicit place in the ordering
_unranked = set(PaymentStatus) - STATUS_PRIORITY.keys()
if _unranked:
    raise RuntimeError(f"Payment statuses without a reconciliation priority: {sorted(s.value for s in _unranked)}")


@dataclass(frozen=True)
class StatusChange:
    """Read-only view of one entry in the payment status history."""

    sequence: int
    status: PaymentStatus
    source: StatusSource
    recorded_at: datetime
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    status: PaymentStatus
    track_webhook: bool = False

    @property
    def changes_status(self) -> bool:
        return self.outcome is Outcome.APPLIED


def priority(status: PaymentStatus) -> int:
    return STATUS_PRIORITY[status]


def is_newer_webhook(webhook_id: str, last_webhook_id: str | None) -> bool:
    """Whether ``webhook_id`` sorts after the last accepted webhook id.

    Numeric ids compare numerically, anything else lexicographically.
    """
    if not last_webhook_id:
        return True
    if webhook_id.isdigit() and last_webhook_id.isdigit():
        return int(webhook_id) > int(last_webhook_id)
    return webhook_id > last_webhook_id


def reconcile(
    current: PaymentStatus,
    new: PaymentStatus,
    last_webhook_id: str | None = None,
    webhook_id: str | None = None,
) -> Decision:
    """Decide how an incoming status update affects the payment record."""
    advances = priority(new) > priority(current)
    overrides = new in OVERRIDE_STATUSES
    newer_webhook = webhook_id is not None and is_newer_webhook(webhook_id, last_webhook_id)
    redelivery = webhook_id is not None and webhook_id == last_webhook_id and new == current

    if new != current and (advances or overrides):
        return Decision(Outcome.APPLIED, new, track_webhook=webhook_id is not None)

    if newer_webhook or redelivery or (overrides and webhook_id is not None):
        return Decision(Outcome.REFRESHED, current, track_webhook=True)

    if overrides:
        # Same terminal status again from a user/admin action
        return Decision(Outcome.REFRESHED, current)

    return Decision(Outcome.IGNORED, current)
