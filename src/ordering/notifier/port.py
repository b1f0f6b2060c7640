"""Notifier port (abstract interface).

Customer-facing messages about order progress. Dispatch is fire-and-forget:
a failed send is reported in the result, never raised into the order flow.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Notice:
    customer_id: str
    subject: str
    body: str
    order_id: str | None = None


class NotifierPort(ABC):
    @abstractmethod
    def send(self, notice: Notice) -> dict:
        """Dispatch a notice.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
