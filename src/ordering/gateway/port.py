"""Webhook verifier port (abstract interface).

Payment gateways sign their webhook callbacks; a verifier decides whether
a raw request body is authentically from the gateway before any payment
status is reconciled.
"""

from abc import ABC, abstractmethod


class WebhookVerifier(ABC):
    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...
