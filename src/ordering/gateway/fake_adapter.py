"""Verifier for deployments without a webhook secret.

Accepts every payload and records what it was asked to verify, so tests
can assert on calls.
"""

from ordering.gateway.port import WebhookVerifier


class AcceptAllVerifier(WebhookVerifier):
    def __init__(self) -> None:
        self.calls: list[dict] = []

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        self.calls.append({"payload": payload, "signature": signature})
        return True
