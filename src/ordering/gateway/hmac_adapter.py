"""HMAC-SHA256 webhook verifier.

The gateway signs the raw request body with the shared webhook secret and
sends the hex digest in a header (``X-Webhook-Signature``, or
``X-Razorpay-Signature`` for Razorpay).
"""

import hashlib
import hmac

from ordering.gateway.port import WebhookVerifier


class HmacSha256Verifier(WebhookVerifier):
    def __init__(self, secret: str) -> None:
        self._secret = secret.encode()

    def sign(self, payload: bytes) -> str:
        return hmac.new(self._secret, payload, hashlib.sha256).hexdigest()

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        if not signature:
            return False
        return hmac.compare_digest(self.sign(payload), signature.strip().lower())
