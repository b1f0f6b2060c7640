"""Webhook verifier factory.

Provides get_verifier() / set_verifier() / reset_verifier(), one verifier
per gateway:
- HmacSha256Verifier when the gateway's secret is set
  (PAYMENT_WEBHOOK_SECRET for Cashfree and the generic callback,
  RAZORPAY_WEBHOOK_SECRET for Razorpay)
- AcceptAllVerifier otherwise (development and testing)
"""

import os

import structlog

from ordering.gateway.port import WebhookVerifier

logger = structlog.get_logger(__name__)

DEFAULT_GATEWAY = "cashfree"

_SECRET_ENV = {
    "cashfree": "PAYMENT_WEBHOOK_SECRET",
    "razorpay": "RAZORPAY_WEBHOOK_SECRET",
}

_verifiers: dict[str, WebhookVerifier] = {}


def get_verifier(gateway: str = DEFAULT_GATEWAY) -> WebhookVerifier:
    if gateway not in _SECRET_ENV:
        raise ValueError(f"Unknown payment gateway: {gateway}")
    if gateway not in _verifiers:
        env_name = _SECRET_ENV[gateway]
        secret = os.environ.get(env_name, "")
        if secret:
            from ordering.gateway.hmac_adapter import HmacSha256Verifier

            _verifiers[gateway] = HmacSha256Verifier(secret)
        else:
            from ordering.gateway.fake_adapter import AcceptAllVerifier

            logger.warning(f"{env_name} not set; webhook signatures are not verified", gateway=gateway)
            _verifiers[gateway] = AcceptAllVerifier()
    return _verifiers[gateway]


def set_verifier(verifier: WebhookVerifier, gateway: str = DEFAULT_GATEWAY) -> None:
    """Override the active verifier for a gateway (useful for tests)."""
    _verifiers[gateway] = verifier


def reset_verifier() -> None:
    _verifiers.clear()
