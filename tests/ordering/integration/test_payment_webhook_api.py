"""Integration tests for payment gateway callbacks."""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.errors import register_ordering_exception_handlers
from ordering.api.routes import order_router, payment_router
from ordering.gateway import get_verifier, set_verifier
from ordering.gateway.fake_adapter import AcceptAllVerifier
from ordering.gateway.hmac_adapter import HmacSha256Verifier
from ordering.order.order import Order
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers

SECRET = "whsec_test"


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(payment_router)
    register_exception_handlers(app)
    register_ordering_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def verifier():
    verifier = HmacSha256Verifier(SECRET)
    set_verifier(verifier)
    return verifier


@pytest.fixture()
def order_id(client):
    response = client.post(
        "/orders",
        json={
            "customer_id": "cust-api-001",
            "items": [{"medicine_id": "med-001", "name": "Cough syrup", "quantity": 1, "price": 140.0}],
            "delivery_address": {"street": "1 Cubbon Rd", "city": "Bengaluru", "zip_code": "560001"},
            "payment_method": "online",
        },
    )
    assert response.status_code == 201
    return response.json()["order_id"]


def _signed_post(client, verifier, path, payload, headers=None):
    body = json.dumps(payload).encode()
    all_headers = {"Content-Type": "application/json", "X-Webhook-Signature": verifier.sign(body)}
    all_headers.update(headers or {})
    return client.post(path, content=body, headers=all_headers)


class TestVerifierSelection:
    def test_each_gateway_reads_its_own_secret(self, monkeypatch):
        monkeypatch.delenv("PAYMENT_WEBHOOK_SECRET", raising=False)
        monkeypatch.setenv("RAZORPAY_WEBHOOK_SECRET", "rzp_secret")

        assert isinstance(get_verifier(), AcceptAllVerifier)
        assert isinstance(get_verifier("razorpay"), HmacSha256Verifier)

    def test_unknown_gateway(self):
        with pytest.raises(ValueError):
            get_verifier("paypal")


class TestGenericWebhook:
    def test_signed_webhook_applied(self, client, verifier, order_id):
        response = _signed_post(
            client,
            verifier,
            "/payments/webhook",
            {"order_id": order_id, "webhook_id": "5", "status": "paid", "gateway_payment_id": "pay-1"},
        )

        assert response.status_code == 200
        assert response.json() == {"outcome": "applied", "accepted": True}
        order = current_domain.repository_for(Order).get(order_id)
        assert order.payment_status == "paid"
        assert order.gateway_payment_id == "pay-1"

    def test_stale_webhook_acknowledged(self, client, verifier, order_id):
        _signed_post(client, verifier, "/payments/webhook", {"order_id": order_id, "webhook_id": "5", "status": "paid"})

        response = _signed_post(
            client, verifier, "/payments/webhook", {"order_id": order_id, "webhook_id": "3", "status": "processing"}
        )

        assert response.status_code == 200
        assert response.json() == {"outcome": "ignored", "accepted": False}

    def test_bad_signature(self, client, verifier, order_id):
        response = client.post(
            "/payments/webhook",
            json={"order_id": order_id, "webhook_id": "5", "status": "paid"},
            headers={"X-Webhook-Signature": "not-a-signature"},
        )

        assert response.status_code == 401
        assert current_domain.repository_for(Order).get(order_id).payment_status == "pending"

    def test_unsigned_accepted_without_secret(self, client, order_id, monkeypatch):
        monkeypatch.delenv("PAYMENT_WEBHOOK_SECRET", raising=False)

        response = client.post("/payments/webhook", json={"order_id": order_id, "webhook_id": "1", "status": "paid"})

        assert response.json()["outcome"] == "applied"

    def test_unknown_order(self, client, verifier):
        response = _signed_post(
            client, verifier, "/payments/webhook", {"order_id": "missing", "webhook_id": "1", "status": "paid"}
        )
        assert response.status_code == 404


class TestCashfreeWebhook:
    def _payload(self, order_ref, webhook_type="PAYMENT_SUCCESS_WEBHOOK"):
        return {
            "type": webhook_type,
            "event_time": "2024-05-01T10:00:00+05:30",
            "data": {
                "order": {"order_id": order_ref, "order_amount": 190.0},
                "payment": {"cf_payment_id": 99001, "payment_amount": 190.0},
            },
        }

    def test_success_by_order_number(self, client, verifier, order_id):
        order_number = current_domain.repository_for(Order).get(order_id).order_number

        response = _signed_post(
            client,
            verifier,
            "/payments/webhook/cashfree",
            self._payload(order_number),
            headers={"X-Webhook-Timestamp": "1714540000000"},
        )

        assert response.json() == {"outcome": "applied", "accepted": True}
        order = current_domain.repository_for(Order).get(order_id)
        assert order.payment_status == "paid"
        assert order.gateway_payment_id == "99001"
        assert order.last_webhook_id == "1714540000000"
        assert order.payment_gateway == "cashfree"

    def test_earlier_failure_after_success_still_fails(self, client, verifier, order_id):
        _signed_post(
            client,
            verifier,
            "/payments/webhook/cashfree",
            self._payload(order_id),
            headers={"X-Webhook-Timestamp": "1714540000000"},
        )

        response = _signed_post(
            client,
            verifier,
            "/payments/webhook/cashfree",
            self._payload(order_id, "PAYMENT_FAILED_WEBHOOK"),
            headers={"X-Webhook-Timestamp": "1714530000000"},
        )

        # Failure overrides any state, even when delivered late
        assert response.json()["outcome"] == "applied"
        assert current_domain.repository_for(Order).get(order_id).payment_status == "failed"

    def test_unhandled_type_ignored(self, client, verifier, order_id):
        response = _signed_post(
            client, verifier, "/payments/webhook/cashfree", self._payload(order_id, "PAYMENT_USER_DROPPED_WEBHOOK")
        )
        assert response.json() == {"outcome": "ignored", "accepted": False}

    def test_missing_order_reference(self, client, verifier):
        response = _signed_post(
            client, verifier, "/payments/webhook/cashfree", {"type": "PAYMENT_SUCCESS_WEBHOOK", "data": {}}
        )
        assert response.status_code == 400

    def test_unknown_order_acknowledged(self, client, verifier):
        response = _signed_post(client, verifier, "/payments/webhook/cashfree", self._payload("MED-0-UNKNOWN"))

        assert response.status_code == 200
        assert response.json() == {"outcome": "ignored", "accepted": False}


class TestRazorpayWebhook:
    @pytest.fixture()
    def razorpay_verifier(self):
        verifier = HmacSha256Verifier("rzp_whsec_test")
        set_verifier(verifier, "razorpay")
        return verifier

    def _post(self, client, verifier, payload, signature=None):
        body = json.dumps(payload).encode()
        return client.post(
            "/payments/webhook/razorpay",
            content=body,
            headers={
                "Content-Type": "application/json",
                "X-Razorpay-Signature": signature if signature is not None else verifier.sign(body),
            },
        )

    def _captured(self, order_id, created_at=1714540000):
        return {
            "event": "payment.captured",
            "created_at": created_at,
            "payload": {
                "payment": {
                    "entity": {
                        "id": "pay_29QQoUBi66xm2f",
                        "order_id": "order_9A33XWu170gUtm",
                        "amount": 19000,
                        "notes": {"entityType": "order", "entityId": order_id},
                    }
                }
            },
        }

    def _refunded(self, order_id, created_at=1714550000):
        return {
            "event": "refund.processed",
            "created_at": created_at,
            "payload": {
                "refund": {
                    "entity": {
                        "id": "rfnd_FP8QHiV938haTz",
                        "payment_id": "pay_29QQoUBi66xm2f",
                        "amount": 19000,
                        "notes": {"entityType": "order", "entityId": order_id},
                    }
                }
            },
        }

    def test_captured_marks_paid(self, client, razorpay_verifier, order_id):
        response = self._post(client, razorpay_verifier, self._captured(order_id))

        assert response.status_code == 200
        assert response.json() == {"outcome": "applied", "accepted": True}
        order = current_domain.repository_for(Order).get(order_id)
        assert order.payment_status == "paid"
        assert order.payment_gateway == "razorpay"
        assert order.gateway_order_id == "order_9A33XWu170gUtm"
        assert order.gateway_payment_id == "pay_29QQoUBi66xm2f"
        assert order.last_webhook_id == "1714540000"

    def test_refund_after_capture(self, client, razorpay_verifier, order_id):
        self._post(client, razorpay_verifier, self._captured(order_id))

        response = self._post(client, razorpay_verifier, self._refunded(order_id))

        assert response.json()["outcome"] == "applied"
        order = current_domain.repository_for(Order).get(order_id)
        assert order.payment_status == "refunded"
        assert order.payment_timeline[-1].metadata["refund_id"] == "rfnd_FP8QHiV938haTz"

    def test_redelivered_capture_is_not_reapplied(self, client, razorpay_verifier, order_id):
        self._post(client, razorpay_verifier, self._captured(order_id))

        response = self._post(client, razorpay_verifier, self._captured(order_id))

        assert response.json()["outcome"] != "applied"
        assert current_domain.repository_for(Order).get(order_id).payment_status == "paid"

    def test_found_by_gateway_order_id_without_notes(self, client, razorpay_verifier, order_id):
        self._post(client, razorpay_verifier, self._captured(order_id))
        payload = self._refunded(order_id)
        payload["payload"]["refund"]["entity"]["notes"] = {}
        payload["payload"]["payment"] = {"entity": {"id": "pay_29QQoUBi66xm2f", "order_id": "order_9A33XWu170gUtm"}}

        response = self._post(client, razorpay_verifier, payload)

        assert response.json()["outcome"] == "applied"
        assert current_domain.repository_for(Order).get(order_id).payment_status == "refunded"

    def test_bad_signature(self, client, razorpay_verifier, order_id):
        response = self._post(client, razorpay_verifier, self._captured(order_id), signature="forged")

        assert response.status_code == 401
        assert current_domain.repository_for(Order).get(order_id).payment_status == "pending"

    def test_signed_with_the_cashfree_secret_is_rejected(self, client, verifier, razorpay_verifier, order_id):
        body = json.dumps(self._captured(order_id)).encode()

        response = client.post(
            "/payments/webhook/razorpay",
            content=body,
            headers={"Content-Type": "application/json", "X-Razorpay-Signature": verifier.sign(body)},
        )

        assert response.status_code == 401

    def test_unhandled_event_ignored(self, client, razorpay_verifier, order_id):
        payload = self._captured(order_id)
        payload["event"] = "payment.authorized"

        response = self._post(client, razorpay_verifier, payload)

        assert response.json() == {"outcome": "ignored", "accepted": False}
        assert current_domain.repository_for(Order).get(order_id).payment_status == "pending"

    def test_unknown_order_acknowledged(self, client, razorpay_verifier):
        response = self._post(client, razorpay_verifier, self._captured("missing-order"))

        assert response.status_code == 200
        assert response.json() == {"outcome": "ignored", "accepted": False}

    def test_missing_order_reference(self, client, razorpay_verifier):
        response = self._post(client, razorpay_verifier, {"event": "payment.captured", "payload": {}})
        assert response.status_code == 400
