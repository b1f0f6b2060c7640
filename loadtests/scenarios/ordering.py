"""Order and payment load test scenarios.

Two journeys stress the reconciliation path: gateway webhooks delivered
out of order and more than once, and cancellations racing a second
cancellation. A third user hammers delivery quoting.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import order_data, quote_data, webhook_data
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import OrderState


class PaymentWebhookJourney(SequentialTaskSet):
    """Create Order -> webhook processing -> webhook paid -> replay -> stale webhook.

    The stale and replayed deliveries must be acknowledged without moving
    the payment status away from ``paid``.
    """

    def on_start(self):
        self.state = OrderState()

    def _webhook(self, webhook_id: int, status: str, name: str):
        with self.client.post(
            "/payments/webhook",
            json=webhook_data(self.state.order_id, webhook_id, status),
            catch_response=True,
            name=name,
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Webhook failed: {resp.status_code} — {extract_error_detail(resp)}")
            return resp

    @task
    def create_order(self):
        with self.client.post("/orders", json=order_data(), catch_response=True, name="POST /orders") as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
                self.state.order_number = resp.json()["order_number"]
            else:
                resp.failure(f"Create order failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def webhook_processing(self):
        self._webhook(1, "processing", "POST /payments/webhook (processing)")

    @task
    def webhook_paid(self):
        self._webhook(3, "paid", "POST /payments/webhook (paid)")

    @task
    def webhook_replay(self):
        self._webhook(3, "paid", "POST /payments/webhook (replay)")

    @task
    def webhook_stale(self):
        self._webhook(2, "processing", "POST /payments/webhook (stale)")

    @task
    def verify_paid(self):
        with self.client.get(
            f"/orders/{self.state.order_id}",
            catch_response=True,
            name="GET /orders/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Get order failed: {resp.status_code} — {extract_error_detail(resp)}")
            elif resp.json()["payment_status"] != "paid":
                resp.failure(f"Payment regressed to {resp.json()['payment_status']}")

    @task
    def done(self):
        self.interrupt()


class CancellationJourney(SequentialTaskSet):
    """Create Order -> Cancel -> Cancel again (refused with 409)."""

    def on_start(self):
        self.state = OrderState()

    @task
    def create_order(self):
        payload = order_data(payment_method=random.choice(["online", "cash_on_delivery"]))
        with self.client.post("/orders", json=payload, catch_response=True, name="POST /orders") as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"Create order failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def cancel(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            json={"reason": "Ordered by mistake", "cancelled_by": "customer"},
            catch_response=True,
            name="POST /orders/{id}/cancel",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Cancel failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def cancel_again(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            json={},
            catch_response=True,
            name="POST /orders/{id}/cancel (repeat)",
        ) as resp:
            if resp.status_code == 409:
                resp.success()
            else:
                resp.failure(f"Repeat cancel not refused: {resp.status_code}")

    @task
    def done(self):
        self.interrupt()


class OrderingUser(HttpUser):
    wait_time = between(0.5, 2.0)
    tasks = {PaymentWebhookJourney: 3, CancellationJourney: 1}


class DeliveryQuoteUser(HttpUser):
    wait_time = between(0.2, 1.0)

    @task
    def quote(self):
        with self.client.post(
            "/delivery/quote",
            json=quote_data(),
            catch_response=True,
            name="POST /delivery/quote",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Quote failed: {resp.status_code} — {extract_error_detail(resp)}")
