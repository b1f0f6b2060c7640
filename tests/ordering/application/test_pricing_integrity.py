"""Application tests: stored totals are re-checked whenever an order is loaded for a change."""

import json
from unittest.mock import MagicMock

import pytest
from ordering.order.cancellation import CancelOrder
from ordering.order.creation import CreateOrder
from ordering.order.order import Order, OrderPricing, OrderStatus
from ordering.order.payment import ApplyPaymentWebhook, UpdatePaymentStatus
from ordering.order.transitions import ConfirmOrder
from protean import current_domain

DIVERGENCE = "Order total diverges from its components"


def _create_order():
    command = CreateOrder(
        customer_id="cust-001",
        items=json.dumps([{"medicine_id": "med-001", "name": "Metformin", "quantity": 2, "price": 90.0}]),
        delivery_address=json.dumps({"street": "2 Museum Rd", "city": "Bengaluru", "zip_code": "560001"}),
    )
    return current_domain.process(command, asynchronous=False)


def _corrupt_total(order_id, total_amount=999.0):
    repo = current_domain.repository_for(Order)
    order = repo.get(order_id)
    order.pricing = OrderPricing(
        subtotal=order.pricing.subtotal,
        delivery_charges=order.pricing.delivery_charges,
        tax=order.pricing.tax,
        total_amount=total_amount,
        currency=order.pricing.currency,
    )
    repo.add(order)


@pytest.fixture()
def order_logger(monkeypatch):
    logger = MagicMock()
    monkeypatch.setattr("ordering.order.order.logger", logger)
    return logger


def _divergence_logs(logger):
    return [c for c in logger.error.call_args_list if c.args and c.args[0] == DIVERGENCE]


class TestPricingIntegrity:
    def test_consistent_order_logs_nothing(self, order_logger):
        order_id = _create_order()

        current_domain.process(ConfirmOrder(order_id=order_id), asynchronous=False)

        assert _divergence_logs(order_logger) == []

    def test_divergent_total_is_logged_on_transition(self, order_logger):
        order_id = _create_order()
        _corrupt_total(order_id)

        current_domain.process(ConfirmOrder(order_id=order_id), asynchronous=False)

        logs = _divergence_logs(order_logger)
        assert len(logs) == 1
        assert logs[0].kwargs["order_id"] == order_id
        assert logs[0].kwargs["stored_total"] == 999.0

    def test_transition_still_applies_and_total_is_not_rewritten(self, order_logger):
        order_id = _create_order()
        _corrupt_total(order_id)

        current_domain.process(ConfirmOrder(order_id=order_id), asynchronous=False)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.pricing.total_amount == 999.0

    def test_divergent_total_is_logged_on_cancellation(self, order_logger):
        order_id = _create_order()
        _corrupt_total(order_id)

        current_domain.process(CancelOrder(order_id=order_id, reason="Changed my mind"), asynchronous=False)

        assert len(_divergence_logs(order_logger)) == 1

    def test_divergent_total_is_logged_on_payment_updates(self, order_logger):
        order_id = _create_order()
        _corrupt_total(order_id)

        current_domain.process(UpdatePaymentStatus(order_id=order_id, status="processing"), asynchronous=False)
        current_domain.process(
            ApplyPaymentWebhook(order_id=order_id, webhook_id="1", status="paid"),
            asynchronous=False,
        )

        assert len(_divergence_logs(order_logger)) == 2
