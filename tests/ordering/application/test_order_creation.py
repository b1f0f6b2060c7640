"""Application tests for order creation via domain.process()."""

import dataclasses
import json

import pytest
from delivery.errors import NotServiceableError
from delivery.settings import set_settings
from ordering.order.creation import CreateOrder
from ordering.order.order import Order, OrderStatus
from protean import current_domain
from protean.exceptions import ValidationError

NEAR_HUB = {
    "street": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "zip_code": "560001",
    "phone": "9876543210",
    "latitude": 13.0795,
    "longitude": 77.5946,
}


def _create_order(**overrides):
    defaults = {
        "customer_id": "cust-001",
        "items": json.dumps([{"medicine_id": "med-001", "name": "Paracetamol 500mg", "quantity": 2, "price": 150.0}]),
        "delivery_address": json.dumps(NEAR_HUB),
    }
    defaults.update(overrides)
    return current_domain.process(CreateOrder(**defaults), asynchronous=False)


def _stored_orders():
    return current_domain.repository_for(Order)._dao.query.all().items


class TestCreateOrderFlow:
    def test_returns_id(self):
        assert _create_order() is not None

    def test_persists_priced_pending_order(self):
        order = current_domain.repository_for(Order).get(_create_order())

        assert order.status == OrderStatus.PENDING.value
        assert order.pricing.subtotal == 300.0
        assert order.pricing.delivery_charges == 106.0
        assert order.pricing.total_amount == 406.0
        assert order.delivery_address.distance_km == 12.0
        assert order.delivery_quote.duration_min == 29
        assert order.order_number.startswith("MED-")

    def test_stores_created_event(self):
        _create_order()

        messages = current_domain.event_store.store.read("ordering::order")
        created = [
            m
            for m in messages
            if m.metadata and m.metadata.headers and m.metadata.headers.type == "Ordering.OrderCreated.v1"
        ]
        assert len(created) >= 1

    def test_free_delivery_above_threshold(self):
        items = json.dumps([{"medicine_id": "med-002", "name": "Glucometer", "quantity": 1, "price": 750.0}])
        order = current_domain.repository_for(Order).get(_create_order(items=items))
        assert order.pricing.delivery_charges == 0.0
        assert order.pricing.total_amount == 750.0

    def test_tax_from_settings(self, delivery_settings):
        set_settings(dataclasses.replace(delivery_settings, tax_rate=0.05))
        order = current_domain.repository_for(Order).get(_create_order())
        assert order.pricing.tax == 15.0
        assert order.pricing.total_amount == 421.0

    def test_doctor_booking_without_address(self):
        order_id = _create_order(order_type="doctor_booking", items=json.dumps([]), delivery_address=None, subtotal=400.0)
        order = current_domain.repository_for(Order).get(order_id)
        assert order.order_number.startswith("DOC-")
        assert order.pricing.total_amount == 400.0


class TestCreateOrderRejected:
    def test_undeliverable_address_stores_nothing(self):
        far = dict(NEAR_HUB, latitude=13.6016)
        with pytest.raises(NotServiceableError) as exc:
            _create_order(delivery_address=json.dumps(far))

        assert exc.value.reason == "Delivery not available beyond 50km from Test Hub"
        assert _stored_orders() == []

    def test_subtotal_mismatch(self):
        with pytest.raises(ValidationError):
            _create_order(subtotal=100.0)
        assert _stored_orders() == []

    def test_invalid_coordinates(self):
        with pytest.raises(ValidationError):
            _create_order(delivery_address=json.dumps(dict(NEAR_HUB, latitude=123.0)))


class TestOrderNumberAllocation:
    def test_collision_is_redrawn(self, monkeypatch):
        draws = iter(["MED-1-AAAAAA", "MED-1-AAAAAA", "MED-1-BBBBBB"])
        monkeypatch.setattr("ordering.order.numbering.generate_order_number", lambda order_type: next(draws))

        first = current_domain.repository_for(Order).get(_create_order())
        second = current_domain.repository_for(Order).get(_create_order())

        assert first.order_number == "MED-1-AAAAAA"
        assert second.order_number == "MED-1-BBBBBB"

    def test_gives_up_after_repeated_collisions(self, monkeypatch):
        monkeypatch.setattr("ordering.order.numbering.generate_order_number", lambda order_type: "MED-1-AAAAAA")
        _create_order()

        with pytest.raises(RuntimeError):
            _create_order()
        assert len(_stored_orders()) == 1
