"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from delivery.fees import quote_delivery
from delivery.settings import get_settings
from ordering.order.order import Order
from pytest_bdd import given, parsers, then


@pytest.fixture()
def customer_id():
    return "cust-001"


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending online order", target_fixture="order")
def _(customer_id):
    return Order.create(
        customer_id=customer_id,
        items_data=[{"medicine_id": "med-001", "name": "Paracetamol 500mg", "quantity": 2, "price": 150.0}],
        delivery_address={"street": "12 MG Road", "city": "Bengaluru", "zip_code": "560001"},
        quote=quote_delivery(None, 300.0, get_settings().pricing),
        payment_method="online",
    )


@given(parsers.cfparse('an admin marked the payment as "{status}"'))
def _(order, status):
    order.apply_payment_status(status, source="admin")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the payment status is "{status}"'))
def _(order, status):
    assert order.payment_status == status


@then(parsers.cfparse('the order is "{status}"'))
def _(order, status):
    assert order.status == status


@then(parsers.cfparse("the payment history has {count:d} entries"))
def _(order, count):
    assert len(order.payment_timeline) == count
