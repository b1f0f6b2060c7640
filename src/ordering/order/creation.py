"""Order creation — command and handler.

Creation is a one-way pipeline: the address is priced by the delivery fee
engine, the quote is folded into the totals, and the order is stored as
``pending``. A non-serviceable destination or malformed input is rejected
before anything is stored.
"""

import json

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from delivery.settings import get_settings
from ordering.domain import ordering
from ordering.order.numbering import allocate_order_number
from ordering.order.order import Order, OrderType, PaymentMethod
from ordering.order.pricing import items_subtotal, quote_for_address

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CreateOrder:
    customer_id = Identifier(required=True)
    order_type = String(max_length=20, default=OrderType.MEDICINE.value)
    items = Text(required=True)  # JSON: list of item dicts
    delivery_address = Text()  # JSON: address dict
    subtotal = Float()  # defaults to the item total
    payment_method = String(max_length=20, default=PaymentMethod.CASH_ON_DELIVERY.value)


@ordering.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        delivery_address = (
            json.loads(command.delivery_address)
            if isinstance(command.delivery_address, str)
            else command.delivery_address
        )
        order_type = command.order_type or OrderType.MEDICINE.value

        subtotal = command.subtotal if command.subtotal is not None else items_subtotal(items_data)
        quote = quote_for_address(delivery_address, subtotal) if delivery_address else None

        order = Order.create(
            customer_id=command.customer_id,
            order_type=order_type,
            items_data=items_data,
            delivery_address=delivery_address,
            quote=quote,
            payment_method=command.payment_method or PaymentMethod.CASH_ON_DELIVERY.value,
            subtotal=command.subtotal,
            tax_rate=get_settings().tax_rate,
            order_number=allocate_order_number(order_type),
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=order.pricing.total_amount,
            distance_km=quote.distance_km if quote else None,
        )
        return str(order.id)
