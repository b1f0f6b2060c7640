"""Delivery address change — command and handler.

Allowed only while the order is pending. The new address must pass the
service-area policy and be within delivery range; the order is then
repriced from a fresh quote.
"""

import json

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from delivery.service_area import policy_from_settings
from delivery.settings import get_settings
from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.pricing import quote_for_address


@ordering.command(part_of="Order")
class ChangeDeliveryAddress:
    order_id = Identifier(required=True)
    delivery_address = Text(required=True)  # JSON: address dict


@ordering.command_handler(part_of=Order)
class ChangeDeliveryAddressHandler:
    @handle(ChangeDeliveryAddress)
    def change_delivery_address(self, command):
        address = (
            json.loads(command.delivery_address)
            if isinstance(command.delivery_address, str)
            else command.delivery_address
        )

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.verify_pricing()

        policy_from_settings(get_settings()).ensure_registrable(address)
        quote = quote_for_address(address, order.pricing.subtotal)
        order.change_delivery_address(address, quote)
        repo.add(order)
        return quote
