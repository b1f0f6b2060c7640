"""Forward order transitions driven by pharmacy staff and delivery agents."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class ConfirmOrder:
    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class StartProcessing:
    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class DispatchOrder:
    order_id = Identifier(required=True)
    delivery_agent_id = Identifier()


@ordering.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class OrderTransitionHandler:
    @handle(ConfirmOrder)
    def confirm_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.verify_pricing()
        order.confirm()
        repo.add(order)

    @handle(StartProcessing)
    def start_processing(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.verify_pricing()
        order.start_processing()
        repo.add(order)

    @handle(DispatchOrder)
    def dispatch_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.verify_pricing()
        order.dispatch(delivery_agent_id=command.delivery_agent_id)
        repo.add(order)

    @handle(MarkDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.verify_pricing()
        order.mark_delivered()
        repo.add(order)
