"""Message templates for order progress notices.

Each renderer takes the event payload as a dict and returns subject/body.
"""


def order_placed(context: dict) -> dict:
    number = context.get("order_number", "N/A")
    return {
        "subject": f"Order {number} placed",
        "body": (
            f"We have received your order {number}.\n"
            f"Total: INR {context.get('total_amount', 0):.2f}"
            f" (delivery INR {context.get('delivery_charges', 0):.2f})"
        ),
    }


def order_confirmed(context: dict) -> dict:
    number = context.get("order_number", "N/A")
    return {
        "subject": f"Order {number} confirmed",
        "body": f"Your order {number} has been confirmed and will be prepared shortly.",
    }


def order_out_for_delivery(context: dict) -> dict:
    number = context.get("order_number", "N/A")
    return {
        "subject": f"Order {number} is on its way",
        "body": f"Your order {number} has been handed to our delivery partner.",
    }


def order_delivered(context: dict) -> dict:
    number = context.get("order_number", "N/A")
    return {
        "subject": f"Order {number} delivered",
        "body": f"Your order {number} has been delivered. Get well soon!",
    }


def order_cancelled(context: dict) -> dict:
    number = context.get("order_number", "N/A")
    body = f"Your order {number} has been cancelled.\n\nReason: {context.get('reason', 'as requested')}"
    if context.get("payment_failed"):
        body += "\nThe pending payment for this order has been voided."
    return {"subject": f"Order {number} cancelled", "body": body}


def payment_update(context: dict) -> dict:
    number = context.get("order_number", "N/A")
    status = context.get("new_status")
    if status == "paid":
        body = f"We received your payment for order {number}."
    elif status == "refunded":
        body = f"Your payment for order {number} has been refunded."
    else:
        body = f"Your payment for order {number} did not go through. Please retry from the app."
    return {"subject": f"Payment update for order {number}", "body": body}
