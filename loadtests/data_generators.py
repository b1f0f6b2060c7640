"""Faker-based data generators for Locust load test scenarios.

Payloads match the API's Pydantic request schemas. Coordinates are drawn
around the default dispatch hub (Srinagar) so most orders are deliverable;
``far_address`` lands outside the delivery range on purpose.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")

HUB_LAT = 34.0837
HUB_LNG = 74.7973

MEDICINES = [
    ("Paracetamol 500mg", 35.0),
    ("Amoxicillin 250mg", 120.0),
    ("Cetirizine 10mg", 28.0),
    ("Metformin 500mg", 65.0),
    ("Pantoprazole 40mg", 95.0),
    ("Vitamin D3 60K", 150.0),
]


def customer_id() -> str:
    return f"cust-lt-{uuid.uuid4().hex[:8]}"


def nearby_address(max_offset_deg: float = 0.08) -> dict:
    """Address within roughly 10 km of the hub."""
    return {
        "street": fake.street_address(),
        "city": "Srinagar",
        "state": "Jammu and Kashmir",
        "zip_code": random.choice(["190001", "190002", "190008", "190015"]),
        "phone": fake.msisdn()[:10],
        "latitude": round(HUB_LAT + random.uniform(-max_offset_deg, max_offset_deg), 6),
        "longitude": round(HUB_LNG + random.uniform(-max_offset_deg, max_offset_deg), 6),
    }


def far_address() -> dict:
    address = nearby_address()
    address["latitude"] = round(HUB_LAT + 0.9, 6)
    return address


def order_items(count: int | None = None) -> list[dict]:
    picks = random.sample(MEDICINES, count or random.randint(1, 3))
    return [
        {"medicine_id": f"med-{uuid.uuid4().hex[:8]}", "name": name, "quantity": random.randint(1, 3), "price": price}
        for name, price in picks
    ]


def order_data(payment_method: str = "online") -> dict:
    return {
        "customer_id": customer_id(),
        "order_type": "medicine",
        "items": order_items(),
        "delivery_address": nearby_address(),
        "payment_method": payment_method,
    }


def webhook_data(order_id: str, webhook_id: int, status: str) -> dict:
    return {
        "order_id": order_id,
        "webhook_id": str(webhook_id),
        "status": status,
        "gateway_payment_id": f"cf_{uuid.uuid4().hex[:10]}",
        "payload": {"source": "loadtest"},
    }


def quote_data() -> dict:
    address = random.choice([nearby_address, nearby_address, far_address])()
    return {"address": address, "subtotal": random.choice([120.0, 320.0, 650.0])}
