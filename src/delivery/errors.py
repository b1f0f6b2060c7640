"""Delivery-side failure types.

``NotServiceableError`` is a business rejection: the destination cannot be
served and checkout must stop. ``ExternalServiceError`` is a transient
provider failure that callers degrade around and never show to customers.
"""


class NotServiceableError(Exception):
    """Destination is beyond the delivery range or outside the service area."""

    def __init__(self, reason: str, distance_km: float | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.distance_km = distance_km


class ExternalServiceError(Exception):
    """A routing or geocoding provider call failed or timed out."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
