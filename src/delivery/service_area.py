"""Service-area policies for address registration.

A policy decides whether an address may be registered at all. This is a
separate gate from the max-delivery-distance check applied when an order is
quoted: an address inside the service area may still be too far for a
particular hub, and with enforcement off an out-of-region address is
accepted and priced normally.

Policies are injected; ``policy_from_settings`` picks one from deployment
configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from delivery.errors import NotServiceableError
from delivery.geo import BoundingBox, Coordinate
from delivery.settings import DeliverySettings


@dataclass(frozen=True)
class ServiceAreaDecision:
    allowed: bool
    reason: str | None = None


class ServiceAreaPolicy(ABC):
    @abstractmethod
    def check(self, address: dict) -> ServiceAreaDecision:
        """Decide whether the address lies in the serviceable region."""
        ...

    def ensure_registrable(self, address: dict) -> None:
        decision = self.check(address)
        if not decision.allowed:
            raise NotServiceableError(decision.reason or "Address is outside the service area")


class OpenServiceArea(ServiceAreaPolicy):
    """Accepts every address."""

    def check(self, address: dict) -> ServiceAreaDecision:  # noqa: ARG002
        return ServiceAreaDecision(allowed=True)


class BoundingBoxServiceArea(ServiceAreaPolicy):
    """Accepts addresses whose coordinates fall inside a fixed bounding box."""

    def __init__(self, region: BoundingBox) -> None:
        self.region = region

    def is_within_service_area(self, lat: float, lng: float) -> bool:
        return self.region.contains(lat, lng)

    def check(self, address: dict) -> ServiceAreaDecision:
        location = Coordinate.from_mapping(address.get("location") or address)
        if location is None:
            return ServiceAreaDecision(allowed=False, reason="Address location is required to verify service area")
        if not self.is_within_service_area(location.latitude, location.longitude):
            return ServiceAreaDecision(allowed=False, reason="Address is outside our service area")
        return ServiceAreaDecision(allowed=True)


class PincodeServiceArea(ServiceAreaPolicy):
    """Accepts addresses whose postal code is on an allow-list."""

    def __init__(self, pincodes) -> None:
        self.pincodes = frozenset(str(p).strip() for p in pincodes)

    def check(self, address: dict) -> ServiceAreaDecision:
        pin = str(address.get("zip_code") or "").strip()
        if not pin or pin not in self.pincodes:
            return ServiceAreaDecision(allowed=False, reason="We do not deliver to this pincode yet")
        return ServiceAreaDecision(allowed=True)


class CombinedServiceArea(ServiceAreaPolicy):
    """All member policies must allow the address."""

    def __init__(self, *policies: ServiceAreaPolicy) -> None:
        self.policies = policies

    def check(self, address: dict) -> ServiceAreaDecision:
        for policy in self.policies:
            decision = policy.check(address)
            if not decision.allowed:
                return decision
        return ServiceAreaDecision(allowed=True)


def policy_from_settings(settings: DeliverySettings) -> ServiceAreaPolicy:
    policies: list[ServiceAreaPolicy] = []
    if settings.service_area_enforcement:
        policies.append(BoundingBoxServiceArea(settings.service_region))
    if settings.allowed_pincodes:
        policies.append(PincodeServiceArea(settings.allowed_pincodes))

    if not policies:
        return OpenServiceArea()
    if len(policies) == 1:
        return policies[0]
    return CombinedServiceArea(*policies)
