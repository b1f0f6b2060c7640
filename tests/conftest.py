import os
from pathlib import Path

import pytest

# Central hub and fee schedule used throughout the tests: a 12 km trip from
# the hub with a 300 subtotal costs 50 + (12 - 5) * 8 = 106.
TEST_HUB = (12.9716, 77.5946)


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from ordering.domain import ordering

    ordering.init()
    ordering.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/domain/" in str(test_path) or "/delivery/" in str(test_path):
            item.add_marker(pytest.mark.domain)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from ordering.domain import ordering
    from ordering.utils.db import drop_db, setup_db

    setup_db(ordering)

    yield

    drop_db(ordering)


@pytest.fixture(autouse=True)
def delivery_settings():
    """Pin the fee schedule and disable routing for every test."""
    from delivery.geo import Coordinate
    from delivery.routing import reset_router, set_router
    from delivery.settings import DeliveryPricing, DeliverySettings, reset_settings, set_settings

    settings = DeliverySettings(
        pricing=DeliveryPricing(
            central_location=Coordinate(*TEST_HUB),
            central_location_name="Test Hub",
            base_fee=50.0,
            per_km_rate=8.0,
            free_delivery_threshold=500.0,
            max_delivery_distance=50.0,
        ),
    )
    set_settings(settings)
    set_router(None)

    yield settings

    reset_settings()
    reset_router()


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    from ordering.gateway import reset_verifier
    from ordering.notifier import reset_notifier

    reset_notifier()
    reset_verifier()

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()
