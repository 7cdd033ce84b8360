"""
Pytest configuration and shared fixtures

Add global fixtures here that are used across multiple test modules.
"""

import pytest
from fastapi.testclient import TestClient

from hold_to_earn.analytics_service import EnergyAnalyticsService
from hold_to_earn.utils.result_cache import InMemoryResultStore
from tests.fixtures.energy_fixtures import NOW_MS

# Register plugins for fixtures from separate files
pytest_plugins = ["tests.fixtures.energy_fixtures"]


@pytest.fixture
def memory_store():
    return InMemoryResultStore(maxlen=100)


@pytest.fixture
def energy_service(fake_log_source, memory_store, settings):
    """Service over the sample log with the clock pinned to NOW_MS."""
    return EnergyAnalyticsService(
        fake_log_source, memory_store, settings, clock_ms=lambda: NOW_MS
    )


@pytest.fixture
def client(energy_service, settings):
    """
    FastAPI test client fixture.

    The lifespan is not entered, so no indexer client is opened; the
    service dependency is overridden with the in-memory service instead.

    Yields:
        TestClient: Configured FastAPI test client
    """
    from api.main import app
    from api.routes.energy_routes import get_api_settings, get_energy_service

    app.dependency_overrides[get_energy_service] = lambda: energy_service
    app.dependency_overrides[get_api_settings] = lambda: settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
