"""
Global pytest configuration and fixtures.
"""
import datetime as dt
import os
from decimal import Decimal
from typing import Dict
from zoneinfo import ZoneInfo

import pytest

from billing_engine.calculators.clock import FixedClock
from billing_engine.config import BillingSystemConfig, reload_config
from billing_engine.engine import BillingEngine
from billing_engine.storage.database import Database

NZ = ZoneInfo("Pacific/Auckland")


@pytest.fixture(scope="session")
def test_env_vars() -> Dict[str, str]:
    """Test environment variables for configuration."""
    return {
        'DATABASE_URL': 'sqlite://',
        'TIMEZONE': 'Pacific/Auckland',
        'ENVIRONMENT': 'testing',
        'DEBUG': 'true',
        'LOG_LEVEL': 'DEBUG'
    }


@pytest.fixture
def mock_env(test_env_vars, monkeypatch):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)

    # Clear the global config to force reload with test values
    import billing_engine.config.settings
    billing_engine.config.settings._config = None

    yield test_env_vars

    # Clean up
    billing_engine.config.settings._config = None


@pytest.fixture
def test_config(mock_env) -> BillingSystemConfig:
    """Test configuration instance."""
    return reload_config()


@pytest.fixture
def settings() -> BillingSystemConfig:
    """Settings for an in-memory engine, independent of the environment."""
    return BillingSystemConfig(
        _env_file=None,
        database_url="sqlite://",
        timezone="Pacific/Auckland",
        environment="testing",
    )


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at 2025-10-28 12:00 in Auckland (NZDT, UTC+13)."""
    return FixedClock(dt.datetime(2025, 10, 28, 12, 0, tzinfo=NZ), NZ)


@pytest.fixture
def db():
    """Fresh in-memory database with the schema and settings row."""
    database = Database("sqlite://")
    database.init_db(company_name="Test Consulting")
    yield database
    database.dispose()


@pytest.fixture
def engine(db, clock, settings) -> BillingEngine:
    """Billing engine over the in-memory database and the frozen clock."""
    return BillingEngine(db, clock, settings)


@pytest.fixture
def client(engine):
    """A client with a default rate."""
    return engine.catalog.create_client(name="Acme Corp", default_hourly_rate=Decimal("100"))


@pytest.fixture
def project(engine, client):
    """Project billed at 100/h."""
    return engine.catalog.create_project(
        client_id=client.id, name="Website", hourly_rate=Decimal("100")
    )


@pytest.fixture
def second_project(engine, client):
    """Second project of the same client, billed at 150/h."""
    return engine.catalog.create_project(
        client_id=client.id, name="Backend", hourly_rate=Decimal("150")
    )


@pytest.fixture
def local_time():
    """Build an Auckland timestamp: ``local_time(2025, 10, 27, 9, 0)``."""

    def _build(year, month, day, hour=0, minute=0):
        return dt.datetime(year, month, day, hour, minute, tzinfo=NZ)

    return _build


@pytest.fixture
def add_entry(engine, local_time):
    """Record a manual entry on a day given as local wall-clock times."""

    def _add(project_id, day, start, end, note=None):
        return engine.timer.add_manual_entry(
            project_id=project_id,
            start_at=local_time(day.year, day.month, day.day, *start),
            end_at=local_time(day.year, day.month, day.day, *end),
            note=note,
        )

    return _add


@pytest.fixture(autouse=True)
def cleanup_test_files():
    """Clean up any test files created during testing."""
    yield

    # Remove test coverage files in case they're created
    test_files = ['coverage.xml', '.coverage']
    for file in test_files:
        if os.path.exists(file):
            os.remove(file)


# Pytest configuration for different test types
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on location."""
    for item in items:
        # Add unit marker for tests in tests/unit/
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Add integration marker for tests in tests/integration/
        elif "tests/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
