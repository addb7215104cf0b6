"""Test configuration and shared fixtures."""

import logging

import pytest
import structlog

from pointconverter.application.config import Config
from pointconverter.application.harness import ConversionHarness
from pointconverter.domain.counters import ConversionCounter, get_conversion_counter
from pointconverter.infrastructure.persistence.store import SqlAlchemyStoreFactory
from pointconverter.infrastructure.variants import VARIANTS
from pointconverter.shared.logging import factory as logging_factory


@pytest.fixture
def counter() -> ConversionCounter:
    """Fresh counter, independent of the process-wide one."""
    return ConversionCounter()


@pytest.fixture
def config() -> Config:
    """Test configuration over a private in-memory database."""
    return Config(
        {
            "ENVIRONMENT": "test",
            "DATABASE_URL": "sqlite+pysqlite:///:memory:",
            "LOG_LEVEL": "DEBUG",
        }
    )


@pytest.fixture
def store_factory(config):
    """SQLAlchemy store factory, disposed after the test."""
    factory = SqlAlchemyStoreFactory(config)
    yield factory
    factory.dispose()


@pytest.fixture
def shared_counter() -> ConversionCounter:
    """Process-wide counter used by the persistence column types, reset for the test."""
    shared = get_conversion_counter()
    shared.reset()
    return shared


@pytest.fixture
def harness(store_factory, shared_counter):
    """Harness over the SQLAlchemy store; tears down whatever the test registered."""
    harness = ConversionHarness(store_factory, counter=shared_counter)
    yield harness
    harness.tear_down()


@pytest.fixture(params=VARIANTS, ids=lambda variant: variant.tag)
def variant(request):
    """Both rect variants; scenarios must hold for each."""
    return request.param


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    """Put structlog, the root logger and the bound environment back the way they were."""
    monkeypatch.setattr(logging_factory, "_environment", None)
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    structlog.reset_defaults()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
