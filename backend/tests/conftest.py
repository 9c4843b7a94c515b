"""Pytest configuration and shared fixtures."""
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from eats_notify.domain.notifications.services import NotificationService
from eats_notify.infra.db.base import Base, create_sessionmaker
from eats_notify.infra.db.models import *  # noqa: F401, F403
from eats_notify.infra.memory.stores import InMemoryNotificationStore
from eats_notify.infra.realtime.change_feed import InMemoryChangeFeed
from eats_notify.services.retry import NO_RETRY


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests that need a real DB (deselect with '-m \"not integration\"')"
    )


@pytest.fixture
def feed():
    return InMemoryChangeFeed()


@pytest.fixture
def store(feed):
    return InMemoryNotificationStore(publisher=feed)


@pytest.fixture
def notification_service(store):
    return NotificationService(store, retry=NO_RETRY)


@pytest.fixture
async def session_factory():
    """SQLite in-memory database with the notification schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_sessionmaker(engine)
    await engine.dispose()
