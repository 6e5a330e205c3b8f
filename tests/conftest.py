"""
Pytest configuration and shared fixtures for the portfolio test suite.
"""
import os
import tempfile
from collections.abc import AsyncGenerator
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from delivery.channels import BaseChannel
from delivery.gateway import NotificationGateway
from delivery.models import DeliveryStatus, EmailContent
from portfolio.core import rate_limit
from portfolio.core.config import EmailProvider, Settings
from portfolio.database import Database
from portfolio.main import create_app


# =============================================================================
# Fake delivery channel
# =============================================================================


class FakeChannel(BaseChannel):
    """Channel that records what it was asked to send instead of sending it."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        provider: EmailProvider = EmailProvider.GMAIL,
        configured: bool = True,
        fail_for: tuple[str, ...] = (),
    ):
        self.provider = provider
        super().__init__(config)
        self.configured = configured
        self.fail_for = set(fail_for)
        self.sent: list[EmailContent] = []
        self.closed = False

    def is_configured(self) -> bool:
        return self.configured

    async def send(self, content: EmailContent) -> DeliveryStatus:
        status = self._new_status(content)
        if content.to_email in self.fail_for:
            return self._mark_failed(status, "mailbox unavailable")
        self.sent.append(content)
        return self._mark_sent(status, f"fake-{len(self.sent)}")

    async def close(self) -> None:
        self.closed = True

    def sent_to(self, address: str) -> list[EmailContent]:
        return [c for c in self.sent if c.to_email == address]


# =============================================================================
# Settings
# =============================================================================


def make_settings(database_url: str, **overrides: Any) -> Settings:
    """Settings isolated from any .env file, with test-friendly defaults."""
    values: dict[str, Any] = {
        "environment": "test",
        "database_url": database_url,
        "db_connect_retries": 1,
        "db_retry_interval": 0,
        "rate_limit_enabled": False,
        "email_enabled": False,
        "email_test_mode": False,
        "email_service": "gmail",
        "email_user": None,
        "email_password": None,
        "email_from": None,
        "admin_email": "owner@example.com",
        "site_name": "Jo's Portfolio",
        "owner_name": "Jo Owner",
        "contact_email": "hello@example.com",
        "sentry_dsn": None,
        "enable_dev_routes": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def db_path() -> str:
    """Temporary SQLite file, removed after the test."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    if os.path.exists(path):
        os.unlink(path)


@pytest.fixture
def database_url(db_path: str) -> str:
    return f"sqlite+aiosqlite:///{db_path}"


@pytest.fixture
def settings_factory(database_url: str):
    """Build settings against the test database with extra overrides."""

    def _create(**overrides: Any) -> Settings:
        url = overrides.pop("database_url", database_url)
        return make_settings(url, **overrides)

    return _create


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    """Settings with email notifications disabled."""
    return make_settings(database_url)


@pytest.fixture
def email_settings(database_url: str) -> Settings:
    """Settings with email notifications enabled."""
    return make_settings(database_url, email_enabled=True)


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture
async def database(test_settings: Settings) -> AsyncGenerator[Database, None]:
    """Connected database with all tables created."""
    db = Database(config=test_settings)
    assert await db.connect()
    yield db
    await db.disconnect()


@pytest_asyncio.fixture
async def async_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async with database.sessionmaker() as session:
        yield session


# =============================================================================
# Notifications
# =============================================================================


@pytest.fixture
def channel_factory():
    """Build fake channels with custom behaviour."""
    return FakeChannel


@pytest.fixture
def fake_channel(email_settings: Settings) -> FakeChannel:
    return FakeChannel(email_settings)


@pytest.fixture
def gateway(email_settings: Settings, fake_channel: FakeChannel) -> NotificationGateway:
    """Gateway routing every provider's mail to the fake channel."""
    return NotificationGateway(email_settings, channels={EmailProvider.GMAIL: fake_channel})


# =============================================================================
# Application
# =============================================================================


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Rate limiter state is process-wide; start every test with a clean one."""
    yield
    rate_limit._rate_limiter = None
    rate_limit._fallback_limiter = None
    rate_limit._redis_available = True


@pytest.fixture
def app_factory(database: Database):
    """Build an application around the test database."""

    def _create(config: Settings, gateway: Optional[NotificationGateway] = None):
        database.config = config
        return create_app(config=config, database=database, gateway=gateway or NotificationGateway(config))

    return _create


@pytest_asyncio.fixture
async def client(app_factory, test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for an app with email disabled."""
    app = app_factory(test_settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def email_client(app_factory, email_settings: Settings, gateway: NotificationGateway) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for an app with email enabled, delivering to the fake channel."""
    app = app_factory(email_settings, gateway)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
