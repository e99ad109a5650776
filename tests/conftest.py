"""Pytest configuration for all tests."""

import os
import re
import tempfile
from typing import Any, AsyncGenerator

# Settings are read once and cached, so the environment must be in place
# before anything from clientportal is imported.
os.environ["CLIENTPORTAL_ENVIRONMENT"] = "testing"
os.environ["CLIENTPORTAL_JWT_ACCESS_SECRET"] = "test-access-secret-0123456789abcdef0123"
os.environ["CLIENTPORTAL_JWT_REFRESH_SECRET"] = "test-refresh-secret-fedcba9876543210fedc"
os.environ["CLIENTPORTAL_PASSWORD_HASH_TIME_COST"] = "1"
os.environ["CLIENTPORTAL_PASSWORD_HASH_MEMORY_COST"] = "1024"
os.environ["CLIENTPORTAL_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CLIENTPORTAL_EMAIL_LOG_FILE"] = os.path.join(tempfile.gettempdir(), "clientportal-test-emails.log")
os.environ["CLIENTPORTAL_LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clientportal.core.config import Settings, get_settings
from clientportal.domain.services.auth_service import AuthService
from clientportal.domain.services.broadcaster import InMemoryBroadcaster
from clientportal.infrastructure.persistence import models  # noqa: F401
from clientportal.infrastructure.persistence.database import Base
from clientportal.infrastructure.services.email.email_provider import EmailProvider
from clientportal.infrastructure.services.email_service import EmailService

STRONG_PASSWORD = "Str0ng!Passw0rd"
NEW_STRONG_PASSWORD = "N3w!Passw0rd-X"

_TOKEN_RE = re.compile(r"token=([0-9a-f]+)")


class RecordingEmailProvider(EmailProvider):
    """Keeps every message in memory instead of delivering it."""

    name = "recording"

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        from_email: str,
        from_name: str,
    ) -> bool:
        self.sent.append(
            {"to": to, "subject": subject, "html_body": html_body, "text_body": text_body}
        )
        return True

    def last_token(self, subject: str, to: str | None = None) -> str:
        """Raw token from the newest message with this subject."""
        for message in reversed(self.sent):
            if message["subject"] == subject and (to is None or message["to"] == to):
                match = _TOKEN_RE.search(message["html_body"])
                assert match, "message carries no token link"
                return match.group(1)
        raise AssertionError(f"no email with subject {subject!r}")


class Mailbox:
    """Reads what the recording provider received once queued emails are delivered."""

    def __init__(self, provider: RecordingEmailProvider, service: EmailService) -> None:
        self.provider = provider
        self.service = service

    async def messages(self) -> list[dict[str, str]]:
        await self.service.drain()
        return self.provider.sent

    async def last_token(self, subject: str, to: str | None = None) -> str:
        await self.service.drain()
        return self.provider.last_token(subject, to)


class RecordingListener:
    """Broadcast listener that remembers every event it receives."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def __call__(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def email_provider() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def email_service(settings: Settings, email_provider: RecordingEmailProvider) -> EmailService:
    return EmailService(settings, provider=email_provider)


@pytest.fixture
def mailbox(email_provider: RecordingEmailProvider, email_service: EmailService) -> Mailbox:
    return Mailbox(email_provider, email_service)


@pytest.fixture
def broadcaster() -> InMemoryBroadcaster:
    return InMemoryBroadcaster()


@pytest.fixture
def auth_service(
    db_session: AsyncSession,
    settings: Settings,
    email_service: EmailService,
    broadcaster: InMemoryBroadcaster,
) -> AuthService:
    """Auth service wired to the test database and in-memory collaborators."""
    return AuthService(
        db_session,
        settings=settings,
        email_service=email_service,
        broadcaster=broadcaster,
        ip_address="127.0.0.1",
        user_agent="pytest",
    )


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    email_service: EmailService,
    broadcaster: InMemoryBroadcaster,
):
    """Application with the database and email dependencies overridden."""
    from clientportal.infrastructure.api.app import create_app
    from clientportal.infrastructure.api.dependencies import get_email_service
    from clientportal.infrastructure.persistence.database import get_db_session

    app = create_app(broadcaster=broadcaster)

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_email_service] = lambda: email_service
    yield app
    app.dependency_overrides = {}


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client talking to the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register_verified(auth_service: AuthService, mailbox: Mailbox):
    """Factory registering a client user and completing email verification."""

    async def _register(email: str = "client@example.com", password: str = STRONG_PASSWORD):
        profile = await auth_service.register(
            email=email, password=password, first_name="Ada", last_name="Lovelace"
        )
        await auth_service.verify_email(await mailbox.last_token("Verify your account", to=email))
        return profile

    return _register


@pytest.fixture
def listen(broadcaster: InMemoryBroadcaster):
    """Subscribe a recording listener to a user's room and return it."""

    def _listen(room: str) -> RecordingListener:
        listener = RecordingListener()
        broadcaster.subscribe(room, listener)
        return listener

    return _listen
