"""Shared fixtures.

Tests run against a throwaway SQLite file (via aiosqlite) per test, with
in-memory fakes for the object store and the notification publisher.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from webapp.container import ServiceContainer, build_container
from webapp.core.config import Settings
from webapp.core.database import create_engine, create_session_factory
from webapp.core.security import CredentialHasher
from webapp.main import create_app
from webapp.models import Base
from webapp.repositories.account_repository import AccountRepository
from webapp.schemas.account import AccountCreate, AccountView
from webapp.services.account_service import AccountService
from webapp.services.auth_gate import AuthGate
from webapp.services.media_attachment_service import MediaAttachmentService
from webapp.services.verification_token_service import VerificationTokenService
from webapp.storage.object_store import ObjectNotFoundError, ObjectStoreError

TEST_PASSWORD = "s3cret-Passw0rd"  # nosec B105
TEST_BASE_URL = "http://app.test"
TEST_MEDIA_URL = "https://media.example.com"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class InMemoryObjectStore:
    """ObjectStore fake with call counters and switchable failures."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_put = False
        self.fail_delete = False

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        self.calls.append(("put", key))
        if self.fail_put:
            raise ObjectStoreError("put failed")
        self.objects[key] = (data, content_type)

    async def get(self, key: str) -> bytes:
        self.calls.append(("get", key))
        if key not in self.objects:
            raise ObjectNotFoundError(key)
        return self.objects[key][0]

    async def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        if self.fail_delete:
            raise ObjectStoreError("delete failed")
        self.objects.pop(key, None)


class RecordingPublisher:
    """NotificationPublisher fake that keeps every message."""

    def __init__(self, *, fail: bool = False) -> None:
        self.messages: list[tuple[str, dict[str, Any]]] = []
        self.fail = fail
        self.closed = False

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("broker unavailable")
        self.messages.append((topic, payload))

    async def aclose(self) -> None:
        self.closed = True

    def last_token(self) -> str:
        """Plain token from the most recent verification link."""
        _, payload = self.messages[-1]
        return parse_qs(urlsplit(payload["url"]).query)["token"][0]


class FixedClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def make_settings(database_url: str, **overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "database_url_override": database_url,
        "bcrypt_rounds": 4,
        "app_base_url": TEST_BASE_URL,
        "object_store_public_url": TEST_MEDIA_URL,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest_asyncio.fixture
async def db_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Engine on a fresh SQLite file with every table created."""
    engine = create_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session for repository tests; rolled back afterwards."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def hasher() -> CredentialHasher:
    # Minimum cost keeps the suite fast
    return CredentialHasher(rounds=4)


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def account_service(session_factory, hasher) -> AccountService:
    return AccountService(session_factory, hasher)


@pytest_asyncio.fixture
async def verification_service(
    session_factory, publisher, clock
) -> AsyncGenerator[VerificationTokenService, None]:
    service = VerificationTokenService(
        session_factory,
        publisher,
        base_url=TEST_BASE_URL,
        ttl=timedelta(minutes=2),
        clock=clock,
    )
    yield service
    await service.wait_for_notifications()


@pytest.fixture
def media_service(session_factory, object_store) -> MediaAttachmentService:
    return MediaAttachmentService(
        session_factory, object_store, public_base_url=TEST_MEDIA_URL
    )


@pytest.fixture
def auth_gate(account_service, hasher) -> AuthGate:
    return AuthGate(account_service, hasher)


@pytest_asyncio.fixture
async def account(account_service: AccountService) -> AccountView:
    """An unverified account."""
    return await account_service.create(
        AccountCreate(
            first_name="Ada",
            last_name="Lovelace",
            email="ada@example.com",
            password=TEST_PASSWORD,
        )
    )


@pytest_asyncio.fixture
async def verified_account(account: AccountView, session_factory) -> AccountView:
    """The same account with its email verified."""
    async with session_factory.begin() as db:
        await AccountRepository.mark_verified(db, account.id)
    return account.model_copy(update={"is_verified": True})


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def settings(database_url: str) -> Settings:
    return make_settings(database_url)


@pytest_asyncio.fixture
async def container(
    settings: Settings,
    db_engine: AsyncEngine,
    object_store: InMemoryObjectStore,
    publisher: RecordingPublisher,
) -> AsyncGenerator[ServiceContainer, None]:
    services = build_container(
        settings, engine=db_engine, object_store=object_store, publisher=publisher
    )
    yield services
    await services.verification.wait_for_notifications()


@pytest_asyncio.fixture
async def client(
    settings: Settings, container: ServiceContainer
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app in-process (lifespan not run)."""
    app = create_app(settings, container=container)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


def new_account_payload(email: str = "grace@example.com") -> dict[str, str]:
    return {
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": email,
        "password": TEST_PASSWORD,
    }


MISSING_ID = uuid.UUID("99999999-9999-9999-9999-999999999999")
