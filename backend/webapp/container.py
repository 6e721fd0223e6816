"""Process-wide resources and the services built on them.

Everything with a lifecycle (engine, publisher client) is created here once
at startup and released in aclose() at shutdown. Services receive their
collaborators through their constructors; none of them builds its own.
"""

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from webapp.core.config import Settings
from webapp.core.database import create_engine, create_session_factory
from webapp.core.security import CredentialHasher
from webapp.services.account_service import AccountService
from webapp.services.auth_gate import AuthGate
from webapp.services.media_attachment_service import MediaAttachmentService
from webapp.services.token_purge_worker import TokenPurgeWorker
from webapp.services.verification_token_service import VerificationTokenService
from webapp.storage.instrumented import InstrumentedObjectStore
from webapp.storage.notifications import (
    HttpNotificationPublisher,
    LoggingNotificationPublisher,
    NotificationPublisher,
)
from webapp.storage.object_store import DatabaseObjectStore, ObjectStore


@dataclass
class ServiceContainer:
    """Wired services plus the resources they share."""

    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    hasher: CredentialHasher
    object_store: ObjectStore
    publisher: NotificationPublisher
    accounts: AccountService
    verification: VerificationTokenService
    media: MediaAttachmentService
    auth_gate: AuthGate
    # None when the background purge is disabled
    purge_worker: TokenPurgeWorker | None = None

    def start_background_tasks(self) -> None:
        """Start periodic work. Requires a running event loop."""
        if self.purge_worker is not None:
            self.purge_worker.start()

    async def aclose(self) -> None:
        """Stop background work and drain notifications, then release resources."""
        if self.purge_worker is not None:
            await self.purge_worker.stop()
        await self.verification.wait_for_notifications()
        await self.publisher.aclose()
        await self.engine.dispose()


def build_container(
    settings: Settings,
    *,
    engine: AsyncEngine | None = None,
    object_store: ObjectStore | None = None,
    publisher: NotificationPublisher | None = None,
) -> ServiceContainer:
    """Build every service from settings.

    Args:
        settings: Application settings.
        engine: Pre-built engine (tests); created from settings otherwise.
        object_store: Object store override; database-backed by default.
            Either way it is wrapped to record call durations.
        publisher: Publisher override; HTTP if an endpoint is configured,
            log-only otherwise.

    Returns:
        ServiceContainer owning the created resources.
    """
    if engine is None:
        engine = create_engine(
            settings.database_url, echo=settings.environment == "development"
        )
    session_factory = create_session_factory(engine)
    hasher = CredentialHasher(rounds=settings.bcrypt_rounds)

    if object_store is None:
        object_store = DatabaseObjectStore(session_factory)
    object_store = InstrumentedObjectStore(object_store)

    if publisher is None:
        if settings.notification_endpoint:
            publisher = HttpNotificationPublisher(
                settings.notification_endpoint,
                timeout=settings.notification_timeout,
            )
        else:
            publisher = LoggingNotificationPublisher()

    accounts = AccountService(session_factory, hasher)
    verification = VerificationTokenService(
        session_factory,
        publisher,
        base_url=settings.app_base_url,
        topic=settings.verification_topic,
        ttl=timedelta(seconds=settings.verification_token_ttl_seconds),
    )
    purge_worker = None
    if settings.verification_purge_interval_seconds > 0:
        purge_worker = TokenPurgeWorker(
            verification,
            interval_seconds=settings.verification_purge_interval_seconds,
        )
    media = MediaAttachmentService(
        session_factory,
        object_store,
        public_base_url=settings.media_public_base_url,
        replace_existing=settings.media_replace_existing,
    )

    return ServiceContainer(
        engine=engine,
        session_factory=session_factory,
        hasher=hasher,
        object_store=object_store,
        publisher=publisher,
        accounts=accounts,
        verification=verification,
        media=media,
        auth_gate=AuthGate(accounts, hasher),
        purge_worker=purge_worker,
    )
