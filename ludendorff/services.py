"""Process-wide collaborators, built once at startup and shared by every request and trigger."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker
from starlette.requests import Request

from ludendorff.audit.normalizer import AuditNormalizer
from ludendorff.core.config import Settings
from ludendorff.core.database import Base, create_db_engine, create_session_factory
from ludendorff.search.index import AlgoliaSearchIndex, SearchIndex
from ludendorff.search.service import SearchSyncService
from ludendorff.store.feed import ChangeFeed
from ludendorff.store.repository import SqlDocumentStore
from ludendorff.users.identity import IdentityProvider, LocalIdentityProvider
from ludendorff.users.mail import MailTransport, SmtpMailTransport
from ludendorff.users.service import UserAdminService


@dataclass(slots=True)
class Services:
    feed: ChangeFeed
    store: SqlDocumentStore
    identity: IdentityProvider
    search_index: SearchIndex
    mail: MailTransport
    normalizer: AuditNormalizer
    users: UserAdminService
    search: SearchSyncService
    log_collection: str = "logs"
    started: bool = False

    def start(self) -> None:
        if self.started:
            return
        self.normalizer.register(self.feed)
        self.started = True

    async def aclose(self) -> None:
        await self.feed.drain()
        await self.search_index.aclose()


def build_services(
    settings: Settings,
    *,
    session_factory: sessionmaker[Session] | None = None,
    identity: IdentityProvider | None = None,
    search_index: SearchIndex | None = None,
    mail: MailTransport | None = None,
) -> Services:
    if session_factory is None:
        engine = create_db_engine(settings.database_url)
        Base.metadata.create_all(bind=engine)
        session_factory = create_session_factory(engine)

    feed = ChangeFeed()
    store = SqlDocumentStore(session_factory, feed)
    identity = identity or LocalIdentityProvider(
        session_factory, jwt_secret=settings.jwt_secret, jwt_algorithm=settings.jwt_algorithm
    )
    search_index = search_index or AlgoliaSearchIndex(
        settings.algolia_app_id,
        settings.algolia_api_key,
        host=settings.algolia_host,
        timeout=settings.search_timeout_seconds,
    )
    mail = mail or SmtpMailTransport(
        settings.smtp_host, settings.smtp_port, settings.mail_source, settings.mail_passkey
    )
    normalizer = AuditNormalizer(
        store,
        log_collection=settings.audit_log_collection,
        id_length=settings.audit_id_length,
    )
    return Services(
        feed=feed,
        store=store,
        identity=identity,
        search_index=search_index,
        mail=mail,
        normalizer=normalizer,
        users=UserAdminService(store=store, identity=identity, mail=mail, mail_source=settings.mail_source),
        search=SearchSyncService(index=search_index),
        log_collection=settings.audit_log_collection,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
