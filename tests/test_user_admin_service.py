from __future__ import annotations

from collections.abc import Generator

import pytest
from jose import jwt
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ludendorff.audit.normalizer import AuditNormalizer
from ludendorff.core.database import Base
from ludendorff.ids import PASSWORD_ALPHABET
from ludendorff.store.feed import ChangeFeed
from ludendorff.store.repository import SqlDocumentStore
from ludendorff.users.errors import IdentityError, InvalidTokenError, PermissionDeniedError
from ludendorff.users.identity import LocalIdentityProvider
from ludendorff.users.mail import MailMessage
from ludendorff.users.models import IdentityAccount
from ludendorff.users.permissions import has_permission
from ludendorff.users.schemas import UserFields
from ludendorff.users.service import ACCOUNT_MAIL_SUBJECT, UserAdminService


SECRET = "test-secret"


class RecordingMail:
    def __init__(self) -> None:
        self.sent: list[MailMessage] = []

    async def send(self, message: MailMessage) -> None:
        self.sent.append(message)


@pytest.fixture()
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture()
def store(session_factory: sessionmaker[Session], feed: ChangeFeed) -> SqlDocumentStore:
    return SqlDocumentStore(session_factory, feed)


@pytest.fixture()
def identity(session_factory: sessionmaker[Session]) -> LocalIdentityProvider:
    return LocalIdentityProvider(session_factory, jwt_secret=SECRET)


@pytest.fixture()
def mail() -> RecordingMail:
    return RecordingMail()


@pytest.fixture()
def service(store: SqlDocumentStore, identity: LocalIdentityProvider, mail: RecordingMail) -> UserAdminService:
    return UserAdminService(store=store, identity=identity, mail=mail, mail_source="noreply@ludendorff.test")


def _token(uid: str) -> str:
    return jwt.encode({"sub": uid}, SECRET, algorithm="HS256")


def _new_user(email: str = "new@ludendorff.test") -> UserFields:
    return UserFields(email=email, first_name="New", last_name="User", position="Clerk", permissions=[1])


async def _seed_profile(store: SqlDocumentStore, uid: str, permissions: list[int]) -> str:
    await store.set(f"users/{uid}", {"userId": uid, "email": f"{uid}@ludendorff.test", "permissions": permissions})
    return _token(uid)


def test_permission_bits() -> None:
    assert has_permission([16], 16)
    assert has_permission([1, 32], 16)
    assert not has_permission([1, 2, 4], 16)
    assert not has_permission(None, 16)


async def test_create_user_creates_identity_record_and_mails_password(
    service: UserAdminService,
    store: SqlDocumentStore,
    feed: ChangeFeed,
    mail: RecordingMail,
    session_factory: sessionmaker[Session],
) -> None:
    token = await _seed_profile(store, "admin", [16])

    created = await service.create_user(token, _new_user())
    await feed.drain()

    record = (await store.get(f"users/{created.user_id}")).to_dict()
    assert record is not None
    assert record["userId"] == created.user_id
    assert record["email"] == "new@ludendorff.test"
    assert record["firstName"] == "New"
    assert record["permissions"] == [1]
    assert "actor" not in record

    with session_factory() as session:
        account = session.scalar(select(IdentityAccount).where(IdentityAccount.uid == created.user_id))
    assert account is not None
    assert account.email == "new@ludendorff.test"
    assert account.password_hash.startswith("scrypt$")

    assert len(mail.sent) == 1
    message = mail.sent[0]
    assert message.to == "new@ludendorff.test"
    assert message.sender == "noreply@ludendorff.test"
    assert message.subject == ACCOUNT_MAIL_SUBJECT
    password = message.html.split("<strong>")[1].split("</strong>")[0]
    assert len(password) == 8
    assert set(password) <= set(PASSWORD_ALPHABET)


async def test_superuser_bit_grants_user_management(service: UserAdminService, store: SqlDocumentStore) -> None:
    token = await _seed_profile(store, "root", [32])
    created = await service.create_user(token, _new_user())
    assert created.user_id


async def test_caller_without_permission_is_denied(
    service: UserAdminService, store: SqlDocumentStore, mail: RecordingMail
) -> None:
    token = await _seed_profile(store, "clerk", [1, 2, 4, 8])

    with pytest.raises(PermissionDeniedError):
        await service.create_user(token, _new_user())
    with pytest.raises(PermissionDeniedError):
        await service.modify_user(token, "someone", disabled=True)
    with pytest.raises(PermissionDeniedError):
        await service.delete_user(token, "someone")
    assert mail.sent == []


async def test_caller_without_profile_is_denied(service: UserAdminService) -> None:
    with pytest.raises(PermissionDeniedError):
        await service.create_user(_token("ghost"), _new_user())


async def test_invalid_token_is_rejected(service: UserAdminService) -> None:
    with pytest.raises(InvalidTokenError):
        await service.modify_user("not-a-jwt", "someone", disabled=True)
    with pytest.raises(InvalidTokenError):
        await service.modify_user(jwt.encode({"sub": "admin"}, "other-secret", algorithm="HS256"), "x", disabled=True)


async def test_modify_user_toggles_identity_and_record(
    service: UserAdminService,
    store: SqlDocumentStore,
    feed: ChangeFeed,
    session_factory: sessionmaker[Session],
) -> None:
    token = await _seed_profile(store, "admin", [16])
    created = await service.create_user(token, _new_user())

    await service.modify_user(token, created.user_id, disabled=True)
    await feed.drain()

    assert (await store.get(f"users/{created.user_id}")).get("disabled") is True
    with session_factory() as session:
        account = session.get(IdentityAccount, created.user_id)
    assert account is not None and account.disabled is True


async def test_delete_user_removes_identity_and_record(
    service: UserAdminService,
    store: SqlDocumentStore,
    feed: ChangeFeed,
    session_factory: sessionmaker[Session],
) -> None:
    token = await _seed_profile(store, "admin", [16])
    created = await service.create_user(token, _new_user())

    await service.delete_user(token, created.user_id)
    await feed.drain()

    assert not (await store.get(f"users/{created.user_id}")).exists
    with session_factory() as session:
        assert session.get(IdentityAccount, created.user_id) is None

    with pytest.raises(IdentityError):
        await service.delete_user(token, created.user_id)


async def test_duplicate_email_is_rejected(service: UserAdminService, store: SqlDocumentStore) -> None:
    token = await _seed_profile(store, "admin", [16])
    await service.create_user(token, _new_user("dup@ludendorff.test"))

    with pytest.raises(IdentityError):
        await service.create_user(token, _new_user("DUP@ludendorff.test"))


async def test_created_user_with_actor_is_audited(
    service: UserAdminService, store: SqlDocumentStore, feed: ChangeFeed
) -> None:
    AuditNormalizer(store).register(feed)
    token = await _seed_profile(store, "admin", [16])
    user = _new_user()
    user.actor = {"actorId": "admin", "name": "Admin", "email": "admin@ludendorff.test"}

    created = await service.create_user(token, user)
    await feed.drain()

    logs = [snapshot.to_dict() for snapshot in await store.list("logs")]
    assert [(log["type"], log["identifier"], log["operation"]) for log in logs] == [
        ("user", created.user_id, "create")
    ]
    assert "actor" not in (await store.get(f"users/{created.user_id}")).to_dict()


async def test_deleted_user_with_actor_is_audited_as_remove(
    service: UserAdminService, store: SqlDocumentStore, feed: ChangeFeed
) -> None:
    AuditNormalizer(store).register(feed)
    token = await _seed_profile(store, "admin", [16])
    created = await service.create_user(token, _new_user())

    await service.delete_user(token, created.user_id, actor={"actorId": "admin", "name": "Admin"})
    await feed.drain()

    removes = [snapshot.to_dict() for snapshot in await store.list("logs")]
    assert [(log["operation"], log["identifier"]) for log in removes] == [("remove", created.user_id)]
    assert removes[0]["user"]["actorId"] == "admin"
    assert "actor" not in removes[0]["data"]["before"]
