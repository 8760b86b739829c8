from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass
from typing import Protocol

from jose import JWTError, jwt
from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from ludendorff.ids import generate_id
from ludendorff.users.errors import IdentityError, InvalidTokenError
from ludendorff.users.models import IdentityAccount


tracer = trace.get_tracer("ludendorff.identity")

UID_LENGTH = 28


@dataclass(slots=True)
class VerifiedToken:
    uid: str


class IdentityProvider(Protocol):
    async def verify_token(self, token: str) -> VerifiedToken: ...

    async def create_user(self, email: str, password: str) -> str: ...

    async def update_user(self, uid: str, *, disabled: bool) -> None: ...

    async def delete_user(self, uid: str) -> None: ...


def hash_password(password: str, *, salt: bytes | None = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.scrypt(password.encode("utf-8"), salt=salt, n=2**14, r=8, p=1)
    return "scrypt${}${}".format(
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    )


class LocalIdentityProvider:
    """Identity accounts kept in SQL; callers present HS256 tokens whose ``sub`` is the uid."""

    def __init__(self, session_factory: sessionmaker[Session], *, jwt_secret: str, jwt_algorithm: str = "HS256") -> None:
        self._session_factory = session_factory
        self._jwt_secret = jwt_secret
        self._jwt_algorithm = jwt_algorithm

    async def verify_token(self, token: str) -> VerifiedToken:
        if not token:
            raise InvalidTokenError()
        try:
            payload = jwt.decode(token, self._jwt_secret, algorithms=[self._jwt_algorithm])
        except JWTError as exc:
            raise InvalidTokenError() from exc
        subject = payload.get("sub")
        if not subject:
            raise InvalidTokenError()
        return VerifiedToken(uid=str(subject))

    async def create_user(self, email: str, password: str) -> str:
        with tracer.start_as_current_span("identity.create_user"):
            return await run_in_threadpool(self._create, email, password)

    async def update_user(self, uid: str, *, disabled: bool) -> None:
        with tracer.start_as_current_span("identity.update_user") as span:
            span.set_attribute("uid", uid)
            await run_in_threadpool(self._update, uid, disabled)

    async def delete_user(self, uid: str) -> None:
        with tracer.start_as_current_span("identity.delete_user") as span:
            span.set_attribute("uid", uid)
            await run_in_threadpool(self._delete, uid)

    def _create(self, email: str, password: str) -> str:
        account = IdentityAccount(
            uid=generate_id(UID_LENGTH),
            email=email.strip().lower(),
            password_hash=hash_password(password),
        )
        with self._session_factory() as session:
            session.add(account)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise IdentityError(f"an account already exists for {email}") from exc
            return account.uid

    def _update(self, uid: str, disabled: bool) -> None:
        with self._session_factory() as session:
            account = self._get(session, uid)
            account.disabled = disabled
            session.commit()

    def _delete(self, uid: str) -> None:
        with self._session_factory() as session:
            session.delete(self._get(session, uid))
            session.commit()

    @staticmethod
    def _get(session: Session, uid: str) -> IdentityAccount:
        account = session.scalar(select(IdentityAccount).where(IdentityAccount.uid == uid))
        if account is None:
            raise IdentityError(f"no account for uid {uid}")
        return account
