from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace

from ludendorff.ids import random_password
from ludendorff.store.documents import DocumentStore
from ludendorff.users.errors import PermissionDeniedError
from ludendorff.users.identity import IdentityProvider
from ludendorff.users.mail import MailMessage, MailTransport
from ludendorff.users.permissions import MANAGE_USERS, has_permission
from ludendorff.users.schemas import CreatedUser, UserFields


logger = logging.getLogger("ludendorff.users")
tracer = trace.get_tracer("ludendorff.users")

USERS_COLLECTION = "users"
ACCOUNT_MAIL_SUBJECT = "Your New Ludendorff Account"


@dataclass(slots=True)
class UserAdminService:
    store: DocumentStore
    identity: IdentityProvider
    mail: MailTransport
    mail_source: str

    async def authorize(self, token: str, permission: int = MANAGE_USERS) -> str:
        verified = await self.identity.verify_token(token)
        profile = await self.store.get(f"{USERS_COLLECTION}/{verified.uid}")
        if not profile.exists or not has_permission(profile.get("permissions"), permission):
            raise PermissionDeniedError()
        return verified.uid

    async def create_user(self, token: str, user: UserFields) -> CreatedUser:
        with tracer.start_as_current_span("users.create"):
            await self.authorize(token)

            password = random_password()
            user_id = await self.identity.create_user(user.email, password)
            record = user.model_dump(by_alias=True, exclude_none=True)
            record["userId"] = user_id
            await self.store.set(f"{USERS_COLLECTION}/{user_id}", record)

            await self.mail.send(
                MailMessage(
                    sender=self.mail_source,
                    to=user.email,
                    subject=ACCOUNT_MAIL_SUBJECT,
                    html=f"Use this password for your account: <strong>{password}</strong>",
                )
            )
            logger.info("users.created", extra={"identifier": user_id})
            return CreatedUser(user_id=user_id)

    async def modify_user(self, token: str, user_id: str, *, disabled: bool) -> None:
        with tracer.start_as_current_span("users.modify"):
            await self.authorize(token)
            await self.identity.update_user(user_id, disabled=disabled)
            await self.store.update(f"{USERS_COLLECTION}/{user_id}", {"disabled": disabled})
            logger.info("users.modified", extra={"identifier": user_id})

    async def delete_user(self, token: str, user_id: str, *, actor: dict[str, Any] | None = None) -> None:
        with tracer.start_as_current_span("users.delete"):
            await self.authorize(token)
            await self.identity.delete_user(user_id)
            await self.store.delete(f"{USERS_COLLECTION}/{user_id}", actor=actor)
            logger.info("users.deleted", extra={"identifier": user_id})
