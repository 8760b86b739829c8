from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserFields(_CamelModel):
    email: str = Field(min_length=3)
    first_name: str
    last_name: str
    position: str = ""
    permissions: list[int] = Field(default_factory=list)
    actor: dict[str, Any] | None = None


class CreateUserRequest(UserFields):
    token: str


class ModifyUserRequest(_CamelModel):
    token: str
    user_id: str = Field(min_length=1)
    disabled: bool


class DeleteUserRequest(_CamelModel):
    token: str
    user_id: str = Field(min_length=1)
    actor: dict[str, Any] | None = None


class CreatedUser(_CamelModel):
    user_id: str
