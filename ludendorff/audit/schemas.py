from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Operation(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"


class Actor(BaseModel):
    """Who performed a write. Embedded in records only until it is logged."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    actor_id: str | None = None
    name: str | None = None
    email: str | None = None


class LogEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    log_id: str
    user: Actor
    type: str
    identifier: str
    operation: Operation
    data: dict[str, Any]
    timestamp: datetime

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
