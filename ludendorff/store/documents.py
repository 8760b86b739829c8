"""Document paths, snapshots and the record store contract.

A document path alternates collection and document ids, e.g.
``inventories/R-1/inventoryItems/ABC123``. Snapshots hand out deep copies so a
consumer can never mutate what another trigger sees.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Protocol

from ludendorff.store.errors import InvalidPathError


class _DeleteField:
    _instance: _DeleteField | None = None

    def __new__(cls) -> _DeleteField:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()

# acting-user metadata a writer embeds in a record; never part of the record itself
ACTOR_FIELD = "actor"


def parse_document_path(path: str) -> list[str]:
    segments = path.strip("/").split("/")
    if len(segments) < 2 or len(segments) % 2 != 0 or any(not segment for segment in segments):
        raise InvalidPathError(path)
    return segments


def collection_of(path: str) -> str:
    return "/".join(parse_document_path(path)[:-1])


@dataclass(frozen=True, slots=True)
class DocumentSnapshot:
    path: str
    data: dict[str, Any] | None = None

    @property
    def exists(self) -> bool:
        return self.data is not None

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def get(self, field: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return copy.deepcopy(self.data.get(field, default))

    def to_dict(self) -> dict[str, Any] | None:
        return copy.deepcopy(self.data)


@dataclass(frozen=True, slots=True)
class DocumentChange:
    path: str
    before: DocumentSnapshot
    after: DocumentSnapshot


class DocumentStore(Protocol):
    async def get(self, path: str) -> DocumentSnapshot: ...

    async def set(self, path: str, data: dict[str, Any]) -> None: ...

    async def update(self, path: str, fields: dict[str, Any]) -> None: ...

    async def delete(self, path: str, *, actor: dict[str, Any] | None = None) -> None: ...

    async def list(self, collection: str) -> list[DocumentSnapshot]: ...


def apply_update(data: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    updated = copy.deepcopy(data)
    for key, value in fields.items():
        if value is DELETE_FIELD:
            updated.pop(key, None)
        else:
            updated[key] = copy.deepcopy(value)
    return updated
