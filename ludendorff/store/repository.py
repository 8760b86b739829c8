from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable
from typing import Any

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from ludendorff.store.documents import (
    ACTOR_FIELD,
    DELETE_FIELD,
    DocumentChange,
    DocumentSnapshot,
    apply_update,
    collection_of,
    parse_document_path,
)
from ludendorff.store.errors import DocumentNotFoundError
from ludendorff.store.feed import ChangeFeed
from ludendorff.store.models import StoredDocument


tracer = trace.get_tracer("ludendorff.store")


class SqlDocumentStore:
    """Document store persisted in a single SQL table.

    Reads and writes are serialized through an asyncio lock. Every successful
    write publishes one ``DocumentChange`` to the feed before the lock is
    released, so notifications for one document arrive in write order.
    """

    def __init__(self, session_factory: sessionmaker[Session], feed: ChangeFeed | None = None) -> None:
        self._session_factory = session_factory
        self._feed = feed
        self._lock = asyncio.Lock()

    async def get(self, path: str) -> DocumentSnapshot:
        parse_document_path(path)
        async with self._lock:
            data = await run_in_threadpool(self._read, path)
        return DocumentSnapshot(path=path, data=data)

    async def list(self, collection: str) -> list[DocumentSnapshot]:
        async with self._lock:
            rows = await run_in_threadpool(self._read_collection, collection.strip("/"))
        return [DocumentSnapshot(path=path, data=data) for path, data in rows]

    async def set(self, path: str, data: dict[str, Any]) -> None:
        parse_document_path(path)
        if any(value is DELETE_FIELD for value in data.values()):
            raise ValueError("DELETE_FIELD is only valid in update()")
        with tracer.start_as_current_span("store.set") as span:
            span.set_attribute("document.path", path)
            async with self._lock:
                before, after = await run_in_threadpool(self._write, path, lambda _current: copy.deepcopy(data), False)
                self._publish(path, before, after)

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        parse_document_path(path)
        with tracer.start_as_current_span("store.update") as span:
            span.set_attribute("document.path", path)
            async with self._lock:
                before, after = await run_in_threadpool(
                    self._write, path, lambda current: apply_update(current, fields), True
                )
                self._publish(path, before, after)

    async def delete(self, path: str, *, actor: dict[str, Any] | None = None) -> None:
        """Delete a document. A no-op when it does not exist.

        ``actor`` is never stored; it is attached to the published ``before``
        snapshot so the removal can be attributed like any other write.
        """
        parse_document_path(path)
        with tracer.start_as_current_span("store.delete") as span:
            span.set_attribute("document.path", path)
            async with self._lock:
                before = await run_in_threadpool(self._remove, path)
                if before is None:
                    return
                if actor is not None:
                    before[ACTOR_FIELD] = copy.deepcopy(actor)
                self._publish(path, before, None)

    def _publish(self, path: str, before: dict[str, Any] | None, after: dict[str, Any] | None) -> None:
        if self._feed is None:
            return
        self._feed.publish(
            DocumentChange(
                path=path,
                before=DocumentSnapshot(path=path, data=copy.deepcopy(before)),
                after=DocumentSnapshot(path=path, data=copy.deepcopy(after)),
            )
        )

    def _read(self, path: str) -> dict[str, Any] | None:
        with self._session_factory() as session:
            row = session.get(StoredDocument, path)
            return copy.deepcopy(row.data) if row is not None else None

    def _read_collection(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(StoredDocument).where(StoredDocument.collection == collection).order_by(StoredDocument.path.asc())
            ).all()
            return [(row.path, copy.deepcopy(row.data)) for row in rows]

    def _write(
        self,
        path: str,
        compute: Callable[[dict[str, Any] | None], dict[str, Any]],
        must_exist: bool,
    ) -> tuple[dict[str, Any] | None, dict[str, Any]]:
        with self._session_factory() as session:
            row = session.get(StoredDocument, path)
            before = copy.deepcopy(row.data) if row is not None else None
            if row is None and must_exist:
                raise DocumentNotFoundError(path)
            after = compute(before)
            if row is None:
                segments = parse_document_path(path)
                session.add(
                    StoredDocument(path=path, collection=collection_of(path), document_id=segments[-1], data=after)
                )
            else:
                row.data = after
            session.commit()
            return before, copy.deepcopy(after)

    def _remove(self, path: str) -> dict[str, Any] | None:
        with self._session_factory() as session:
            row = session.get(StoredDocument, path)
            if row is None:
                return None
            before = copy.deepcopy(row.data)
            session.delete(row)
            session.commit()
            return before
