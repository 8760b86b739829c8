"""Audit normalization for writes to the watched record collections.

Every create, update or remove of a watched document is turned into one
immutable ``LogEntry`` under the log collection. The acting user travels inside
the written document as an ``actor`` field; once the entry is stored the field
is deleted from the record with a second, independent write. A delete has no
written document, so the actor handed to ``DocumentStore.delete`` is published
on the ``before`` snapshot instead.

Invocations are stateless and fail open: a write without an actor is skipped
with a warning, and any other failure is logged and swallowed so the hosting
runtime never retries (and duplicates) a log entry. An actor that is not an
object is still stripped, but nothing is logged for it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from opentelemetry import trace
from pydantic import ValidationError

from ludendorff.audit.records import RECORD_TYPES, RecordType
from ludendorff.audit.schemas import Actor, LogEntry, Operation
from ludendorff.context import reset_correlation_id, set_correlation_id
from ludendorff.ids import LOG_ID_LENGTH, generate_id
from ludendorff.metrics import observe_audit_entry_skipped, observe_audit_entry_written, observe_audit_failure
from ludendorff.store.documents import ACTOR_FIELD, DELETE_FIELD, DocumentChange, DocumentSnapshot, DocumentStore
from ludendorff.store.feed import ChangeFeed


logger = logging.getLogger("ludendorff.audit")
tracer = trace.get_tracer("ludendorff.audit")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def classify(change: DocumentChange) -> Operation:
    before_exists = change.before.exists
    after_exists = change.after.exists
    if before_exists and after_exists:
        return Operation.UPDATE
    if before_exists:
        return Operation.REMOVE
    if after_exists:
        return Operation.CREATE
    raise ValueError(f"change for '{change.path}' has neither a before nor an after snapshot")


def authoritative_snapshot(change: DocumentChange, operation: Operation) -> DocumentSnapshot:
    return change.before if operation is Operation.REMOVE else change.after


def without_actor(snapshot: DocumentSnapshot, actor_field: str = ACTOR_FIELD) -> dict[str, Any]:
    data = snapshot.to_dict() or {}
    data.pop(actor_field, None)
    return data


def build_log_entry(
    record_type: RecordType,
    operation: Operation,
    change: DocumentChange,
    params: Mapping[str, str],
    *,
    actor: Actor,
    log_id: str,
    timestamp: datetime,
    actor_field: str = ACTOR_FIELD,
) -> LogEntry:
    if operation is Operation.UPDATE:
        data = {
            "before": without_actor(change.before, actor_field),
            "after": without_actor(change.after, actor_field),
        }
    elif operation is Operation.CREATE:
        data = {"before": without_actor(change.after, actor_field)}
    else:
        data = {"before": without_actor(change.before, actor_field)}

    return LogEntry(
        log_id=log_id,
        user=actor,
        type=record_type.tag,
        identifier=record_type.identifier_for(authoritative_snapshot(change, operation), params),
        operation=operation,
        data=data,
        timestamp=timestamp,
    )


class AuditNormalizer:
    def __init__(
        self,
        store: DocumentStore,
        *,
        record_types: Sequence[RecordType] = RECORD_TYPES,
        log_collection: str = "logs",
        id_length: int = LOG_ID_LENGTH,
        actor_field: str = ACTOR_FIELD,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.record_types = tuple(record_types)
        self.log_collection = log_collection
        self.id_length = id_length
        self.actor_field = actor_field
        self._clock = clock

    def register(self, feed: ChangeFeed) -> None:
        for record_type in self.record_types:
            feed.on_write(record_type.path_pattern, self._trigger_for(record_type))

    def _trigger_for(self, record_type: RecordType):  # type: ignore[no-untyped-def]
        async def trigger(change: DocumentChange, params: Mapping[str, str]) -> LogEntry | None:
            return await self.handle(record_type, change, params)

        return trigger

    async def handle(
        self,
        record_type: RecordType,
        change: DocumentChange,
        params: Mapping[str, str],
    ) -> LogEntry | None:
        token = set_correlation_id(str(uuid.uuid4()))
        try:
            with tracer.start_as_current_span("audit.normalize") as span:
                span.set_attribute("record_type", record_type.tag)
                span.set_attribute("document.path", change.path)
                try:
                    return await self._normalize(record_type, change, params)
                except Exception as exc:
                    observe_audit_failure(record_type.tag)
                    logger.exception(
                        "audit.failed",
                        extra={"record_type": record_type.tag, "path": change.path, "error": str(exc)[:500]},
                    )
                    return None
        finally:
            reset_correlation_id(token)

    async def _normalize(
        self,
        record_type: RecordType,
        change: DocumentChange,
        params: Mapping[str, str],
    ) -> LogEntry | None:
        operation = classify(change)
        raw_actor = authoritative_snapshot(change, operation).get(self.actor_field)
        if raw_actor is None:
            observe_audit_entry_skipped(record_type.tag, operation.value)
            logger.warning(
                "audit.actor_missing",
                extra={"record_type": record_type.tag, "operation": operation.value, "path": change.path},
            )
            return None

        try:
            actor = Actor.model_validate(raw_actor)
        except ValidationError as exc:
            observe_audit_entry_skipped(record_type.tag, operation.value)
            logger.warning(
                "audit.actor_invalid",
                extra={
                    "record_type": record_type.tag,
                    "operation": operation.value,
                    "path": change.path,
                    "error": str(exc)[:500],
                },
            )
            await self._strip_actor(change.path, operation)
            return None

        entry = build_log_entry(
            record_type,
            operation,
            change,
            params,
            actor=actor,
            log_id=generate_id(self.id_length),
            timestamp=self._clock(),
            actor_field=self.actor_field,
        )
        await self.store.set(f"{self.log_collection}/{entry.log_id}", entry.to_document())
        observe_audit_entry_written(record_type.tag, operation.value)
        logger.info(
            "audit.logged",
            extra={
                "record_type": record_type.tag,
                "operation": operation.value,
                "path": change.path,
                "log_id": entry.log_id,
                "identifier": entry.identifier,
            },
        )

        await self._strip_actor(change.path, operation)
        return entry

    async def _strip_actor(self, path: str, operation: Operation) -> None:
        if operation is Operation.REMOVE:
            return
        await self.store.update(path, {self.actor_field: DELETE_FIELD})
