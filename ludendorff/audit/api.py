from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ludendorff.audit.schemas import LogEntry, Operation
from ludendorff.core.auth import get_current_caller
from ludendorff.services import Services, get_services
from ludendorff.users.identity import VerifiedToken


router = APIRouter(prefix="/logs", tags=["audit"])


@router.get("", response_model=list[LogEntry])
async def list_log_entries(
    type: str | None = Query(default=None),
    identifier: str | None = Query(default=None),
    operation: Operation | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    services: Services = Depends(get_services),
    _caller: VerifiedToken = Depends(get_current_caller),
) -> list[LogEntry]:
    snapshots = await services.store.list(services.log_collection)
    entries = [LogEntry.model_validate(snapshot.to_dict()) for snapshot in snapshots]
    if type is not None:
        entries = [entry for entry in entries if entry.type == type]
    if identifier is not None:
        entries = [entry for entry in entries if entry.identifier == identifier]
    if operation is not None:
        entries = [entry for entry in entries if entry.operation == operation]
    entries.sort(key=lambda entry: entry.timestamp, reverse=True)
    return entries[:limit]
