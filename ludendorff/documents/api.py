from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel

from ludendorff.core.auth import get_current_caller
from ludendorff.services import Services, get_services
from ludendorff.store.errors import DocumentNotFoundError, InvalidPathError
from ludendorff.users.identity import VerifiedToken


router = APIRouter(prefix="/documents", tags=["documents"])


class DeleteIntent(BaseModel):
    actor: dict[str, Any] | None = None


def _validated_path(path: str, services: Services) -> str:
    path = path.strip("/")
    if path.split("/", 1)[0] == services.log_collection:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="log entries are read-only")
    return path


@router.get("/{path:path}")
async def get_document(
    path: str,
    services: Services = Depends(get_services),
    _caller: VerifiedToken = Depends(get_current_caller),
) -> dict[str, Any]:
    try:
        snapshot = await services.store.get(path.strip("/"))
    except InvalidPathError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if not snapshot.exists:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="document not found")
    return {"id": snapshot.id, "path": snapshot.path, "data": snapshot.to_dict()}


@router.put("/{path:path}", status_code=status.HTTP_200_OK)
async def set_document(
    path: str,
    data: dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
    _caller: VerifiedToken = Depends(get_current_caller),
) -> dict[str, str]:
    path = _validated_path(path, services)
    try:
        await services.store.set(path, data)
    except InvalidPathError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return {"path": path}


@router.patch("/{path:path}")
async def update_document(
    path: str,
    fields: dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
    _caller: VerifiedToken = Depends(get_current_caller),
) -> dict[str, str]:
    path = _validated_path(path, services)
    try:
        await services.store.update(path, fields)
    except InvalidPathError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return {"path": path}


@router.delete("/{path:path}")
async def delete_document(
    path: str,
    intent: DeleteIntent | None = Body(default=None),
    services: Services = Depends(get_services),
    _caller: VerifiedToken = Depends(get_current_caller),
) -> dict[str, str]:
    path = _validated_path(path, services)
    try:
        await services.store.delete(path, actor=intent.actor if intent is not None else None)
    except InvalidPathError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return {"path": path}
