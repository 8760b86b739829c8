from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any, Generic, TypeVar

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ludendorff.callables.errors import CallableError
from ludendorff.metrics import observe_callable
from ludendorff.services import Services, get_services
from ludendorff.users.schemas import CreateUserRequest, DeleteUserRequest, ModifyUserRequest, UserFields


logger = logging.getLogger("ludendorff.callables")

DataT = TypeVar("DataT")


class CallableRequest(BaseModel, Generic[DataT]):
    data: DataT


class IndexRequest(BaseModel):
    id: str = Field(min_length=1)
    entries: list[Any] = Field(default_factory=list)


router = APIRouter(prefix="/callable", tags=["callable"])


async def _invoke(name: str, operation: Awaitable[Any]) -> dict[str, Any]:
    try:
        result = await operation
    except Exception as exc:
        observe_callable(name, "error")
        logger.warning("callable.failed", extra={"callable": name, "error": str(exc)[:500]})
        raise CallableError(str(exc)) from exc

    observe_callable(name, "ok")
    if isinstance(result, BaseModel):
        result = result.model_dump(by_alias=True)
    return {"result": result}


@router.post("/createUser")
async def create_user(
    payload: CallableRequest[CreateUserRequest],
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    request = payload.data
    user = UserFields.model_validate(request.model_dump(exclude={"token"}))
    return await _invoke("createUser", services.users.create_user(request.token, user))


@router.post("/modifyUser")
async def modify_user(
    payload: CallableRequest[ModifyUserRequest],
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    request = payload.data
    return await _invoke(
        "modifyUser",
        services.users.modify_user(request.token, request.user_id, disabled=request.disabled),
    )


@router.post("/deleteUser")
async def delete_user(
    payload: CallableRequest[DeleteUserRequest],
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    request = payload.data
    return await _invoke(
        "deleteUser",
        services.users.delete_user(request.token, request.user_id, actor=request.actor),
    )


@router.post("/indexInventory")
async def index_inventory(
    payload: CallableRequest[IndexRequest],
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return await _invoke("indexInventory", services.search.index_inventory(payload.data.id, payload.data.entries))


@router.post("/indexIssued")
async def index_issued(
    payload: CallableRequest[IndexRequest],
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return await _invoke("indexIssued", services.search.index_issued(payload.data.id, payload.data.entries))


@router.post("/indexStockCard")
async def index_stock_card(
    payload: CallableRequest[IndexRequest],
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return await _invoke("indexStockCard", services.search.index_stock_card(payload.data.id, payload.data.entries))
