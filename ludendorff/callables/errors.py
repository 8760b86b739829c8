from __future__ import annotations

import logging

from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from ludendorff.metrics import observe_callable


logger = logging.getLogger("ludendorff.callables")

CALLABLE_PREFIX = "/callable/"


class CallableError(Exception):
    """Failure surfaced to a callable's caller as ``{"error": {"status", "message"}}``."""

    def __init__(self, message: str, status: str = "UNKNOWN", http_status: int = 500) -> None:
        self.message = message
        self.status = status
        self.http_status = http_status
        super().__init__(message)


def _envelope(exc: CallableError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": {"status": exc.status, "message": exc.message}},
    )


async def callable_error_handler(request: Request, exc: CallableError) -> JSONResponse:
    return _envelope(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if not request.url.path.startswith(CALLABLE_PREFIX):
        return await request_validation_exception_handler(request, exc)
    name = request.url.path[len(CALLABLE_PREFIX):]
    observe_callable(name, "invalid")
    logger.warning("callable.invalid_payload", extra={"callable": name, "error": str(exc.errors())[:500]})
    return _envelope(CallableError("invalid callable payload"))
