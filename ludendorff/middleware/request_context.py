from __future__ import annotations

import logging
import time
import uuid

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ludendorff.context import reset_correlation_id, set_correlation_id
from ludendorff.metrics import observe_http_request, resolve_http_path_label
from ludendorff.store.documents import collection_of
from ludendorff.store.errors import InvalidPathError


logger = logging.getLogger("ludendorff.request")

CORRELATION_HEADER = "x-correlation-id"


def request_tags(path: str) -> dict[str, str]:
    """What a request addresses: the callable it invokes or the collection it touches."""
    if path.startswith("/callable/"):
        return {"callable": path.removeprefix("/callable/")}
    if path.startswith("/documents/"):
        try:
            return {"collection": collection_of(path.removeprefix("/documents/"))}
        except InvalidPathError:
            return {}
    return {}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a correlation id to the request and logs it as ``http.request`` once answered."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        tags = request_tags(request.url.path)

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("correlation_id", correlation_id)
            for key, value in tags.items():
                span.set_attribute(f"ludendorff.{key}", value)

        token = set_correlation_id(correlation_id)
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                self._record(request, tags, 500, started, failed=True)
                raise
            self._record(request, tags, response.status_code, started)
        finally:
            reset_correlation_id(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @staticmethod
    def _record(request: Request, tags: dict[str, str], status_code: int, started: float, failed: bool = False) -> None:
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        path = resolve_http_path_label(request)
        observe_http_request(method=request.method, path=path, status=status_code, duration=duration_ms / 1000)
        extra = {
            "method": request.method,
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            **tags,
        }
        if failed:
            logger.error("http.error", exc_info=True, extra=extra)
        else:
            logger.info("http.request", extra=extra)
