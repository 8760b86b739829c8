from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

audit_entries_written_total = Counter(
    "audit_entries_written_total",
    "Audit log entries written by record type and operation",
    ["record_type", "operation"],
)

audit_entries_skipped_total = Counter(
    "audit_entries_skipped_total",
    "Changes dropped from the audit trail because no actor was attached",
    ["record_type", "operation"],
)

audit_failures_total = Counter(
    "audit_failures_total",
    "Audit normalizer invocations that failed",
    ["record_type"],
)

callable_requests_total = Counter(
    "callable_requests_total",
    "Callable operation invocations by outcome",
    ["callable", "outcome"],
)


_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        route_path = getattr(route, "path_format", None) or getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _PATH_PARAM_RE.sub("{id}", route_path)
    # raw document paths are unbounded and never used as a label
    return "unmatched"


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_audit_entry_written(record_type: str, operation: str) -> None:
    audit_entries_written_total.labels(record_type=record_type, operation=operation).inc()


def observe_audit_entry_skipped(record_type: str, operation: str) -> None:
    audit_entries_skipped_total.labels(record_type=record_type, operation=operation).inc()


def observe_audit_failure(record_type: str) -> None:
    audit_failures_total.labels(record_type=record_type).inc()


def observe_callable(name: str, outcome: str) -> None:
    callable_requests_total.labels(callable=name, outcome=outcome).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
