"""Tracing setup for the HTTP surface, the store and the audit triggers.

The tracer provider is process-wide and created at most once. Exporters are
chosen from ``Settings``; tests attach an in-memory exporter instead.
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from ludendorff.core.config import Settings
from ludendorff.middleware.request_context import CORRELATION_HEADER, request_tags


_provider: TracerProvider | None = None
_exporters_attached = False


def _provider_for(settings: Settings) -> TracerProvider:
    global _provider

    if _provider is None:
        resource = Resource.create(
            {
                "service.name": settings.otel_service_name,
                "service.version": settings.app_version,
                "deployment.environment": settings.app_env,
            }
        )
        _provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(_provider)
    return _provider


def setup_otel(settings: Settings) -> TracerProvider | None:
    global _exporters_attached

    if not settings.otel_enabled:
        return None

    provider = _provider_for(settings)
    if not _exporters_attached:
        if settings.otel_exporter_endpoint:
            provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_endpoint)))
        if settings.otel_console_exporter:
            provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        _exporters_attached = True
    return provider


def setup_inmemory_otel(settings: Settings | None = None) -> InMemorySpanExporter:
    exporter = InMemorySpanExporter()
    _provider_for(settings or Settings()).add_span_processor(SimpleSpanProcessor(exporter))
    return exporter


def server_request_hook(span: Any, scope: dict[str, Any]) -> None:
    if span is None or not span.is_recording():
        return
    headers = dict(scope.get("headers", []))
    correlation_raw = headers.get(CORRELATION_HEADER.encode("ascii"))
    if correlation_raw:
        span.set_attribute("correlation_id", correlation_raw.decode("utf-8"))
    for key, value in request_tags(scope.get("path", "")).items():
        span.set_attribute(f"ludendorff.{key}", value)
