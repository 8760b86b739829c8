from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from ludendorff.api.routes import router as api_router
from ludendorff.callables.errors import CallableError, callable_error_handler, validation_error_handler
from ludendorff.core.config import get_settings
from ludendorff.logging import configure_logging
from ludendorff.middleware.request_context import RequestContextMiddleware
from ludendorff.otel import server_request_hook, setup_otel
from ludendorff.services import Services, build_services


configure_logging()
logger = logging.getLogger("ludendorff.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: Services | None = getattr(app.state, "services", None)
    if services is None:
        services = build_services(get_settings())
        app.state.services = services
    services.start()
    logger.info("system.started")
    try:
        yield
    finally:
        await services.aclose()


settings = get_settings()

app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
app.add_middleware(RequestContextMiddleware)
app.add_exception_handler(CallableError, callable_error_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
app.include_router(api_router)

setup_otel(settings)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=server_request_hook)
