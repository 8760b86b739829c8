from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from ludendorff.audit.api import router as logs_router
from ludendorff.callables.api import router as callables_router
from ludendorff.core.config import get_settings
from ludendorff.documents.api import router as documents_router
from ludendorff.metrics import generate_metrics_payload, metrics_content_type

router = APIRouter()
router.include_router(callables_router)
router.include_router(documents_router)
router.include_router(logs_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/metrics", tags=["system"])
def metrics() -> Response:
    if not get_settings().metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
