"""Health check and utility routes"""

from fastapi import APIRouter, Depends
import logging

from app.config import settings
from app.exceptions import ApiError
from api.dependencies import get_backend
from services.backend_client import BackendClient

router = APIRouter(tags=["Health"])
logger = logging.getLogger("chirpynosh.api.health")


@router.get("/health-check")
def health_check():
    """Basic health check endpoint"""
    return {"status": "ok", "service": settings.app_name}


@router.get("/health-check/backend")
async def backend_health(backend: BackendClient = Depends(get_backend)):
    """Report whether the backend API answers a public read."""
    try:
        await backend.get("/hub/categories", allow_refresh=False)
        return {"backend": "ok", "api_base_url": settings.api_base_url}
    except ApiError as e:
        logger.warning("Backend health check failed: %s", e)
        return {"backend": "unavailable", "error": e.message, "status": e.http_status}
