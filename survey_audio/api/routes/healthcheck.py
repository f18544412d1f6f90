"""
Health check routes.
Provides application and infrastructure health status.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from survey_audio.api.dependencies import get_app_settings, get_health_check_service
from survey_audio.config.settings import Settings
from survey_audio.infrastructure.logging.log_config import get_logger
from survey_audio.infrastructure.services.health_checks import HealthCheckService


router = APIRouter()
logger = get_logger("healthcheck")


@router.get("/ping", tags=["Health"])
async def ping():
    """
    Basic health check endpoint.

    Returns:
        dict: Simple pong response
    """
    return {"message": "pong"}


@router.get("/health", tags=["Health"])
async def health_check(
    settings: Settings = Depends(get_app_settings),
    health_service: HealthCheckService = Depends(get_health_check_service)
):
    """
    Health check covering the DynamoDB tables and the audio bucket.

    Raises:
        HTTPException: 503 if critical services are unavailable
    """
    health_status = health_service.check_all_services()
    unhealthy = health_service.unhealthy_services(health_status)
    if unhealthy:
        logger.warning("Health check failed", extra={"extra_fields": {
            "unhealthy_services": unhealthy
        }})
        raise HTTPException(
            status_code=503,
            detail=f"Services unavailable: {', '.join(unhealthy)}"
        )

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "service": settings.service_name,
        "services": health_status
    }
