"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_recent_errors, get_service
from api.models.responses import HealthResponse
from core.config import API_VERSION
from core.errors import RecentErrors
from services.schedule_service import ScheduleService

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    service: ScheduleService = Depends(get_service),
    recent_errors: RecentErrors = Depends(get_recent_errors),
):
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy, 503 if the store is unreachable.
    """
    store_available = service.store.ping()
    timestamp = datetime.now(timezone.utc).isoformat()
    error_stats = recent_errors.stats()

    response = HealthResponse(
        status="healthy" if store_available else "unhealthy",
        version=API_VERSION,
        store_available=store_available,
        calendar_configured=bool(service.storage.get_config().calendar_url),
        timer_running=service.timer.running,
        recent_errors=error_stats["by_level"],
        timestamp=timestamp,
        error=None if store_available else "Database not reachable",
    )
    if store_available:
        return response
    return JSONResponse(status_code=503, content=response.model_dump())
