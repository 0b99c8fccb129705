"""Daily rollover operator endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.dependencies import get_service, verify_api_key
from api.logging import track_request
from api.models.responses import ErrorCodes, RolloverResponse
from models.history import RolloverResult
from services.schedule_service import ScheduleService

router = APIRouter(prefix="/v1/rollover", tags=["rollover"])


def _respond(result: RolloverResult, request_log) -> RolloverResponse:
    request_log.archived_day = result.archived_day
    request_log.active_day_utc = result.active_day_utc
    if result.action == "failed":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Rollover failed",
                "code": ErrorCodes.STORE_UNAVAILABLE,
                "details": [result.error] if result.error else [],
            },
        )
    if result.archived_day:
        request_log.details.append(("rollover", f"{result.action}: archived {result.archived_day}"))
    return RolloverResponse.from_result(result)


@router.post("/check", response_model=RolloverResponse)
async def check_rollover(
    request: Request,
    service: ScheduleService = Depends(get_service),
    _api_key: str = Depends(verify_api_key),
):
    """Archive and reset if the UTC day changed; otherwise nothing."""
    with track_request(request, service.store.connection) as request_log:
        return _respond(await service.rollover.roll_if_needed(), request_log)


@router.post("/force", response_model=RolloverResponse)
async def force_new_day(
    request: Request,
    service: ScheduleService = Depends(get_service),
    _api_key: str = Depends(verify_api_key),
):
    """Archive and zero the counters now, whatever the date."""
    with track_request(request, service.store.connection) as request_log:
        return _respond(await service.rollover.force_new_day_reset(), request_log)


@router.post("/archive-only", response_model=RolloverResponse)
async def archive_only(
    request: Request,
    service: ScheduleService = Depends(get_service),
    _api_key: str = Depends(verify_api_key),
):
    """Snapshot the counters into history without resetting them."""
    with track_request(request, service.store.connection) as request_log:
        return _respond(await service.rollover.archive_only(), request_log)
