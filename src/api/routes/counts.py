"""Live counters and archived history."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.dependencies import get_service, verify_api_key
from api.logging import track_request
from api.models.responses import (
    CountsResponse,
    ErrorCodes,
    HistoryResponse,
    IncrementRequest,
    SetCountRequest,
)
from core.config import QUEUES
from core.errors import StoreError
from services.schedule_service import ScheduleService

router = APIRouter(prefix="/v1", tags=["counts"])


def _check_queue(queue: str) -> None:
    if queue not in QUEUES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": f"Unknown queue '{queue}'",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": [f"Expected one of: {', '.join(QUEUES)}"],
            },
        )


def _store_unavailable(e: StoreError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "error": "Store write failed",
            "code": ErrorCodes.STORE_UNAVAILABLE,
            "details": [str(e)],
        },
    )


def _counts_response(service: ScheduleService) -> CountsResponse:
    counts = service.get_counts()
    return CountsResponse(chats=counts.chats, tickets=counts.tickets, total=counts.total)


@router.get("/counts", response_model=CountsResponse)
async def get_counts(service: ScheduleService = Depends(get_service)):
    return _counts_response(service)


@router.post("/counts/{queue}/increment", response_model=CountsResponse)
async def increment_count(
    queue: str,
    body: IncrementRequest,
    request: Request,
    service: ScheduleService = Depends(get_service),
    _api_key: str = Depends(verify_api_key),
):
    with track_request(request, service.store.connection):
        _check_queue(queue)
        try:
            service.increment(queue, body.amount, source=body.source)
        except StoreError as e:
            raise _store_unavailable(e)
        return _counts_response(service)


@router.put("/counts/{queue}", response_model=CountsResponse)
async def set_count(
    queue: str,
    body: SetCountRequest,
    request: Request,
    service: ScheduleService = Depends(get_service),
    _api_key: str = Depends(verify_api_key),
):
    with track_request(request, service.store.connection):
        _check_queue(queue)
        try:
            service.set_count(queue, body.value)
        except StoreError as e:
            raise _store_unavailable(e)
        return _counts_response(service)


@router.get("/history", response_model=HistoryResponse)
async def get_history(service: ScheduleService = Depends(get_service)):
    history = service.storage.get_daily_history()
    return HistoryResponse(days={key: history[key].to_dict() for key in sorted(history)})


@router.delete("/history")
async def clear_history(
    request: Request,
    service: ScheduleService = Depends(get_service),
    _api_key: str = Depends(verify_api_key),
):
    """Delete every archived day (live counters are untouched)."""
    with track_request(request, service.store.connection):
        try:
            removed = service.clear_history()
        except StoreError as e:
            raise _store_unavailable(e)
        return {"removed": removed}
