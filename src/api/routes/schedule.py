"""Schedule endpoints: current shift state, today's shifts, forced refresh."""

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_service, verify_api_key
from api.logging import track_request
from api.models.responses import (
    HoursModel,
    ShiftModel,
    ShiftStateResponse,
    TimerModel,
    TodayScheduleResponse,
)
from services.schedule_service import ScheduleService
from services.shifts import compute_scheduled_hours, infer_mode

router = APIRouter(prefix="/v1/schedule", tags=["schedule"])


def _today_response(service: ScheduleService, events) -> TodayScheduleResponse:
    hours = compute_scheduled_hours(events)
    return TodayScheduleResponse(
        day=service.today().isoformat(),
        shifts=[ShiftModel.from_event(ev, infer_mode(ev)) for ev in events],
        hours=HoursModel(**hours.to_dict()),
        cache=service.fetcher.cache_status(),
    )


@router.get("/state", response_model=ShiftStateResponse)
async def shift_state(service: ScheduleService = Depends(get_service)):
    """Active and next shift right now, plus the latest timer broadcast."""
    state = await service.get_shift_state()
    return ShiftStateResponse(
        active_shift=ShiftModel.from_event(state.active_shift, infer_mode(state.active_shift)),
        next_shift=ShiftModel.from_event(state.next_shift, infer_mode(state.next_shift)),
        intended_mode=infer_mode(state.active_shift),
        timer=TimerModel.from_update(service.timer.latest),
    )


@router.get("/today", response_model=TodayScheduleResponse)
async def todays_schedule(service: ScheduleService = Depends(get_service)):
    events = await service.todays_events()
    return _today_response(service, events)


@router.post("/refresh", response_model=TodayScheduleResponse)
async def refresh_schedule(
    request: Request,
    service: ScheduleService = Depends(get_service),
    _api_key: str = Depends(verify_api_key),
):
    """Bypass the cache and fetch the calendar now."""
    with track_request(request, service.store.connection):
        events = await service.refresh_schedule(force=True)
        return _today_response(service, events)
