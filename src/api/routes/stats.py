"""Goal progress and streak summary."""

from fastapi import APIRouter, Depends

from api.dependencies import get_service
from api.models.responses import StatsResponse
from services.schedule_service import ScheduleService

router = APIRouter(prefix="/v1", tags=["stats"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(service: ScheduleService = Depends(get_service)):
    return StatsResponse(**await service.get_stats())
