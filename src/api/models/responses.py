"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, Field

from models.events import ShiftEvent, TimerUpdate
from models.history import RolloverResult


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    store_available: bool
    calendar_configured: bool
    timer_running: bool
    recent_errors: dict[str, int] = {}
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ShiftModel(BaseModel):
    title: str
    start: str
    end: str
    queue: str | None = None

    @classmethod
    def from_event(cls, event: ShiftEvent | None, queue: str | None = None) -> "ShiftModel | None":
        if event is None:
            return None
        return cls(title=event.title, start=event.start.isoformat(), end=event.end.isoformat(), queue=queue)


class TimerModel(BaseModel):
    ui_mode: str
    ui_text: str
    intended_mode: str | None = None
    at: str | None = None

    @classmethod
    def from_update(cls, update: TimerUpdate | None) -> "TimerModel | None":
        if update is None:
            return None
        return cls(
            ui_mode=update.ui_mode,
            ui_text=update.ui_text,
            intended_mode=update.intended_mode,
            at=update.at.isoformat() if update.at else None,
        )


class ShiftStateResponse(BaseModel):
    active_shift: ShiftModel | None = None
    next_shift: ShiftModel | None = None
    intended_mode: str | None = None
    timer: TimerModel | None = None


class HoursModel(BaseModel):
    chat_hours: float = 0.0
    ticket_hours: float = 0.0
    total_hours: float = 0.0


class TodayScheduleResponse(BaseModel):
    day: str
    shifts: list[ShiftModel]
    hours: HoursModel
    cache: dict = {}


class CountsResponse(BaseModel):
    chats: int
    tickets: int
    total: int


class IncrementRequest(BaseModel):
    amount: int = Field(default=1, ge=-999, le=999)
    source: str = Field(default="api", max_length=50)


class SetCountRequest(BaseModel):
    value: int


class HistoryResponse(BaseModel):
    days: dict[str, dict]


class StatsResponse(BaseModel):
    day: str
    today: dict
    yesterday: dict | None = None
    week: dict
    streak_days: int


class RolloverResponse(BaseModel):
    action: str
    active_day_utc: str | None = None
    archived_day: str | None = None
    record: dict | None = None
    error: str | None = None

    @classmethod
    def from_result(cls, result: RolloverResult) -> "RolloverResponse":
        return cls(
            action=result.action,
            active_day_utc=result.active_day_utc,
            archived_day=result.archived_day,
            record=result.record.to_dict() if result.record else None,
            error=result.error,
        )
