"""API Pydantic models."""

from .responses import (
    CountsResponse,
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    HoursModel,
    IncrementRequest,
    RolloverResponse,
    SetCountRequest,
    ShiftModel,
    ShiftStateResponse,
    StatsResponse,
    TimerModel,
    TodayScheduleResponse,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "ErrorCodes",
    "ShiftModel",
    "TimerModel",
    "ShiftStateResponse",
    "HoursModel",
    "TodayScheduleResponse",
    "CountsResponse",
    "IncrementRequest",
    "SetCountRequest",
    "HistoryResponse",
    "StatsResponse",
    "RolloverResponse",
]
