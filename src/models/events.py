"""
Data models for calendar shifts and timer output.

Dataclasses for values the engine produces; all datetimes are timezone-aware
and expressed in the viewer's local zone.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from core.timezones import LocalDayKey

UiMode = Literal["live", "wait", "done"]
ReminderKind = Literal["start", "late_start", "end"]


@dataclass(frozen=True, slots=True)
class ShiftEvent:
    """A parsed calendar event. Invariant: ``start < end``."""

    title: str
    start: datetime
    end: datetime

    @property
    def key(self) -> str:
        """Identity of one shift instance, used for reminder dedupe."""
        return f"{self.title}|{self.start.isoformat()}"

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class ScheduleCache:
    """Last successful fetch; ``day_key`` is the local day ``events`` belong to."""

    events: tuple[ShiftEvent, ...]
    fetched_at: float  # monotonic seconds
    day_key: LocalDayKey
    url: str


@dataclass(frozen=True, slots=True)
class ShiftState:
    """Derived from cached events plus "now"; never persisted."""

    active_shift: ShiftEvent | None = None
    next_shift: ShiftEvent | None = None


@dataclass(frozen=True, slots=True)
class FullSchedule:
    """Active shift plus the next two upcoming events, over all titles."""

    active: ShiftEvent | None = None
    next: ShiftEvent | None = None
    next_after: ShiftEvent | None = None


@dataclass(frozen=True, slots=True)
class ScheduledHours:
    """Scheduled hours per queue for one day."""

    chat_hours: float = 0.0
    ticket_hours: float = 0.0

    @property
    def total_hours(self) -> float:
        return self.chat_hours + self.ticket_hours

    def to_dict(self) -> dict:
        return {
            "chat_hours": self.chat_hours,
            "ticket_hours": self.ticket_hours,
            "total_hours": self.total_hours,
        }


@dataclass(frozen=True, slots=True)
class TimerUpdate:
    """Broadcast once per timer tick."""

    ui_mode: UiMode
    ui_text: str
    intended_mode: str | None
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ShiftReminder:
    """Pre-shift, late-login or end-of-shift notification."""

    kind: ReminderKind
    queue: str | None
    shift: ShiftEvent
    minutes: int = 0
    metadata: dict[str, str] = field(default_factory=dict)
