"""
Counter and day-history models.

Stored as plain JSON dicts; these dataclasses convert to and from them and
coerce anything malformed to safe non-negative values.
"""

from dataclasses import dataclass
from typing import Any, Literal

from core.timezones import LocalDayKey, UtcDayKey

RolloverAction = Literal["initialized", "unchanged", "rolled", "forced", "archived", "failed"]


def _non_negative_int(value: Any) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, number)


def _non_negative_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return max(0.0, number)


@dataclass(frozen=True, slots=True)
class LiveCounters:
    """Today's mutable counts (the day of the UTC rollover anchor)."""

    chats: int = 0
    tickets: int = 0

    @property
    def total(self) -> int:
        return self.chats + self.tickets

    def to_dict(self) -> dict:
        return {"chats": self.chats, "tickets": self.tickets}

    @classmethod
    def from_dict(cls, data: Any) -> "LiveCounters":
        if not isinstance(data, dict):
            return cls()
        return cls(
            chats=_non_negative_int(data.get("chats", 0)),
            tickets=_non_negative_int(data.get("tickets", 0)),
        )


@dataclass(frozen=True, slots=True)
class DayRecord:
    """One archived day, keyed by LocalDayKey in the daily history."""

    chats: int = 0
    tickets: int = 0
    chat_hours: float = 0.0
    ticket_hours: float = 0.0

    @property
    def total(self) -> int:
        return self.chats + self.tickets

    def to_dict(self) -> dict:
        return {
            "chats": self.chats,
            "tickets": self.tickets,
            "chat_hours": self.chat_hours,
            "ticket_hours": self.ticket_hours,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "DayRecord":
        if not isinstance(data, dict):
            return cls()
        return cls(
            chats=_non_negative_int(data.get("chats", 0)),
            tickets=_non_negative_int(data.get("tickets", 0)),
            chat_hours=_non_negative_float(data.get("chat_hours", 0.0)),
            ticket_hours=_non_negative_float(data.get("ticket_hours", 0.0)),
        )


@dataclass(frozen=True, slots=True)
class RolloverResult:
    """Outcome of a rollover call."""

    action: RolloverAction
    active_day_utc: UtcDayKey | None = None
    archived_day: LocalDayKey | None = None
    record: DayRecord | None = None
    error: str | None = None
