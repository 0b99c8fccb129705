"""
Shift state resolution: which queue shift is active now, and which is next.
"""

from datetime import datetime
from typing import Iterable

from core.config import QUEUE_KEYWORDS
from models.events import FullSchedule, ScheduledHours, ShiftEvent, ShiftState


def infer_mode(event: ShiftEvent | str | None) -> str | None:
    """Queue for a shift title: "chats", "tickets" or None. "chat" wins when both appear."""
    if event is None:
        return None
    title = event if isinstance(event, str) else event.title
    lowered = (title or "").lower()
    for keyword, queue in QUEUE_KEYWORDS.items():
        if keyword in lowered:
            return queue
    return None


def is_queue_shift(event: ShiftEvent) -> bool:
    """True for events whose title names a queue (other entries are meetings etc.)."""
    return infer_mode(event) is not None


def resolve(events: Iterable[ShiftEvent], now: datetime) -> ShiftState:
    """
    Find the active and next queue shift at ``now``.

    Active is the earliest-starting shift with ``start <= now <= end``; when the
    feed has overlapping shifts only that one counts. Next is the earliest shift
    starting after ``now``, regardless of the active one.
    """
    relevant = sorted((ev for ev in events if is_queue_shift(ev)), key=lambda ev: ev.start)

    active = next((ev for ev in relevant if ev.start <= now <= ev.end), None)
    upcoming = next((ev for ev in relevant if ev.start > now), None)
    return ShiftState(active_shift=active, next_shift=upcoming)


def detect_full_schedule(events: Iterable[ShiftEvent], now: datetime) -> FullSchedule:
    """Active event plus the next two upcoming ones, over every title."""
    ordered = sorted(events, key=lambda ev: ev.start)
    active = next((ev for ev in ordered if ev.start <= now <= ev.end), None)
    upcoming = [ev for ev in ordered if ev.start > now]
    return FullSchedule(
        active=active,
        next=upcoming[0] if upcoming else None,
        next_after=upcoming[1] if len(upcoming) > 1 else None,
    )


def compute_scheduled_hours(events: Iterable[ShiftEvent]) -> ScheduledHours:
    """Sum shift durations per queue."""
    chat_seconds = 0.0
    ticket_seconds = 0.0
    for ev in events:
        seconds = (ev.end - ev.start).total_seconds()
        if seconds <= 0:
            continue
        mode = infer_mode(ev)
        if mode == "chats":
            chat_seconds += seconds
        elif mode == "tickets":
            ticket_seconds += seconds
    return ScheduledHours(chat_hours=chat_seconds / 3600, ticket_hours=ticket_seconds / 3600)
