"""Tests for shift state resolution."""

from datetime import datetime, timezone

import pytest

from conftest import make_shift
from services.shifts import (
    compute_scheduled_hours,
    detect_full_schedule,
    infer_mode,
    is_queue_shift,
    resolve,
)

UTC = timezone.utc


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 11, 7, hour, minute, tzinfo=UTC)


@pytest.mark.parametrize(
    "title,expected",
    [
        ("Chat Shift", "chats"),
        ("TICKETS backlog", "tickets"),
        ("chat + ticket triage", "chats"),
        ("Team sync", None),
        ("", None),
    ],
)
def test_infer_mode(title, expected):
    assert infer_mode(title) == expected
    assert infer_mode(make_shift(title or "x", at(9))) == (expected if title else None)


def test_infer_mode_none():
    assert infer_mode(None) is None


def test_active_shift_counts_down_to_its_end():
    events = [make_shift("Chat Shift", at(9), hours=1)]
    state = resolve(events, at(9, 30))
    assert state.active_shift == events[0]
    assert state.next_shift is None


def test_start_and_end_are_inclusive():
    event = make_shift("Chat Shift", at(9), hours=1)
    assert resolve([event], at(9)).active_shift == event
    assert resolve([event], at(10)).active_shift == event
    assert resolve([event], at(10, 1)).active_shift is None


def test_next_shift_when_nothing_active():
    events = [make_shift("Ticket Shift", at(14)), make_shift("Chat Shift", at(11))]
    state = resolve(events, at(10))
    assert state.active_shift is None
    assert state.next_shift.title == "Chat Shift"


def test_overlapping_shifts_report_earliest_start():
    early = make_shift("Ticket Shift", at(10), hours=1)
    late = make_shift("Ticket Shift", at(10, 30), hours=1)
    state = resolve([late, early], at(10, 45))
    assert state.active_shift == early
    assert state.next_shift is None


def test_next_is_independent_of_active():
    active = make_shift("Chat Shift", at(9), hours=3)
    upcoming = make_shift("Ticket Shift", at(10), hours=1)
    state = resolve([upcoming, active], at(9, 30))
    assert state.active_shift == active
    assert state.next_shift == upcoming


def test_non_queue_events_are_ignored():
    events = [make_shift("Team sync", at(9)), make_shift("Lunch", at(12))]
    state = resolve(events, at(9, 15))
    assert state.active_shift is None
    assert state.next_shift is None
    assert not is_queue_shift(events[0])


def test_full_schedule_includes_every_title():
    events = [
        make_shift("Team sync", at(11)),
        make_shift("Chat Shift", at(9)),
        make_shift("Lunch", at(12)),
        make_shift("Ticket Shift", at(13)),
    ]
    full = detect_full_schedule(events, at(9, 30))
    assert full.active.title == "Chat Shift"
    assert full.next.title == "Team sync"
    assert full.next_after.title == "Lunch"


def test_scheduled_hours_per_queue():
    events = [
        make_shift("Chat Shift", at(9), hours=2),
        make_shift("Ticket Shift", at(11), hours=1.5),
        make_shift("Chat coverage", at(14), hours=1),
        make_shift("Team sync", at(16), hours=1),
    ]
    hours = compute_scheduled_hours(events)
    assert hours.chat_hours == pytest.approx(3.0)
    assert hours.ticket_hours == pytest.approx(1.5)
    assert hours.total_hours == pytest.approx(4.5)
