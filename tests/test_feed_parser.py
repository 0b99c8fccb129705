"""Tests for iCalendar feed parsing."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from fixtures.generate_feed import GARBAGE_EVENTS, build_feed, wrap_calendar
from services.feed_parser import parse_feed, parse_timestamp, split_property, unfold_lines

UTC = timezone.utc
BERLIN = ZoneInfo("Europe/Berlin")


def feed(*events: str) -> str:
    return wrap_calendar(list(events))


def test_parses_single_utc_event():
    text = feed(
        "BEGIN:VEVENT\nSUMMARY:Chat Shift\nDTSTART:20251107T090000Z\nDTEND:20251107T110000Z\nEND:VEVENT"
    )
    events = parse_feed(text, UTC)
    assert len(events) == 1
    assert events[0].title == "Chat Shift"
    assert events[0].start == datetime(2025, 11, 7, 9, tzinfo=UTC)
    assert events[0].end == datetime(2025, 11, 7, 11, tzinfo=UTC)


def test_utc_values_are_converted_to_local_zone():
    text = feed(
        "BEGIN:VEVENT\nSUMMARY:Chat\nDTSTART:20251107T090000Z\nDTEND:20251107T100000Z\nEND:VEVENT"
    )
    [event] = parse_feed(text, BERLIN)
    assert event.start.utcoffset() == timedelta(hours=1)
    assert event.start.hour == 10


def test_floating_time_is_taken_as_local():
    text = feed("BEGIN:VEVENT\nSUMMARY:Chat\nDTSTART:20251107T090000\nDTEND:20251107T100000\nEND:VEVENT")
    [event] = parse_feed(text, BERLIN)
    assert event.start == datetime(2025, 11, 7, 9, tzinfo=BERLIN)


def test_tzid_parameter_is_honoured():
    text = feed(
        "BEGIN:VEVENT\nSUMMARY:Ticket Shift\n"
        "DTSTART;TZID=America/New_York:20251107T090000\n"
        "DTEND;TZID=America/New_York:20251107T100000\nEND:VEVENT"
    )
    [event] = parse_feed(text, UTC)
    assert event.start == datetime(2025, 11, 7, 14, tzinfo=UTC)


def test_unknown_tzid_is_treated_as_floating():
    text = feed(
        "BEGIN:VEVENT\nSUMMARY:Chat\n"
        "DTSTART;TZID=Mars/Olympus:20251107T090000\nDTEND;TZID=Mars/Olympus:20251107T100000\nEND:VEVENT"
    )
    [event] = parse_feed(text, BERLIN)
    assert event.start == datetime(2025, 11, 7, 9, tzinfo=BERLIN)


def test_all_day_event_starts_at_local_midnight():
    text = feed(
        "BEGIN:VEVENT\nSUMMARY:Chat day\nDTSTART;VALUE=DATE:20251107\nDTEND;VALUE=DATE:20251108\nEND:VEVENT"
    )
    [event] = parse_feed(text, BERLIN)
    assert event.start == datetime(2025, 11, 7, tzinfo=BERLIN)
    assert event.end == datetime(2025, 11, 8, tzinfo=BERLIN)


def test_duration_used_when_dtend_missing():
    text = feed("BEGIN:VEVENT\nSUMMARY:Chat\nDTSTART:20251107T090000Z\nDURATION:PT2H30M\nEND:VEVENT")
    [event] = parse_feed(text, UTC)
    assert event.end - event.start == timedelta(hours=2, minutes=30)


def test_summary_is_unescaped_and_keeps_colons():
    text = feed(
        "BEGIN:VEVENT\nSUMMARY:Chat\\, Tickets: backlog\nDTSTART:20251107T090000Z\nDTEND:20251107T100000Z\nEND:VEVENT"
    )
    [event] = parse_feed(text, UTC)
    assert event.title == "Chat, Tickets: backlog"


def test_folded_lines_are_joined():
    text = feed(
        "BEGIN:VEVENT\r\nSUMMARY:Ticket\r\n  Shift\r\nDTSTART:20251107T090000Z\r\nDTEND:20251107T100000Z\r\nEND:VEVENT"
    )
    [event] = parse_feed(text, UTC)
    assert event.title == "Ticket Shift"


def test_alarm_summary_does_not_replace_event_title():
    text = feed(
        "BEGIN:VEVENT\nSUMMARY:Chat Shift\nDTSTART:20251107T090000Z\nDTEND:20251107T100000Z\n"
        "BEGIN:VALARM\nACTION:DISPLAY\nSUMMARY:Reminder\nTRIGGER:-PT5M\nEND:VALARM\nEND:VEVENT"
    )
    [event] = parse_feed(text, UTC)
    assert event.title == "Chat Shift"


def test_event_without_end_is_dropped_and_next_event_kept():
    text = feed(
        "BEGIN:VEVENT\nSUMMARY:Broken\nDTSTART:20251107T090000Z\nEND:VEVENT",
        "BEGIN:VEVENT\nSUMMARY:Ticket Shift\nDTSTART:20251107T100000Z\nDTEND:20251107T110000Z\nEND:VEVENT",
    )
    events = parse_feed(text, UTC)
    assert [e.title for e in events] == ["Ticket Shift"]


def test_end_before_start_is_dropped():
    text = feed("BEGIN:VEVENT\nSUMMARY:Chat\nDTSTART:20251107T110000Z\nDTEND:20251107T100000Z\nEND:VEVENT")
    assert parse_feed(text, UTC) == []


def test_zero_length_event_is_dropped():
    text = feed("BEGIN:VEVENT\nSUMMARY:Chat\nDTSTART:20251107T100000Z\nDTEND:20251107T100000Z\nEND:VEVENT")
    assert parse_feed(text, UTC) == []


@pytest.mark.parametrize("garbage", GARBAGE_EVENTS)
def test_each_malformed_event_is_dropped(garbage):
    assert parse_feed(feed(garbage), UTC) == []


@pytest.mark.parametrize("value", [None, 42, b"BEGIN:VCALENDAR", "", "not a calendar", "\x00\xff"])
def test_non_calendar_input_returns_empty(value):
    assert parse_feed(value, UTC) == []


@pytest.mark.parametrize("seed", range(20))
def test_random_feeds_keep_every_valid_shift(seed):
    text, shifts = build_feed(date(2025, 11, 7), count=6, seed=seed, garbage=3)
    events = parse_feed(text, UTC)
    assert [(e.title, e.start, e.end) for e in events] == [(s.title, s.start, s.end) for s in shifts]
    assert all(e.start < e.end for e in events)


@pytest.mark.parametrize("seed", range(10))
def test_truncated_feeds_never_raise(seed):
    text, _ = build_feed(date(2025, 11, 7), count=6, seed=seed)
    cut = len(text) * (seed + 1) // 11
    events = parse_feed(text[:cut], UTC)
    assert all(e.start < e.end for e in events)


def test_split_property_respects_quoted_colons():
    name, params, value = split_property('DTSTART;TZID="Custom: Zone":20251107T090000')
    assert name == "DTSTART"
    assert params == {"TZID": "Custom: Zone"}
    assert value == "20251107T090000"


def test_split_property_without_colon():
    assert split_property("garbage") == ("", {}, "")


def test_unfold_lines_handles_tabs():
    assert unfold_lines("SUMMARY:Chat\n\tShift\nEND:VEVENT") == ["SUMMARY:ChatShift", "END:VEVENT"]


def test_parse_timestamp_rejects_nonsense():
    with pytest.raises(ValueError):
        parse_timestamp("not-a-time", {}, UTC)


@pytest.mark.parametrize("separator", ["\u2028", "\x0b", "\x0c", "\x1c"])
def test_unicode_separators_stay_inside_the_title(separator):
    title = f"Chat{separator}Queue shift"
    text = feed(f"BEGIN:VEVENT\r\nSUMMARY:{title}\r\nDTSTART:20251107T090000Z\r\nDTEND:20251107T100000Z\r\nEND:VEVENT")
    [event] = parse_feed(text, UTC)
    assert event.title == title


def test_unparseable_line_drops_only_its_event():
    text = feed(
        "BEGIN:VEVENT\nSUMMARY:Chat Shift\nDTSTART;=broken:20251107T090000Z\nDTEND:20251107T100000Z\nEND:VEVENT",
        "BEGIN:VEVENT\nSUMMARY:Ticket Shift\nDTSTART:20251107T100000Z\nDTEND:20251107T110000Z\nEND:VEVENT",
    )
    assert [e.title for e in parse_feed(text, UTC)] == ["Ticket Shift"]
