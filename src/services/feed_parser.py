"""
iCalendar feed parsing into shift events.

Pure transform, no I/O. Third-party feeds are unreliable, so any event that
cannot be decoded (missing title/start/end, bad timestamps, end before start)
is dropped and parsing carries on. ``parse_feed`` never raises.

Content lines are unfolded and split by ``icalendar.parser``; lines are read
one at a time so a single broken line only costs its own event.
"""

import logging
from datetime import date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from icalendar.parser import Contentline, Contentlines
from icalendar.prop import vDate, vDatetime, vDuration, vText

from core.timezones import resolve_tz
from models.events import ShiftEvent

logger = logging.getLogger(__name__)

# zoneinfo raises KeyError subclasses for unknown zones, ValueError for bad keys
_DECODE_ERRORS = (ValueError, KeyError, OverflowError, TypeError, OSError)

_FIELD_NAMES = {"SUMMARY": "title", "DTSTART": "start", "DTEND": "end", "DURATION": "duration"}


def unfold_lines(text: str) -> list[str]:
    """Logical content lines with RFC 5545 folding removed. Only CR/LF end a line."""
    try:
        lines = Contentlines.from_ical(text)
    except ValueError:
        return []
    return [str(line) for line in lines if line]


def split_property(line: str) -> tuple[str, dict[str, str], str]:
    """
    Split ``NAME;PARAM=VAL:value`` into (name, params, value).

    Quoted parameter values may contain colons. Returns an empty name for
    lines that are not valid content lines.
    """
    try:
        name, params, value = Contentline(line).parts()
    except ValueError:
        return "", {}, ""
    flat = {
        key.upper(): ",".join(val) if isinstance(val, list) else str(val)
        for key, val in params.items()
    }
    return name.strip().upper(), flat, value.strip()


def _zone_for(tzid: str | None, local_tz: tzinfo) -> tzinfo:
    """Zone named by a TZID parameter; unknown names fall back to floating (local)."""
    if not tzid:
        return local_tz
    try:
        return ZoneInfo(tzid)
    except (ValueError, KeyError, OSError):
        logger.debug("Unknown TZID %r, treating as floating time", tzid)
        return local_tz


def parse_timestamp(value: str, params: dict[str, str], local_tz: tzinfo) -> datetime:
    """
    Decode a DTSTART/DTEND value into an aware datetime in ``local_tz``.

    - ``...Z``: UTC, converted to local
    - ``TZID=...``: wall time in that zone, converted to local (unknown zones
      are treated as floating)
    - otherwise floating time, taken as already local
    - ``VALUE=DATE`` / 8-digit values: local midnight of that date

    Raises:
        ValueError (or another decode error) for anything unparseable
    """
    value = value.strip()
    if params.get("VALUE", "").upper() == "DATE" or len(value) == 8:
        day: date = vDate.from_ical(value)
        return datetime(day.year, day.month, day.day, tzinfo=local_tz)

    parsed: datetime = vDatetime.from_ical(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_zone_for(params.get("TZID"), local_tz))
    return parsed.astimezone(local_tz)


def _decode_summary(value: str) -> str:
    return str(vText.from_ical(value)).strip()


def _build_event(fields: dict) -> ShiftEvent | None:
    title = fields.get("title")
    start = fields.get("start")
    end = fields.get("end")
    if end is None and start is not None and fields.get("duration") is not None:
        try:
            end = start + fields["duration"]
        except OverflowError:
            return None
    if not title or start is None or end is None:
        return None
    if not start < end:
        return None
    return ShiftEvent(title=title, start=start, end=end)


def parse_feed(raw_text: str, tz: tzinfo | None = None) -> list[ShiftEvent]:
    """
    Parse calendar-feed text into shift events in feed order.

    Only properties that belong directly to a VEVENT are read, so nested
    VALARM summaries cannot overwrite the event title.
    """
    if not isinstance(raw_text, str) or not raw_text:
        return []

    local_tz = tz or resolve_tz("local")
    events: list[ShiftEvent] = []
    stack: list[str] = []
    fields: dict = {}
    dropped = 0

    for line in unfold_lines(raw_text):
        name, params, value = split_property(line)
        if not name:
            continue

        if name == "BEGIN":
            component = value.upper()
            stack.append(component)
            if component == "VEVENT":
                fields = {}
            continue

        if name == "END":
            component = value.upper()
            if component in stack:
                while stack and stack.pop() != component:
                    pass
            if component == "VEVENT":
                event = _build_event(fields)
                if event is not None:
                    events.append(event)
                else:
                    dropped += 1
                fields = {}
            continue

        if not stack or stack[-1] != "VEVENT":
            continue

        try:
            if name == "SUMMARY":
                fields["title"] = _decode_summary(value)
            elif name == "DTSTART":
                fields["start"] = parse_timestamp(value, params, local_tz)
            elif name == "DTEND":
                fields["end"] = parse_timestamp(value, params, local_tz)
            elif name == "DURATION":
                duration = vDuration.from_ical(value)
                if isinstance(duration, timedelta):
                    fields["duration"] = duration
        except _DECODE_ERRORS:
            # A bad field poisons only its event
            fields[_FIELD_NAMES[name]] = None

    if dropped:
        logger.debug("Dropped %d malformed calendar events", dropped)
    return events
