"""
Timezone resolution and day-key helpers.

Two day identifiers are kept apart on purpose:

- ``UtcDayKey``: ``YYYY-MM-DD`` from UTC date fields. Monotonic and
  offset-independent, so it decides whether a day has elapsed.
- ``LocalDayKey``: ``YYYY-MM-DD`` in the viewer's zone. Used to key history
  rows and the schedule cache, matching the viewer's calendar day.
"""

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, NewType
from zoneinfo import ZoneInfo

from tzlocal import get_localzone

UtcDayKey = NewType("UtcDayKey", str)
LocalDayKey = NewType("LocalDayKey", str)

Clock = Callable[[], datetime]

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")
_DAY_KEY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime (default clock)."""
    return datetime.now(timezone.utc)


def normalize_tz_name(name: str | None) -> str:
    """Normalize a timezone identifier: None/""/"system" -> "local", "Z"/"GMT" -> "UTC"."""
    if name is None:
        return "local"
    s = str(name).strip()
    if not s:
        return "local"

    low = s.lower()
    if low in {"local", "system", "native"}:
        return "local"
    if low in {"utc", "z", "gmt", "utc0", "utc+0"}:
        return "UTC"
    return s


def resolve_tz(name: str | None) -> tzinfo:
    """
    Resolve a timezone name into a tzinfo.

    Accepts "local", "UTC", IANA names and fixed offsets ("+02:00", "-0500").

    Raises:
        ValueError: for unknown identifiers or out-of-range offsets
    """
    tz_name = normalize_tz_name(name)

    if tz_name == "UTC":
        return timezone.utc

    if tz_name == "local":
        # An IANA zone, not today's fixed offset, so DST changes are followed
        return get_localzone()

    m = _OFFSET_RE.match(tz_name)
    if m:
        sign_s, hh_s, mm_s = m.groups()
        hh, mm = int(hh_s), int(mm_s)
        if hh > 23 or mm > 59:
            raise ValueError(f"Invalid timezone offset: {tz_name!r}")
        sign = 1 if sign_s == "+" else -1
        return timezone(timedelta(minutes=sign * (hh * 60 + mm)))

    try:
        return ZoneInfo(tz_name)
    except Exception as ex:
        raise ValueError(f"Invalid timezone identifier: {tz_name!r}") from ex


def utc_day_key(now: datetime) -> UtcDayKey:
    """Day key from UTC date fields. Naive datetimes are taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return UtcDayKey(now.astimezone(timezone.utc).date().isoformat())


def local_day_key(now: datetime, tz: tzinfo) -> LocalDayKey:
    """Day key from the viewer's local date fields."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return LocalDayKey(now.astimezone(tz).date().isoformat())


def parse_day_key(key: str) -> date:
    """Parse a ``YYYY-MM-DD`` key. Raises ValueError for anything else."""
    if not isinstance(key, str) or not _DAY_KEY_RE.match(key):
        raise ValueError(f"Invalid day key: {key!r}")
    return date.fromisoformat(key)


def utc_key_to_local_key(key: UtcDayKey, tz: tzinfo) -> LocalDayKey:
    """
    Convert a UTC day key to the local day the viewer associates with it.

    Uses noon UTC of that day, so offsets up to +/-12h map back to the same
    calendar date and only extreme zones (e.g. +13/+14) land on the next one.
    """
    noon_utc = datetime.combine(parse_day_key(key), time(12, 0), tzinfo=timezone.utc)
    return local_day_key(noon_utc, tz)


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """Aware datetime for 00:00 of ``day`` in ``tz``."""
    return datetime.combine(day, time.min).replace(tzinfo=tz)
