"""
Input sanitization for user settings and counters.
"""

import math
from typing import Any
from urllib.parse import urlparse

from core.config import (
    DEFAULT_USER_CONFIG,
    MAX_COUNT_VALUE,
    MAX_GOAL_VALUE,
    MAX_URL_LENGTH,
    MAX_WARNING_MINUTES,
    MIN_COUNT_VALUE,
    MIN_GOAL_VALUE,
    MIN_WARNING_MINUTES,
    QUEUES,
    WEEKDAY_NAMES,
)
from models.settings import UserConfig


def sanitize_number(value: Any, minimum: float, maximum: float, default: float) -> float:
    """Parse a number and clamp it into [minimum, maximum]; non-numbers become ``default``."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return max(minimum, min(maximum, number))


def sanitize_count(value: Any) -> int:
    """Counter value clamped to the allowed range."""
    return int(sanitize_number(value, MIN_COUNT_VALUE, MAX_COUNT_VALUE, 0))


_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}


def sanitize_bool(value: Any, default: bool) -> bool:
    """Parse a stored flag by meaning ("false" is False); unrecognized values become ``default``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        return default
    if isinstance(value, (int, float)) and math.isfinite(value):
        return bool(value)
    return default


def sanitize_url(value: Any, https_only: bool = True) -> str:
    """Return a usable feed URL or "" (never raises)."""
    url = str(value or "").strip()
    if not url or len(url) > MAX_URL_LENGTH:
        return ""
    try:
        parsed = urlparse(url)
    except ValueError:
        return ""
    allowed = {"https"} if https_only else {"http", "https"}
    if parsed.scheme not in allowed or not parsed.netloc:
        return ""
    return url


def validate_queue(queue: str) -> str:
    """
    Check that ``queue`` names a counter.

    Raises:
        ValueError: for anything other than "chats" or "tickets"
    """
    if queue not in QUEUES:
        raise ValueError(f"Unknown queue '{queue}', expected one of {', '.join(QUEUES)}")
    return queue


def sanitize_config(raw: Any) -> UserConfig:
    """
    Merge stored settings over defaults and clamp every field.

    Unknown keys are ignored; malformed values fall back to defaults.
    """
    merged = dict(DEFAULT_USER_CONFIG)
    if isinstance(raw, dict):
        merged.update({k: v for k, v in raw.items() if k in DEFAULT_USER_CONFIG})

    week_start = str(merged.get("week_starts_on") or "").strip().title()[:3]
    if week_start not in WEEKDAY_NAMES:
        week_start = DEFAULT_USER_CONFIG["week_starts_on"]

    return UserConfig(
        calendar_url=sanitize_url(merged.get("calendar_url")),
        goal_chats_per_hour=sanitize_number(
            merged.get("goal_chats_per_hour"),
            MIN_GOAL_VALUE,
            MAX_GOAL_VALUE,
            DEFAULT_USER_CONFIG["goal_chats_per_hour"],
        ),
        goal_tickets_per_hour=sanitize_number(
            merged.get("goal_tickets_per_hour"),
            MIN_GOAL_VALUE,
            MAX_GOAL_VALUE,
            DEFAULT_USER_CONFIG["goal_tickets_per_hour"],
        ),
        pre_shift_warning_minutes=int(
            sanitize_number(
                merged.get("pre_shift_warning_minutes"),
                MIN_WARNING_MINUTES,
                MAX_WARNING_MINUTES,
                DEFAULT_USER_CONFIG["pre_shift_warning_minutes"],
            )
        ),
        show_shift_reminders=sanitize_bool(
            merged.get("show_shift_reminders"), DEFAULT_USER_CONFIG["show_shift_reminders"]
        ),
        week_starts_on=week_start,
    )
