"""
Goal percentages and multi-day streaks.

All functions are pure; callers pass in history, goals and scheduled hours.
"""

import math
from datetime import date, timedelta
from typing import Mapping, Sequence

from core.timezones import LocalDayKey
from models.events import ScheduledHours
from models.history import DayRecord, LiveCounters
from models.settings import Goals


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return math.floor(value + 0.5)


def required_count(per_hour_goal: float, scheduled_hours: float) -> int:
    """Interactions needed to hit the goal for ``scheduled_hours``."""
    if per_hour_goal <= 0 or scheduled_hours <= 0:
        return 0
    return round_half_up(per_hour_goal * scheduled_hours)


def percent_to_goal(count: int, per_hour_goal: float, scheduled_hours: float) -> int:
    """
    Progress towards the goal as a whole percentage.

    Returns 0 when the goal or the hours are not positive. Not clamped, so
    beating the goal gives values over 100.
    """
    if per_hour_goal <= 0 or scheduled_hours <= 0:
        return 0
    return round_half_up(100 * count / (per_hour_goal * scheduled_hours))


def avg_per_hour(count: int, hours: float) -> float:
    """Average interactions per scheduled hour, 0.0 without hours."""
    if not hours or hours <= 0:
        return 0.0
    return round(count / hours, 2)


def day_meets_goal(record: DayRecord | None, goals: Goals, hours: ScheduledHours) -> bool:
    """
    True when both queues reached their goal for the day.

    A queue with no scheduled hours is satisfied automatically. A missing
    record never meets the goal.
    """
    if record is None:
        return False

    chats_ok = hours.chat_hours <= 0 or record.chats >= required_count(
        goals.chats_per_hour, hours.chat_hours
    )
    tickets_ok = hours.ticket_hours <= 0 or record.tickets >= required_count(
        goals.tickets_per_hour, hours.ticket_hours
    )
    return chats_ok and tickets_ok


def recent_day_keys(today: date, days: int = 7) -> list[LocalDayKey]:
    """Local day keys ending at ``today``, newest first."""
    return [LocalDayKey((today - timedelta(days=offset)).isoformat()) for offset in range(days)]


def compute_streak(
    history: Mapping[str, DayRecord],
    goals: Goals,
    days_newest_first: Sequence[str],
    *,
    today_key: str,
    live_counts: LiveCounters,
    live_hours: ScheduledHours,
) -> int:
    """
    Count consecutive goal-meeting days, walking from newest to oldest.

    Today is not archived yet, so its record is built from the live counters
    and today's scheduled hours. Stops at the first day that misses.
    """
    streak = 0
    for key in days_newest_first:
        if key == today_key:
            record = DayRecord(chats=live_counts.chats, tickets=live_counts.tickets)
            hours = live_hours
        else:
            record = history.get(key)
            hours = (
                ScheduledHours(chat_hours=record.chat_hours, ticket_hours=record.ticket_hours)
                if record
                else ScheduledHours()
            )

        if not day_meets_goal(record, goals, hours):
            break
        streak += 1
    return streak
