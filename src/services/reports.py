"""
Stats summaries: today, yesterday, this week and the goal streak.
"""

from datetime import date, timedelta
from typing import Mapping

from core.config import WEEKDAY_NAMES
from core.timezones import LocalDayKey
from models.events import ScheduledHours
from models.history import DayRecord, LiveCounters
from models.settings import Goals
from services.goals import (
    avg_per_hour,
    compute_streak,
    percent_to_goal,
    recent_day_keys,
    required_count,
)


def format_date_display(d: date) -> str:
    """Format date as M/D/YYYY (platform-safe, no zero-padding)."""
    return f"{d.month}/{d.day}/{d.year}"


def format_date_short(d: date) -> str:
    """Format date as 'Mon D' (platform-safe, e.g., 'Tue 7')."""
    return f"{WEEKDAY_NAMES[d.weekday()]} {d.day}"


def week_start(today: date, starts_on: str = "Mon") -> date:
    """First day of the reporting week containing ``today``."""
    start_idx = WEEKDAY_NAMES.index(starts_on) if starts_on in WEEKDAY_NAMES else 0
    return today - timedelta(days=(today.weekday() - start_idx) % 7)


def build_weekly_rows(
    history: Mapping[str, DayRecord],
    today: date,
    starts_on: str = "Mon",
    live_counts: LiveCounters | None = None,
) -> dict:
    """
    Seven rows for the reporting week containing ``today``.

    Today shows the live counters unless an archived record already exists
    for it (an archive-only run stores a finalized snapshot).
    """
    first = week_start(today, starts_on)
    rows = []
    best_key = None
    best_total = -1
    week_chats = 0
    week_tickets = 0

    for offset in range(7):
        d = first + timedelta(days=offset)
        key = LocalDayKey(d.isoformat())
        record = history.get(key)
        if d == today and record is None and live_counts is not None:
            chats, tickets = live_counts.chats, live_counts.tickets
        elif record is not None:
            chats, tickets = record.chats, record.tickets
        else:
            chats, tickets = 0, 0

        total = chats + tickets
        week_chats += chats
        week_tickets += tickets
        if total > best_total:
            best_total = total
            best_key = key

        rows.append(
            {
                "key": key,
                "label": format_date_short(d),
                "chats": chats,
                "tickets": tickets,
                "total": total,
                "is_today": d == today,
            }
        )

    return {
        "rows": rows,
        "week_chats": week_chats,
        "week_tickets": week_tickets,
        "week_total": week_chats + week_tickets,
        "best_key": best_key,
    }


def build_stats(
    history: Mapping[str, DayRecord],
    counts: LiveCounters,
    hours: ScheduledHours,
    goals: Goals,
    today: date,
    starts_on: str = "Mon",
) -> dict:
    """Everything the stats view shows, as plain JSON-ready values."""
    today_key = LocalDayKey(today.isoformat())
    yesterday_key = LocalDayKey((today - timedelta(days=1)).isoformat())
    yesterday = history.get(yesterday_key)

    streak = compute_streak(
        history,
        goals,
        recent_day_keys(today, 7),
        today_key=today_key,
        live_counts=counts,
        live_hours=hours,
    )

    return {
        "day": today_key,
        "today": {
            "chats": counts.chats,
            "tickets": counts.tickets,
            "total": counts.total,
            "hours": hours.to_dict(),
            "required_chats": required_count(goals.chats_per_hour, hours.chat_hours),
            "required_tickets": required_count(goals.tickets_per_hour, hours.ticket_hours),
            "chats_pct": percent_to_goal(counts.chats, goals.chats_per_hour, hours.chat_hours),
            "tickets_pct": percent_to_goal(
                counts.tickets, goals.tickets_per_hour, hours.ticket_hours
            ),
            "avg_per_hour": avg_per_hour(counts.total, hours.total_hours),
        },
        "yesterday": {"day": yesterday_key, **yesterday.to_dict()} if yesterday else None,
        "week": build_weekly_rows(history, today, starts_on, live_counts=counts),
        "streak_days": streak,
    }


def format_weekly_summary(stats: dict) -> str:
    """Plain-text table for terminal output."""
    week = stats["week"]
    lines = [f"{'Day':<8}{'Chats':>7}{'Tickets':>9}{'Total':>7}"]
    for row in week["rows"]:
        marker = " *" if row["is_today"] else ""
        lines.append(
            f"{row['label']:<8}{row['chats']:>7}{row['tickets']:>9}{row['total']:>7}{marker}"
        )
    lines.append(f"{'Week':<8}{week['week_chats']:>7}{week['week_tickets']:>9}{week['week_total']:>7}")
    lines.append(f"Streak: {stats['streak_days']} day(s)")
    return "\n".join(lines)
