#!/usr/bin/env python3
"""
Fetch today's shifts from the configured calendar and print the shift state.

Usage:
    python src/scripts/show_schedule.py
    python src/scripts/show_schedule.py --url https://example.com/feed.ics --tz Europe/Berlin
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH, LOG_LEVEL, TOOLBAR_TIMEZONE
from core.database import KeyValueStore
from core.timezones import resolve_tz, utc_now
from services.calendar import CalendarFetcher
from services.shifts import compute_scheduled_hours, detect_full_schedule, infer_mode, resolve
from services.storage import ToolbarStorage
from services.timer import build_update


def _fmt(event) -> str:
    if event is None:
        return "-"
    return f"{event.start:%H:%M}-{event.end:%H:%M}  {event.title}"


async def main():
    parser = argparse.ArgumentParser(description="Show today's shifts")
    parser.add_argument("--url", help="Calendar URL (defaults to the stored setting)")
    parser.add_argument("--tz", default=TOOLBAR_TIMEZONE, help="Timezone (local, UTC, IANA, +HH:MM)")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Database path")
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    tz = resolve_tz(args.tz)

    url = args.url
    if not url:
        store = KeyValueStore(args.db)
        try:
            url = ToolbarStorage(store, tz).get_config().calendar_url
        finally:
            store.close()

    if not url:
        print("No calendar URL configured (use --url or init_db.py --calendar-url)")
        sys.exit(1)

    print("Fetching calendar...\n")
    fetcher = CalendarFetcher(tz)
    events = await fetcher.get_events(url, force=True)
    now = utc_now().astimezone(tz)

    print(f"Today ({now:%a %Y-%m-%d}), {len(events)} events")
    print("=" * 60)
    for event in events:
        queue = infer_mode(event) or "other"
        print(f"  {_fmt(event):<48} [{queue}]")
    print("-" * 60)

    state = resolve(events, now)
    full = detect_full_schedule(events, now)
    hours = compute_scheduled_hours(events)
    update = build_update(state, now)

    print(f"Active shift: {_fmt(state.active_shift)}")
    print(f"Next shift:   {_fmt(state.next_shift)}")
    print(f"After that:   {_fmt(full.next_after)}")
    print(f"Timer:        {update.ui_mode} {update.ui_text} ({update.intended_mode or 'no queue'})")
    print(f"Hours:        chats {hours.chat_hours:.2f}, tickets {hours.ticket_hours:.2f}")

    if fetcher.last_error:
        print(f"\nWarning: fetch failed ({fetcher.last_error})")


if __name__ == "__main__":
    asyncio.run(main())
