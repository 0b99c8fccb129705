#!/usr/bin/env python3
"""
Run an end-of-day rollover by hand.

By default archives the live counters under the anchor's day, zeroes them and
moves the anchor to today. With --archive-only the counters are only copied
into history.

Usage:
    python src/scripts/simulate_end_of_day.py
    python src/scripts/simulate_end_of_day.py --archive-only
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
from core.timezones import resolve_tz
from services.rollover import DailyRolloverManager
from services.storage import ToolbarStorage


async def main():
    parser = argparse.ArgumentParser(description="Simulate the end of the day")
    parser.add_argument(
        "--archive-only", action="store_true", help="Archive without resetting counters"
    )
    parser.add_argument("--tz", default=TOOLBAR_TIMEZONE, help="Timezone (local, UTC, IANA, +HH:MM)")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Database path")
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    tz = resolve_tz(args.tz)

    store = KeyValueStore(args.db)
    try:
        storage = ToolbarStorage(store, tz)
        manager = DailyRolloverManager(storage, tz)

        before = storage.get_counts()
        print(f"Live counters: chats={before.chats}, tickets={before.tickets}")

        if args.archive_only:
            result = await manager.archive_only()
        else:
            result = await manager.force_new_day_reset()

        if result.action == "failed":
            print(f"Failed: {result.error}")
            sys.exit(1)

        print(f"Action: {result.action}")
        print(f"Archived day: {result.archived_day}")
        if result.record:
            record = result.record
            print(
                f"  chats={record.chats} tickets={record.tickets} "
                f"chat_hours={record.chat_hours:.2f} ticket_hours={record.ticket_hours:.2f}"
            )
        print(f"Active UTC day: {result.active_day_utc}")
    finally:
        store.close()


if __name__ == "__main__":
    asyncio.run(main())
