#!/usr/bin/env python3
"""
Print this week's counts, today's goal progress and the current streak.

Usage:
    python src/scripts/weekly_summary.py
    python src/scripts/weekly_summary.py --offline
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
from services.reports import format_date_display, format_weekly_summary
from services.schedule_service import ScheduleService


async def main():
    parser = argparse.ArgumentParser(description="Weekly summary and streak")
    parser.add_argument("--tz", default=TOOLBAR_TIMEZONE, help="Timezone (local, UTC, IANA, +HH:MM)")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Database path")
    parser.add_argument(
        "--offline", action="store_true", help="Use stored hours only (skip the calendar fetch)"
    )
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    service = ScheduleService(KeyValueStore(args.db), tz=resolve_tz(args.tz))
    try:
        if not args.offline:
            await service.refresh_schedule()
        stats = await service.get_stats(fetch=not args.offline)
    finally:
        await service.close()

    today = stats["today"]
    print(f"Week of {format_date_display(service.today())}\n")
    print(format_weekly_summary(stats))
    print()
    print(
        f"Today: {today['chats']} chats ({today['chats_pct']}%), "
        f"{today['tickets']} tickets ({today['tickets_pct']}%), "
        f"{today['avg_per_hour']:.2f}/h"
    )


if __name__ == "__main__":
    asyncio.run(main())
