#!/usr/bin/env python3
"""Create the shift-toolbar SQLite3 database with key-value and request-log tables."""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import TIERS, KeyValueStore
from services.storage import KEY_CONFIG, ToolbarStorage


def create_database(db_path: Path, calendar_url: str | None = None):
    """Create the database and tables if they don't exist."""
    store = KeyValueStore(db_path)
    try:
        if calendar_url:
            config = ToolbarStorage(store).set_config({"calendar_url": calendar_url})
            if not config.calendar_url:
                print(f"Ignored calendar URL (must be https): {calendar_url}")
            else:
                print(f"Saved {KEY_CONFIG}: calendar_url set")
    finally:
        store.close()

    print(f"Database created successfully at: {db_path}")
    print(f"  Tables: {', '.join(TIERS.values())}, api_requests, api_request_details")


def main():
    parser = argparse.ArgumentParser(description="Initialize the toolbar database")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Database path")
    parser.add_argument("--calendar-url", help="Store this iCalendar feed URL in the settings")
    args = parser.parse_args()

    create_database(args.db, args.calendar_url)


if __name__ == "__main__":
    main()
