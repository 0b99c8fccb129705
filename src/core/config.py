"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(
    os.environ.get("TOOLBAR_DB_PATH", str(PROJECT_ROOT / "data" / "db" / "shift-toolbar.db"))
)

# =============================================================================
# CALENDAR CONFIGURATION
# =============================================================================

CALENDAR_URL = os.environ.get("CALENDAR_URL", "")

CALENDAR_TIMEOUT_SECONDS = float(os.environ.get("CALENDAR_TIMEOUT_SECONDS", "8"))
CALENDAR_RETRY_ATTEMPTS = int(os.environ.get("CALENDAR_RETRY_ATTEMPTS", "3"))
CALENDAR_RETRY_BASE_DELAY = float(os.environ.get("CALENDAR_RETRY_BASE_DELAY", "1.0"))
CALENDAR_RETRY_BACKOFF = float(os.environ.get("CALENDAR_RETRY_BACKOFF", "2"))

# Freshness windows: the timer reads through the fast path, stats/API through the slow one
CALENDAR_FAST_MAX_AGE_SECONDS = float(os.environ.get("CALENDAR_FAST_MAX_AGE_SECONDS", "60"))
CALENDAR_REFRESH_MAX_AGE_SECONDS = float(
    os.environ.get("CALENDAR_REFRESH_MAX_AGE_SECONDS", "300")
)

MAX_CALENDAR_EVENTS = int(os.environ.get("MAX_CALENDAR_EVENTS", "100"))

# Title keywords (matched case-insensitively) -> queue name
QUEUE_KEYWORDS = {"chat": "chats", "ticket": "tickets"}
QUEUES = ("chats", "tickets")

# =============================================================================
# TIMER CONFIGURATION
# =============================================================================

TIMER_TICK_SECONDS = float(os.environ.get("TIMER_TICK_SECONDS", "1"))
PRE_SHIFT_WARNING_MINUTES = 5
LATE_LOGIN_GRACE_MINUTES = int(os.environ.get("LATE_LOGIN_GRACE_MINUTES", "10"))
NO_SHIFTS_TEXT = "No shifts"

# =============================================================================
# ROLLOVER / BACKGROUND WATCHERS
# =============================================================================

ROLLOVER_CHECK_SECONDS = float(os.environ.get("ROLLOVER_CHECK_SECONDS", "60"))
SCHEDULE_REFRESH_SECONDS = float(os.environ.get("SCHEDULE_REFRESH_SECONDS", "60"))
HOURS_SNAPSHOT_RETENTION_DAYS = 14

# =============================================================================
# STORE READ CACHE
# =============================================================================

CONFIG_CACHE_TTL_SECONDS = 5.0
COUNTS_CACHE_TTL_SECONDS = 1.0  # shorter for frequently changing data
ACTIVITY_LOG_RETENTION_DAYS = 31

# =============================================================================
# VALIDATION LIMITS
# =============================================================================

MIN_COUNT_VALUE = 0
MAX_COUNT_VALUE = 999
MIN_GOAL_VALUE = 1
MAX_GOAL_VALUE = 100
MIN_WARNING_MINUTES = 1
MAX_WARNING_MINUTES = 60
MAX_URL_LENGTH = 2000
MAX_ERROR_LOG_SIZE = 100

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

# =============================================================================
# USER CONFIG DEFAULTS
# =============================================================================

DEFAULT_USER_CONFIG = {
    "calendar_url": CALENDAR_URL,
    "goal_chats_per_hour": 10,
    "goal_tickets_per_hour": 12,
    "pre_shift_warning_minutes": PRE_SHIFT_WARNING_MINUTES,
    "show_shift_reminders": True,
    "week_starts_on": "Mon",
}

# =============================================================================
# TIMEZONE
# =============================================================================

# "local", "UTC", an IANA name, or a fixed offset such as "+02:00"
TOOLBAR_TIMEZONE = os.environ.get("TOOLBAR_TIMEZONE", "local")

# =============================================================================
# API CONFIGURATION
# =============================================================================

TOOLBAR_API_KEY = os.environ.get("TOOLBAR_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
API_VERSION = "1.0.0"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
