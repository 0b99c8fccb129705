"""
Error types and the in-memory recent-errors log.
"""

import logging
from collections import Counter, deque
from datetime import datetime, timezone

from core.config import MAX_ERROR_LOG_SIZE


class ErrorCategory:
    """Error category constants (attached to log records as ``category``)."""

    NETWORK = "network"
    STORAGE = "storage"
    CALENDAR = "calendar"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class ToolbarError(Exception):
    """Base error carrying the failing operation and the key it touched."""

    def __init__(self, message: str, operation: str | None = None, key: str | None = None):
        self.operation = operation
        self.key = key
        context = ", ".join(
            f"{name}={value}" for name, value in (("operation", operation), ("key", key)) if value
        )
        super().__init__(f"{message} ({context})" if context else message)


class StoreError(ToolbarError):
    """Read or write against the persistent store failed."""


class CalendarFetchError(ToolbarError):
    """Calendar feed could not be retrieved."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        self.status_code = status_code
        super().__init__(message, operation="fetch_calendar", key=url)

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500


class RecentErrors(logging.Handler):
    """
    Keep the last N warning-or-worse log records for health reporting.

    Records may carry ``extra={"category": ..., "context": {...}}``.
    """

    def __init__(self, capacity: int = MAX_ERROR_LOG_SIZE):
        super().__init__(level=logging.WARNING)
        self._entries: deque[dict] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        self._entries.append(
            {
                "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
                "level": record.levelname.lower(),
                "category": getattr(record, "category", ErrorCategory.UNKNOWN),
                "message": record.getMessage(),
                "logger": record.name,
                "context": getattr(record, "context", {}),
            }
        )

    def entries(self) -> list[dict]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict:
        """Counts by level and category plus the ten most recent entries."""
        entries = self.entries()
        return {
            "total": len(entries),
            "by_level": dict(Counter(e["level"] for e in entries)),
            "by_category": dict(Counter(e["category"] for e in entries)),
            "recent": entries[-10:],
        }


def install_recent_errors(logger_name: str = "", capacity: int = MAX_ERROR_LOG_SIZE) -> RecentErrors:
    """Attach a new RecentErrors handler to a logger (root by default) and return it."""
    handler = RecentErrors(capacity)
    logging.getLogger(logger_name).addHandler(handler)
    return handler


def remove_recent_errors(handler: RecentErrors, logger_name: str = "") -> None:
    logging.getLogger(logger_name).removeHandler(handler)
