"""
Toolbar state on top of the key-value store.

Adds short-lived read caches, input sanitization and safe defaults: reads
that hit a store failure are logged and return defaults, writes raise
StoreError to the caller.
"""

import logging
import time
from datetime import tzinfo
from typing import Any, Callable

from core.config import (
    ACTIVITY_LOG_RETENTION_DAYS,
    CONFIG_CACHE_TTL_SECONDS,
    COUNTS_CACHE_TTL_SECONDS,
    HOURS_SNAPSHOT_RETENTION_DAYS,
)
from core.database import KeyValueStore
from core.errors import ErrorCategory, StoreError
from core.timezones import (
    Clock,
    LocalDayKey,
    UtcDayKey,
    local_day_key,
    parse_day_key,
    resolve_tz,
    utc_now,
)
from core.validation import sanitize_config, sanitize_count, validate_queue
from models.events import ScheduledHours
from models.history import DayRecord, LiveCounters
from models.settings import UserConfig

logger = logging.getLogger(__name__)

# Sync tier
KEY_CONFIG = "config"
KEY_COUNTS = "counts"
KEY_ANCHOR = "last_active_day_utc"
KEY_HISTORY = "daily_history"
KEY_HOURS = "scheduled_hours"

# Local tier
KEY_ACTIVITY_LOG = "activity_log"


def _store_failure(operation: str, error: Exception) -> None:
    logger.error(
        "Store %s failed: %s",
        operation,
        error,
        extra={"category": ErrorCategory.STORAGE, "context": {"operation": operation}},
    )


def _keep_newest(mapping: dict, limit: int) -> dict:
    """Keep the ``limit`` largest keys (day keys sort chronologically)."""
    return {key: mapping[key] for key in sorted(mapping)[-limit:]}


class ToolbarStorage:
    """Config, counters, history and snapshots for one toolbar."""

    def __init__(
        self,
        store: KeyValueStore,
        tz: tzinfo | None = None,
        clock: Clock = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.tz = tz or resolve_tz("local")
        self._clock = clock
        self._monotonic = monotonic
        self._config_cache: tuple[float, UserConfig] | None = None
        self._counts_cache: tuple[float, LiveCounters] | None = None

    def invalidate_cache(self) -> None:
        self._config_cache = None
        self._counts_cache = None

    # -------------------------------------------------------------------------
    # Config
    # -------------------------------------------------------------------------

    def get_config(self) -> UserConfig:
        """Sanitized settings; defaults when nothing is stored or the store fails."""
        now = self._monotonic()
        if self._config_cache and now - self._config_cache[0] < CONFIG_CACHE_TTL_SECONDS:
            return self._config_cache[1]

        try:
            raw = self.store.get(KEY_CONFIG, {})
        except StoreError as e:
            _store_failure("get_config", e)
            return sanitize_config({})

        config = sanitize_config(raw)
        self._config_cache = (now, config)
        return config

    def set_config(self, changes: dict[str, Any]) -> UserConfig:
        """Merge ``changes`` over the stored settings and save the sanitized result."""
        current = self.get_config().to_dict()
        current.update(changes)
        config = sanitize_config(current)
        self.store.set(KEY_CONFIG, config.to_dict())
        self._config_cache = None
        return config

    # -------------------------------------------------------------------------
    # Live counters
    # -------------------------------------------------------------------------

    def get_counts(self) -> LiveCounters:
        now = self._monotonic()
        if self._counts_cache and now - self._counts_cache[0] < COUNTS_CACHE_TTL_SECONDS:
            return self._counts_cache[1]

        try:
            raw = self.store.get(KEY_COUNTS, {})
        except StoreError as e:
            _store_failure("get_counts", e)
            return LiveCounters()

        counts = LiveCounters(
            chats=sanitize_count((raw or {}).get("chats", 0)),
            tickets=sanitize_count((raw or {}).get("tickets", 0)),
        )
        self._counts_cache = (now, counts)
        return counts

    def _write_counts(self, counts: LiveCounters) -> None:
        self.store.set(KEY_COUNTS, counts.to_dict())
        self._counts_cache = None

    def set_count(self, queue: str, value: Any) -> int:
        """
        Overwrite one counter (clamped to the allowed range).

        Raises:
            ValueError: unknown queue
            StoreError: write failed
        """
        validate_queue(queue)
        with self.store.transaction():
            self._counts_cache = None
            current = self.get_counts().to_dict()
            current[queue] = sanitize_count(value)
            self._write_counts(LiveCounters(**current))
        return current[queue]

    def inc_count(
        self, queue: str, amount: int = 1, source: str = "unknown", ticket_id: str | None = None
    ) -> int:
        """Add ``amount`` (may be negative) to a counter and log the change."""
        validate_queue(queue)
        with self.store.transaction():
            self._counts_cache = None
            current = self.get_counts().to_dict()
            current[queue] = sanitize_count(current[queue] + amount)
            self._write_counts(LiveCounters(**current))
            self._append_activity(
                {
                    "time": self._clock().isoformat(),
                    "mode": queue,
                    "source": source,
                    "delta": amount,
                    "new_value": current[queue],
                    "ticket_id": ticket_id,
                }
            )
        return current[queue]

    def reset_counts(self) -> None:
        self._write_counts(LiveCounters())

    # -------------------------------------------------------------------------
    # Rollover anchor
    # -------------------------------------------------------------------------

    def get_anchor(self) -> UtcDayKey | None:
        """
        Last active UTC day, or None when unset or unreadable as a day key.

        A corrupt value is logged and reported as absent, so the next rollover
        check re-initializes the anchor. Raises StoreError when the read fails.
        """
        value = self.store.get(KEY_ANCHOR)
        if value is None or value == "":
            return None
        try:
            return UtcDayKey(parse_day_key(value).isoformat())
        except ValueError:
            logger.warning(
                "Ignoring corrupt rollover anchor %r",
                value,
                extra={"category": ErrorCategory.STORAGE, "context": {"key": KEY_ANCHOR}},
            )
            return None

    # -------------------------------------------------------------------------
    # Daily history
    # -------------------------------------------------------------------------

    def get_daily_history(self) -> dict[LocalDayKey, DayRecord]:
        try:
            raw = self.store.get(KEY_HISTORY, {})
        except StoreError as e:
            _store_failure("get_daily_history", e)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {LocalDayKey(key): DayRecord.from_dict(value) for key, value in raw.items()}

    def clear_daily_history(self) -> int:
        """Delete every archived day. Returns how many were removed."""
        with self.store.transaction():
            removed = len(self.store.get(KEY_HISTORY, {}) or {})
            self.store.set(KEY_HISTORY, {})
        logger.info("Cleared %d days of history", removed)
        return removed

    # -------------------------------------------------------------------------
    # Scheduled-hours snapshots
    # -------------------------------------------------------------------------

    def get_hours_snapshots(self) -> dict[LocalDayKey, ScheduledHours]:
        try:
            raw = self.store.get(KEY_HOURS, {}) or {}
        except StoreError as e:
            _store_failure("get_hours_snapshots", e)
            return {}
        snapshots = {}
        for key, value in raw.items():
            record = DayRecord.from_dict(value)
            snapshots[LocalDayKey(key)] = ScheduledHours(
                chat_hours=record.chat_hours, ticket_hours=record.ticket_hours
            )
        return snapshots

    def get_hours_for_day(self, day: str) -> ScheduledHours:
        return self.get_hours_snapshots().get(LocalDayKey(day), ScheduledHours())

    def save_hours_snapshot(self, day: str, hours: ScheduledHours) -> None:
        """Store the scheduled hours for ``day``; only the newest days are kept."""
        with self.store.transaction():
            raw = self.store.get(KEY_HOURS, {}) or {}
            raw[day] = {"chat_hours": hours.chat_hours, "ticket_hours": hours.ticket_hours}
            self.store.set(KEY_HOURS, _keep_newest(raw, HOURS_SNAPSHOT_RETENTION_DAYS))

    # -------------------------------------------------------------------------
    # Activity log (local tier)
    # -------------------------------------------------------------------------

    def _append_activity(self, entry: dict) -> None:
        day = local_day_key(self._clock(), self.tz)
        log = self.store.get(KEY_ACTIVITY_LOG, {}, tier="local") or {}
        log.setdefault(day, []).append(entry)
        self.store.set(KEY_ACTIVITY_LOG, _keep_newest(log, ACTIVITY_LOG_RETENTION_DAYS), tier="local")

    def get_activity_log(self, day: str | None = None) -> list[dict]:
        """Counter changes logged on ``day`` (today by default)."""
        day = day or local_day_key(self._clock(), self.tz)
        try:
            log = self.store.get(KEY_ACTIVITY_LOG, {}, tier="local") or {}
        except StoreError as e:
            _store_failure("get_activity_log", e)
            return []
        return list(log.get(day, []))
