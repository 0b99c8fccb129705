"""
Daily rollover of live counters into the day history.

The anchor (``last_active_day_utc``) decides which day the live counters belong
to. A change of UTC day archives the counters under the *local* day of the old
anchor and starts the new day from zero.

Rollovers are serialized twice: an asyncio.Lock for callers in this process,
and a ``BEGIN IMMEDIATE`` transaction that re-reads the anchor before writing,
so a second watcher (another process on the same database) sees the advanced
anchor and does nothing.
"""

import asyncio
import logging
from datetime import tzinfo

from core.errors import ErrorCategory, StoreError
from core.event_bus import EventBus, Events
from core.timezones import (
    Clock,
    LocalDayKey,
    UtcDayKey,
    local_day_key,
    resolve_tz,
    utc_day_key,
    utc_key_to_local_key,
    utc_now,
)
from models.events import ScheduledHours
from models.history import DayRecord, LiveCounters, RolloverResult
from services.storage import KEY_ANCHOR, KEY_COUNTS, KEY_HISTORY, KEY_HOURS, ToolbarStorage

logger = logging.getLogger(__name__)


class DailyRolloverManager:
    """Owns the rollover anchor; the only writer of daily history."""

    def __init__(
        self,
        storage: ToolbarStorage,
        tz: tzinfo | None = None,
        clock: Clock = utc_now,
        bus: EventBus | None = None,
    ):
        self.storage = storage
        self.tz = tz or resolve_tz("local")
        self.bus = bus
        self._clock = clock
        self._lock = asyncio.Lock()

    def utc_day_key(self) -> UtcDayKey:
        return utc_day_key(self._clock())

    def local_day_key(self) -> LocalDayKey:
        return local_day_key(self._clock(), self.tz)

    def utc_key_to_local_key(self, key: UtcDayKey) -> LocalDayKey:
        return utc_key_to_local_key(key, self.tz)

    def record_scheduled_hours(self, day: str, hours: ScheduledHours) -> bool:
        """Snapshot a day's scheduled hours for later archival. False if the write failed."""
        try:
            self.storage.save_hours_snapshot(day, hours)
        except StoreError as e:
            logger.error(
                "Could not save hours snapshot: %s",
                e,
                extra={"category": ErrorCategory.STORAGE, "context": {"day": day}},
            )
            return False
        return True

    async def roll_if_needed(self) -> RolloverResult:
        """
        Archive and reset when the UTC day has changed since the anchor.

        Safe to call any number of times: at most one archive per UTC day.
        """
        async with self._lock:
            return self._guarded("roll_if_needed", self._roll_if_needed)

    async def force_new_day_reset(self) -> RolloverResult:
        """
        Archive the live counters under the anchor's local day, zero them and
        move the anchor to today, whether or not the day changed.

        Calling it twice on the same day overwrites that day's record with
        zeros on the second call.
        """
        async with self._lock:
            return self._guarded("force_new_day_reset", self._force_reset)

    async def archive_only(self) -> RolloverResult:
        """Write the current counters into history; counters and anchor stay."""
        async with self._lock:
            return self._guarded("archive_only", self._archive_only)

    def _guarded(self, operation: str, fn) -> RolloverResult:
        try:
            result = fn()
        except StoreError as e:
            logger.error(
                "Rollover %s failed: %s",
                operation,
                e,
                extra={"category": ErrorCategory.STORAGE, "context": {"operation": operation}},
            )
            return RolloverResult(action="failed", error=str(e))
        finally:
            self.storage.invalidate_cache()

        if result.action in ("rolled", "forced"):
            logger.info(
                "New day: archived %s as %s, now active=%s",
                result.archived_day,
                result.record.to_dict() if result.record else None,
                result.active_day_utc,
            )
            if self.bus is not None:
                self.bus.emit(Events.DAILY_RESET, result)
        return result

    def _roll_if_needed(self) -> RolloverResult:
        today = self.utc_day_key()
        store = self.storage.store
        with store.transaction():
            anchor = self.storage.get_anchor()

            if anchor is None:
                # First run: current counters become today's baseline
                counts = LiveCounters.from_dict(store.get(KEY_COUNTS, {}))
                store.set_many({KEY_ANCHOR: today, KEY_COUNTS: counts.to_dict()})
                return RolloverResult(action="initialized", active_day_utc=today)

            if anchor == today:
                return RolloverResult(action="unchanged", active_day_utc=today)

            archived_day, record = self._archive(anchor)
            store.set_many({KEY_COUNTS: LiveCounters().to_dict(), KEY_ANCHOR: today})
        return RolloverResult(
            action="rolled", active_day_utc=today, archived_day=archived_day, record=record
        )

    def _force_reset(self) -> RolloverResult:
        today = self.utc_day_key()
        store = self.storage.store
        with store.transaction():
            anchor = self.storage.get_anchor() or today
            archived_day, record = self._archive(anchor)
            store.set_many({KEY_COUNTS: LiveCounters().to_dict(), KEY_ANCHOR: today})
        return RolloverResult(
            action="forced", active_day_utc=today, archived_day=archived_day, record=record
        )

    def _archive_only(self) -> RolloverResult:
        store = self.storage.store
        with store.transaction():
            anchor = self.storage.get_anchor() or self.utc_day_key()
            archived_day, record = self._archive(anchor)
        logger.info("Archived %s without reset", archived_day)
        return RolloverResult(
            action="archived", active_day_utc=anchor, archived_day=archived_day, record=record
        )

    def _archive(self, anchor: UtcDayKey) -> tuple[LocalDayKey, DayRecord]:
        """Write counters plus that day's hours snapshot into history. Caller holds the transaction."""
        store = self.storage.store
        archived_day = self.utc_key_to_local_key(anchor)

        counts = LiveCounters.from_dict(store.get(KEY_COUNTS, {}))
        snapshots = store.get(KEY_HOURS, {}) or {}
        hours = DayRecord.from_dict(snapshots.get(archived_day))

        record = DayRecord(
            chats=counts.chats,
            tickets=counts.tickets,
            chat_hours=hours.chat_hours,
            ticket_hours=hours.ticket_hours,
        )
        history = store.get(KEY_HISTORY, {}) or {}
        history[archived_day] = record.to_dict()
        store.set(KEY_HISTORY, history)
        return archived_day, record
