"""
Composition root for the schedule engine.

Wires the store, calendar fetcher, timer loop, rollover manager and the two
background watchers together. Everything lives on the instance, so several
services (e.g. in tests) never share state.
"""

import logging
from datetime import date, tzinfo
from typing import Any

import httpx

from core.config import (
    CALENDAR_REFRESH_MAX_AGE_SECONDS,
    ROLLOVER_CHECK_SECONDS,
    SCHEDULE_REFRESH_SECONDS,
    TIMER_TICK_SECONDS,
    TOOLBAR_TIMEZONE,
)
from core.database import KeyValueStore
from core.event_bus import EventBus, Events
from core.timezones import Clock, resolve_tz, utc_now
from models.events import FullSchedule, ScheduledHours, ShiftEvent, ShiftState
from models.history import LiveCounters, RolloverResult
from models.settings import Goals
from services.calendar import CalendarFetcher
from services.reports import build_stats
from services.rollover import DailyRolloverManager
from services.scheduler import TaskScheduler
from services.shifts import compute_scheduled_hours, detect_full_schedule, infer_mode, resolve
from services.storage import ToolbarStorage
from services.timer import ShiftTimerLoop

logger = logging.getLogger(__name__)


class ScheduleService:
    """One toolbar's schedule engine."""

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        tz: tzinfo | None = None,
        clock: Clock = utc_now,
        client: httpx.AsyncClient | None = None,
        bus: EventBus | None = None,
        refresh_interval: float = SCHEDULE_REFRESH_SECONDS,
        rollover_interval: float = ROLLOVER_CHECK_SECONDS,
        tick_seconds: float = TIMER_TICK_SECONDS,
    ):
        self.tz = tz or resolve_tz(TOOLBAR_TIMEZONE)
        self.store = store or KeyValueStore()
        self.bus = bus or EventBus()
        self._clock = clock

        self.storage = ToolbarStorage(self.store, self.tz, clock)
        self.fetcher = CalendarFetcher(self.tz, client=client, clock=clock)
        self.rollover = DailyRolloverManager(self.storage, self.tz, clock, bus=self.bus)
        self.timer = ShiftTimerLoop(
            self.fetcher, self.bus, self.storage.get_config, clock=clock, tick_seconds=tick_seconds
        )

        self.scheduler = TaskScheduler()
        self.scheduler.register("schedule-refresh", self.refresh_schedule, refresh_interval, immediate=True)
        self.scheduler.register("midnight-watcher", self.check_rollover, rollover_interval, immediate=True)

    def today(self) -> date:
        return self._clock().astimezone(self.tz).date()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        self.scheduler.start()
        self.timer.start()
        logger.info("Schedule service started (tz=%s)", self.tz)

    async def stop(self) -> None:
        await self.timer.stop()
        await self.scheduler.stop()
        await self.fetcher.aclose()
        logger.info("Schedule service stopped")

    async def close(self) -> None:
        await self.stop()
        self.store.close()

    # -------------------------------------------------------------------------
    # Schedule
    # -------------------------------------------------------------------------

    async def refresh_schedule(self, force: bool = True) -> list[ShiftEvent]:
        """Re-fetch today's events and snapshot today's scheduled hours."""
        config = self.storage.get_config()
        events = await self.fetcher.get_events(config.calendar_url, force=force)

        cache = self.fetcher.cache
        hours = compute_scheduled_hours(events)
        if config.calendar_url and cache is not None and cache.day_key == self.fetcher.today_key():
            self.rollover.record_scheduled_hours(cache.day_key, hours)

        self.bus.emit(
            Events.SCHEDULE_CACHE_REFRESHED,
            {"event_count": len(events), "hours": hours.to_dict()},
        )
        return events

    async def todays_events(self) -> list[ShiftEvent]:
        config = self.storage.get_config()
        return await self.fetcher.get_events(
            config.calendar_url, max_age=CALENDAR_REFRESH_MAX_AGE_SECONDS
        )

    async def get_shift_state(self) -> ShiftState:
        events = await self.todays_events()
        return resolve(events, self._clock().astimezone(self.tz))

    async def get_intended_mode(self) -> str | None:
        state = await self.get_shift_state()
        return infer_mode(state.active_shift)

    async def get_full_schedule(self) -> FullSchedule:
        events = await self.todays_events()
        return detect_full_schedule(events, self._clock().astimezone(self.tz))

    async def get_scheduled_hours(self) -> ScheduledHours:
        return compute_scheduled_hours(await self.todays_events())

    # -------------------------------------------------------------------------
    # Counters & history
    # -------------------------------------------------------------------------

    def get_counts(self) -> LiveCounters:
        return self.storage.get_counts()

    def increment(self, queue: str, amount: int = 1, source: str = "unknown") -> int:
        value = self.storage.inc_count(queue, amount, source=source)
        self.bus.emit(Events.COUNT_UPDATED, {"queue": queue, "value": value, "delta": amount})
        return value

    def set_count(self, queue: str, value: Any) -> int:
        new_value = self.storage.set_count(queue, value)
        self.bus.emit(Events.COUNT_UPDATED, {"queue": queue, "value": new_value})
        return new_value

    def clear_history(self) -> int:
        removed = self.storage.clear_daily_history()
        self.bus.emit(Events.HISTORY_CLEARED, {"removed": removed})
        return removed

    async def get_stats(self, fetch: bool = True) -> dict:
        """Stats summary; with ``fetch=False`` today's hours come from the stored snapshot."""
        config = self.storage.get_config()
        if fetch:
            hours = await self.get_scheduled_hours()
        else:
            hours = self.storage.get_hours_for_day(self.today().isoformat())
        return build_stats(
            self.storage.get_daily_history(),
            self.storage.get_counts(),
            hours,
            Goals.from_config(config),
            self.today(),
            starts_on=config.week_starts_on,
        )

    # -------------------------------------------------------------------------
    # Rollover
    # -------------------------------------------------------------------------

    async def check_rollover(self) -> RolloverResult:
        return await self.rollover.roll_if_needed()

    def status(self) -> dict:
        return {
            "timer_running": self.timer.running,
            "calendar": self.fetcher.cache_status(),
            "tasks": self.scheduler.get_tasks(),
        }
