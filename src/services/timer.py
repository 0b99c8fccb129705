"""
Per-second shift countdown and reminders.

Each tick re-resolves the shift state from the cached calendar, publishes a
TimerUpdate on the event bus and fires start / late-login / end reminders at
most once per shift instance. A stale cache is refreshed in the background so
a slow or unreachable feed never holds up the countdown.
"""

import asyncio
import logging
import math
import time
from datetime import datetime, timedelta
from typing import Callable

from core.config import (
    CALENDAR_FAST_MAX_AGE_SECONDS,
    LATE_LOGIN_GRACE_MINUTES,
    NO_SHIFTS_TEXT,
    TIMER_TICK_SECONDS,
)
from core.event_bus import EventBus, Events
from core.errors import ErrorCategory
from core.timezones import Clock, utc_now
from models.events import ReminderKind, ShiftEvent, ShiftReminder, ShiftState, TimerUpdate
from models.settings import UserConfig
from services.calendar import CalendarFetcher
from services.goals import round_half_up
from services.scheduler import PeriodicTask
from services.shifts import infer_mode, resolve

logger = logging.getLogger(__name__)

ConfigProvider = Callable[[], UserConfig]

# Dedupe keys kept per reminder family
_MAX_FIRED_KEYS = 200


def format_mmss(seconds: float) -> str:
    """Seconds as ``MM:SS`` (minutes may exceed 99); negatives show 00:00."""
    total = max(0, math.floor(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def build_update(state: ShiftState, now: datetime) -> TimerUpdate:
    """Pick the UI mode: live > wait > done."""
    if state.active_shift:
        return TimerUpdate(
            ui_mode="live",
            ui_text=format_mmss((state.active_shift.end - now).total_seconds()),
            intended_mode=infer_mode(state.active_shift),
            at=now,
        )
    if state.next_shift:
        return TimerUpdate(
            ui_mode="wait",
            ui_text=format_mmss((state.next_shift.start - now).total_seconds()),
            intended_mode=infer_mode(state.next_shift),
            at=now,
        )
    return TimerUpdate(ui_mode="done", ui_text=NO_SHIFTS_TEXT, intended_mode=None, at=now)


def _whole_minutes(delta: timedelta) -> int:
    return round_half_up(delta.total_seconds() / 60)


class ShiftTimerLoop:
    """
    Drives the countdown.

    Args:
        fetcher: source of today's events (cache read each tick, refreshed in the background)
        bus: receives ``timer:update`` and ``shift:reminder``
        config_provider: returns the current UserConfig (URL, warning minutes)
        refresh_cooldown: minimum seconds between background refreshes,
            defaults to ``max_age``
    """

    def __init__(
        self,
        fetcher: CalendarFetcher,
        bus: EventBus,
        config_provider: ConfigProvider = UserConfig,
        *,
        clock: Clock = utc_now,
        tick_seconds: float = TIMER_TICK_SECONDS,
        grace_minutes: float = LATE_LOGIN_GRACE_MINUTES,
        max_age: float = CALENDAR_FAST_MAX_AGE_SECONDS,
        refresh_cooldown: float | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.fetcher = fetcher
        self.bus = bus
        self.tick_seconds = tick_seconds
        self.grace = timedelta(minutes=grace_minutes)
        self.max_age = max_age
        self.refresh_cooldown = max_age if refresh_cooldown is None else refresh_cooldown
        self.latest: TimerUpdate | None = None
        self._config = config_provider
        self._clock = clock
        self._start_keys: dict[str, None] = {}
        self._end_keys: dict[str, None] = {}
        self._task: PeriodicTask | None = None
        self._monotonic = monotonic
        self._refresh_task: asyncio.Task | None = None
        self._last_refresh: float | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and self._task.running

    def now(self) -> datetime:
        return self._clock().astimezone(self.fetcher.tz)

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def tick(self) -> TimerUpdate:
        config = self._config()
        self._ensure_refresh(config.calendar_url)
        events = self.fetcher.cached_events(config.calendar_url) if config.calendar_url else []
        now = self.now()
        state = resolve(events, now)

        if config.show_shift_reminders:
            self._fire_reminders(state, now, config.pre_shift_warning_minutes)

        update = build_update(state, now)
        self.latest = update
        self.bus.emit(Events.TIMER_UPDATE, update)
        return update

    def _ensure_refresh(self, url: str) -> None:
        """Start a background fetch when the cache is stale, at most once per cooldown."""
        if not url or self.refreshing or self.fetcher.is_fetching:
            return
        if self.fetcher.is_fresh(url, self.max_age):
            return
        now = self._monotonic()
        if self._last_refresh is not None and now - self._last_refresh < self.refresh_cooldown:
            return
        self._last_refresh = now
        self._refresh_task = asyncio.create_task(self._refresh(url))

    async def _refresh(self, url: str) -> None:
        try:
            await self.fetcher.get_events(url, max_age=self.max_age)
        except Exception:
            logger.exception(
                "Background calendar refresh failed",
                extra={"category": ErrorCategory.CALENDAR},
            )

    def _fire_reminders(self, state: ShiftState, now: datetime, warn_minutes: int) -> None:
        upcoming = state.next_shift
        if upcoming and upcoming.key not in self._start_keys:
            if _whole_minutes(upcoming.start - now) == warn_minutes:
                self._remind("start", upcoming, warn_minutes, self._start_keys)

        active = state.active_shift
        if active:
            since_start = now - active.start
            if active.key not in self._start_keys and timedelta(0) < since_start < self.grace:
                self._remind("late_start", active, _whole_minutes(since_start), self._start_keys)

            if active.key not in self._end_keys and _whole_minutes(active.end - now) == warn_minutes:
                self._remind("end", active, warn_minutes, self._end_keys)

    def _remind(self, kind: ReminderKind, shift: ShiftEvent, minutes: int, fired: dict[str, None]) -> None:
        fired[shift.key] = None
        while len(fired) > _MAX_FIRED_KEYS:
            del fired[next(iter(fired))]

        reminder = ShiftReminder(
            kind=kind,
            queue=infer_mode(shift),
            shift=shift,
            minutes=minutes,
            metadata={"title": shift.title},
        )
        logger.info("Shift reminder %s for '%s' (%d min)", kind, shift.title, minutes)
        self.bus.emit(Events.SHIFT_REMINDER, reminder)

    def start(self) -> None:
        """Begin ticking (first tick runs immediately). No-op when running."""
        if self.running:
            return
        self._task = PeriodicTask("shift-timer", self.tick, self.tick_seconds, immediate=True)
        self._task.start()

    async def stop(self) -> None:
        """Cancel the loop and forget which reminders fired. No-op when stopped."""
        task, self._task = self._task, None
        if task is not None:
            await task.stop()
        refresh, self._refresh_task = self._refresh_task, None
        if refresh is not None and not refresh.done():
            refresh.cancel()
            try:
                await refresh
            except asyncio.CancelledError:
                pass
        self._last_refresh = None
        self._start_keys.clear()
        self._end_keys.clear()
