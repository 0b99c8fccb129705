"""
Calendar feed fetching with a freshness-windowed cache.

Network problems never reach the caller: after retries the last good cache
(even if stale) is returned, or an empty list when nothing was ever fetched.
"""

import asyncio
import logging
import time
from datetime import date, timedelta, tzinfo
from typing import Awaitable, Callable

import httpx

from core.config import (
    CALENDAR_FAST_MAX_AGE_SECONDS,
    CALENDAR_RETRY_ATTEMPTS,
    CALENDAR_RETRY_BACKOFF,
    CALENDAR_RETRY_BASE_DELAY,
    CALENDAR_TIMEOUT_SECONDS,
    MAX_CALENDAR_EVENTS,
)
from core.errors import CalendarFetchError, ErrorCategory
from core.retry import with_retry
from core.timezones import Clock, LocalDayKey, local_day_key, local_midnight, resolve_tz, utc_now
from models.events import ScheduleCache, ShiftEvent
from services.feed_parser import parse_feed

logger = logging.getLogger(__name__)


def _short_url(url: str) -> str:
    """Feed URLs usually embed a private token; keep logs to the prefix."""
    return url[:50] + "..." if len(url) > 50 else url


def should_retry_fetch(error: Exception, attempt: int) -> bool:
    """Retry transient failures; client errors and bad URLs will not improve."""
    if isinstance(error, CalendarFetchError):
        return not error.is_client_error and error.status_code is not None
    if isinstance(error, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return False
    return isinstance(error, httpx.HTTPError)


def select_todays_events(
    events: list[ShiftEvent], today: date, tz: tzinfo, max_events: int = MAX_CALENDAR_EVENTS
) -> list[ShiftEvent]:
    """
    Bound and filter parsed events.

    Events that ended before yesterday are skipped, the rest are sorted and
    capped at ``max_events`` (earliest kept), then restricted to those starting
    on ``today`` in ``tz``.
    """
    cutoff = local_midnight(today - timedelta(days=1), tz)
    recent = sorted((ev for ev in events if ev.end >= cutoff), key=lambda ev: ev.start)
    capped = recent[:max_events]
    return [ev for ev in capped if ev.start.astimezone(tz).date() == today]


class CalendarFetcher:
    """
    Fetches today's shifts from an iCalendar URL.

    Owns the ScheduleCache. One fetch at a time: callers arriving while a fetch
    is in flight get the current cache immediately.
    """

    def __init__(
        self,
        tz: tzinfo | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = CALENDAR_TIMEOUT_SECONDS,
        attempts: int = CALENDAR_RETRY_ATTEMPTS,
        base_delay: float = CALENDAR_RETRY_BASE_DELAY,
        backoff: float = CALENDAR_RETRY_BACKOFF,
        max_events: int = MAX_CALENDAR_EVENTS,
        default_max_age: float = CALENDAR_FAST_MAX_AGE_SECONDS,
        clock: Clock = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.tz = tz or resolve_tz("local")
        self.timeout = timeout
        self.attempts = attempts
        self.base_delay = base_delay
        self.backoff = backoff
        self.max_events = max_events
        self.default_max_age = default_max_age
        self.last_error: str | None = None
        self._client = client
        self._clock = clock
        self._monotonic = monotonic
        self._sleep = sleep
        self._cache: ScheduleCache | None = None
        self._in_flight: asyncio.Task | None = None

    @property
    def cache(self) -> ScheduleCache | None:
        return self._cache

    @property
    def is_fetching(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def today_key(self) -> LocalDayKey:
        return local_day_key(self._clock(), self.tz)

    def cached_events(self, url: str | None = None) -> list[ShiftEvent]:
        """
        Events from the last successful fetch, whatever their age.

        With ``url``, only a cache for that URL and for today counts.
        """
        cache = self._cache
        if cache is None:
            return []
        if url is not None and (cache.url != url or cache.day_key != self.today_key()):
            return []
        return list(cache.events)

    def is_fresh(self, url: str, max_age: float | None = None) -> bool:
        """Cache is usable without a fetch: young enough, same day, same URL."""
        if self._cache is None:
            return False
        window = self.default_max_age if max_age is None else max_age
        age = self._monotonic() - self._cache.fetched_at
        return age < window and self._cache.day_key == self.today_key() and self._cache.url == url

    async def get_events(
        self, url: str | None, *, force: bool = False, max_age: float | None = None
    ) -> list[ShiftEvent]:
        """
        Today's events for ``url``, sorted by start.

        Args:
            url: feed URL; empty/None means "no calendar configured" -> []
            force: skip the freshness check
            max_age: freshness window in seconds (defaults to the fast path)
        """
        if not url:
            return []

        if self.is_fetching:
            return self.cached_events()

        if not force and self.is_fresh(url, max_age):
            return self.cached_events()

        self._in_flight = asyncio.ensure_future(self._refresh(url))
        try:
            return await self._in_flight
        finally:
            self._in_flight = None

    async def _refresh(self, url: str) -> list[ShiftEvent]:
        try:
            text = await with_retry(
                lambda: self._download(url),
                attempts=self.attempts,
                base_delay=self.base_delay,
                backoff=self.backoff,
                should_retry=should_retry_fetch,
                sleep=self._sleep,
            )
        except (CalendarFetchError, httpx.HTTPError) as e:
            self.last_error = str(e)
            logger.warning(
                "Calendar fetch failed, serving %s: %s",
                "stale cache" if self._cache else "no events",
                e,
                extra={"category": ErrorCategory.CALENDAR, "context": {"url": _short_url(url)}},
            )
            return self.cached_events()

        today = self.today_key()
        parsed = parse_feed(text, self.tz)
        todays = select_todays_events(parsed, date.fromisoformat(today), self.tz, self.max_events)

        self._cache = ScheduleCache(
            events=tuple(todays),
            fetched_at=self._monotonic(),
            day_key=today,
            url=url,
        )
        self.last_error = None
        logger.debug("Fetched %d events, %d today", len(parsed), len(todays))
        return list(todays)

    async def _download(self, url: str) -> str:
        if self._client is not None:
            return await self._get(self._client, url)
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await self._get(client, url)

    async def _get(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.get(url, headers={"Cache-Control": "no-cache"}, timeout=self.timeout)
        if not response.is_success:
            raise CalendarFetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
                url=_short_url(url),
            )
        text = response.text
        if not text or not text.strip():
            raise CalendarFetchError("Empty calendar response", url=_short_url(url))
        if "BEGIN:VCALENDAR" not in text.upper():
            raise CalendarFetchError("Response is not a calendar feed", url=_short_url(url))
        return text

    def invalidate(self) -> None:
        """Drop the cache so the next call fetches."""
        self._cache = None

    def cache_status(self) -> dict:
        cache = self._cache
        return {
            "event_count": len(cache.events) if cache else 0,
            "day_key": cache.day_key if cache else None,
            "age_seconds": round(self._monotonic() - cache.fetched_at, 1) if cache else None,
            "is_fetching": self.is_fetching,
            "last_error": self.last_error,
        }

    async def aclose(self) -> None:
        """Cancel an in-flight fetch (closing its connection)."""
        task = self._in_flight
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._in_flight = None
