"""API endpoint tests against a real store and a mocked calendar feed."""

import logging
from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from conftest import FrozenClock, NEW_YORK
from core.database import KeyValueStore
from fixtures.generate_feed import FeedShift, vevent, wrap_calendar
from services.schedule_service import ScheduleService

API_KEY = "test-key"
FEED_URL = "https://calendar.example.com/agent.ics"
UTC = timezone.utc
HEADERS = {"X-API-Key": API_KEY}


def feed_text() -> str:
    return wrap_calendar(
        [
            vevent(FeedShift("Chat Shift", datetime(2025, 11, 7, 14, tzinfo=UTC), datetime(2025, 11, 7, 16, tzinfo=UTC))),
            vevent(FeedShift("Ticket Shift", datetime(2025, 11, 7, 19, tzinfo=UTC), datetime(2025, 11, 7, 21, tzinfo=UTC))),
        ]
    )


def build_service(tmp_path, clock) -> ScheduleService:
    service = ScheduleService(
        KeyValueStore(tmp_path / "api.db"),
        tz=NEW_YORK,
        clock=clock,
        client=httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text=feed_text()))
        ),
        refresh_interval=3600,
        rollover_interval=3600,
        tick_seconds=3600,
    )
    service.storage.set_config({"calendar_url": FEED_URL})
    return service


@pytest.fixture
def api_clock():
    return FrozenClock(datetime(2025, 11, 7, 10, 0, tzinfo=NEW_YORK))


@pytest.fixture
def client(tmp_path, api_clock, monkeypatch):
    monkeypatch.setattr("core.config.TOOLBAR_API_KEY", API_KEY)
    services = []

    def factory():
        service = build_service(tmp_path, api_clock)
        services.append(service)
        return service

    with TestClient(create_app(factory)) as test_client:
        test_client.service = services[0]
        yield test_client


def request_rows(service):
    return service.store.connection.execute(
        "SELECT endpoint, status_code, error_code, archived_day FROM api_requests ORDER BY id"
    ).fetchall()


class TestHealth:
    def test_healthy(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["store_available"] is True
        assert body["calendar_configured"] is True
        assert body["timer_running"] is True

    def test_unhealthy_when_store_is_gone(self, client):
        client.service.store.close()
        response = client.get("/health")
        assert response.status_code == 503
        assert response.json()["store_available"] is False

    def test_reports_warnings_seen_by_this_app(self, client):
        handler = client.app.state.recent_errors
        logging.getLogger("services.calendar").warning("feed went away")

        body = client.get("/health").json()

        assert any(e["message"] == "feed went away" for e in handler.entries())
        assert body["recent_errors"]["warning"] >= 1

    def test_error_log_belongs_to_one_app(self, tmp_path, api_clock, monkeypatch):
        monkeypatch.setattr("core.config.TOOLBAR_API_KEY", API_KEY)
        app = create_app(lambda: build_service(tmp_path, api_clock))
        with TestClient(app):
            handler = app.state.recent_errors
            assert handler in logging.getLogger().handlers
        assert handler not in logging.getLogger().handlers


class TestAuth:
    def test_wrong_key_is_rejected(self, client):
        response = client.post("/v1/counts/chats/increment", json={}, headers={"X-API-Key": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "UNAUTHORIZED"

    def test_missing_server_key(self, client, monkeypatch):
        monkeypatch.setattr("core.config.TOOLBAR_API_KEY", "")
        response = client.post("/v1/rollover/check", headers=HEADERS)
        assert response.status_code == 500


class TestSchedule:
    def test_state(self, client):
        body = client.get("/v1/schedule/state").json()
        assert body["active_shift"]["title"] == "Chat Shift"
        assert body["active_shift"]["queue"] == "chats"
        assert body["next_shift"]["queue"] == "tickets"
        assert body["intended_mode"] == "chats"

    def test_today(self, client):
        body = client.get("/v1/schedule/today").json()
        assert body["day"] == "2025-11-07"
        assert [s["title"] for s in body["shifts"]] == ["Chat Shift", "Ticket Shift"]
        assert body["hours"]["total_hours"] == 4.0

    def test_refresh_requires_key_and_logs(self, client):
        assert client.post("/v1/schedule/refresh", headers={"X-API-Key": "nope"}).status_code == 401
        response = client.post("/v1/schedule/refresh", headers=HEADERS)
        assert response.status_code == 200
        assert request_rows(client.service)[-1][:2] == ("/v1/schedule/refresh", 200)


class TestCounts:
    def test_increment_and_set(self, client):
        response = client.post("/v1/counts/chats/increment", json={"amount": 3}, headers=HEADERS)
        assert response.json() == {"chats": 3, "tickets": 0, "total": 3}

        response = client.put("/v1/counts/tickets", json={"value": 5000}, headers=HEADERS)
        assert response.json()["tickets"] == 999

        assert client.get("/v1/counts").json()["total"] == 1002

    def test_unknown_queue(self, client):
        response = client.post("/v1/counts/emails/increment", json={}, headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "INVALID_REQUEST"
        assert request_rows(client.service)[-1][1:3] == (404, "INVALID_REQUEST")

    def test_amount_is_validated(self, client):
        response = client.post("/v1/counts/chats/increment", json={"amount": 5000}, headers=HEADERS)
        assert response.status_code == 422


class TestRolloverAndHistory:
    def test_force_archive_and_clear(self, client):
        client.post("/v1/counts/chats/increment", json={"amount": 12}, headers=HEADERS)

        response = client.post("/v1/rollover/force", headers=HEADERS)
        body = response.json()
        assert body["action"] == "forced"
        assert body["archived_day"] == "2025-11-07"
        assert body["record"]["chats"] == 12
        assert request_rows(client.service)[-1][3] == "2025-11-07"

        assert client.get("/v1/counts").json()["total"] == 0
        history = client.get("/v1/history").json()["days"]
        assert history["2025-11-07"]["chats"] == 12

        response = client.delete("/v1/history", headers=HEADERS)
        assert response.json() == {"removed": 1}
        assert client.get("/v1/history").json()["days"] == {}

    def test_check_is_a_no_op_on_the_same_day(self, client):
        client.post("/v1/rollover/check", headers=HEADERS)
        body = client.post("/v1/rollover/check", headers=HEADERS).json()
        assert body["action"] == "unchanged"

    def test_archive_only_keeps_counters(self, client):
        client.post("/v1/counts/tickets/increment", json={"amount": 4}, headers=HEADERS)
        body = client.post("/v1/rollover/archive-only", headers=HEADERS).json()
        assert body["action"] == "archived"
        assert client.get("/v1/counts").json()["tickets"] == 4

    def test_corrupt_anchor_is_repaired(self, client):
        client.service.store.set("last_active_day_utc", "yesterday")
        response = client.post("/v1/rollover/check", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["active_day_utc"] == "2025-11-07"
        assert client.service.store.get("last_active_day_utc") == "2025-11-07"

    def test_failed_rollover_is_503(self, client):
        client.service.store.close()
        response = client.post("/v1/rollover/check", headers=HEADERS)
        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "STORE_UNAVAILABLE"


class TestStats:
    def test_stats(self, client):
        client.post("/v1/counts/chats/increment", json={"amount": 20}, headers=HEADERS)
        client.post("/v1/counts/tickets/increment", json={"amount": 24}, headers=HEADERS)
        body = client.get("/v1/stats").json()
        assert body["day"] == "2025-11-07"
        assert body["today"]["chats_pct"] == 100
        assert body["today"]["tickets_pct"] == 100
        assert body["streak_days"] == 1
        assert len(body["week"]["rows"]) == 7
