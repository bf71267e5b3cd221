"""Tests for API routes."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlsplit

from fastapi.testclient import TestClient

from calhub.calendar.setup import SetupResult
from calhub.core.errors import AuthExpired, SyncError, SyncStep
from calhub.core.result import Err, Ok
from calhub.models import CalendarConfig, CalendarEvent, CalendarType, EventSource
from calhub.routes import auth as auth_routes
from calhub.routes import calendars as calendar_routes

START = datetime(2026, 3, 2, 9, tzinfo=UTC)


def save_calendars(ctx, *configs: CalendarConfig):
    assert ctx.config_store.save(list(configs)) == Ok(None)


def config(calendar_id: str, enabled: bool = True) -> CalendarConfig:
    return CalendarConfig(
        id=calendar_id,
        type=CalendarType.GOOGLE,
        name=calendar_id.title(),
        enabled=enabled,
        provider_account_id="a@example.com",
        provider_calendar_id=calendar_id,
    )


def cached_event(event_id: str, calendar_id: str) -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        calendar_id=calendar_id,
        title=event_id.title(),
        start_time=START,
        end_time=START + timedelta(hours=1),
        source=EventSource(type=CalendarType.GOOGLE, calendar_name=calendar_id),
    )


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Test the health endpoint returns OK."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuthRoutes:
    """Tests for Google account connection routes."""

    def test_start_redirects_to_consent(self, client: TestClient):
        response = client.get("/auth/google/start", follow_redirects=False)

        assert response.status_code == 303
        location = urlsplit(response.headers["location"])
        assert location.netloc == "accounts.google.com"
        query = parse_qs(location.query)
        assert query["state"] == [response.cookies["oauth_state"]]
        assert response.cookies["oauth_code_verifier"]

    def test_callback_connects_account(self, client: TestClient, ctx, monkeypatch):
        connect = AsyncMock(return_value=Ok(SetupResult(added_count=2, account_id="a@example.com")))
        monkeypatch.setattr(auth_routes, "connect_google_account", connect)
        client.cookies.set("oauth_state", "state-1")
        client.cookies.set("oauth_code_verifier", "verifier-1")

        response = client.get("/auth/google/callback", params={"code": "code-1", "state": "state-1"})

        assert response.status_code == 200
        assert response.json() == {"account": "a@example.com", "addedCount": 2}
        connect.assert_awaited_once_with(ctx, "code-1", "verifier-1")

    def test_callback_state_mismatch(self, client: TestClient):
        client.cookies.set("oauth_state", "state-1")
        client.cookies.set("oauth_code_verifier", "verifier-1")

        response = client.get("/auth/google/callback", params={"code": "code-1", "state": "forged"})

        assert response.status_code == 400

    def test_callback_denied(self, client: TestClient):
        response = client.get("/auth/google/callback", params={"error": "access_denied"})
        assert response.status_code == 400

    def test_callback_expired_auth_is_401(self, client: TestClient, monkeypatch):
        error = SyncError(SyncStep.LIST_CALENDARS, AuthExpired("a@example.com", "reauthorization required"), "Failed")
        monkeypatch.setattr(auth_routes, "connect_google_account", AsyncMock(return_value=Err(error)))
        client.cookies.set("oauth_state", "state-1")
        client.cookies.set("oauth_code_verifier", "verifier-1")

        response = client.get("/auth/google/callback", params={"code": "code-1", "state": "state-1"})

        assert response.status_code == 401
        assert response.json()["detail"]["step"] == "list_calendars"

    def test_disconnect(self, client: TestClient, ctx, tokens):
        ctx.token_store.save("a@example.com", tokens)
        save_calendars(ctx, config("primary"))

        response = client.delete("/auth/google/a@example.com")

        assert response.json() == {"account": "a@example.com", "removedCount": 1}


class TestCalendarRoutes:
    """Tests for calendar configuration routes."""

    def test_list_empty(self, client: TestClient):
        response = client.get("/calendars")
        assert response.status_code == 200
        assert response.json() == []

    def test_list_uses_camel_case(self, client: TestClient, ctx):
        save_calendars(ctx, config("primary"))

        data = client.get("/calendars").json()

        assert data[0]["id"] == "primary"
        assert data[0]["providerAccountId"] == "a@example.com"

    def test_patch(self, client: TestClient, ctx):
        save_calendars(ctx, config("primary", enabled=False))

        response = client.patch("/calendars/primary", json={"enabled": True, "color": "#123456"})

        assert response.status_code == 200
        assert response.json()["enabled"] is True
        assert ctx.config_store.find("primary").value.value.color == "#123456"

    def test_patch_not_found(self, client: TestClient):
        response = client.patch("/calendars/missing", json={"enabled": True})
        assert response.status_code == 404

    def test_delete(self, client: TestClient, ctx):
        save_calendars(ctx, config("primary"), config("team"))

        assert client.delete("/calendars/team").status_code == 200
        assert client.delete("/calendars/team").status_code == 404
        assert [c.id for c in ctx.config_store.load().value] == ["primary"]

    def test_add_ical_invalid_url(self, client: TestClient):
        response = client.post("/calendars/ical", json={"url": "ftp://example.com/x.ics"})
        assert response.status_code == 400

    def test_add_ical(self, client: TestClient, monkeypatch):
        added = CalendarConfig(
            id="ical-url-x", type=CalendarType.ICAL, name="X", enabled=True, ical_url="https://example.com/x.ics"
        )
        monkeypatch.setattr(calendar_routes, "add_ical_calendar", AsyncMock(return_value=Ok(added)))

        response = client.post("/calendars/ical", json={"url": "https://example.com/x.ics"})

        assert response.status_code == 201
        assert response.json()["icalUrl"] == "https://example.com/x.ics"


class TestEventRoutes:
    """Tests for cached event routes."""

    def test_events_of_enabled_calendars(self, client: TestClient, ctx):
        save_calendars(ctx, config("primary"), config("team", enabled=False))
        ctx.event_cache.replace_calendar_events("primary", [cached_event("standup", "primary")])
        ctx.event_cache.replace_calendar_events("team", [cached_event("retro", "team")])

        response = client.get("/events", params={"start": "2026-03-02T00:00:00Z", "end": "2026-03-03T00:00:00Z"})

        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == ["standup"]

    def test_start_after_end(self, client: TestClient):
        response = client.get("/events", params={"start": "2026-03-03T00:00:00Z", "end": "2026-03-02T00:00:00Z"})
        assert response.status_code == 400

    def test_missing_range(self, client: TestClient):
        assert client.get("/events").status_code == 422


class TestSetupRoutes:
    """Tests for first-run setup routes."""

    def test_status_on_first_launch(self, client: TestClient):
        response = client.get("/setup/status")

        assert response.status_code == 200
        assert response.json() == {
            "isComplete": False,
            "currentProvider": None,
            "hasApiKey": False,
            "calendarCount": 0,
            "connectedAccounts": [],
        }

    def test_save_llm_settings(self, client: TestClient):
        response = client.put("/setup/llm", json={"provider": "claude", "apiKey": "sk-ant-1"})

        assert response.status_code == 204
        status = client.get("/setup/status").json()
        assert status["currentProvider"] == "claude"
        assert status["isComplete"] is True

    def test_existing_key_conflicts(self, client: TestClient):
        client.put("/setup/llm", json={"provider": "openai", "apiKey": "sk-1"})

        assert client.put("/setup/llm", json={"provider": "openai", "apiKey": "sk-2"}).status_code == 409
        assert client.put(
            "/setup/llm", json={"provider": "openai", "apiKey": "sk-2", "overwriteExisting": True}
        ).status_code == 204

    def test_unknown_provider(self, client: TestClient):
        assert client.put("/setup/llm", json={"provider": "mystery"}).status_code == 422


class TestSyncRoutes:
    """Tests for the sync trigger."""

    def test_sync_now_without_calendars(self, client: TestClient):
        response = client.post("/sync/now")
        assert response.status_code == 200
        assert response.json() == {"success": True, "synced": {}, "errors": []}

    def test_sync_now_reports_failures(self, client: TestClient, ctx):
        save_calendars(ctx, config("primary"))

        data = client.post("/sync/now").json()

        assert data["success"] is False
        assert data["errors"] == [{"calendarId": "primary", "step": "load_tokens", "message": "No stored tokens for a@example.com"}]
