"""Shared test fixtures."""

import base64
import json
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import httplib2
import pytest
from fastapi.testclient import TestClient
from googleapiclient.errors import HttpError

from calhub.core.config import Settings
from calhub.core.context import CalendarContext, create_context, get_context
from calhub.core.database import Database, create_database_engine, run_migrations
from calhub.core.result import Ok
from calhub.crypto.encryption import EncryptionKey, import_key
from calhub.main import app
from calhub.models import OAuthTokens

TEST_KEY = base64.b64encode(bytes(range(32))).decode("ascii")
OTHER_KEY = base64.b64encode(bytes(range(32, 64))).decode("ascii")


def make_id_token(claims: dict) -> str:
    """Unsigned JWT carrying ``claims``, shaped like a token endpoint ID token."""

    def segment(data: bytes) -> str:
        return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")

    header = segment(json.dumps({"alg": "RS256", "typ": "JWT"}).encode())
    payload = segment(json.dumps(claims).encode())
    return f"{header}.{payload}.{segment(b'signature')}"


def google_service(calendar_pages: list[dict] | None = None, event_pages: list[dict] | None = None) -> MagicMock:
    """Mock Calendar API service returning the given response pages in order."""
    service = MagicMock()
    if calendar_pages is not None:
        service.calendarList.return_value.list.return_value.execute.side_effect = calendar_pages
    if event_pages is not None:
        service.events.return_value.list.return_value.execute.side_effect = event_pages
    return service


@pytest.fixture(name="test_settings")
def settings_fixture() -> Settings:
    """Settings with a known key and OAuth client, independent of the environment."""
    return Settings(
        encryption_key=TEST_KEY,
        google_client_id="client-id",
        google_client_secret="client-secret",
        google_redirect_uri="http://localhost:8000/auth/google/callback",
        provider_timeout_seconds=5.0,
        sync_past_days=7,
        sync_future_days=7,
    )


@pytest.fixture(name="database")
def database_fixture():
    """Create a migrated in-memory SQLite database for testing."""
    engine = create_database_engine("sqlite://")
    assert run_migrations(engine).is_ok()
    database = Database(engine)
    yield database
    database.close()


@pytest.fixture(name="key")
def key_fixture() -> EncryptionKey:
    return import_key(TEST_KEY).value


@pytest.fixture(name="ctx")
def ctx_fixture(database: Database, test_settings: Settings) -> CalendarContext:
    """Calendar context over the test database."""
    result = create_context(database, test_settings)
    assert isinstance(result, Ok)
    return result.value


@pytest.fixture(name="client")
def client_fixture(ctx: CalendarContext):
    """Create a test client bound to the test context."""
    app.dependency_overrides[get_context] = lambda: ctx
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="tokens")
def tokens_fixture() -> OAuthTokens:
    """Token set valid for another hour."""
    return OAuthTokens(
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=datetime.now(UTC) + timedelta(hours=1),
    )


@pytest.fixture(name="expired_tokens")
def expired_tokens_fixture() -> OAuthTokens:
    return OAuthTokens(
        access_token="access-old",
        refresh_token="refresh-1",
        expires_at=datetime.now(UTC) - timedelta(minutes=1),
    )


def http_error(status: int, message: str = "error") -> HttpError:
    """HttpError as raised by googleapiclient for a response with ``status``."""
    content = json.dumps({"error": {"code": status, "message": message}}).encode()
    return HttpError(httplib2.Response({"status": status}), content)
