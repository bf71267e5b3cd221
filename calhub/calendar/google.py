"""Google Calendar provider.

The provider never refreshes behind the caller's back: each call first asks
the token lifecycle for a valid token set, then hands the access token to a
blocking fetch that runs in a worker thread. The API client is built with an
access token only, so googleapiclient cannot refresh on its own either.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import build_http

from calhub.calendar.provider import CalendarProvider
from calhub.calendar.tokens import TokenLifecycle
from calhub.core.concurrency import run_blocking
from calhub.core.errors import ApiError, AuthExpired, CalendarError, NetworkError
from calhub.core.result import Err, Ok, Result
from calhub.models import CalendarEvent, CalendarType, EventSource, OAuthTokens, ProviderCalendar, TimeRange

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_NAME = "Unknown"
DEFAULT_EVENT_TITLE = "(no title)"


def _build_service(access_token: str):
    # No refresh on 401: an expired grant must surface as an HttpError
    http = AuthorizedHttp(Credentials(token=access_token), http=build_http(), refresh_status_codes=())
    return build("calendar", "v3", http=http, cache_discovery=False)


def _rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _fetch_calendar_list(access_token: str) -> list[dict]:
    service = _build_service(access_token)
    items: list[dict] = []
    page_token = None
    while True:
        response = service.calendarList().list(pageToken=page_token).execute()
        items.extend(response.get("items", []))
        page_token = response.get("nextPageToken")
        if not page_token:
            return items


def _fetch_events(access_token: str, calendar_id: str, time_range: TimeRange) -> list[dict]:
    service = _build_service(access_token)
    items: list[dict] = []
    page_token = None
    while True:
        response = (
            service.events()
            .list(
                calendarId=calendar_id,
                timeMin=_rfc3339(time_range.start),
                timeMax=_rfc3339(time_range.end),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            )
            .execute()
        )
        items.extend(response.get("items", []))
        page_token = response.get("nextPageToken")
        if not page_token:
            return items


def parse_event_time(value: dict) -> tuple[datetime, bool]:
    """Parse a Google ``start``/``end`` object. Returns (time, is_date_only).

    Date-only values become midnight UTC of that date.
    """
    if date_time := value.get("dateTime"):
        parsed = datetime.fromisoformat(date_time.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed, False
    return datetime.strptime(value["date"], "%Y-%m-%d").replace(tzinfo=UTC), True


def to_provider_calendar(item: dict) -> ProviderCalendar:
    return ProviderCalendar(
        id=item["id"],
        name=item.get("summary") or DEFAULT_CALENDAR_NAME,
        is_primary=bool(item.get("primary", False)),
        color=item.get("backgroundColor"),
    )


def to_calendar_event(item: dict, calendar_id: str, account_id: str) -> CalendarEvent:
    start_time, is_all_day = parse_event_time(item["start"])
    end_time, _ = parse_event_time(item["end"])
    return CalendarEvent(
        id=item["id"],
        calendar_id=calendar_id,
        title=item.get("summary") or DEFAULT_EVENT_TITLE,
        start_time=start_time,
        end_time=end_time,
        is_all_day=is_all_day,
        location=item.get("location"),
        description=item.get("description"),
        source=EventSource(type=CalendarType.GOOGLE, calendar_name="", account_id=account_id),
    )


def map_google_error(account_id: str, e: Exception) -> CalendarError:
    if isinstance(e, HttpError):
        status = e.resp.status
        if status in (401, 403):
            return AuthExpired(account=account_id, reason="reauthorization required")
        return ApiError(message=e.reason or str(e), status_code=status)
    if isinstance(e, RefreshError):
        return AuthExpired(account=account_id, reason="reauthorization required")
    if isinstance(e, TimeoutError):
        return NetworkError("Google Calendar request timed out", e)
    return NetworkError(f"Google Calendar request failed: {e}", e)


@dataclass(frozen=True)
class GoogleCalendarProvider(CalendarProvider):
    """Google Calendar for one account.

    ``tokens`` are the token set the provider was created with. A refresh
    does not update them; the refreshed set is persisted by the lifecycle
    and picked up by the next provider built from the token store.
    """
    account_id: str
    tokens: OAuthTokens
    lifecycle: TokenLifecycle
    timeout: float = 20.0

    type = CalendarType.GOOGLE

    async def list_calendars(self) -> Result[list[ProviderCalendar], CalendarError]:
        match await self.lifecycle.ensure_valid(self.account_id, self.tokens):
            case Err() as failure:
                return failure
            case Ok(fresh):
                pass

        try:
            items = await run_blocking(_fetch_calendar_list, fresh.access_token, timeout=self.timeout)
        except (HttpError, RefreshError, TimeoutError, OSError, httplib2.HttpLib2Error, TransportError) as e:
            error = map_google_error(self.account_id, e)
            logger.error(f"Failed to list calendars for {self.account_id}: {error}")
            return Err(error)

        return Ok([to_provider_calendar(item) for item in items])

    async def list_events(self, calendar_id: str, time_range: TimeRange) -> Result[list[CalendarEvent], CalendarError]:
        match await self.lifecycle.ensure_valid(self.account_id, self.tokens):
            case Err() as failure:
                return failure
            case Ok(fresh):
                pass

        try:
            items = await run_blocking(_fetch_events, fresh.access_token, calendar_id, time_range, timeout=self.timeout)
        except (HttpError, RefreshError, TimeoutError, OSError, httplib2.HttpLib2Error, TransportError) as e:
            error = map_google_error(self.account_id, e)
            logger.error(f"Failed to list events of {calendar_id}: {error}")
            return Err(error)

        return Ok([
            to_calendar_event(item, calendar_id, self.account_id)
            for item in items
            if item.get("status") != "cancelled"
        ])
