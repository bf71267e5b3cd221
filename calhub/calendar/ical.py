"""iCal feed provider: one calendar per feed URL, read-only, no auth."""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from urllib.parse import urlsplit

import httpx
from icalendar import Calendar

from calhub.calendar.provider import CalendarProvider
from calhub.core.errors import ApiError, CalendarError, InvalidUrl, NetworkError, ParseError
from calhub.core.result import Err, Ok, Result
from calhub.models import CalendarEvent, CalendarType, EventSource, ProviderCalendar, TimeRange

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_SECONDS = 10.0
DEFAULT_FEED_NAME = "iCal Calendar"
DEFAULT_EVENT_TITLE = "(no title)"


@dataclass(frozen=True)
class ICalMeta:
    name: str
    event_count: int


def normalize_url(url: str) -> Result[str, CalendarError]:
    """Check the scheme and rewrite ``webcal://`` to ``https://``."""
    url = url.strip()
    if not url:
        return Err(InvalidUrl("URL is required"))
    parts = urlsplit(url)
    if parts.scheme == "webcal":
        url = "https" + url[len("webcal"):]
    elif parts.scheme not in ("http", "https"):
        return Err(InvalidUrl("URL must start with http:// or https://"))
    if not parts.netloc:
        return Err(InvalidUrl(f"Invalid URL: {url}"))
    return Ok(url)


def _as_utc(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    return datetime(value.year, value.month, value.day, tzinfo=UTC)


def _is_date_only(value) -> bool:
    return isinstance(value, date) and not isinstance(value, datetime)


def _text(component, name: str) -> str | None:
    value = component.get(name)
    return str(value) if value is not None else None


def parse_feed(text: str | bytes) -> Result[Calendar, CalendarError]:
    try:
        return Ok(Calendar.from_ical(text))
    except ValueError as e:
        logger.error(f"Failed to parse iCal feed: {e}")
        return Err(ParseError("Failed to parse iCal feed", e))


def feed_events(feed: Calendar, calendar_id: str, calendar_name: str) -> list[CalendarEvent]:
    """Map every VEVENT of a parsed feed. Recurrence rules are not expanded."""
    events = []
    for index, component in enumerate(feed.walk("VEVENT")):
        dtstart = component.get("dtstart")
        if dtstart is None:
            continue
        is_all_day = _is_date_only(dtstart.dt)
        start_time = _as_utc(dtstart.dt)

        if (dtend := component.get("dtend")) is not None:
            end_time = _as_utc(dtend.dt)
        elif (duration := component.get("duration")) is not None:
            end_time = start_time + duration.dt
        elif is_all_day:
            end_time = start_time + timedelta(days=1)
        else:
            end_time = start_time

        events.append(
            CalendarEvent(
                id=_text(component, "uid") or f"{calendar_id}-{index}",
                calendar_id=calendar_id,
                title=_text(component, "summary") or DEFAULT_EVENT_TITLE,
                start_time=start_time,
                end_time=end_time,
                is_all_day=is_all_day,
                location=_text(component, "location"),
                description=_text(component, "description"),
                source=EventSource(type=CalendarType.ICAL, calendar_name=calendar_name),
            )
        )
    return events


async def fetch_feed(
    url: str, timeout: float = FETCH_TIMEOUT_SECONDS, transport: httpx.AsyncBaseTransport | None = None
) -> Result[Calendar, CalendarError]:
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.TimeoutException as e:
        logger.error(f"Timed out fetching iCal feed {url}")
        return Err(NetworkError("Timed out fetching iCal feed", e))
    except httpx.HTTPStatusError as e:
        logger.error(f"iCal feed {url} returned {e.response.status_code}")
        return Err(ApiError(f"iCal feed returned {e.response.status_code}", e.response.status_code))
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch iCal feed {url}: {e}")
        return Err(NetworkError("Failed to fetch iCal feed", e))

    return parse_feed(response.content)


async def validate_ical_url(
    url: str, timeout: float = FETCH_TIMEOUT_SECONDS, transport: httpx.AsyncBaseTransport | None = None
) -> Result[ICalMeta, CalendarError]:
    """Fetch and parse a feed once, returning its display name and event count."""
    match normalize_url(url):
        case Err() as failure:
            return failure
        case Ok(normalized):
            pass

    match await fetch_feed(normalized, timeout, transport):
        case Err() as failure:
            return failure
        case Ok(feed):
            name = _text(feed, "x-wr-calname") or DEFAULT_FEED_NAME
            return Ok(ICalMeta(name=name, event_count=len(feed.walk("VEVENT"))))


@dataclass(frozen=True)
class ICalProvider(CalendarProvider):
    url: str
    name: str
    calendar_id: str
    timeout: float = FETCH_TIMEOUT_SECONDS
    transport: httpx.AsyncBaseTransport | None = None

    type = CalendarType.ICAL

    async def list_calendars(self) -> Result[list[ProviderCalendar], CalendarError]:
        return Ok([ProviderCalendar(id=self.calendar_id, name=self.name)])

    async def list_events(self, calendar_id: str, time_range: TimeRange) -> Result[list[CalendarEvent], CalendarError]:
        match normalize_url(self.url):
            case Err() as failure:
                return failure
            case Ok(url):
                pass

        match await fetch_feed(url, self.timeout, self.transport):
            case Err() as failure:
                return failure
            case Ok(feed):
                events = feed_events(feed, calendar_id, self.name)

        return Ok([e for e in events if time_range.overlaps(e.start_time, e.end_time)])
