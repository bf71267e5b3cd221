"""Domain models shared by providers, token handling and synchronization.

These are plain pydantic models, not tables. ``CalendarConfig`` is persisted
as a JSON array under the ``calendars`` setting, and ``OAuthTokens`` as an
encrypted JSON document in the secret store; both use camelCase on the wire.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import AwareDatetime, BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class CalendarType(StrEnum):
    GOOGLE = "google"
    ICAL = "ical"


class OAuthTokens(BaseModel):
    """Provider OAuth tokens. Replaced wholesale on refresh, never patched.

    Attributes:
        access_token: Short-lived token for API requests.
        refresh_token: Long-lived token used to obtain new access tokens.
        expires_at: When the access token expires (timezone-aware).
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    access_token: str
    refresh_token: str
    expires_at: AwareDatetime


class ProviderCalendar(BaseModel):
    """A calendar as reported by a provider. Transient, never persisted."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    is_primary: bool = False
    color: str | None = None


class CalendarConfig(BaseModel):
    """A calendar known to the application.

    Attributes:
        id: Deterministic id derived from (type, account, provider calendar id),
            so synchronizing the same account twice never duplicates entries.
        type: Provider type selecting the provider implementation.
        name: Display name.
        enabled: Whether events of this calendar are synchronized and shown.
        color: Optional display color.
        provider_account_id: Account the calendar belongs to (Google only).
        provider_calendar_id: Calendar id on the provider side (Google only).
        ical_url: Feed URL (iCal only).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    type: CalendarType
    name: str
    enabled: bool
    color: str | None = None
    provider_account_id: str | None = None
    provider_calendar_id: str | None = None
    ical_url: str | None = None


class EventSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: CalendarType
    calendar_name: str
    account_id: str | None = None


class CalendarEvent(BaseModel):
    """An event returned by a provider.

    ``is_all_day`` is set when the source carried only a calendar date for
    start/end; start and end are then midnight UTC of those dates.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    calendar_id: str
    title: str
    start_time: datetime
    end_time: datetime
    is_all_day: bool = False
    location: str | None = None
    description: str | None = None
    source: EventSource


class TimeRange(BaseModel):
    """Closed time interval with ``start <= end``."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def check_order(self) -> "TimeRange":
        if self.start > self.end:
            raise ValueError("TimeRange start must not be after end")
        return self

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return not (end < self.start or start > self.end)
