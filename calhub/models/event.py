"""Event cache models for calendar events fetched from providers.

This module defines the CachedEvent model which stores a local copy of the
events returned by each configured calendar, and CalendarSyncState which
records when each calendar was last synchronized. The cache is rebuilt per
calendar on every on-demand sync.
"""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class CachedEvent(SQLModel, table=True):
    """A calendar event cached from a provider.

    Attributes:
        event_id: Event ID as reported by the provider.
        calendar_id: Deterministic id of the owning CalendarConfig.
            Together with event_id this forms the primary key.
        title: Event title/summary.
        start_time: When the event starts (UTC).
        end_time: When the event ends (UTC).
        is_all_day: True when the provider reported date-only start/end.
        location: Event location, if any.
        description: Event description, if any.
        source_type: Provider type ("google" or "ical").
        source_calendar_name: Display name of the owning calendar.
        source_account_id: Provider account the event was read with, if any.
        updated_at: When this row was last written.
    """
    __tablename__ = "calendar_events"

    event_id: str = Field(primary_key=True)
    calendar_id: str = Field(primary_key=True, index=True)
    title: str
    start_time: datetime = Field(index=True)
    end_time: datetime = Field(index=True)
    is_all_day: bool = Field(default=False)
    location: str | None = None
    description: str | None = None
    source_type: str
    source_calendar_name: str
    source_account_id: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class CalendarSyncState(SQLModel, table=True):
    """Last successful synchronization time of one calendar."""
    __tablename__ = "calendar_sync_state"

    calendar_id: str = Field(primary_key=True)
    last_sync_time: datetime
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
