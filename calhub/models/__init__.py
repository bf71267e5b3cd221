from calhub.models.calendar import (
    CalendarConfig,
    CalendarEvent,
    CalendarType,
    EventSource,
    OAuthTokens,
    ProviderCalendar,
    TimeRange,
)
from calhub.models.credential import Credential
from calhub.models.event import CachedEvent, CalendarSyncState
from calhub.models.migration import SchemaMigration
from calhub.models.setting import Setting

__all__ = [
    "CachedEvent",
    "CalendarConfig",
    "CalendarEvent",
    "CalendarSyncState",
    "CalendarType",
    "Credential",
    "EventSource",
    "OAuthTokens",
    "ProviderCalendar",
    "SchemaMigration",
    "Setting",
    "TimeRange",
]
