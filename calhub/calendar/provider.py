"""Provider-agnostic calendar interface.

One implementation exists per ``CalendarType``; :mod:`calhub.calendar.factory`
picks it from a ``CalendarConfig``. Adding a provider means adding a
subclass and a factory branch.
"""

from abc import ABC, abstractmethod

from calhub.core.errors import CalendarError
from calhub.core.result import Result
from calhub.models import CalendarEvent, CalendarType, ProviderCalendar, TimeRange


class CalendarProvider(ABC):
    type: CalendarType

    @abstractmethod
    async def list_calendars(self) -> Result[list[ProviderCalendar], CalendarError]:
        """Calendars visible to this provider's account."""

    @abstractmethod
    async def list_events(self, calendar_id: str, time_range: TimeRange) -> Result[list[CalendarEvent], CalendarError]:
        """Events of one provider calendar overlapping ``time_range``."""
