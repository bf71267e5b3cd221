"""Local cache of provider events and per-calendar sync state."""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from calhub.core.database import Database
from calhub.core.errors import DatabaseError, DatabaseErrorKind
from calhub.core.result import NOTHING, Err, Ok, Option, Result, Some
from calhub.models import CachedEvent, CalendarEvent, CalendarSyncState, EventSource, TimeRange

logger = logging.getLogger(__name__)


def _to_db(dt: datetime) -> datetime:
    """Aware UTC. Naive input is taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _from_db(dt: datetime) -> datetime:
    # SQLite hands back naive values unless the column type restores UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _query_failed(message: str, e: Exception) -> Err[DatabaseError]:
    logger.error(f"{message}: {e}")
    return Err(DatabaseError(DatabaseErrorKind.QUERY_FAILED, message, e))


class EventCache:
    def __init__(self, database: Database):
        self._database = database

    def replace_calendar_events(self, calendar_id: str, events: list[CalendarEvent]) -> Result[int, DatabaseError]:
        """Replace every cached event of one calendar in a single transaction."""
        try:
            with self._database.session() as session:
                session.exec(delete(CachedEvent).where(CachedEvent.calendar_id == calendar_id))
                seen: set[str] = set()
                for event in events:
                    # Providers can repeat an id across pages; keep the first
                    if event.id in seen:
                        continue
                    seen.add(event.id)
                    session.add(
                        CachedEvent(
                            event_id=event.id,
                            calendar_id=calendar_id,
                            title=event.title,
                            start_time=_to_db(event.start_time),
                            end_time=_to_db(event.end_time),
                            is_all_day=event.is_all_day,
                            location=event.location,
                            description=event.description,
                            source_type=event.source.type.value,
                            source_calendar_name=event.source.calendar_name,
                            source_account_id=event.source.account_id,
                        )
                    )
                session.commit()
        except SQLAlchemyError as e:
            return _query_failed(f"Failed to save events for {calendar_id}", e)

        return Ok(len(seen))

    def delete_calendar(self, calendar_id: str) -> Result[None, DatabaseError]:
        try:
            with self._database.session() as session:
                session.exec(delete(CachedEvent).where(CachedEvent.calendar_id == calendar_id))
                session.exec(delete(CalendarSyncState).where(CalendarSyncState.calendar_id == calendar_id))
                session.commit()
        except SQLAlchemyError as e:
            return _query_failed(f"Failed to delete cached events for {calendar_id}", e)
        return Ok(None)

    def list_events(
        self, time_range: TimeRange, calendar_ids: list[str] | None = None
    ) -> Result[list[CalendarEvent], DatabaseError]:
        """Cached events overlapping the range, ordered by start time."""
        statement = (
            select(CachedEvent)
            .where(CachedEvent.end_time >= _to_db(time_range.start))
            .where(CachedEvent.start_time <= _to_db(time_range.end))
            .order_by(CachedEvent.start_time)
        )
        if calendar_ids is not None:
            statement = statement.where(CachedEvent.calendar_id.in_(calendar_ids))

        try:
            with self._database.session() as session:
                rows = session.exec(statement).all()
        except SQLAlchemyError as e:
            return _query_failed("Failed to read cached events", e)

        return Ok([
            CalendarEvent(
                id=row.event_id,
                calendar_id=row.calendar_id,
                title=row.title,
                start_time=_from_db(row.start_time),
                end_time=_from_db(row.end_time),
                is_all_day=row.is_all_day,
                location=row.location,
                description=row.description,
                source=EventSource(
                    type=row.source_type,
                    calendar_name=row.source_calendar_name,
                    account_id=row.source_account_id,
                ),
            )
            for row in rows
        ])

    def update_last_sync_time(self, calendar_id: str, synced_at: datetime) -> Result[None, DatabaseError]:
        try:
            with self._database.session() as session:
                state = session.get(CalendarSyncState, calendar_id)
                if state:
                    state.last_sync_time = _to_db(synced_at)
                    state.updated_at = datetime.now(UTC)
                else:
                    state = CalendarSyncState(calendar_id=calendar_id, last_sync_time=_to_db(synced_at))
                session.add(state)
                session.commit()
        except SQLAlchemyError as e:
            return _query_failed(f"Failed to record sync time for {calendar_id}", e)
        return Ok(None)

    def get_last_sync_time(self, calendar_id: str) -> Result[Option[datetime], DatabaseError]:
        try:
            with self._database.session() as session:
                state = session.get(CalendarSyncState, calendar_id)
        except SQLAlchemyError as e:
            return _query_failed(f"Failed to read sync time for {calendar_id}", e)
        return Ok(Some(_from_db(state.last_sync_time)) if state else NOTHING)
