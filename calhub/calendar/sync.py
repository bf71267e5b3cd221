"""On-demand event synchronization into the local event cache."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from calhub.calendar.factory import create_provider
from calhub.core.context import CalendarContext
from calhub.core.errors import SyncError, SyncStep
from calhub.core.result import Err, Ok, Result
from calhub.models import CalendarConfig, TimeRange

logger = logging.getLogger(__name__)


@dataclass
class SyncSummary:
    """Outcome of syncing every enabled calendar."""
    synced: dict[str, int] = field(default_factory=dict)
    errors: list[SyncError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def sync_window(ctx: CalendarContext, now: datetime | None = None) -> TimeRange:
    """From ``sync_past_days`` before today to ``sync_future_days`` after it, in UTC."""
    now = now or datetime.now(UTC)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return TimeRange(
        start=today - timedelta(days=ctx.settings.sync_past_days),
        end=today + timedelta(days=ctx.settings.sync_future_days + 1),
    )


async def sync_calendar(
    ctx: CalendarContext, config: CalendarConfig, time_range: TimeRange
) -> Result[int, SyncError]:
    """
    Fetch one calendar's events and replace its cached events.

    Returns the number of events cached.
    """
    match create_provider(config, ctx):
        case Err() as failure:
            return failure
        case Ok(provider):
            pass

    provider_calendar_id = config.provider_calendar_id or config.id
    match await provider.list_events(provider_calendar_id, time_range):
        case Err(error):
            return Err(SyncError(SyncStep.FETCH_EVENTS, error, f"Failed to fetch events for {config.name}", config.id))
        case Ok(events):
            pass

    events = [
        event.model_copy(update={
            "calendar_id": config.id,
            "source": event.source.model_copy(update={"calendar_name": config.name}),
        })
        for event in events
    ]

    match ctx.event_cache.replace_calendar_events(config.id, events):
        case Err(error):
            return Err(SyncError(SyncStep.SAVE_EVENTS, error, f"Failed to save events for {config.name}", config.id))
        case Ok(count):
            pass

    match ctx.event_cache.update_last_sync_time(config.id, datetime.now(UTC)):
        case Err(error):
            logger.warning(f"Sync time of {config.id} was not recorded: {error.message}")

    logger.info(f"Synced {count} events for {config.name}")
    return Ok(count)


async def sync_all_calendars(ctx: CalendarContext, now: datetime | None = None) -> Result[SyncSummary, SyncError]:
    """
    Sync every enabled calendar, one after another.

    A failing calendar is recorded in the summary and does not stop the others.
    Only failing to load the configuration fails the whole run.
    """
    match ctx.config_store.load():
        case Err(error):
            return Err(SyncError(SyncStep.LOAD_CONFIG, error, "Failed to load calendar configuration"))
        case Ok(calendars):
            pass

    time_range = sync_window(ctx, now)
    summary = SyncSummary()
    for config in calendars:
        if not config.enabled:
            continue
        match await sync_calendar(ctx, config, time_range):
            case Ok(count):
                summary.synced[config.id] = count
            case Err(error):
                logger.error(f"Sync failed for {config.id} at {error.step}: {error.message}")
                summary.errors.append(error)

    logger.info(f"Sync completed: {len(summary.synced)} synced, {len(summary.errors)} failed")
    return Ok(summary)
