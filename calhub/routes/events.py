"""Event routes reading from the local event cache."""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from calhub.core.context import CalendarContext, get_context
from calhub.core.result import Err, Ok
from calhub.models import CalendarEvent, TimeRange

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[CalendarEvent])
async def list_events(
    start: datetime = Query(...),
    end: datetime = Query(...),
    calendar_id: list[str] | None = Query(None),
    ctx: CalendarContext = Depends(get_context),
):
    """
    Cached events overlapping [start, end] from enabled calendars.

    Pass ``calendar_id`` one or more times to narrow to specific calendars.
    Run ``POST /sync/now`` first to refresh the cache.
    """
    try:
        time_range = TimeRange(start=start, end=end)
    except (ValidationError, TypeError):
        raise HTTPException(status_code=400, detail="start must not be after end")

    match ctx.config_store.load():
        case Err(error):
            raise HTTPException(status_code=500, detail=error.message)
        case Ok(calendars):
            enabled = [c.id for c in calendars if c.enabled]

    if calendar_id:
        enabled = [c for c in enabled if c in calendar_id]

    match ctx.event_cache.list_events(time_range, enabled):
        case Err(error):
            raise HTTPException(status_code=500, detail=error.message)
        case Ok(events):
            return events
