"""Sync route for triggering event synchronization on demand."""
from fastapi import APIRouter, Depends, HTTPException

from calhub.calendar.sync import sync_all_calendars
from calhub.core.context import CalendarContext, get_context
from calhub.core.result import Err, Ok

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("/now")
async def trigger_sync(ctx: CalendarContext = Depends(get_context)):
    """
    Sync every enabled calendar now.

    Returns the number of events cached per calendar and one entry per
    calendar that failed. Failed calendars do not fail the request.
    """
    match await sync_all_calendars(ctx):
        case Err(error):
            raise HTTPException(status_code=500, detail=error.message)
        case Ok(summary):
            pass

    return {
        "success": summary.success,
        "synced": summary.synced,
        "errors": [
            {"calendarId": e.calendar_id, "step": e.step.value, "message": e.message}
            for e in summary.errors
        ],
    }
