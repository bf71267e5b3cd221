"""Calendar configuration routes."""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from calhub.calendar.setup import add_ical_calendar, remove_calendar, update_calendar
from calhub.core.context import CalendarContext, get_context
from calhub.core.result import Err, Ok, Some
from calhub.routes.errors import http_error

router = APIRouter(prefix="/calendars", tags=["calendars"])


class CalendarUpdate(BaseModel):
    enabled: bool | None = None
    color: str | None = None


class ICalCalendarCreate(BaseModel):
    url: str
    name: str | None = None


def _dump(config) -> dict:
    return config.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.get("")
async def list_calendars(ctx: CalendarContext = Depends(get_context)):
    """List every configured calendar."""
    match ctx.config_store.load():
        case Err(error):
            raise HTTPException(status_code=500, detail=error.message)
        case Ok(calendars):
            return [_dump(c) for c in calendars]


@router.patch("/{calendar_id}")
async def patch_calendar(calendar_id: str, update: CalendarUpdate, ctx: CalendarContext = Depends(get_context)):
    """Toggle a calendar or change its color."""
    match update_calendar(ctx, calendar_id, enabled=update.enabled, color=update.color):
        case Err(error):
            raise http_error(error)
        case Ok(Some(config)):
            return _dump(config)
        case _:
            raise HTTPException(status_code=404, detail="Calendar not found")


@router.delete("/{calendar_id}")
async def delete_calendar(calendar_id: str, ctx: CalendarContext = Depends(get_context)):
    """Remove a calendar and its cached events."""
    match remove_calendar(ctx, calendar_id):
        case Err(error):
            raise http_error(error)
        case Ok(False):
            raise HTTPException(status_code=404, detail="Calendar not found")
    return {"deleted": calendar_id}


@router.post("/ical", status_code=201)
async def create_ical_calendar(body: ICalCalendarCreate, ctx: CalendarContext = Depends(get_context)):
    """Add an iCal feed after checking that it can be fetched and parsed."""
    match await add_ical_calendar(ctx, body.url, body.name):
        case Err(error):
            raise http_error(error)
        case Ok(config):
            return _dump(config)
