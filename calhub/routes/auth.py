"""Google account connection routes."""
import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from calhub.calendar.setup import connect_google_account, disconnect_account
from calhub.core.context import CalendarContext, get_context
from calhub.core.result import Err, Ok
from calhub.routes.errors import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

VERIFIER_COOKIE = "oauth_code_verifier"
STATE_COOKIE = "oauth_state"
COOKIE_MAX_AGE = 600


@router.get("/google/start")
async def google_start(ctx: CalendarContext = Depends(get_context)):
    """
    Start connecting a Google account.

    Redirects to Google's consent screen. The PKCE verifier and the state
    are kept in short-lived cookies until the callback.
    """
    match ctx.oauth.authorization_url():
        case Err(error):
            raise HTTPException(status_code=503, detail=error.message)
        case Ok(auth):
            pass

    response = RedirectResponse(auth.url, status_code=303)
    for name, value in ((VERIFIER_COOKIE, auth.code_verifier), (STATE_COOKIE, auth.state)):
        response.set_cookie(name, value, max_age=COOKIE_MAX_AGE, httponly=True, samesite="lax")
    return response


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    ctx: CalendarContext = Depends(get_context),
):
    """
    Finish connecting a Google account.

    Exchanges the code, stores the tokens and adds the account's calendars.
    Returns how many calendars were added.
    """
    if error:
        raise HTTPException(status_code=400, detail=f"Authorization denied: {error}")
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    expected_state = request.cookies.get(STATE_COOKIE)
    verifier = request.cookies.get(VERIFIER_COOKIE)
    if not expected_state or not state or not secrets.compare_digest(expected_state, state):
        raise HTTPException(status_code=400, detail="OAuth state mismatch")
    if not verifier:
        raise HTTPException(status_code=400, detail="Missing code verifier")

    match await connect_google_account(ctx, code, verifier):
        case Err(sync_error):
            logger.error(f"Connecting Google account failed at {sync_error.step}: {sync_error.message}")
            raise http_error(sync_error)
        case Ok(result):
            pass

    response = JSONResponse({"account": result.account_id, "addedCount": result.added_count})
    response.delete_cookie(VERIFIER_COOKIE)
    response.delete_cookie(STATE_COOKIE)
    return response


@router.delete("/google/{account_id}")
async def google_disconnect(account_id: str, ctx: CalendarContext = Depends(get_context)):
    """Forget a Google account, its tokens and its calendars."""
    match disconnect_account(ctx, account_id):
        case Err(sync_error):
            raise http_error(sync_error)
        case Ok(removed):
            return {"account": account_id, "removedCount": removed}
