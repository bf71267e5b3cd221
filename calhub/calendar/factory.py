"""Build the provider for a calendar configuration, selected by its type."""

from calhub.calendar.google import GoogleCalendarProvider
from calhub.calendar.ical import ICalProvider
from calhub.calendar.provider import CalendarProvider
from calhub.core.context import CalendarContext
from calhub.core.errors import AuthExpired, InvalidUrl, SyncError, SyncStep
from calhub.core.result import Err, Ok, Result, Some
from calhub.models import CalendarConfig, CalendarType, OAuthTokens


def google_provider(ctx: CalendarContext, account_id: str, tokens: OAuthTokens) -> GoogleCalendarProvider:
    return GoogleCalendarProvider(
        account_id=account_id,
        tokens=tokens,
        lifecycle=ctx.lifecycle,
        timeout=ctx.settings.provider_timeout_seconds,
    )


def create_provider(config: CalendarConfig, ctx: CalendarContext) -> Result[CalendarProvider, SyncError]:
    """Provider for ``config``. Google tokens are loaded from the token store."""
    match config.type:
        case CalendarType.GOOGLE:
            account_id = config.provider_account_id
            if not account_id or not config.provider_calendar_id:
                return Err(SyncError(SyncStep.LOAD_CONFIG, message="Google calendar config is incomplete", calendar_id=config.id))
            match ctx.token_store.load(account_id):
                case Ok(Some(tokens)):
                    return Ok(google_provider(ctx, account_id, tokens))
                case Ok(_):
                    return Err(SyncError(
                        SyncStep.LOAD_TOKENS,
                        AuthExpired(account=account_id, reason="no stored tokens"),
                        f"No stored tokens for {account_id}",
                        config.id,
                    ))
                case Err(error):
                    return Err(SyncError(SyncStep.LOAD_TOKENS, error, f"Failed to load tokens for {account_id}", config.id))
        case CalendarType.ICAL:
            if not config.ical_url:
                return Err(SyncError(SyncStep.LOAD_CONFIG, InvalidUrl("iCal URL is not set"), "iCal URL is not set", config.id))
            return Ok(ICalProvider(url=config.ical_url, name=config.name, calendar_id=config.id))
