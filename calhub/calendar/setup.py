"""Calendar setup: connect an account and merge its calendars into configuration.

``auto_setup`` only ever appends. A calendar already present (same
deterministic id) is left exactly as the user last saved it, so running
setup again for the same account is a no-op.
"""

import hashlib
import logging
import re
from dataclasses import dataclass

from calhub.calendar.factory import google_provider
from calhub.calendar.ical import normalize_url, validate_ical_url
from calhub.core.context import CalendarContext
from calhub.core.errors import ApiError, SyncError, SyncStep
from calhub.core.result import NOTHING, Err, Ok, Option, Result, Some
from calhub.models import CalendarConfig, CalendarType, OAuthTokens

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^a-zA-Z0-9]")
ID_DIGEST_LENGTH = 12


def sanitize(value: str) -> str:
    return _UNSAFE.sub("-", value)


def deterministic_id(calendar_type: CalendarType, account_id: str, provider_calendar_id: str) -> str:
    """Config id as a pure function of its inputs.

    The readable part is sanitized and can coincide for different inputs
    (``a.b`` and ``a-b``), so a digest of the raw pair is appended, e.g.
    ``google-a-example-com-primary-<12 hex digits>``.
    """
    digest = hashlib.sha256(f"{account_id}\0{provider_calendar_id}".encode("utf-8")).hexdigest()[:ID_DIGEST_LENGTH]
    return f"{calendar_type.value}-{sanitize(account_id)}-{sanitize(provider_calendar_id)}-{digest}"


@dataclass(frozen=True)
class SetupResult:
    added_count: int
    account_id: str | None = None


async def auto_setup(ctx: CalendarContext, account_id: str, tokens: OAuthTokens) -> Result[SetupResult, SyncError]:
    """Persist ``tokens`` and add every not-yet-known calendar of the account.

    New calendars are enabled only if the provider marks them primary. The
    collection is written once, and only if something was added.
    """
    match ctx.token_store.save(account_id, tokens):
        case Err(error):
            return Err(SyncError(SyncStep.PERSIST_TOKENS, error, "Failed to save tokens"))

    provider = google_provider(ctx, account_id, tokens)
    match await provider.list_calendars():
        case Err(error):
            return Err(SyncError(SyncStep.LIST_CALENDARS, error, "Failed to list calendars"))
        case Ok(provider_calendars):
            pass

    match ctx.config_store.load():
        case Err(error):
            return Err(SyncError(SyncStep.LOAD_CONFIG, error, "Failed to load calendar configuration"))
        case Ok(existing):
            pass

    existing_ids = {config.id for config in existing}
    added: list[CalendarConfig] = []
    for calendar in provider_calendars:
        config_id = deterministic_id(CalendarType.GOOGLE, account_id, calendar.id)
        if config_id in existing_ids:
            continue
        existing_ids.add(config_id)
        added.append(
            CalendarConfig(
                id=config_id,
                type=CalendarType.GOOGLE,
                name=calendar.name,
                enabled=calendar.is_primary,
                color=calendar.color,
                provider_account_id=account_id,
                provider_calendar_id=calendar.id,
            )
        )

    if added:
        match ctx.config_store.save(existing + added):
            case Err(error):
                return Err(SyncError(SyncStep.SAVE_CONFIG, error, "Failed to save calendar configuration"))

    logger.info(f"Setup for {account_id}: {len(added)} calendar(s) added")
    return Ok(SetupResult(added_count=len(added), account_id=account_id))


async def connect_google_account(ctx: CalendarContext, code: str, code_verifier: str) -> Result[SetupResult, SyncError]:
    """Exchange an authorization code and set up the account it belongs to."""
    match await ctx.oauth.exchange_code(code, code_verifier):
        case Err(error):
            return Err(SyncError(SyncStep.EXCHANGE_CODE, error, "Failed to exchange authorization code"))
        case Ok(exchanged):
            pass

    if not exchanged.account_id:
        error = ApiError("Token response did not identify the account", 400)
        return Err(SyncError(SyncStep.EXCHANGE_CODE, error, error.message))

    return await auto_setup(ctx, exchanged.account_id, exchanged.tokens)


def disconnect_account(ctx: CalendarContext, account_id: str) -> Result[int, SyncError]:
    """Forget an account: its tokens, its calendar configs and their cached events.

    Returns the number of calendar configs removed.
    """
    match ctx.config_store.load():
        case Err(error):
            return Err(SyncError(SyncStep.LOAD_CONFIG, error, "Failed to load calendar configuration"))
        case Ok(calendars):
            pass

    removed = [c for c in calendars if c.type == CalendarType.GOOGLE and c.provider_account_id == account_id]
    if removed:
        kept = [c for c in calendars if c not in removed]
        match ctx.config_store.save(kept):
            case Err(error):
                return Err(SyncError(SyncStep.SAVE_CONFIG, error, "Failed to save calendar configuration"))
        for config in removed:
            match ctx.event_cache.delete_calendar(config.id):
                case Err(error):
                    logger.warning(f"Cached events of {config.id} were not deleted: {error.message}")

    match ctx.token_store.delete(account_id):
        case Err(error):
            return Err(SyncError(SyncStep.PERSIST_TOKENS, error, "Failed to delete tokens"))

    logger.info(f"Disconnected {account_id}, removed {len(removed)} calendar(s)")
    return Ok(len(removed))


async def add_ical_calendar(ctx: CalendarContext, url: str, name: str | None = None) -> Result[CalendarConfig, SyncError]:
    """Validate an iCal feed and add it, enabled. Adding the same URL twice returns the existing config."""
    match normalize_url(url):
        case Err(error):
            return Err(SyncError(SyncStep.FETCH_EVENTS, error, error.message))
        case Ok(normalized):
            pass

    match await validate_ical_url(normalized):
        case Err(error):
            return Err(SyncError(SyncStep.FETCH_EVENTS, error, "iCal feed could not be read"))
        case Ok(meta):
            pass

    match ctx.config_store.load():
        case Err(error):
            return Err(SyncError(SyncStep.LOAD_CONFIG, error, "Failed to load calendar configuration"))
        case Ok(calendars):
            pass

    config_id = deterministic_id(CalendarType.ICAL, "url", normalized)
    for existing in calendars:
        if existing.id == config_id:
            return Ok(existing)

    config = CalendarConfig(
        id=config_id,
        type=CalendarType.ICAL,
        name=name.strip() if name and name.strip() else meta.name,
        enabled=True,
        ical_url=normalized,
    )
    match ctx.config_store.save(calendars + [config]):
        case Err(error):
            return Err(SyncError(SyncStep.SAVE_CONFIG, error, "Failed to save calendar configuration"))

    logger.info(f"Added iCal calendar {config.name}")
    return Ok(config)


def update_calendar(
    ctx: CalendarContext, calendar_id: str, enabled: bool | None = None, color: str | None = None
) -> Result[Option[CalendarConfig], SyncError]:
    """Apply a user edit to one calendar. ``NOTHING`` if there is no such calendar."""
    match ctx.config_store.load():
        case Err(error):
            return Err(SyncError(SyncStep.LOAD_CONFIG, error, "Failed to load calendar configuration"))
        case Ok(calendars):
            pass

    changes = {k: v for k, v in {"enabled": enabled, "color": color}.items() if v is not None}
    updated = None
    for index, config in enumerate(calendars):
        if config.id == calendar_id:
            updated = config.model_copy(update=changes)
            calendars[index] = updated
            break
    if updated is None:
        return Ok(NOTHING)

    match ctx.config_store.save(calendars):
        case Err(error):
            return Err(SyncError(SyncStep.SAVE_CONFIG, error, "Failed to save calendar configuration"))
    return Ok(Some(updated))


def remove_calendar(ctx: CalendarContext, calendar_id: str) -> Result[bool, SyncError]:
    """Delete one calendar config and its cached events. False if it did not exist."""
    match ctx.config_store.load():
        case Err(error):
            return Err(SyncError(SyncStep.LOAD_CONFIG, error, "Failed to load calendar configuration"))
        case Ok(calendars):
            pass

    kept = [c for c in calendars if c.id != calendar_id]
    if len(kept) == len(calendars):
        return Ok(False)

    match ctx.config_store.save(kept):
        case Err(error):
            return Err(SyncError(SyncStep.SAVE_CONFIG, error, "Failed to save calendar configuration"))
    match ctx.event_cache.delete_calendar(calendar_id):
        case Err(error):
            logger.warning(f"Cached events of {calendar_id} were not deleted: {error.message}")
    return Ok(True)
