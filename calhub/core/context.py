"""The context handed to every synchronization flow.

A ``CalendarContext`` bundles the database handle with the stores and
services built on it, so no component reaches for a global connection.
"""

import logging
from dataclasses import dataclass

from fastapi import HTTPException

from calhub.calendar.oauth import GoogleOAuthClient
from calhub.calendar.tokens import TokenLifecycle, TokenStore
from calhub.core.config import Settings, settings
from calhub.core.database import Database, require_database
from calhub.core.errors import SyncError, SyncStep
from calhub.core.result import Err, Ok, Result
from calhub.crypto.encryption import import_key
from calhub.storage.events import EventCache
from calhub.storage.settings import CalendarConfigStore, SettingsRepository
from calhub.vault.store import SecretStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarContext:
    database: Database
    settings: Settings
    secret_store: SecretStore
    token_store: TokenStore
    oauth: GoogleOAuthClient
    lifecycle: TokenLifecycle
    settings_repository: SettingsRepository
    config_store: CalendarConfigStore
    event_cache: EventCache


def create_context(database: Database, config: Settings = settings) -> Result[CalendarContext, SyncError]:
    """Wire the stores and services for one database and configuration.

    Fails with step ``CONTEXT`` when the encryption key cannot be imported.
    """
    match import_key(config.encryption_key):
        case Err(error):
            logger.error(f"Encryption key could not be imported: {error.message}")
            return Err(SyncError(SyncStep.CONTEXT, error, "Encryption key could not be imported"))
        case Ok(key):
            pass

    secret_store = SecretStore(database, key)
    settings_repository = SettingsRepository(database)
    token_store = TokenStore(secret_store)
    oauth = GoogleOAuthClient.from_settings(config)
    return Ok(CalendarContext(
        database=database,
        settings=config,
        secret_store=secret_store,
        token_store=token_store,
        oauth=oauth,
        lifecycle=TokenLifecycle(oauth, token_store, config.token_expiry_skew_seconds),
        settings_repository=settings_repository,
        config_store=CalendarConfigStore(settings_repository),
        event_cache=EventCache(database),
    ))


def get_context() -> CalendarContext:
    """Dependency for getting the calendar context of the process-wide database."""
    match require_database().and_then(create_context):
        case Ok(ctx):
            return ctx
        case Err(error):
            raise HTTPException(status_code=500, detail=error.message)
