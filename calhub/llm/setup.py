"""First-run setup: which LLM provider is selected and whether it is usable.

The provider name lives in the ``llm_provider`` setting. Its API key (or,
for Ollama, the server base URL) lives in the secret store and never in
the settings table.
"""

import logging
from dataclasses import dataclass, field

from calhub.core.context import CalendarContext
from calhub.core.errors import ConfigError, DatabaseError, SetupError, SetupErrorKind, StoreError
from calhub.core.result import Err, Ok, Result, Some
from calhub.vault.keys import PROVIDER_SECRET_KEYS, LLMProvider, account_from_oauth_key

logger = logging.getLogger(__name__)

LLM_PROVIDER_SETTING_KEY = "llm_provider"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"


@dataclass(frozen=True)
class SetupStatus:
    """
    Setup is complete once at least one calendar is configured, or a
    provider is selected whose key is stored. Ollama needs no key.
    """
    current_provider: LLMProvider | None
    has_api_key: bool
    calendar_count: int
    connected_accounts: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        if self.calendar_count > 0:
            return True
        if self.current_provider is None:
            return False
        return self.current_provider == LLMProvider.OLLAMA or self.has_api_key


def current_provider(ctx: CalendarContext) -> Result[LLMProvider | None, DatabaseError]:
    """The selected provider. An unknown stored value reads as no selection."""
    match ctx.settings_repository.get_setting(LLM_PROVIDER_SETTING_KEY):
        case Err() as failure:
            return failure
        case Ok(Some(value)) if value in {p.value for p in LLMProvider}:
            return Ok(LLMProvider(value))
        case Ok(Some(value)):
            logger.warning(f"Ignoring unknown LLM provider setting {value!r}")
            return Ok(None)
        case _:
            return Ok(None)


def is_first_launch(ctx: CalendarContext) -> Result[bool, DatabaseError]:
    return current_provider(ctx).map(lambda provider: provider is None)


def check_setup_status(ctx: CalendarContext) -> Result[SetupStatus, DatabaseError | StoreError | ConfigError]:
    match current_provider(ctx):
        case Err() as failure:
            return failure
        case Ok(provider):
            pass

    has_api_key = False
    if provider is not None:
        match ctx.secret_store.has(PROVIDER_SECRET_KEYS[provider]):
            case Err() as failure:
                return failure
            case Ok(has_api_key):
                pass

    match ctx.config_store.load():
        case Err() as failure:
            return failure
        case Ok(calendars):
            pass

    match ctx.secret_store.list_keys():
        case Err() as failure:
            return failure
        case Ok(keys):
            accounts = [account.value for account in map(account_from_oauth_key, keys) if account.is_some()]

    return Ok(SetupStatus(
        current_provider=provider,
        has_api_key=has_api_key,
        calendar_count=len(calendars),
        connected_accounts=accounts,
    ))


def save_setup_settings(
    ctx: CalendarContext,
    provider: LLMProvider,
    api_key: str | None = None,
    base_url: str | None = None,
    overwrite_existing: bool = False,
) -> Result[None, SetupError]:
    """
    Store the provider's key and select the provider.

    An already stored key is only replaced with ``overwrite_existing``.
    For Ollama the base URL is stored instead of a key, defaulting to the
    local server. Without a key nothing is stored and only the selection
    changes.
    """
    secret_key = PROVIDER_SECRET_KEYS[provider]

    match ctx.secret_store.has(secret_key):
        case Err(error):
            return Err(SetupError(SetupErrorKind.SECRET_FAILED, "Failed to read the stored API key", error))
        case Ok(True) if not overwrite_existing:
            return Err(SetupError(SetupErrorKind.KEY_EXISTS, "An API key is already stored for this provider"))

    value = (base_url or DEFAULT_OLLAMA_BASE_URL) if provider == LLMProvider.OLLAMA else api_key
    if value:
        match ctx.secret_store.set(secret_key, value.encode("utf-8")):
            case Err(error):
                return Err(SetupError(SetupErrorKind.SECRET_FAILED, "Failed to store the API key", error))

    match ctx.settings_repository.set_setting(LLM_PROVIDER_SETTING_KEY, provider.value):
        case Err(error):
            return Err(SetupError(SetupErrorKind.CONFIG_FAILED, "Failed to save the LLM provider", error))

    logger.info(f"LLM provider set to {provider.value}")
    return Ok(None)
