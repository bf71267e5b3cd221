"""OAuth token persistence and the token lifecycle (expiry check and refresh)."""

import logging
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from calhub.calendar.oauth import GoogleOAuthClient
from calhub.core.errors import AuthExpired, CalendarError, StoreError, StoreErrorKind
from calhub.core.result import NOTHING, Err, Ok, Option, Result, Some
from calhub.models import CalendarType, OAuthTokens
from calhub.vault.keys import oauth_token_key
from calhub.vault.store import SecretStore

logger = logging.getLogger(__name__)

DEFAULT_SKEW_SECONDS = 300


def is_expired(tokens: OAuthTokens, skew_seconds: int = DEFAULT_SKEW_SECONDS, now: datetime | None = None) -> bool:
    """True once ``now`` reaches ``expires_at - skew_seconds``."""
    now = now or datetime.now(UTC)
    return now >= tokens.expires_at - timedelta(seconds=skew_seconds)


class TokenStore:
    """OAuth token sets in the secret store, one per (provider, account)."""

    def __init__(self, secret_store: SecretStore, provider: CalendarType = CalendarType.GOOGLE):
        self._secrets = secret_store
        self._provider = provider

    def _key(self, account_id: str) -> str:
        return oauth_token_key(self._provider.value, account_id)

    def save(self, account_id: str, tokens: OAuthTokens) -> Result[None, StoreError]:
        return self._secrets.set(self._key(account_id), tokens.model_dump_json(by_alias=True).encode("utf-8"))

    def load(self, account_id: str) -> Result[Option[OAuthTokens], StoreError]:
        key = self._key(account_id)
        match self._secrets.get(key):
            case Ok(Some(raw)):
                pass
            case Ok(_):
                return Ok(NOTHING)
            case Err() as failure:
                return failure

        try:
            return Ok(Some(OAuthTokens.model_validate_json(raw)))
        except ValidationError as e:
            logger.error(f"Stored tokens for {account_id} are malformed")
            return Err(StoreError(StoreErrorKind.READ_FAILED, key, "Stored tokens are malformed", e))

    def delete(self, account_id: str) -> Result[None, StoreError]:
        return self._secrets.delete(self._key(account_id))


class TokenLifecycle:
    """Hands out access tokens that are valid for at least ``skew_seconds`` more.

    Concurrent calls for the same account are not serialized: both may
    refresh, and the token set persisted last wins.
    """

    def __init__(self, oauth: GoogleOAuthClient, token_store: TokenStore, skew_seconds: int = DEFAULT_SKEW_SECONDS):
        self.oauth = oauth
        self.token_store = token_store
        self.skew_seconds = skew_seconds

    def is_expired(self, tokens: OAuthTokens, now: datetime | None = None) -> bool:
        return is_expired(tokens, self.skew_seconds, now)

    async def ensure_valid(
        self, account_id: str, tokens: OAuthTokens, now: datetime | None = None
    ) -> Result[OAuthTokens, CalendarError]:
        """Return ``tokens`` if still fresh, otherwise a refreshed token set.

        A refreshed set is persisted before it is returned. If persisting
        fails the error is logged and the new tokens are returned anyway.
        """
        if not self.is_expired(tokens, now):
            return Ok(tokens)

        logger.info(f"Refreshing access token for {account_id}")
        match await self.oauth.refresh(tokens.refresh_token):
            case Err(error):
                reason = getattr(error, "message", None) or type(error).__name__
                logger.warning(f"Token refresh failed for {account_id}: {reason}")
                return Err(AuthExpired(account=account_id, reason=reason))
            case Ok(fresh):
                pass

        match self.token_store.save(account_id, fresh):
            case Err(error):
                logger.error(f"Refreshed tokens for {account_id} were not persisted: {error.kind}")

        return Ok(fresh)
