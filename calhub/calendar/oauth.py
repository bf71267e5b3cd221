"""Google OAuth 2.0: authorization URL, code exchange and token refresh.

The authorization flow uses PKCE (S256) with offline access so Google issues
a refresh token. Network calls run in a worker thread and are bounded by
``settings.provider_timeout_seconds``.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import requests
from google.auth import jwt
from google.auth.exceptions import GoogleAuthError, RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from calhub.core.concurrency import run_blocking
from calhub.core.config import Settings, settings
from calhub.core.errors import ApiError, AuthRequired, CalendarError, NetworkError
from calhub.core.result import Err, Ok, Result
from calhub.models import OAuthTokens

logger = logging.getLogger(__name__)

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar.readonly"

SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    CALENDAR_SCOPE,
]

# Used when the token endpoint omits the expiry
DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


@dataclass(frozen=True)
class AuthorizationRequest:
    """Where to send the user, plus what the callback needs to finish."""
    url: str
    code_verifier: str
    state: str


@dataclass(frozen=True)
class ExchangedTokens:
    tokens: OAuthTokens
    account_id: str | None


def _expiry(credentials: Credentials) -> datetime:
    # google-auth reports expiry as naive UTC
    if credentials.expiry is None:
        return datetime.now(UTC) + DEFAULT_TOKEN_LIFETIME
    return credentials.expiry.replace(tzinfo=UTC)


def _account_from_id_token(id_token: str | None) -> str | None:
    """Read the email claim of an ID token received straight from the token endpoint."""
    if not id_token:
        return None
    try:
        claims = jwt.decode(id_token, verify=False)
    except (ValueError, GoogleAuthError) as e:
        logger.warning(f"Could not decode ID token: {e}")
        return None
    return claims.get("email")


class GoogleOAuthClient:
    def __init__(self, client_id: str, client_secret: str, redirect_uri: str, timeout: float):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "GoogleOAuthClient":
        return cls(
            client_id=config.google_client_id,
            client_secret=config.google_client_secret,
            redirect_uri=config.google_redirect_uri,
            timeout=config.provider_timeout_seconds,
        )

    def _client_config(self) -> dict:
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }

    def _missing_config(self) -> AuthRequired | None:
        if not self.client_id or not self.client_secret:
            return AuthRequired("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be configured")
        return None

    def authorization_url(self) -> Result[AuthorizationRequest, CalendarError]:
        """Build the consent URL with a fresh PKCE verifier and state."""
        if not self.client_id:
            return Err(AuthRequired("GOOGLE_CLIENT_ID must be configured"))

        flow = Flow.from_client_config(
            self._client_config(),
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=True,
        )
        url, state = flow.authorization_url(
            access_type="offline",
            prompt="consent",
            state=secrets.token_hex(16),
        )
        return Ok(AuthorizationRequest(url=url, code_verifier=flow.code_verifier, state=state))

    def _exchange_blocking(self, code: str, code_verifier: str) -> Credentials:
        flow = Flow.from_client_config(
            self._client_config(),
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            code_verifier=code_verifier,
        )
        flow.fetch_token(code=code)
        return flow.credentials

    async def exchange_code(self, code: str, code_verifier: str) -> Result[ExchangedTokens, CalendarError]:
        """Exchange an authorization code (plus PKCE verifier) for tokens."""
        if missing := self._missing_config():
            return Err(missing)

        try:
            credentials = await run_blocking(self._exchange_blocking, code, code_verifier, timeout=self.timeout)
        except OAuth2Error as e:
            logger.error(f"Authorization code exchange rejected: {e.error}")
            return Err(ApiError(f"Authorization code exchange rejected: {e.error}", e.status_code or 400))
        except Warning as e:
            # oauthlib raises a bare Warning when the user unticked a scope
            logger.warning(f"Authorization granted fewer scopes than requested: {e}")
            return Err(ApiError("Calendar access was not granted", 400))
        except (requests.RequestException, TimeoutError, OSError) as e:
            logger.error(f"Authorization code exchange failed: {e}")
            return Err(NetworkError("Authorization code exchange failed", e))

        if not credentials.token or not credentials.refresh_token:
            return Err(ApiError("Token response is missing the access or refresh token", 400))
        granted = getattr(credentials, "granted_scopes", None)
        if granted and CALENDAR_SCOPE not in granted:
            return Err(ApiError("Calendar access was not granted", 400))

        tokens = OAuthTokens(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expires_at=_expiry(credentials),
        )
        return Ok(ExchangedTokens(tokens=tokens, account_id=_account_from_id_token(credentials.id_token)))

    def _refresh_blocking(self, refresh_token: str) -> Credentials:
        credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=SCOPES,
        )
        credentials.refresh(Request())
        return credentials

    async def refresh(self, refresh_token: str) -> Result[OAuthTokens, CalendarError]:
        """Obtain a new access token. Keeps the old refresh token unless Google rotates it."""
        if missing := self._missing_config():
            return Err(missing)

        try:
            credentials = await run_blocking(self._refresh_blocking, refresh_token, timeout=self.timeout)
        except RefreshError as e:
            logger.error(f"Token refresh rejected: {e}")
            return Err(ApiError(f"Token refresh rejected: {e}", 400))
        except (TransportError, TimeoutError, OSError) as e:
            logger.error(f"Token refresh failed: {e}")
            return Err(NetworkError("Token refresh failed", e))

        if not credentials.token:
            return Err(ApiError("Token refresh returned no access token", 400))

        return Ok(OAuthTokens(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token or refresh_token,
            expires_at=_expiry(credentials),
        ))
