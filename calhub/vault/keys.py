"""Namespaced secret keys.

Keys have the form ``<namespace>:<subject>:<purpose>``:

- LLM provider API keys: ``llm:<vendor>:api-key`` for a fixed set of vendors.
- OAuth token sets: ``<provider>:<account>:oauth-tokens`` for a supported
  calendar provider and a non-empty account id.

Anything else is rejected by :func:`is_secret_key`.
"""

from enum import StrEnum

from calhub.core.result import NOTHING, Option, Some


class LLMProvider(StrEnum):
    CLAUDE = "claude"
    OPENAI = "openai"
    OLLAMA = "ollama"
    GEMINI = "gemini"


# Ollama needs no API key; its slot holds the server base URL
PROVIDER_SECRET_KEYS: dict[LLMProvider, str] = {
    LLMProvider.CLAUDE: "llm:anthropic:api-key",
    LLMProvider.OPENAI: "llm:openai:api-key",
    LLMProvider.OLLAMA: "llm:ollama:api-key",
    LLMProvider.GEMINI: "llm:gemini:api-key",
}

LLM_SECRET_KEYS: tuple[str, ...] = tuple(PROVIDER_SECRET_KEYS.values())

OAUTH_PROVIDERS: tuple[str, ...] = ("google",)
OAUTH_PURPOSE = "oauth-tokens"


def oauth_token_key(provider: str, account_id: str) -> str:
    return f"{provider}:{account_id}:{OAUTH_PURPOSE}"


def is_llm_secret_key(key: str) -> bool:
    return key in LLM_SECRET_KEYS


def _split_oauth_key(key: str) -> tuple[str, str, str] | None:
    provider, sep, rest = key.partition(":")
    if not sep:
        return None
    account, sep, purpose = rest.rpartition(":")
    if not sep:
        return None
    return provider, account, purpose


def is_oauth_token_key(key: str) -> bool:
    parts = _split_oauth_key(key)
    if parts is None:
        return False
    provider, account, purpose = parts
    return provider in OAUTH_PROVIDERS and bool(account.strip()) and purpose == OAUTH_PURPOSE


def is_secret_key(key: str) -> bool:
    return is_llm_secret_key(key) or is_oauth_token_key(key)


def account_from_oauth_key(key: str) -> Option[str]:
    if not is_oauth_token_key(key):
        return NOTHING
    _, account, _ = _split_oauth_key(key)
    return Some(account)
