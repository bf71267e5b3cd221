"""Typed error values returned inside ``Err``.

Errors are data, not exceptions: each kind is a frozen dataclass so callers
can pattern-match on it. Only the HTTP boundary turns them into
user-facing messages and status codes.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeAlias


class CryptoErrorKind(StrEnum):
    KEY_IMPORT_FAILED = "key_import_failed"
    ENCRYPT_FAILED = "encrypt_failed"
    DECRYPT_FAILED = "decrypt_failed"


@dataclass(frozen=True)
class CryptoError:
    """Failure of the encryption service.

    ``DECRYPT_FAILED`` covers corruption, tampering, a wrong key, malformed
    serialized text and an unknown format version alike.
    """
    kind: CryptoErrorKind
    message: str
    cause: Any = None


class StoreErrorKind(StrEnum):
    INVALID_KEY = "invalid_key"
    KEY_IMPORT_FAILED = "key_import_failed"
    ENCRYPT_FAILED = "encrypt_failed"
    DECRYPT_FAILED = "decrypt_failed"
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"
    DELETE_FAILED = "delete_failed"


@dataclass(frozen=True)
class StoreError:
    """Failure of the secret store for a given key."""
    kind: StoreErrorKind
    key: str
    message: str
    cause: Any = None

    @classmethod
    def from_crypto(cls, key: str, error: CryptoError) -> "StoreError":
        return cls(kind=StoreErrorKind(error.kind.value), key=key, message=error.message, cause=error)


class DatabaseErrorKind(StrEnum):
    OPEN_FAILED = "open_failed"
    MIGRATION_FAILED = "migration_failed"
    QUERY_FAILED = "query_failed"
    NOT_INITIALIZED = "not_initialized"


@dataclass(frozen=True)
class DatabaseError:
    kind: DatabaseErrorKind
    message: str
    cause: Any = None


class ConfigErrorKind(StrEnum):
    PARSE_ERROR = "parse_error"
    VALIDATION_ERROR = "validation_error"
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"


@dataclass(frozen=True)
class ConfigError:
    """Failure reading or writing the persisted calendar configuration."""
    kind: ConfigErrorKind
    message: str
    cause: Any = None


# Calendar provider errors


@dataclass(frozen=True)
class AuthExpired:
    """The account must be reauthorized before the provider can be used."""
    account: str
    reason: str


@dataclass(frozen=True)
class AuthRequired:
    """OAuth client configuration is missing."""
    message: str


@dataclass(frozen=True)
class ApiError:
    message: str
    status_code: int


@dataclass(frozen=True)
class NetworkError:
    """No usable response arrived (connection failure or timeout)."""
    message: str
    cause: Any = None


@dataclass(frozen=True)
class InvalidUrl:
    message: str


@dataclass(frozen=True)
class ParseError:
    message: str
    cause: Any = None


CalendarError: TypeAlias = AuthExpired | AuthRequired | ApiError | NetworkError | InvalidUrl | ParseError


class SyncStep(StrEnum):
    """Step of a synchronization flow at which an error occurred."""
    CONTEXT = "context"
    EXCHANGE_CODE = "exchange_code"
    PERSIST_TOKENS = "persist_tokens"
    LOAD_TOKENS = "load_tokens"
    LIST_CALENDARS = "list_calendars"
    LOAD_CONFIG = "load_config"
    SAVE_CONFIG = "save_config"
    FETCH_EVENTS = "fetch_events"
    SAVE_EVENTS = "save_events"


@dataclass(frozen=True)
class SyncError:
    """Any error met during a synchronization flow, tagged with its step."""
    step: SyncStep
    cause: CryptoError | StoreError | DatabaseError | ConfigError | CalendarError | None = None
    message: str = ""
    calendar_id: str | None = None


class SetupErrorKind(StrEnum):
    KEY_EXISTS = "key_exists"
    SECRET_FAILED = "secret_failed"
    CONFIG_FAILED = "config_failed"


@dataclass(frozen=True)
class SetupError:
    """Failure saving the LLM provider selection or its API key."""
    kind: SetupErrorKind
    message: str
    cause: Any = None
