"""Encrypted secret storage table.

This module defines the Credential model which persists one secret per
namespaced key. The value column only ever holds the serialized output of
the encryption service; plaintext secrets never reach the database.
"""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class Credential(SQLModel, table=True):
    """A single encrypted secret.

    Attributes:
        key: Namespaced secret key, e.g. ``google:user@example.com:oauth-tokens``
            or ``llm:openai:api-key`` (unique).
        encrypted_value: Versioned wire string produced by
            ``calhub.crypto.encryption.serialize``.
        created_at: When the secret was first stored.
        updated_at: When the secret was last replaced.
    """
    __tablename__ = "credentials"

    key: str = Field(primary_key=True)
    encrypted_value: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
