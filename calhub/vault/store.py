"""Encrypted key/value store for secrets.

Values are encrypted and serialized on the way in and deserialized and
decrypted on the way out, so the ``credentials`` table only ever holds
ciphertext produced by :mod:`calhub.crypto.encryption`. A value that fails to
decrypt is reported as ``DECRYPT_FAILED``, never as missing.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from calhub.core.database import Database
from calhub.core.errors import StoreError, StoreErrorKind
from calhub.core.result import NOTHING, Err, Ok, Option, Result, Some
from calhub.crypto.encryption import EncryptionKey, decrypt, deserialize, encrypt, serialize
from calhub.models import Credential
from calhub.vault.keys import is_secret_key

logger = logging.getLogger(__name__)


def _invalid_key(key: str) -> Err[StoreError]:
    return Err(StoreError(StoreErrorKind.INVALID_KEY, key, f"Unknown secret key: {key!r}"))


class SecretStore:
    """Secret persistence facade over the ``credentials`` table."""

    def __init__(self, database: Database, key: EncryptionKey):
        self._database = database
        self._key = key

    def get(self, key: str) -> Result[Option[bytes], StoreError]:
        if not is_secret_key(key):
            return _invalid_key(key)

        try:
            with self._database.session() as session:
                row = session.get(Credential, key)
                stored = row.encrypted_value if row else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read secret {key}: {e}")
            return Err(StoreError(StoreErrorKind.READ_FAILED, key, "Failed to read secret", e))

        if stored is None:
            return Ok(NOTHING)

        match deserialize(stored).and_then(lambda blob: decrypt(blob, self._key)):
            case Ok(plaintext):
                return Ok(Some(plaintext))
            case Err(error):
                logger.error(f"Stored secret {key} could not be decrypted")
                return Err(StoreError.from_crypto(key, error))

    def set(self, key: str, value: bytes) -> Result[None, StoreError]:
        if not is_secret_key(key):
            return _invalid_key(key)

        match encrypt(value, self._key):
            case Err(error):
                return Err(StoreError.from_crypto(key, error))
            case Ok(blob):
                encrypted_value = serialize(blob)

        try:
            with self._database.session() as session:
                row = session.get(Credential, key)
                if row:
                    row.encrypted_value = encrypted_value
                    row.updated_at = datetime.now(UTC)
                else:
                    row = Credential(key=key, encrypted_value=encrypted_value)
                session.add(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write secret {key}: {e}")
            return Err(StoreError(StoreErrorKind.WRITE_FAILED, key, "Failed to write secret", e))

        return Ok(None)

    def delete(self, key: str) -> Result[None, StoreError]:
        """Delete a secret. Deleting a missing key succeeds."""
        if not is_secret_key(key):
            return _invalid_key(key)

        try:
            with self._database.session() as session:
                row = session.get(Credential, key)
                if row:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete secret {key}: {e}")
            return Err(StoreError(StoreErrorKind.DELETE_FAILED, key, "Failed to delete secret", e))

        return Ok(None)

    def has(self, key: str) -> Result[bool, StoreError]:
        if not is_secret_key(key):
            return _invalid_key(key)

        try:
            with self._database.session() as session:
                return Ok(session.get(Credential, key) is not None)
        except SQLAlchemyError as e:
            return Err(StoreError(StoreErrorKind.READ_FAILED, key, "Failed to read secret", e))

    def list_keys(self) -> Result[list[str], StoreError]:
        """Keys of every stored secret, sorted. Values are not decrypted."""
        try:
            with self._database.session() as session:
                return Ok(list(session.exec(select(Credential.key).order_by(Credential.key)).all()))
        except SQLAlchemyError as e:
            logger.error(f"Failed to list secrets: {e}")
            return Err(StoreError(StoreErrorKind.READ_FAILED, "*", "Failed to list secrets", e))
