"""AES-256-GCM encryption of secret material.

Every call to :func:`encrypt` draws a fresh 96-bit IV; reusing an IV with the
same key breaks GCM confidentiality and authenticity. The serialized form is
a single text value safe for one database column::

    v1:<base64 iv>:<base64 ciphertext>:<base64 tag>

Any failure to authenticate or parse a blob is reported as
``DECRYPT_FAILED``; corruption and tampering are indistinguishable.
"""

import base64
import binascii
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from calhub.core.errors import CryptoError, CryptoErrorKind
from calhub.core.result import Err, Ok, Result

FORMAT_VERSION = 1
KEY_LENGTH = 32
IV_LENGTH = 12
TAG_LENGTH = 16

_VERSION_PREFIX = "v"
_SEPARATOR = ":"


@dataclass(frozen=True)
class EncryptionKey:
    """Imported 256-bit key. The raw bytes never appear in repr()."""
    _cipher: AESGCM

    def __repr__(self) -> str:
        return "EncryptionKey(<redacted>)"


@dataclass(frozen=True)
class EncryptedBlob:
    ciphertext: bytes
    iv: bytes
    tag: bytes
    version: int = FORMAT_VERSION


def import_key(secret: str | bytes) -> Result[EncryptionKey, CryptoError]:
    """Import a key from base64 text or from 32 raw bytes."""
    if not secret:
        return Err(CryptoError(
            CryptoErrorKind.KEY_IMPORT_FAILED,
            "Encryption key is not configured. Set ENCRYPTION_KEY (see scripts/generate_key.py).",
        ))

    if isinstance(secret, str):
        try:
            raw = base64.b64decode(secret.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            return Err(CryptoError(CryptoErrorKind.KEY_IMPORT_FAILED, "Encryption key is not valid base64", e))
    else:
        raw = secret

    if len(raw) != KEY_LENGTH:
        return Err(CryptoError(
            CryptoErrorKind.KEY_IMPORT_FAILED,
            f"Encryption key must be {KEY_LENGTH} bytes, got {len(raw)}",
        ))

    return Ok(EncryptionKey(AESGCM(raw)))


def encrypt(plaintext: bytes, key: EncryptionKey) -> Result[EncryptedBlob, CryptoError]:
    iv = os.urandom(IV_LENGTH)
    try:
        sealed = key._cipher.encrypt(iv, plaintext, None)
    except (TypeError, ValueError, OverflowError) as e:
        return Err(CryptoError(CryptoErrorKind.ENCRYPT_FAILED, "Encryption failed", e))

    # AESGCM appends the tag to the ciphertext
    return Ok(EncryptedBlob(ciphertext=sealed[:-TAG_LENGTH], iv=iv, tag=sealed[-TAG_LENGTH:]))


def decrypt(blob: EncryptedBlob, key: EncryptionKey) -> Result[bytes, CryptoError]:
    if blob.version != FORMAT_VERSION:
        return Err(CryptoError(CryptoErrorKind.DECRYPT_FAILED, f"Unsupported blob version: {blob.version}"))
    if len(blob.iv) != IV_LENGTH or len(blob.tag) != TAG_LENGTH:
        return Err(CryptoError(CryptoErrorKind.DECRYPT_FAILED, "Malformed blob"))

    try:
        return Ok(key._cipher.decrypt(blob.iv, blob.ciphertext + blob.tag, None))
    except InvalidTag as e:
        return Err(CryptoError(
            CryptoErrorKind.DECRYPT_FAILED,
            "Decryption failed: data is corrupted or the key does not match",
            e,
        ))


def serialize(blob: EncryptedBlob) -> str:
    parts = (blob.iv, blob.ciphertext, blob.tag)
    encoded = [base64.b64encode(p).decode("ascii") for p in parts]
    return _SEPARATOR.join([f"{_VERSION_PREFIX}{blob.version}", *encoded])


def deserialize(text: str) -> Result[EncryptedBlob, CryptoError]:
    parts = text.split(_SEPARATOR)
    if len(parts) != 4 or not parts[0].startswith(_VERSION_PREFIX):
        return Err(CryptoError(CryptoErrorKind.DECRYPT_FAILED, "Malformed encrypted value"))

    version_text, iv_text, ciphertext_text, tag_text = parts
    if version_text != f"{_VERSION_PREFIX}{FORMAT_VERSION}":
        return Err(CryptoError(CryptoErrorKind.DECRYPT_FAILED, f"Unknown encrypted value version: {version_text}"))

    try:
        iv = base64.b64decode(iv_text, validate=True)
        ciphertext = base64.b64decode(ciphertext_text, validate=True)
        tag = base64.b64decode(tag_text, validate=True)
    except (binascii.Error, ValueError) as e:
        return Err(CryptoError(CryptoErrorKind.DECRYPT_FAILED, "Malformed encrypted value", e))

    if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
        return Err(CryptoError(CryptoErrorKind.DECRYPT_FAILED, "Malformed encrypted value"))

    return Ok(EncryptedBlob(ciphertext=ciphertext, iv=iv, tag=tag, version=FORMAT_VERSION))


def generate_key() -> str:
    """Return a new random key as base64 text."""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")
