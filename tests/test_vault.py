"""Tests for secret keys and the encrypted secret store."""

import pytest
from sqlmodel import select

from calhub.core.errors import StoreErrorKind
from calhub.core.result import NOTHING, Err, Ok, Some
from calhub.crypto.encryption import import_key
from calhub.models import Credential
from calhub.vault.keys import (
    LLM_SECRET_KEYS,
    PROVIDER_SECRET_KEYS,
    LLMProvider,
    account_from_oauth_key,
    is_secret_key,
    oauth_token_key,
)
from calhub.vault.store import SecretStore
from conftest import OTHER_KEY

TOKEN_KEY = "google:a@example.com:oauth-tokens"


@pytest.fixture(name="store")
def store_fixture(database, key) -> SecretStore:
    return SecretStore(database, key)


class TestSecretKeys:
    """Tests for the secret key namespace."""

    def test_llm_keys_are_valid(self):
        for key in LLM_SECRET_KEYS:
            assert is_secret_key(key)

    def test_every_provider_has_a_key(self):
        assert set(PROVIDER_SECRET_KEYS) == set(LLMProvider)
        assert PROVIDER_SECRET_KEYS[LLMProvider.CLAUDE] == "llm:anthropic:api-key"

    def test_oauth_key(self):
        assert oauth_token_key("google", "a@example.com") == TOKEN_KEY
        assert is_secret_key(TOKEN_KEY)
        assert account_from_oauth_key(TOKEN_KEY) == Some("a@example.com")

    @pytest.mark.parametrize(
        "key",
        [
            "",
            "llm:unknown:api-key",
            "google::oauth-tokens",
            "google: :oauth-tokens",
            "outlook:a@example.com:oauth-tokens",
            "google:a@example.com:refresh-token",
            "google",
        ],
    )
    def test_unknown_keys_are_rejected(self, key):
        assert not is_secret_key(key)
        assert account_from_oauth_key(key) is NOTHING


class TestSecretStore:
    """Tests for SecretStore."""

    def test_set_and_get(self, store: SecretStore):
        assert store.set(TOKEN_KEY, b'{"accessToken": "a"}') == Ok(None)
        assert store.get(TOKEN_KEY) == Ok(Some(b'{"accessToken": "a"}'))

    def test_missing_key_is_nothing(self, store: SecretStore):
        assert store.get("llm:openai:api-key") == Ok(NOTHING)

    def test_overwrite(self, store: SecretStore):
        store.set("llm:openai:api-key", b"first")
        store.set("llm:openai:api-key", b"second")
        assert store.get("llm:openai:api-key") == Ok(Some(b"second"))

    def test_only_ciphertext_is_stored(self, store: SecretStore, database):
        """Test that the credentials table never holds the plaintext."""
        store.set("llm:anthropic:api-key", b"sk-ant-plaintext")

        with database.session() as session:
            row = session.exec(select(Credential)).one()

        assert row.key == "llm:anthropic:api-key"
        assert row.encrypted_value.startswith("v1:")
        assert "sk-ant-plaintext" not in row.encrypted_value

    def test_invalid_key(self, store: SecretStore):
        for operation in (store.get, store.delete, store.has):
            match operation("not-a-key"):
                case Err(error):
                    assert error.kind == StoreErrorKind.INVALID_KEY
                    assert error.key == "not-a-key"
                case Ok():
                    pytest.fail("invalid key accepted")
        assert store.set("not-a-key", b"x").error.kind == StoreErrorKind.INVALID_KEY

    def test_corrupted_value_is_decrypt_failure(self, store: SecretStore, database):
        """Test that a corrupted stored value surfaces as an error, not as absent."""
        store.set(TOKEN_KEY, b"tokens")
        with database.session() as session:
            row = session.get(Credential, TOKEN_KEY)
            row.encrypted_value = row.encrypted_value[:-6] + "AAAAA="
            session.add(row)
            session.commit()

        result = store.get(TOKEN_KEY)
        assert isinstance(result, Err)
        assert result.error.kind == StoreErrorKind.DECRYPT_FAILED

    def test_wrong_key_is_decrypt_failure(self, store: SecretStore, database):
        store.set(TOKEN_KEY, b"tokens")
        other = SecretStore(database, import_key(OTHER_KEY).value)

        result = other.get(TOKEN_KEY)
        assert isinstance(result, Err)
        assert result.error.kind == StoreErrorKind.DECRYPT_FAILED

    def test_delete(self, store: SecretStore):
        store.set(TOKEN_KEY, b"tokens")
        assert store.has(TOKEN_KEY) == Ok(True)

        assert store.delete(TOKEN_KEY) == Ok(None)
        assert store.has(TOKEN_KEY) == Ok(False)
        assert store.get(TOKEN_KEY) == Ok(NOTHING)

    def test_delete_missing_key_succeeds(self, store: SecretStore):
        assert store.delete(TOKEN_KEY) == Ok(None)

    def test_list_keys(self, store: SecretStore):
        assert store.list_keys() == Ok([])
        store.set(TOKEN_KEY, b"tokens")
        store.set("llm:openai:api-key", b"sk-openai")

        assert store.list_keys() == Ok([TOKEN_KEY, "llm:openai:api-key"])
