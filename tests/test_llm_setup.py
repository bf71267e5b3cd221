"""Tests for first-run setup status and LLM provider settings."""

from unittest.mock import MagicMock

from calhub.core.errors import SetupErrorKind, StoreError, StoreErrorKind
from calhub.core.result import Err, Ok, Some
from calhub.llm.setup import (
    DEFAULT_OLLAMA_BASE_URL,
    LLM_PROVIDER_SETTING_KEY,
    SetupStatus,
    check_setup_status,
    is_first_launch,
    save_setup_settings,
)
from calhub.models import CalendarConfig, CalendarType
from calhub.vault.keys import LLMProvider


def ical_config() -> CalendarConfig:
    return CalendarConfig(
        id="ical-url-https-example-com-x-ics",
        type=CalendarType.ICAL,
        name="Feed",
        enabled=True,
        ical_url="https://example.com/x.ics",
    )


class TestSetupStatus:
    """Tests for SetupStatus completeness."""

    def test_nothing_configured(self):
        assert not SetupStatus(current_provider=None, has_api_key=False, calendar_count=0).is_complete

    def test_calendar_alone_completes_setup(self):
        assert SetupStatus(current_provider=None, has_api_key=False, calendar_count=1).is_complete

    def test_provider_needs_a_key(self):
        assert not SetupStatus(current_provider=LLMProvider.CLAUDE, has_api_key=False, calendar_count=0).is_complete
        assert SetupStatus(current_provider=LLMProvider.CLAUDE, has_api_key=True, calendar_count=0).is_complete

    def test_ollama_needs_no_key(self):
        assert SetupStatus(current_provider=LLMProvider.OLLAMA, has_api_key=False, calendar_count=0).is_complete


class TestCheckSetupStatus:
    """Tests for check_setup_status and is_first_launch."""

    def test_first_launch(self, ctx):
        assert is_first_launch(ctx) == Ok(True)
        assert check_setup_status(ctx) == Ok(
            SetupStatus(current_provider=None, has_api_key=False, calendar_count=0)
        )

    def test_configured(self, ctx, tokens):
        save_setup_settings(ctx, LLMProvider.OPENAI, api_key="sk-openai")
        ctx.config_store.save([ical_config()])
        ctx.token_store.save("a@example.com", tokens)

        status = check_setup_status(ctx).value

        assert is_first_launch(ctx) == Ok(False)
        assert status.current_provider == LLMProvider.OPENAI
        assert status.has_api_key is True
        assert status.calendar_count == 1
        assert status.connected_accounts == ["a@example.com"]
        assert status.is_complete

    def test_unknown_provider_reads_as_unset(self, ctx):
        ctx.settings_repository.set_setting(LLM_PROVIDER_SETTING_KEY, "mystery")

        assert is_first_launch(ctx) == Ok(True)
        assert check_setup_status(ctx).value.current_provider is None

    def test_malformed_calendars_fail(self, ctx):
        ctx.settings_repository.set_setting("calendars", "{broken")

        assert isinstance(check_setup_status(ctx), Err)


class TestSaveSetupSettings:
    """Tests for save_setup_settings."""

    def test_saves_key_and_provider(self, ctx):
        assert save_setup_settings(ctx, LLMProvider.CLAUDE, api_key="sk-ant-1") == Ok(None)

        assert ctx.secret_store.get("llm:anthropic:api-key") == Ok(Some(b"sk-ant-1"))
        assert ctx.settings_repository.get_setting(LLM_PROVIDER_SETTING_KEY) == Ok(Some("claude"))

    def test_existing_key_is_kept(self, ctx):
        save_setup_settings(ctx, LLMProvider.CLAUDE, api_key="sk-ant-1")

        result = save_setup_settings(ctx, LLMProvider.CLAUDE, api_key="sk-ant-2")

        assert result.error.kind == SetupErrorKind.KEY_EXISTS
        assert ctx.secret_store.get("llm:anthropic:api-key") == Ok(Some(b"sk-ant-1"))

    def test_overwrite_existing(self, ctx):
        save_setup_settings(ctx, LLMProvider.CLAUDE, api_key="sk-ant-1")

        assert save_setup_settings(ctx, LLMProvider.CLAUDE, api_key="sk-ant-2", overwrite_existing=True) == Ok(None)
        assert ctx.secret_store.get("llm:anthropic:api-key") == Ok(Some(b"sk-ant-2"))

    def test_ollama_stores_base_url(self, ctx):
        assert save_setup_settings(ctx, LLMProvider.OLLAMA) == Ok(None)

        assert ctx.secret_store.get("llm:ollama:api-key") == Ok(Some(DEFAULT_OLLAMA_BASE_URL.encode()))

    def test_without_key_only_selects_provider(self, ctx):
        assert save_setup_settings(ctx, LLMProvider.GEMINI) == Ok(None)

        assert ctx.secret_store.has("llm:gemini:api-key") == Ok(False)
        assert ctx.settings_repository.get_setting(LLM_PROVIDER_SETTING_KEY) == Ok(Some("gemini"))

    def test_secret_store_failure(self, ctx, monkeypatch):
        failure = Err(StoreError(StoreErrorKind.READ_FAILED, "llm:openai:api-key", "down"))
        monkeypatch.setattr(ctx.secret_store, "has", MagicMock(return_value=failure))

        result = save_setup_settings(ctx, LLMProvider.OPENAI, api_key="sk-openai")

        assert result.error.kind == SetupErrorKind.SECRET_FAILED
        assert ctx.settings_repository.get_setting(LLM_PROVIDER_SETTING_KEY).value.is_nothing()
