"""Unit tests for configuration and settings resolution."""

import pytest

from novtl.config import (
    API_ENDPOINTS,
    DEEPSEEK,
    DEFAULT_MODELS,
    GEMINI,
    GROK,
    OPENAI,
    OPENAI_COMPATIBLE,
    AppConfig,
    TranslationConfig,
    get_config,
    mask_key,
    set_config,
)
from novtl.models import AppSettings, ProviderConfig, has_valid_api_key, resolve_provider_config


class TestProviderTable:
    """Test the provider registry."""

    def test_endpoints(self):
        assert API_ENDPOINTS[OPENAI] == "https://api.openai.com/v1/chat/completions"
        assert API_ENDPOINTS[DEEPSEEK] == "https://api.deepseek.com/chat/completions"
        assert API_ENDPOINTS[GROK] == "https://api.x.ai/v1/chat/completions"
        assert GEMINI not in API_ENDPOINTS

    def test_default_models(self):
        assert DEFAULT_MODELS[GEMINI] == "gemini-3-flash-preview"
        assert DEFAULT_MODELS[OPENAI] == "gpt-4o"
        assert DEFAULT_MODELS[DEEPSEEK] == "deepseek-chat"
        assert DEFAULT_MODELS[GROK] == "grok-2-latest"


class TestTranslationConfig:
    """Test translation defaults."""

    def test_defaults(self, monkeypatch):
        for name in ("CHUNK_SIZE", "CONTEXT_TAIL", "MAX_ATTEMPTS", "BACKOFF_BASE_MS", "CHUNK_DELAY_MS"):
            monkeypatch.delenv(f"TRANSLATION_{name}", raising=False)
        config = TranslationConfig()
        assert config.chunk_size == 3500
        assert config.context_tail == 300
        assert config.max_attempts == 3
        assert config.backoff_base_ms == 1000
        assert config.chunk_delay_ms == 500
        assert config.max_request_tokens == 120_000

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TRANSLATION_CHUNK_SIZE", "2000")
        assert TranslationConfig().chunk_size == 2000


class TestAppConfig:
    """Test AppConfig loading."""

    def test_load_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-deep-123456")
        monkeypatch.setenv("NOVTL_ACTIVE_PROVIDER", DEEPSEEK)
        monkeypatch.delenv("DEEPSEEK_MODEL", raising=False)

        config = AppConfig.load(tmp_path / "missing.env")

        assert config.active_provider == DEEPSEEK
        assert config.deepseek.api_key == "sk-deep-123456"
        assert config.provider_keys()[OPENAI_COMPATIBLE] is config.openai

    def test_load_env_file(self, monkeypatch, tmp_path):
        # Record the original value so the one load_dotenv sets is undone
        monkeypatch.setenv("GROK_API_KEY", "placeholder")
        monkeypatch.delenv("GROK_API_KEY")
        env_file = tmp_path / ".env"
        env_file.write_text("GROK_API_KEY=xai-from-file-123\n", encoding="utf-8")

        config = AppConfig.load(env_file)

        assert config.grok.api_key == "xai-from-file-123"

    def test_set_and_get_config(self):
        previous = get_config()
        try:
            custom = AppConfig(active_provider=GROK)
            set_config(custom)
            assert get_config() is custom
        finally:
            set_config(previous)

    def test_mask_key(self):
        assert mask_key("sk-abcdefghijkl") == "sk-abcde..."
        assert mask_key("short") == "***"


class TestSettingsResolution:
    """Test AppSettings and provider resolution."""

    def test_resolve_http_provider(self):
        settings = AppSettings(active_provider=DEEPSEEK, api_keys={DEEPSEEK: "sk-deep-123456"})
        config = resolve_provider_config(settings)
        assert config == ProviderConfig(
            provider=DEEPSEEK,
            model="deepseek-chat",
            api_key="sk-deep-123456",
            endpoint="https://api.deepseek.com/chat/completions",
        )

    def test_resolve_gemini_has_no_endpoint(self):
        settings = AppSettings(active_provider=GEMINI, api_keys={GEMINI: "AIza-123456"})
        assert resolve_provider_config(settings).endpoint is None

    def test_selected_model_override(self):
        settings = AppSettings(
            active_provider=OPENAI,
            api_keys={OPENAI: "sk-123456"},
            selected_model={OPENAI: "gpt-4o-mini"},
        )
        assert resolve_provider_config(settings).model == "gpt-4o-mini"

    def test_provider_config_is_frozen(self):
        config = ProviderConfig(provider=GEMINI, model="m", api_key="secret-key")
        with pytest.raises(Exception):
            config.api_key = "other"
        assert "secret-key" not in repr(config)

    @pytest.mark.parametrize(
        "key,expected",
        [("", False), ("abc", False), ("abcdef", True), ("sk-proj-1234567890", True)],
    )
    def test_has_valid_api_key(self, key, expected):
        settings = AppSettings(active_provider=GEMINI, api_keys={GEMINI: key})
        assert has_valid_api_key(settings) is expected

    def test_from_config(self):
        config = AppConfig(active_provider=OPENAI_COMPATIBLE, app_language="id", translation_mode="turbo")
        config.openai.api_key = "sk-local-123456"
        config.openai.base_url = "http://localhost:11434/v1"

        settings = AppSettings.from_config(config)

        assert settings.app_language == "id"
        assert settings.translation_mode == "standard"
        resolved = resolve_provider_config(settings)
        assert resolved.api_key == "sk-local-123456"
        assert resolved.endpoint == "http://localhost:11434/v1"
