"""Configuration management with environment variables and CLI overrides."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.table import Table

# ---------------------------------------------------------------------------
# Provider registry
# ---------------------------------------------------------------------------

GEMINI = "Gemini"
OPENAI = "OpenAI (GPT)"
DEEPSEEK = "DeepSeek"
GROK = "Grok (xAI)"
OPENAI_COMPATIBLE = "OpenAI-compatible"

LLM_PROVIDERS = [GEMINI, OPENAI, DEEPSEEK, GROK, OPENAI_COMPATIBLE]

# Chat-completions endpoints for the raw HTTP/SSE transport.
API_ENDPOINTS: dict[str, str] = {
    OPENAI: "https://api.openai.com/v1/chat/completions",
    DEEPSEEK: "https://api.deepseek.com/chat/completions",
    GROK: "https://api.x.ai/v1/chat/completions",
}

PROVIDER_MODELS: dict[str, list[str]] = {
    GEMINI: [
        "gemini-3-flash-preview",
        "gemini-3-pro-preview",
        "gemini-flash-latest",
        "gemini-flash-lite-latest",
        "gemini-2.0-flash-exp",
    ],
    OPENAI: ["gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo"],
    DEEPSEEK: ["deepseek-chat", "deepseek-reasoner"],
    GROK: ["grok-2-latest", "grok-beta"],
    OPENAI_COMPATIBLE: ["gpt-4.1"],
}

DEFAULT_MODELS: dict[str, str] = {name: models[0] for name, models in PROVIDER_MODELS.items()}

# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ProviderKeyConfig(BaseSettings):
    """API key and model override for one provider.

    Empty fields mean "not configured"; the model falls back to the
    provider default.
    """

    api_key: str = Field(default="", description="API key")
    model: str = Field(default="", description="Model name")


class GeminiConfig(ProviderKeyConfig):
    """Google Gemini credentials."""

    model_config = SettingsConfigDict(env_prefix="GEMINI_")


class OpenAIConfig(ProviderKeyConfig):
    """OpenAI credentials (raw HTTP transport)."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="API base URL for the OpenAI-compatible SDK transport",
    )


class DeepSeekConfig(ProviderKeyConfig):
    """DeepSeek credentials."""

    model_config = SettingsConfigDict(env_prefix="DEEPSEEK_")


class GrokConfig(ProviderKeyConfig):
    """xAI Grok credentials."""

    model_config = SettingsConfigDict(env_prefix="GROK_")


class TranslationConfig(BaseSettings):
    """Translation engine configuration."""

    model_config = SettingsConfigDict(env_prefix="TRANSLATION_")

    chunk_size: int = Field(default=3500, description="Maximum characters per chunk")
    context_tail: int = Field(
        default=300, description="Characters of previous chunk source carried as context"
    )
    max_attempts: int = Field(default=3, description="Attempts per chunk before giving up")
    backoff_base_ms: int = Field(
        default=1000, description="Base retry delay in ms (doubled per attempt)"
    )
    chunk_delay_ms: int = Field(default=500, description="Pacing delay between chunks in ms")
    max_request_tokens: int = Field(
        default=120_000, description="Estimated token ceiling for a single request"
    )

    # Sampling temperatures
    draft_temperature: float = Field(default=0.3, description="Hidden draft pass / one-shot calls")
    standard_temperature: float = Field(default=0.5, description="Standard streaming pass")
    polish_temperature: float = Field(default=0.7, description="Two-pass polish stream")


class ChatConfig(BaseSettings):
    """Assistant chat configuration."""

    model_config = SettingsConfigDict(env_prefix="CHAT_")

    history_turns: int = Field(default=6, description="Past turns sent with each request")
    history_turn_chars: int = Field(default=500, description="Characters kept per past turn")
    glossary_summary_cap: int = Field(
        default=500, description="Glossary entries listed in the system instruction"
    )
    snippet_chars: int = Field(default=1000, description="Editor snippet size (head + tail)")
    max_tool_depth: int = Field(default=3, description="Maximum tool-driven re-entries")
    delete_cap: int = Field(default=50, description="Maximum glossary deletions per tool call")
    temperature: float = Field(default=0.4, description="Chat temperature")
    search_title_chars: int = Field(
        default=20_000, description="Characters injected for a whole-chapter title match"
    )
    search_snippet_chars: int = Field(
        default=500, description="Characters injected per content search hit"
    )
    search_max_hits: int = Field(default=5, description="Content search hits injected")


# ---------------------------------------------------------------------------
# Main AppConfig
# ---------------------------------------------------------------------------


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(env_prefix="NOVTL_")

    log_level: str = Field(default="INFO", description="Logging level")
    active_provider: str = Field(default=GEMINI, description="Provider used for requests")
    app_language: str = Field(default="en", description="Assistant reply language (en/id)")
    translation_mode: str = Field(
        default="standard", description="Translation mode: standard or high_quality"
    )
    request_timeout: float = Field(default=120.0, description="HTTP timeout in seconds")

    # Sub-configs
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    deepseek: DeepSeekConfig = Field(default_factory=DeepSeekConfig)
    grok: GrokConfig = Field(default_factory=GrokConfig)
    translation: TranslationConfig = Field(default_factory=TranslationConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)

    @classmethod
    def load(cls, env_file: Optional[Path] = None) -> "AppConfig":
        """Load configuration from environment and .env file."""
        from dotenv import load_dotenv

        if env_file and env_file.exists():
            load_dotenv(env_file)
        else:
            # Try to find .env in current directory or parent directories
            load_dotenv()

        return cls(
            gemini=GeminiConfig(),
            openai=OpenAIConfig(),
            deepseek=DeepSeekConfig(),
            grok=GrokConfig(),
            translation=TranslationConfig(),
            chat=ChatConfig(),
        )

    def provider_keys(self) -> dict[str, ProviderKeyConfig]:
        """Map provider name to its credential section."""
        return {
            GEMINI: self.gemini,
            OPENAI: self.openai,
            DEEPSEEK: self.deepseek,
            GROK: self.grok,
            OPENAI_COMPATIBLE: self.openai,
        }


# ---------------------------------------------------------------------------
# Global config singleton
# ---------------------------------------------------------------------------

_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def mask_key(api_key: str) -> str:
    """Render an API key safely for display."""
    return api_key[:8] + "..." if len(api_key) > 8 else "***"


def log_provider_summary(config: Optional[AppConfig] = None) -> None:
    """Print a table of configured providers."""
    console = Console()
    app_config = config or get_config()

    console.print("\n[bold blue]=== LLM Providers ===[/bold blue]")

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Provider", style="cyan")
    table.add_column("Model", style="green")
    table.add_column("Endpoint", style="yellow")
    table.add_column("API Key", style="magenta")
    table.add_column("Active", style="dim", justify="center")

    for name, section in app_config.provider_keys().items():
        if name == OPENAI_COMPATIBLE:
            endpoint = app_config.openai.base_url
        else:
            endpoint = API_ENDPOINTS.get(name, "(native SDK)")
        table.add_row(
            name,
            section.model or DEFAULT_MODELS[name],
            endpoint,
            mask_key(section.api_key) if section.api_key else "[red]not set[/red]",
            "✓" if name == app_config.active_provider else "",
        )

    console.print(table)
    console.print()
