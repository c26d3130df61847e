"""Data models shared by the translation engine and the assistant."""

import time
import uuid
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from novtl.config import API_ENDPOINTS, DEFAULT_MODELS, OPENAI_COMPATIBLE, AppConfig

MIN_API_KEY_LENGTH = 6

Language = Literal["en", "id"]
TranslationMode = Literal["standard", "high_quality"]


def generate_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------


class ProviderConfig(BaseModel):
    """Resolved, immutable provider settings for one request."""

    model_config = ConfigDict(frozen=True)

    provider: str
    model: str
    api_key: str = Field(default="", repr=False)
    endpoint: Optional[str] = None

    def has_plausible_key(self) -> bool:
        """A key is usable only if present and not obviously truncated."""
        return bool(self.api_key) and len(self.api_key) >= MIN_API_KEY_LENGTH


class AppSettings(BaseModel):
    """User settings as read from the settings store."""

    active_provider: str = "Gemini"
    api_keys: dict[str, str] = Field(default_factory=dict)
    selected_model: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MODELS))
    app_language: Language = "en"
    translation_mode: TranslationMode = "standard"
    # Overrides the endpoint table, e.g. the OpenAI-compatible base URL
    endpoints: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_config(cls, config: AppConfig) -> "AppSettings":
        """Build user settings from environment configuration."""
        sections = config.provider_keys()
        return cls(
            active_provider=config.active_provider,
            api_keys={name: s.api_key for name, s in sections.items() if s.api_key},
            selected_model={name: s.model or DEFAULT_MODELS[name] for name, s in sections.items()},
            app_language=config.app_language if config.app_language in ("en", "id") else "en",
            translation_mode=config.translation_mode
            if config.translation_mode in ("standard", "high_quality")
            else "standard",
            endpoints={OPENAI_COMPATIBLE: config.openai.base_url},
        )


def resolve_provider_config(settings: AppSettings) -> ProviderConfig:
    """Resolve the active provider's config once from user settings."""
    provider = settings.active_provider
    model = settings.selected_model.get(provider) or DEFAULT_MODELS.get(provider, "")
    return ProviderConfig(
        provider=provider,
        model=model,
        api_key=settings.api_keys.get(provider, ""),
        endpoint=settings.endpoints.get(provider) or API_ENDPOINTS.get(provider),
    )


def has_valid_api_key(settings: AppSettings) -> bool:
    return resolve_provider_config(settings).has_plausible_key()


# ---------------------------------------------------------------------------
# Project / glossary
# ---------------------------------------------------------------------------


class GlossaryEntry(BaseModel):
    """A single glossary entry."""

    original: str = Field(description="Source-language term")
    translated: str = Field(default="", description="Required translation")
    source_language: str = Field(default="Auto Detect", description="Source-language tag")
    id: str = Field(default_factory=generate_id)


class NovelProject(BaseModel):
    """Project data the engine reads from the project store."""

    id: str = "default-project-001"
    name: str = "New Novel"
    source_language: str = "Auto Detect"
    target_language: str = "Indonesian"
    translation_instruction: str = "Novel style that flows naturally."
    glossary: list[GlossaryEntry] = Field(default_factory=list)


class EditorContent(BaseModel):
    """Snapshot of the editor's current source and translation."""

    source_text: str = ""
    translated_text: str = ""


class SavedTranslation(BaseModel):
    """A saved chapter translation, searchable by the assistant."""

    id: str = Field(default_factory=generate_id)
    project_id: str
    name: str
    chapter_number: Optional[int] = None
    translated_text: str = ""


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------


class ChunkState(str, Enum):
    """Lifecycle of one chunk inside a translation session."""

    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    RETRYING = "retrying"
    FAILED = "failed"


class TranslationResult(BaseModel):
    """Result of a translate call."""

    text: str
    # Reserved: no language detection is performed
    detected_language: Optional[str] = None
    chunks: int = 0
    # Final state and attempts used, per chunk in order
    chunk_states: list[ChunkState] = Field(default_factory=list)
    attempts: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Assistant actions
# ---------------------------------------------------------------------------


class AddGlossaryItem(BaseModel):
    original: str
    translated: str = ""


class DeleteGlossaryItem(BaseModel):
    original: str
    translated: Optional[str] = None


class PlainText(BaseModel):
    type: Literal["plain_text"] = "plain_text"
    message: str


class AddGlossary(BaseModel):
    type: Literal["add_glossary"] = "add_glossary"
    payload: list[AddGlossaryItem]
    message: str


class DeleteGlossary(BaseModel):
    type: Literal["delete_glossary"] = "delete_glossary"
    payload: list[DeleteGlossaryItem]
    message: str


class ClearChat(BaseModel):
    type: Literal["clear_chat"] = "clear_chat"
    message: str


class SearchHistory(BaseModel):
    type: Literal["search_history"] = "search_history"
    query: str
    message: str


class ReadFullContext(BaseModel):
    type: Literal["read_full_context"] = "read_full_context"
    message: str


AssistantAction = Annotated[
    Union[PlainText, AddGlossary, DeleteGlossary, ClearChat, SearchHistory, ReadFullContext],
    Field(discriminator="type"),
]

PendingAction = Annotated[Union[AddGlossary, DeleteGlossary], Field(discriminator="type")]


class ChatMessage(BaseModel):
    """One message in the assistant conversation."""

    id: str = Field(default_factory=generate_id)
    role: Literal["user", "model"]
    text: str
    is_hidden: bool = False
    pending_action: Optional[PendingAction] = None
    timestamp: float = Field(default_factory=time.time)
