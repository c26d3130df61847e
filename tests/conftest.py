"""Pytest configuration and fixtures."""

from typing import Callable, Optional

import pytest
from dotenv import load_dotenv

from novtl.config import GEMINI, ChatConfig, TranslationConfig
from novtl.models import AppSettings, NovelProject, ProviderConfig
from novtl.providers.base import ChatTurn, ProviderAdapter

# Load .env at import time for pytest
load_dotenv()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")


TEST_KEY = "test-key-123456"


def make_provider_config(api_key: str = TEST_KEY, provider: str = GEMINI) -> ProviderConfig:
    return ProviderConfig(provider=provider, model="test-model", api_key=api_key)


def _pieces(text: str, size: int = 4) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


class FakeAdapter(ProviderAdapter):
    """Scripted provider adapter that records every request.

    ``streams`` items are a text, an exception, or a ``(partial_text, exception)``
    tuple that streams the partial text before failing. ``drafts`` feed
    :meth:`send_once`; ``chat_turns`` feed both chat methods.
    """

    def __init__(
        self,
        streams: Optional[list] = None,
        drafts: Optional[list] = None,
        chat_turns: Optional[list] = None,
        config: Optional[ProviderConfig] = None,
        max_request_tokens: int = 120_000,
    ):
        super().__init__(config or make_provider_config(), max_request_tokens)
        self.streams = list(streams or [])
        self.drafts = list(drafts or [])
        self.chat_turns = list(chat_turns or [])
        self.calls: list[dict] = []
        self.on_stream: Optional[Callable] = None
        self.closed = False

    def calls_of(self, kind: str) -> list[dict]:
        return [c for c in self.calls if c["kind"] == kind]

    @staticmethod
    def _take(script: list, default):
        item = script.pop(0) if script else default
        if isinstance(item, BaseException):
            raise item
        return item

    async def send_once(self, prompt, system_instruction, *, temperature=0.3, cancel=None):
        self._preflight(prompt, system_instruction, cancel=cancel)
        self.calls.append(
            {"kind": "once", "prompt": prompt, "system": system_instruction, "temperature": temperature}
        )
        return self._take(self.drafts, "draft")

    async def send_streaming(self, prompt, system_instruction, on_chunk, cancel=None, *, temperature=0.5):
        self._preflight(prompt, system_instruction, cancel=cancel)
        self.calls.append(
            {"kind": "stream", "prompt": prompt, "system": system_instruction, "temperature": temperature}
        )
        if self.on_stream is not None:
            self.on_stream(len(self.calls_of("stream")))

        item = self._take(self.streams, "translated")
        text, error = item if isinstance(item, tuple) else (item, None)
        accumulated = ""
        for piece in _pieces(text):
            if cancel is not None:
                cancel.raise_if_cancelled()
            accumulated += piece
            on_chunk(piece)
        if error is not None:
            raise error
        return accumulated

    async def send_chat_turn(self, history, system_instruction, tools, *, temperature=0.4, cancel=None):
        self._preflight(system_instruction, *(t.text for t in history), cancel=cancel)
        self.calls.append(
            {"kind": "chat", "history": history, "system": system_instruction, "temperature": temperature}
        )
        return self._take(self.chat_turns, ChatTurn(text="ok"))

    async def stream_chat_turn(
        self, history, system_instruction, tools, on_chunk, cancel=None, *, temperature=0.4
    ):
        self._preflight(system_instruction, *(t.text for t in history), cancel=cancel)
        self.calls.append(
            {"kind": "chat", "history": history, "system": system_instruction, "temperature": temperature}
        )
        turn = self._take(self.chat_turns, ChatTurn(text="ok"))
        for piece in _pieces(turn.text):
            if cancel is not None:
                cancel.raise_if_cancelled()
            on_chunk(piece)
        return turn

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def translation_config():
    """Translation config with small chunks."""
    return TranslationConfig(chunk_size=50)


@pytest.fixture
def chat_config():
    return ChatConfig()


@pytest.fixture
def project():
    return NovelProject(target_language="English")


@pytest.fixture
def settings():
    """Settings with a usable Gemini key and English replies."""
    return AppSettings(active_provider=GEMINI, api_keys={GEMINI: TEST_KEY}, app_language="en")
