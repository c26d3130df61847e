"""Provider adapter interface shared by every LLM backend."""

import json
import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel

from novtl.cancel import CancelToken
from novtl.errors import MissingCredential, TokenLimitExceeded
from novtl.models import ProviderConfig

OnChunk = Callable[[str], None]

CHARS_PER_TOKEN = 3.5


def estimate_tokens(text: str) -> int:
    """Rough token estimate used to reject oversized requests locally."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class Turn(BaseModel):
    """One conversation turn in provider-neutral form."""

    role: Literal["user", "model"]
    text: str


class ToolCall(BaseModel):
    """A function call requested by the model.

    ``arguments`` is ``None`` when the provider sent arguments that could
    not be decoded into an object.
    """

    name: str
    arguments: Optional[dict[str, Any]] = None


class ChatTurn(BaseModel):
    """Result of a chat request: text, a tool call, or both."""

    text: str = ""
    tool_call: Optional[ToolCall] = None


def decode_arguments(raw: Any) -> Optional[dict[str, Any]]:
    """Decode tool-call arguments that may arrive as a JSON string or a mapping."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


class ToolCallAccumulator:
    """Reassemble OpenAI-style streamed ``tool_calls`` deltas by index."""

    def __init__(self) -> None:
        self._calls: dict[int, dict[str, str]] = {}

    def feed(self, index: int, name: Optional[str], arguments: Optional[str]) -> None:
        call = self._calls.setdefault(index, {"name": "", "arguments": ""})
        if name:
            call["name"] += name
        if arguments:
            call["arguments"] += arguments

    def first(self) -> Optional[ToolCall]:
        if not self._calls:
            return None
        call = self._calls[min(self._calls)]
        if not call["name"]:
            return None
        return ToolCall(name=call["name"], arguments=decode_arguments(call["arguments"]))


class ProviderAdapter(ABC):
    """Uniform send-once / send-streaming / chat interface over one backend.

    Adapters never retry: a failed call raises and the orchestrator decides.
    Cancellation is checked before each network call and on every streamed
    event; an aborted call discards whatever it had accumulated.
    """

    def __init__(self, config: ProviderConfig, max_request_tokens: int = 120_000):
        self.config = config
        self.max_request_tokens = max_request_tokens

    def _preflight(self, *texts: str, cancel: Optional[CancelToken] = None) -> None:
        if not self.config.has_plausible_key():
            raise MissingCredential(self.config.provider)
        if cancel is not None:
            cancel.raise_if_cancelled()
        if estimate_tokens("".join(texts)) > self.max_request_tokens:
            raise TokenLimitExceeded("TokenLimit: Chunk is too complex.")

    @abstractmethod
    async def send_once(
        self,
        prompt: str,
        system_instruction: str,
        *,
        temperature: float = 0.3,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        """Blocking request; returns the full response text."""

    @abstractmethod
    async def send_streaming(
        self,
        prompt: str,
        system_instruction: str,
        on_chunk: OnChunk,
        cancel: Optional[CancelToken] = None,
        *,
        temperature: float = 0.5,
    ) -> str:
        """Stream a response, forwarding each fragment to ``on_chunk``; returns the full text."""

    @abstractmethod
    async def send_chat_turn(
        self,
        history: list[Turn],
        system_instruction: str,
        tools: list[dict],
        *,
        temperature: float = 0.4,
        cancel: Optional[CancelToken] = None,
    ) -> ChatTurn:
        """One chat request with declared tools."""

    @abstractmethod
    async def stream_chat_turn(
        self,
        history: list[Turn],
        system_instruction: str,
        tools: list[dict],
        on_chunk: OnChunk,
        cancel: Optional[CancelToken] = None,
        *,
        temperature: float = 0.4,
    ) -> ChatTurn:
        """Streaming chat request; text fragments go to ``on_chunk`` as they arrive."""

    async def aclose(self) -> None:
        """Release transport resources."""
