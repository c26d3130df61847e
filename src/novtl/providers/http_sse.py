"""Chat-completions over raw HTTP with Server-Sent-Events streaming.

Used for OpenAI, DeepSeek and Grok, which all accept the same request
shape and stream ``data: {json}`` lines terminated by ``data: [DONE]``.
"""

import json
from typing import Any, Optional

import httpx
import structlog

from novtl.cancel import CancelToken
from novtl.errors import TransportError
from novtl.models import ProviderConfig
from novtl.providers.base import (
    ChatTurn,
    OnChunk,
    ProviderAdapter,
    ToolCall,
    ToolCallAccumulator,
    Turn,
    decode_arguments,
)
from novtl.providers.tools import to_openai_tools

logger = structlog.get_logger()

SSE_DONE = object()
"""Returned by :func:`parse_sse_line` when the stream-terminating sentinel is seen."""


def parse_sse_line(line: str) -> Any:
    """Decode one SSE line.

    Returns ``None`` for blank, comment, or malformed lines, :data:`SSE_DONE`
    for the ``[DONE]`` sentinel, and the decoded JSON payload otherwise.
    """
    line = line.strip()
    if not line:
        return None
    if line.startswith("data:"):
        line = line[len("data:"):].strip()
    try:
        return json.loads(line)
    except ValueError:
        # A JSON payload whose text happens to contain the sentinel is still data
        return SSE_DONE if "[DONE]" in line else None


def _first_choice(payload: Any) -> dict:
    if not isinstance(payload, dict):
        return {}
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return {}
    return choices[0]


def delta_text(payload: Any) -> str:
    """Incremental text from ``choices[0].delta.content``, or ``""``."""
    delta = _first_choice(payload).get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


def _feed_tool_calls(payload: Any, accumulator: ToolCallAccumulator) -> None:
    delta = _first_choice(payload).get("delta")
    if not isinstance(delta, dict):
        return
    for call in delta.get("tool_calls") or []:
        if not isinstance(call, dict):
            continue
        function = call.get("function") or {}
        accumulator.feed(call.get("index", 0), function.get("name"), function.get("arguments"))


class HttpSSEAdapter(ProviderAdapter):
    """Generic HTTP chat-completions provider."""

    def __init__(
        self,
        config: ProviderConfig,
        max_request_tokens: int = 120_000,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(config, max_request_tokens)
        if not config.endpoint:
            raise ValueError(f"No endpoint configured for provider {config.provider}")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    def _messages(self, system_instruction: str, history: list[Turn]) -> list[dict]:
        messages = [{"role": "system", "content": system_instruction}]
        for turn in history:
            role = "assistant" if turn.role == "model" else "user"
            messages.append({"role": role, "content": turn.text})
        return messages

    async def _post(self, body: dict) -> dict:
        try:
            response = await self.client.post(self.config.endpoint, headers=self.headers, json=body)
        except httpx.HTTPError as e:
            raise TransportError(f"Connection failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            message = f"API Error {response.status_code}"
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                message = data["error"].get("message") or message
            logger.warning("provider_http_error", provider=self.config.provider, status=response.status_code)
            raise TransportError(message, status=response.status_code, body=response.text)
        if not isinstance(data, dict):
            raise TransportError("Unreadable response body", status=response.status_code)
        return data

    async def _stream(
        self,
        body: dict,
        on_chunk: OnChunk,
        cancel: Optional[CancelToken],
        accumulator: Optional[ToolCallAccumulator] = None,
    ) -> str:
        accumulated = ""
        try:
            async with self.client.stream(
                "POST", self.config.endpoint, headers=self.headers, json=body
            ) as response:
                if response.is_error:
                    await response.aread()
                    logger.warning(
                        "provider_http_error", provider=self.config.provider, status=response.status_code
                    )
                    raise TransportError(
                        f"HTTP Error {response.status_code}",
                        status=response.status_code,
                        body=response.text,
                    )

                async for line in response.aiter_lines():
                    if cancel is not None:
                        cancel.raise_if_cancelled()
                    event = parse_sse_line(line)
                    if event is SSE_DONE:
                        break
                    if event is None:
                        continue
                    if accumulator is not None:
                        _feed_tool_calls(event, accumulator)
                    content = delta_text(event)
                    if content:
                        accumulated += content
                        on_chunk(content)
        except httpx.HTTPError as e:
            raise TransportError(f"Stream interrupted: {e}") from e

        return accumulated

    async def send_once(
        self,
        prompt: str,
        system_instruction: str,
        *,
        temperature: float = 0.3,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        self._preflight(prompt, system_instruction, cancel=cancel)
        body = {
            "model": self.config.model,
            "messages": self._messages(system_instruction, [Turn(role="user", text=prompt)]),
            "stream": False,
            "temperature": temperature,
        }
        data = await self._post(body)
        message = _first_choice(data).get("message") or {}
        return message.get("content") or ""

    async def send_streaming(
        self,
        prompt: str,
        system_instruction: str,
        on_chunk: OnChunk,
        cancel: Optional[CancelToken] = None,
        *,
        temperature: float = 0.5,
    ) -> str:
        self._preflight(prompt, system_instruction, cancel=cancel)
        body = {
            "model": self.config.model,
            "messages": self._messages(system_instruction, [Turn(role="user", text=prompt)]),
            "stream": True,
            "temperature": temperature,
        }
        return await self._stream(body, on_chunk, cancel)

    async def send_chat_turn(
        self,
        history: list[Turn],
        system_instruction: str,
        tools: list[dict],
        *,
        temperature: float = 0.4,
        cancel: Optional[CancelToken] = None,
    ) -> ChatTurn:
        self._preflight(system_instruction, *(t.text for t in history), cancel=cancel)
        body = {
            "model": self.config.model,
            "messages": self._messages(system_instruction, history),
            "tools": to_openai_tools(tools),
            "tool_choice": "auto",
            "temperature": temperature,
        }
        data = await self._post(body)
        choice = _first_choice(data)
        if not choice:
            raise TransportError("Empty response from AI")

        message = choice.get("message") or {}
        tool_calls = message.get("tool_calls") or []
        tool_call = None
        if tool_calls:
            function = tool_calls[0].get("function") or {}
            tool_call = ToolCall(
                name=function.get("name", ""),
                arguments=decode_arguments(function.get("arguments")),
            )
        return ChatTurn(text=message.get("content") or "", tool_call=tool_call)

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
        self._preflight(system_instruction, *(t.text for t in history), cancel=cancel)
        body = {
            "model": self.config.model,
            "messages": self._messages(system_instruction, history),
            "tools": to_openai_tools(tools),
            "tool_choice": "auto",
            "stream": True,
            "temperature": temperature,
        }
        accumulator = ToolCallAccumulator()
        text = await self._stream(body, on_chunk, cancel, accumulator)
        return ChatTurn(text=text, tool_call=accumulator.first())

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
