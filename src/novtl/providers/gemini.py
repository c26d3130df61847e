"""Google Gemini adapter using the google-genai SDK's native streaming."""

from typing import Optional

import structlog
from google import genai
from google.genai import types

from novtl.cancel import CancelToken
from novtl.providers.base import ChatTurn, OnChunk, ProviderAdapter, ToolCall, Turn, decode_arguments
from novtl.providers.tools import to_gemini_declarations

logger = structlog.get_logger()


def _contents(history: list[Turn]) -> list[types.Content]:
    return [
        types.Content(role="model" if turn.role == "model" else "user", parts=[types.Part(text=turn.text)])
        for turn in history
    ]


def _first_function_call(response) -> Optional[ToolCall]:
    calls = getattr(response, "function_calls", None) or []
    if not calls:
        return None
    call = calls[0]
    return ToolCall(name=call.name or "", arguments=decode_arguments(call.args))


class GeminiAdapter(ProviderAdapter):
    """Native-SDK provider: blocking ``generate_content`` or async chunk iteration."""

    def __init__(self, config, max_request_tokens: int = 120_000, client: Optional[genai.Client] = None):
        super().__init__(config, max_request_tokens)
        self._client = client

    @property
    def client(self) -> genai.Client:
        """Lazy-load the SDK client."""
        if self._client is None:
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    def _config(
        self, system_instruction: str, temperature: float, tools: Optional[list[dict]] = None
    ) -> types.GenerateContentConfig:
        kwargs = {"system_instruction": system_instruction, "temperature": temperature}
        if tools:
            kwargs["tools"] = [types.Tool(function_declarations=to_gemini_declarations(tools))]
        return types.GenerateContentConfig(**kwargs)

    async def send_once(
        self,
        prompt: str,
        system_instruction: str,
        *,
        temperature: float = 0.3,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        self._preflight(prompt, system_instruction, cancel=cancel)
        response = await self.client.aio.models.generate_content(
            model=self.config.model,
            contents=_contents([Turn(role="user", text=prompt)]),
            config=self._config(system_instruction, temperature),
        )
        return response.text or ""

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
        stream = await self.client.aio.models.generate_content_stream(
            model=self.config.model,
            contents=_contents([Turn(role="user", text=prompt)]),
            config=self._config(system_instruction, temperature),
        )
        accumulated = ""
        async for chunk in stream:
            if cancel is not None:
                cancel.raise_if_cancelled()
            text = chunk.text or ""
            if text:
                accumulated += text
                on_chunk(text)
        logger.debug("gemini_stream_complete", model=self.config.model, chars=len(accumulated))
        return accumulated

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
        response = await self.client.aio.models.generate_content(
            model=self.config.model,
            contents=_contents(history),
            config=self._config(system_instruction, temperature, tools),
        )
        tool_call = _first_function_call(response)
        # .text is None (and warns) for function-call-only responses
        text = "" if tool_call else (response.text or "")
        return ChatTurn(text=text, tool_call=tool_call)

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
        stream = await self.client.aio.models.generate_content_stream(
            model=self.config.model,
            contents=_contents(history),
            config=self._config(system_instruction, temperature, tools),
        )
        accumulated = ""
        tool_call = None
        async for chunk in stream:
            if cancel is not None:
                cancel.raise_if_cancelled()
            call = _first_function_call(chunk)
            if call is not None:
                tool_call = tool_call or call
                continue
            text = chunk.text or ""
            if text:
                accumulated += text
                on_chunk(text)
        return ChatTurn(text=accumulated, tool_call=tool_call)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aio.aclose()
            self._client = None
