"""OpenAI-compatible client wrapper (any base URL speaking chat-completions)."""

from typing import Optional

import structlog

from novtl.cancel import CancelToken
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


class OpenAISDKAdapter(ProviderAdapter):
    """Provider backed by ``openai.AsyncOpenAI`` against a configurable base URL."""

    def __init__(
        self,
        config: ProviderConfig,
        max_request_tokens: int = 120_000,
        base_url: Optional[str] = None,
    ):
        super().__init__(config, max_request_tokens)
        self.base_url = base_url or config.endpoint
        self._client = None

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.base_url,
            )
        return self._client

    def _messages(self, system_instruction: str, history: list[Turn]) -> list[dict]:
        messages = [{"role": "system", "content": system_instruction}]
        for turn in history:
            role = "assistant" if turn.role == "model" else "user"
            messages.append({"role": role, "content": turn.text})
        return messages

    async def send_once(
        self,
        prompt: str,
        system_instruction: str,
        *,
        temperature: float = 0.3,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        self._preflight(prompt, system_instruction, cancel=cancel)
        response = await self.client.chat.completions.create(
            model=self.config.model,
            messages=self._messages(system_instruction, [Turn(role="user", text=prompt)]),
            temperature=temperature,
        )
        return response.choices[0].message.content or ""

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
        stream = await self.client.chat.completions.create(
            model=self.config.model,
            messages=self._messages(system_instruction, [Turn(role="user", text=prompt)]),
            temperature=temperature,
            stream=True,
        )
        accumulated = ""
        async for chunk in stream:
            if cancel is not None:
                cancel.raise_if_cancelled()
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                accumulated += content
                on_chunk(content)
        logger.debug("openai_stream_complete", model=self.config.model, chars=len(accumulated))
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
        response = await self.client.chat.completions.create(
            model=self.config.model,
            messages=self._messages(system_instruction, history),
            tools=to_openai_tools(tools),
            tool_choice="auto",
            temperature=temperature,
        )
        message = response.choices[0].message
        tool_call = None
        if message.tool_calls:
            function = message.tool_calls[0].function
            tool_call = ToolCall(name=function.name, arguments=decode_arguments(function.arguments))
        return ChatTurn(text=message.content or "", tool_call=tool_call)

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
        stream = await self.client.chat.completions.create(
            model=self.config.model,
            messages=self._messages(system_instruction, history),
            tools=to_openai_tools(tools),
            tool_choice="auto",
            temperature=temperature,
            stream=True,
        )
        accumulated = ""
        accumulator = ToolCallAccumulator()
        async for chunk in stream:
            if cancel is not None:
                cancel.raise_if_cancelled()
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            for call in delta.tool_calls or []:
                function = call.function
                accumulator.feed(
                    call.index,
                    function.name if function else None,
                    function.arguments if function else None,
                )
            if delta.content:
                accumulated += delta.content
                on_chunk(delta.content)
        return ChatTurn(text=accumulated, tool_call=accumulator.first())

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
