"""LLM provider adapters."""

from novtl.providers.base import ChatTurn, ProviderAdapter, ToolCall, Turn, estimate_tokens
from novtl.providers.factory import create_adapter
from novtl.providers.tools import ASSISTANT_TOOLS

__all__ = [
    "ASSISTANT_TOOLS",
    "ChatTurn",
    "ProviderAdapter",
    "ToolCall",
    "Turn",
    "create_adapter",
    "estimate_tokens",
]
