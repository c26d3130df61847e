"""Conversational assistant: dispatch, tool actions and chat sessions."""

from novtl.assistant.actions import interpret_tool_call
from novtl.assistant.dispatch import AssistantDispatcher
from novtl.assistant.session import ChatSession

__all__ = ["AssistantDispatcher", "ChatSession", "interpret_tool_call"]
