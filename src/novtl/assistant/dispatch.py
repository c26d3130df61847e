"""Single-turn assistant requests with tool calling."""

from typing import Callable, Optional

import structlog

from novtl.assistant.actions import interpret_tool_call
from novtl.cancel import CancelToken, check
from novtl.config import ChatConfig, get_config
from novtl.errors import AbortedByUser, MissingCredential, classify_error
from novtl.models import (
    AssistantAction,
    ChatMessage,
    ClearChat,
    EditorContent,
    NovelProject,
    PlainText,
    ReadFullContext,
    SearchHistory,
)
from novtl.providers.base import ChatTurn, ProviderAdapter, Turn
from novtl.providers.tools import ASSISTANT_TOOLS

logger = structlog.get_logger()

CLEAR_COMMANDS = ("reset", "clear")
MESSAGE_BREAK = "\n\n"

SYSTEM_PROMPT_EN = """You are Danggo🍡, a Novel Assistant.

CURRENT GLOSSARY CONTEXT: [{glossary}]

IMPORTANT RULES:
1. You can see the 'EDITOR DRAFT'.
2. If user asks to "search for X", use 'read_historical_content' tool.
3. CHECK THE GLOSSARY ABOVE FIRST before suggesting additions.
4. ONLY use tools if explicitly asked."""

SYSTEM_PROMPT_ID = """Kamu adalah Danggo🍡, Asisten Novel.

KONTEKS GLOSARIUM SAAT INI: [{glossary}]

PERATURAN PENTING:
1. Anda bisa melihat teks di 'EDITOR DRAFT'.
2. Jika user bertanya "cari tentang X", gunakan tool 'read_historical_content'.
3. CEK GLOSARIUM DI ATAS DULU sebelum menyarankan penambahan kata.
4. HANYA panggil tool jika ada instruksi EKSPLISIT."""


def smart_snippet(text: str, max_len: int = 1000) -> str:
    """Head (60%) and tail (40%) of ``text`` with a marker for the cut middle."""
    if not text:
        return "(EMPTY)"
    if len(text) <= max_len:
        return text
    head = int(max_len * 0.6)
    tail = int(max_len * 0.4)
    hidden = len(text) - (head + tail)
    return f"{text[:head]}\n\n... [{hidden} chars cut to save quota] ...\n\n{text[-tail:]}"


class AssistantDispatcher:
    """Build the assistant request, send it, and interpret the reply."""

    def __init__(self, adapter: ProviderAdapter, config: Optional[ChatConfig] = None):
        self.adapter = adapter
        self.config = config or get_config().chat

    def glossary_summary(self, project: NovelProject, language: str) -> str:
        glossary = project.glossary
        cap = self.config.glossary_summary_cap
        if not glossary:
            return "Glossary empty." if language == "en" else "Glosarium kosong."
        summary = ", ".join(f"{g.original}({g.translated})" for g in glossary[:cap])
        if len(glossary) > cap:
            summary += f"... (+{len(glossary) - cap} others)"
        return summary

    def build_system_instruction(self, project: NovelProject, language: str) -> str:
        template = SYSTEM_PROMPT_EN if language == "en" else SYSTEM_PROMPT_ID
        return template.format(glossary=self.glossary_summary(project, language))

    def build_context_injection(self, editor: Optional[EditorContent], force_full_context: bool) -> str:
        if editor is None:
            return ""
        if force_full_context:
            return (
                "\n[FULL EDITOR CONTENT]\n"
                f"SOURCE:\n{editor.source_text}\n\n"
                f"TRANSLATION:\n{editor.translated_text}\n"
            )
        size = self.config.snippet_chars
        return (
            "\n[EDITOR DRAFT - CURRENTLY EDITING]\n"
            "NOTE: This is the active draft the user is working on in the Editor. "
            "It is NOT from the library.\n"
            f"SOURCE SNIPPET:\n{smart_snippet(editor.source_text, size)}\n\n"
            f"TRANSLATION SNIPPET:\n{smart_snippet(editor.translated_text, size)}\n"
        )

    def build_turns(self, user_message: str, history: list[ChatMessage], context: str) -> list[Turn]:
        """Last N visible turns (each trimmed) plus the new user turn."""
        limit = self.config.history_turn_chars
        visible = [
            Turn(role=m.role, text=m.text[:limit]) for m in history if not m.is_hidden
        ][-self.config.history_turns:]
        return [*visible, Turn(role="user", text=f"{user_message}\n\n{context}")]

    def _clear_action(self, user_message: str, language: str) -> Optional[ClearChat]:
        if user_message.strip().lower() in CLEAR_COMMANDS:
            return ClearChat(
                message="Danggo's memory cleared! 🍡"
                if language == "en"
                else "Memori Danggo sudah dibersihkan! 🍡"
            )
        return None

    def _to_action(self, turn: ChatTurn, project: NovelProject, language: str) -> AssistantAction:
        if turn.tool_call is not None:
            logger.info("assistant_tool_call", tool=turn.tool_call.name)
            return interpret_tool_call(
                turn.tool_call.name,
                turn.tool_call.arguments,
                project.glossary,
                language,
                self.config.delete_cap,
            )
        fallback = "No response." if language == "en" else "Tidak ada respon."
        return PlainText(message=turn.text or fallback)

    def _prepare(self, cancel: Optional[CancelToken]) -> None:
        if not self.adapter.config.has_plausible_key():
            raise MissingCredential(self.adapter.config.provider)
        check(cancel)

    async def chat(
        self,
        user_message: str,
        project: NovelProject,
        history: list[ChatMessage],
        editor: Optional[EditorContent] = None,
        language: str = "id",
        force_full_context: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> AssistantAction:
        """Send one user turn and return the resulting action.

        Raises:
            MissingCredential: before any network call if the key is unusable
            AbortedByUser: if ``cancel`` fires
            NovtlError: classified transport failure
        """
        cleared = self._clear_action(user_message, language)
        if cleared is not None:
            return cleared
        self._prepare(cancel)

        turns = self.build_turns(
            user_message, history, self.build_context_injection(editor, force_full_context)
        )
        try:
            turn = await self.adapter.send_chat_turn(
                turns,
                self.build_system_instruction(project, language),
                ASSISTANT_TOOLS,
                temperature=self.config.temperature,
                cancel=cancel,
            )
        except AbortedByUser:
            raise
        except Exception as e:
            raise classify_error(e) from e

        return self._to_action(turn, project, language)

    async def chat_stream(
        self,
        user_message: str,
        project: NovelProject,
        history: list[ChatMessage],
        on_chunk: Callable[[str], None],
        editor: Optional[EditorContent] = None,
        language: str = "id",
        force_full_context: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> AssistantAction:
        """Streaming variant of :meth:`chat`.

        Plain text is forwarded to ``on_chunk`` as it arrives. When a tool
        call comes with or after streamed text, the tool's message is
        appended to that text instead of replacing it.
        """
        cleared = self._clear_action(user_message, language)
        if cleared is not None:
            on_chunk(cleared.message)
            return cleared
        self._prepare(cancel)

        turns = self.build_turns(
            user_message, history, self.build_context_injection(editor, force_full_context)
        )
        try:
            turn = await self.adapter.stream_chat_turn(
                turns,
                self.build_system_instruction(project, language),
                ASSISTANT_TOOLS,
                on_chunk,
                cancel,
                temperature=self.config.temperature,
            )
        except AbortedByUser:
            raise
        except Exception as e:
            raise classify_error(e) from e

        if turn.tool_call is None:
            if not turn.text:
                action = self._to_action(turn, project, language)
                on_chunk(action.message)
                return action
            return PlainText(message=turn.text)

        action = self._to_action(turn, project, language)
        # Re-entering actions are followed by another streamed reply
        tail = MESSAGE_BREAK if isinstance(action, (ReadFullContext, SearchHistory)) else ""
        if turn.text:
            suffix = f"{MESSAGE_BREAK}{action.message}"
            on_chunk(suffix + tail)
            return action.model_copy(update={"message": turn.text + suffix})
        on_chunk(action.message + tail)
        return action
