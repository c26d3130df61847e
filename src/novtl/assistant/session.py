"""Chat session: owned message history and bounded tool-driven re-entry."""

from typing import Callable, Optional

import structlog

from novtl.assistant.dispatch import AssistantDispatcher
from novtl.assistant.stores import EditorProvider, HistoryStore, ProjectStore, TranslationStore
from novtl.cancel import CancelToken
from novtl.config import ChatConfig, get_config
from novtl.errors import AbortedByUser, RecursionLimitExceeded, error_message
from novtl.models import (
    AddGlossary,
    AppSettings,
    ChatMessage,
    ClearChat,
    DeleteGlossary,
    GlossaryEntry,
    ReadFullContext,
    SearchHistory,
    has_valid_api_key,
    resolve_provider_config,
)
from novtl.providers.factory import create_adapter
from novtl.translator.glossary import Glossary

logger = structlog.get_logger()

STOP_COMMANDS = ("stop", "berhenti")


class ChatSession:
    """The single owner of a conversation's message list.

    Every mutation bumps :attr:`version`, and every operation reads
    ``self.messages`` directly, so re-entrant calls always see the latest
    history. Tool-driven re-entry (history search, full editor read) is an
    explicit state machine bounded by ``depth``.
    """

    def __init__(
        self,
        settings: AppSettings,
        projects: ProjectStore,
        history: HistoryStore,
        translations: TranslationStore,
        editor: EditorProvider,
        dispatcher: Optional[AssistantDispatcher] = None,
        config: Optional[ChatConfig] = None,
    ):
        self.settings = settings
        self.projects = projects
        self.history = history
        self.translations = translations
        self.editor = editor
        self.config = config or get_config().chat
        self._dispatcher = dispatcher
        self.messages: list[ChatMessage] = history.load()
        self.version = 0

    @property
    def language(self) -> str:
        return self.settings.app_language

    def _text(self, en: str, id_: str) -> str:
        return en if self.language == "en" else id_

    @property
    def dispatcher(self) -> AssistantDispatcher:
        """Lazy-create the dispatcher for the active provider."""
        if self._dispatcher is None:
            adapter = create_adapter(resolve_provider_config(self.settings))
            self._dispatcher = AssistantDispatcher(adapter, self.config)
        return self._dispatcher

    # ------------------------------------------------------------------
    # Message list
    # ------------------------------------------------------------------

    def find(self, message_id: str) -> Optional[ChatMessage]:
        return next((m for m in self.messages if m.id == message_id), None)

    def add_message(self, message: ChatMessage) -> ChatMessage:
        self.messages.append(message)
        self.history.append(message)
        self.version += 1
        return message

    def reply(self, text: str, **kwargs) -> ChatMessage:
        return self.add_message(ChatMessage(role="model", text=text, **kwargs))

    def _replace(self, message: ChatMessage) -> None:
        for i, existing in enumerate(self.messages):
            if existing.id == message.id:
                self.messages[i] = message
                break
        self.history.update(message)
        self.version += 1

    def update_message_text(self, message_id: str, text: str) -> None:
        message = self.find(message_id)
        if message is not None:
            self._replace(message.model_copy(update={"text": text}))

    def clear_pending_actions(self) -> None:
        for message in list(self.messages):
            if message.pending_action is not None:
                self._replace(message.model_copy(update={"pending_action": None}))

    def clear(self) -> ChatMessage:
        """Delegate a history wipe to the store and start over with one greeting."""
        self.history.clear()
        self.messages = []
        self.version += 1
        return self.reply(
            self._text(
                "Chat memory cleared! Danggo is ready to start fresh. 🍡",
                "Memori chat sudah Danggo bersihkan! Danggo siap mulai dari awal. 🍡",
            )
        )

    # ------------------------------------------------------------------
    # History search
    # ------------------------------------------------------------------

    def search_translations(self, query: str) -> tuple[str, int]:
        """Find saved chapters for ``query``: a title match wins over content matches."""
        project = self.projects.get_project()
        needle = query.lower().strip()
        saved = self.translations.list_translations(project.id)

        title_match = next((t for t in saved if needle in t.name.lower()), None)
        if title_match is not None:
            content = title_match.translated_text[: self.config.search_title_chars]
            return f'[FOUND FULL CHAPTER: "{title_match.name}"]\nCONTENT:\n{content}', 1

        hits = [t for t in saved if needle in t.translated_text.lower()][: self.config.search_max_hits]
        limit = self.config.search_snippet_chars
        context = "\n\n".join(
            f"SOURCE: **{t.name}**\nFINDING:\n{t.translated_text[:limit]}..." for t in hits
        )
        return context, len(hits)

    # ------------------------------------------------------------------
    # Conversation flow
    # ------------------------------------------------------------------

    async def process_user_message(
        self,
        text: str,
        hidden: bool = False,
        depth: int = 0,
        force_full_context: bool = False,
        on_chunk: Optional[Callable[[str], None]] = None,
        cancel: Optional[CancelToken] = None,
    ) -> Optional[ChatMessage]:
        """Run one user turn, following tool-driven re-entries up to the depth cap.

        Returns:
            The model message added for this turn, or None if nothing was added
        """
        text = text.strip()
        if not text:
            return None

        if text.lower() in STOP_COMMANDS:
            self.clear_pending_actions()
            return self.reply(
                self._text("🛑 Danggo stopped. Anything else?", "🛑 Danggo berhenti dan reset status. Ada yang lain?")
            )

        if depth > self.config.max_tool_depth:
            logger.warning("tool_recursion_limit", depth=depth, cap=self.config.max_tool_depth)
            return self.reply(error_message(RecursionLimitExceeded(), self.language))

        if not hidden and not force_full_context:
            self.clear_pending_actions()

        history = list(self.messages)
        if not force_full_context:
            self.add_message(ChatMessage(role="user", text=text, is_hidden=hidden))
        elif history and history[-1].role == "user" and history[-1].text == text:
            # Re-entry repeats the turn already recorded
            history = history[:-1]

        if not has_valid_api_key(self.settings):
            provider = self.settings.active_provider
            return self.reply(
                self._text(
                    f"⚠️ Sorry, I can't run because **API Key {provider}** is missing. "
                    "\n\nPlease enter it in **Settings**!",
                    f"⚠️ Maaf Kak, Danggo tidak bisa jalan karena **API Key {provider}** masih kosong. "
                    "\n\nSilakan masukkan kuncinya di menu **Setelan**!",
                )
            )

        project = self.projects.get_project()
        kwargs = dict(
            editor=self.editor.current(),
            language=self.language,
            force_full_context=force_full_context,
            cancel=cancel,
        )
        try:
            if on_chunk is not None:
                action = await self.dispatcher.chat_stream(text, project, history, on_chunk, **kwargs)
            else:
                action = await self.dispatcher.chat(text, project, history, **kwargs)
        except AbortedByUser:
            logger.info("chat_aborted")
            return None
        except Exception as e:
            logger.error("chat_failed", error=str(e))
            return self.reply(f"Error: {error_message(e, self.language)}")

        if isinstance(action, ClearChat):
            return self.clear()

        if isinstance(action, ReadFullContext):
            logger.info("chat_full_context_requested", depth=depth)
            return await self.process_user_message(
                text, hidden=True, depth=depth + 1, force_full_context=True, on_chunk=on_chunk, cancel=cancel
            )

        if isinstance(action, SearchHistory):
            context, count = self.search_translations(action.query)
            logger.info("chat_history_search", query=action.query, hits=count, depth=depth)
            if count == 0:
                return self.reply(
                    self._text("I searched but couldn't find it.", "Danggo mencari tapi tidak ketemu, Kak.")
                )
            injection = f'[SYSTEM INFO: Searched for "{action.query}" and found this data.]\n\n{context}'
            return await self.process_user_message(
                injection, hidden=True, depth=depth + 1, on_chunk=on_chunk, cancel=cancel
            )

        if isinstance(action, (AddGlossary, DeleteGlossary)):
            return self.reply(action.message, pending_action=action)

        return self.reply(action.message)

    # ------------------------------------------------------------------
    # Pending actions
    # ------------------------------------------------------------------

    def execute_pending_action(self, message_id: str) -> bool:
        """Apply a confirmed glossary change to the project.

        Returns:
            True if the project glossary changed
        """
        message = self.find(message_id)
        if message is None or message.pending_action is None:
            return False

        project = self.projects.get_project()
        glossary = Glossary(list(project.glossary))
        action = message.pending_action

        if isinstance(action, AddGlossary):
            added = [
                glossary.add(
                    GlossaryEntry(
                        original=item.original.strip(),
                        translated=item.translated.strip(),
                        source_language=project.source_language,
                    )
                )
                for item in action.payload
            ]
            if not any(added):
                self._replace(message.model_copy(update={"pending_action": None}))
                self.reply(
                    self._text(
                        "Those words are already in your glossary. I won't add duplicates! ✨",
                        "Kata tersebut sudah ada di glosarium Kakak. Danggo tidak menambahkannya lagi! ✨",
                    )
                )
                return False
        else:
            for item in action.payload:
                glossary.remove(item.original)

        self.projects.save_project(project.model_copy(update={"glossary": glossary.entries}))
        tag = self._text("\n\n✅ *Action applied!*", "\n\n✅ *Aksi berhasil diterapkan!*")
        self._replace(message.model_copy(update={"text": message.text + tag, "pending_action": None}))
        logger.info("glossary_action_applied", action=action.type, items=len(action.payload))
        return True

    def cancel_action(self, message_id: str) -> None:
        message = self.find(message_id)
        if message is None:
            return
        tag = self._text("\n\n❌ *Action cancelled.*", "\n\n❌ *Aksi dibatalkan.*")
        self._replace(message.model_copy(update={"text": message.text + tag, "pending_action": None}))
        self.add_message(
            ChatMessage(
                role="user",
                text="[SYSTEM: User cancelled the proposed action. Do not execute it.]",
                is_hidden=True,
            )
        )
