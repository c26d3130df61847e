"""Collaborator interfaces consumed by the chat session.

Persistence lives outside this package; these protocols are the narrow
surface the session needs. The in-memory implementations back the CLI and
the tests.
"""

from typing import Optional, Protocol

from novtl.models import ChatMessage, EditorContent, NovelProject, SavedTranslation


class ProjectStore(Protocol):
    def get_project(self) -> NovelProject: ...

    def save_project(self, project: NovelProject) -> None: ...


class HistoryStore(Protocol):
    """Append-only message sink; only :meth:`clear` removes records."""

    def load(self) -> list[ChatMessage]: ...

    def append(self, message: ChatMessage) -> None: ...

    def update(self, message: ChatMessage) -> None: ...

    def clear(self) -> None: ...


class TranslationStore(Protocol):
    def list_translations(self, project_id: str) -> list[SavedTranslation]: ...


class EditorProvider(Protocol):
    def current(self) -> EditorContent: ...


class InMemoryProjectStore:
    def __init__(self, project: Optional[NovelProject] = None):
        self.project = project or NovelProject()

    def get_project(self) -> NovelProject:
        return self.project

    def save_project(self, project: NovelProject) -> None:
        self.project = project


class InMemoryHistoryStore:
    def __init__(self, messages: Optional[list[ChatMessage]] = None):
        self.messages: dict[str, ChatMessage] = {m.id: m for m in messages or []}

    def load(self) -> list[ChatMessage]:
        return list(self.messages.values())

    def append(self, message: ChatMessage) -> None:
        self.messages[message.id] = message

    def update(self, message: ChatMessage) -> None:
        self.messages[message.id] = message

    def clear(self) -> None:
        self.messages.clear()


class InMemoryTranslationStore:
    def __init__(self, translations: Optional[list[SavedTranslation]] = None):
        self.translations = list(translations or [])

    def list_translations(self, project_id: str) -> list[SavedTranslation]:
        return [t for t in self.translations if t.project_id == project_id]


class StaticEditor:
    def __init__(self, content: Optional[EditorContent] = None):
        self.content = content or EditorContent()

    def current(self) -> EditorContent:
        return self.content
