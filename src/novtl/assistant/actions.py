"""Map provider tool calls onto assistant actions.

This is a pure function of the tool name, its arguments and the current
glossary: nothing here touches storage. Glossary changes become pending
actions that the caller applies only after the user confirms.
"""

from typing import Any, Optional

import structlog

from novtl.errors import ToolCallMalformed, error_message
from novtl.models import (
    AddGlossary,
    AddGlossaryItem,
    AssistantAction,
    DeleteGlossary,
    DeleteGlossaryItem,
    GlossaryEntry,
    PlainText,
    ReadFullContext,
    SearchHistory,
)
from novtl.providers.tools import MANAGE_GLOSSARY, READ_FULL_EDITOR_CONTENT, READ_HISTORICAL_CONTENT

logger = structlog.get_logger()

DEFAULT_DELETE_CAP = 50


def _msg(language: str, en: str, id_: str) -> str:
    return en if language == "en" else id_


def _clean_items(arguments: dict[str, Any]) -> list[dict[str, str]]:
    items = arguments.get("items")
    if not isinstance(items, list):
        raise ToolCallMalformed("manage_glossary: 'items' must be a list")

    cleaned = []
    for item in items:
        if not isinstance(item, dict):
            continue
        original = str(item.get("original") or "").strip()
        if not original:
            continue
        cleaned.append({"original": original, "translated": str(item.get("translated") or "").strip()})
    return cleaned


def _add_glossary(items: list[dict[str, str]], glossary: list[GlossaryEntry], language: str) -> AssistantAction:
    if not items:
        return PlainText(message=_msg(language, "No terms found to add.", "Tidak ada kata untuk ditambah."))

    existing = {entry.original.strip().lower() for entry in glossary}
    payload: list[AddGlossaryItem] = []
    for item in items:
        key = item["original"].lower()
        if key in existing:
            continue
        existing.add(key)
        payload.append(AddGlossaryItem(**item))

    if not payload:
        return PlainText(
            message=_msg(
                language,
                "No changes needed: those words are already in your glossary. ✨",
                "Tidak perlu perubahan: kata tersebut sudah ada di glosarium! ✨",
            )
        )

    count = len(payload)
    return AddGlossary(
        payload=payload,
        message=_msg(language, f"Add {count} terms to the glossary?", f"Tambah {count} kata ke glosarium?"),
    )


def _delete_glossary(
    items: list[dict[str, str]],
    glossary: list[GlossaryEntry],
    language: str,
    delete_cap: int,
) -> AssistantAction:
    if len(items) > delete_cap:
        return PlainText(
            message=_msg(
                language,
                f"For safety I can delete at most {delete_cap} terms at once "
                f"(you asked for {len(items)}). Please split the request.",
                f"Demi keamanan, maksimal {delete_cap} kata bisa dihapus sekaligus "
                f"(diminta {len(items)}). Silakan bagi permintaannya.",
            )
        )

    by_key = {}
    for entry in glossary:
        by_key.setdefault(entry.original.strip().lower(), entry)

    payload: list[DeleteGlossaryItem] = []
    seen = set()
    for item in items:
        key = item["original"].lower()
        match = by_key.get(key)
        if match is None or key in seen:
            continue
        seen.add(key)
        payload.append(DeleteGlossaryItem(original=match.original, translated=match.translated))

    if not payload:
        return PlainText(
            message=_msg(
                language,
                "Those words are not in your glossary, so no changes are needed.",
                "Kata tersebut tidak ada di glosarium, jadi tidak perlu perubahan.",
            )
        )

    count = len(payload)
    return DeleteGlossary(
        payload=payload,
        message=_msg(
            language,
            f"Delete {count} terms from the glossary? Confirm deletion?",
            f"Hapus {count} kata dari glosarium? Konfirmasi hapus kata?",
        ),
    )


def _interpret(
    name: str,
    arguments: Optional[dict[str, Any]],
    glossary: list[GlossaryEntry],
    language: str,
    delete_cap: int,
) -> AssistantAction:
    if arguments is None:
        raise ToolCallMalformed(f"{name}: arguments are not a JSON object")

    if name == READ_FULL_EDITOR_CONTENT:
        return ReadFullContext(message=_msg(language, "Reading full text...", "Membaca teks lengkap..."))

    if name == READ_HISTORICAL_CONTENT:
        query = str(arguments.get("search_query") or "").strip()
        if not query:
            raise ToolCallMalformed("read_historical_content: missing search_query")
        return SearchHistory(
            query=query,
            message=_msg(language, "Searching library...", "Mencari di koleksi..."),
        )

    if name == MANAGE_GLOSSARY:
        action = str(arguments.get("action") or "").upper()
        items = _clean_items(arguments)
        if action == "ADD":
            return _add_glossary(items, glossary, language)
        if action == "DELETE":
            return _delete_glossary(items, glossary, language, delete_cap)
        raise ToolCallMalformed(f"manage_glossary: unknown action {action!r}")

    raise ToolCallMalformed(f"unknown tool {name!r}")


def interpret_tool_call(
    name: str,
    arguments: Optional[dict[str, Any]],
    glossary: list[GlossaryEntry],
    language: str = "id",
    delete_cap: int = DEFAULT_DELETE_CAP,
) -> AssistantAction:
    """Turn ``(tool name, arguments)`` into an :data:`AssistantAction`.

    A malformed call degrades to a ``PlainText`` "I don't understand"
    reply instead of failing the turn.
    """
    try:
        return _interpret(name, arguments, glossary, language, delete_cap)
    except ToolCallMalformed as e:
        logger.warning("tool_call_malformed", tool=name, error=str(e))
        return PlainText(message=error_message(e, language))
