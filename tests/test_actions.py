"""Unit tests for mapping tool calls onto assistant actions."""

from novtl.assistant.actions import interpret_tool_call
from novtl.models import (
    AddGlossary,
    DeleteGlossary,
    GlossaryEntry,
    PlainText,
    ReadFullContext,
    SearchHistory,
)
from novtl.providers.tools import MANAGE_GLOSSARY, READ_FULL_EDITOR_CONTENT, READ_HISTORICAL_CONTENT


def manage(action, items):
    return {"action": action, "items": items}


class TestAddGlossary:
    """Test ADD proposals."""

    def test_new_term_becomes_pending_add(self):
        action = interpret_tool_call(
            MANAGE_GLOSSARY, manage("ADD", [{"original": "wyrm", "translated": "naga"}]), [], "en"
        )
        assert isinstance(action, AddGlossary)
        assert len(action.payload) == 1
        assert action.payload[0].original == "wyrm"
        assert "1" in action.message

    def test_duplicates_need_no_changes(self):
        glossary = [GlossaryEntry(original="Wyrm", translated="Naga")]
        action = interpret_tool_call(
            MANAGE_GLOSSARY, manage("ADD", [{"original": "wyrm", "translated": "naga"}]), glossary, "en"
        )
        assert isinstance(action, PlainText)
        assert "No changes needed" in action.message

    def test_only_new_terms_are_proposed(self):
        glossary = [GlossaryEntry(original="Qi", translated="Qi")]
        items = [
            {"original": "qi", "translated": "Qi"},
            {"original": "Dao", "translated": "Jalan"},
            {"original": "dao", "translated": "Jalan"},
        ]
        action = interpret_tool_call(MANAGE_GLOSSARY, manage("ADD", items), glossary, "en")
        assert isinstance(action, AddGlossary)
        assert [item.original for item in action.payload] == ["Dao"]

    def test_blank_items_are_dropped(self):
        action = interpret_tool_call(MANAGE_GLOSSARY, manage("add", [{"original": "  "}, "junk"]), [], "en")
        assert isinstance(action, PlainText)
        assert action.message == "No terms found to add."

    def test_indonesian_message(self):
        action = interpret_tool_call(
            MANAGE_GLOSSARY, manage("ADD", [{"original": "wyrm", "translated": "naga"}]), [], "id"
        )
        assert action.message == "Tambah 1 kata ke glosarium?"


class TestDeleteGlossary:
    """Test DELETE proposals."""

    def test_existing_terms_become_pending_delete(self):
        glossary = [GlossaryEntry(original="Wyrm", translated="Naga")]
        action = interpret_tool_call(MANAGE_GLOSSARY, manage("DELETE", [{"original": "wyrm"}]), glossary, "en")
        assert isinstance(action, DeleteGlossary)
        assert action.payload[0].original == "Wyrm"
        assert action.payload[0].translated == "Naga"
        assert "Confirm deletion?" in action.message

    def test_unknown_terms_need_no_changes(self):
        action = interpret_tool_call(MANAGE_GLOSSARY, manage("DELETE", [{"original": "ghost"}]), [], "en")
        assert isinstance(action, PlainText)

    def test_safety_cap(self):
        """More than 50 deletions in one call is refused."""
        glossary = [GlossaryEntry(original=f"term{i}", translated="x") for i in range(60)]
        items = [{"original": f"term{i}"} for i in range(51)]
        action = interpret_tool_call(MANAGE_GLOSSARY, manage("DELETE", items), glossary, "en")
        assert isinstance(action, PlainText)
        assert "50" in action.message

    def test_at_cap_is_allowed(self):
        glossary = [GlossaryEntry(original=f"term{i}", translated="x") for i in range(60)]
        items = [{"original": f"term{i}"} for i in range(50)]
        action = interpret_tool_call(MANAGE_GLOSSARY, manage("DELETE", items), glossary, "en")
        assert isinstance(action, DeleteGlossary)
        assert len(action.payload) == 50


class TestOtherTools:
    """Test search and full-read tools."""

    def test_search_history(self):
        action = interpret_tool_call(READ_HISTORICAL_CONTENT, {"search_query": " Chapter 3 "}, [], "en")
        assert isinstance(action, SearchHistory)
        assert action.query == "Chapter 3"

    def test_read_full_context(self):
        action = interpret_tool_call(READ_FULL_EDITOR_CONTENT, {}, [], "en")
        assert isinstance(action, ReadFullContext)
        assert action.message == "Reading full text..."


class TestMalformedCalls:
    """Malformed calls degrade to a plain reply."""

    def test_undecodable_arguments(self):
        action = interpret_tool_call(MANAGE_GLOSSARY, None, [], "en")
        assert isinstance(action, PlainText)
        assert action.message == "Sorry, I don't understand that request."

    def test_items_not_a_list(self):
        action = interpret_tool_call(MANAGE_GLOSSARY, {"action": "ADD", "items": "wyrm"}, [], "en")
        assert isinstance(action, PlainText)

    def test_unknown_action(self):
        action = interpret_tool_call(MANAGE_GLOSSARY, manage("RENAME", []), [], "en")
        assert isinstance(action, PlainText)

    def test_empty_search_query(self):
        action = interpret_tool_call(READ_HISTORICAL_CONTENT, {"search_query": ""}, [], "id")
        assert isinstance(action, PlainText)
        assert action.message == "Maaf, Danggo tidak mengerti permintaan itu."

    def test_unknown_tool(self):
        action = interpret_tool_call("launch_rockets", {}, [], "en")
        assert isinstance(action, PlainText)
