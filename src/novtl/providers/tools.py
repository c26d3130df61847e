"""Tool declarations offered to the assistant model.

Declared once in JSON-schema form; each adapter wraps them in its own
envelope (OpenAI ``{"type": "function", ...}``, Gemini function declarations).
"""

import copy

MANAGE_GLOSSARY = "manage_glossary"
READ_HISTORICAL_CONTENT = "read_historical_content"
READ_FULL_EDITOR_CONTENT = "read_full_editor_content"

ASSISTANT_TOOLS: list[dict] = [
    {
        "name": MANAGE_GLOSSARY,
        "description": (
            "Add or Delete glossary items. CRITICAL: Use ONLY when user EXPLICITLY asks "
            "to 'add', 'save', or 'delete' terms. DO NOT use for general chat or greetings."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "action": {"type": "string", "enum": ["ADD", "DELETE"]},
                "items": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "original": {"type": "string"},
                            "translated": {"type": "string"},
                        },
                        "required": ["original"],
                    },
                },
            },
            "required": ["action", "items"],
        },
    },
    {
        "name": READ_HISTORICAL_CONTENT,
        "description": (
            "Search for info in saved chapters. ONLY use if user asks to 'search', "
            "'find', or 'read' a previous chapter."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "search_query": {"type": "string", "description": "Keyword or topic to look for."}
            },
            "required": ["search_query"],
        },
    },
    {
        "name": READ_FULL_EDITOR_CONTENT,
        "description": (
            "Read the ENTIRE text in the current editor. ONLY use if user explicitly asks "
            "about the current active chapter in detail."
        ),
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
]


def to_openai_tools(tools: list[dict]) -> list[dict]:
    """Wrap declarations in the chat-completions ``tools`` envelope."""
    return [{"type": "function", "function": copy.deepcopy(tool)} for tool in tools]


def _upper_types(schema):
    if isinstance(schema, dict):
        return {
            key: value.upper() if key == "type" and isinstance(value, str) else _upper_types(value)
            for key, value in schema.items()
        }
    if isinstance(schema, list):
        return [_upper_types(item) for item in schema]
    return schema


def to_gemini_declarations(tools: list[dict]) -> list[dict]:
    """Convert declarations to Gemini's schema dialect (upper-case type names)."""
    declarations = []
    for tool in tools:
        declaration = {"name": tool["name"], "description": tool["description"]}
        if tool.get("parameters", {}).get("properties"):
            declaration["parameters"] = _upper_types(tool["parameters"])
        declarations.append(declaration)
    return declarations
