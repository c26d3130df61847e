"""Document translation: chunking, glossary matching and the engine."""

from novtl.translator.chunker import split_text
from novtl.translator.engine import TranslationEngine, translate_text
from novtl.translator.glossary import Glossary, GlossaryMatcher, format_glossary_block

__all__ = [
    "Glossary",
    "GlossaryMatcher",
    "TranslationEngine",
    "format_glossary_block",
    "split_text",
    "translate_text",
]
