"""Glossary management and per-chunk term matching."""

import csv
import re
from pathlib import Path
from typing import Iterable, Optional

import structlog

from novtl.models import GlossaryEntry

logger = structlog.get_logger()

GLOSSARY_HEADER = "[GLOSSARY - STRICTLY FOLLOW]"


def _key(term: str) -> str:
    return term.strip().lower()


class GlossaryMatcher:
    """Select the glossary entries that actually occur in a chunk.

    Built once per translation session. All terms are folded into one
    case-insensitive alternation sorted longest-first, so "Elder Council"
    wins over "Elder" at the same position and each chunk is scanned once.
    """

    def __init__(self, entries: Iterable[GlossaryEntry]):
        self._index: dict[str, GlossaryEntry] = {}
        for entry in entries:
            key = _key(entry.original)
            if key and key not in self._index:
                self._index[key] = entry

        terms = sorted(self._index, key=len, reverse=True)
        self._pattern: Optional[re.Pattern] = (
            re.compile("|".join(re.escape(term) for term in terms), re.IGNORECASE)
            if terms
            else None
        )

    def __len__(self) -> int:
        return len(self._index)

    def relevant_entries(self, chunk: str) -> list[GlossaryEntry]:
        """Entries whose term occurs in ``chunk``, in order of first occurrence."""
        if self._pattern is None:
            return []

        found: dict[str, GlossaryEntry] = {}
        for match in self._pattern.finditer(chunk):
            key = match.group(0).lower()
            if key not in found and key in self._index:
                found[key] = self._index[key]
        return list(found.values())


def format_glossary_block(entries: list[GlossaryEntry]) -> str:
    """Render entries as ``original=translated`` lines, or ``""`` when there are none."""
    if not entries:
        return ""
    lines = "\n".join(f"{entry.original}={entry.translated}" for entry in entries)
    return f"\n{GLOSSARY_HEADER}\n{lines}\n"


class Glossary:
    """Manage a project glossary (case-insensitive on the original term)."""

    def __init__(self, entries: Optional[list[GlossaryEntry]] = None):
        """Initialize the glossary.

        Args:
            entries: Initial list of entries
        """
        self.entries: list[GlossaryEntry] = list(entries or [])
        self._index: dict[str, GlossaryEntry] = {}
        self._rebuild_index()

    def _rebuild_index(self) -> None:
        self._index = {}
        for entry in self.entries:
            self._index.setdefault(_key(entry.original), entry)

    def add(self, entry: GlossaryEntry) -> bool:
        """Add an entry unless its original term is already present.

        Returns:
            True if the entry was added
        """
        key = _key(entry.original)
        if not key or key in self._index:
            return False
        self.entries.append(entry)
        self._index[key] = entry
        return True

    def remove(self, original: str) -> bool:
        """Remove the first entry matching ``original``.

        Returns:
            True if an entry was removed
        """
        key = _key(original)
        if key not in self._index:
            return False
        target = self._index.pop(key)
        self.entries = [e for e in self.entries if e is not target]
        self._rebuild_index()
        return True

    def lookup(self, original: str) -> Optional[GlossaryEntry]:
        return self._index.get(_key(original))

    def matcher(self) -> GlossaryMatcher:
        return GlossaryMatcher(self.entries)

    def to_csv(self, path: Path) -> None:
        """Export glossary to CSV file.

        Args:
            path: Path to save CSV file
        """
        path = Path(path)
        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=["original", "translated", "source_language"])
            writer.writeheader()
            for entry in self.entries:
                writer.writerow(entry.model_dump(include={"original", "translated", "source_language"}))

    @classmethod
    def from_csv(cls, path: Path) -> "Glossary":
        """Import glossary from CSV file.

        Args:
            path: Path to CSV file

        Returns:
            New Glossary instance
        """
        path = Path(path)
        entries = []

        with open(path, "r", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for row in reader:
                original = (row.get("original") or "").strip()
                if not original:
                    continue
                entries.append(
                    GlossaryEntry(
                        original=original,
                        translated=(row.get("translated") or "").strip(),
                        source_language=row.get("source_language") or "Auto Detect",
                    )
                )

        logger.info("glossary_imported", entries=len(entries), path=str(path))
        return cls(entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, original: str) -> bool:
        return _key(original) in self._index
