"""Dictionary matcher for the OCR-only variant.

No model call: the OCR text is searched for known dish names and their
alternate spellings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from menu_lens.core.models import MenuItem
from menu_lens.core.prompt_loader import DATA_DIR, load_yaml_file


logger = logging.getLogger(__name__)

DICTIONARY_PATH = DATA_DIR / "dictionary.yaml"


@dataclass(frozen=True)
class DictionaryEntry:
    name: str
    definition: str
    alternates: tuple[str, ...] = ()

    @property
    def needles(self) -> tuple[str, ...]:
        return tuple(s.lower() for s in (self.name, *self.alternates) if s)


class MenuDictionary:
    def __init__(self, entries: list[DictionaryEntry]):
        self.entries = entries

    def __len__(self) -> int:
        return len(self.entries)

    def match(self, text: str | None) -> list[MenuItem]:
        """Items whose name or alternate occurs in ``text``, in dictionary order."""
        if not text:
            return []
        haystack = text.lower()
        return [
            MenuItem(name=entry.name, definition=entry.definition)
            for entry in self.entries
            if any(needle in haystack for needle in entry.needles)
        ]


@lru_cache(maxsize=4)
def load_dictionary(path: Path = DICTIONARY_PATH) -> MenuDictionary:
    data = load_yaml_file(path)
    entries: list[DictionaryEntry] = []
    for raw in data.get("entries") or []:
        if not isinstance(raw, dict) or not raw.get("name") or not raw.get("definition"):
            logger.warning("Skipping malformed dictionary entry: %r", raw)
            continue
        entries.append(
            DictionaryEntry(
                name=str(raw["name"]).strip(),
                definition=str(raw["definition"]).strip(),
                alternates=tuple(str(a).strip() for a in raw.get("alternates") or []),
            )
        )
    logger.info("Loaded %d dictionary entries from %s", len(entries), path.name)
    return MenuDictionary(entries)
