"""
Compiled synonym dictionary for chijimi.

A CompiledDictionary is the only artifact a build produces. It holds:
- the synonym map (word -> cheaper replacement)
- the set of every word seen in the source dictionary

The synonym map keys are also stored in a marisa_trie.Trie so that the
compound optimizer can ask for every key that is a prefix of a token in
one call.

Compiled dictionaries are immutable. A rebuild creates a new instance
which replaces the old one by reference.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Union

import marisa_trie

from chijimi.errors import SnapshotError

logger = logging.getLogger(__name__)


BUILD_SOURCE_SUDACHI = "sudachi"
BUILD_SOURCE_PREBUILT = "prebuilt"


# ============================================================================
# Compiled Dictionary
# ============================================================================

class CompiledDictionary:
    """
    Immutable word -> replacement map plus the known-word set.

    Attributes:
        synonym_map: Read-only mapping of word to replacement
        dictionary_words: Every word that appeared in the source
    """

    __slots__ = ("synonym_map", "dictionary_words", "_key_trie")

    def __init__(self, synonym_map: Mapping[str, str], dictionary_words: Iterable[str]):
        self.synonym_map: Mapping[str, str] = MappingProxyType(dict(synonym_map))
        self.dictionary_words: frozenset = frozenset(dictionary_words)
        self._key_trie = marisa_trie.Trie(self.synonym_map.keys())

    def __repr__(self) -> str:
        return (f"CompiledDictionary(synonyms={len(self.synonym_map)}, "
                f"words={len(self.dictionary_words)})")

    def __eq__(self, other) -> bool:
        if not isinstance(other, CompiledDictionary):
            return NotImplemented
        return (dict(self.synonym_map) == dict(other.synonym_map)
                and self.dictionary_words == other.dictionary_words)

    __hash__ = None

    @property
    def synonym_count(self) -> int:
        return len(self.synonym_map)

    @property
    def word_count(self) -> int:
        return len(self.dictionary_words)

    def replacement(self, word: str) -> Optional[str]:
        """Exact-match replacement for ``word``, or None."""
        return self.synonym_map.get(word)

    def is_known_word(self, word: str) -> bool:
        """True if ``word`` appeared anywhere in the source dictionary."""
        return word in self.dictionary_words

    def prefixes(self, word: str) -> List[str]:
        """
        All synonym map keys that are prefixes of ``word``.

        Includes ``word`` itself if it is a key.
        """
        return self._key_trie.prefixes(word)

    def to_dict(self) -> dict:
        """Snapshot JSON shape."""
        return {
            "synonymMap": dict(self.synonym_map),
            "dictionaryWords": sorted(self.dictionary_words),
        }


EMPTY_DICTIONARY = CompiledDictionary({}, ())


# ============================================================================
# Metadata
# ============================================================================

@dataclass(frozen=True)
class DictionaryMetadata:
    """
    Describes one published dictionary.

    Attributes:
        version: Build identifier (ISO timestamp of the build)
        synonym_count: Number of synonym map entries
        dictionary_word_count: Number of known words
        last_updated: ISO-8601 UTC timestamp
        build_source: "sudachi" for a live build, "prebuilt" for a snapshot
    """
    version: str
    synonym_count: int
    dictionary_word_count: int
    last_updated: str
    build_source: str = BUILD_SOURCE_SUDACHI

    @classmethod
    def describe(
        cls,
        compiled: CompiledDictionary,
        build_source: str = BUILD_SOURCE_SUDACHI,
        now: Optional[datetime] = None,
    ) -> "DictionaryMetadata":
        stamp = (now or datetime.now(timezone.utc)).isoformat()
        return cls(
            version=stamp,
            synonym_count=compiled.synonym_count,
            dictionary_word_count=compiled.word_count,
            last_updated=stamp,
            build_source=build_source,
        )

    @property
    def last_updated_at(self) -> datetime:
        parsed = datetime.fromisoformat(self.last_updated.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def to_dict(self) -> dict:
        """Store representation (camelCase keys)."""
        data = asdict(self)
        return {
            "version": data["version"],
            "synonymCount": data["synonym_count"],
            "dictionaryWordCount": data["dictionary_word_count"],
            "lastUpdated": data["last_updated"],
            "buildSource": data["build_source"],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DictionaryMetadata":
        return cls(
            version=str(data.get("version", "")),
            synonym_count=int(data.get("synonymCount", 0)),
            dictionary_word_count=int(data.get("dictionaryWordCount", 0)),
            last_updated=str(data.get("lastUpdated", "")),
            build_source=str(data.get("buildSource", BUILD_SOURCE_SUDACHI)),
        )


# ============================================================================
# Snapshot Files
# ============================================================================

def save_snapshot(compiled: CompiledDictionary, path: Union[str, Path]) -> Path:
    """
    Write ``compiled`` as a JSON snapshot for fast cold start.

    Returns:
        The written path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(compiled.to_dict(), ensure_ascii=False), encoding="utf-8")

    size_kb = path.stat().st_size / 1024
    logger.info(f"Saved snapshot to {path} ({size_kb:.0f}KB)")
    return path


def load_snapshot(path: Union[str, Path]) -> CompiledDictionary:
    """
    Load a JSON snapshot.

    Accepts ``{"synonymMap": ..., "dictionaryWords": [...]}`` and the older
    bare ``{word: replacement}`` object.

    Raises:
        SnapshotError: If the file is missing or not a valid snapshot
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8-sig"))
    except OSError as e:
        raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Invalid snapshot {path}: {e}") from e

    if not isinstance(data, dict):
        raise SnapshotError(f"Invalid snapshot {path}: expected an object, got {type(data).__name__}")

    if "synonymMap" in data:
        synonym_map = data["synonymMap"]
        words = data.get("dictionaryWords") or []
    else:
        synonym_map = data
        words = []

    if not isinstance(synonym_map, dict) or not isinstance(words, list):
        raise SnapshotError(f"Invalid snapshot {path}: malformed synonymMap or dictionaryWords")

    synonym_map: Dict[str, str] = {
        str(k): str(v) for k, v in synonym_map.items() if k and v
    }
    compiled = CompiledDictionary(synonym_map, (str(w) for w in words))
    logger.info(f"Loaded {compiled.synonym_count} mappings from snapshot {path}")
    return compiled
