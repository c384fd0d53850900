"""
Key-value persistence for compiled dictionaries.

Key layout:
    ("synonyms", word)         -> replacement
    ("dictionary", word)       -> True
    ("metadata", "dictionary") -> DictionaryMetadata.to_dict()

A store only has to provide get / set_batch / list_by_prefix / delete.
Batches are atomic on their own; nothing spans batches. The metadata
record doubles as the "initialized" marker: it is removed before a
publish starts and written only after every batch went through, so a
half-written store never looks initialized.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from chijimi.dictionary import BUILD_SOURCE_SUDACHI, CompiledDictionary, DictionaryMetadata
from chijimi.errors import AlreadyInitializedError, PersistenceError, UninitializedDictionaryError
from chijimi.retry import RetryPolicy

logger = logging.getLogger(__name__)

Key = Tuple[str, ...]
Entry = Tuple[Key, Any]


# ============================================================================
# Keys
# ============================================================================

SYNONYMS = "synonyms"
DICTIONARY = "dictionary"
METADATA = "metadata"

METADATA_KEY: Key = (METADATA, "dictionary")

DEFAULT_BATCH_SIZE = 500


def synonym_key(word: str) -> Key:
    return (SYNONYMS, word)


def dictionary_key(word: str) -> Key:
    return (DICTIONARY, word)


# ============================================================================
# Store Backends
# ============================================================================

class KeyValueStore(Protocol):
    def get(self, key: Key) -> Optional[Any]:
        ...

    def set_batch(self, entries: Sequence[Entry]) -> bool:
        ...

    def list_by_prefix(self, prefix: Key) -> List[Entry]:
        ...

    def delete(self, key: Key) -> None:
        ...


class MemoryStore:
    """In-process store. Handy for tests and single-process deployments."""

    def __init__(self):
        self._data: Dict[Key, Any] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: Key) -> Optional[Any]:
        return self._data.get(tuple(key))

    def set_batch(self, entries: Sequence[Entry]) -> bool:
        with self._lock:
            self._data.update((tuple(k), v) for k, v in entries)
        return True

    def list_by_prefix(self, prefix: Key) -> List[Entry]:
        prefix = tuple(prefix)
        n = len(prefix)
        with self._lock:
            return [(k, v) for k, v in self._data.items() if k[:n] == prefix]

    def delete(self, key: Key) -> None:
        with self._lock:
            self._data.pop(tuple(key), None)


class SqliteStore:
    """
    SQLite-backed store.

    Keys must have exactly two parts (namespace, name). Values are stored
    as JSON text. Each ``set_batch`` call is one transaction.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.Lock()
        with self._lock:
            if self.path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS kv ("
                " ns TEXT NOT NULL,"
                " name TEXT NOT NULL,"
                " value TEXT NOT NULL,"
                " PRIMARY KEY (ns, name))"
            )
            self._conn.commit()

    @staticmethod
    def _split(key: Key) -> Tuple[str, str]:
        if len(key) != 2:
            raise ValueError(f"SqliteStore keys need exactly two parts, got {key!r}")
        return str(key[0]), str(key[1])

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def get(self, key: Key) -> Optional[Any]:
        ns, name = self._split(key)
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM kv WHERE ns = ? AND name = ?", (ns, name)
            ).fetchone()
        return json.loads(row[0]) if row else None

    def set_batch(self, entries: Sequence[Entry]) -> bool:
        rows = []
        for key, value in entries:
            ns, name = self._split(key)
            rows.append((ns, name, json.dumps(value, ensure_ascii=False)))

        with self._lock:
            try:
                with self._conn:
                    self._conn.executemany(
                        "INSERT OR REPLACE INTO kv (ns, name, value) VALUES (?, ?, ?)", rows
                    )
            except sqlite3.Error as e:
                logger.warning(f"SQLite batch of {len(rows)} entries rolled back: {e}")
                return False
        return True

    def list_by_prefix(self, prefix: Key) -> List[Entry]:
        prefix = tuple(prefix)
        if len(prefix) > 2:
            raise ValueError(f"SqliteStore prefixes have at most two parts, got {prefix!r}")

        query = "SELECT ns, name, value FROM kv"
        if len(prefix) == 1:
            query += " WHERE ns = ?"
        elif len(prefix) == 2:
            query += " WHERE ns = ? AND name = ?"
        with self._lock:
            rows = self._conn.execute(query, prefix).fetchall()
        return [((ns, name), json.loads(value)) for ns, name, value in rows]

    def delete(self, key: Key) -> None:
        ns, name = self._split(key)
        with self._lock:
            with self._conn:
                self._conn.execute("DELETE FROM kv WHERE ns = ? AND name = ?", (ns, name))


# ============================================================================
# Metadata and Stats
# ============================================================================

def get_metadata(store: KeyValueStore) -> Optional[DictionaryMetadata]:
    raw = store.get(METADATA_KEY)
    if not raw:
        return None
    return DictionaryMetadata.from_dict(raw)


def is_initialized(store: KeyValueStore) -> bool:
    """True if a complete dictionary with at least one synonym is stored."""
    metadata = get_metadata(store)
    return metadata is not None and metadata.synonym_count > 0


def is_stale(
    metadata: Optional[DictionaryMetadata],
    max_age: timedelta = timedelta(days=1),
    now: Optional[datetime] = None,
) -> bool:
    """
    Decide whether a stored dictionary should be rebuilt.

    Missing or unreadable metadata counts as stale.
    """
    if metadata is None:
        logger.info("No dictionary metadata - initial build required")
        return True

    try:
        updated = metadata.last_updated_at
    except ValueError:
        logger.warning(f"Unreadable lastUpdated {metadata.last_updated!r} - treating as stale")
        return True

    age = (now or datetime.now(timezone.utc)) - updated
    logger.info(f"Last update: {metadata.last_updated} ({age.days} days ago)")
    return age >= max_age


def get_stats(store: KeyValueStore) -> Dict[str, Any]:
    """
    Synonym and word counts of the stored dictionary.

    Reads the metadata record; falls back to counting entries.
    """
    metadata = get_metadata(store)
    if metadata is not None:
        return {
            "synonymCount": metadata.synonym_count,
            "dictionaryWordCount": metadata.dictionary_word_count,
            "lastUpdated": metadata.last_updated,
        }
    return {
        "synonymCount": len(store.list_by_prefix((SYNONYMS,))),
        "dictionaryWordCount": len(store.list_by_prefix((DICTIONARY,))),
        "lastUpdated": None,
    }


# ============================================================================
# Clear / Publish / Load
# ============================================================================

def clear_store(store: KeyValueStore) -> int:
    """
    Remove every dictionary entry and the metadata record.

    Returns:
        Number of deleted entries
    """
    store.delete(METADATA_KEY)
    deleted = 0
    for namespace in (SYNONYMS, DICTIONARY):
        for key, _ in store.list_by_prefix((namespace,)):
            store.delete(key)
            deleted += 1
    logger.info(f"Cleared stored dictionary ({deleted} entries)")
    return deleted


def _entries(compiled: CompiledDictionary) -> List[Entry]:
    entries: List[Entry] = [(synonym_key(w), r) for w, r in compiled.synonym_map.items()]
    entries.extend((dictionary_key(w), True) for w in sorted(compiled.dictionary_words))
    return entries


def _batches(entries: List[Entry], size: int) -> Iterable[List[Entry]]:
    for i in range(0, len(entries), size):
        yield entries[i:i + size]


def publish(
    store: KeyValueStore,
    compiled: CompiledDictionary,
    *,
    build_source: str = BUILD_SOURCE_SUDACHI,
    batch_size: int = DEFAULT_BATCH_SIZE,
    retry_policy: Optional[RetryPolicy] = None,
    force: bool = False,
    now: Optional[datetime] = None,
) -> DictionaryMetadata:
    """
    Persist ``compiled`` to ``store``.

    Args:
        store: Target store
        compiled: Dictionary to write
        build_source: Recorded in the metadata
        batch_size: Entries per batch
        retry_policy: Retry applied to each batch
        force: Replace an already initialized store
        now: Timestamp override for the metadata

    Returns:
        The metadata written last

    Raises:
        AlreadyInitializedError: If the store holds a dictionary and ``force`` is False
        PersistenceError: If a batch fails after all retries. The store is
            left without metadata, i.e. uninitialized.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    if not force and is_initialized(store):
        raise AlreadyInitializedError(
            "Dictionary is already initialized; pass force=True to rebuild it"
        )

    retry_policy = retry_policy or RetryPolicy()
    clear_store(store)

    entries = _entries(compiled)
    total = (len(entries) + batch_size - 1) // batch_size
    logger.info(f"Saving {len(entries)} entries in {total} batches...")

    for number, batch in enumerate(_batches(entries, batch_size), start=1):
        def commit(batch=batch, number=number):
            if not store.set_batch(batch):
                raise PersistenceError(f"Atomic commit failed for batch {number}")

        try:
            retry_policy.run(commit, description=f"Batch {number}/{total}")
        except Exception as e:
            raise PersistenceError(
                f"Store batch {number}/{total} failed after {retry_policy.max_retries} retries: {e}"
            ) from e
        logger.debug(f"Batch {number}/{total} done")

    metadata = DictionaryMetadata.describe(compiled, build_source=build_source, now=now)
    if not store.set_batch([(METADATA_KEY, metadata.to_dict())]):
        raise PersistenceError("Failed to write dictionary metadata")

    logger.info(
        f"Metadata saved: {metadata.synonym_count} synonyms, "
        f"{metadata.dictionary_word_count} dictionary words"
    )
    return metadata


def load_from_store(store: KeyValueStore) -> CompiledDictionary:
    """
    Read a complete dictionary back from ``store``.

    Raises:
        UninitializedDictionaryError: If no metadata record exists
    """
    if get_metadata(store) is None:
        raise UninitializedDictionaryError("Store holds no published dictionary")

    synonym_map = {key[1]: value for key, value in store.list_by_prefix((SYNONYMS,))}
    words = [key[1] for key, _ in store.list_by_prefix((DICTIONARY,))]
    compiled = CompiledDictionary(synonym_map, words)
    logger.info(f"Loaded {compiled!r} from store")
    return compiled
