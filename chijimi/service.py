"""
Dictionary service for chijimi.

Owns the currently published CompiledDictionary. Builds run to completion
before the result is published with a single attribute assignment, so
readers see either the old or the new dictionary, never a mix. A failed
build leaves the previous dictionary in place.
"""

import logging
import threading
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional, Union

from chijimi.build import compile_dictionary
from chijimi.config import Settings
from chijimi.dictionary import BUILD_SOURCE_SUDACHI, CompiledDictionary, DictionaryMetadata, load_snapshot
from chijimi.errors import InvalidRequestError, UninitializedDictionaryError
from chijimi.retry import RetryPolicy
from chijimi.rewriter import OptimizationResult, optimize_text
from chijimi.source import fetch_source, read_source
from chijimi.store import KeyValueStore, get_metadata, get_stats, is_stale, load_from_store, publish
from chijimi.tokens import Segmenter, SudachiSegmenter, TiktokenCounter, TokenCounter

logger = logging.getLogger(__name__)


class DictionaryService:
    """
    Holds the live dictionary and runs optimizations against it.

    Args:
        counter: Token counter (tiktoken by default)
        segmenter: Word segmenter (SudachiPy by default)
        settings: Runtime settings
    """

    def __init__(
        self,
        counter: Optional[TokenCounter] = None,
        segmenter: Optional[Segmenter] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.counter = counter or TiktokenCounter(self.settings.encoding)
        self.segmenter = segmenter or SudachiSegmenter(self.settings.split_mode)
        self._current: Optional[CompiledDictionary] = None
        self._build_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._current is not None

    def current_snapshot(self) -> CompiledDictionary:
        """
        The latest published dictionary.

        Raises:
            UninitializedDictionaryError: If nothing was published yet
        """
        current = self._current
        if current is None:
            raise UninitializedDictionaryError(
                "Synonym dictionary is not initialized; build or load it first"
            )
        return current

    def publish(self, compiled: CompiledDictionary) -> CompiledDictionary:
        self._current = compiled
        logger.info(f"Published {compiled!r}")
        return compiled

    def build(self, source_text: str) -> CompiledDictionary:
        """Compile ``source_text`` without publishing it."""
        if self.settings.strict:
            logger.info(f"Strict mode: substitutions must save at least {self.settings.min_reduction:.0%} of tokens")
        else:
            logger.info("Accepting any token reduction")
        return compile_dictionary(source_text, self.counter, self.settings.min_reduction)

    def load(self, source_text: str) -> CompiledDictionary:
        """Compile ``source_text`` and publish the result."""
        with self._build_lock:
            return self.publish(self.build(source_text))

    def load_url(self, url: Optional[str] = None) -> CompiledDictionary:
        text = fetch_source(url or self.settings.source_url, timeout=self.settings.request_timeout)
        return self.load(text)

    def load_file(self, path: Union[str, Path]) -> CompiledDictionary:
        return self.load(read_source(path))

    def load_snapshot(self, path: Union[str, Path]) -> CompiledDictionary:
        return self.publish(load_snapshot(path))

    def load_store(self, store: KeyValueStore) -> CompiledDictionary:
        return self.publish(load_from_store(store))

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def optimize(self, text: Any) -> OptimizationResult:
        """
        Rewrite ``text`` with the current dictionary.

        Raises:
            InvalidRequestError: If ``text`` is missing, not a string or blank
            UninitializedDictionaryError: If no dictionary is published
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidRequestError("Text is required")

        compiled = self.current_snapshot()
        start = time.perf_counter()
        result = optimize_text(text, compiled, self.segmenter, self.counter)
        logger.debug(
            f"Optimized {len(text)} chars: {result.original_tokens} -> "
            f"{result.optimized_tokens} tokens ({(time.perf_counter() - start) * 1000:.1f}ms)"
        )
        return result

    def stats(self) -> dict:
        compiled = self.current_snapshot()
        return {
            "synonymCount": compiled.synonym_count,
            "dictionaryWordCount": compiled.word_count,
        }

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.settings.max_retries,
            initial_delay=self.settings.retry_delay,
        )


# =============================================================================
# Scheduled Refresh
# =============================================================================

def refresh_dictionary(
    service: DictionaryService,
    store: KeyValueStore,
    *,
    url: Optional[str] = None,
    force: bool = False,
    now: Optional[datetime] = None,
) -> Optional[DictionaryMetadata]:
    """
    Rebuild the dictionary if the stored one is stale.

    Fetches and compiles first; the store is only touched once the new
    dictionary is complete. The scheduler calling this lives elsewhere.

    Args:
        service: Service to publish into
        store: Store to persist into
        url: Source URL override
        force: Rebuild even if the stored dictionary is fresh
        now: Clock override

    Returns:
        Metadata of the new dictionary, or None if the refresh was skipped
    """
    start = time.perf_counter()
    old_metadata = get_metadata(store)
    max_age = timedelta(hours=service.settings.max_age_hours)

    if not force and not is_stale(old_metadata, max_age=max_age, now=now):
        logger.info("Dictionary is up to date - skipping refresh")
        return None

    try:
        text = fetch_source(url or service.settings.source_url, timeout=service.settings.request_timeout)
        compiled = service.build(text)

        logger.info("Saving new dictionary to store...")
        metadata = publish(
            store,
            compiled,
            build_source=BUILD_SOURCE_SUDACHI,
            batch_size=service.settings.batch_size,
            retry_policy=service.retry_policy(),
            force=True,
            now=now,
        )
    except Exception:
        logger.exception("Dictionary refresh failed")
        raise
    service.publish(compiled)

    stats = get_stats(store)
    logger.info(
        f"Dictionary refresh finished in {time.perf_counter() - start:.0f}s: "
        f"{stats['synonymCount']} synonyms, {stats['dictionaryWordCount']} dictionary words"
    )
    if old_metadata is not None:
        synonym_diff = metadata.synonym_count - old_metadata.synonym_count
        word_diff = metadata.dictionary_word_count - old_metadata.dictionary_word_count
        logger.info(f"Changes: synonyms {synonym_diff:+d}, dictionary words {word_diff:+d}")
    return metadata
