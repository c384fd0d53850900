"""
chijimi: Token-saving synonym rewriter for Japanese text

Rewrites Japanese text with cheaper synonyms from Sudachi's synonym
dictionary so that it costs fewer LLM tokens.

Basic Usage:
    from chijimi import DictionaryService

    service = DictionaryService()
    service.load_url()          # or load_snapshot("synonym-dict.json")

    result = service.optimize("コンピュータとアルゴリズムを活用した")
    print(result.optimized, result.original_tokens, result.optimized_tokens)
"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from chijimi.build import compile_dictionary, should_optimize
from chijimi.config import Settings
from chijimi.dictionary import CompiledDictionary, DictionaryMetadata, load_snapshot, save_snapshot
from chijimi.errors import (
    AlreadyInitializedError,
    ChijimiError,
    InvalidRequestError,
    OptimizationTimeoutError,
    PersistenceError,
    SnapshotError,
    SourceFetchError,
    UninitializedDictionaryError,
)
from chijimi.rewriter import OptimizationResult, optimize_text
from chijimi.service import DictionaryService, refresh_dictionary
from chijimi.splits import optimize_compound_word

__version__ = "0.1.0"


def get_version() -> str:
    """Get the library version."""
    return __version__


# =============================================================================
# Async API
# =============================================================================

# Thread pool for async operations
_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    """Get or create the thread pool executor."""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="chijimi")
    return _executor


async def optimize_async(
    service: DictionaryService,
    text: str,
    timeout: float = 30.0,
) -> OptimizationResult:
    """
    Optimize text on a worker thread.

    Args:
        service: Service holding the dictionary
        text: Text to rewrite
        timeout: Maximum time in seconds (default 30s)

    Returns:
        OptimizationResult

    Raises:
        OptimizationTimeoutError: If the rewrite exceeds ``timeout``
        InvalidRequestError: If ``text`` is empty
        UninitializedDictionaryError: If no dictionary is published

    Example:
        >>> result = asyncio.run(chijimi.optimize_async(service, "コンピュータ"))
    """
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(_get_executor(), service.optimize, text)
    try:
        return await asyncio.wait_for(future, timeout=timeout)
    except asyncio.TimeoutError:
        raise OptimizationTimeoutError(f"Optimization timed out after {timeout}s")


def shutdown():
    """
    Shutdown the thread pool executor.

    Call this when your application is shutting down to cleanly
    release resources.
    """
    global _executor
    with _executor_lock:
        if _executor is not None:
            _executor.shutdown(wait=True)
            _executor = None


__all__ = [
    # Service
    "DictionaryService",
    "refresh_dictionary",
    "Settings",
    # Data
    "CompiledDictionary",
    "DictionaryMetadata",
    "OptimizationResult",
    # Algorithms
    "compile_dictionary",
    "should_optimize",
    "optimize_text",
    "optimize_compound_word",
    # Snapshots
    "load_snapshot",
    "save_snapshot",
    # Async API
    "optimize_async",
    "shutdown",
    # Errors
    "ChijimiError",
    "SourceFetchError",
    "PersistenceError",
    "UninitializedDictionaryError",
    "InvalidRequestError",
    "SnapshotError",
    "AlreadyInitializedError",
    "OptimizationTimeoutError",
    # Version
    "get_version",
    "__version__",
]
