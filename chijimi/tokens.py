"""
Token counting and word segmentation backends.

The compiler only needs ``count_tokens``; the text rewriter needs both.
Anything with the same two methods can be passed instead, which is how
most tests avoid loading a BPE table or a Sudachi dictionary.

Defaults:
    - tiktoken ``o200k_base`` for counting (what GPT-4o bills)
    - SudachiPy split mode C for segmentation (long units, so compound
      words reach the compound optimizer whole)
"""

import logging
import re
import threading
from functools import lru_cache
from typing import List, Optional, Protocol

import tiktoken
from sudachipy import dictionary as sudachi_dictionary
from sudachipy import tokenizer as sudachi_tokenizer

from chijimi.config import DEFAULT_ENCODING

logger = logging.getLogger(__name__)


class TokenCounter(Protocol):
    def count_tokens(self, text: str) -> int:
        ...


class Segmenter(Protocol):
    def segment(self, text: str) -> List[str]:
        ...


# =============================================================================
# tiktoken
# =============================================================================

class TiktokenCounter:
    """Count tokens with a tiktoken encoding."""

    def __init__(self, encoding: str = DEFAULT_ENCODING, cache_size: int = 65536):
        self.encoding_name = encoding
        self._encoding = tiktoken.get_encoding(encoding)
        # Builds count every dictionary word several times
        self._cached = lru_cache(maxsize=cache_size)(self._count)

    def _count(self, text: str) -> int:
        return len(self._encoding.encode(text, disallowed_special=()))

    def count_tokens(self, text: str) -> int:
        return self._cached(text)


# =============================================================================
# SudachiPy
# =============================================================================

_SPLIT_MODES = {
    "A": sudachi_tokenizer.Tokenizer.SplitMode.A,
    "B": sudachi_tokenizer.Tokenizer.SplitMode.B,
    "C": sudachi_tokenizer.Tokenizer.SplitMode.C,
}

# Sudachi rejects input above 49149 UTF-8 bytes
MAX_CHUNK_BYTES = 32768

# Preferred places to cut an over-long line
_BREAK_RE = re.compile(r"[。、！？\s]")


def split_for_tokenizer(text: str, max_bytes: int = MAX_CHUNK_BYTES) -> List[str]:
    """
    Cut ``text`` into pieces of at most ``max_bytes`` UTF-8 bytes.

    Each cut is made after the last sentence or clause mark or whitespace
    that fits, or at the last whole character if there is none. Joining
    the pieces gives back ``text``.
    """
    chunks = []
    while len(text.encode("utf-8")) > max_bytes:
        # A partial trailing character is dropped by the decode
        head = text.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")
        cut = len(head)
        for match in _BREAK_RE.finditer(head):
            cut = match.end()
        chunks.append(text[:cut])
        text = text[cut:]
    if text:
        chunks.append(text)
    return chunks


class SudachiSegmenter:
    """
    Split text into surface forms with SudachiPy.

    Every morpheme is kept, whitespace included, so joining the result
    reproduces the input exactly. Lines longer than Sudachi accepts are
    tokenized in pieces (see :func:`split_for_tokenizer`).
    """

    def __init__(self, split_mode: str = "C", dict_name: Optional[str] = None):
        try:
            self.mode = _SPLIT_MODES[split_mode.upper()]
        except KeyError:
            raise ValueError(f"split_mode must be one of A, B, C (got {split_mode!r})")
        self.dict_name = dict_name
        self._tokenizer = None
        # Sudachi tokenizers are not safe to share across threads
        self._lock = threading.Lock()

    def _get_tokenizer(self):
        if self._tokenizer is None:
            if self.dict_name:
                sudachi_dict = sudachi_dictionary.Dictionary(dict=self.dict_name)
            else:
                sudachi_dict = sudachi_dictionary.Dictionary()
            self._tokenizer = sudachi_dict.tokenizer()
            logger.debug("Sudachi tokenizer created")
        return self._tokenizer

    def segment(self, text: str) -> List[str]:
        if not text:
            return []
        surfaces: List[str] = []
        with self._lock:
            tokenizer = self._get_tokenizer()
            for chunk in split_for_tokenizer(text):
                surfaces.extend(m.surface() for m in tokenizer.tokenize(chunk, self.mode))
        return surfaces
