"""
Shared fixtures.

Token counts and segmentation come from small in-memory fakes so the
tests never download a BPE table or a Sudachi dictionary.
"""

from typing import Dict, Iterable, List, Optional

import pytest

from chijimi.config import Settings
from chijimi.service import DictionaryService
from chijimi.store import MemoryStore


class FakeCounter:
    """Token counts from a table; unknown text costs one token per character."""

    def __init__(self, table: Optional[Dict[str, int]] = None):
        self.table = dict(table or {})
        self.calls: List[str] = []

    def count_tokens(self, text: str) -> int:
        self.calls.append(text)
        return self.table.get(text, len(text))


class FakeSegmenter:
    """Greedy longest match over a fixed vocabulary, single characters otherwise."""

    def __init__(self, vocabulary: Iterable[str] = ()):
        self.vocabulary = set(vocabulary)
        self.max_len = max((len(w) for w in self.vocabulary), default=1)

    def segment(self, text: str) -> List[str]:
        tokens = []
        i = 0
        while i < len(text):
            for size in range(min(self.max_len, len(text) - i), 0, -1):
                piece = text[i:i + size]
                if size == 1 or piece in self.vocabulary:
                    tokens.append(piece)
                    i += size
                    break
        return tokens


class FlakyStore(MemoryStore):
    """Fails the first ``failures`` batch writes."""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def set_batch(self, entries):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            return False
        return super().set_batch(entries)


def record(group_id: str, word: str, flag: str = "0") -> str:
    """One synonyms.txt line."""
    return f"{group_id},1,{flag},1,0,0,0,(),{word},,"


def source(*lines: str) -> str:
    return "\n".join(lines) + "\n"


# Computer / algorithm example
TOKEN_TABLE = {
    "コンピュータ": 3,
    "コンピューター": 3,
    "電算機": 2,
    "計算機": 2,
    "アルゴリズム": 2,
    "再構築": 3,
    "再構成": 2,
    "猫": 2,
    "ネコ": 1,
    "PC": 1,
    "パソコン": 3,
}

SAMPLE_SOURCE = source(
    "# Sudachi synonyms sample",
    record("000001", "コンピュータ"),
    record("000001", "コンピューター"),
    record("000001", "電算機"),
    "",
    record("000002", "猫"),
    record("000002", "ネコ", flag="2"),
    record("000003", "再構築"),
    record("000003", "再構成"),
    record("000004", "パソコン"),
    record("000004", "PC"),
    record("000005", "アルゴリズム"),
    "broken,line",
)

VOCABULARY = [
    "コンピュータ", "コンピューター", "電算機", "アルゴリズム", "を", "と",
    "活用した", "再構築処理", "猫", "ネコ", "が", "いる",
]


@pytest.fixture
def counter():
    return FakeCounter(TOKEN_TABLE)


@pytest.fixture
def segmenter():
    return FakeSegmenter(VOCABULARY)


@pytest.fixture
def service(counter, segmenter):
    return DictionaryService(counter=counter, segmenter=segmenter, settings=Settings())


@pytest.fixture
def loaded_service(service):
    service.load(SAMPLE_SOURCE)
    return service
