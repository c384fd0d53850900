"""
Lightweight data structures for raw synonym dictionary records.

These are populated by the source parser and consumed by the compiler.
Nothing here survives into the compiled dictionary.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List


class ExpansionFlag(IntEnum):
    """
    Per-word permission to act as a substitution source.

    Mirrors the third column of Sudachi's synonyms.txt.
    """
    ALWAYS = 0
    NOT_TRIGGER = 1
    NEVER = 2

    @classmethod
    def parse(cls, raw: str) -> "ExpansionFlag":
        """
        Parse the flag field of a dictionary line.

        An empty field means ALWAYS. Unknown values are neither a source
        nor excluded from the target pool, which is NOT_TRIGGER.
        """
        raw = raw.strip()
        if not raw:
            return cls.ALWAYS
        try:
            return cls(int(raw))
        except ValueError:
            return cls.NOT_TRIGGER


@dataclass(frozen=True, slots=True)
class WordEntry:
    """
    One dictionary row.

    Attributes:
        word: The surface form (trimmed)
        expansion_flag: Whether the word may be rewritten
    """
    word: str
    expansion_flag: ExpansionFlag = ExpansionFlag.ALWAYS

    @property
    def is_source(self) -> bool:
        """True if this entry may be replaced by its group representative."""
        return self.expansion_flag == ExpansionFlag.ALWAYS

    @property
    def is_target(self) -> bool:
        """True if this entry may be chosen as the group representative."""
        return self.expansion_flag != ExpansionFlag.NEVER


@dataclass(slots=True)
class SynonymGroup:
    """All entries sharing a group id, in first-seen order."""
    group_id: str
    entries: List[WordEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def words(self) -> List[str]:
        return [e.word for e in self.entries]
