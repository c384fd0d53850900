"""
Dictionary compiler for chijimi.

Turns raw synonym groups into a CompiledDictionary:

    parse -> group -> pick representative -> register substitutions

For each group the representative is the most token-efficient word that
may be used as a target. Every other word flagged ALWAYS is mapped to it
when the substitution saves tokens and does not switch between Japanese
and Latin script.
"""

import logging
import time
from functools import reduce
from typing import Dict, Iterable, List, Optional, Set

from chijimi.characters import crosses_script, is_japanese
from chijimi.dictionary import CompiledDictionary
from chijimi.raw_types import SynonymGroup, WordEntry
from chijimi.source import group_entries, parse_source
from chijimi.tokens import TokenCounter

logger = logging.getLogger(__name__)


# ============================================================================
# Admissibility
# ============================================================================

def should_optimize(
    original: str,
    optimized: str,
    counter: TokenCounter,
    min_reduction: float = 0.0,
) -> bool:
    """
    Decide whether ``original`` may be rewritten to ``optimized``.

    Args:
        original: Source word
        optimized: Candidate replacement
        counter: Token counter
        min_reduction: Required relative reduction. 0.0 accepts any
            saving, 0.2 is the strict mode.

    Returns:
        True if the substitution keeps the script and saves tokens
    """
    if crosses_script(original, optimized):
        return False

    original_tokens = counter.count_tokens(original)
    optimized_tokens = counter.count_tokens(optimized)
    if optimized_tokens >= original_tokens:
        return False

    if min_reduction > 0:
        reduction = (original_tokens - optimized_tokens) / original_tokens
        return reduction >= min_reduction
    return True


# ============================================================================
# Efficiency Selection
# ============================================================================

def more_efficient(a: WordEntry, b: WordEntry, counter: TokenCounter) -> WordEntry:
    """
    Pick the better representative of two entries.

    Order of precedence:
    1. Japanese script beats anything else
    2. Fewer tokens
    3. Fewer characters
    4. ``a`` (first seen) on a full tie
    """
    ja_a = is_japanese(a.word)
    ja_b = is_japanese(b.word)
    if ja_a and not ja_b:
        return a
    if ja_b and not ja_a:
        return b

    tokens_a = counter.count_tokens(a.word)
    tokens_b = counter.count_tokens(b.word)
    if tokens_a != tokens_b:
        return a if tokens_a < tokens_b else b
    if len(a.word) != len(b.word):
        return a if len(a.word) < len(b.word) else b
    return a


def select_most_efficient(
    entries: Iterable[WordEntry],
    counter: TokenCounter,
) -> Optional[WordEntry]:
    """
    Fold a group's target candidates into its representative.

    Returns:
        The representative, or None if every entry is flagged NEVER
    """
    candidates = [e for e in entries if e.is_target]
    if not candidates:
        return None
    return reduce(lambda a, b: more_efficient(a, b, counter), candidates)


# ============================================================================
# Synonym Map
# ============================================================================

def build_synonym_map(
    groups: Iterable[SynonymGroup],
    counter: TokenCounter,
    min_reduction: float = 0.0,
) -> Dict[str, str]:
    """
    Register ``word -> representative`` for every admissible source word.

    A word listed in several groups keeps the mapping of the last group
    that registers it.
    """
    synonym_map: Dict[str, str] = {}
    for group in groups:
        target = select_most_efficient(group.entries, counter)
        if target is None:
            continue

        for entry in group.entries:
            if (
                entry.word != target.word
                and entry.is_source
                and should_optimize(entry.word, target.word, counter, min_reduction)
            ):
                synonym_map[entry.word] = target.word

    return collapse_chains(synonym_map, counter, min_reduction)


def collapse_chains(
    synonym_map: Dict[str, str],
    counter: TokenCounter,
    min_reduction: float = 0.0,
) -> Dict[str, str]:
    """
    Make every mapping single hop.

    A representative of one group can be an ordinary member of another, so
    ``A -> B`` and ``B -> C`` may both exist. ``A`` is pointed at the end
    of its chain if that substitution is still admissible, otherwise it is
    dropped. Each hop strictly lowers the token count, so chains end.
    """
    result: Dict[str, str] = {}
    dropped = 0
    for word, target in synonym_map.items():
        seen: Set[str] = {word}
        while target in synonym_map and target not in seen:
            seen.add(target)
            target = synonym_map[target]

        if target == word:
            dropped += 1
        elif target == synonym_map[word] or should_optimize(word, target, counter, min_reduction):
            result[word] = target
        else:
            dropped += 1

    if dropped:
        logger.debug(f"Dropped {dropped} chained mappings")
    return result


# ============================================================================
# Compilation
# ============================================================================

def compile_dictionary(
    text: str,
    counter: TokenCounter,
    min_reduction: float = 0.0,
) -> CompiledDictionary:
    """
    Compile raw synonyms.txt content.

    Args:
        text: Raw dictionary text
        counter: Token counter
        min_reduction: See :func:`should_optimize`

    Returns:
        A new CompiledDictionary
    """
    start = time.perf_counter()

    records = parse_source(text)
    dictionary_words: List[str] = []
    seen: Set[str] = set()
    for _, entry in records:
        if entry.word not in seen:
            seen.add(entry.word)
            dictionary_words.append(entry.word)

    groups = group_entries(records)
    logger.info("Building token-efficient synonym mappings...")
    synonym_map = build_synonym_map(groups, counter, min_reduction)

    compiled = CompiledDictionary(synonym_map, dictionary_words)
    elapsed = (time.perf_counter() - start) * 1000
    logger.info(
        f"Built {compiled.synonym_count} synonym mappings from {len(groups)} groups, "
        f"{compiled.word_count} dictionary words ({elapsed:.0f}ms)"
    )
    return compiled
