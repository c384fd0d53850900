"""
Compound word optimizer for chijimi.

Handles tokens the segmenter left whole but that the dictionary does not
know, e.g. 再構築処理 = 再構築 + 処理. The longest synonym-map key that
prefixes the token is replaced, then the rest of the token is handled
the same way.

The search is greedy: once the longest prefix matches, shorter prefixes
are never tried, even if another split would save more tokens.
"""

from chijimi.dictionary import CompiledDictionary


# Prefixes and remainders shorter than this are never split off
MIN_SPLIT_LENGTH = 3


def longest_prefix_match(word: str, compiled: CompiledDictionary) -> str:
    """
    Longest synonym-map key of at least MIN_SPLIT_LENGTH chars prefixing ``word``.

    Returns:
        The matching key, or "" if there is none
    """
    best = ""
    for key in compiled.prefixes(word):
        if len(key) >= MIN_SPLIT_LENGTH and len(key) > len(best):
            best = key
    return best


def optimize_compound_word(word: str, compiled: CompiledDictionary) -> str:
    """
    Rewrite a compound token by greedy longest-prefix replacement.

    Args:
        word: A token with no exact synonym-map entry
        compiled: The dictionary to rewrite with

    Returns:
        The rewritten token; ``word`` itself if nothing matched

    Example:
        >>> optimize_compound_word("再構築処理", compiled)  # 再構築 -> 再構成
        '再構成処理'
    """
    if len(word) < MIN_SPLIT_LENGTH:
        return word

    # Known whole words are atomic
    if compiled.is_known_word(word):
        return word

    prefix = longest_prefix_match(word, compiled)
    if not prefix:
        return word

    replacement = compiled.synonym_map[prefix]
    remaining = word[len(prefix):]
    if len(remaining) >= MIN_SPLIT_LENGTH:
        remaining = optimize_compound_word(remaining, compiled)
    return replacement + remaining
