"""
Character class helpers for chijimi.

Script checks decide which substitutions are allowed: a Japanese word is
never rewritten into plain Latin letters and vice versa.
"""

import re


# ============================================================================
# Script Patterns
# ============================================================================

# Hiragana, Katakana, CJK ideographs, CJK Extension A
_JAPANESE_RE = re.compile(r"[\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FAF\u3400-\u4DBF]+")
_ALPHABET_RE = re.compile(r"[a-zA-Z]+")


def is_japanese(text: str) -> bool:
    """True if every character is hiragana, katakana or a CJK ideograph."""
    return bool(_JAPANESE_RE.fullmatch(text))


def is_alphabet(text: str) -> bool:
    """True if every character is an ASCII letter."""
    return bool(_ALPHABET_RE.fullmatch(text))


def crosses_script(source: str, target: str) -> bool:
    """
    Check whether replacing ``source`` with ``target`` switches script.

    Only the pure Japanese / pure alphabetic pair counts. Mixed strings
    (digits, symbols, half-width forms) are neither and never cross.
    """
    if is_japanese(source) and is_alphabet(target):
        return True
    if is_alphabet(source) and is_japanese(target):
        return True
    return False
