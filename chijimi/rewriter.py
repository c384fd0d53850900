"""
Text rewriter for chijimi.

Applies a CompiledDictionary to arbitrary text, line by line:

1. Each non-blank line is segmented into words
2. Each word is replaced by its exact synonym-map entry if there is one
3. Otherwise known dictionary words stay as they are
4. Otherwise the word goes through the compound optimizer

Lines are independent, so they can be processed in any order.
"""

from dataclasses import dataclass
from typing import List

from chijimi.dictionary import CompiledDictionary
from chijimi.splits import optimize_compound_word
from chijimi.tokens import Segmenter, TokenCounter


@dataclass(frozen=True, slots=True)
class OptimizationResult:
    """
    Outcome of one rewrite.

    Attributes:
        original: Input text
        optimized: Rewritten text
        original_tokens: Token count of the input
        optimized_tokens: Token count of the output
    """
    original: str
    optimized: str
    original_tokens: int
    optimized_tokens: int

    @property
    def saved_tokens(self) -> int:
        return self.original_tokens - self.optimized_tokens

    @property
    def reduction_rate(self) -> float:
        if not self.original_tokens:
            return 0.0
        return self.saved_tokens / self.original_tokens

    def to_dict(self) -> dict:
        """Response shape of the optimization endpoint."""
        return {
            "original": self.original,
            "optimized": self.optimized,
            "tokenCount": {
                "original": self.original_tokens,
                "optimized": self.optimized_tokens,
            },
        }


def optimize_token(token: str, compiled: CompiledDictionary) -> str:
    """Rewrite a single segmented token."""
    replacement = compiled.replacement(token)
    if replacement:
        return replacement
    if compiled.is_known_word(token):
        return token
    return optimize_compound_word(token, compiled)


def optimize_line(line: str, compiled: CompiledDictionary, segmenter: Segmenter) -> str:
    """Rewrite one line. Whitespace-only lines are returned untouched."""
    if not line.strip():
        return line
    return "".join(optimize_token(t, compiled) for t in segmenter.segment(line))


def optimize_lines(lines: List[str], compiled: CompiledDictionary, segmenter: Segmenter) -> List[str]:
    return [optimize_line(line, compiled, segmenter) for line in lines]


def optimize_text(
    text: str,
    compiled: CompiledDictionary,
    segmenter: Segmenter,
    counter: TokenCounter,
) -> OptimizationResult:
    """
    Rewrite ``text`` to use fewer tokens.

    Args:
        text: Input text, any number of lines
        compiled: Dictionary to apply
        segmenter: Word segmenter
        counter: Token counter used for the reported counts

    Returns:
        OptimizationResult with the rewritten text and both token counts
    """
    optimized = "\n".join(optimize_lines(text.split("\n"), compiled, segmenter))
    return OptimizationResult(
        original=text,
        optimized=optimized,
        original_tokens=counter.count_tokens(text),
        optimized_tokens=counter.count_tokens(optimized),
    )
