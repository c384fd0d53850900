import pytest

from chijimi.build import compile_dictionary
from chijimi.dictionary import CompiledDictionary
from chijimi.rewriter import OptimizationResult, optimize_line, optimize_text, optimize_token

from conftest import SAMPLE_SOURCE, FakeSegmenter


@pytest.fixture
def compiled(counter):
    return compile_dictionary(SAMPLE_SOURCE, counter)


def test_computer_sentence(compiled, segmenter, counter):
    result = optimize_text("コンピュータとアルゴリズムを活用した", compiled, segmenter, counter)
    assert result.optimized == "電算機とアルゴリズムを活用した"
    assert result.original_tokens == 18
    assert result.optimized_tokens == 15
    assert result.saved_tokens == 3


def test_compound_token(compiled, segmenter, counter):
    result = optimize_text("再構築処理をした", compiled, segmenter, counter)
    assert result.optimized == "再構成処理をした"


def test_exact_match_before_known_word(compiled):
    # コンピュータ is both a map key and a known word
    assert compiled.is_known_word("コンピュータ")
    assert optimize_token("コンピュータ", compiled) == "電算機"


def test_known_words_are_kept(compiled):
    assert optimize_token("猫", compiled) == "猫"
    assert optimize_token("ネコ", compiled) == "ネコ"
    assert optimize_token("アルゴリズム", compiled) == "アルゴリズム"


def test_blank_lines_preserved(compiled, segmenter, counter):
    text = "コンピュータ\n\n  \n猫がいる"
    result = optimize_text(text, compiled, segmenter, counter)
    assert result.optimized == "電算機\n\n  \n猫がいる"
    assert result.optimized.count("\n") == text.count("\n")


def test_whitespace_line_is_not_segmented(compiled):
    class Exploding:
        def segment(self, text):
            raise AssertionError("should not segment a blank line")

    assert optimize_line(" \t", compiled, Exploding()) == " \t"


def test_rewrite_is_idempotent(compiled, segmenter, counter):
    text = "コンピューターで再構築処理をした\nコンピュータとアルゴリズム"
    once = optimize_text(text, compiled, segmenter, counter).optimized
    twice = optimize_text(once, compiled, segmenter, counter).optimized
    assert once == twice


def test_empty_dictionary_is_identity(segmenter, counter):
    text = "コンピュータとアルゴリズムを活用した"
    result = optimize_text(text, CompiledDictionary({}, ()), segmenter, counter)
    assert result.optimized == text
    assert result.saved_tokens == 0


def test_unsegmented_characters_pass_through(compiled, counter):
    result = optimize_text("123 abc!", compiled, FakeSegmenter(), counter)
    assert result.optimized == "123 abc!"


def test_result_to_dict():
    result = OptimizationResult("コンピュータ", "電算機", 3, 2)
    assert result.to_dict() == {
        "original": "コンピュータ",
        "optimized": "電算機",
        "tokenCount": {"original": 3, "optimized": 2},
    }
    assert result.reduction_rate == pytest.approx(1 / 3)


def test_reduction_rate_of_empty_result():
    assert OptimizationResult("", "", 0, 0).reduction_rate == 0.0
