import pytest
from hypothesis import given
from hypothesis import strategies as st

from vecstore.textmatch import (
    char_bigrams,
    extract_keywords,
    jaccard_bigrams,
    keyword_overlap,
)


@pytest.mark.parametrize("text", ["", "a", "中"])
def test_char_bigrams_short_text_is_empty(text):
    assert len(char_bigrams(text)) == 0


def test_char_bigrams_contains_every_adjacent_pair():
    text = "hello"
    grams = char_bigrams(text)
    assert grams == {text[0:2], text[1:3], text[2:4], text[3:5]}


def test_char_bigrams_deduplicates():
    text = "aaaa"
    assert char_bigrams(text) == {text[:2]}


def test_char_bigrams_uses_code_points():
    text = "机器学习"
    grams = char_bigrams(text)
    assert text[1:3] in grams
    assert all(len(g) == 2 for g in grams)


@given(st.text(max_size=50))
def test_char_bigrams_size_bound(text):
    grams = char_bigrams(text)
    assert len(grams) <= max(len(text) - 1, 0)
    assert all(g in text for g in grams)


def test_jaccard_identical_sets():
    grams = char_bigrams("machine learning")
    assert jaccard_bigrams(grams, grams) == pytest.approx(1.0)


def test_jaccard_disjoint_sets():
    assert jaccard_bigrams(char_bigrams("abc"), char_bigrams("xyz")) == 0.0


def test_jaccard_empty_set():
    assert jaccard_bigrams(frozenset(), char_bigrams("abc")) == 0.0
    assert jaccard_bigrams(char_bigrams("abc"), frozenset()) == 0.0


def test_jaccard_partial_overlap_matches_definition():
    a = char_bigrams("learning")
    b = char_bigrams("earnings")
    assert jaccard_bigrams(a, b) == pytest.approx(len(a & b) / len(a | b))


@given(st.text(max_size=30), st.text(max_size=30))
def test_jaccard_symmetric_and_bounded(x, y):
    a, b = char_bigrams(x), char_bigrams(y)
    score = jaccard_bigrams(a, b)
    assert score == jaccard_bigrams(b, a)
    assert 0.0 <= score <= 1.0


def test_extract_keywords_splits_and_lowercases():
    assert extract_keywords("Hello, World! How are you?") == [
        "hello",
        "world",
        "how",
        "are",
        "you",
    ]


def test_extract_keywords_drops_single_characters_and_duplicates():
    assert extract_keywords("a Deep deep (learning) x") == ["deep", "learning"]


def test_extract_keywords_chinese_punctuation():
    assert extract_keywords("机器学习，深度学习。“神经网络”") == [
        "机器学习",
        "深度学习",
        "神经网络",
    ]


def test_extract_keywords_empty():
    assert extract_keywords("") == []
    assert extract_keywords(" ,.!? ") == []


@given(st.text(max_size=60))
def test_extract_keywords_invariants(text):
    keywords = extract_keywords(text)
    assert len(keywords) == len(set(keywords))
    for word in keywords:
        assert len(word) >= 2
        assert word == word.lower()
        assert not any(sep in word for sep in " \t\n,.?!()[]{}")


def test_keyword_overlap_all_match():
    keywords = extract_keywords("machine learning")
    assert keyword_overlap(keywords, "machine learning algorithms") == pytest.approx(1.0)


def test_keyword_overlap_none_match():
    assert keyword_overlap(["neural", "network"], "machine learning") == 0.0


def test_keyword_overlap_partial():
    keywords = ["learning", "neural", "deep", "cooking"]
    text = "deep learning neural networks"
    expected = sum(1 for k in keywords if k in text) / len(keywords)
    assert keyword_overlap(keywords, text) == pytest.approx(expected)
    assert 0.0 < keyword_overlap(keywords, text) < 1.0


def test_keyword_overlap_no_keywords():
    assert keyword_overlap([], "anything") == 0.0


@given(st.lists(st.text(min_size=1, max_size=5), max_size=10), st.text(max_size=40))
def test_keyword_overlap_bounded(keywords, text):
    score = keyword_overlap(keywords, text)
    assert 0.0 <= score <= 1.0