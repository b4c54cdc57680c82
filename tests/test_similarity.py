"""Normalized edit-distance similarity."""

import pytest

from docscan.services.similarity import similarity, to_percent


def test_kitten_sitting():
    assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)
    assert round(similarity("kitten", "sitting"), 4) == 0.5714


@pytest.mark.parametrize(
    "a,b",
    [
        ("kitten", "sitting"),
        ("flaw", "lawn"),
        ("the quick brown fox", "the quick brown dog jumps"),
        ("a", "completely different"),
    ],
)
def test_symmetric(a, b):
    assert similarity(a, b) == similarity(b, a)


def test_identical_text_scores_one():
    text = "Lorem ipsum dolor sit amet, consectetur adipiscing elit."
    assert similarity(text, text) == 1.0


def test_empty_inputs_score_zero():
    assert similarity("", "") == 0
    assert similarity("", "x") == 0
    assert similarity("x", "") == 0


def test_completely_different_same_length():
    assert similarity("abc", "xyz") == 0.0


def test_score_within_bounds_for_unequal_lengths():
    score = similarity("short", "a much longer piece of text than the other one")
    assert 0.0 <= score <= 1.0


def test_large_inputs():
    a = "lorem ipsum " * 2000
    b = a[:-12] + "dolor sitam "
    score = similarity(a, b)
    assert 0.99 < score < 1.0


def test_to_percent_rounds_two_decimals():
    assert to_percent(1.0) == 100.0
    assert to_percent(0.612345) == 61.23
    assert to_percent(1 - 3 / 7) == 57.14
