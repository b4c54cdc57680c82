"""Normalized edit-distance similarity between two text bodies."""

from rapidfuzz.distance import Levenshtein


def similarity(a: str, b: str) -> float:
    """
    Return ``1 - levenshtein(a, b) / max(len(a), len(b))`` in [0, 1].

    Empty input on either side scores 0.0, including two empty strings, so an empty
    submission never reports a full match. rapidfuzz keeps memory linear in the input
    length, so large bodies do not allocate an n*m matrix.
    """
    if not a or not b:
        return 0.0
    distance = Levenshtein.distance(a, b)
    return 1.0 - distance / max(len(a), len(b))


def to_percent(score: float) -> float:
    """Score as a percentage rounded to two decimals (0.61234 -> 61.23)."""
    return round(score * 100, 2)
