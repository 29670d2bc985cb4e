"""Keyword-overlap text similarity for short channel questions.

Scoring is deterministic and bounded: two texts are compared by the overlap
of their keyword sets, where keywords count as partially matching when one
contains the other or they differ by a single edit. Hangul, ASCII letters
and digits are kept; everything else is treated as a separator.
"""

import re
from typing import List, Set

_NON_WORD = re.compile(r"[^가-힣a-z0-9\s]")

# Markers that make a message read like a question (Korean and ASCII)
QUESTION_MARKERS = (
    "?",
    "？",
    "무엇",
    "뭐",
    "어떻게",
    "왜",
    "언제",
    "어디서",
    "누가",
    "방법",
    "어떤",
)

MIN_KEYWORD_LENGTH = 2
MAX_EDIT_DISTANCE_LENGTH = 10

# Returned when the distance is not worth computing
EDIT_DISTANCE_SENTINEL = 1_000_000


def tokenize(text: str) -> List[str]:
    """Lowercase, strip punctuation and return tokens longer than one char."""
    cleaned = _NON_WORD.sub(" ", text.lower())
    return [token for token in cleaned.split() if len(token) > 1]


def _keywords(text: str) -> Set[str]:
    return {token for token in tokenize(text) if len(token) >= MIN_KEYWORD_LENGTH}


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between two short strings.

    Strings longer than ten characters, or whose lengths differ by more than
    one, short-circuit to ``EDIT_DISTANCE_SENTINEL``. Callers only care
    whether the distance is at most one.
    """
    if len(a) > MAX_EDIT_DISTANCE_LENGTH or len(b) > MAX_EDIT_DISTANCE_LENGTH:
        return EDIT_DISTANCE_SENTINEL
    if abs(len(a) - len(b)) > 1:
        return EDIT_DISTANCE_SENTINEL

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        previous = current
    return previous[len(b)]


def _is_partial_match(first: str, second: str) -> bool:
    return first in second or second in first or edit_distance(first, second) <= 1


def _count_partial(source: Set[str], other: Set[str]) -> int:
    # Each source keyword contributes at most once
    return sum(
        1
        for first in source
        if any(_is_partial_match(first, second) for second in other)
    )


def similarity(text1: str, text2: str) -> float:
    """Score two texts in [0, 1] by keyword overlap.

    Exact keyword matches weigh twice as much as partial ones. A keyword
    counts once as partial when any keyword of the other text contains it,
    is contained by it, or is one edit away. Partial matches are counted
    from both sides, so ``similarity(a, b) == similarity(b, a)`` and a bare
    stem ("배포") is credited against its inflected form ("배포는") in
    either direction.
    """
    keywords1 = _keywords(text1)
    keywords2 = _keywords(text2)
    if not keywords1 or not keywords2:
        return 0.0

    exact = len(keywords1 & keywords2)
    partial = _count_partial(keywords1, keywords2) + _count_partial(
        keywords2, keywords1
    )

    score = (exact * 2 + partial) / (max(len(keywords1), len(keywords2)) * 2)
    return min(score, 1.0)


def is_question_like(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in QUESTION_MARKERS)
