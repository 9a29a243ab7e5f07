"""Lenient short-answer checking: typo tolerance, alternative answers, key words."""

import math
import re
import unicodedata

from cardwise.domain.constants import (
    EDIT_TOLERANCE_RATIO,
    GUESS_LENGTH_RATIO,
    KEY_WORD_MIN_LENGTH,
    WORD_OVERLAP_RATIO,
)

_COMBINING_MARKS = re.compile("[\u0300-\u036f]")
_NON_WORD = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_ALTERNATIVE_SEPARATORS = re.compile(r"(?:\s+or\s+|/|;|\|)", re.IGNORECASE)


def normalize_answer_text(value: str) -> str:
    text = unicodedata.normalize("NFKD", value)
    text = _COMBINING_MARKS.sub("", text)
    text = text.replace("\u2212", "-").lower()
    text = _NON_WORD.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def split_alternative_answers(answer: str) -> list[str]:
    """'cat or dog' / 'cat/dog' / 'cat; dog' -> ['cat', 'dog']"""
    parts = (normalize_answer_text(part) for part in _ALTERNATIVE_SEPARATORS.split(answer))
    return [part for part in parts if part]


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def _has_high_word_overlap(guess: str, target: str) -> bool:
    if not guess or not target:
        return False

    target_words = target.split(" ")
    target_set = set(target_words)
    shared = sum(1 for word in guess.split(" ") if word in target_set)
    overlap = shared / len(target_words)

    return overlap >= WORD_OVERLAP_RATIO and len(guess) >= len(target) * GUESS_LENGTH_RATIO


def _shares_key_word(guess: str, target: str) -> bool:
    if not guess or not target:
        return False

    guess_words = {w for w in guess.split(" ") if len(w) >= KEY_WORD_MIN_LENGTH}
    return any(
        len(word) >= KEY_WORD_MIN_LENGTH and word in guess_words for word in target.split(" ")
    )


def is_short_answer_correct(guess: str, correct_answer: str) -> bool:
    """
    Accept a typed answer if it matches any alternative of the correct answer.

    A match is an exact normalized match, a small edit distance (15% of the
    answer length, at least 1), a shared key word, or a high word overlap.
    """
    normalized_guess = normalize_answer_text(guess)
    if not normalized_guess:
        return False

    for answer in split_alternative_answers(correct_answer):
        if normalized_guess == answer:
            return True

        allowed = max(1, math.ceil(len(answer) * EDIT_TOLERANCE_RATIO))
        if levenshtein_distance(normalized_guess, answer) <= allowed:
            return True

        if _shares_key_word(normalized_guess, answer):
            return True

        if _has_high_word_overlap(normalized_guess, answer):
            return True

    return False
