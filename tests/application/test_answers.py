import pytest

from cardwise.application.answers import (
    is_short_answer_correct,
    levenshtein_distance,
    normalize_answer_text,
    split_alternative_answers,
)


# ---------- Normalization ----------


def test_normalize_strips_accents_and_punctuation():
    assert normalize_answer_text("  Héllo,   World! ") == "hello world"


def test_normalize_unicode_minus():
    assert normalize_answer_text("−5 degrees") == "-5 degrees"


def test_split_alternatives():
    assert split_alternative_answers("cat or dog") == ["cat", "dog"]
    assert split_alternative_answers("Cat / Dog; bird | fish") == ["cat", "dog", "bird", "fish"]
    assert split_alternative_answers(" / ") == []


def test_levenshtein():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0


# ---------- Matching ----------


@pytest.mark.parametrize(
    "guess, answer",
    [
        ("dog", "dog"),
        ("DOG", "dog"),
        ("cafe", "Café"),
        ("recieve", "receive"),  # two edits allowed for 7 letters
        ("dog", "cat or dog"),
        ("mitochondria", "the mitochondria organelle"),
        ("the big red barn", "big red barn"),
    ],
)
def test_accepted_answers(guess, answer):
    assert is_short_answer_correct(guess, answer)


@pytest.mark.parametrize(
    "guess, answer",
    [
        ("", "dog"),
        ("   !!", "dog"),
        ("banana", "apple"),
        ("cat", "dog"),
        ("the", "the mitochondria"),
    ],
)
def test_rejected_answers(guess, answer):
    assert not is_short_answer_correct(guess, answer)
