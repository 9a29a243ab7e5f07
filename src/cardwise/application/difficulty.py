"""
Difficulty classifier for deriving a card's difficulty from its attempt history.

This is a pure computation module with no I/O and no state.
"""

from collections.abc import Iterable, Sequence

from cardwise.domain.constants import (
    ACCURACY_FACTORS,
    ACCURACY_WEIGHT,
    FAMILIAR_MAX_DIFFICULTY,
    HISTORY_WINDOW,
    NEW_CARD_DIFFICULTY,
    PROFICIENT_MAX_DIFFICULTY,
    SLOW_RESPONSE_MS,
    SPEED_WEIGHT,
)
from cardwise.domain.models import (
    Attempt,
    AttemptResult,
    Card,
    CardFilter,
    DifficultyLabel,
    DifficultyScore,
)


def attempts_for(card_uid: str, history: Iterable[Attempt]) -> list[Attempt]:
    """Attempts on one card, in history order."""
    return [a for a in history if a.card_uid == card_uid]


def recency_since_last_attempt(card_uid: str, history: Sequence[Attempt]) -> int | None:
    """
    Number of history entries recorded after the card's most recent attempt.

    Returns None when the card was never attempted.
    """
    for offset, attempt in enumerate(reversed(history)):
        if attempt.card_uid == card_uid:
            return offset
    return None


def attempt_difficulty(attempt: Attempt) -> float:
    """
    Difficulty of a single attempt.

    Correctness dominates (0.9); slowness contributes the remaining 0.1.
    """
    accuracy = ACCURACY_FACTORS[AttemptResult(attempt.result).value]
    speed = min(1.0, attempt.effective_response_ms / SLOW_RESPONSE_MS)
    return ACCURACY_WEIGHT * accuracy + SPEED_WEIGHT * speed


class DifficultyClassifier:
    """
    Scores and labels cards from their recent attempts.

    Stateless and side-effect free: safe to call from a list view while a
    scheduler is running against the same history.
    """

    def __init__(self, window: int = HISTORY_WINDOW):
        self.window = window

    def score(self, card: Card, history: Sequence[Attempt]) -> DifficultyScore:
        """
        Compute the recency-weighted difficulty of a card.

        Only the most recent `window` attempts count. Within that window the
        oldest attempt has weight 0 and the newest weight 1, and the weighted
        sum is divided by the number of retained attempts.
        """
        attempts = attempts_for(card.uid, history)
        if not attempts:
            return DifficultyScore(difficulty=NEW_CARD_DIFFICULTY, total_attempts=0)

        recent = attempts[-self.window :]
        n = len(recent)
        total = 0.0
        for i, attempt in enumerate(recent):
            time_factor = i / (n - 1) if n > 1 else 1.0
            total += time_factor * attempt_difficulty(attempt)

        return DifficultyScore(difficulty=total / n, total_attempts=len(attempts))

    def label(self, card: Card, history: Sequence[Attempt]) -> DifficultyLabel:
        return self.label_for(self.score(card, history))

    @staticmethod
    def label_for(score: DifficultyScore) -> DifficultyLabel:
        if score.total_attempts == 0:
            return DifficultyLabel.NEW
        if score.difficulty <= PROFICIENT_MAX_DIFFICULTY:
            return DifficultyLabel.PROFICIENT
        if score.difficulty <= FAMILIAR_MAX_DIFFICULTY:
            return DifficultyLabel.FAMILIAR
        return DifficultyLabel.CHALLENGING

    def recent_misses(self, card: Card, history: Sequence[Attempt]) -> int:
        """Incorrect answers within the card's retained window."""
        recent = attempts_for(card.uid, history)[-self.window :]
        return sum(1 for a in recent if a.result == AttemptResult.INCORRECT)

    def labels(self, cards: Iterable[Card], history: Sequence[Attempt]) -> dict[str, DifficultyLabel]:
        return {card.uid: self.label(card, history) for card in cards}

    def summarize(self, cards: Iterable[Card], history: Sequence[Attempt]) -> dict[DifficultyLabel, int]:
        """Count cards per label, including labels with no cards."""
        counts = {label: 0 for label in DifficultyLabel}
        for label in self.labels(cards, history).values():
            counts[label] += 1
        return counts

    def filter_cards(
        self,
        cards: Iterable[Card],
        history: Sequence[Attempt],
        card_filter: CardFilter | None,
        starred: Iterable[str] = (),
    ) -> list[Card]:
        """
        Cards matching a list-view filter. A None filter keeps every card.
        """
        cards = list(cards)
        if card_filter is None:
            return cards
        if card_filter == CardFilter.STARRED:
            starred_uids = set(starred)
            return [c for c in cards if c.uid in starred_uids]
        wanted = DifficultyLabel(card_filter.value)
        return [c for c in cards if self.label(c, history) == wanted]


_default = DifficultyClassifier()


def score(card: Card, history: Sequence[Attempt]) -> DifficultyScore:
    return _default.score(card, history)


def label(card: Card, history: Sequence[Attempt]) -> DifficultyLabel:
    return _default.label(card, history)
