"""
Chunked adaptive scheduler.

Picks the next card to quiz from a small rotating "chunk" of cards:
1. Build a chunk of the highest-scoring cards (unknown or under-practised first)
2. Quiz from the chunk until every card in it is learned
3. Rotate between the full pool and a review pool of frequently missed cards
"""

import logging
import random
from collections.abc import Sequence
from dataclasses import replace

from cardwise.domain.constants import (
    PRIORITY_DIFFICULTY_WEIGHT,
    PRIORITY_JITTER,
    PRIORITY_RECENCY_WEIGHT,
    RECENCY_HORIZON,
    REVIEW_MISS_THRESHOLD,
)
from cardwise.domain.models import Attempt, Card, SchedulerConfig, SchedulerState

from .difficulty import DifficultyClassifier, recency_since_last_attempt

logger = logging.getLogger(__name__)


class ChunkedScheduler:
    """
    Stateful question selector for one study session.

    The state (current chunk and review flag) lives on the instance and is
    only mutated by next_question, set_config and reset. Create one
    scheduler per session.

    Precondition: next_question must not be called with an empty card list.
    """

    def __init__(
        self,
        config: SchedulerConfig | None = None,
        rng: random.Random | None = None,
        classifier: DifficultyClassifier | None = None,
    ):
        """
        Args:
            config: Scheduler tuning; defaults to the balanced preset.
            rng: Source of the random tie-breakers. Pass a seeded
                random.Random for reproducible selection order.
            classifier: Optional custom classifier; uses default if not provided.
        """
        self._config = (config or SchedulerConfig()).sanitized()
        self._rng = rng or random.Random()
        self._classifier = classifier or DifficultyClassifier()
        self._state = SchedulerState()

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def state(self) -> SchedulerState:
        return SchedulerState(
            current_chunk=list(self._state.current_chunk),
            in_review=self._state.in_review,
        )

    @property
    def in_review(self) -> bool:
        return self._state.in_review

    @property
    def current_chunk(self) -> list[Card]:
        return list(self._state.current_chunk)

    def set_config(self, config: SchedulerConfig | None = None, **changes) -> SchedulerConfig:
        """
        Replace the configuration, or only the given fields of it.

        A chunk built under old weights is invalid, so state is reset.
        Unknown field names raise TypeError.
        """
        base = config or self._config
        self._config = replace(base, **changes).sanitized()
        self.reset()
        logger.debug(f"Scheduler reconfigured: {self._config}")
        return self._config

    def reset(self) -> None:
        self._state = SchedulerState()

    def next_question(self, cards: Sequence[Card], history: Sequence[Attempt]) -> int:
        """
        Select the next card to quiz.

        Args:
            cards: The session's card pool. Must be non-empty.
            history: Chronological attempt history. May reference cards not in
                the pool; those attempts are ignored.

        Returns:
            Index of the selected card within `cards`.
        """
        chunk_size = min(self._config.chunk_size, len(cards))
        chunk = self._state.current_chunk

        if self._needs_rebuild(chunk, chunk_size, cards, history):
            self._state.in_review = not self._state.in_review
            self._state.current_chunk = self._build_chunk(cards, history, chunk_size)
            logger.debug(
                f"Rebuilt {'review' if self._state.in_review else 'learning'} chunk: "
                f"{[c.uid for c in self._state.current_chunk]}"
            )

        selected = self._select_from_chunk(self._state.current_chunk, history)
        for index, card in enumerate(cards):
            if card.uid == selected.uid:
                return index
        # Unreachable while the chunk is drawn from `cards`
        return 0

    # ------------------------------------------------------------------
    # Chunk lifecycle
    # ------------------------------------------------------------------

    def _needs_rebuild(
        self,
        chunk: list[Card],
        chunk_size: int,
        cards: Sequence[Card],
        history: Sequence[Attempt],
    ) -> bool:
        if not chunk or len(chunk) > chunk_size:
            return True
        pool_uids = {c.uid for c in cards}
        if any(c.uid not in pool_uids for c in chunk):
            return True
        return not self.chunk_has_unlearned_cards(chunk, history)

    def chunk_has_unlearned_cards(self, chunk: Sequence[Card], history: Sequence[Attempt]) -> bool:
        """
        True while at least one card in the chunk still needs learning.

        A card needs learning when it has fewer than mastery_target attempts
        OR its difficulty is above difficulty_threshold.
        """
        return any(self.needs_learning(card, history) for card in chunk)

    def needs_learning(self, card: Card, history: Sequence[Attempt]) -> bool:
        score = self._classifier.score(card, history)
        return (
            score.total_attempts < self._config.mastery_target
            or score.difficulty > self._config.difficulty_threshold
        )

    def _build_chunk(
        self, cards: Sequence[Card], history: Sequence[Attempt], chunk_size: int
    ) -> list[Card]:
        pool = list(cards)
        if self._state.in_review:
            review_pool = self._review_pool(cards, history)
            if review_pool:
                pool = review_pool
            else:
                logger.debug("Review pool empty, falling back to all cards")

        ranked = sorted(
            ((self.chunk_score(card, history), self._rng.random(), card) for card in pool),
            key=lambda entry: (entry[0], entry[1]),
            reverse=True,
        )
        return [card for _, _, card in ranked[:chunk_size]]

    def _review_pool(self, cards: Sequence[Card], history: Sequence[Attempt]) -> list[Card]:
        """Attempted cards missed more than once within their recent window."""
        return [
            card
            for card in cards
            if self._classifier.score(card, history).total_attempts > 0
            and self._classifier.recent_misses(card, history) > REVIEW_MISS_THRESHOLD
        ]

    def chunk_score(self, card: Card, history: Sequence[Attempt]) -> float:
        """
        Ranking used when building a chunk.

        Blends difficulty with how far the card is from mastery_target attempts.
        """
        score = self._classifier.score(card, history)
        mastery = self._config.mastery_target
        attempt_gap = max(0, mastery - score.total_attempts) / mastery
        return (
            self._config.difficulty_weight * score.difficulty
            + self._config.attempt_weight * attempt_gap
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def priority(self, card: Card, history: Sequence[Attempt]) -> float:
        """
        Selection priority within a chunk.

        Difficulty dominates; cards not seen for a while get a bounded boost;
        a small random term avoids oscillating between equal cards.
        """
        difficulty = self._classifier.score(card, history).difficulty
        recency = recency_since_last_attempt(card.uid, history)
        recency_term = 1.0 if recency is None else min(recency / RECENCY_HORIZON, 1.0)
        return (
            PRIORITY_DIFFICULTY_WEIGHT * difficulty
            + PRIORITY_RECENCY_WEIGHT * recency_term
            + PRIORITY_JITTER * self._rng.random()
        )

    def _select_from_chunk(self, chunk: Sequence[Card], history: Sequence[Attempt]) -> Card:
        best_card = chunk[0]
        best_priority = float("-inf")
        for card in chunk:
            priority = self.priority(card, history)
            # Strict comparison keeps the earliest card on exact ties
            if priority > best_priority:
                best_card, best_priority = card, priority
        return best_card
