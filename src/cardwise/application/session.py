"""
Study Session: Application layer orchestrator.

Runs the question/answer loop around the scheduler: asks it for the next
card, checks the answer, records the attempt, and persists it through the
AttemptRepository port.
"""

import logging
import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from cardwise.domain.constants import MAX_CHOICES
from cardwise.domain.models import (
    AnswerType,
    Attempt,
    AttemptResult,
    Card,
    CardFilter,
    DifficultyLabel,
    PracticeSettings,
    QuizMode,
)
from cardwise.domain.ports import AnswerChecker, AttemptRepository

from .answers import is_short_answer_correct
from .difficulty import DifficultyClassifier
from .preferences import merge_settings, scheduler_config_for
from .scheduler import ChunkedScheduler

logger = logging.getLogger(__name__)


class EmptyDeckError(ValueError):
    """Raised when a session is asked for a question but has no cards."""


class NoActiveQuestionError(RuntimeError):
    """Raised when an answer arrives before any question was asked."""


@dataclass(frozen=True)
class Question:
    """A prepared question for the current card."""

    card_index: int
    card: Card
    prompt: str
    expected_answer: str
    shows_term: bool  # True: prompt is the term, answer is the definition
    is_short_answer: bool
    options: tuple[str, ...] = ()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StudySession:
    """
    One user studying one set.

    Owns the scheduler (and so its chunk state) and the in-memory attempt
    history. All repository I/O happens between scheduler calls, never
    during one.
    """

    def __init__(
        self,
        cards: Sequence[Card],
        repository: AttemptRepository,
        set_id: str,
        user_id: str,
        settings: PracticeSettings | None = None,
        scheduler: ChunkedScheduler | None = None,
        checker: AnswerChecker = is_short_answer_correct,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cards = list(cards)
        self.set_id = set_id
        self.user_id = user_id
        self._repo = repository
        self._checker = checker
        self._rng = rng or random.Random()
        self._clock = clock
        self._settings = settings or PracticeSettings()
        self._scheduler = scheduler or ChunkedScheduler(
            scheduler_config_for(self._settings), rng=self._rng
        )
        self._classifier = DifficultyClassifier()
        self._history: list[Attempt] = []
        self._next_provisional_id = -1
        self.current: Question | None = None
        self.total_attempts = 0
        # Attempt id -> whether it earns a point; only this session's answers score
        self._points: dict[int, bool] = {}

    @property
    def settings(self) -> PracticeSettings:
        return self._settings

    @property
    def scheduler(self) -> ChunkedScheduler:
        return self._scheduler

    @property
    def history(self) -> list[Attempt]:
        return list(self._history)

    @property
    def score(self) -> int:
        return sum(self._points.values())

    async def start(self) -> None:
        """Load prior attempts and saved preferences for this set."""
        self._history = list(await self._repo.load_attempts(self.set_id, self.user_id))
        saved = await self._repo.load_preferences(self.user_id, self.set_id)
        if saved is not None:
            self._apply_settings(saved)
        logger.info(
            f"Session started for set={self.set_id} user={self.user_id}: "
            f"{len(self.cards)} cards, {len(self._history)} prior attempts"
        )

    # ------------------------------------------------------------------
    # Question loop
    # ------------------------------------------------------------------

    def next_question(self) -> Question:
        if not self.cards:
            raise EmptyDeckError(f"Set {self.set_id} has no cards to study")

        index = self._scheduler.next_question(self.cards, self._history)
        self.current = self._prepare(index)
        return self.current

    async def submit_answer(self, answer: str, response_ms: int | None = None) -> Attempt:
        """
        Check an answer to the current question and record the attempt.

        The attempt enters the history with a provisional (negative) id and
        is swapped in place for the stored copy once the repository has
        saved it.
        """
        if self.current is None:
            raise NoActiveQuestionError("No question has been asked yet")

        is_correct = self._checker(answer, self.current.expected_answer)
        attempt = Attempt(
            id=self._take_provisional_id(),
            card_uid=self.current.card.uid,
            result=AttemptResult.CORRECT if is_correct else AttemptResult.INCORRECT,
            attempted_at=self._clock(),
            response_ms=max(0, int(response_ms)) if response_ms is not None else None,
        )
        self._history.append(attempt)
        self.total_attempts += 1
        self._points[attempt.id] = is_correct

        try:
            saved = await self._repo.save_attempt(self.set_id, self.user_id, attempt)
        except Exception as e:
            logger.error(f"Failed to save attempt for card {attempt.card_uid}: {e}", exc_info=True)
            return attempt

        current = self._replace_attempt(attempt.id, saved)
        # A mark that arrived during the save only changed the local copy
        if current.result != saved.result:
            await self._repo.update_attempt_result(self.set_id, current.id, current.result)
        return current

    async def mark_last(self, result: AttemptResult) -> Attempt | None:
        """
        Correct the result of the current card's latest attempt in place.

        Used for "I was unsure" / "I was right" / "I was wrong" overrides.
        Returns the updated attempt, or None if the card has no attempts.
        """
        if self.current is None:
            return None

        uid = self.current.card.uid
        position = next(
            (i for i in range(len(self._history) - 1, -1, -1) if self._history[i].card_uid == uid),
            None,
        )
        if position is None:
            return None

        previous = self._history[position]
        updated = previous.with_result(AttemptResult(result))
        self._history[position] = updated

        # "Unsure" keeps whatever point the answer earned
        if updated.id in self._points and updated.result != AttemptResult.UNSURE:
            self._points[updated.id] = updated.result == AttemptResult.CORRECT

        if not updated.is_provisional:
            await self._repo.update_attempt_result(self.set_id, updated.id, updated.result)
        return updated

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def update_settings(self, **update) -> PracticeSettings:
        """
        Merge new preferences, reconfigure the scheduler, and persist them.
        """
        merged = merge_settings(self._settings, **update)
        if merged != self._settings:
            self._apply_settings(merged)
            await self._repo.save_preferences(self.user_id, self.set_id, merged)
        return self._settings

    def _apply_settings(self, settings: PracticeSettings) -> None:
        self._settings = settings
        config = scheduler_config_for(settings)
        # Quiz mode or answer type changes keep the current chunk
        if config != self._scheduler.config:
            self._scheduler.set_config(config)

    # ------------------------------------------------------------------
    # List view
    # ------------------------------------------------------------------

    def labels(self) -> dict[str, DifficultyLabel]:
        return self._classifier.labels(self.cards, self._history)

    def filter_cards(
        self, card_filter: CardFilter | None, starred: Iterable[str] = ()
    ) -> list[Card]:
        return self._classifier.filter_cards(self.cards, self._history, card_filter, starred)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _take_provisional_id(self) -> int:
        attempt_id = self._next_provisional_id
        self._next_provisional_id -= 1
        return attempt_id

    def _replace_attempt(self, previous_id: int, saved: Attempt) -> Attempt:
        """Swap a provisional attempt for its stored copy, keeping any local result change."""
        for i, existing in enumerate(self._history):
            if existing.id == previous_id:
                self._history[i] = saved.with_result(existing.result)
                if previous_id in self._points:
                    self._points[saved.id] = self._points.pop(previous_id)
                return self._history[i]
        return saved

    def _prepare(self, index: int) -> Question:
        card = self.cards[index]
        quiz_mode = self._settings.quiz_mode
        answer_type = self._settings.answer_type

        if quiz_mode == QuizMode.BOTH:
            shows_term = self._rng.random() < 0.5
        else:
            shows_term = quiz_mode == QuizMode.TERM_TO_DEFINITION

        if answer_type == AnswerType.BOTH:
            is_short_answer = self._rng.random() < 0.5
        else:
            is_short_answer = answer_type == AnswerType.SHORT_ANSWER

        prompt, expected = (
            (card.term, card.definition) if shows_term else (card.definition, card.term)
        )
        options = () if is_short_answer else self._build_options(expected, shows_term)
        return Question(
            card_index=index,
            card=card,
            prompt=prompt,
            expected_answer=expected,
            shows_term=shows_term,
            is_short_answer=is_short_answer,
            options=options,
        )

    def _build_options(self, expected: str, shows_term: bool) -> tuple[str, ...]:
        """The correct answer plus up to three distinct distractors, shuffled."""
        candidates = list(
            dict.fromkeys(
                (c.definition if shows_term else c.term)
                for c in self.cards
                if (c.definition if shows_term else c.term) != expected
            )
        )
        distractors = self._rng.sample(candidates, min(MAX_CHOICES - 1, len(candidates)))
        options = [expected, *distractors]
        self._rng.shuffle(options)
        return tuple(options)
