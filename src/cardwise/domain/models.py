"""
Domain models for flashcard study sessions.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from .constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RIGOR,
    MIN_CHUNK_SIZE,
    RIGOR_PRESETS,
)


class AttemptResult(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNSURE = "unsure"


class DifficultyLabel(str, Enum):
    NEW = "New"
    CHALLENGING = "Challenging"
    FAMILIAR = "Familiar"
    PROFICIENT = "Proficient"


class CardFilter(str, Enum):
    """Filters offered by the card list view."""

    NEW = "New"
    CHALLENGING = "Challenging"
    FAMILIAR = "Familiar"
    PROFICIENT = "Proficient"
    STARRED = "Starred"


class RigorLevel(str, Enum):
    RELAXED = "relaxed"
    BALANCED = "balanced"
    INTENSE = "intense"


class QuizMode(str, Enum):
    TERM_TO_DEFINITION = "term-to-definition"
    DEFINITION_TO_TERM = "definition-to-term"
    BOTH = "both"


class AnswerType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    SHORT_ANSWER = "short-answer"
    BOTH = "both"


@dataclass(frozen=True)
class Card:
    """
    A single term/definition pair.

    Attributes:
        uid: Stable unique identifier; the scheduler works on identity, not position.
        term: Front side text.
        definition: Back side text.
    """

    uid: str
    term: str
    definition: str


@dataclass(frozen=True)
class Attempt:
    """
    One recorded answer to a card.

    Attributes:
        id: Assigned by the persistence layer. Negative ids are provisional
            and get replaced once the attempt is saved.
        card_uid: The card that was answered.
        result: Outcome of the attempt.
        attempted_at: When the answer was submitted.
        response_ms: Time taken to answer. May be missing on old records.
    """

    id: int
    card_uid: str
    result: AttemptResult
    attempted_at: datetime
    response_ms: int | None = None

    @property
    def effective_response_ms(self) -> int:
        return self.response_ms or 0

    @property
    def is_provisional(self) -> bool:
        return self.id < 0

    def with_result(self, result: AttemptResult) -> "Attempt":
        return replace(self, result=result)

    def with_id(self, attempt_id: int) -> "Attempt":
        return replace(self, id=attempt_id)


@dataclass(frozen=True)
class DifficultyScore:
    """
    Classifier output for one card.

    Attributes:
        difficulty: 0.0 (mastered) to 1.0 (unknown or consistently missed).
        total_attempts: Every attempt recorded for the card, not only the
            window used for the difficulty.
    """

    difficulty: float
    total_attempts: int


@dataclass(frozen=True)
class SchedulerConfig:
    """
    Tuning knobs for the chunked scheduler.

    difficulty_weight and attempt_weight conventionally sum to about 1.
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    mastery_target: int = RIGOR_PRESETS[DEFAULT_RIGOR][0]
    difficulty_threshold: float = RIGOR_PRESETS[DEFAULT_RIGOR][1]
    difficulty_weight: float = RIGOR_PRESETS[DEFAULT_RIGOR][2]
    attempt_weight: float = RIGOR_PRESETS[DEFAULT_RIGOR][3]

    def sanitized(self) -> "SchedulerConfig":
        """Clamp fields into their valid ranges."""
        return replace(
            self,
            chunk_size=max(MIN_CHUNK_SIZE, int(self.chunk_size)),
            mastery_target=max(1, int(self.mastery_target)),
            difficulty_threshold=min(1.0, max(0.0, float(self.difficulty_threshold))),
        )


@dataclass
class SchedulerState:
    """Per-session scheduling state. Never shared between sessions."""

    current_chunk: list[Card] = field(default_factory=list)
    in_review: bool = False


@dataclass(frozen=True)
class PracticeSettings:
    """User-facing study preferences for one set."""

    quiz_mode: QuizMode = QuizMode.BOTH
    answer_type: AnswerType = AnswerType.SHORT_ANSWER
    rigor: RigorLevel = RigorLevel.BALANCED
    chunk_size: int = DEFAULT_CHUNK_SIZE
