# Domain Package
from .models import (
    AnswerType,
    Attempt,
    AttemptResult,
    Card,
    CardFilter,
    DifficultyLabel,
    DifficultyScore,
    PracticeSettings,
    QuizMode,
    RigorLevel,
    SchedulerConfig,
    SchedulerState,
)
from .ports import AnswerChecker, AttemptRepository

__all__ = [
    "AnswerChecker",
    "AnswerType",
    "Attempt",
    "AttemptRepository",
    "AttemptResult",
    "Card",
    "CardFilter",
    "DifficultyLabel",
    "DifficultyScore",
    "PracticeSettings",
    "QuizMode",
    "RigorLevel",
    "SchedulerConfig",
    "SchedulerState",
]
