"""Practice settings: rigor presets, merging, and tolerant parsing of stored preferences."""

import logging
from collections.abc import Mapping
from dataclasses import asdict, replace
from enum import Enum
from typing import Any

from cardwise.domain.constants import MAX_CHUNK_SIZE, MIN_CHUNK_SIZE, RIGOR_PRESETS
from cardwise.domain.models import (
    AnswerType,
    PracticeSettings,
    QuizMode,
    RigorLevel,
    SchedulerConfig,
)

logger = logging.getLogger(__name__)


def preset_for(rigor: RigorLevel) -> dict[str, Any]:
    """Scheduler fields (everything but chunk_size) for a rigor level."""
    mastery, threshold, difficulty_weight, attempt_weight = RIGOR_PRESETS[RigorLevel(rigor).value]
    return {
        "mastery_target": mastery,
        "difficulty_threshold": threshold,
        "difficulty_weight": difficulty_weight,
        "attempt_weight": attempt_weight,
    }


def scheduler_config_for(settings: PracticeSettings) -> SchedulerConfig:
    return SchedulerConfig(chunk_size=settings.chunk_size, **preset_for(settings.rigor)).sanitized()


def clamp_chunk_size(value: int) -> int:
    return min(MAX_CHUNK_SIZE, max(MIN_CHUNK_SIZE, int(value)))


def merge_settings(base: PracticeSettings, **update: Any) -> PracticeSettings:
    """
    Overlay non-None values onto base settings.

    Enum fields accept their string values; chunk_size is clamped.
    """
    changes = {k: v for k, v in update.items() if v is not None}
    if "quiz_mode" in changes:
        changes["quiz_mode"] = QuizMode(changes["quiz_mode"])
    if "answer_type" in changes:
        changes["answer_type"] = AnswerType(changes["answer_type"])
    if "rigor" in changes:
        changes["rigor"] = RigorLevel(changes["rigor"])
    if "chunk_size" in changes:
        changes["chunk_size"] = clamp_chunk_size(changes["chunk_size"])
    return replace(base, **changes)


_FIELD_ALIASES = {
    "quiz_mode": ("quiz_mode", "quizMode"),
    "answer_type": ("answer_type", "answerType"),
    "rigor": ("rigor", "rigorousness"),
    "chunk_size": ("chunk_size", "chunkSize"),
}

_ENUMS: dict[str, type[Enum]] = {
    "quiz_mode": QuizMode,
    "answer_type": AnswerType,
    "rigor": RigorLevel,
}


def settings_from_mapping(
    data: Mapping[str, Any], base: PracticeSettings | None = None
) -> PracticeSettings:
    """
    Parse stored preferences, skipping anything unrecognised.

    Accepts snake_case or camelCase keys. Invalid enum values and
    non-integer chunk sizes are ignored rather than raised.
    """
    update: dict[str, Any] = {}
    for name, aliases in _FIELD_ALIASES.items():
        value = next((data[a] for a in aliases if a in data), None)
        if value is None:
            continue

        if name in _ENUMS:
            try:
                update[name] = _ENUMS[name](value)
            except ValueError:
                logger.warning(f"Ignoring invalid {name} preference: {value!r}")
        elif isinstance(value, int) and not isinstance(value, bool):
            update[name] = value
        else:
            logger.warning(f"Ignoring non-integer chunk size preference: {value!r}")

    return merge_settings(base or PracticeSettings(), **update)


def settings_to_mapping(settings: PracticeSettings) -> dict[str, Any]:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in asdict(settings).items()}
