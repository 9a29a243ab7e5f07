from cardwise.application.preferences import (
    merge_settings,
    preset_for,
    scheduler_config_for,
    settings_from_mapping,
    settings_to_mapping,
)
from cardwise.domain.models import (
    AnswerType,
    PracticeSettings,
    QuizMode,
    RigorLevel,
    SchedulerConfig,
)


def test_presets_match_rigor_levels():
    assert preset_for(RigorLevel.RELAXED) == {
        "mastery_target": 1,
        "difficulty_threshold": 0.2,
        "difficulty_weight": 0.6,
        "attempt_weight": 0.4,
    }
    assert preset_for("intense")["mastery_target"] == 3
    assert preset_for("intense")["difficulty_threshold"] == 0.08


def test_scheduler_config_for_settings():
    settings = PracticeSettings(rigor=RigorLevel.BALANCED, chunk_size=5)
    assert scheduler_config_for(settings) == SchedulerConfig(
        chunk_size=5,
        mastery_target=2,
        difficulty_threshold=0.1,
        difficulty_weight=0.7,
        attempt_weight=0.3,
    )


def test_merge_ignores_none_and_parses_strings():
    base = PracticeSettings()
    merged = merge_settings(base, rigor="relaxed", quiz_mode=None, answer_type="multiple-choice")

    assert merged.rigor == RigorLevel.RELAXED
    assert merged.answer_type == AnswerType.MULTIPLE_CHOICE
    assert merged.quiz_mode == base.quiz_mode


def test_merge_clamps_chunk_size():
    assert merge_settings(PracticeSettings(), chunk_size=0).chunk_size == 1
    assert merge_settings(PracticeSettings(), chunk_size=500).chunk_size == 50


def test_settings_from_camel_case_mapping():
    settings = settings_from_mapping(
        {"quizMode": "definition-to-term", "rigorousness": "intense", "chunkSize": 4}
    )
    assert settings.quiz_mode == QuizMode.DEFINITION_TO_TERM
    assert settings.rigor == RigorLevel.INTENSE
    assert settings.chunk_size == 4
    assert settings.answer_type == AnswerType.SHORT_ANSWER


def test_settings_from_mapping_skips_invalid_values():
    base = PracticeSettings(chunk_size=9)
    settings = settings_from_mapping(
        {"quiz_mode": "sideways", "chunk_size": "7", "rigor": None}, base=base
    )
    assert settings == base


def test_settings_mapping_round_trip():
    settings = PracticeSettings(
        quiz_mode=QuizMode.TERM_TO_DEFINITION,
        answer_type=AnswerType.BOTH,
        rigor=RigorLevel.RELAXED,
        chunk_size=3,
    )
    data = settings_to_mapping(settings)
    assert data["quiz_mode"] == "term-to-definition"
    assert settings_from_mapping(data) == settings
