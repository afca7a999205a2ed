"""Tests for vegam.core.training – adaptive practice plans."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Sequence, Tuple

import pytest

from vegam.core.config import AnalyticsConfig
from vegam.core.events import MistakeEvent
from vegam.core.letters import LetterAggregate
from vegam.core.patterns import ErrorType, analyze_error_patterns
from vegam.core.training import (
    AdaptiveTrainingPlan,
    TrainingPlanner,
    letter_patterns,
    pattern_content,
)

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeContent:
    """Content provider that records requests and echoes simple candidates."""

    def __init__(self, words: Sequence[str] = ("zap", "buzz"), sentences: Sequence[str] = ("Buzz off.",)):
        self.calls: List[Tuple[str, Tuple[str, ...], str]] = []
        self._words = list(words)
        self._sentences = list(sentences)

    def get_candidate_content(self, layout_id, target_characters, exercise_type):
        self.calls.append((layout_id, tuple(target_characters), exercise_type))
        if exercise_type == "letter_drill":
            return list(target_characters)
        if exercise_type == "word_practice":
            return list(self._words)
        return list(self._sentences)


def _letter(char: str, difficulty: int, accuracy: int = 85, error_rate: int = 15,
            attempts: int = 50) -> LetterAggregate:
    return LetterAggregate(
        character=char, finger=3, total_attempts=attempts, correct_attempts=attempts,
        error_count=0, total_latency_ms=0.0, accuracy=accuracy, average_time_ms=200,
        error_rate=error_rate, difficulty_score=difficulty, recommendation="medium",
    )


def _planner(content=None, **overrides) -> TrainingPlanner:
    return TrainingPlanner(content or FakeContent(), AnalyticsConfig(**overrides), clock=lambda: FIXED_NOW)


@pytest.fixture()
def letters() -> List[LetterAggregate]:
    return [_letter("a", 60), _letter("b", 50), _letter("c", 45), _letter("d", 10)]


@pytest.fixture()
def patterns():
    return analyze_error_patterns([
        MistakeEvent("a", "s", 0, 0.0, 0),
        MistakeEvent("a", "s", 1, 10.0, 0),
    ])


# ===========================================================================
# Content helpers
# ===========================================================================

class TestLetterPatterns:
    def test_patterns(self):
        assert letter_patterns(["a", "b", "c"]) == ["abc", "cba", "a b c", "aba", "bcb"]

    def test_input_not_reversed(self):
        letters = ["x", "y"]
        letter_patterns(letters)
        assert letters == ["x", "y"]


class TestPatternContent:
    def test_substitution(self, patterns):
        assert pattern_content(patterns[0]) == "a a a s s s"

    def test_omission(self):
        omission = analyze_error_patterns([MistakeEvent("t", "", 0, 0.0, 3)])[0]
        assert omission.type is ErrorType.OMISSION
        assert pattern_content(omission) == "ttt"


# ===========================================================================
# Focus and level selection
# ===========================================================================

class TestFocusSelection:
    def test_top_n_by_difficulty(self, letters):
        focus = _planner(focus_count=2).select_focus(list(reversed(letters)))
        assert [la.character for la in focus] == ["a", "b"]

    def test_default_count(self):
        many = [_letter(chr(ord("a") + i), 90 - i) for i in range(12)]
        assert len(_planner().select_focus(many)) == 8

    def test_ties_by_character(self):
        focus = _planner(focus_count=1).select_focus([_letter("b", 50), _letter("a", 50)])
        assert focus[0].character == "a"


class TestPlanLevel:
    def test_medium_tier(self, letters):
        assert _planner().plan_level(letters[:3]) == ("intermediate", "medium")

    def test_high_tier(self):
        assert _planner().plan_level([_letter("q", 80, accuracy=60, error_rate=40)]) == ("beginner", "high")

    def test_low_tier(self):
        assert _planner().plan_level([_letter("q", 10, accuracy=98, error_rate=2)]) == ("advanced", "low")

    def test_only_difficulty_sets_level(self):
        # Accuracy and error rate alone would rate this letter medium.
        letter = _letter("a", 26, accuracy=80, error_rate=20)
        assert _planner().plan_level([letter]) == ("advanced", "low")

    def test_threshold_boundaries(self):
        assert _planner().plan_level([_letter("a", 40)]) == ("advanced", "low")
        assert _planner().plan_level([_letter("a", 70)]) == ("intermediate", "medium")
        assert _planner().plan_level([_letter("a", 71)]) == ("beginner", "high")

    def test_no_focus(self):
        assert _planner().plan_level([]) == ("beginner", "low")


# ===========================================================================
# build_plan
# ===========================================================================

class TestBuildPlan:
    def test_plan_fields(self, letters, patterns):
        plan = _planner(focus_count=3).build_plan("u1", "qwerty", letters, patterns)
        assert isinstance(plan, AdaptiveTrainingPlan)
        assert plan.user_id == "u1"
        assert plan.layout_id == "qwerty"
        assert plan.generated_at == FIXED_NOW
        assert plan.focus_characters == ("a", "b", "c")
        assert plan.error_patterns == tuple(patterns)
        assert plan.difficulty_level == "intermediate"
        assert plan.priority == "medium"

    def test_exercises(self, letters, patterns):
        plan = _planner(focus_count=3).build_plan("u1", "qwerty", letters, patterns)
        assert [ex.id for ex in plan.custom_exercises] == [
            "single-letter-a",
            "combination-ab",
            "single-letter-b",
            "combination-bc",
            "single-letter-c",
            "multi-letter-abc",
            "word-practice",
            "sentence-practice",
            "error-pattern-0",
        ]

    def test_estimated_minutes_is_sum(self, letters, patterns):
        plan = _planner(focus_count=3).build_plan("u1", "qwerty", letters, patterns)
        assert plan.estimated_practice_minutes == sum(ex.estimated_minutes for ex in plan.custom_exercises)
        # 2+3+2+3+2+5 drills, 5 words, 10 sentences, 4 pattern
        assert plan.estimated_practice_minutes == 36

    def test_requests_content_per_type(self, letters, patterns):
        content = FakeContent()
        _planner(content, focus_count=3).build_plan("u1", "colemak", letters, patterns)
        assert content.calls == [
            ("colemak", ("a", "b", "c"), "letter_drill"),
            ("colemak", ("a", "b", "c"), "word_practice"),
            ("colemak", ("a", "b", "c"), "sentence_practice"),
        ]

    def test_single_letter_drill(self, letters):
        plan = _planner(focus_count=1).build_plan("u1", "qwerty", letters, [])
        drill = plan.custom_exercises[0]
        assert drill.name == "A Key Drill"
        assert plan.difficulty_level == "intermediate"
        assert drill.content.split() == ["a"] * 15
        assert drill.target_characters == ("a",)
        assert drill.difficulty_score == 60
        assert drill.repetitions == 5

    def test_success_criteria(self, letters):
        plan = _planner(focus_count=1).build_plan("u1", "qwerty", letters, [])
        criteria = plan.custom_exercises[0].success_criteria
        assert criteria.min_accuracy == 80       # max(80, 100 - 60)
        assert criteria.min_wpm == 15.0
        assert criteria.max_errors == 5          # 10 / (1 + 50 / 50)

    def test_min_accuracy_tracks_difficulty(self):
        plan = _planner(focus_count=1).build_plan("u1", "qwerty", [_letter("k", 5, 99, 1)], [])
        assert plan.custom_exercises[0].success_criteria.min_accuracy == 95

    def test_untyped_pattern_target_uses_focus_difficulty(self):
        insertion = analyze_error_patterns([MistakeEvent("", "z", 0, 0.0, 0)])
        planner = _planner(focus_count=1, exercise_types=())
        plan = planner.build_plan("u", "qwerty", [_letter("k", 5, 99, 1)], insertion)
        (exercise,) = plan.custom_exercises
        assert exercise.target_characters == ("z",)
        assert exercise.difficulty_score == 5
        assert exercise.success_criteria.min_accuracy == 95
        assert exercise.success_criteria.max_errors == 10

    def test_untyped_pattern_target_without_focus_uses_floor(self):
        insertion = analyze_error_patterns([MistakeEvent("", "z", 0, 0.0, 0)])
        plan = _planner(focus_count=0).build_plan("u", "qwerty", [_letter("k", 5, 99, 1)], insertion)
        (exercise,) = plan.custom_exercises
        assert exercise.difficulty_score == 0
        assert exercise.success_criteria.min_accuracy == 80

    def test_max_errors_shrinks_with_attempts(self):
        few = _planner(focus_count=1).build_plan("u", "qwerty", [_letter("k", 30, attempts=0)], [])
        many = _planner(focus_count=1).build_plan("u", "qwerty", [_letter("k", 30, attempts=950)], [])
        assert few.custom_exercises[0].success_criteria.max_errors == 10
        assert many.custom_exercises[0].success_criteria.max_errors == 1

    def test_word_practice(self, letters):
        plan = _planner(focus_count=2, exercise_types=("word_practice",)).build_plan("u", "qwerty", letters, [])
        (words,) = plan.custom_exercises
        assert words.type == "word_practice"
        assert words.content.split() == ["zap", "buzz"] * 10
        assert words.estimated_minutes == 5
        assert words.success_criteria.min_wpm == 20.0
        assert words.target_characters == ("a", "b")

    def test_beginner_skips_sentences(self):
        hard = [_letter("q", 90, accuracy=40, error_rate=60)]
        plan = _planner(include_pattern_exercises=False).build_plan("u", "qwerty", hard, [])
        assert plan.difficulty_level == "beginner"
        assert "sentence_practice" not in {ex.type for ex in plan.custom_exercises}

    def test_empty_candidates_skip_exercise(self, letters):
        content = FakeContent(words=(), sentences=())
        plan = _planner(content, focus_count=1).build_plan("u", "qwerty", letters, [])
        assert [ex.type for ex in plan.custom_exercises] == ["letter_drill"]

    def test_pattern_exercise_limit(self, letters):
        mistakes = [MistakeEvent(e, "x", 0, 0.0, 0) for e in "abcdefg"]
        patterns = analyze_error_patterns(mistakes)
        plan = _planner(focus_count=0).build_plan("u", "qwerty", letters, patterns)
        assert len(plan.custom_exercises) == 5
        assert all(ex.type == "pattern_practice" for ex in plan.custom_exercises)
        assert len(plan.error_patterns) == 7

    def test_no_letters(self):
        content = FakeContent()
        plan = _planner(content).build_plan("u", "qwerty", [], [])
        assert plan.focus_characters == ()
        assert plan.custom_exercises == ()
        assert plan.estimated_practice_minutes == 0
        assert content.calls == []

    def test_deterministic(self, letters, patterns):
        planner = _planner(focus_count=3)
        assert planner.build_plan("u", "qwerty", letters, patterns) == planner.build_plan(
            "u", "qwerty", letters, patterns
        )

    def test_to_dict(self, letters, patterns):
        data = _planner(focus_count=2).build_plan("u", "qwerty", letters, patterns).to_dict()
        assert data["generated_at"] == FIXED_NOW.isoformat()
        assert data["focus_characters"] == ["a", "b"]
        assert data["error_patterns"][0]["type"] == "substitution"
        assert data["custom_exercises"][0]["success_criteria"]["min_accuracy"] == 80
