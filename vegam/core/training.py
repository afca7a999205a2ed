"""Adaptive practice plans composed from precomputed aggregates.

The planner never reads session history itself: it ranks the letter
aggregates it is given, asks the injected content provider for practice
material and wraps that material in exercises with success criteria.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from vegam.core.config import (
    LETTER_DRILL,
    PATTERN_PRACTICE,
    SENTENCE_PRACTICE,
    WORD_PRACTICE,
    AnalyticsConfig,
)
from vegam.core.content import ContentProvider
from vegam.core.letters import HIGH, MEDIUM, LetterAggregate, difficulty_tier, round_half_up
from vegam.core.patterns import ADVANCED, BEGINNER, INTERMEDIATE, ErrorPattern, ErrorType

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class SuccessCriteria:
    min_accuracy: int
    min_wpm: float
    max_errors: int


@dataclass(frozen=True)
class CustomExercise:
    id: str
    name: str
    description: str
    type: str
    content: str
    target_characters: Tuple[str, ...]
    estimated_minutes: int
    difficulty_score: int
    repetitions: int
    success_criteria: SuccessCriteria


@dataclass(frozen=True)
class AdaptiveTrainingPlan:
    user_id: str
    layout_id: str
    generated_at: datetime
    focus_characters: Tuple[str, ...]
    error_patterns: Tuple[ErrorPattern, ...]
    custom_exercises: Tuple[CustomExercise, ...]
    estimated_practice_minutes: int
    difficulty_level: str
    priority: str

    def to_dict(self) -> Dict[str, Any]:
        """Plain data suitable for JSON or YAML dumps."""
        return _plain(asdict(self))


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Drill repetitions per plan level: single letter, combination.
_SINGLE_REPS = {BEGINNER: 20, INTERMEDIATE: 15, ADVANCED: 10}
_COMBINATION_REPS = {BEGINNER: 10, INTERMEDIATE: 8, ADVANCED: 6}

_LEVEL_FOR_TIER = {HIGH: BEGINNER, MEDIUM: INTERMEDIATE}


def letter_patterns(letters: Sequence[str]) -> List[str]:
    patterns = ["".join(letters), "".join(reversed(letters)), " ".join(letters)]
    for first, second in zip(letters, letters[1:]):
        patterns.append(first + second + first)
    return patterns


def pattern_content(pattern: ErrorPattern) -> str:
    letters = pattern.affected_characters
    if pattern.type is ErrorType.OMISSION:
        return " ".join(c * 3 for c in letters)
    if pattern.type is ErrorType.TRANSPOSITION:
        if len(letters) > 1:
            return " ".join([f"{letters[0]}{letters[1]} {letters[1]}{letters[0]}"] * 5)
        return letters[0] * 10
    return " ".join(f"{c} {c} {c}" for c in letters)


def _cycle(items: Sequence[str], count: int) -> List[str]:
    return [items[i % len(items)] for i in range(count)] if items else []


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class TrainingPlanner:
    def __init__(
        self,
        content: ContentProvider,
        config: Optional[AnalyticsConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._content = content
        self._config = config or AnalyticsConfig()
        self._clock = clock or _utc_now

    def select_focus(self, letters: Sequence[LetterAggregate]) -> List[LetterAggregate]:
        """The ``focus_count`` hardest letters, in difficulty order."""
        ranked = sorted(letters, key=lambda la: (-la.difficulty_score, la.character))
        return ranked[: max(0, self._config.focus_count)]

    def plan_level(self, focus: Sequence[LetterAggregate]) -> Tuple[str, str]:
        """``(difficulty_level, priority)`` from the focus letters' mean difficulty."""
        if not focus:
            return BEGINNER, "low"
        tier = difficulty_tier(_mean([la.difficulty_score for la in focus]), self._config)
        return _LEVEL_FOR_TIER.get(tier, ADVANCED), tier

    def build_plan(
        self,
        user_id: str,
        layout_id: str,
        letters: Sequence[LetterAggregate],
        error_patterns: Sequence[ErrorPattern],
    ) -> AdaptiveTrainingPlan:
        focus = self.select_focus(letters)
        level, priority = self.plan_level(focus)
        by_char = {la.character: la for la in letters}
        focus_chars = [la.character for la in focus]
        focus_difficulty = _mean([la.difficulty_score for la in focus]) if focus else None

        exercises: List[CustomExercise] = []
        for exercise_type in self._config.exercise_types:
            if not focus_chars:
                break
            if exercise_type == SENTENCE_PRACTICE and level == BEGINNER:
                continue
            candidates = self._content.get_candidate_content(layout_id, focus_chars, exercise_type)
            if not candidates:
                logger.debug("No %s content for %s on %s", exercise_type, focus_chars, layout_id)
                continue
            if exercise_type == LETTER_DRILL:
                exercises.extend(self._letter_drills(candidates, level, by_char))
            elif exercise_type == WORD_PRACTICE:
                exercises.append(self._word_practice(candidates, focus_chars, by_char))
            elif exercise_type == SENTENCE_PRACTICE:
                exercises.append(self._sentence_practice(candidates, focus_chars, by_char))

        if self._config.include_pattern_exercises:
            for pattern in error_patterns[: self._config.pattern_exercise_limit]:
                if pattern.affected_characters:
                    exercises.append(self._pattern_exercise(pattern, by_char, focus_difficulty))

        plan = AdaptiveTrainingPlan(
            user_id=user_id,
            layout_id=layout_id,
            generated_at=self._clock(),
            focus_characters=tuple(focus_chars),
            error_patterns=tuple(error_patterns),
            custom_exercises=tuple(exercises),
            estimated_practice_minutes=sum(ex.estimated_minutes for ex in exercises),
            difficulty_level=level,
            priority=priority,
        )
        logger.info(
            "Built %s-priority plan for %s on %s: %d exercises, %d minutes",
            priority, user_id, layout_id, len(exercises), plan.estimated_practice_minutes,
        )
        return plan

    # -- success criteria ------------------------------------------------

    def _criteria(
        self,
        targets: Sequence[str],
        by_char: Dict[str, LetterAggregate],
        wpm_key: str,
        fallback: Optional[float] = None,
    ) -> Tuple[int, SuccessCriteria]:
        """Exercise difficulty and pass thresholds for ``targets``.

        Targets with no recorded aggregate borrow ``fallback`` as their
        difficulty; with neither, accuracy is held to the configured floor.
        """
        config = self._config
        known = [by_char[c] for c in targets if c in by_char]
        if known:
            mean_difficulty: Optional[float] = _mean([la.difficulty_score for la in known])
        else:
            mean_difficulty = fallback
        difficulty = round_half_up(mean_difficulty or 0.0)
        if mean_difficulty is None:
            min_accuracy = config.min_accuracy_floor
        else:
            min_accuracy = max(config.min_accuracy_floor, 100.0 - difficulty)
        attempts = _mean([la.total_attempts for la in known])
        # More recorded attempts on the targets leaves less room for errors.
        allowance = config.max_errors_base
        if config.max_errors_attempt_scale > 0:
            allowance /= 1.0 + attempts / config.max_errors_attempt_scale
        max_errors = round_half_up(allowance)
        criteria = SuccessCriteria(
            min_accuracy=round_half_up(min_accuracy),
            min_wpm=config.wpm_baseline(wpm_key),
            max_errors=max(1, max_errors),
        )
        return difficulty, criteria

    # -- exercise builders -----------------------------------------------

    def _letter_drills(
        self, letters: Sequence[str], level: str, by_char: Dict[str, LetterAggregate]
    ) -> List[CustomExercise]:
        drills = []
        for index, letter in enumerate(letters):
            difficulty, criteria = self._criteria([letter], by_char, "single_letter")
            drills.append(
                CustomExercise(
                    id=f"single-letter-{letter}",
                    name=f"{letter.upper()} Key Drill",
                    description=f"Focus on the {letter.upper()} key",
                    type=LETTER_DRILL,
                    content=" ".join([letter] * _SINGLE_REPS[level]),
                    target_characters=(letter,),
                    estimated_minutes=2,
                    difficulty_score=difficulty,
                    repetitions=5,
                    success_criteria=criteria,
                )
            )
            if index + 1 < len(letters):
                pair = (letter, letters[index + 1])
                combos = " ".join([pair[0] + pair[1], pair[1] + pair[0]])
                difficulty, criteria = self._criteria(pair, by_char, "combination")
                drills.append(
                    CustomExercise(
                        id=f"combination-{''.join(pair)}",
                        name=f"{', '.join(pair).upper()} Combination Drill",
                        description=f"Practice {' and '.join(pair)} letter combinations",
                        type=LETTER_DRILL,
                        content=" ".join([combos] * _COMBINATION_REPS[level]),
                        target_characters=pair,
                        estimated_minutes=3,
                        difficulty_score=difficulty,
                        repetitions=3,
                        success_criteria=criteria,
                    )
                )
        if len(letters) > 2:
            targets = tuple(letters)
            difficulty, criteria = self._criteria(targets, by_char, "multi_letter")
            drills.append(
                CustomExercise(
                    id=f"multi-letter-{''.join(targets)}",
                    name=f"{', '.join(targets).upper()} Pattern Practice",
                    description=f"Practice patterns with {', '.join(targets)} letters",
                    type=LETTER_DRILL,
                    content=" ".join(letter_patterns(targets)),
                    target_characters=targets,
                    estimated_minutes=5,
                    difficulty_score=difficulty,
                    repetitions=2,
                    success_criteria=criteria,
                )
            )
        return drills

    def _word_practice(
        self, words: Sequence[str], targets: Sequence[str], by_char: Dict[str, LetterAggregate]
    ) -> CustomExercise:
        count = self._config.word_count
        difficulty, criteria = self._criteria(targets, by_char, WORD_PRACTICE)
        return CustomExercise(
            id="word-practice",
            name=f"Word Practice: {', '.join(targets).upper()}",
            description=f"Practice common words containing {', '.join(targets)} letters",
            type=WORD_PRACTICE,
            content=" ".join(_cycle(words, count)),
            target_characters=tuple(targets),
            estimated_minutes=max(5, math.ceil(count / 10)),
            difficulty_score=difficulty,
            repetitions=3,
            success_criteria=criteria,
        )

    def _sentence_practice(
        self, sentences: Sequence[str], targets: Sequence[str], by_char: Dict[str, LetterAggregate]
    ) -> CustomExercise:
        count = self._config.sentence_count
        difficulty, criteria = self._criteria(targets, by_char, SENTENCE_PRACTICE)
        return CustomExercise(
            id="sentence-practice",
            name=f"Sentence Practice: {', '.join(targets).upper()}",
            description=f"Practice sentences emphasizing {', '.join(targets)} letters",
            type=SENTENCE_PRACTICE,
            content=" ".join(_cycle(sentences, count)),
            target_characters=tuple(targets),
            estimated_minutes=max(8, count * 2),
            difficulty_score=difficulty,
            repetitions=2,
            success_criteria=criteria,
        )

    def _pattern_exercise(
        self,
        pattern: ErrorPattern,
        by_char: Dict[str, LetterAggregate],
        focus_difficulty: Optional[float] = None,
    ) -> CustomExercise:
        letters = pattern.affected_characters
        difficulty, criteria = self._criteria(letters, by_char, PATTERN_PRACTICE, focus_difficulty)
        return CustomExercise(
            id=f"error-{pattern.id}",
            name=f"Fix: {pattern.description}",
            description=f"Address {pattern.type.value} errors with {', '.join(letters)}",
            type=PATTERN_PRACTICE,
            content=pattern_content(pattern),
            target_characters=letters,
            estimated_minutes=4,
            difficulty_score=difficulty,
            repetitions=3,
            success_criteria=criteria,
        )
