from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from vegam.core.config import AnalyticsConfig
from vegam.core.events import MistakeEvent, normalize_character

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    SUBSTITUTION = "substitution"
    OMISSION = "omission"
    INSERTION = "insertion"
    # Needs adjacent-event pair analysis; no rule assigns it yet.
    TRANSPOSITION = "transposition"


BEGINNER = "beginner"
INTERMEDIATE = "intermediate"
ADVANCED = "advanced"


@dataclass(frozen=True)
class ErrorPattern:
    id: str
    type: ErrorType
    expected: str
    actual: str
    frequency: int
    affected_characters: Tuple[str, ...]
    description: str
    suggested_exercises: Tuple[str, ...]
    difficulty: str


_DESCRIPTIONS = {
    ErrorType.SUBSTITUTION: "Frequently substituting {letters} keys",
    ErrorType.OMISSION: "Often missing {letters} keys",
    ErrorType.INSERTION: "Adding extra {letters} keys",
    ErrorType.TRANSPOSITION: "Swapping {letters} key order",
}

_EXERCISES = {
    ErrorType.SUBSTITUTION: ("Practice distinguishing {versus}", "Slow, deliberate typing drills"),
    ErrorType.OMISSION: ("Focus on {listed} key placement", "Rhythm and timing exercises"),
    ErrorType.INSERTION: ("Accuracy over speed drills", "Finger independence exercises"),
    ErrorType.TRANSPOSITION: ("Letter sequence practice", "Common word drills"),
}


def classify_mistake(expected: str, actual: str) -> ErrorType:
    """Omission, then insertion, then substitution.

    A mistake whose two characters are equal matches none of the rules and
    is counted as a substitution.
    """
    if actual == "":
        return ErrorType.OMISSION
    if expected == "":
        return ErrorType.INSERTION
    return ErrorType.SUBSTITUTION


def describe_pattern(error_type: ErrorType, letters: Sequence[str]) -> str:
    return _DESCRIPTIONS[error_type].format(letters=", ".join(letters[:3]))


def pattern_exercises(error_type: ErrorType, letters: Sequence[str]) -> Tuple[str, ...]:
    return tuple(
        template.format(versus=" vs ".join(letters), listed=", ".join(letters))
        for template in _EXERCISES[error_type]
    )


def pattern_difficulty(frequency: int, config: Optional[AnalyticsConfig] = None) -> str:
    config = config or AnalyticsConfig()
    if frequency > config.advanced_pattern_frequency:
        return ADVANCED
    if frequency > config.intermediate_pattern_frequency:
        return INTERMEDIATE
    return BEGINNER


def analyze_error_patterns(
    mistakes: Iterable[MistakeEvent],
    config: Optional[AnalyticsConfig] = None,
) -> List[ErrorPattern]:
    """Group mistakes by (type, expected, actual), most frequent first.

    Every event lands in exactly one pattern, so the frequencies sum to the
    number of events given.
    """
    config = config or AnalyticsConfig()
    counts: Dict[Tuple[ErrorType, str, str], int] = {}
    affected: Dict[Tuple[ErrorType, str, str], Dict[str, None]] = {}

    for mistake in mistakes:
        expected = normalize_character(mistake.expected_character)
        actual = normalize_character(mistake.actual_character)
        if expected and expected == actual:
            logger.debug("Mistake at position %d has matching characters", mistake.position_in_text)
        key = (classify_mistake(expected, actual), expected, actual)
        counts[key] = counts.get(key, 0) + 1
        letters = affected.setdefault(key, {})
        for char in (expected, actual):
            if char:
                letters.setdefault(char, None)

    patterns = []
    for index, (key, frequency) in enumerate(counts.items()):
        error_type, expected, actual = key
        letters = tuple(affected[key])
        patterns.append(
            ErrorPattern(
                id=f"pattern-{index}",
                type=error_type,
                expected=expected,
                actual=actual,
                frequency=frequency,
                affected_characters=letters,
                description=describe_pattern(error_type, letters),
                suggested_exercises=pattern_exercises(error_type, letters),
                difficulty=pattern_difficulty(frequency, config),
            )
        )
    patterns.sort(key=lambda p: -p.frequency)
    return patterns
