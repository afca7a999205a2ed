"""Per-letter and per-finger statistics over a whole session history.

The aggregator is a pure function of its inputs: every call builds fresh
buckets, derives the metrics and returns immutable records, so the same
history always yields equal results in the same order.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from vegam.core.config import AnalyticsConfig
from vegam.core.events import MistakeEvent, TypingSessionRecord, normalize_character
from vegam.core.positions import MistakePositionClassifier, UnknownPositionClassifier

logger = logging.getLogger(__name__)

FINGER_COUNT = 10
FINGER_NAMES = (
    "Left Pinky", "Left Ring", "Left Middle", "Left Index", "Left Thumb",
    "Right Thumb", "Right Index", "Right Middle", "Right Ring", "Right Pinky",
)

HIGH = "high"
MEDIUM = "medium"
LOW = "low"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def _ratio(part: float, whole: float) -> float:
    return part / whole if whole else 0.0


@dataclass(frozen=True)
class LetterMistake:
    """How often a letter was replaced by one particular key."""

    expected: str
    typed: str
    frequency: int
    percentage: float
    last_occurrence: datetime
    finger: int
    position: str


@dataclass(frozen=True)
class LetterAggregate:
    character: str
    finger: int
    total_attempts: int
    correct_attempts: int
    error_count: int
    total_latency_ms: float
    accuracy: int
    average_time_ms: int
    error_rate: int
    difficulty_score: int
    recommendation: str
    common_mistakes: Tuple[LetterMistake, ...] = ()


@dataclass(frozen=True)
class FingerAggregate:
    finger: int
    finger_name: str
    hand: str
    assigned_keys: Tuple[str, ...]
    total_keystrokes: int
    correct_keystrokes: int
    error_count: int
    total_latency_ms: float
    average_accuracy: int
    average_speed: int
    strongest_keys: Tuple[str, ...]
    weakest_keys: Tuple[str, ...]
    recommended_exercises: Tuple[str, ...]


@dataclass(frozen=True)
class SessionAggregates:
    letters: Tuple[LetterAggregate, ...]
    fingers: Tuple[FingerAggregate, ...]
    orphan_mistakes: Tuple[MistakeEvent, ...] = ()


@dataclass
class _MistakeTally:
    frequency: int
    last_occurrence: datetime
    finger: int
    position: str


@dataclass
class _LetterBucket:
    finger: int
    attempts: int = 0
    correct: int = 0
    errors: int = 0
    latency_ms: float = 0.0
    mistakes: Dict[Tuple[str, str], _MistakeTally] = field(default_factory=dict)


def difficulty_score(
    accuracy: float,
    average_time_ms: float,
    error_rate: float,
    config: Optional[AnalyticsConfig] = None,
) -> float:
    """Composite 0-100 difficulty: higher means the key needs more work."""
    config = config or AnalyticsConfig()
    accuracy_score = max(0.0, 100.0 - accuracy)
    time_score = min(100.0, _ratio(average_time_ms, config.latency_normalization_ms) * 100.0)
    error_score = min(100.0, error_rate)
    score = (
        accuracy_score * config.accuracy_weight
        + time_score * config.speed_weight
        + error_score * config.error_weight
    )
    return max(0.0, min(100.0, score))


def recommendation_tier(
    difficulty: float,
    accuracy: float,
    error_rate: float,
    config: Optional[AnalyticsConfig] = None,
) -> str:
    config = config or AnalyticsConfig()
    if (
        difficulty > config.high_difficulty
        or accuracy < config.high_min_accuracy
        or error_rate > config.high_error_rate
    ):
        return HIGH
    if (
        difficulty > config.medium_difficulty
        or accuracy < config.medium_min_accuracy
        or error_rate > config.medium_error_rate
    ):
        return MEDIUM
    return LOW


def difficulty_tier(difficulty: float, config: Optional[AnalyticsConfig] = None) -> str:
    """Tier from the difficulty thresholds alone."""
    config = config or AnalyticsConfig()
    if difficulty > config.high_difficulty:
        return HIGH
    if difficulty > config.medium_difficulty:
        return MEDIUM
    return LOW


def _collect_buckets(
    sessions: Iterable[TypingSessionRecord],
    positions: MistakePositionClassifier,
) -> Tuple[Dict[str, _LetterBucket], List[MistakeEvent]]:
    buckets: Dict[str, _LetterBucket] = {}
    orphans: List[MistakeEvent] = []

    for session in sessions:
        for keystroke in session.keystrokes:
            letter = normalize_character(keystroke.character)
            bucket = buckets.get(letter)
            if bucket is None:
                bucket = buckets[letter] = _LetterBucket(finger=keystroke.finger_index)
            bucket.attempts += 1
            bucket.latency_ms += keystroke.inter_key_latency_ms
            bucket.finger = keystroke.finger_index
            if keystroke.is_correct:
                bucket.correct += 1
            else:
                bucket.errors += 1

        for mistake in session.mistakes:
            expected = normalize_character(mistake.expected_character)
            typed = normalize_character(mistake.actual_character)
            bucket = buckets.get(expected)
            if bucket is None:
                orphans.append(mistake)
                continue
            occurred = session.occurred_at(mistake.timestamp_offset_ms)
            tally = bucket.mistakes.get((expected, typed))
            if tally is None:
                tally = bucket.mistakes[(expected, typed)] = _MistakeTally(
                    frequency=0,
                    last_occurrence=occurred,
                    finger=mistake.finger_index,
                    position=positions.classify(mistake.finger_index, expected, typed),
                )
            tally.frequency += 1
            tally.last_occurrence = occurred

    return buckets, orphans


def _common_mistakes(bucket: _LetterBucket, limit: int) -> Tuple[LetterMistake, ...]:
    total = sum(t.frequency for t in bucket.mistakes.values())
    mistakes = [
        LetterMistake(
            expected=expected,
            typed=typed,
            frequency=tally.frequency,
            percentage=_ratio(tally.frequency, total) * 100.0,
            last_occurrence=tally.last_occurrence,
            finger=tally.finger,
            position=tally.position,
        )
        for (expected, typed), tally in bucket.mistakes.items()
    ]
    mistakes.sort(key=lambda m: -m.frequency)
    return tuple(mistakes[:limit])


def _letter_aggregate(letter: str, bucket: _LetterBucket, config: AnalyticsConfig) -> LetterAggregate:
    accuracy = _ratio(bucket.correct, bucket.attempts) * 100.0
    average_time = _ratio(bucket.latency_ms, bucket.attempts)
    error_rate = _ratio(bucket.errors, bucket.attempts) * 100.0
    difficulty = difficulty_score(accuracy, average_time, error_rate, config)
    return LetterAggregate(
        character=letter,
        finger=bucket.finger,
        total_attempts=bucket.attempts,
        correct_attempts=bucket.correct,
        error_count=bucket.errors,
        total_latency_ms=bucket.latency_ms,
        accuracy=round_half_up(accuracy),
        average_time_ms=round_half_up(average_time),
        error_rate=round_half_up(error_rate),
        difficulty_score=round_half_up(difficulty),
        recommendation=recommendation_tier(difficulty, accuracy, error_rate, config),
        common_mistakes=_common_mistakes(bucket, config.top_mistakes_per_letter),
    )


def sort_letters(letters: Iterable[LetterAggregate]) -> List[LetterAggregate]:
    """Hardest first; equal scores in ascending character order."""
    return sorted(letters, key=lambda la: (-la.difficulty_score, la.character))


def analyze_letter_performance(
    sessions: Sequence[TypingSessionRecord],
    config: Optional[AnalyticsConfig] = None,
    positions: Optional[MistakePositionClassifier] = None,
) -> List[LetterAggregate]:
    config = config or AnalyticsConfig()
    buckets, orphans = _collect_buckets(sessions, positions or UnknownPositionClassifier())
    if orphans:
        logger.debug("Dropped %d mistakes with no keystroke context", len(orphans))
    return sort_letters(_letter_aggregate(letter, b, config) for letter, b in buckets.items())


def finger_name(finger: int) -> str:
    if 0 <= finger < FINGER_COUNT:
        return FINGER_NAMES[finger]
    return "Unknown"


def finger_exercises(finger: int, weak_keys: Sequence[str]) -> Tuple[str, ...]:
    name = finger_name(finger)
    exercises = []
    if weak_keys:
        exercises.append(f"Practice {', '.join(weak_keys)} keys")
        exercises.append(f"{name} strengthening drills")
    exercises.append(f"{name} coordination exercises")
    return tuple(exercises)


def analyze_finger_performance(
    sessions: Sequence[TypingSessionRecord],
    letters: Sequence[LetterAggregate],
    config: Optional[AnalyticsConfig] = None,
) -> List[FingerAggregate]:
    """One record per finger 0-9, including fingers that never typed.

    Totals are summed over the letters whose recorded finger is that finger,
    so a letter typed with several fingers counts wholly toward its last one.
    An empty history yields no records at all.
    """
    config = config or AnalyticsConfig()
    skipped = sum(
        1
        for session in sessions
        for keystroke in session.keystrokes
        if not 0 <= keystroke.finger_index < FINGER_COUNT
    )
    if skipped:
        logger.debug("Skipped %d keystrokes with finger index outside 0-9", skipped)
    if not letters:
        return []

    result = []
    for finger in range(FINGER_COUNT):
        own = [la for la in letters if la.finger == finger]
        keystrokes = sum(la.total_attempts for la in own)
        correct = sum(la.correct_attempts for la in own)
        latency = sum(la.total_latency_ms for la in own)
        strongest = sorted(
            (la for la in own if la.accuracy >= config.strong_key_accuracy),
            key=lambda la: -la.accuracy,
        )[: config.finger_key_limit]
        weakest = sorted(
            (la for la in own if la.accuracy < config.weak_key_accuracy),
            key=lambda la: la.accuracy,
        )[: config.finger_key_limit]
        weak_keys = tuple(la.character for la in weakest)
        result.append(
            FingerAggregate(
                finger=finger,
                finger_name=finger_name(finger),
                hand="left" if finger < 5 else "right",
                assigned_keys=tuple(sorted(la.character for la in own)),
                total_keystrokes=keystrokes,
                correct_keystrokes=correct,
                error_count=sum(la.error_count for la in own),
                total_latency_ms=latency,
                average_accuracy=round_half_up(_ratio(correct, keystrokes) * 100.0),
                average_speed=round_half_up(_ratio(latency, keystrokes)),
                strongest_keys=tuple(la.character for la in strongest),
                weakest_keys=weak_keys,
                recommended_exercises=finger_exercises(finger, weak_keys),
            )
        )
    return result


def aggregate_sessions(
    sessions: Sequence[TypingSessionRecord],
    config: Optional[AnalyticsConfig] = None,
    positions: Optional[MistakePositionClassifier] = None,
) -> SessionAggregates:
    """Letter and finger aggregates in one pass over the history.

    Mistakes for characters that were never typed are dropped unless
    ``config.retain_orphan_mistakes`` is set, in which case they are kept
    in ``orphan_mistakes`` for auditing.
    """
    config = config or AnalyticsConfig()
    buckets, orphans = _collect_buckets(sessions, positions or UnknownPositionClassifier())
    letters = sort_letters(_letter_aggregate(letter, b, config) for letter, b in buckets.items())
    fingers = analyze_finger_performance(sessions, letters, config)
    if orphans and not config.retain_orphan_mistakes:
        logger.debug("Dropped %d mistakes with no keystroke context", len(orphans))
        orphans = []
    return SessionAggregates(
        letters=tuple(letters),
        fingers=tuple(fingers),
        orphan_mistakes=tuple(orphans),
    )
