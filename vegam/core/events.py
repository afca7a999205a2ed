from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Tuple


def _pick(raw: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return default


@dataclass(frozen=True)
class KeystrokeEvent:
    """A single key press recorded during a practice session."""

    character: str
    timestamp_offset_ms: float
    is_correct: bool
    inter_key_latency_ms: float
    expected_character: str
    finger_index: int

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "KeystrokeEvent":
        return cls(
            character=str(_pick(raw, "character", "key", default="")),
            timestamp_offset_ms=float(_pick(raw, "timestamp_offset_ms", "timestamp", default=0.0)),
            is_correct=bool(_pick(raw, "is_correct", "isCorrect", default=False)),
            inter_key_latency_ms=float(
                _pick(raw, "inter_key_latency_ms", "timeSinceLastKey", default=0.0)
            ),
            expected_character=str(_pick(raw, "expected_character", "expectedKey", default="")),
            finger_index=int(_pick(raw, "finger_index", "finger", default=-1)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "character": self.character,
            "timestamp_offset_ms": self.timestamp_offset_ms,
            "is_correct": self.is_correct,
            "inter_key_latency_ms": self.inter_key_latency_ms,
            "expected_character": self.expected_character,
            "finger_index": self.finger_index,
        }


@dataclass(frozen=True)
class MistakeEvent:
    """A mistyped position. An empty ``actual_character`` is an omission,
    an empty ``expected_character`` an insertion."""

    expected_character: str
    actual_character: str
    position_in_text: int
    timestamp_offset_ms: float
    finger_index: int

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "MistakeEvent":
        return cls(
            expected_character=str(_pick(raw, "expected_character", "expectedKey", default="")),
            actual_character=str(_pick(raw, "actual_character", "actualKey", default="")),
            position_in_text=int(_pick(raw, "position_in_text", "position", default=0)),
            timestamp_offset_ms=float(_pick(raw, "timestamp_offset_ms", "timestamp", default=0.0)),
            finger_index=int(_pick(raw, "finger_index", "finger", default=-1)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expected_character": self.expected_character,
            "actual_character": self.actual_character,
            "position_in_text": self.position_in_text,
            "timestamp_offset_ms": self.timestamp_offset_ms,
            "finger_index": self.finger_index,
        }


def parse_timestamp(text: str) -> datetime:
    """ISO-8601 timestamp, accepting a trailing ``Z`` for UTC."""
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class TypingSessionRecord:
    """Immutable record of one practice session: its start time plus the
    keystroke and mistake streams in recording order."""

    start_time: datetime
    keystrokes: Tuple[KeystrokeEvent, ...] = ()
    mistakes: Tuple[MistakeEvent, ...] = ()
    session_id: str = ""
    layout_id: str = ""

    def __post_init__(self) -> None:
        # Accept any iterable but store tuples so records stay hashable and immutable.
        object.__setattr__(self, "keystrokes", tuple(self.keystrokes))
        object.__setattr__(self, "mistakes", tuple(self.mistakes))

    def occurred_at(self, offset_ms: float) -> datetime:
        """Absolute time of an event recorded ``offset_ms`` after session start."""
        return self.start_time + timedelta(milliseconds=offset_ms)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TypingSessionRecord":
        start = _pick(raw, "start_time", "startTime")
        if start is None:
            raise ValueError("session record is missing 'start_time'")
        if not isinstance(start, datetime):
            start = parse_timestamp(str(start))
        return cls(
            start_time=start,
            keystrokes=tuple(KeystrokeEvent.from_dict(k) for k in raw.get("keystrokes", []) or []),
            mistakes=tuple(MistakeEvent.from_dict(m) for m in raw.get("mistakes", []) or []),
            session_id=str(_pick(raw, "session_id", "id", default="")),
            layout_id=str(_pick(raw, "layout_id", "layoutId", default="")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "layout_id": self.layout_id,
            "start_time": self.start_time.isoformat(),
            "keystrokes": [k.to_dict() for k in self.keystrokes],
            "mistakes": [m.to_dict() for m in self.mistakes],
        }


def all_mistakes(sessions) -> list[MistakeEvent]:
    """Flatten the mistake streams of ``sessions`` in session order."""
    return [mistake for session in sessions for mistake in session.mistakes]


def normalize_character(character: str) -> str:
    return character.lower()
