"""Classification of how a mistyped key relates to the intended one."""

from __future__ import annotations

from typing import Optional, Protocol

from vegam.core.layout import LayoutGeometry

SAME_FINGER = "same_finger"
ADJACENT_FINGER = "adjacent_finger"
DIFFERENT_HAND = "different_hand"
RANDOM = "random"


def hand_of(finger: int) -> Optional[str]:
    if 0 <= finger <= 4:
        return "left"
    if 5 <= finger <= 9:
        return "right"
    return None


class MistakePositionClassifier(Protocol):
    def classify(self, finger: int, expected: str, typed: str) -> str:
        ...


class UnknownPositionClassifier:
    """Used when no layout data is available: only an identical key counts
    as ``same_finger``, everything else is ``random``."""

    def classify(self, finger: int, expected: str, typed: str) -> str:
        if expected == typed:
            return SAME_FINGER
        return RANDOM


class GeometryPositionClassifier:
    """Relates the typed key's finger to the finger that should have pressed
    the expected key, using real layout assignments."""

    def __init__(self, geometry: LayoutGeometry) -> None:
        self._geometry = geometry

    def classify(self, finger: int, expected: str, typed: str) -> str:
        if not typed:
            return RANDOM
        typed_finger = self._geometry.finger_for(typed)
        if typed_finger is None:
            return RANDOM
        expected_finger = self._geometry.finger_for(expected)
        if expected_finger is None:
            expected_finger = finger
        expected_hand = hand_of(expected_finger)
        typed_hand = hand_of(typed_finger)
        if expected_hand is None or typed_hand is None:
            return RANDOM
        if typed_finger == expected_finger:
            return SAME_FINGER
        if typed_hand != expected_hand:
            return DIFFERENT_HAND
        if abs(typed_finger - expected_finger) == 1:
            return ADJACENT_FINGER
        return RANDOM
