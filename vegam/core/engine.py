"""Entry point for reporting and UI callers.

``AnalyticsEngine`` holds configuration and collaborators only; it keeps no
state between calls, so one instance can serve concurrent callers as long as
each passes its own session list.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol, Sequence

from vegam.core.config import AnalyticsConfig
from vegam.core.content import ContentProvider
from vegam.core.errors import CollaboratorUnavailable
from vegam.core.events import MistakeEvent, TypingSessionRecord, all_mistakes
from vegam.core.heatmap import LetterHeatmapCell, generate_heatmap
from vegam.core.layout import LayoutGeometry
from vegam.core.letters import (
    FingerAggregate,
    LetterAggregate,
    SessionAggregates,
    aggregate_sessions,
    analyze_finger_performance,
    analyze_letter_performance,
)
from vegam.core.patterns import ErrorPattern, analyze_error_patterns
from vegam.core.positions import (
    GeometryPositionClassifier,
    MistakePositionClassifier,
    UnknownPositionClassifier,
)
from vegam.core.training import AdaptiveTrainingPlan, Clock, TrainingPlanner

logger = logging.getLogger(__name__)


class LayoutSource(Protocol):
    def get(self, layout_id: str) -> LayoutGeometry:
        ...


class SessionSource(Protocol):
    def get_session_history(self, user_id: str, layout_id: str) -> List[TypingSessionRecord]:
        ...


class AnalyticsEngine:
    def __init__(
        self,
        config: Optional[AnalyticsConfig] = None,
        layouts: Optional[LayoutSource] = None,
        content: Optional[ContentProvider] = None,
        history: Optional[SessionSource] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or AnalyticsConfig()
        self._layouts = layouts
        self._content = content
        self._history = history
        self._clock = clock

    def layout_geometry(self, layout_id: str) -> LayoutGeometry:
        if self._layouts is None:
            raise CollaboratorUnavailable("layout geometry", "no layout source configured")
        return self._layouts.get(layout_id)

    def _positions(self, layout_id: Optional[str]) -> MistakePositionClassifier:
        # Aggregation must not depend on the layout collaborator being present.
        if layout_id is None or self._layouts is None:
            return UnknownPositionClassifier()
        try:
            return GeometryPositionClassifier(self._layouts.get(layout_id))
        except CollaboratorUnavailable as e:
            logger.info("Classifying mistake positions without geometry: %s", e)
            return UnknownPositionClassifier()

    def aggregate(
        self, sessions: Sequence[TypingSessionRecord], layout_id: Optional[str] = None
    ) -> SessionAggregates:
        return aggregate_sessions(list(sessions), self.config, self._positions(layout_id))

    def analyze_letter_performance(
        self, sessions: Sequence[TypingSessionRecord], layout_id: Optional[str] = None
    ) -> List[LetterAggregate]:
        return analyze_letter_performance(list(sessions), self.config, self._positions(layout_id))

    def analyze_finger_performance(
        self, sessions: Sequence[TypingSessionRecord], letters: Sequence[LetterAggregate]
    ) -> List[FingerAggregate]:
        return analyze_finger_performance(list(sessions), letters, self.config)

    def analyze_error_patterns(self, mistakes: Iterable[MistakeEvent]) -> List[ErrorPattern]:
        return analyze_error_patterns(mistakes, self.config)

    def generate_heatmap(
        self, letters: Sequence[LetterAggregate], layout_id: str = "qwerty"
    ) -> List[LetterHeatmapCell]:
        return generate_heatmap(letters, self.layout_geometry(layout_id), self.config)

    def generate_adaptive_training(
        self,
        user_id: str,
        layout_id: str,
        sessions: Optional[Sequence[TypingSessionRecord]] = None,
    ) -> AdaptiveTrainingPlan:
        """Analyse ``sessions`` (or the stored history) and build a plan."""
        if self._content is None:
            raise CollaboratorUnavailable("curriculum content", "no content provider configured")
        if sessions is None:
            if self._history is None:
                raise CollaboratorUnavailable("session history", "no history source configured")
            sessions = self._history.get_session_history(user_id, layout_id)
        sessions = list(sessions)

        letters = self.analyze_letter_performance(sessions, layout_id)
        patterns = self.analyze_error_patterns(all_mistakes(sessions))
        planner = TrainingPlanner(self._content, self.config, self._clock)
        return planner.build_plan(user_id, layout_id, letters, patterns)
