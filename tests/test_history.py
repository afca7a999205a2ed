"""Tests for vegam.core.history – JSON-backed session history."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import pytest

from vegam.core.events import KeystrokeEvent, MistakeEvent, TypingSessionRecord
from vegam.core.history import JsonSessionHistory
from vegam.core.training import AdaptiveTrainingPlan

START = datetime(2025, 5, 1, 7, 0)


@pytest.fixture()
def history(tmp_path: Path) -> JsonSessionHistory:
    """History rooted in a temp dir so tests don't touch ~/.vegam."""
    return JsonSessionHistory(tmp_path)


def _session(session_id: str) -> TypingSessionRecord:
    return TypingSessionRecord(
        start_time=START,
        keystrokes=[KeystrokeEvent("a", 0.0, True, 150.0, "a", 0)],
        mistakes=[MistakeEvent("s", "d", 1, 200.0, 1)],
        session_id=session_id,
        layout_id="qwerty",
    )


def _plan(user_id: str = "u1") -> AdaptiveTrainingPlan:
    return AdaptiveTrainingPlan(
        user_id=user_id,
        layout_id="qwerty",
        generated_at=datetime(2025, 5, 2, tzinfo=timezone.utc),
        focus_characters=("a",),
        error_patterns=(),
        custom_exercises=(),
        estimated_practice_minutes=0,
        difficulty_level="beginner",
        priority="low",
    )


# ===========================================================================
# Sessions
# ===========================================================================

class TestSessions:
    def test_no_file_returns_empty(self, history: JsonSessionHistory):
        assert history.get_session_history("u1", "qwerty") == []

    def test_append_and_read_in_order(self, history: JsonSessionHistory):
        history.append_session("u1", "qwerty", _session("s1"))
        history.append_session("u1", "qwerty", _session("s2"))
        sessions = history.get_session_history("u1", "qwerty")
        assert [s.session_id for s in sessions] == ["s1", "s2"]
        assert sessions[0] == _session("s1")

    def test_separate_per_layout(self, history: JsonSessionHistory):
        history.append_session("u1", "qwerty", _session("s1"))
        assert history.get_session_history("u1", "colemak") == []

    def test_unsafe_ids_are_sanitised(self, history: JsonSessionHistory, tmp_path: Path):
        history.append_session("../evil", "qwerty", _session("s1"))
        assert (tmp_path / ".._evil" / "qwerty.json").exists()
        assert len(history.get_session_history("../evil", "qwerty")) == 1

    def test_corrupt_file(self, history: JsonSessionHistory, tmp_path: Path, caplog):
        path = tmp_path / "u1" / "qwerty.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            assert history.get_session_history("u1", "qwerty") == []
        assert "Could not load history" in caplog.text

    def test_malformed_session_skipped(self, history: JsonSessionHistory, tmp_path: Path):
        path = tmp_path / "u1" / "qwerty.json"
        path.parent.mkdir(parents=True)
        good = _session("ok").to_dict()
        path.write_text(json.dumps({"sessions": [{"keystrokes": []}, good]}), encoding="utf-8")
        sessions = history.get_session_history("u1", "qwerty")
        assert [s.session_id for s in sessions] == ["ok"]


# ===========================================================================
# Plans
# ===========================================================================

class TestPlans:
    def test_no_plan(self, history: JsonSessionHistory):
        assert history.load_plan("u1", "qwerty") is None

    def test_save_and_load(self, history: JsonSessionHistory):
        history.save_plan(_plan())
        stored = history.load_plan("u1", "qwerty")
        assert stored["focus_characters"] == ["a"]
        assert stored["generated_at"] == "2025-05-02T00:00:00+00:00"

    def test_save_replaces(self, history: JsonSessionHistory):
        history.save_plan(_plan())
        history.save_plan(replace(_plan(), priority="high"))
        assert history.load_plan("u1", "qwerty")["priority"] == "high"

    def test_reset(self, history: JsonSessionHistory):
        history.append_session("u1", "qwerty", _session("s1"))
        history.save_plan(_plan())
        history.reset("u1", "qwerty")
        assert history.get_session_history("u1", "qwerty") == []
        assert history.load_plan("u1", "qwerty") is None
