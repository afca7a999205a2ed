from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from vegam.core.events import TypingSessionRecord
from vegam.core.training import AdaptiveTrainingPlan

logger = logging.getLogger(__name__)


def _safe_name(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", value) or "_"


class JsonSessionHistory:
    """Session history and latest plan per user and layout, as JSON files.

    Layout: ``<root>/<user>/<layout>.json`` holds the sessions in recording
    order, ``<root>/<user>/<layout>.plan.json`` the most recent plan.
    Default root: ~/.vegam/history.
    """

    def __init__(self, root: Optional[Path] = None) -> None:
        self._root = Path(root) if root is not None else Path.home() / ".vegam" / "history"
        self._root.mkdir(parents=True, exist_ok=True)

    def _sessions_path(self, user_id: str, layout_id: str) -> Path:
        return self._root / _safe_name(user_id) / f"{_safe_name(layout_id)}.json"

    def _plan_path(self, user_id: str, layout_id: str) -> Path:
        return self._root / _safe_name(user_id) / f"{_safe_name(layout_id)}.plan.json"

    def get_session_history(self, user_id: str, layout_id: str) -> List[TypingSessionRecord]:
        """Sessions as stored; callers own ordering."""
        payload = self._read(self._sessions_path(user_id, layout_id))
        sessions = []
        for raw in payload.get("sessions", []):
            try:
                sessions.append(TypingSessionRecord.from_dict(raw))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping malformed session for %s/%s: %s", user_id, layout_id, e)
        return sessions

    def append_session(self, user_id: str, layout_id: str, session: TypingSessionRecord) -> None:
        path = self._sessions_path(user_id, layout_id)
        payload = self._read(path)
        payload.setdefault("sessions", []).append(session.to_dict())
        self._write(path, payload)

    def save_plan(self, plan: AdaptiveTrainingPlan) -> None:
        """Replace the stored plan for the plan's user and layout."""
        self._write(self._plan_path(plan.user_id, plan.layout_id), plan.to_dict())

    def load_plan(self, user_id: str, layout_id: str) -> Optional[Dict[str, Any]]:
        path = self._plan_path(user_id, layout_id)
        if not path.exists():
            return None
        return self._read(path) or None

    def reset(self, user_id: str, layout_id: str) -> None:
        for path in (self._sessions_path(user_id, layout_id), self._plan_path(user_id, layout_id)):
            if path.exists():
                path.unlink()

    def _read(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load history from %s: %s", path, e)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring %s: expected a JSON object", path)
            return {}
        return payload

    def _write(self, path: Path, payload: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save history to %s: %s", path, e)
