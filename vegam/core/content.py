from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import yaml

from vegam.core.config import LETTER_DRILL, SENTENCE_PRACTICE, WORD_PRACTICE
from vegam.core.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_DIR = Path(__file__).resolve().parent.parent / "data" / "content"


class ContentProvider(Protocol):
    def get_candidate_content(
        self, layout_id: str, target_characters: Sequence[str], exercise_type: str
    ) -> List[str]:
        ...


@dataclass(frozen=True)
class Curriculum:
    key: str
    name: str
    layouts: Tuple[str, ...]
    words: Tuple[str, ...]
    sentences: Tuple[str, ...]


def _text_list(raw, field_name: str, source: str) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, list):
        return tuple(str(item).strip() for item in raw if str(item).strip())
    if isinstance(raw, str):
        # allow a multiline string, one entry per line
        return tuple(line.strip() for line in raw.splitlines() if line.strip())
    raise ValueError(f"{source}: '{field_name}' must be a list or multiline string")


def rank_by_targets(candidates: Sequence[str], targets: Sequence[str]) -> List[str]:
    """Candidates containing at least one target, most distinct targets first."""
    scored = []
    for text in candidates:
        lowered = text.lower()
        hits = sum(1 for t in targets if t in lowered)
        if hits:
            scored.append((hits, text))
    scored.sort(key=lambda item: -item[0])
    return [text for _, text in scored]


class ContentRepository:
    """Word and sentence pools loaded from ``content/*.yaml`` files.

    Each file names the layouts it serves; the first file (by name) that
    lists a layout supplies its candidates.
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else DEFAULT_CONTENT_DIR
        self._curricula = self._load_curricula()

    def all(self) -> List[Curriculum]:
        return list(self._curricula.values())

    def for_layout(self, layout_id: str) -> Curriculum:
        for curriculum in self._curricula.values():
            if layout_id in curriculum.layouts:
                return curriculum
        raise CollaboratorUnavailable("curriculum content", f"no curriculum covers layout '{layout_id}'")

    def get_candidate_content(
        self, layout_id: str, target_characters: Sequence[str], exercise_type: str
    ) -> List[str]:
        curriculum = self.for_layout(layout_id)
        targets = list(dict.fromkeys(c.lower() for c in target_characters if c))
        if not targets:
            return []
        if exercise_type == LETTER_DRILL:
            return targets
        if exercise_type == WORD_PRACTICE:
            return rank_by_targets(curriculum.words, targets)
        if exercise_type == SENTENCE_PRACTICE:
            return rank_by_targets(curriculum.sentences, targets)
        raise ValueError(f"Unknown exercise type: {exercise_type}")

    def _load_curricula(self) -> Dict[str, Curriculum]:
        if not self._base_dir.exists():
            raise FileNotFoundError(f"Content directory not found: {self._base_dir}")

        curricula: Dict[str, Curriculum] = {}
        for path in sorted(self._base_dir.glob("*.yaml")):
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
            if not raw or not isinstance(raw, dict):
                raise ValueError(f"{path.name}: expected YAML with 'title' and 'layouts'")
            title = raw.get("title")
            if not title or not isinstance(title, str):
                raise ValueError(f"{path.name}: missing or invalid 'title'")
            layouts = raw.get("layouts")
            if not layouts or not isinstance(layouts, list):
                raise ValueError(f"{path.name}: missing 'layouts'")
            words = _text_list(raw.get("words"), "words", path.name)
            sentences = _text_list(raw.get("sentences"), "sentences", path.name)
            if not words and not sentences:
                raise ValueError(f"{path.name}: no words or sentences")
            curricula[path.stem] = Curriculum(
                key=path.stem,
                name=title.strip(),
                layouts=tuple(str(layout) for layout in layouts),
                words=words,
                sentences=sentences,
            )
            logger.info("Loaded curriculum %s (%d words, %d sentences)", path.stem, len(words), len(sentences))

        if not curricula:
            raise ValueError(f"No content files (*.yaml) found in {self._base_dir}")
        return curricula
