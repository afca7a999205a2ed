from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import yaml

from vegam.core.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)

# Reference QWERTY rows used when a character has no geometry entry.
TOP_ROW = "qwertyuiop"
HOME_ROW = "asdfghjkl"
BOTTOM_ROW = "zxcvbnm"
REFERENCE_ORDER = TOP_ROW + HOME_ROW + BOTTOM_ROW

DEFAULT_LAYOUTS_DIR = Path(__file__).resolve().parent.parent / "data" / "layouts"


@dataclass(frozen=True)
class KeyPosition:
    character: str
    row: int
    column: int
    finger: int


def reference_position(character: str) -> Tuple[int, int]:
    """Fallback ``(row, column)`` for a character the layout does not know.

    Rows count from the bottom (0) to the top letter row (2); anything
    outside the three letter rows sits on the home row.
    """
    if character and character in TOP_ROW:
        row = 2
    elif character and character in BOTTOM_ROW:
        row = 0
    else:
        row = 1
    index = REFERENCE_ORDER.find(character) if character else -1
    column = index % 10 if index >= 0 else 0
    return row, column


class LayoutGeometry:
    """Row/column/finger assignment of every character on one layout."""

    def __init__(self, layout_id: str, name: str, keys: Mapping[str, KeyPosition]) -> None:
        self.layout_id = layout_id
        self.name = name
        self._keys = dict(keys)

    def __contains__(self, character: str) -> bool:
        return character in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def lookup(self, character: str) -> Optional[KeyPosition]:
        return self._keys.get(character)

    def finger_for(self, character: str) -> Optional[int]:
        position = self._keys.get(character)
        return position.finger if position is not None else None

    def position_of(self, character: str) -> Tuple[int, int]:
        position = self._keys.get(character)
        if position is None:
            return reference_position(character)
        return position.row, position.column

    @classmethod
    def from_mapping(cls, layout_id: str, raw: Mapping) -> "LayoutGeometry":
        if not raw or not isinstance(raw, Mapping):
            raise ValueError(f"{layout_id}: expected YAML with 'title' and 'rows'")
        title = raw.get("title")
        rows = raw.get("rows")
        if not title or not isinstance(title, str):
            raise ValueError(f"{layout_id}: missing or invalid 'title'")
        if not rows or not isinstance(rows, list):
            raise ValueError(f"{layout_id}: missing 'rows'")

        keys: Dict[str, KeyPosition] = {}
        for entry in rows:
            if not isinstance(entry, Mapping):
                raise ValueError(f"{layout_id}: each row must be a mapping")
            row = entry.get("row")
            chars = str(entry.get("keys", ""))
            fingers = entry.get("fingers") or []
            if not isinstance(row, int):
                raise ValueError(f"{layout_id}: row index must be an integer")
            if len(fingers) != len(chars):
                raise ValueError(
                    f"{layout_id}: row {row} has {len(chars)} keys but {len(fingers)} fingers"
                )
            for column, (char, finger) in enumerate(zip(chars, fingers)):
                keys[char.lower()] = KeyPosition(
                    character=char.lower(), row=row, column=column, finger=int(finger)
                )
        return cls(layout_id=layout_id, name=title.strip(), keys=keys)


def reference_geometry() -> LayoutGeometry:
    """QWERTY geometry with touch-typing finger assignment."""
    fingers = {
        TOP_ROW: [0, 1, 2, 3, 3, 6, 6, 7, 8, 9],
        HOME_ROW: [0, 1, 2, 3, 3, 6, 6, 7, 8],
        BOTTOM_ROW: [0, 1, 2, 3, 3, 6, 6],
    }
    rows = {TOP_ROW: 2, HOME_ROW: 1, BOTTOM_ROW: 0}
    keys = {}
    for chars, row in rows.items():
        for column, char in enumerate(chars):
            keys[char] = KeyPosition(character=char, row=row, column=column, finger=fingers[chars][column])
    return LayoutGeometry(layout_id="qwerty", name="QWERTY", keys=keys)


class LayoutRepository:
    """Keyboard layouts loaded from ``<layout_id>.yaml`` files."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else DEFAULT_LAYOUTS_DIR
        self._layouts = self._load_layouts()

    def all(self) -> List[LayoutGeometry]:
        return list(self._layouts.values())

    def ids(self) -> List[str]:
        return list(self._layouts)

    def get(self, layout_id: str) -> LayoutGeometry:
        try:
            return self._layouts[layout_id]
        except KeyError:
            raise CollaboratorUnavailable(
                "layout geometry", f"no geometry for layout '{layout_id}'"
            ) from None

    def _load_layouts(self) -> Dict[str, LayoutGeometry]:
        if not self._base_dir.exists():
            raise FileNotFoundError(f"Layouts directory not found: {self._base_dir}")

        layouts: Dict[str, LayoutGeometry] = {}
        for layout_path in sorted(self._base_dir.glob("*.yaml")):
            raw = yaml.safe_load(layout_path.read_text(encoding="utf-8"))
            layouts[layout_path.stem] = LayoutGeometry.from_mapping(layout_path.stem, raw)
            logger.info("Loaded layout %s (%d keys)", layout_path.stem, len(layouts[layout_path.stem]))

        if not layouts:
            raise ValueError(f"No layout files (*.yaml) found in {self._base_dir}")
        return layouts
