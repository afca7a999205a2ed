from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from vegam.core import colors
from vegam.core.config import AnalyticsConfig
from vegam.core.layout import LayoutGeometry, reference_position
from vegam.core.letters import HIGH, LetterAggregate


@dataclass(frozen=True)
class LetterHeatmapCell:
    character: str
    finger: int
    row: int
    column: int
    error_intensity: float
    speed_intensity: float
    practice_needed: bool
    color_bucket: str
    color: str


def color_bucket(intensity: float, config: Optional[AnalyticsConfig] = None) -> str:
    config = config or AnalyticsConfig()
    if intensity < config.heatmap_good_below:
        return colors.GOOD
    if intensity < config.heatmap_moderate_below:
        return colors.MODERATE
    if intensity < config.heatmap_attention_below:
        return colors.ATTENTION
    return colors.NEEDS_PRACTICE


def _intensity(value: float, ceiling: float) -> float:
    if ceiling <= 0:
        return 0.0
    return max(0.0, min(1.0, value / ceiling))


def generate_heatmap(
    letters: Iterable[LetterAggregate],
    geometry: Optional[LayoutGeometry] = None,
    config: Optional[AnalyticsConfig] = None,
) -> List[LetterHeatmapCell]:
    """One cell per letter aggregate, in the order given.

    Positions come from ``geometry``; characters it does not place (or all
    characters, without geometry) fall back to the reference QWERTY grid.
    """
    config = config or AnalyticsConfig()
    cells = []
    for letter in letters:
        if geometry is not None:
            row, column = geometry.position_of(letter.character)
        else:
            row, column = reference_position(letter.character)
        error_intensity = _intensity(letter.error_rate, config.heatmap_error_rate_ceiling)
        speed_intensity = _intensity(letter.average_time_ms, config.heatmap_latency_ceiling_ms)
        bucket = color_bucket(max(error_intensity, speed_intensity), config)
        cells.append(
            LetterHeatmapCell(
                character=letter.character,
                finger=letter.finger,
                row=row,
                column=column,
                error_intensity=error_intensity,
                speed_intensity=speed_intensity,
                practice_needed=letter.recommendation == HIGH,
                color_bucket=bucket,
                color=colors.bucket_color(bucket),
            )
        )
    return cells
