"""Heatmap colour buckets and their palette."""

GOOD = "good"
MODERATE = "moderate"
ATTENTION = "attention"
NEEDS_PRACTICE = "needs-practice"

BUCKETS = (GOOD, MODERATE, ATTENTION, NEEDS_PRACTICE)


class HeatmapColors:
    """Traffic-light palette, mildest bucket first."""

    GOOD = "#22c55e"
    MODERATE = "#eab308"
    ATTENTION = "#f97316"
    NEEDS_PRACTICE = "#ef4444"


_BUCKET_COLORS = {
    GOOD: HeatmapColors.GOOD,
    MODERATE: HeatmapColors.MODERATE,
    ATTENTION: HeatmapColors.ATTENTION,
    NEEDS_PRACTICE: HeatmapColors.NEEDS_PRACTICE,
}


def bucket_color(bucket: str) -> str:
    """Hex colour for a bucket name."""
    try:
        return _BUCKET_COLORS[bucket]
    except KeyError:
        raise ValueError(f"Unknown heatmap bucket '{bucket}'") from None
