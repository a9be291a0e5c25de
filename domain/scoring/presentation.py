"""Display policies for scores.

Nothing in here feeds back into the scoring core. Substituting ``"0.0"`` for
N/A or folding an unrated project into "Weak" is a choice made by whoever
renders the value, and callers opt into it explicitly.
"""
from __future__ import annotations

from typing import Dict

from .formulas import DEFAULT_SCORING_CONFIG, CompositeScore, Rating, ScoringConfig, rating

NA_DISPLAY = "N/A"
LEGACY_MISSING_DISPLAY = "0.0"

RATING_COLORS: Dict[Rating, str] = {
    Rating.STRONG: "#10B981",
    Rating.MODERATE: "#F59E0B",
    Rating.WEAK: "#EF4444",
    Rating.UNRATED: "#9CA3AF",
}


def format_score(value: CompositeScore, missing_display: str = NA_DISPLAY, precision: int = 2) -> str:
    if value is None:
        return missing_display
    return f"{value:.{precision}f}"


def legacy_rating(overall: CompositeScore, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> Rating:
    """Spreadsheet-compatible bucketing: an N/A overall score is rated as 0.0 ("Weak")."""

    return rating(0.0 if overall is None else overall, config)


def rating_color(value: Rating) -> str:
    return RATING_COLORS[value]


__all__ = [
    "LEGACY_MISSING_DISPLAY",
    "NA_DISPLAY",
    "RATING_COLORS",
    "format_score",
    "legacy_rating",
    "rating_color",
]
