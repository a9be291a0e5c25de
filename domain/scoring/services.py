"""Score computation entry points shared by the display and save paths."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .fields import resolve_fields
from .formulas import (
    DEFAULT_SCORING_CONFIG,
    CompositeScore,
    Rating,
    ScoringConfig,
    composite_scores,
    round_score,
)
from .missingness import is_missing
from .normalizers import SubScore, normalize_fields


@dataclass(frozen=True)
class ScoreResult:
    thermal: CompositeScore
    redevelopment: CompositeScore
    overall: CompositeScore
    rating: Rating
    components: Dict[str, SubScore] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "thermal_score": self.thermal,
            "redevelopment_score": self.redevelopment,
            "overall_score": self.overall,
            "overall_rating": self.rating.value,
            "components": dict(self.components),
        }


def compute_scores(
    raw_fields: Mapping[str, Any],
    co_locate: Any = None,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> ScoreResult:
    """Normalize raw project fields and evaluate every composite score.

    ``raw_fields`` may use canonical keys or legacy spreadsheet labels.
    ``co_locate`` takes precedence over the ``co_locate_repower`` field when
    it is not missing. Scores are rounded to ``config.precision``; the rating
    is taken from the unrounded overall score.
    """

    fields = resolve_fields(raw_fields)
    if not is_missing(co_locate):
        fields["co_locate_repower"] = co_locate

    components = normalize_fields(fields)
    scores = composite_scores(components, fields.get("co_locate_repower"), config)
    precision = config.precision
    return ScoreResult(
        thermal=round_score(scores["thermal"], precision),
        redevelopment=round_score(scores["redevelopment"], precision),
        overall=round_score(scores["overall"], precision),
        rating=scores["rating"],
        components=components,
    )


__all__ = ["ScoreResult", "compute_scores"]
