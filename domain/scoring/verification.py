"""Check computed scores against values exported from the scoring spreadsheet."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

import pandas as pd

from .formulas import DEFAULT_SCORING_CONFIG, ScoringConfig
from .missingness import parse_number
from .services import ScoreResult, compute_scores

DEFAULT_TOLERANCE = 0.01

EXPECTED_COLUMNS: Dict[str, str] = {
    "thermal": "Thermal Operating Score",
    "redevelopment": "Redevelopment Score",
    "overall": "Overall Project Score",
}


@dataclass(frozen=True)
class VerificationResult:
    calculated: ScoreResult
    expected: Dict[str, Optional[float]]
    matches: Dict[str, bool]

    @property
    def all_match(self) -> bool:
        return all(self.matches.values())


def _scores_match(calculated: Optional[float], expected: Optional[float], tolerance: float) -> bool:
    if calculated is None or expected is None:
        return calculated is None and expected is None
    return abs(calculated - expected) < tolerance


def verify_calculation(
    raw_fields: Mapping[str, Any],
    expected: Mapping[str, Any],
    *,
    tolerance: float = DEFAULT_TOLERANCE,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> VerificationResult:
    """Compare thermal/redevelopment/overall against expected spreadsheet values.

    ``expected`` is keyed ``thermal``/``redevelopment``/``overall``. An
    expected ``"#N/A"`` (or blank) matches a computed N/A and nothing else.
    """

    calculated = compute_scores(raw_fields, config=config)
    expected_values = {name: parse_number(expected.get(name)) for name in EXPECTED_COLUMNS}
    matches = {
        name: _scores_match(getattr(calculated, name), expected_values[name], tolerance)
        for name in EXPECTED_COLUMNS
    }
    matches["all"] = all(matches.values())
    return VerificationResult(calculated=calculated, expected=expected_values, matches=matches)


def _row_fields(row: pd.Series) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, value in row.items():
        fields[str(key)] = None if pd.isna(value) else value
    return fields


def verify_frame(
    frame: pd.DataFrame,
    *,
    expected_columns: Optional[Mapping[str, str]] = None,
    tolerance: float = DEFAULT_TOLERANCE,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> pd.DataFrame:
    """Verify every row of ``frame`` and return a frame of calculated values and flags.

    Columns of ``frame`` are field labels (canonical or legacy) plus the
    expected score columns named by ``expected_columns``.
    """

    columns = dict(expected_columns or EXPECTED_COLUMNS)
    records = []
    for index, row in frame.iterrows():
        fields = _row_fields(row)
        expected = {name: fields.get(column) for name, column in columns.items()}
        result = verify_calculation(fields, expected, tolerance=tolerance, config=config)
        records.append(
            {
                "index": index,
                "thermal_calculated": result.calculated.thermal,
                "redevelopment_calculated": result.calculated.redevelopment,
                "overall_calculated": result.calculated.overall,
                "rating": result.calculated.rating.value,
                "thermal_match": result.matches["thermal"],
                "redevelopment_match": result.matches["redevelopment"],
                "overall_match": result.matches["overall"],
                "all_match": result.matches["all"],
            }
        )

    result_columns: Sequence[str] = (
        "thermal_calculated",
        "redevelopment_calculated",
        "overall_calculated",
        "rating",
        "thermal_match",
        "redevelopment_match",
        "overall_match",
        "all_match",
    )
    if not records:
        return pd.DataFrame(columns=list(result_columns))
    return pd.DataFrame.from_records(records, index="index").rename_axis(frame.index.name)


__all__ = [
    "DEFAULT_TOLERANCE",
    "EXPECTED_COLUMNS",
    "VerificationResult",
    "verify_calculation",
    "verify_frame",
]
