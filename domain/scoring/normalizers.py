"""Sub-score normalizers.

Each normalizer maps one raw project field onto a small bounded integer
score. A missing input yields ``None`` (N/A) unless the normalizer's
``on_missing`` policy says otherwise; thermal optimization is the only factor
that defaults to zero.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple

from .missingness import Missingness, classify, parse_number

SubScore = Optional[int]


class MissingPolicy(str, Enum):
    MISSING = "missing"
    ZERO_DEFAULT = "zero_default"


# ============================================================================
# MARKET TIERS
# ============================================================================

PREMIUM_MARKETS: FrozenSet[str] = frozenset({"PJM", "NYISO", "ISO-NE"})
GOOD_MARKETS: FrozenSet[str] = frozenset({"MISO North", "SERC"})
NEUTRAL_MARKETS: FrozenSet[str] = frozenset({"SPP", "MISO South"})
POOR_MARKETS: FrozenSet[str] = frozenset({"ERCOT", "WECC", "CAISO"})

MARKET_TIERS: Tuple[Tuple[FrozenSet[str], int], ...] = (
    (PREMIUM_MARKETS, 3),
    (GOOD_MARKETS, 2),
    (NEUTRAL_MARKETS, 1),
    (POOR_MARKETS, 0),
)
UNKNOWN_MARKET_SCORE = 1

_YEAR_PATTERN = re.compile(r"(?<!\d)(1[89]\d{2}|20\d{2})(?!\d)")


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _bucket_continuous(score: float) -> int:
    if score >= 2.5:
        return 3
    if score >= 1.5:
        return 2
    if score >= 0.5:
        return 1
    return 0


# ============================================================================
# BUCKETING RULES (present values only)
# ============================================================================


def _extract_year(value: Any) -> Optional[int]:
    if isinstance(value, date):
        return value.year
    number = parse_number(value)
    if number is not None:
        return math.trunc(number)
    if isinstance(value, str):
        match = _YEAR_PATTERN.search(value)
        if match:
            return int(match.group(1))
    return None


def score_cod(value: Any) -> SubScore:
    year = _extract_year(value)
    if year is None:
        return None
    if year < 2000:
        return 3
    if year <= 2005:
        return 2
    return 1


def score_capacity_factor(value: Any) -> SubScore:
    factor = parse_number(value)
    if factor is None:
        return None
    if factor < 0.10:
        return 3
    if factor <= 0.25:
        return 2
    return 1


def score_market(value: Any) -> SubScore:
    """Score an ISO/RTO code, or pass through a market score already on the 0..3 scale.

    Codes are matched after trimming but case-sensitively, as the spreadsheet
    spells them ("PJM", "MISO North"); any other spelling is an unknown market.
    """

    number = parse_number(value)
    if number is not None:
        return _clamp(math.trunc(number), 0, 3)
    code = str(value).strip()
    for members, score in MARKET_TIERS:
        if code in members:
            return score
    return UNKNOWN_MARKET_SCORE


def score_transactability(value: Any) -> SubScore:
    number = parse_number(value)
    if number is not None:
        return _clamp(_round_half_up(number), 0, 3)
    if not isinstance(value, str):
        return None

    text = value.strip().lower()
    if "bilateral" in text and "developed" in text:
        return 3
    # "bilateral" alone is enough; "process" needs "less than 10" alongside it.
    if "bilateral" in text or ("process" in text and "less than 10" in text):
        return 2
    if "competitive" in text and "more than 10" in text:
        return 1
    return 2


def score_thermal_optimization(value: Any) -> SubScore:
    if isinstance(value, str):
        text = value.lower()
        if "readily apparent" in text:
            return 2
        if "no identifiable" in text:
            return 1
    number = parse_number(value)
    if number is not None:
        explicit = math.trunc(number)
        if 0 <= explicit <= 2:
            return explicit
    return 0


def score_integer_rating(value: Any) -> SubScore:
    number = parse_number(value)
    if number is None:
        return None
    return _clamp(math.trunc(number), 0, 3)


def score_continuous_rating(value: Any) -> SubScore:
    number = parse_number(value)
    if number is None:
        return None
    return _bucket_continuous(number)


# ============================================================================
# NORMALIZER REGISTRY
# ============================================================================


@dataclass(frozen=True)
class Normalizer:
    """A named bucketing rule plus what to do when the input is missing."""

    factor: str
    rule: Callable[[Any], SubScore]
    on_missing: MissingPolicy = MissingPolicy.MISSING

    def _fallback(self) -> SubScore:
        return 0 if self.on_missing is MissingPolicy.ZERO_DEFAULT else None

    def __call__(self, value: Any) -> SubScore:
        if classify(value) is Missingness.MISSING:
            return self._fallback()
        score = self.rule(value)
        return self._fallback() if score is None else score


normalize_cod = Normalizer("cod", score_cod)
normalize_capacity_factor = Normalizer("capacity_factor", score_capacity_factor)
normalize_market = Normalizer("markets", score_market)
normalize_transactability = Normalizer("transactability", score_transactability)
normalize_thermal_optimization = Normalizer(
    "thermal_optimization",
    score_thermal_optimization,
    on_missing=MissingPolicy.ZERO_DEFAULT,
)
normalize_environmental = Normalizer("environmental", score_integer_rating)
normalize_redevelopment_market = Normalizer("redevelopment_market", score_integer_rating)
normalize_infrastructure = Normalizer("infra", score_continuous_rating)
normalize_interconnection = Normalizer("ix", score_continuous_rating)

# Canonical field key -> normalizer producing its sub-score.
NORMALIZERS: Dict[str, Normalizer] = {
    "legacy_cod": normalize_cod,
    "capacity_factor": normalize_capacity_factor,
    "iso": normalize_market,
    "transactability": normalize_transactability,
    "thermal_optimization": normalize_thermal_optimization,
    "environmental_score": normalize_environmental,
    "market_score": normalize_redevelopment_market,
    "infra": normalize_infrastructure,
    "ix": normalize_interconnection,
}


def normalize_fields(fields: Dict[str, Any]) -> Dict[str, SubScore]:
    """Normalize canonical fields into sub-scores keyed by factor name."""

    return {
        normalizer.factor: normalizer(fields.get(key))
        for key, normalizer in NORMALIZERS.items()
    }


__all__ = [
    "GOOD_MARKETS",
    "MARKET_TIERS",
    "MissingPolicy",
    "NEUTRAL_MARKETS",
    "NORMALIZERS",
    "Normalizer",
    "POOR_MARKETS",
    "PREMIUM_MARKETS",
    "SubScore",
    "UNKNOWN_MARKET_SCORE",
    "normalize_capacity_factor",
    "normalize_cod",
    "normalize_environmental",
    "normalize_fields",
    "normalize_infrastructure",
    "normalize_interconnection",
    "normalize_market",
    "normalize_redevelopment_market",
    "normalize_thermal_optimization",
    "normalize_transactability",
    "score_capacity_factor",
    "score_cod",
    "score_continuous_rating",
    "score_integer_rating",
    "score_market",
    "score_thermal_optimization",
    "score_transactability",
]
