"""Composite score formulas.

Excel reference the formulas are kept in line with:

* Thermal Operating Score:
  ``SUMPRODUCT([COD, Markets, Transactability, ThermalOpt, Environmental],
  [0.20, 0.30, 0.30, 0.05, 0.15])``
* Redevelopment Score:
  ``IF(any of Market/Infra/IX = 0, 0, (Market*0.4 + Infra*0.3 + IX*0.3) * multiplier)``
  where ``multiplier`` is 0.75 for "Repower" and 1 otherwise.
* Overall Project Score: ``Thermal + Redevelopment``.

``None`` means N/A throughout and propagates through every formula. All
functions here are total: they never raise on bad input.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .normalizers import SubScore

logger = logging.getLogger(__name__)

CompositeScore = Optional[float]


class Rating(str, Enum):
    STRONG = "Strong"
    MODERATE = "Moderate"
    WEAK = "Weak"
    UNRATED = "Unrated"


# ============================================================================
# FORMULA CONFIGURATION
# ============================================================================


@dataclass(frozen=True)
class ThermalWeights:
    cod: float = 0.20
    markets: float = 0.30
    transactability: float = 0.30
    thermal_optimization: float = 0.05
    environmental: float = 0.15
    # Reported as a component only; the spreadsheet weights it at zero.
    capacity_factor: float = 0.00

    def total(self) -> float:
        return (
            self.cod
            + self.markets
            + self.transactability
            + self.thermal_optimization
            + self.environmental
            + self.capacity_factor
        )


@dataclass(frozen=True)
class RedevelopmentWeights:
    market: float = 0.40
    infra: float = 0.30
    ix: float = 0.30

    def total(self) -> float:
        return self.market + self.infra + self.ix


@dataclass(frozen=True)
class ScoringConfig:
    """Immutable formula constants. Pass a different instance to compare versions."""

    thermal: ThermalWeights = field(default_factory=ThermalWeights)
    redevelopment: RedevelopmentWeights = field(default_factory=RedevelopmentWeights)
    thermal_optimization_floor: float = 1.0
    repower_multiplier: float = 0.75
    repower_token: str = "repower"
    strong_threshold: float = 4.5
    moderate_threshold: float = 3.0
    precision: int = 2


DEFAULT_SCORING_CONFIG = ScoringConfig()


def validate_config(config: ScoringConfig) -> bool:
    """Warn when a weight group does not sum to 1.0. Returns True when both do."""

    valid = True
    for name, total in (
        ("thermal", config.thermal.total()),
        ("redevelopment", config.redevelopment.total()),
    ):
        if not math.isclose(total, 1.0, rel_tol=1e-6):
            logger.warning("%s weights sum to %s, not 1.0", name, total)
            valid = False
    return valid


# ============================================================================
# COMPOSITE SCORES
# ============================================================================


def _is_present_number(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def repower_multiplier(co_locate: Any, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> float:
    if co_locate is None:
        return 1.0
    if str(co_locate).strip().lower() == config.repower_token:
        return config.repower_multiplier
    return 1.0


def thermal_score(
    cod: SubScore,
    markets: SubScore,
    transactability: SubScore,
    thermal_optimization: SubScore,
    environmental: SubScore,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> CompositeScore:
    inputs = (cod, markets, transactability, thermal_optimization, environmental)
    if not all(_is_present_number(value) for value in inputs):
        return None

    weights = config.thermal
    # Applied on top of the normalizer's own zero default.
    thermal_opt = max(config.thermal_optimization_floor, float(thermal_optimization))
    return (
        float(cod) * weights.cod
        + float(markets) * weights.markets
        + float(transactability) * weights.transactability
        + thermal_opt * weights.thermal_optimization
        + float(environmental) * weights.environmental
    )


def redevelopment_score(
    market: SubScore,
    infra: SubScore,
    ix: SubScore,
    co_locate: Any = None,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> CompositeScore:
    inputs = (market, infra, ix)
    if not all(_is_present_number(value) for value in inputs):
        return None
    if any(float(value) == 0 for value in inputs):
        return 0.0

    weights = config.redevelopment
    weighted = (
        float(market) * weights.market
        + float(infra) * weights.infra
        + float(ix) * weights.ix
    )
    return weighted * repower_multiplier(co_locate, config)


def overall_score(thermal: CompositeScore, redevelopment: CompositeScore) -> CompositeScore:
    if not (_is_present_number(thermal) and _is_present_number(redevelopment)):
        return None
    return float(thermal) + float(redevelopment)


def rating(overall: CompositeScore, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> Rating:
    if not _is_present_number(overall):
        return Rating.UNRATED
    value = float(overall)
    if value >= config.strong_threshold:
        return Rating.STRONG
    if value >= config.moderate_threshold:
        return Rating.MODERATE
    return Rating.WEAK


def round_score(value: CompositeScore, precision: int) -> CompositeScore:
    return None if value is None else round(value, precision)


def composite_scores(
    components: Dict[str, SubScore],
    co_locate: Any = None,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> Dict[str, Any]:
    """Combine normalized components into unrounded thermal/redev/overall + rating."""

    thermal = thermal_score(
        components.get("cod"),
        components.get("markets"),
        components.get("transactability"),
        components.get("thermal_optimization"),
        components.get("environmental"),
        config,
    )
    redevelopment = redevelopment_score(
        components.get("redevelopment_market"),
        components.get("infra"),
        components.get("ix"),
        co_locate,
        config,
    )
    overall = overall_score(thermal, redevelopment)
    return {
        "thermal": thermal,
        "redevelopment": redevelopment,
        "overall": overall,
        "rating": rating(overall, config),
    }


__all__ = [
    "CompositeScore",
    "DEFAULT_SCORING_CONFIG",
    "Rating",
    "RedevelopmentWeights",
    "ScoringConfig",
    "ThermalWeights",
    "composite_scores",
    "overall_score",
    "rating",
    "redevelopment_score",
    "repower_multiplier",
    "round_score",
    "thermal_score",
    "validate_config",
]
