"""Canonical field keys and the legacy spreadsheet labels accepted for them."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

from .missingness import is_missing

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "legacy_cod": ("plant_cod", "Legacy COD", "Plant  COD", "Plant COD", "COD"),
    "capacity_factor": ("2024 Capacity Factor", "Capacity Factor", "CF"),
    # "markets"/"Markets" may carry an ISO code or an already-scored 0..3 value.
    "iso": ("ISO", "Mkt", "markets", "Markets"),
    "transactability": (
        "transactability_scores",
        "Transactability",
        "Transactibility",
        "Transactability Scores",
        "Process (P) or Bilateral (B)",
    ),
    "thermal_optimization": ("Thermal Optimization",),
    "environmental_score": ("Environmental Score", "Envionmental Score"),
    "market_score": ("Market Score",),
    "infra": ("Infra",),
    "ix": ("IX",),
    "co_locate_repower": ("Co-Locate/Repower",),
}

CANONICAL_FIELDS: Tuple[str, ...] = tuple(FIELD_ALIASES)


def resolve_field(raw_fields: Mapping[str, Any], canonical_key: str) -> Any:
    """Look up one canonical field, falling back to its legacy labels in order.

    The first candidate holding a usable value wins. When every candidate is
    missing, the first one that exists is returned as-is so a sentinel such as
    ``"#N/A"`` is kept rather than turned into ``None``.
    """

    candidates = (canonical_key,) + FIELD_ALIASES.get(canonical_key, ())
    first_seen: Any = None
    seen = False
    for key in candidates:
        if key not in raw_fields:
            continue
        value = raw_fields[key]
        if not is_missing(value):
            return value
        if not seen:
            first_seen, seen = value, True
    return first_seen


def resolve_fields(raw_fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Map a raw field mapping (canonical keys or legacy labels) onto canonical keys."""

    return {key: resolve_field(raw_fields, key) for key in CANONICAL_FIELDS}


__all__ = ["CANONICAL_FIELDS", "FIELD_ALIASES", "resolve_field", "resolve_fields"]
