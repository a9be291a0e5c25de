"""Classification of raw spreadsheet/form values as missing or present.

Spreadsheet exports mark empty cells in several ways (``""``, ``"#N/A"``,
``"N/A"``, ``"#VALUE!"``). All of them mean "cannot be evaluated", which is a
different thing from a legitimate zero. Every later scoring stage relies on
that distinction, so it is decided once, here.
"""
from __future__ import annotations

import math
import numbers
from decimal import Decimal
from enum import Enum
from typing import Any, FrozenSet, Optional, Union

RawFieldValue = Union[None, str, int, float, Decimal]

SENTINEL_TOKENS: FrozenSet[str] = frozenset({"#n/a", "n/a", "#value!"})


class Missingness(str, Enum):
    MISSING = "missing"
    PRESENT = "present"


def _is_number(value: Any) -> bool:
    return isinstance(value, (numbers.Real, Decimal)) and not isinstance(value, bool)


def is_sentinel(text: str) -> bool:
    """Return True for blank strings and spreadsheet error/NA tokens."""

    stripped = text.strip()
    return not stripped or stripped.lower() in SENTINEL_TOKENS


def parse_number(value: Any) -> Optional[float]:
    """Return the finite number carried by ``value`` or ``None``.

    Numbers pass through; strings are trimmed and parsed strictly. NaN and
    infinities are not numbers for scoring purposes.
    """

    if value is None or isinstance(value, bool):
        return None
    if _is_number(value):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        if is_sentinel(value):
            return None
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def classify(value: Any) -> Missingness:
    """Classify a raw field value.

    * ``None`` is missing.
    * Numbers are present when finite, zero included.
    * Strings are missing when blank or a sentinel token (case-insensitive);
      any other string is present. Whether free text is usable is up to the
      normalizer consuming it.
    """

    if value is None:
        return Missingness.MISSING
    if isinstance(value, bool):
        return Missingness.PRESENT
    if _is_number(value):
        return Missingness.PRESENT if math.isfinite(float(value)) else Missingness.MISSING
    if isinstance(value, str):
        return Missingness.MISSING if is_sentinel(value) else Missingness.PRESENT
    return Missingness.PRESENT


def is_missing(value: Any) -> bool:
    return classify(value) is Missingness.MISSING


__all__ = [
    "Missingness",
    "RawFieldValue",
    "SENTINEL_TOKENS",
    "classify",
    "is_missing",
    "is_sentinel",
    "parse_number",
]
