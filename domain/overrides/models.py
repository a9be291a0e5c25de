"""Domain models for expert score overrides and their audit trail."""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from domain.scoring.formulas import CompositeScore, Rating
from domain.scoring.normalizers import SubScore

MAX_POI_ENTRIES = 5

ProjectId = Union[int, str]

_PROJECT_ID_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]{0,127}")


class ScoreState(str, Enum):
    UNEDITED = "unedited"
    EDITED = "edited"


# ============================================================================
# ERRORS
# ============================================================================


class OverrideError(Exception):
    """Base class for failures of the override save path."""


class OverrideValidationError(OverrideError):
    """The caller broke an explicit contract; nothing was written."""


class OverrideStorageError(OverrideError):
    """The store failed; the save did not partially apply."""


# ============================================================================
# RECORDS
# ============================================================================


@dataclass(frozen=True)
class Editor:
    user_id: Optional[str]
    email: str = "anonymous"


@dataclass(frozen=True)
class PoiEntry:
    """A point-of-interconnection attached to a project."""

    name: str
    voltage_kv: Optional[float] = None
    capacity_mw: Optional[float] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScoreRecord:
    project_id: str
    inputs: Dict[str, Any]
    co_locate_repower: Optional[str]
    components: Dict[str, SubScore]
    thermal: CompositeScore
    redevelopment: CompositeScore
    overall: CompositeScore
    rating: Rating
    edited_by: Editor
    edited_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "inputs": dict(self.inputs),
            "co_locate_repower": self.co_locate_repower,
            "components": dict(self.components),
            "thermal_score": self.thermal,
            "redevelopment_score": self.redevelopment,
            "overall_score": self.overall,
            "overall_rating": self.rating.value,
            "edited_by_user_id": self.edited_by.user_id,
            "edited_by_email": self.edited_by.email,
            "edited_at": self.edited_at.isoformat(),
        }


@dataclass(frozen=True)
class ScoreHistoryEntry:
    sequence: int
    record: ScoreRecord
    change_summary: str = ""
    poi_entries: Tuple[PoiEntry, ...] = field(default_factory=tuple)

    @property
    def project_id(self) -> str:
        return self.record.project_id

    def to_dict(self) -> Dict[str, Any]:
        payload = self.record.to_dict()
        payload["sequence"] = self.sequence
        payload["change_summary"] = self.change_summary
        payload["poi_entries"] = [entry.to_dict() for entry in self.poi_entries]
        return payload


# ============================================================================
# VALIDATION
# ============================================================================


def normalize_project_id(project_id: Any) -> str:
    """Return the canonical string form of a project id or raise a validation error."""

    if isinstance(project_id, bool):
        raise OverrideValidationError(f"Malformed project id: {project_id!r}")
    if isinstance(project_id, int):
        if project_id <= 0:
            raise OverrideValidationError(f"Malformed project id: {project_id!r}")
        return str(project_id)
    if isinstance(project_id, str) and _PROJECT_ID_PATTERN.fullmatch(project_id):
        return project_id
    raise OverrideValidationError(f"Malformed project id: {project_id!r}")


def check_poi_entries(entries: Sequence[PoiEntry]) -> Tuple[PoiEntry, ...]:
    if len(entries) > MAX_POI_ENTRIES:
        raise OverrideValidationError(
            f"At most {MAX_POI_ENTRIES} points of interconnection are allowed, got {len(entries)}"
        )
    for entry in entries:
        if not isinstance(entry, PoiEntry):
            raise OverrideValidationError(f"Not a point of interconnection: {entry!r}")
        if not entry.name or not entry.name.strip():
            raise OverrideValidationError("Point of interconnection name is required")
    return tuple(entries)


__all__ = [
    "Editor",
    "MAX_POI_ENTRIES",
    "OverrideError",
    "OverrideStorageError",
    "OverrideValidationError",
    "PoiEntry",
    "ProjectId",
    "ScoreHistoryEntry",
    "ScoreRecord",
    "ScoreState",
    "check_poi_entries",
    "normalize_project_id",
]
