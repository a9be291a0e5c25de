"""Service layer for saving expert score overrides.

Scores are never taken from the caller. Every save re-resolves and
re-normalizes the raw component inputs and recomputes thermal, redevelopment
and overall scores here, so stored scores are always a function of stored
inputs.
"""
from __future__ import annotations

import logging
import math
import numbers
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, AsyncIterator, Callable, List, Mapping, Optional, Sequence, Tuple

from domain.scoring.fields import resolve_fields
from domain.scoring.formulas import DEFAULT_SCORING_CONFIG, ScoringConfig
from domain.scoring.missingness import is_missing
from domain.scoring.services import ScoreResult, compute_scores
from .models import (
    Editor,
    PoiEntry,
    ProjectId,
    ScoreHistoryEntry,
    ScoreRecord,
    ScoreState,
    check_poi_entries,
    normalize_project_id,
)
from .store import ScoreStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, (numbers.Real, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _co_locate_value(value: Any) -> Optional[str]:
    if is_missing(value):
        return None
    return str(value).strip()


class ScoreOverrideService:
    """Current-value plus append-only-history lifecycle for project scores."""

    def __init__(
        self,
        store: ScoreStore,
        *,
        config: ScoringConfig = DEFAULT_SCORING_CONFIG,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def compute_scores(self, raw_fields: Mapping[str, Any], co_locate: Any = None) -> ScoreResult:
        return compute_scores(raw_fields, co_locate, self._config)

    async def save_override(
        self,
        project_id: ProjectId,
        raw_fields: Mapping[str, Any],
        co_locate: Any,
        editor: Editor,
        change_summary: str = "",
        poi_entries: Optional[Sequence[PoiEntry]] = None,
    ) -> ScoreRecord:
        """Recompute scores from ``raw_fields`` and persist them with a history entry.

        ``poi_entries`` replaces the project's points of interconnection in the
        same commit when given; ``None`` leaves them untouched.

        Raises:
            OverrideValidationError: malformed project id or too many POI entries.
            OverrideStorageError: the store failed; nothing was applied.
        """

        key = normalize_project_id(project_id)
        checked_poi = None if poi_entries is None else check_poi_entries(poi_entries)

        inputs = resolve_fields(raw_fields)
        co_locate_value = _co_locate_value(co_locate)
        if co_locate_value is None:
            co_locate_value = _co_locate_value(inputs.get("co_locate_repower"))
        inputs["co_locate_repower"] = co_locate_value

        result = compute_scores(inputs, co_locate_value, self._config)
        record = ScoreRecord(
            project_id=key,
            inputs={name: _json_safe(value) for name, value in inputs.items()},
            co_locate_repower=co_locate_value,
            components=dict(result.components),
            thermal=result.thermal,
            redevelopment=result.redevelopment,
            overall=result.overall,
            rating=result.rating,
            edited_by=editor,
            edited_at=self._clock(),
        )

        entry = await self._store.commit_override(record, change_summary or "", checked_poi)
        logger.info(
            "Saved score override for project %s (sequence=%s, editor=%s, overall=%s)",
            key,
            entry.sequence,
            editor.email,
            record.overall,
        )
        return record

    async def get_current_record(self, project_id: ProjectId) -> Optional[ScoreRecord]:
        return await self._store.get_record(normalize_project_id(project_id))

    def get_history(self, project_id: ProjectId) -> AsyncIterator[ScoreHistoryEntry]:
        """Lazily iterate the project's history, oldest first.

        Each call reads the store afresh; the returned iterator is single use.
        """

        return self._store.iter_history(normalize_project_id(project_id))

    async def list_child_entries(self, project_id: ProjectId) -> List[PoiEntry]:
        return await self._store.list_poi_entries(normalize_project_id(project_id))

    async def replace_child_entries(
        self, project_id: ProjectId, entries: Sequence[PoiEntry]
    ) -> List[PoiEntry]:
        key = normalize_project_id(project_id)
        checked = check_poi_entries(entries)
        stored = await self._store.replace_poi_entries(key, checked)
        logger.info("Replaced points of interconnection for project %s (%d entries)", key, len(stored))
        return stored

    async def get_effective_scores(
        self, project_id: ProjectId, pipeline_fields: Mapping[str, Any]
    ) -> Tuple[ScoreState, ScoreResult]:
        """Stored override scores when the project was edited, else live pipeline scores."""

        record = await self.get_current_record(project_id)
        if record is None:
            return ScoreState.UNEDITED, self.compute_scores(pipeline_fields)
        return ScoreState.EDITED, ScoreResult(
            thermal=record.thermal,
            redevelopment=record.redevelopment,
            overall=record.overall,
            rating=record.rating,
            components=dict(record.components),
        )


__all__ = ["Clock", "ScoreOverrideService", "utc_now"]
