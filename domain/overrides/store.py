"""Persistence for score overrides.

A store owns three things per project: the current ``ScoreRecord``, the
append-only history, and the bounded list of points of interconnection.
``commit_override`` writes all of them together or not at all.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    TypeVar,
)

from core.clients.supabase import SupabaseClient, SupabaseError
from domain.scoring.formulas import Rating
from .models import (
    Editor,
    OverrideStorageError,
    PoiEntry,
    ScoreHistoryEntry,
    ScoreRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScoreStore(Protocol):
    async def get_record(self, project_id: str) -> Optional[ScoreRecord]:
        ...

    def iter_history(self, project_id: str) -> AsyncIterator[ScoreHistoryEntry]:
        ...

    async def list_poi_entries(self, project_id: str) -> List[PoiEntry]:
        ...

    async def commit_override(
        self,
        record: ScoreRecord,
        change_summary: str,
        poi_entries: Optional[Sequence[PoiEntry]] = None,
    ) -> ScoreHistoryEntry:
        ...

    async def replace_poi_entries(
        self, project_id: str, entries: Sequence[PoiEntry]
    ) -> List[PoiEntry]:
        ...


# ============================================================================
# IN-MEMORY STORE
# ============================================================================


@dataclass
class _ProjectState:
    record: Optional[ScoreRecord] = None
    history: List[ScoreHistoryEntry] = field(default_factory=list)
    poi_entries: Tuple[PoiEntry, ...] = ()

    def copy(self) -> "_ProjectState":
        return _ProjectState(self.record, list(self.history), self.poi_entries)


class InMemoryScoreStore:
    """Process-local store used for development and tests.

    Writes are applied to a staged copy of the project state, which replaces
    the published state in one assignment once every step has succeeded.
    """

    def __init__(self) -> None:
        self._projects: Dict[str, _ProjectState] = {}
        self._lock = asyncio.Lock()

    # Individual write steps. They only ever touch the staged copy.

    def _write_record(self, staged: _ProjectState, record: ScoreRecord) -> None:
        staged.record = record

    def _append_history(self, staged: _ProjectState, entry: ScoreHistoryEntry) -> None:
        staged.history.append(entry)

    def _replace_poi(self, staged: _ProjectState, entries: Sequence[PoiEntry]) -> None:
        staged.poi_entries = tuple(entries)

    def _staged(self, project_id: str) -> _ProjectState:
        current = self._projects.get(project_id)
        return current.copy() if current else _ProjectState()

    async def get_record(self, project_id: str) -> Optional[ScoreRecord]:
        async with self._lock:
            state = self._projects.get(project_id)
            return state.record if state else None

    async def iter_history(self, project_id: str) -> AsyncIterator[ScoreHistoryEntry]:
        async with self._lock:
            state = self._projects.get(project_id)
            entries = list(state.history) if state else []
        for entry in entries:
            yield entry

    async def list_poi_entries(self, project_id: str) -> List[PoiEntry]:
        async with self._lock:
            state = self._projects.get(project_id)
            return list(state.poi_entries) if state else []

    async def commit_override(
        self,
        record: ScoreRecord,
        change_summary: str,
        poi_entries: Optional[Sequence[PoiEntry]] = None,
    ) -> ScoreHistoryEntry:
        project_id = record.project_id
        async with self._lock:
            staged = self._staged(project_id)
            try:
                self._write_record(staged, record)
                if poi_entries is not None:
                    self._replace_poi(staged, poi_entries)
                entry = ScoreHistoryEntry(
                    sequence=len(staged.history) + 1,
                    record=record,
                    change_summary=change_summary,
                    poi_entries=staged.poi_entries,
                )
                self._append_history(staged, entry)
            except Exception as exc:
                logger.error("Score override commit failed for project %s: %s", project_id, exc)
                raise OverrideStorageError(f"Failed to save scores for project {project_id}") from exc
            self._projects[project_id] = staged
            return entry

    async def replace_poi_entries(
        self, project_id: str, entries: Sequence[PoiEntry]
    ) -> List[PoiEntry]:
        async with self._lock:
            staged = self._staged(project_id)
            try:
                self._replace_poi(staged, entries)
            except Exception as exc:
                logger.error("POI replace failed for project %s: %s", project_id, exc)
                raise OverrideStorageError(
                    f"Failed to replace points of interconnection for project {project_id}"
                ) from exc
            self._projects[project_id] = staged
            return list(staged.poi_entries)


# ============================================================================
# SUPABASE STORE
# ============================================================================


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


_FRACTION_PATTERN = re.compile(r"\.(\d+)")


def parse_timestamp(value: Any) -> datetime:
    """Parse a PostgREST timestamp.

    PostgREST trims trailing zeros from fractional seconds and may use a
    ``Z`` suffix; both are normalised before ``fromisoformat``.
    """

    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_PATTERN.sub(
        lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1
    )
    return datetime.fromisoformat(text)


def record_to_row(record: ScoreRecord) -> Dict[str, Any]:
    return record.to_dict()


def row_to_record(row: Dict[str, Any]) -> ScoreRecord:
    return ScoreRecord(
        project_id=str(row["project_id"]),
        inputs=dict(row.get("inputs") or {}),
        co_locate_repower=row.get("co_locate_repower"),
        components=dict(row.get("components") or {}),
        thermal=_optional_float(row.get("thermal_score")),
        redevelopment=_optional_float(row.get("redevelopment_score")),
        overall=_optional_float(row.get("overall_score")),
        rating=Rating(row.get("overall_rating") or Rating.UNRATED.value),
        edited_by=Editor(
            user_id=row.get("edited_by_user_id"),
            email=row.get("edited_by_email") or "anonymous",
        ),
        edited_at=parse_timestamp(row["edited_at"]),
    )


def row_to_poi_entry(row: Dict[str, Any]) -> PoiEntry:
    return PoiEntry(
        name=str(row["name"]),
        voltage_kv=_optional_float(row.get("voltage_kv")),
        capacity_mw=_optional_float(row.get("capacity_mw")),
        notes=row.get("notes"),
    )


def row_to_history_entry(row: Dict[str, Any]) -> ScoreHistoryEntry:
    return ScoreHistoryEntry(
        sequence=int(row["sequence"]),
        record=row_to_record(row),
        change_summary=row.get("change_summary") or "",
        poi_entries=tuple(row_to_poi_entry(item) for item in row.get("poi_entries") or []),
    )


def _map_rows(mapper: Callable[[Dict[str, Any]], T], rows: Any, project_id: str) -> List[T]:
    try:
        return [mapper(row) for row in rows or []]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.error("Malformed Supabase row for project %s: %s", project_id, exc)
        raise OverrideStorageError(f"Malformed stored data for project {project_id}") from exc


def _single_row(payload: Any) -> Dict[str, Any]:
    if isinstance(payload, list):
        if not payload:
            raise OverrideStorageError("Supabase returned no row")
        return payload[0]
    if isinstance(payload, dict):
        return payload
    raise OverrideStorageError(f"Unexpected Supabase payload: {type(payload).__name__}")


class SupabaseScoreStore:
    """Store backed by Supabase tables ``project_scores``, ``project_score_history``
    and ``project_poi_entries``.

    Writes go through the ``save_score_override`` and ``replace_poi_entries``
    Postgres functions (see ``sql/score_overrides.sql``); each runs as one
    transaction on the database side.
    """

    def __init__(self, client: Optional[SupabaseClient] = None, *, page_size: int = 500) -> None:
        self._client = client or SupabaseClient()
        self._page_size = page_size

    async def get_record(self, project_id: str) -> Optional[ScoreRecord]:
        try:
            rows = await self._client.fetch(
                "project_scores",
                params={"select": "*", "project_id": f"eq.{project_id}", "limit": 1},
            )
        except SupabaseError as exc:
            raise OverrideStorageError(f"Failed to load scores for project {project_id}") from exc
        if not rows:
            return None
        return _map_rows(row_to_record, rows[:1], project_id)[0]

    async def iter_history(self, project_id: str) -> AsyncIterator[ScoreHistoryEntry]:
        offset = 0
        while True:
            try:
                chunk = await self._client.fetch(
                    "project_score_history",
                    params={
                        "select": "*",
                        "project_id": f"eq.{project_id}",
                        "order": "sequence.asc",
                        "offset": offset,
                        "limit": self._page_size,
                    },
                )
            except SupabaseError as exc:
                raise OverrideStorageError(
                    f"Failed to load score history for project {project_id}"
                ) from exc

            for entry in _map_rows(row_to_history_entry, chunk, project_id):
                yield entry

            if not chunk or len(chunk) < self._page_size:
                break
            offset += self._page_size

    async def list_poi_entries(self, project_id: str) -> List[PoiEntry]:
        try:
            rows = await self._client.fetch(
                "project_poi_entries",
                params={"select": "*", "project_id": f"eq.{project_id}", "order": "position.asc"},
            )
        except SupabaseError as exc:
            raise OverrideStorageError(
                f"Failed to load points of interconnection for project {project_id}"
            ) from exc
        return _map_rows(row_to_poi_entry, rows, project_id)

    async def commit_override(
        self,
        record: ScoreRecord,
        change_summary: str,
        poi_entries: Optional[Sequence[PoiEntry]] = None,
    ) -> ScoreHistoryEntry:
        payload = {
            "p_project_id": record.project_id,
            "p_record": record_to_row(record),
            "p_change_summary": change_summary,
            "p_poi_entries": (
                None if poi_entries is None else [entry.to_dict() for entry in poi_entries]
            ),
        }
        try:
            result = await self._client.rpc("save_score_override", payload)
        except SupabaseError as exc:
            logger.error("save_score_override failed for project %s: %s", record.project_id, exc)
            raise OverrideStorageError(
                f"Failed to save scores for project {record.project_id}"
            ) from exc
        return _map_rows(row_to_history_entry, [_single_row(result)], record.project_id)[0]

    async def replace_poi_entries(
        self, project_id: str, entries: Sequence[PoiEntry]
    ) -> List[PoiEntry]:
        payload = {
            "p_project_id": project_id,
            "p_entries": [entry.to_dict() for entry in entries],
        }
        try:
            rows = await self._client.rpc("replace_poi_entries", payload)
        except SupabaseError as exc:
            logger.error("replace_poi_entries failed for project %s: %s", project_id, exc)
            raise OverrideStorageError(
                f"Failed to replace points of interconnection for project {project_id}"
            ) from exc
        return _map_rows(row_to_poi_entry, rows, project_id)


__all__ = [
    "InMemoryScoreStore",
    "ScoreStore",
    "SupabaseScoreStore",
    "parse_timestamp",
    "record_to_row",
    "row_to_history_entry",
    "row_to_poi_entry",
    "row_to_record",
]
