"""Score computation and override API routes."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field

from apps.api.auth import editor_from_authorization
from domain.overrides.models import (
    OverrideStorageError,
    OverrideValidationError,
    PoiEntry,
    ScoreHistoryEntry,
    ScoreRecord,
)
from domain.overrides.services import ScoreOverrideService
from domain.scoring.services import ScoreResult

router = APIRouter(prefix="/api", tags=["scores"])


# ============================================================================
# REQUEST / RESPONSE MODELS
# ============================================================================


class PoiEntryModel(BaseModel):
    name: str
    voltage_kv: Optional[float] = None
    capacity_mw: Optional[float] = None
    notes: Optional[str] = None

    def to_domain(self) -> PoiEntry:
        return PoiEntry(
            name=self.name,
            voltage_kv=self.voltage_kv,
            capacity_mw=self.capacity_mw,
            notes=self.notes,
        )


class ComputeScoresRequest(BaseModel):
    fields: Dict[str, Any] = Field(default_factory=dict)
    co_locate_repower: Optional[str] = None


class SaveOverrideRequest(BaseModel):
    fields: Dict[str, Any] = Field(default_factory=dict)
    co_locate_repower: Optional[str] = None
    change_summary: str = ""
    poi_entries: Optional[List[PoiEntryModel]] = None


class ReplacePoiRequest(BaseModel):
    entries: List[PoiEntryModel] = Field(default_factory=list)


class ScoreResultResponse(BaseModel):
    thermal_score: Optional[float]
    redevelopment_score: Optional[float]
    overall_score: Optional[float]
    overall_rating: str
    components: Dict[str, Optional[int]]

    @classmethod
    def from_result(cls, result: ScoreResult) -> "ScoreResultResponse":
        return cls(**result.to_dict())


class ScoreRecordResponse(ScoreResultResponse):
    project_id: str
    inputs: Dict[str, Any]
    co_locate_repower: Optional[str]
    edited_by_user_id: Optional[str]
    edited_by_email: str
    edited_at: datetime

    @classmethod
    def from_record(cls, record: ScoreRecord) -> "ScoreRecordResponse":
        return cls(**record.to_dict())


class ScoreHistoryEntryResponse(ScoreRecordResponse):
    sequence: int
    change_summary: str
    poi_entries: List[PoiEntryModel]

    @classmethod
    def from_entry(cls, entry: ScoreHistoryEntry) -> "ScoreHistoryEntryResponse":
        return cls(**entry.to_dict())


# ============================================================================
# ROUTES
# ============================================================================


def get_score_service(request: Request) -> ScoreOverrideService:
    return request.app.state.score_service


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except OverrideValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except OverrideStorageError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.post("/scores/compute", response_model=ScoreResultResponse)
async def compute_project_scores(
    request: ComputeScoresRequest,
    service: ScoreOverrideService = Depends(get_score_service),
) -> ScoreResultResponse:
    return ScoreResultResponse.from_result(
        service.compute_scores(request.fields, request.co_locate_repower)
    )


@router.get("/projects/{project_id}/scores", response_model=ScoreRecordResponse)
async def get_project_scores(
    project_id: str,
    service: ScoreOverrideService = Depends(get_score_service),
) -> ScoreRecordResponse:
    with _translate_errors():
        record = await service.get_current_record(project_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No score override for project {project_id}")
    return ScoreRecordResponse.from_record(record)


@router.get(
    "/projects/{project_id}/scores/history",
    response_model=List[ScoreHistoryEntryResponse],
)
async def get_project_score_history(
    project_id: str,
    service: ScoreOverrideService = Depends(get_score_service),
) -> List[ScoreHistoryEntryResponse]:
    with _translate_errors():
        return [
            ScoreHistoryEntryResponse.from_entry(entry)
            async for entry in service.get_history(project_id)
        ]


@router.put("/projects/{project_id}/scores", response_model=ScoreRecordResponse)
async def save_project_scores(
    project_id: str,
    request: SaveOverrideRequest,
    authorization: Optional[str] = Header(default=None),
    service: ScoreOverrideService = Depends(get_score_service),
) -> ScoreRecordResponse:
    poi_entries = (
        None if request.poi_entries is None else [entry.to_domain() for entry in request.poi_entries]
    )
    with _translate_errors():
        record = await service.save_override(
            project_id,
            request.fields,
            request.co_locate_repower,
            editor_from_authorization(authorization),
            request.change_summary,
            poi_entries,
        )
    return ScoreRecordResponse.from_record(record)


@router.get("/projects/{project_id}/poi", response_model=List[PoiEntryModel])
async def get_project_poi(
    project_id: str,
    service: ScoreOverrideService = Depends(get_score_service),
) -> List[PoiEntryModel]:
    with _translate_errors():
        entries = await service.list_child_entries(project_id)
    return [PoiEntryModel(**entry.to_dict()) for entry in entries]


@router.put("/projects/{project_id}/poi", response_model=List[PoiEntryModel])
async def replace_project_poi(
    project_id: str,
    request: ReplacePoiRequest,
    service: ScoreOverrideService = Depends(get_score_service),
) -> List[PoiEntryModel]:
    with _translate_errors():
        entries = await service.replace_child_entries(
            project_id, [entry.to_domain() for entry in request.entries]
        )
    return [PoiEntryModel(**entry.to_dict()) for entry in entries]
