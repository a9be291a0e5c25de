"""FastAPI application factory."""
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apps.api.routes.scores import router as scores_router
from core.config import Settings, get_settings
from domain.overrides.services import ScoreOverrideService
from domain.overrides.store import InMemoryScoreStore, ScoreStore, SupabaseScoreStore
from domain.scoring.formulas import DEFAULT_SCORING_CONFIG, validate_config


def build_score_store(settings: Settings) -> ScoreStore:
    if settings.score_store == "supabase":
        return SupabaseScoreStore()
    return InMemoryScoreStore()


def create_app(
    store: Optional[ScoreStore] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or get_settings()
    validate_config(DEFAULT_SCORING_CONFIG)

    app = FastAPI(title="Pipeline Scoring API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.score_service = ScoreOverrideService(store or build_score_store(settings))
    app.include_router(scores_router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "score_store": settings.score_store}

    return app


__all__ = ["build_score_store", "create_app"]
