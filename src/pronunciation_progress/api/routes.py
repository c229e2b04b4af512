"""REST API routes for scoring and progression."""

import functools
import random

import structlog
from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from pronunciation_progress.assessment.scorer import MAX_WORD_LENGTH, Scorer
from pronunciation_progress.config import Settings, get_settings
from pronunciation_progress.errors import InvalidInput, PersistenceFailed
from pronunciation_progress.models.progression import (
    Badge,
    Challenge,
    LeaderboardEntry,
    ScoreHistoryEntry,
    SessionOutcome,
    UserStats,
)
from pronunciation_progress.models.score import PronunciationAssessment
from pronunciation_progress.progression.catalog import BADGES, CHALLENGES
from pronunciation_progress.progression.engine import EngineRegistry, ProgressionEngine
from pronunciation_progress.storage.score_history import append_score_entry, read_score_history
from pronunciation_progress.storage.stats_store import JsonStatsStore

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class ScoreRequest(BaseModel):
    transcript: str = Field(max_length=5000)
    reference_text: str = Field(max_length=5000)

    @field_validator("transcript", "reference_text")
    @classmethod
    def _limit_word_length(cls, value: str) -> str:
        if any(len(word) > MAX_WORD_LENGTH for word in value.split()):
            raise ValueError(f"words must be at most {MAX_WORD_LENGTH} characters")
        return value


class SessionResponse(BaseModel):
    assessment: PronunciationAssessment
    outcome: SessionOutcome
    stats: UserStats


def build_scorer(settings: Settings) -> Scorer:
    rng = random.Random(settings.random_seed) if settings.randomize_scores else None
    return Scorer(
        match_threshold=settings.match_threshold,
        fluency_factor=settings.fluency_factor,
        prosody_score=settings.prosody_score,
        rng=rng,
    )


@functools.lru_cache
def get_scorer() -> Scorer:
    return build_scorer(get_settings())


@functools.lru_cache
def get_registry() -> EngineRegistry:
    settings = get_settings()
    return EngineRegistry(JsonStatsStore(settings.stats_dir), max_engines=settings.max_engines)


def get_engine(user_id: str) -> ProgressionEngine:
    try:
        return get_registry().get(user_id)
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceFailed:
        raise HTTPException(status_code=503, detail="User stats unavailable")


@router.post("/score")
def score_attempt(request: ScoreRequest) -> PronunciationAssessment:
    """Score a transcript without touching any user state."""
    try:
        return get_scorer().assess(request.transcript, request.reference_text)
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/users/{user_id}/sessions", response_model=None)
def record_session(user_id: str, request: ScoreRequest) -> SessionResponse | JSONResponse:
    """Score an attempt and apply it to the user's progression."""
    engine = get_engine(user_id)
    try:
        assessment = get_scorer().assess(request.transcript, request.reference_text)
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        outcome = engine.record_session(assessment.score)
    except PersistenceFailed as e:
        return JSONResponse(
            status_code=503,
            content={
                "detail": "Session recorded but not saved; retry later",
                "outcome": e.outcome.model_dump(mode="json") if e.outcome else None,
            },
        )

    settings = get_settings()
    try:
        append_score_entry(
            settings.history_dir,
            user_id,
            assessment.score,
            reference_text=request.reference_text,
            limit=settings.history_limit,
        )
    except (OSError, ValueError) as e:
        logger.warning("score_history_append_failed", user_id=user_id, error=str(e))

    return SessionResponse(assessment=assessment, outcome=outcome, stats=engine.get_stats())


@router.get("/users/{user_id}/stats")
def get_stats(user_id: str) -> UserStats:
    return get_engine(user_id).get_stats()


@router.get("/users/{user_id}/badges")
def get_user_badges(user_id: str) -> list[Badge]:
    return get_engine(user_id).get_unlocked_badges()


@router.get("/users/{user_id}/history")
def get_history(user_id: str) -> list[ScoreHistoryEntry]:
    try:
        return read_score_history(get_settings().history_dir, user_id)
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (OSError, ValueError) as e:
        logger.error("score_history_read_failed", user_id=user_id, error=str(e))
        raise HTTPException(status_code=503, detail="Score history unavailable")


@router.get("/users/{user_id}/leaderboard")
def get_leaderboard(user_id: str) -> list[LeaderboardEntry]:
    engine = get_engine(user_id)
    return engine.get_leaderboard_snapshot(limit=get_settings().leaderboard_size)


@router.get("/badges")
async def list_badges() -> list[Badge]:
    return list(BADGES)


@router.get("/challenges")
async def list_challenges() -> list[Challenge]:
    return list(CHALLENGES)


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
