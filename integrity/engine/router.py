"""Integrity HTTP router — goals, progress, scores, history, rank."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from integrity.auth import verify_api_key
from integrity.config import settings
from integrity.db import get_session
from integrity.engine.connector import SqlStorage
from integrity.engine.goals_config import GoalKey, parse_goal_key
from integrity.engine.models import (
    DeductionOut,
    ExperienceSyncOut,
    GoalOut,
    GoalsResponse,
    GoalsUpdate,
    HistoryOut,
    ProgressOut,
    ProgressWriteOut,
    RankOut,
    ScoreCardOut,
    StatsOut,
    ValueIn,
    WeeklyDay,
)
from integrity.engine.ports import InMemoryStorage, JsonFileStorage
from integrity.engine.service import IntegrityService

router = APIRouter(prefix="/integrity", tags=["integrity"])

# Process-wide store for the "memory" backend
_memory_storage = InMemoryStorage()
_file_storages: dict[str, JsonFileStorage] = {}


def _file_storage(path: str) -> JsonFileStorage:
    """One storage per data file, so its write lock covers every request."""
    storage = _file_storages.get(path)
    if storage is None:
        storage = _file_storages[path] = JsonFileStorage(path)
    return storage


def _parse_date(value: str, name: str) -> str:
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid date for '{name}': {value}")


def _parse_goal_key(value: str) -> GoalKey:
    key = parse_goal_key(value)
    if key is None:
        raise HTTPException(status_code=404, detail=f"Unknown goal: {value}")
    return key


async def get_service(session: AsyncSession = Depends(get_session)) -> IntegrityService:
    if settings.storage_backend == "sql":
        storage = SqlStorage(session, settings.profile_id)
    elif settings.storage_backend == "file":
        storage = _file_storage(settings.data_path)
    else:
        storage = _memory_storage
    service = IntegrityService(storage, storage, storage, tz_name=settings.default_tz)
    return await service.load()


# ---------------------------------------------------------------------------
# /integrity/goals
# ---------------------------------------------------------------------------


@router.get("/goals", response_model=GoalsResponse)
async def list_goals(
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> GoalsResponse:
    return GoalsResponse(goals=[GoalOut.from_config(g) for g in service.get_goals()])


@router.get("/goals/active", response_model=list[GoalOut])
async def list_active_goals(
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> list[GoalOut]:
    return [GoalOut.from_config(goal) for _, goal in service.get_active_goals()]


@router.put("/goals", response_model=GoalsResponse)
async def update_goals(
    body: GoalsUpdate,
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> GoalsResponse:
    overrides = {
        key.value: override.model_dump(exclude_none=True)
        for key, override in body.goals.items()
    }
    persisted = await service.update_goals(overrides)
    return GoalsResponse(
        goals=[GoalOut.from_config(g) for g in service.get_goals()],
        persisted=persisted,
    )


# ---------------------------------------------------------------------------
# /integrity/progress
# ---------------------------------------------------------------------------


@router.get("/progress/{date_key}", response_model=ProgressOut)
async def get_progress(
    date_key: str,
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> ProgressOut:
    key = _parse_date(date_key, "date_key")
    return ProgressOut(date=key, values=service.get_progress(key))


@router.put("/progress/{date_key}/{goal_key}", response_model=ProgressWriteOut)
async def record_progress(
    date_key: str,
    goal_key: str,
    body: ValueIn,
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> ProgressWriteOut:
    key = _parse_date(date_key, "date_key")
    goal = _parse_goal_key(goal_key)
    result = await service.record_value(key, goal, body.value)
    return ProgressWriteOut(
        date=key,
        values=result.entry,
        score=result.score,
        persisted=result.persisted,
    )


# ---------------------------------------------------------------------------
# /integrity/score, /history, /rank, /stats
# ---------------------------------------------------------------------------


@router.get("/score", response_model=ScoreCardOut)
async def get_score(
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
    target_date: str | None = Query(default=None, alias="date", description="Date (YYYY-MM-DD, default: today)"),
) -> ScoreCardOut:
    key = _parse_date(target_date, "date") if target_date else service.today()
    card = service.get_score_card(key)
    return ScoreCardOut(
        date=card.date_key,
        score=card.score,
        tier=card.tier,
        status=card.status,
        recorded=card.recorded,
        deductions=[DeductionOut.from_data(d) for d in card.deductions],
    )


@router.get("/history", response_model=HistoryOut)
async def get_history(
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> HistoryOut:
    history = service.get_history()
    return HistoryOut(scores=history, total_xp=sum(history.values()))


@router.get("/rank", response_model=RankOut)
async def get_rank(
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> RankOut:
    return RankOut.from_info(service.get_rank_info())


@router.get("/stats", response_model=StatsOut)
async def get_stats(
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> StatsOut:
    stats, week = service.get_stats()
    return StatsOut(
        average_score=stats.average_score,
        total_days=stats.total_days,
        perfect_days=stats.perfect_days,
        current_streak=stats.current_streak,
        week=[WeeklyDay(date=day, score=score) for day, score in week],
    )


@router.post("/experience/sync", response_model=ExperienceSyncOut)
async def sync_experience(
    service: IntegrityService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> ExperienceSyncOut:
    total, persisted = await service.sync_experience()
    return ExperienceSyncOut(total_xp=total, persisted=persisted)
