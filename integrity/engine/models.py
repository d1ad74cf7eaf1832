"""HTTP contract — Pydantic v2 models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from integrity.engine.goals_config import Direction, GoalConfig, GoalKey
from integrity.engine.insights import Deduction as DeductionData
from integrity.engine.leveling import RankInfo


class GoalOut(BaseModel):
    key: GoalKey
    direction: Direction
    weight: int
    target: float | None = None
    limit: float | None = None
    unit: str
    is_active: bool

    @classmethod
    def from_config(cls, goal: GoalConfig) -> GoalOut:
        return cls(
            key=goal.key,
            direction=goal.direction,
            weight=goal.weight,
            target=goal.target,
            limit=goal.limit,
            unit=goal.unit,
            is_active=goal.is_active,
        )


class GoalOverride(BaseModel):
    """Partial update for one goal; only fields that are set are merged."""

    weight: int | None = Field(default=None, gt=0)
    target: float | None = Field(default=None, allow_inf_nan=False)
    limit: float | None = Field(default=None, allow_inf_nan=False)
    unit: str | None = None
    is_active: bool | None = None


class GoalsUpdate(BaseModel):
    goals: dict[GoalKey, GoalOverride]


class GoalsResponse(BaseModel):
    goals: list[GoalOut]
    persisted: bool | None = None


class ValueIn(BaseModel):
    value: float = Field(allow_inf_nan=False)


class ProgressOut(BaseModel):
    date: str
    values: dict[GoalKey, float] = Field(default_factory=dict)


class ProgressWriteOut(ProgressOut):
    score: int
    persisted: bool


class DeductionOut(BaseModel):
    key: GoalKey
    direction: Direction
    value: float
    threshold: float
    unit: str
    penalty_pct: int
    points: int

    @classmethod
    def from_data(cls, item: DeductionData) -> DeductionOut:
        return cls(
            key=item.key,
            direction=item.direction,
            value=item.value,
            threshold=item.threshold,
            unit=item.unit,
            penalty_pct=item.penalty_pct,
            points=item.points,
        )


class ScoreCardOut(BaseModel):
    date: str
    score: int = Field(ge=0, le=100)
    tier: int
    status: str | None = None  # "good" | "average" | "bad", None when nothing recorded
    recorded: bool
    deductions: list[DeductionOut] = Field(default_factory=list)


class HistoryOut(BaseModel):
    scores: dict[str, int] = Field(default_factory=dict)
    total_xp: int = 0


class RankOut(BaseModel):
    level: int
    rank: str
    current_xp: float
    next_level_xp: float
    progress_pct: float

    @classmethod
    def from_info(cls, info: RankInfo) -> RankOut:
        return cls(
            level=info.level,
            rank=info.rank,
            current_xp=info.current_xp,
            next_level_xp=info.next_level_xp,
            progress_pct=info.progress_pct,
        )


class WeeklyDay(BaseModel):
    date: str
    score: int | None = None


class StatsOut(BaseModel):
    average_score: int
    total_days: int
    perfect_days: int
    current_streak: int
    week: list[WeeklyDay] = Field(default_factory=list)


class ExperienceSyncOut(BaseModel):
    total_xp: int
    persisted: bool
