"""Consumer-facing query surface over the goal and progress stores.

Writes are optimistic: the in-memory store changes first, then the port
write is awaited and its result reported. A failed write is logged and
never rolls back the in-memory state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

import structlog

from integrity.engine import insights, leveling, scoring
from integrity.engine.goals_config import GoalConfig, GoalConfigStore, GoalKey
from integrity.engine.leveling import RankInfo
from integrity.engine.ports import ExperiencePort, GoalPort, ProgressPort
from integrity.engine.progress import (
    ProgressEntry,
    ProgressStore,
    coerce_value,
    normalize_date_key,
    today_key,
)

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class ScoreCard:
    date_key: str
    score: int
    tier: int
    status: str | None
    recorded: bool
    deductions: list[insights.Deduction]


@dataclass(frozen=True, slots=True)
class WriteResult:
    entry: ProgressEntry
    score: int
    persisted: bool


class IntegrityService:
    def __init__(
        self,
        goal_port: GoalPort,
        progress_port: ProgressPort,
        experience_port: ExperiencePort,
        tz_name: str = "UTC",
    ):
        self.goal_port = goal_port
        self.progress_port = progress_port
        self.experience_port = experience_port
        self.tz_name = tz_name
        self.goals = GoalConfigStore()
        self.progress = ProgressStore()

    async def load(self) -> IntegrityService:
        """Hydrate both stores from their ports."""
        self.goals = GoalConfigStore.load(await self.goal_port.load_goal_overrides())
        self.progress = ProgressStore.load(await self.progress_port.load_all_progress())
        return self

    def today(self) -> str:
        return today_key(self.tz_name)

    # -- queries -----------------------------------------------------------

    def get_goals(self) -> list[GoalConfig]:
        return self.goals.all()

    def get_active_goals(self) -> list[tuple[GoalKey, GoalConfig]]:
        return self.goals.active()

    def get_progress(self, date_key: date | str) -> ProgressEntry:
        return self.progress.get(date_key)

    def get_score_for_date(self, date_key: date | str) -> int:
        return scoring.score(self.goals.all(), self.progress.get(date_key))

    def get_history(self) -> dict[str, int]:
        return scoring.score_history(self.goals.all(), self.progress.all_dates())

    def get_experience(self) -> int:
        return leveling.experience(self.get_history())

    def get_rank_info(self) -> RankInfo:
        return leveling.rank(self.get_experience())

    def get_score_card(self, date_key: date | str) -> ScoreCard:
        key = normalize_date_key(date_key) or self.today()
        entry = self.progress.get(key)
        value = scoring.score(self.goals.all(), entry)
        recorded = bool(entry)
        return ScoreCard(
            date_key=key,
            score=value,
            tier=insights.score_tier(value),
            status=insights.score_status(value if recorded else None),
            recorded=recorded,
            deductions=insights.deductions(self.goals.all(), entry),
        )

    def get_stats(self) -> tuple[insights.ProfileStats, list[tuple[str, int | None]]]:
        history = self.get_history()
        today = date.fromisoformat(self.today())
        return insights.profile_stats(history, today), insights.weekly_window(history, today)

    # -- writes ------------------------------------------------------------

    async def record_value(self, date_key: date | str, key: GoalKey, value: float) -> WriteResult:
        entry = self.progress.set(date_key, key, value)
        normalized = normalize_date_key(date_key)
        number = coerce_value(value)
        persisted = False
        if normalized is not None and number is not None:
            persisted = await self.progress_port.save_progress_value(normalized, key.value, number)
            if not persisted:
                logger.warning("progress.write_not_persisted", date_key=normalized, goal_key=key.value)
        return WriteResult(
            entry=entry,
            score=scoring.score(self.goals.all(), entry),
            persisted=persisted,
        )

    async def update_goals(self, overrides: Mapping[str, Mapping[str, Any]]) -> bool:
        self.goals.apply(overrides)
        persisted = await self.goal_port.save_goal_overrides(self.goals.to_storage())
        if not persisted:
            logger.warning("goals.write_not_persisted")
        return persisted

    async def sync_experience(self) -> tuple[int, bool]:
        """Push the current cumulative XP to the experience port (best effort)."""
        total = self.get_experience()
        persisted = await self.experience_port.save_cumulative_xp(total)
        if not persisted:
            logger.warning("experience.write_not_persisted", total=total)
        return total, persisted
