"""Relational adapter — goal overrides, daily progress and XP as table rows.

Tables (all scoped by profile_id):
  goal_overrides: profile_id, goal_key, weight, target, limit_value, unit, is_active
    (primary key profile_id, goal_key)
  daily_progress: profile_id, date, goal_key, value
    (primary key profile_id, date, goal_key)
  profiles: id, xp, level, updated_at

Reads return "nothing stored" on failure and writes return False; the
caller's in-memory state is never rolled back.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from integrity.engine.leveling import rank

logger = structlog.get_logger()


class SqlStorage:
    """All three persistence ports over an AsyncSession."""

    def __init__(self, session: AsyncSession, profile_id: str = "default"):
        self.session = session
        self.profile_id = profile_id

    async def load_goal_overrides(self) -> dict[str, dict[str, Any]] | None:
        query = (
            "SELECT goal_key, weight, target, limit_value, unit, is_active "
            "FROM goal_overrides "
            "WHERE profile_id = :profile_id"
        )
        try:
            result = await self.session.execute(text(query), {"profile_id": self.profile_id})
            columns = result.keys()
            rows = [dict(zip(columns, r)) for r in result.fetchall()]
        except SQLAlchemyError as exc:
            logger.error("goals.load_failed", profile_id=self.profile_id, error=str(exc))
            return None

        if not rows:
            return None

        table: dict[str, dict[str, Any]] = {}
        for row in rows:
            fields: dict[str, Any] = {}
            if row.get("weight") is not None:
                fields["weight"] = row["weight"]
            if row.get("target") is not None:
                fields["target"] = row["target"]
            if row.get("limit_value") is not None:
                fields["limit"] = row["limit_value"]
            if row.get("unit") is not None:
                fields["unit"] = row["unit"]
            if row.get("is_active") is not None:
                fields["isActive"] = bool(row["is_active"])
            table[str(row["goal_key"])] = fields
        return table

    async def save_goal_overrides(self, table: dict[str, dict[str, Any]]) -> bool:
        query = (
            "INSERT INTO goal_overrides "
            "(profile_id, goal_key, weight, target, limit_value, unit, is_active) "
            "VALUES (:profile_id, :goal_key, :weight, :target, :limit_value, :unit, :is_active) "
            "ON CONFLICT (profile_id, goal_key) DO UPDATE SET "
            "weight = EXCLUDED.weight, target = EXCLUDED.target, "
            "limit_value = EXCLUDED.limit_value, unit = EXCLUDED.unit, "
            "is_active = EXCLUDED.is_active"
        )
        params = [
            {
                "profile_id": self.profile_id,
                "goal_key": goal_key,
                "weight": fields.get("weight"),
                "target": fields.get("target"),
                "limit_value": fields.get("limit"),
                "unit": fields.get("unit"),
                "is_active": fields.get("isActive"),
            }
            for goal_key, fields in table.items()
        ]
        try:
            await self.session.execute(text(query), params)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("goals.save_failed", profile_id=self.profile_id, error=str(exc))
            return False
        return True

    async def load_all_progress(self) -> dict[str, dict[str, Any]]:
        query = (
            "SELECT date, goal_key, value "
            "FROM daily_progress "
            "WHERE profile_id = :profile_id "
            "ORDER BY date"
        )
        try:
            result = await self.session.execute(text(query), {"profile_id": self.profile_id})
            columns = result.keys()
            rows = [dict(zip(columns, r)) for r in result.fetchall()]
        except SQLAlchemyError as exc:
            logger.error("progress.load_failed", profile_id=self.profile_id, error=str(exc))
            return {}

        progress: dict[str, dict[str, Any]] = {}
        for row in rows:
            row_date = row.get("date")
            date_key = row_date.isoformat() if isinstance(row_date, date) else str(row_date)
            progress.setdefault(date_key, {})[str(row.get("goal_key"))] = row.get("value")
        return progress

    async def save_progress_value(self, date_key: str, goal_key: str, value: float) -> bool:
        query = (
            "INSERT INTO daily_progress (profile_id, date, goal_key, value) "
            "VALUES (:profile_id, :date, :goal_key, :value) "
            "ON CONFLICT (profile_id, date, goal_key) DO UPDATE SET value = EXCLUDED.value"
        )
        params = {
            "profile_id": self.profile_id,
            "date": date.fromisoformat(date_key),
            "goal_key": goal_key,
            "value": value,
        }
        try:
            await self.session.execute(text(query), params)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(
                "progress.save_failed",
                profile_id=self.profile_id,
                date_key=date_key,
                goal_key=goal_key,
                error=str(exc),
            )
            return False
        return True

    async def save_cumulative_xp(self, total: int) -> bool:
        query = (
            "UPDATE profiles SET xp = :xp, level = :level, updated_at = now() "
            "WHERE id = :profile_id"
        )
        params = {"profile_id": self.profile_id, "xp": total, "level": rank(total).level}
        try:
            await self.session.execute(text(query), params)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("experience.save_failed", profile_id=self.profile_id, error=str(exc))
            return False
        return True
