"""Persistence ports and the in-memory / JSON-file adapters.

The engine reads and writes through these async ports only. Adapters never
raise: loads degrade to "nothing stored", saves report success as a bool.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


class GoalPort(Protocol):
    async def load_goal_overrides(self) -> Any: ...

    async def save_goal_overrides(self, table: dict[str, dict[str, Any]]) -> bool: ...


class ProgressPort(Protocol):
    async def load_all_progress(self) -> Any: ...

    async def save_progress_value(self, date_key: str, goal_key: str, value: float) -> bool: ...


class ExperiencePort(Protocol):
    async def save_cumulative_xp(self, total: int) -> bool: ...


class InMemoryStorage:
    """Dict-backed implementation of all three ports."""

    def __init__(
        self,
        goals: Any = None,
        progress: dict[str, dict[str, Any]] | None = None,
    ):
        self.goals: Any = goals
        self.progress: dict[str, dict[str, Any]] = progress if progress is not None else {}
        self.xp: int | None = None

    async def load_goal_overrides(self) -> Any:
        return self.goals

    async def save_goal_overrides(self, table: dict[str, dict[str, Any]]) -> bool:
        self.goals = {key: dict(fields) for key, fields in table.items()}
        return True

    async def load_all_progress(self) -> Any:
        return {date_key: dict(entry) for date_key, entry in self.progress.items()}

    async def save_progress_value(self, date_key: str, goal_key: str, value: float) -> bool:
        self.progress.setdefault(date_key, {})[goal_key] = value
        return True

    async def save_cumulative_xp(self, total: int) -> bool:
        self.xp = total
        return True


class JsonFileStorage:
    """All three ports over one local JSON document.

    Layout: {"goals": {...overrides}, "progress": {date: {key: value}}, "xp": int}.
    A missing or unreadable file is treated as empty. File I/O runs in a worker
    thread; share one instance per path so the lock serialises writers.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("file_storage.read_failed", path=str(self.path), error=str(exc))
            return {}
        if not isinstance(data, dict):
            logger.warning("file_storage.document_malformed", path=str(self.path))
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            logger.error("file_storage.write_failed", path=str(self.path), error=str(exc))
            return False
        return True

    async def load_goal_overrides(self) -> Any:
        data = await asyncio.to_thread(self._read)
        return data.get("goals")

    async def save_goal_overrides(self, table: dict[str, dict[str, Any]]) -> bool:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data["goals"] = table
            return await asyncio.to_thread(self._write, data)

    async def load_all_progress(self) -> Any:
        data = await asyncio.to_thread(self._read)
        return data.get("progress") or {}

    async def save_progress_value(self, date_key: str, goal_key: str, value: float) -> bool:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            progress = data.get("progress")
            if not isinstance(progress, dict):
                progress = {}
            day = progress.get(date_key)
            if not isinstance(day, dict):
                day = {}
            day[goal_key] = value
            progress[date_key] = day
            data["progress"] = progress
            return await asyncio.to_thread(self._write, data)

    async def save_cumulative_xp(self, total: int) -> bool:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data["xp"] = total
            return await asyncio.to_thread(self._write, data)
