"""Shared fixtures for the test suite."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError

from integrity.engine.goals_config import GoalConfigStore
from integrity.engine.ports import InMemoryStorage
from integrity.engine.router import get_service
from integrity.engine.service import IntegrityService
from integrity.main import app


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession used in SQL adapter tests."""

    def __init__(self, rows: list[dict[str, Any]] | None = None, fail: bool = False):
        self._rows = rows or []
        self._fail = fail
        self.executed: list[tuple[str, Any]] = []
        self.commits = 0
        self.rollbacks = 0

    async def execute(self, stmt, params=None):
        if self._fail:
            raise SQLAlchemyError("connection refused")
        self.executed.append((str(stmt), params))
        return FakeResult(self._rows)

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


class FakeResult:
    def __init__(self, rows: list[dict[str, Any]]):
        self._rows = rows
        self._keys = list(rows[0].keys()) if rows else []

    def keys(self):
        return self._keys

    def fetchall(self):
        return [tuple(r[k] for k in self._keys) for r in self._rows]


class FailingStorage(InMemoryStorage):
    """In-memory ports whose writes always fail."""

    async def save_goal_overrides(self, table):
        return False

    async def save_progress_value(self, date_key, goal_key, value):
        return False

    async def save_cumulative_xp(self, total):
        return False


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def goals():
    """The default six-goal table, in canonical order."""
    return GoalConfigStore().all()


@pytest.fixture()
def storage():
    return InMemoryStorage()


@pytest.fixture()
async def service(storage):
    return await IntegrityService(storage, storage, storage, tz_name="UTC").load()


@pytest.fixture()
def override_service(storage):
    """Override the FastAPI dependency so every request reads the same in-memory storage."""
    async def _override():
        return await IntegrityService(storage, storage, storage, tz_name="UTC").load()

    app.dependency_overrides[get_service] = _override
    yield storage
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_service):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
