"""Endpoint tests — FastAPI app via httpx."""

from __future__ import annotations

import pytest

from integrity.config import settings


class TestGoalsEndpoints:
    @pytest.mark.asyncio
    async def test_list_goals(self, client):
        resp = await client.get("/integrity/goals")
        assert resp.status_code == 200
        goals = resp.json()["goals"]
        assert len(goals) == 6
        screen = next(g for g in goals if g["key"] == "screen_time")
        assert screen["direction"] == "minimize"
        assert screen["limit"] == 3.5

    @pytest.mark.asyncio
    async def test_update_goals(self, client, override_service):
        resp = await client.put("/integrity/goals", json={"goals": {"activity": {"target": 5000, "weight": 1}}})
        assert resp.status_code == 200
        body = resp.json()
        assert body["persisted"] is True
        activity = next(g for g in body["goals"] if g["key"] == "activity")
        assert activity["target"] == 5000.0
        assert activity["weight"] == 1
        assert override_service.goals["activity"]["target"] == 5000.0

    @pytest.mark.asyncio
    async def test_update_unknown_goal_422(self, client):
        resp = await client.put("/integrity/goals", json={"goals": {"meditation": {"weight": 2}}})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_update_rejects_zero_weight(self, client):
        resp = await client.put("/integrity/goals", json={"goals": {"tasks": {"weight": 0}}})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_update_weight_too_large_for_float_uses_fallback(self, client, override_service):
        resp = await client.put("/integrity/goals", json={"goals": {"hydration": {"weight": 10**400}}})
        assert resp.status_code == 200
        hydration = next(g for g in resp.json()["goals"] if g["key"] == "hydration")
        assert hydration["weight"] == 2
        assert override_service.goals["hydration"]["weight"] == 2

    @pytest.mark.asyncio
    async def test_active_goals_after_deactivation(self, client):
        await client.put("/integrity/goals", json={"goals": {"calories": {"is_active": False}}})
        resp = await client.get("/integrity/goals/active")
        assert resp.status_code == 200
        keys = [g["key"] for g in resp.json()]
        assert "calories" not in keys
        assert len(keys) == 5


class TestProgressEndpoints:
    @pytest.mark.asyncio
    async def test_record_and_read(self, client, override_service):
        resp = await client.put("/integrity/progress/2026-02-15/activity", json={"value": 5000})
        assert resp.status_code == 200
        body = resp.json()
        assert body["score"] == 50
        assert body["persisted"] is True
        assert body["values"] == {"activity": 5000.0}
        assert override_service.progress == {"2026-02-15": {"activity": 5000.0}}

        resp = await client.get("/integrity/progress/2026-02-15")
        assert resp.json() == {"date": "2026-02-15", "values": {"activity": 5000.0}}

    @pytest.mark.asyncio
    async def test_unrecorded_date_is_empty(self, client):
        resp = await client.get("/integrity/progress/2026-01-01")
        assert resp.status_code == 200
        assert resp.json()["values"] == {}

    @pytest.mark.asyncio
    async def test_invalid_date_422(self, client):
        resp = await client.put("/integrity/progress/15-02-2026/activity", json={"value": 1})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_goal_404(self, client):
        resp = await client.put("/integrity/progress/2026-02-15/meditation", json={"value": 1})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_value_422(self, client):
        resp = await client.put("/integrity/progress/2026-02-15/activity", json={})
        assert resp.status_code == 422


class TestScoreEndpoints:
    @pytest.mark.asyncio
    async def test_score_card(self, client, override_service):
        override_service.progress = {"2026-02-15": {"hydration": 2500, "activity": 5000}}
        resp = await client.get("/integrity/score?date=2026-02-15")
        assert resp.status_code == 200
        body = resp.json()
        assert body["score"] == 70
        assert body["tier"] == 2
        assert body["status"] == "average"
        assert body["recorded"] is True
        assert body["deductions"] == [
            {
                "key": "activity",
                "direction": "maximize",
                "value": 5000.0,
                "threshold": 10000.0,
                "unit": "steps",
                "penalty_pct": 50,
                "points": 30,
            }
        ]

    @pytest.mark.asyncio
    async def test_score_defaults_to_today(self, client):
        resp = await client.get("/integrity/score")
        assert resp.status_code == 200
        body = resp.json()
        assert body["score"] == 100
        assert body["recorded"] is False
        assert body["status"] is None

    @pytest.mark.asyncio
    async def test_score_invalid_date_422(self, client):
        resp = await client.get("/integrity/score?date=tomorrow")
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_history(self, client, override_service):
        override_service.progress = {
            "2026-02-14": {"screen_time": 7},
            "2026-02-15": {"hydration": 2500, "activity": 5000},
        }
        resp = await client.get("/integrity/history")
        assert resp.status_code == 200
        assert resp.json() == {"scores": {"2026-02-14": 0, "2026-02-15": 70}, "total_xp": 70}

    @pytest.mark.asyncio
    async def test_rank(self, client, override_service):
        override_service.progress = {f"2026-02-{day:02d}": {"tasks": 5} for day in range(1, 6)}
        resp = await client.get("/integrity/rank")
        assert resp.status_code == 200
        body = resp.json()
        assert body["level"] == 2
        assert body["rank"] == "Shield Bearer"
        assert body["current_xp"] == 500
        assert body["next_level_xp"] == 2000

    @pytest.mark.asyncio
    async def test_stats(self, client):
        resp = await client.get("/integrity/stats")
        assert resp.status_code == 200
        body = resp.json()
        assert body["total_days"] == 0
        assert len(body["week"]) == 7

    @pytest.mark.asyncio
    async def test_experience_sync(self, client, override_service):
        override_service.progress = {"2026-02-15": {"hydration": 2500}}
        resp = await client.post("/integrity/experience/sync")
        assert resp.status_code == 200
        assert resp.json() == {"total_xp": 100, "persisted": True}
        assert override_service.xp == 100


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_key_401(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "secret")
        resp = await client.get("/integrity/goals")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_bearer_key_accepted(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "secret")
        resp = await client.get("/integrity/goals", headers={"Authorization": "Bearer secret"})
        assert resp.status_code == 200


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_root_lists_routes(self, client):
        resp = await client.get("/")
        assert resp.json()["integrity"]["score"] == "/integrity/score"
