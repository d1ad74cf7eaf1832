"""Derived views over scores and history — tiers, status bands, receipts, stats."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Mapping

from integrity.engine.goals_config import Direction, GoalConfig, GoalKey
from integrity.engine.scoring import interacted_pool, round_half_up

PERFECT_DAY_SCORE = 80


@dataclass(frozen=True, slots=True)
class Deduction:
    key: GoalKey
    direction: Direction
    value: float
    threshold: float
    unit: str
    penalty_pct: int  # penalty ratio as a whole percentage
    points: int  # points lost, positive


@dataclass(frozen=True, slots=True)
class ProfileStats:
    average_score: int
    total_days: int
    perfect_days: int
    current_streak: int


def score_tier(score: int) -> int:
    """Celebration tier: 3 gold (≥90), 2 emerald (≥70), 1 amber (≥40), 0 red."""
    if score >= 90:
        return 3
    if score >= 70:
        return 2
    if score >= 40:
        return 1
    return 0


def score_status(score: int | None) -> str | None:
    """Calendar band: "good" ≥80, "average" ≥50, else "bad". None when unrecorded."""
    if score is None:
        return None
    if score >= PERFECT_DAY_SCORE:
        return "good"
    if score >= 50:
        return "average"
    return "bad"


def deductions(goals: Iterable[GoalConfig], entry: Mapping[GoalKey, object]) -> list[Deduction]:
    """Per-goal point losses for one day, as shown on the audit receipt.

    Goals without a penalty, or whose loss rounds to zero points, are omitted.
    """
    items: list[Deduction] = []
    for member in interacted_pool(goals, entry):
        if member.penalty_ratio <= 0:
            continue
        points = round_half_up(member.penalty)
        if points <= 0:
            continue
        items.append(
            Deduction(
                key=member.goal.key,
                direction=member.goal.direction,
                value=member.value,
                threshold=member.goal.threshold,
                unit=member.goal.unit,
                penalty_pct=round_half_up(member.penalty_ratio * 100.0),
                points=points,
            )
        )
    return items


def _current_streak(dates: list[date], today: date) -> int:
    """Consecutive recorded days ending at the latest one, if that is today or yesterday."""
    if not dates:
        return 0
    ordered = sorted(set(dates), reverse=True)
    if ordered[0] not in (today, today - timedelta(days=1)):
        return 0
    streak = 1
    for previous, current in zip(ordered, ordered[1:]):
        if (previous - current).days != 1:
            break
        streak += 1
    return streak


def profile_stats(history: Mapping[str, int], today: date) -> ProfileStats:
    scores = list(history.values())
    total = len(scores)
    average = round_half_up(sum(scores) / total) if total else 0
    dates = [date.fromisoformat(key) for key in history]
    return ProfileStats(
        average_score=average,
        total_days=total,
        perfect_days=sum(1 for s in scores if s >= PERFECT_DAY_SCORE),
        current_streak=_current_streak(dates, today),
    )


def weekly_window(history: Mapping[str, int], today: date, days: int = 7) -> list[tuple[str, int | None]]:
    """The last `days` dates ending today (oldest first) with their score, or None."""
    window = []
    for offset in range(days - 1, -1, -1):
        key = (today - timedelta(days=offset)).isoformat()
        window.append((key, history.get(key)))
    return window
