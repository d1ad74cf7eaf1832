"""Daily integrity score — weighted, penalty-based, dynamic pool.

Pure functions, never raise. Only goals that are active AND have a finite
recorded value for the day enter the pool; weights are renormalised over
that pool, so unrecorded goals neither help nor hurt. A day with an empty
pool scores 100.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from integrity.engine.goals_config import Direction, GoalConfig, GoalKey
from integrity.engine.progress import ProgressEntry

PERFECT_SCORE = 100


@dataclass(frozen=True, slots=True)
class PoolMember:
    goal: GoalConfig
    value: float
    penalty_ratio: float  # 0–1
    max_penalty: float  # share of 100 points this goal can cost

    @property
    def penalty(self) -> float:
        return self.penalty_ratio * self.max_penalty


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def recorded_value(entry: Mapping[GoalKey, object], key: GoalKey) -> float | None:
    """The entry's value for `key` if it is a finite number, else None."""
    value = entry.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def penalty_ratio(goal: GoalConfig, value: float) -> float:
    """Normalised shortfall (maximize) or overshoot (minimize) in [0, 1].

    - maximize: 0 at or above target, else 1 - value / target
    - minimize: 0 at or below limit, else (value - limit) / limit, capped at 1
    A non-positive threshold never penalises.
    """
    threshold = goal.threshold
    if threshold <= 0:
        return 0.0
    if goal.direction is Direction.minimize:
        if value <= threshold:
            return 0.0
        return min(1.0, (value - threshold) / threshold)
    if value >= threshold:
        return 0.0
    return min(1.0, 1.0 - value / threshold)


def interacted_pool(goals: Iterable[GoalConfig], entry: Mapping[GoalKey, object]) -> list[PoolMember]:
    """Active goals with a recorded value, each with its renormalised max penalty."""
    interacted: list[tuple[GoalConfig, float, float]] = []
    for goal in goals:
        if not goal.is_active:
            continue
        value = recorded_value(entry, goal.key)
        if value is None:
            continue
        interacted.append((goal, value, penalty_ratio(goal, value)))

    total_weight = sum(goal.weight for goal, _, _ in interacted)
    if total_weight <= 0:
        return []

    return [
        PoolMember(
            goal=goal,
            value=value,
            penalty_ratio=ratio,
            max_penalty=(goal.weight / total_weight) * 100.0,
        )
        for goal, value, ratio in interacted
    ]


def score(goals: Iterable[GoalConfig], entry: Mapping[GoalKey, object]) -> int:
    """Integrity score (0–100) for one day's entry."""
    pool = interacted_pool(goals, entry)
    if not pool:
        return PERFECT_SCORE
    total_penalty = sum(member.penalty for member in pool)
    return min(PERFECT_SCORE, round_half_up(max(0.0, PERFECT_SCORE - total_penalty)))


def score_history(
    goals: Iterable[GoalConfig],
    entries: Iterable[tuple[str, ProgressEntry]],
) -> dict[str, int]:
    """Score every recorded date with the same (current) goal configuration."""
    goal_list = list(goals)
    return {date_key: score(goal_list, entry) for date_key, entry in entries}
