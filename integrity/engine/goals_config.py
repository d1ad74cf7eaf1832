"""Goal definitions and the six-entry goal configuration store.

Every goal carries an explicit Direction: maximize goals are scored against
`target`, minimize goals against `limit`. Stored overrides are merged onto
the defaults key by key, field by field; a malformed payload falls back to
the defaults as a whole.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping

import structlog

logger = structlog.get_logger()

FALLBACK_WEIGHT = 2


class GoalKey(str, Enum):
    hydration = "hydration"
    activity = "activity"
    recovery = "recovery"
    tasks = "tasks"
    screen_time = "screen_time"
    calories = "calories"


class Direction(str, Enum):
    maximize = "maximize"  # more is better, scored against target
    minimize = "minimize"  # less is better, scored against limit


@dataclass(frozen=True, slots=True)
class GoalConfig:
    key: GoalKey
    direction: Direction
    weight: int
    target: float | None = None
    limit: float | None = None
    unit: str = ""
    is_active: bool = True

    @property
    def threshold(self) -> float:
        """The target (maximize) or limit (minimize) this goal is scored against."""
        if self.direction is Direction.minimize:
            value = self.limit if self.limit is not None else self.target
        else:
            value = self.target if self.target is not None else self.limit
        return value if value is not None else 0.0

    def to_storage(self) -> dict[str, Any]:
        """Serialise to the stored override shape (weight, target|limit, unit, isActive)."""
        field = "limit" if self.direction is Direction.minimize else "target"
        return {
            "weight": self.weight,
            field: self.threshold,
            "unit": self.unit,
            "isActive": self.is_active,
        }


DEFAULT_GOALS: dict[GoalKey, GoalConfig] = {
    GoalKey.hydration: GoalConfig(
        key=GoalKey.hydration,
        direction=Direction.maximize,
        weight=2,
        target=2500.0,
        unit="ml",
    ),
    GoalKey.activity: GoalConfig(
        key=GoalKey.activity,
        direction=Direction.maximize,
        weight=3,
        target=10000.0,
        unit="steps",
    ),
    GoalKey.recovery: GoalConfig(
        key=GoalKey.recovery,
        direction=Direction.maximize,
        weight=2,
        target=8.0,
        unit="hours",
    ),
    GoalKey.tasks: GoalConfig(
        key=GoalKey.tasks,
        direction=Direction.maximize,
        weight=1,
        target=5.0,
        unit="items",
    ),
    GoalKey.screen_time: GoalConfig(
        key=GoalKey.screen_time,
        direction=Direction.minimize,
        weight=2,
        limit=3.5,
        unit="hours",
    ),
    GoalKey.calories: GoalConfig(
        key=GoalKey.calories,
        direction=Direction.minimize,
        weight=2,
        limit=2200.0,
        unit="kcal",
    ),
}


def parse_goal_key(value: str) -> GoalKey | None:
    try:
        return GoalKey(value)
    except ValueError:
        return None


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _merge_one(default: GoalConfig, override: Mapping[str, Any]) -> GoalConfig:
    """Shallow-merge one override onto its default, sanitising each field."""
    weight: Any = override.get("weight", default.weight)
    number = _finite_number(weight)
    if number is None or number <= 0:
        weight = FALLBACK_WEIGHT
    else:
        weight = int(number) if number >= 1 else FALLBACK_WEIGHT

    own_field = "limit" if default.direction is Direction.minimize else "target"
    other_field = "target" if own_field == "limit" else "limit"
    if own_field in override:
        raw_threshold = override[own_field]
    elif other_field in override:
        raw_threshold = override[other_field]
    else:
        raw_threshold = default.threshold
    threshold = _finite_number(raw_threshold)
    if threshold is None:
        threshold = default.threshold

    unit = override.get("unit", default.unit)
    if not isinstance(unit, str):
        unit = default.unit

    is_active = override.get("isActive", override.get("is_active", default.is_active))
    if not isinstance(is_active, bool):
        is_active = default.is_active

    return replace(
        default,
        weight=weight,
        target=threshold if own_field == "target" else None,
        limit=threshold if own_field == "limit" else None,
        unit=unit,
        is_active=is_active,
    )


def merge_goal_overrides(payload: Any) -> dict[GoalKey, GoalConfig]:
    """Merge a stored override payload onto DEFAULT_GOALS.

    `payload` may be None, a JSON string, or a mapping of goal key to a partial
    field mapping. Anything unparseable or of the wrong shape yields the
    defaults unmodified. Never raises.
    """
    if payload is None or payload == "":
        return dict(DEFAULT_GOALS)

    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError:
            logger.warning("goals.overrides_unparseable")
            return dict(DEFAULT_GOALS)

    if not isinstance(payload, Mapping):
        logger.warning("goals.overrides_malformed", payload_type=type(payload).__name__)
        return dict(DEFAULT_GOALS)

    merged: dict[GoalKey, GoalConfig] = {}
    for key, default in DEFAULT_GOALS.items():
        override = payload.get(key.value)
        if not override:
            merged[key] = default
            continue
        if not isinstance(override, Mapping):
            logger.warning("goals.overrides_malformed", goal_key=key.value)
            return dict(DEFAULT_GOALS)
        merged[key] = _merge_one(default, override)
    return merged


class GoalConfigStore:
    """Holds the canonical six-entry goal table for one session."""

    def __init__(self, goals: Mapping[GoalKey, GoalConfig] | None = None):
        self._goals: dict[GoalKey, GoalConfig] = dict(goals) if goals is not None else dict(DEFAULT_GOALS)

    @classmethod
    def load(cls, payload: Any = None) -> GoalConfigStore:
        return cls(merge_goal_overrides(payload))

    def get(self, key: GoalKey) -> GoalConfig:
        return self._goals[key]

    def all(self) -> list[GoalConfig]:
        """All six goals in canonical key order."""
        return [self._goals[key] for key in GoalKey]

    def active(self) -> list[tuple[GoalKey, GoalConfig]]:
        return [(goal.key, goal) for goal in self.all() if goal.is_active]

    def threshold(self, key: GoalKey) -> float:
        return self._goals[key].threshold

    def apply(self, overrides: Mapping[str, Any]) -> dict[GoalKey, GoalConfig]:
        """Merge partial overrides onto the current table and replace it.

        Overrides for keys outside the six known goals are ignored. A
        per-key override that is not a mapping is skipped; the remaining
        overrides are still applied.
        """
        current = {key.value: goal.to_storage() for key, goal in self._goals.items()}
        for key, override in overrides.items():
            if key in current and isinstance(override, Mapping):
                base = dict(current[key])
                override = dict(override)
                if "target" in override or "limit" in override:
                    base.pop("target", None)
                    base.pop("limit", None)
                if "is_active" in override:
                    override["isActive"] = override.pop("is_active")
                current[key] = {**base, **override}
            elif key in current:
                logger.warning("goals.override_ignored", goal_key=key)
        self._goals = merge_goal_overrides(current)
        return dict(self._goals)

    def to_storage(self) -> dict[str, dict[str, Any]]:
        """Well-formed six-entry table handed to the persistence port."""
        return {goal.key.value: goal.to_storage() for goal in self.all()}
