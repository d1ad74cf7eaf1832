"""Per-date store of the metric values the user actually entered.

Date keys are ISO calendar dates (YYYY-MM-DD) in the configured local
timezone. A missing goal key means "not recorded", which is distinct from a
recorded zero.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Iterator, Mapping
from zoneinfo import ZoneInfo

import structlog

from integrity.engine.goals_config import GoalKey, parse_goal_key

logger = structlog.get_logger()

ProgressEntry = dict[GoalKey, float]


def today_key(tz_name: str = "UTC") -> str:
    """Today's date key as the local calendar date in `tz_name`."""
    return datetime.now(ZoneInfo(tz_name)).date().isoformat()


def normalize_date_key(value: date | str) -> str | None:
    """Return the canonical YYYY-MM-DD form, or None if `value` is not a date."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10]).isoformat()
        except ValueError:
            return None
    return None


def coerce_value(value: Any) -> float | None:
    """Coerce a stored metric value to a finite float. Returns None if not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _parse_entry(raw: Mapping[str, Any]) -> ProgressEntry:
    entry: ProgressEntry = {}
    for name, raw_value in raw.items():
        key = parse_goal_key(str(name))
        if key is None:
            continue
        value = coerce_value(raw_value)
        if value is not None:
            entry[key] = value
    return entry


class ProgressStore:
    """Holds, per calendar date, the recorded value for each goal key."""

    def __init__(self) -> None:
        self._entries: dict[str, ProgressEntry] = {}

    @classmethod
    def load(cls, payload: Any) -> ProgressStore:
        """Build a store from a raw date-key -> {goal key: value} mapping.

        Malformed payloads produce an empty store; malformed dates or entries
        are skipped individually. Never raises.
        """
        store = cls()
        if payload is None:
            return store
        if not isinstance(payload, Mapping):
            logger.warning("progress.payload_malformed", payload_type=type(payload).__name__)
            return store

        skipped = 0
        for raw_date, raw_entry in payload.items():
            date_key = normalize_date_key(raw_date)
            if date_key is None or not isinstance(raw_entry, Mapping):
                skipped += 1
                continue
            entry = _parse_entry(raw_entry)
            if entry:
                store._entries.setdefault(date_key, {}).update(entry)
        if skipped:
            logger.warning("progress.entries_skipped", total=len(payload), skipped=skipped)
        return store

    def get(self, date_key: date | str) -> ProgressEntry:
        key = normalize_date_key(date_key)
        if key is None:
            return {}
        return dict(self._entries.get(key, {}))

    def set(self, date_key: date | str, key: GoalKey, value: Any) -> ProgressEntry:
        """Store `value` for (date, key); the last write wins.

        Values that are not finite numbers are not stored; the current entry
        is returned unchanged.
        """
        normalized = normalize_date_key(date_key)
        number = coerce_value(value)
        if normalized is None or number is None:
            logger.warning("progress.value_rejected", date_key=str(date_key), goal_key=key.value)
            return self.get(date_key)
        self._entries.setdefault(normalized, {})[key] = number
        return dict(self._entries[normalized])

    def all_dates(self) -> Iterator[tuple[str, ProgressEntry]]:
        """(date_key, entry) pairs in ascending date order."""
        for date_key in sorted(self._entries):
            yield date_key, dict(self._entries[date_key])

    def to_storage(self) -> dict[str, dict[str, float]]:
        return {
            date_key: {key.value: value for key, value in entry.items()}
            for date_key, entry in self.all_dates()
        }

    def __len__(self) -> int:
        return len(self._entries)
