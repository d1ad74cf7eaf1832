"""Experience → level/rank progression over a fixed tier table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True, slots=True)
class Tier:
    level: int
    rank: str
    min_xp: int


@dataclass(frozen=True, slots=True)
class RankInfo:
    level: int
    rank: str
    current_xp: float
    next_level_xp: float
    progress_pct: float  # 0–100


# Cumulative XP required to reach each level, ascending.
XP_TIERS: tuple[Tier, ...] = (
    Tier(1, "Novice Defender", 0),
    Tier(2, "Shield Bearer", 500),
    Tier(3, "Iron Sentinel", 2000),
    Tier(4, "Aura Guardian", 5000),
    Tier(5, "Willpower Warrior", 10000),
    Tier(6, "Discipline Master", 20000),
    Tier(7, "Unbroken Spirit", 35000),
    Tier(8, "Time Bender", 55000),
    Tier(9, "Eternal Defender", 80000),
    Tier(10, "Legendary Guardian", 120000),
)


def rank(xp: float) -> RankInfo:
    """Map cumulative XP to its tier and the progress toward the next one.

    Lower tier bounds are inclusive. At the terminal tier `next_level_xp`
    equals the XP itself and progress is pinned at 100.
    """
    valid_xp = max(0.0, xp)

    current = XP_TIERS[0]
    following: Tier | None = XP_TIERS[1]
    for index, tier in enumerate(XP_TIERS):
        if valid_xp < tier.min_xp:
            break
        current = tier
        following = XP_TIERS[index + 1] if index + 1 < len(XP_TIERS) else None

    if following is None:
        return RankInfo(
            level=current.level,
            rank=current.rank,
            current_xp=valid_xp,
            next_level_xp=valid_xp,
            progress_pct=100.0,
        )

    span = following.min_xp - current.min_xp
    progress = (valid_xp - current.min_xp) / span * 100.0
    return RankInfo(
        level=current.level,
        rank=current.rank,
        current_xp=valid_xp,
        next_level_xp=float(following.min_xp),
        progress_pct=min(100.0, max(0.0, progress)),
    )


def experience(history: Mapping[str, int]) -> int:
    """Cumulative XP: the sum of every historical daily score."""
    return sum(history.values())
