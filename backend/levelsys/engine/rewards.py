"""
Reward rules: pure functions, no state access.
"""
import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Multipliers:
    xp: float
    coins: float
    sp: float


MULTIPLIERS: dict[str, Multipliers] = {
    "Easy":    Multipliers(0.7, 0.8, 0.5),
    "Normal":  Multipliers(1.0, 1.0, 1.0),
    "Hard":    Multipliers(1.5, 1.5, 1.5),
    "Weekly":  Multipliers(3.0, 3.0, 2.0),
    "Monthly": Multipliers(5.0, 5.0, 3.0),
    "Mega":    Multipliers(10.0, 10.0, 5.0),
}

BASE_COINS = 5
SP_XP_STEP = 20

MILESTONE_LEVELS = [5, 10, 15, 20, 25, 30, 40, 50, 75, 100]
STREAK_THRESHOLDS = [3, 7, 14, 30, 50, 100]


def multipliers_for(difficulty: str | None) -> Multipliers:
    return MULTIPLIERS.get(difficulty or "Normal", MULTIPLIERS["Normal"])


def quest_rewards(experience_reward: int, difficulty: str | None) -> tuple[int, int, int]:
    """Returns (experience, coins, skill_points) for one completion."""
    mult = multipliers_for(difficulty)
    xp = math.floor(experience_reward * mult.xp)
    coins = math.floor(BASE_COINS * mult.coins)
    sp = 0
    if experience_reward >= SP_XP_STEP:
        sp = math.floor((experience_reward // SP_XP_STEP) * mult.sp)
    return xp, coins, sp


def boosted_stat(boost: int, difficulty: str | None) -> int:
    """Stat boosts scale with the experience multiplier."""
    return math.floor(boost * multipliers_for(difficulty).xp)


def compute_level(stats: dict[str, int]) -> int:
    """level = max(1, floor(total stat points / 10))"""
    return max(1, sum(stats.values()) // 10)


def milestone_reward(threshold: int) -> tuple[int, int]:
    """Returns (coins, skill_points) for reaching a level milestone."""
    return threshold * 10, threshold // 5


def streak_reward(threshold: int) -> tuple[int, int]:
    """Returns (coins, skill_points) for reaching a streak threshold."""
    return threshold * 5, threshold // 7 + 1
