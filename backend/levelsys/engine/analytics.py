"""
Read-only progress summary for the analytics screen.
"""
from ..models import DAYS, CharacterState
from .achievements import ACHIEVEMENTS
from .rewards import MULTIPLIERS
from .tiers import tier_of

ANALYTICS_WINDOW_DAYS = 30


def _best(counts: dict[str, int]) -> str:
    # the last key wins ties, so an all-zero table reads as its last entry
    best = next(iter(counts))
    for key, value in counts.items():
        if value >= counts[best]:
            best = key
    return best


def summarize(state: CharacterState) -> dict:
    completed = [q for q in state.quests if q.completed]
    total = len(state.quests)

    by_difficulty = {name: 0 for name in MULTIPLIERS}
    for quest in completed:
        difficulty = quest.difficulty if quest.difficulty in by_difficulty else "Normal"
        by_difficulty[difficulty] += 1

    by_day = {day: 0 for day in DAYS}
    for quest in completed:
        if quest.day in by_day:
            by_day[quest.day] += 1

    unlocked = len(state.unlocked_achievements)
    mega = bool(state.mega_quests_completed)

    return {
        "completion_rate": round(len(completed) / total * 100) if total else 0,
        "daily_average": round(len(completed) / ANALYTICS_WINDOW_DAYS, 1),
        "current_streak": state.daily_streak,
        "by_difficulty": by_difficulty,
        "by_day": by_day,
        "achievement_progress": {
            "unlocked": unlocked,
            "total": len(ACHIEVEMENTS),
            "percentage": round(unlocked / len(ACHIEVEMENTS) * 100),
        },
        "stats": [
            {"name": name, "value": value, "tier": tier_of(value, mega)}
            for name, value in state.stats.items()
        ],
        "insights": _insights(state, by_difficulty, by_day),
    }


def _insights(state: CharacterState, by_difficulty: dict[str, int], by_day: dict[str, int]) -> list[str]:
    insights = [
        f"Your most productive day is {_best(by_day)}",
        f"You prefer {_best(by_difficulty)} difficulty quests",
    ]
    if state.level >= 10:
        insights.append(f"Great progress! You've reached level {state.level}")
    if state.daily_streak >= 7:
        insights.append(f"Amazing {state.daily_streak}-day streak! Keep it up!")
    elif state.daily_streak == 0:
        insights.append("Start a new streak by completing a quest today!")
    return insights
