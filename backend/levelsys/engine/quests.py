"""
Quest registry: weekday quests stored on the character, looked up by id.
"""
from datetime import date, datetime

from ..models import DAYS, CharacterState, Quest
from .character import validate_stat_boosts
from .errors import NotFoundError, ValidationError
from .rewards import MULTIPLIERS

CHALLENGE_DIFFICULTIES = ("Weekly", "Monthly")


def day_name(today: date) -> str:
    return DAYS[today.weekday()]


def _validate_fields(
    state: CharacterState, name: str, day: str, difficulty: str,
    experience_reward: int, stat_boosts: dict,
) -> tuple[str, dict[str, int]]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Please enter a quest name")
    if day not in DAYS:
        raise ValidationError(f"Unknown day: {day}")
    if difficulty not in MULTIPLIERS:
        raise ValidationError(f"Unknown difficulty: {difficulty}")
    if experience_reward < 0:
        raise ValidationError("Experience reward cannot be negative")
    return name, validate_stat_boosts(state, stat_boosts)


def create_quest(
    state: CharacterState,
    name: str,
    description: str = "",
    experience_reward: int = 10,
    stat_boosts: dict | None = None,
    day: str = "Monday",
    difficulty: str = "Normal",
    now: datetime | None = None,
) -> Quest:
    name, boosts = _validate_fields(state, name, day, difficulty, experience_reward, stat_boosts or {})
    quest = Quest(
        name=name,
        description=(description or "").strip(),
        experience_reward=experience_reward,
        stat_boosts=boosts,
        day=day,
        difficulty=difficulty,
        created_at=now or datetime.now(),
    )
    state.quests.append(quest)
    return quest


def get_quest(state: CharacterState, quest_id: str) -> Quest:
    for quest in state.quests:
        if quest.id == quest_id:
            return quest
    raise NotFoundError(f"No quest with id {quest_id}")


def update_quest(
    state: CharacterState,
    quest_id: str,
    name: str,
    description: str = "",
    experience_reward: int = 10,
    stat_boosts: dict | None = None,
    day: str = "Monday",
    difficulty: str = "Normal",
) -> Quest:
    """Edit a weekday quest. Completion flags and timestamps are kept."""
    quest = get_quest(state, quest_id)
    if quest.difficulty in CHALLENGE_DIFFICULTIES:
        raise ValidationError("Challenges cannot be edited as quests")
    name, boosts = _validate_fields(state, name, day, difficulty, experience_reward, stat_boosts or {})

    quest.name = name
    quest.description = (description or "").strip()
    quest.experience_reward = experience_reward
    quest.stat_boosts = boosts
    quest.day = day
    quest.difficulty = difficulty
    return quest


def delete_quest(state: CharacterState, quest_id: str) -> Quest:
    quest = get_quest(state, quest_id)
    state.quests.remove(quest)
    return quest


def quests_for_day(state: CharacterState, day: str) -> list[Quest]:
    return [q for q in state.quests if q.day == day]


def completed_quest_count(state: CharacterState) -> int:
    return sum(1 for q in state.quests if q.completed)
