"""
Weekly/monthly challenge templates and custom challenge CRUD.
"""
import random
from dataclasses import dataclass
from datetime import datetime

from ..models import CHALLENGE_DAY, CharacterState, Quest
from .character import validate_stat_boosts
from .errors import NotFoundError, ValidationError
from .rewards import MULTIPLIERS


@dataclass(frozen=True)
class ChallengeTemplate:
    name: str
    description: str
    experience_reward: int
    stat_boosts: dict[str, int]


WEEKLY_TEMPLATES: list[ChallengeTemplate] = [
    ChallengeTemplate("Fitness Week",     "Complete 5 fitness-related tasks", 100, {"STRENGTH": 5, "VITALITY": 5}),
    ChallengeTemplate("Learning Sprint",  "Study for 7 hours total",          120, {"LOGIC": 6, "WISDOM": 4}),
    ChallengeTemplate("Creative Burst",   "Work on creative projects daily",  110, {"CREATIVITY": 7, "CHARISMA": 3}),
    ChallengeTemplate("Social Challenge", "Connect with 3 new people",         90, {"CHARISMA": 6, "CLARITY": 4}),
    ChallengeTemplate("Skill Builder",    "Practice a skill for 5 days",      100, {"AGILITY": 4, "LOGIC": 6}),
]

MONTHLY_TEMPLATES: list[ChallengeTemplate] = [
    ChallengeTemplate("Master Quest",       "Complete 50 quests this month",    300, {"STRENGTH": 10, "VITALITY": 10}),
    ChallengeTemplate("Knowledge Seeker",   "Read 4 books or courses",          350, {"LOGIC": 15, "WISDOM": 10}),
    ChallengeTemplate("Creative Mastery",   "Finish a major creative project",  320, {"CREATIVITY": 15, "CHARISMA": 8}),
    ChallengeTemplate("Leadership Journey", "Lead 3 group activities",          280, {"CHARISMA": 12, "CLARITY": 10}),
    ChallengeTemplate("Peak Performance",   "Achieve personal best in fitness", 300, {"STRENGTH": 12, "AGILITY": 12}),
]


def _from_template(template: ChallengeTemplate, difficulty: str, now: datetime) -> Quest:
    return Quest(
        name=template.name,
        description=template.description,
        experience_reward=template.experience_reward,
        stat_boosts=dict(template.stat_boosts),
        day=CHALLENGE_DAY,
        difficulty=difficulty,
        completed=False,
        created_at=now,
    )


def generate_weekly(state: CharacterState, rng: random.Random | None = None,
                    now: datetime | None = None) -> Quest:
    """Replace the weekly slot with a random template."""
    template = (rng or random).choice(WEEKLY_TEMPLATES)
    state.weekly_challenge = _from_template(template, "Weekly", now or datetime.now())
    return state.weekly_challenge


def generate_monthly(state: CharacterState, rng: random.Random | None = None,
                     now: datetime | None = None) -> Quest:
    """Replace the monthly slot with a random template."""
    template = (rng or random).choice(MONTHLY_TEMPLATES)
    state.monthly_challenge = _from_template(template, "Monthly", now or datetime.now())
    return state.monthly_challenge


def list_challenges(state: CharacterState) -> list[Quest]:
    challenges = []
    if state.weekly_challenge is not None:
        challenges.append(state.weekly_challenge)
    if state.monthly_challenge is not None:
        challenges.append(state.monthly_challenge)
    challenges.extend(state.custom_challenges)
    return challenges


def find_challenge(state: CharacterState, challenge_id: str) -> Quest | None:
    for challenge in list_challenges(state):
        if challenge.id == challenge_id:
            return challenge
    return None


def get_challenge(state: CharacterState, challenge_id: str) -> Quest:
    challenge = find_challenge(state, challenge_id)
    if challenge is None:
        raise NotFoundError(f"No challenge with id {challenge_id}")
    return challenge


def _validate(state: CharacterState, name: str, difficulty: str,
              experience_reward: int, stat_boosts: dict | None) -> tuple[str, dict[str, int]]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Please enter a challenge name")
    if difficulty not in MULTIPLIERS:
        raise ValidationError(f"Unknown difficulty: {difficulty}")
    if experience_reward < 0:
        raise ValidationError("Experience reward cannot be negative")
    return name, validate_stat_boosts(state, stat_boosts or {})


def create_challenge(
    state: CharacterState,
    name: str,
    description: str = "",
    experience_reward: int = 100,
    stat_boosts: dict | None = None,
    difficulty: str = "Weekly",
    now: datetime | None = None,
) -> Quest:
    name, boosts = _validate(state, name, difficulty, experience_reward, stat_boosts)
    challenge = Quest(
        name=name,
        description=(description or "").strip(),
        experience_reward=experience_reward,
        stat_boosts=boosts,
        day=CHALLENGE_DAY,
        difficulty=difficulty,
        created_at=now or datetime.now(),
    )
    state.custom_challenges.append(challenge)
    return challenge


def update_challenge(
    state: CharacterState,
    challenge_id: str,
    name: str,
    description: str = "",
    experience_reward: int = 100,
    stat_boosts: dict | None = None,
    difficulty: str = "Weekly",
) -> Quest:
    """
    Edit any challenge in place, whichever slot holds it. Editing resets the
    completion flag, matching a freshly authored challenge.
    """
    challenge = get_challenge(state, challenge_id)
    name, boosts = _validate(state, name, difficulty, experience_reward, stat_boosts)

    challenge.name = name
    challenge.description = (description or "").strip()
    challenge.experience_reward = experience_reward
    challenge.stat_boosts = boosts
    challenge.difficulty = difficulty
    challenge.completed = False
    challenge.completed_at = None
    return challenge


def delete_challenge(state: CharacterState, challenge_id: str) -> Quest:
    challenge = get_challenge(state, challenge_id)
    if state.weekly_challenge is not None and state.weekly_challenge.id == challenge_id:
        state.weekly_challenge = None
    elif state.monthly_challenge is not None and state.monthly_challenge.id == challenge_id:
        state.monthly_challenge = None
    else:
        state.custom_challenges = [c for c in state.custom_challenges if c.id != challenge_id]
    return challenge
