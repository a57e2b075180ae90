import re
import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, PositiveInt, field_validator

UUID4_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
)

DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
CHALLENGE_DAY = "Challenge"

Difficulty = Literal["Easy", "Normal", "Hard", "Weekly", "Monthly", "Mega"]
CosmeticSlot = Literal["hat", "weapon", "accessory"]


def _validate_uuid4(v: str) -> str:
    if not UUID4_RE.match(v.lower()):
        raise ValueError("must be a valid UUID v4")
    return v.lower()


def new_id() -> str:
    return uuid.uuid4().hex


# ── Persistent state ──────────────────────────────────────────────────────────

class Skill(BaseModel):
    level: int = 1
    max: int = 5
    cost: int = 1
    description: str = ""


class Quest(BaseModel):
    """A weekday quest, or a challenge when day == "Challenge"."""
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    experience_reward: int = Field(default=10, ge=0)
    stat_boosts: dict[str, int] = {}
    day: str = "Monday"
    difficulty: str = "Normal"
    completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("stat_boosts")
    @classmethod
    def upper_boost_keys(cls, v):
        # stat keys are stored upper-case; see CharacterState.clamp_stats
        return {name.upper(): value for name, value in v.items()}

    @property
    def is_challenge(self) -> bool:
        return self.day == CHALLENGE_DAY


class Cosmetics(BaseModel):
    hat: Optional[str] = None
    weapon: Optional[str] = None
    accessory: Optional[str] = None


class CharacterState(BaseModel):
    character_name: str = "Hero"
    level: int = 1
    experience: int = Field(default=0, ge=0)
    currency: int = Field(default=0, ge=0)
    skill_points: int = Field(default=0, ge=0)
    stats: dict[str, int] = {}
    skills: dict[str, Skill] = {}
    quests: list[Quest] = []
    daily_streak: int = Field(default=0, ge=0)
    last_completion_date: Optional[date] = None
    milestones_claimed: list[int] = []
    streak_rewards_claimed: list[int] = []
    unlocked_achievements: list[str] = []
    mega_quests_completed: list[str] = []
    weekly_challenge: Optional[Quest] = None
    monthly_challenge: Optional[Quest] = None
    custom_challenges: list[Quest] = []
    cosmetics: Cosmetics = Field(default_factory=Cosmetics)
    owned_cosmetics: list[str] = []
    last_midnight_reset: Optional[date] = None
    model_config = {"extra": "ignore"}

    @field_validator("stats")
    @classmethod
    def clamp_stats(cls, v):
        return {name.upper(): max(0, min(333, int(value))) for name, value in v.items()}


# ── Request bodies ────────────────────────────────────────────────────────────

class DeviceRegister(BaseModel):
    device_id: str
    character_name: str = Field(min_length=1, max_length=30)

    @field_validator("device_id")
    @classmethod
    def validate_device_id(cls, v):
        return _validate_uuid4(v)


class ProfilePatch(BaseModel):
    character_name: str = Field(min_length=1, max_length=30)


class QuestBody(BaseModel):
    name: str = Field(max_length=100)
    description: str = Field(default="", max_length=500)
    experience_reward: int = Field(default=10, ge=0, le=10_000)
    stat_boosts: dict[str, PositiveInt] = {}
    day: str = "Monday"
    difficulty: Difficulty = "Normal"


class ChallengeBody(BaseModel):
    name: str = Field(max_length=100)
    description: str = Field(default="", max_length=500)
    experience_reward: int = Field(default=100, ge=0, le=10_000)
    stat_boosts: dict[str, PositiveInt] = {}
    difficulty: Difficulty = "Weekly"


class StatBody(BaseModel):
    name: str = Field(max_length=30)


class EquipBody(BaseModel):
    item_id: str
