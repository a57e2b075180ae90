"""
Character state rules: the default template, level recomputation, the stat
registry and skill upgrades.

Functions here validate first and mutate second, so a raised error always
leaves the state untouched.
"""
import math

from ..models import CharacterState, Quest, Skill
from .errors import DuplicateError, LastStatError, NotFoundError, ValidationError
from .rewards import compute_level
from .tiers import MAX_STAT, is_ss_tier, tier_of

DEFAULT_STATS = [
    "STRENGTH", "AGILITY", "VITALITY", "CREATIVITY",
    "LOGIC", "CLARITY", "WISDOM", "CHARISMA",
]

DEFAULT_SKILLS: dict[str, str] = {
    "Warrior": "Increases STRENGTH and VITALITY gains",
    "Athlete": "Increases AGILITY and VITALITY gains",
    "Scholar": "Increases LOGIC and WISDOM gains",
    "Artist":  "Increases CREATIVITY and CHARISMA gains",
    "Monk":    "Increases CLARITY and WISDOM gains",
    "Leader":  "Increases CHARISMA and LOGIC gains",
}

MAX_NAME_LENGTH = 30


def default_character(character_name: str = "Hero") -> CharacterState:
    return CharacterState(
        character_name=character_name,
        stats={name: 0 for name in DEFAULT_STATS},
        skills={
            name: Skill(level=1, max=5, cost=1, description=desc)
            for name, desc in DEFAULT_SKILLS.items()
        },
    )


def total_stats(state: CharacterState) -> int:
    return sum(state.stats.values())


def recompute_level(state: CharacterState) -> int:
    state.level = compute_level(state.stats)
    return state.level


def clamp_stat(value: int) -> int:
    return max(0, min(MAX_STAT, value))


def stat_tiers(state: CharacterState) -> dict[str, str]:
    mega = bool(state.mega_quests_completed)
    return {name: tier_of(value, mega) for name, value in state.stats.items()}


def has_ss_stat(state: CharacterState) -> bool:
    return any(is_ss_tier(tier) for tier in stat_tiers(state).values())


def rename_character(state: CharacterState, name: str) -> None:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Character name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Character name must be at most {MAX_NAME_LENGTH} characters")
    state.character_name = name


# ── Stat registry ─────────────────────────────────────────────────────────────

def normalize_stat_name(name: str) -> str:
    name = (name or "").strip().upper()
    if not name:
        raise ValidationError("Please enter a stat name")
    return name


def _all_quests(state: CharacterState) -> list[Quest]:
    quests = list(state.quests)
    for slot in (state.weekly_challenge, state.monthly_challenge):
        if slot is not None:
            quests.append(slot)
    quests.extend(state.custom_challenges)
    return quests


def add_stat(state: CharacterState, name: str) -> str:
    name = normalize_stat_name(name)
    if name in state.stats:
        raise DuplicateError(f"A stat named {name} already exists")
    state.stats[name] = 0
    return name


def rename_stat(state: CharacterState, old: str, new: str) -> str:
    old = normalize_stat_name(old)
    if old not in state.stats:
        raise NotFoundError(f"No stat named {old}")
    new = normalize_stat_name(new)
    if new == old:
        return new
    if new in state.stats:
        raise DuplicateError(f"A stat named {new} already exists")

    # rebuild so the renamed stat keeps its position
    state.stats = {(new if k == old else k): v for k, v in state.stats.items()}
    for quest in _all_quests(state):
        if old in quest.stat_boosts:
            quest.stat_boosts = {
                (new if k == old else k): v for k, v in quest.stat_boosts.items()
            }
    return new


def delete_stat(state: CharacterState, name: str) -> None:
    name = normalize_stat_name(name)
    if name not in state.stats:
        raise NotFoundError(f"No stat named {name}")
    if len(state.stats) <= 1:
        raise LastStatError("Cannot delete the last stat")

    del state.stats[name]
    for quest in _all_quests(state):
        quest.stat_boosts.pop(name, None)
    recompute_level(state)


def validate_stat_boosts(state: CharacterState, stat_boosts: dict[str, int]) -> dict[str, int]:
    """Canonicalize boost keys and reject stats the character doesn't have."""
    boosts: dict[str, int] = {}
    for stat, value in (stat_boosts or {}).items():
        key = normalize_stat_name(stat)
        if key not in state.stats:
            raise ValidationError(f"Unknown stat: {key}")
        if value <= 0:
            raise ValidationError(f"Boost for {key} must be positive")
        boosts[key] = int(value)
    return boosts


# ── Skills ────────────────────────────────────────────────────────────────────

def upgrade_skill(state: CharacterState, skill_name: str) -> bool:
    """
    Spend skill points on one skill level. Not enough points or an already
    maxed skill is a silent no-op (returns False); an unknown skill raises.
    """
    skill = state.skills.get(skill_name)
    if skill is None:
        raise NotFoundError(f"No skill named {skill_name}")
    if state.skill_points < skill.cost or skill.level >= skill.max:
        return False

    state.skill_points -= skill.cost
    skill.level += 1
    skill.cost = math.floor(skill.cost * 1.5)
    return True
