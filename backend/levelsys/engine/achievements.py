"""
Achievement catalog and evaluation.

evaluate() is pure: it reads a snapshot of the character and returns the ids
that became satisfied. Recording the unlock and notifying is the engine's job.
"""
from dataclasses import dataclass, replace
from typing import Callable

from ..models import CharacterState
from .quests import completed_quest_count
from .tiers import tier_of


@dataclass(frozen=True)
class Snapshot:
    completed_quests: int
    experience: int
    total_stats: int
    stats: dict[str, int]
    tiers: list[str]
    currency: int
    skill_points: int
    skill_levels: list[tuple[int, int]]   # (level, max)
    unlocked: int


@dataclass(frozen=True)
class Achievement:
    id: str
    icon: str
    name: str
    description: str
    check: Callable[[Snapshot], bool]


def _stat_at(stat: str, threshold: int) -> Callable[[Snapshot], bool]:
    return lambda s: s.stats.get(stat, 0) >= threshold


def _any_tier(match: Callable[[str], bool]) -> Callable[[Snapshot], bool]:
    return lambda s: any(match(t) for t in s.tiers)


ACHIEVEMENTS: list[Achievement] = [
    # Quests
    Achievement("first_steps",    "🏆", "First Steps",    "Complete your first quest", lambda s: s.completed_quests >= 1),
    Achievement("quest_master",   "🎯", "Quest Master",   "Complete 10 quests",        lambda s: s.completed_quests >= 10),
    Achievement("quest_veteran",  "🎖️", "Quest Veteran",  "Complete 25 quests",        lambda s: s.completed_quests >= 25),
    Achievement("quest_legend",   "👑", "Quest Legend",   "Complete 50 quests",        lambda s: s.completed_quests >= 50),
    Achievement("quest_god",      "⚡", "Quest God",      "Complete 100 quests",       lambda s: s.completed_quests >= 100),
    Achievement("quest_immortal", "🌟", "Quest Immortal", "Complete 200 quests",       lambda s: s.completed_quests >= 200),

    # Experience
    Achievement("xp_novice",      "📈", "XP Novice",      "Earn 100 XP",   lambda s: s.experience >= 100),
    Achievement("xp_adept",       "📊", "XP Adept",       "Earn 500 XP",   lambda s: s.experience >= 500),
    Achievement("xp_expert",      "📋", "XP Expert",      "Earn 1000 XP",  lambda s: s.experience >= 1000),
    Achievement("xp_master",      "📜", "XP Master",      "Earn 2500 XP",  lambda s: s.experience >= 2500),
    Achievement("xp_grandmaster", "🎓", "XP Grandmaster", "Earn 5000 XP",  lambda s: s.experience >= 5000),
    Achievement("xp_legend",      "🏅", "XP Legend",      "Earn 10000 XP", lambda s: s.experience >= 10000),

    # Total stat points
    Achievement("stat_builder",  "💪", "Stat Builder",  "Reach 100 total stat points",  lambda s: s.total_stats >= 100),
    Achievement("stat_warrior",  "⚔️", "Stat Warrior",  "Reach 250 total stat points",  lambda s: s.total_stats >= 250),
    Achievement("stat_champion", "🛡️", "Stat Champion", "Reach 500 total stat points",  lambda s: s.total_stats >= 500),
    Achievement("stat_legend",   "👑", "Stat Legend",   "Reach 1000 total stat points", lambda s: s.total_stats >= 1000),
    Achievement("stat_god",      "🌟", "Stat God",      "Reach 2000 total stat points", lambda s: s.total_stats >= 2000),

    # Tiers; each band excludes the ones above it
    Achievement("tier_climber", "🔥", "Tier Climber", "Get any stat to A tier",
                _any_tier(lambda t: t.startswith("A"))),
    Achievement("tier_master",  "⭐", "Tier Master",  "Get any stat to S tier",
                _any_tier(lambda t: t.startswith("S") and not t.startswith("SS"))),
    Achievement("tier_legend",  "💎", "Tier Legend",  "Get any stat to SS tier",
                _any_tier(lambda t: t.startswith("SS") and not t.startswith("SSS"))),
    Achievement("tier_god",     "👑", "Tier God",     "Get any stat to SSS tier",
                _any_tier(lambda t: t == "SSS")),

    # Skills
    Achievement("skill_novice",    "🎯", "Skill Novice",    "Upgrade any skill to level 2",
                lambda s: any(lvl >= 2 for lvl, _ in s.skill_levels)),
    Achievement("skill_adept",     "🎪", "Skill Adept",     "Upgrade any skill to level 3",
                lambda s: any(lvl >= 3 for lvl, _ in s.skill_levels)),
    Achievement("skill_master",    "🎖️", "Skill Master",    "Max out any skill",
                lambda s: any(lvl >= mx for lvl, mx in s.skill_levels)),
    Achievement("skill_collector", "🏆", "Skill Collector", "Max out all skills",
                lambda s: all(lvl >= mx for lvl, mx in s.skill_levels)),

    # Individual stats
    Achievement("strength_novice",  "💪", "Strength Novice",  "Get STRENGTH to 50",  _stat_at("STRENGTH", 50)),
    Achievement("strength_warrior", "⚔️", "Strength Warrior", "Get STRENGTH to 100", _stat_at("STRENGTH", 100)),
    Achievement("strength_titan",   "🏔️", "Strength Titan",   "Get STRENGTH to 200", _stat_at("STRENGTH", 200)),

    Achievement("agility_runner", "🏃", "Agility Runner", "Get AGILITY to 50",  _stat_at("AGILITY", 50)),
    Achievement("agility_ninja",  "🥷", "Agility Ninja",  "Get AGILITY to 100", _stat_at("AGILITY", 100)),
    Achievement("agility_flash",  "⚡", "Agility Flash",  "Get AGILITY to 200", _stat_at("AGILITY", 200)),

    Achievement("vitality_hardy",    "❤️", "Vitality Hardy",    "Get VITALITY to 50",  _stat_at("VITALITY", 50)),
    Achievement("vitality_tank",     "🛡️", "Vitality Tank",     "Get VITALITY to 100", _stat_at("VITALITY", 100)),
    Achievement("vitality_immortal", "💎", "Vitality Immortal", "Get VITALITY to 200", _stat_at("VITALITY", 200)),

    Achievement("creativity_artist",    "🎨", "Creativity Artist",    "Get CREATIVITY to 50",  _stat_at("CREATIVITY", 50)),
    Achievement("creativity_genius",    "🧠", "Creativity Genius",    "Get CREATIVITY to 100", _stat_at("CREATIVITY", 100)),
    Achievement("creativity_visionary", "🌟", "Creativity Visionary", "Get CREATIVITY to 200", _stat_at("CREATIVITY", 200)),

    Achievement("logic_thinker",    "🤔", "Logic Thinker",    "Get LOGIC to 50",  _stat_at("LOGIC", 50)),
    Achievement("logic_scholar",    "📚", "Logic Scholar",    "Get LOGIC to 100", _stat_at("LOGIC", 100)),
    Achievement("logic_mastermind", "🧩", "Logic Mastermind", "Get LOGIC to 200", _stat_at("LOGIC", 200)),

    Achievement("clarity_focused",     "🎯", "Clarity Focused",     "Get CLARITY to 50",  _stat_at("CLARITY", 50)),
    Achievement("clarity_zen",         "🧘", "Clarity Zen",         "Get CLARITY to 100", _stat_at("CLARITY", 100)),
    Achievement("clarity_enlightened", "✨", "Clarity Enlightened", "Get CLARITY to 200", _stat_at("CLARITY", 200)),

    Achievement("wisdom_sage",    "📜", "Wisdom Sage",    "Get WISDOM to 50",  _stat_at("WISDOM", 50)),
    Achievement("wisdom_oracle",  "🔮", "Wisdom Oracle",  "Get WISDOM to 100", _stat_at("WISDOM", 100)),
    Achievement("wisdom_ancient", "🏛️", "Wisdom Ancient", "Get WISDOM to 200", _stat_at("WISDOM", 200)),

    Achievement("charisma_charming", "😊", "Charisma Charming", "Get CHARISMA to 50",  _stat_at("CHARISMA", 50)),
    Achievement("charisma_leader",   "👑", "Charisma Leader",   "Get CHARISMA to 100", _stat_at("CHARISMA", 100)),
    Achievement("charisma_legend",   "🌟", "Charisma Legend",   "Get CHARISMA to 200", _stat_at("CHARISMA", 200)),

    # Currency
    Achievement("coin_saver",   "💰", "Coin Saver",   "Collect 100 coins",  lambda s: s.currency >= 100),
    Achievement("coin_hoarder", "💎", "Coin Hoarder", "Collect 500 coins",  lambda s: s.currency >= 500),
    Achievement("coin_tycoon",  "🏦", "Coin Tycoon",  "Collect 1000 coins", lambda s: s.currency >= 1000),

    # Skill points
    Achievement("sp_collector", "⭐", "SP Collector", "Collect 10 skill points", lambda s: s.skill_points >= 10),
    Achievement("sp_master",    "🎖️", "SP Master",    "Collect 25 skill points", lambda s: s.skill_points >= 25),
    Achievement("sp_legend",    "👑", "SP Legend",    "Collect 50 skill points", lambda s: s.skill_points >= 50),

    # Special; the breadth pair must stay last so they count this pass's unlocks
    Achievement("balanced_warrior",   "⚖️", "Balanced Warrior",   "Get all stats to 25+",
                lambda s: all(v >= 25 for v in s.stats.values())),
    Achievement("perfectionist",      "💯", "Perfectionist",      "Get all stats to 100+",
                lambda s: all(v >= 100 for v in s.stats.values())),
    Achievement("completionist",      "🏆", "Completionist",      "Unlock 30 achievements",
                lambda s: s.unlocked >= 30),
    Achievement("achievement_hunter", "🎯", "Achievement Hunter", "Unlock 50 achievements",
                lambda s: s.unlocked >= 50),
]

ACHIEVEMENT_BY_ID: dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}


def take_snapshot(state: CharacterState) -> Snapshot:
    mega = bool(state.mega_quests_completed)
    return Snapshot(
        completed_quests=completed_quest_count(state),
        experience=state.experience,
        total_stats=sum(state.stats.values()),
        stats=dict(state.stats),
        tiers=[tier_of(v, mega) for v in state.stats.values()],
        currency=state.currency,
        skill_points=state.skill_points,
        skill_levels=[(sk.level, sk.max) for sk in state.skills.values()],
        unlocked=len(state.unlocked_achievements),
    )


def evaluate(state: CharacterState) -> list[str]:
    """
    Ids of achievements that are satisfied but not yet unlocked, in catalog
    order. Does not modify state.
    """
    already = set(state.unlocked_achievements)
    snap = take_snapshot(state)
    newly: list[str] = []
    for achievement in ACHIEVEMENTS:
        if achievement.id in already:
            continue
        snap = replace(snap, unlocked=len(already) + len(newly))
        if achievement.check(snap):
            newly.append(achievement.id)
    return newly


def catalog_with_status(state: CharacterState) -> list[dict]:
    unlocked = set(state.unlocked_achievements)
    return [
        {
            "id": a.id,
            "icon": a.icon,
            "name": a.name,
            "description": a.description,
            "unlocked": a.id in unlocked,
        }
        for a in ACHIEVEMENTS
    ]
