"""
The progression engine: the single entry point for every mutation of a
CharacterState.

An Engine wraps one state for the duration of a unit of work (one HTTP
request, one sweep iteration). Public operations are atomic from the caller's
point of view: they validate, mutate, then drain the deferred work queue
(achievement evaluation) before returning. Calling back into the engine from
inside an operation, e.g. from a notifier, raises RuntimeError.
"""
import logging
import random
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterator

from ..models import CharacterState, Quest
from . import challenges as challenge_ops
from . import character as character_ops
from . import cosmetics as cosmetic_ops
from . import quests as quest_ops
from .achievements import ACHIEVEMENT_BY_ID, evaluate
from .errors import GatingError, NotFoundError
from .rewards import (
    MILESTONE_LEVELS, STREAK_THRESHOLDS,
    boosted_stat, milestone_reward, quest_rewards, streak_reward,
)
from .streak import advance_streak

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    ACHIEVEMENT = "achievement"
    STREAK = "streak"
    MILESTONE = "milestone"


@dataclass
class Notification:
    kind: NotificationKind
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, **self.payload}


Notifier = Callable[[Notification], None]


def _discard(_: Notification) -> None:
    pass


class Engine:
    def __init__(
        self,
        state: CharacterState,
        notify: Notifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
        rng: random.Random | None = None,
    ):
        self.state = state
        self._notify = notify or _discard
        self._clock = clock
        self._rng = rng or random.Random()
        self._deferred: deque[Callable[[], None]] = deque()
        self._busy = False
        # level is derived; never trust a stored value
        character_ops.recompute_level(self.state)

    # ── Operation bracket ─────────────────────────────────────────────────────

    @contextmanager
    def _operation(self, evaluate_after: bool = True) -> Iterator[None]:
        if self._busy:
            raise RuntimeError("Engine operations cannot be nested")
        self._busy = True
        try:
            yield
            if evaluate_after:
                self._deferred.append(self._evaluate_achievements)
            while self._deferred:
                self._deferred.popleft()()
        finally:
            self._deferred.clear()
            self._busy = False

    def _today(self) -> date:
        return self._clock().date()

    # ── Lookups ───────────────────────────────────────────────────────────────

    def find(self, quest_id: str) -> Quest:
        """A weekday quest or any challenge, by id."""
        for quest in self.state.quests:
            if quest.id == quest_id:
                return quest
        challenge = challenge_ops.find_challenge(self.state, quest_id)
        if challenge is None:
            raise NotFoundError(f"No quest or challenge with id {quest_id}")
        return challenge

    def quests_for_day(self, day: str | None = None) -> list[Quest]:
        return quest_ops.quests_for_day(self.state, day or quest_ops.day_name(self._today()))

    # ── Completion state machine ──────────────────────────────────────────────

    def complete(self, quest_id: str) -> bool:
        """
        Incomplete -> Complete. Returns False when the quest was already
        complete (rewards are applied exactly once per transition).
        """
        with self._operation():
            quest = self.find(quest_id)
            if quest.completed:
                return False
            if quest.difficulty == "Mega" and not character_ops.has_ss_stat(self.state):
                raise GatingError("You need at least one SS+ stat to attempt Mega quests!")

            now = self._clock()
            quest.completed = True
            quest.completed_at = now

            state = self.state
            xp, coins, sp = quest_rewards(quest.experience_reward, quest.difficulty)
            state.experience += xp
            state.currency += coins
            state.skill_points += sp

            for stat, boost in quest.stat_boosts.items():
                if stat in state.stats:
                    state.stats[stat] = character_ops.clamp_stat(
                        state.stats[stat] + boosted_stat(boost, quest.difficulty)
                    )

            if quest.difficulty == "Mega":
                state.mega_quests_completed.append(quest.name)

            old_level = state.level
            character_ops.recompute_level(state)

            self._update_streak(now.date())
            self._dispense_streak_rewards()
            if state.level > old_level:
                self._dispense_milestones()

            logger.info("Completed %r (%s): +%d XP, +%d coins, +%d SP, level %d",
                        quest.name, quest.difficulty, xp, coins, sp, state.level)
            return True

    def redo(self, quest_id: str) -> bool:
        """
        Complete -> Incomplete. Only the flag and timestamp revert; rewards
        already granted are kept.
        """
        with self._operation(evaluate_after=False):
            quest = self.find(quest_id)
            if not quest.completed:
                return False
            quest.completed = False
            quest.completed_at = None
            return True

    def _update_streak(self, today: date) -> None:
        state = self.state
        new_streak, broken = advance_streak(state.last_completion_date, state.daily_streak, today)
        if broken:
            state.streak_rewards_claimed = []
        state.daily_streak = new_streak
        state.last_completion_date = today

    def _dispense_streak_rewards(self) -> None:
        state = self.state
        for threshold in STREAK_THRESHOLDS:
            if state.daily_streak >= threshold and threshold not in state.streak_rewards_claimed:
                state.streak_rewards_claimed.append(threshold)
                coins, sp = streak_reward(threshold)
                state.currency += coins
                state.skill_points += sp
                self._notify(Notification(NotificationKind.STREAK, {
                    "streak": threshold, "coins": coins, "skill_points": sp,
                }))

    def _dispense_milestones(self) -> None:
        state = self.state
        for threshold in MILESTONE_LEVELS:
            if state.level >= threshold and threshold not in state.milestones_claimed:
                state.milestones_claimed.append(threshold)
                coins, sp = milestone_reward(threshold)
                state.currency += coins
                state.skill_points += sp
                self._notify(Notification(NotificationKind.MILESTONE, {
                    "level": threshold, "coins": coins, "skill_points": sp,
                }))

    # ── Achievements ──────────────────────────────────────────────────────────

    def _evaluate_achievements(self) -> None:
        for achievement_id in evaluate(self.state):
            self._unlock(achievement_id)

    def _unlock(self, achievement_id: str) -> bool:
        achievement = ACHIEVEMENT_BY_ID.get(achievement_id)
        if achievement is None:
            raise NotFoundError(f"No achievement with id {achievement_id}")
        if achievement_id in self.state.unlocked_achievements:
            return False
        self.state.unlocked_achievements.append(achievement_id)
        self._notify(Notification(NotificationKind.ACHIEVEMENT, {
            "id": achievement.id,
            "icon": achievement.icon,
            "name": achievement.name,
            "description": achievement.description,
        }))
        return True

    def unlock(self, achievement_id: str) -> bool:
        with self._operation(evaluate_after=False):
            return self._unlock(achievement_id)

    def check_achievements(self) -> None:
        """Safe to call at any time; never re-fires an unlocked id."""
        with self._operation():
            pass

    # ── Skills ────────────────────────────────────────────────────────────────

    def upgrade_skill(self, skill_name: str) -> bool:
        with self._operation():
            return character_ops.upgrade_skill(self.state, skill_name)

    # ── Stats ─────────────────────────────────────────────────────────────────

    def add_stat(self, name: str) -> str:
        with self._operation():
            return character_ops.add_stat(self.state, name)

    def rename_stat(self, old: str, new: str) -> str:
        with self._operation():
            return character_ops.rename_stat(self.state, old, new)

    def delete_stat(self, name: str) -> None:
        with self._operation():
            character_ops.delete_stat(self.state, name)

    def rename_character(self, name: str) -> None:
        with self._operation(evaluate_after=False):
            character_ops.rename_character(self.state, name)

    # ── Quest registry ────────────────────────────────────────────────────────

    def create_quest(self, **fields) -> Quest:
        with self._operation(evaluate_after=False):
            return quest_ops.create_quest(self.state, now=self._clock(), **fields)

    def update_quest(self, quest_id: str, **fields) -> Quest:
        with self._operation(evaluate_after=False):
            return quest_ops.update_quest(self.state, quest_id, **fields)

    def delete_quest(self, quest_id: str) -> Quest:
        with self._operation():
            return quest_ops.delete_quest(self.state, quest_id)

    # ── Challenges ────────────────────────────────────────────────────────────

    def generate_weekly(self) -> Quest:
        with self._operation(evaluate_after=False):
            return challenge_ops.generate_weekly(self.state, rng=self._rng, now=self._clock())

    def generate_monthly(self) -> Quest:
        with self._operation(evaluate_after=False):
            return challenge_ops.generate_monthly(self.state, rng=self._rng, now=self._clock())

    def create_challenge(self, **fields) -> Quest:
        with self._operation(evaluate_after=False):
            return challenge_ops.create_challenge(self.state, now=self._clock(), **fields)

    def update_challenge(self, challenge_id: str, **fields) -> Quest:
        with self._operation(evaluate_after=False):
            return challenge_ops.update_challenge(self.state, challenge_id, **fields)

    def delete_challenge(self, challenge_id: str) -> Quest:
        with self._operation(evaluate_after=False):
            return challenge_ops.delete_challenge(self.state, challenge_id)

    # ── Cosmetics ─────────────────────────────────────────────────────────────

    def buy_cosmetic(self, item_id: str) -> bool:
        with self._operation():
            return cosmetic_ops.buy(self.state, item_id)

    def equip_cosmetic(self, slot: str, item_id: str) -> None:
        with self._operation(evaluate_after=False):
            cosmetic_ops.equip(self.state, slot, item_id)

    def unequip_cosmetic(self, slot: str) -> None:
        with self._operation(evaluate_after=False):
            cosmetic_ops.unequip(self.state, slot)

    # ── Daily sweep ───────────────────────────────────────────────────────────

    def midnight_reset(self, today: date | None = None) -> bool:
        """
        Clear completion on every weekday quest once per calendar day.
        Challenges keep their state. Returns True if the sweep ran.
        """
        with self._operation(evaluate_after=False):
            today = today or self._today()
            if self.state.last_midnight_reset == today:
                return False
            for quest in self.state.quests:
                if quest.completed:
                    quest.completed = False
                    quest.completed_at = None
            self.state.last_midnight_reset = today
            return True
