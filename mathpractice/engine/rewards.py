"""
Reward engine.

Holds the learner's earned-reward set against the static catalog, decides
how likely a reward is at a given checkpoint, grants milestone rewards and
keeps collection progress current.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from loguru import logger

from ..config import RewardConfig, config
from ..errors import PersistenceError
from ..models.problem import DifficultyLevel
from ..models.reward import (
    COLLECTIONS_CATALOG,
    REWARDS_CATALOG,
    CollectionDefinition,
    EarnedReward,
    RewardCollection,
    RewardDefinition,
    RewardTheme,
    RewardTier,
)
from ..utils.persistence import KeyValueStore, StoreKey
from ..utils.validation import get_validator
from .notifications import NotificationChannel, RewardGranted

REWARD_STATE_KIND = "rewards"

# Milestone thresholds for the problems_completed condition
MILESTONE_THRESHOLDS = ((10, "novice"), (25, "enthusiast"), (50, "expert"), (100, "master"))
STREAK_THRESHOLDS = ((5, "streak-5"), (10, "streak-10"), (20, "streak-20"))
LEVEL_REWARDS = {
    1: "level-elementary",
    2: "level-intermediate",
    3: "level-advanced",
    4: "level-expert",
}


@dataclass(frozen=True)
class RewardContext:
    """
    Session context at a reward checkpoint.

    Attributes:
        problem_index: Index of the problem just answered
        total_problems: Problems in the session
        streak: Consecutive correct answers in the session
        difficulty: Level the problem was generated for
        previous_reward_index: Problem index of the last reward shown (-1 for none)
    """

    problem_index: int
    total_problems: int
    streak: int = 0
    difficulty: DifficultyLevel = DifficultyLevel.BEGINNER
    previous_reward_index: int = -1

    @property
    def is_last_problem(self) -> bool:
        return self.total_problems > 0 and self.problem_index == self.total_problems - 1

    @property
    def is_mid_point(self) -> bool:
        return self.total_problems > 0 and self.problem_index == self.total_problems // 2

    @property
    def problems_since_last_reward(self) -> int:
        if self.previous_reward_index < 0:
            return self.problem_index + 1
        return self.problem_index - self.previous_reward_index


def reward_probability(context: RewardContext, settings: Optional[RewardConfig] = None) -> float:
    """
    Probability of offering a reward at this checkpoint.

    Rules are evaluated in order; the first match wins:
    1. Last problem with no reward in the last 2 problems
    2. Streak of 7+ (or 5+)
    3. Exact mid-point with no reward in the last 3 problems
    4. 5+ problems since the last reward
    5. Base chance plus a difficulty bonus
    """
    cfg = settings or config.rewards
    gap = context.problem_index - context.previous_reward_index

    if context.is_last_problem and gap > cfg.last_problem_spacing:
        probability = cfg.last_problem_probability
    elif context.streak >= cfg.high_streak_length:
        probability = cfg.high_streak_probability
    elif context.streak >= cfg.streak_length:
        probability = cfg.streak_probability
    elif context.is_mid_point and gap > cfg.mid_point_spacing:
        probability = cfg.mid_point_probability
    elif context.problems_since_last_reward >= cfg.drought_length:
        probability = cfg.drought_probability
    else:
        bonus = cfg.difficulty_bonus[DifficultyLevel.parse(context.difficulty).rank]
        probability = cfg.base_probability + bonus

    return min(1.0, max(0.0, probability))


class RewardEngine:
    """
    Earned-reward set for one learner, backed by a key-value store.

    Features:
    - Idempotent grants (a reward id is held at most once)
    - Collection progress recomputed on every new grant
    - Checkpoint offers driven by reward_probability and an injected RNG
    - Milestone grants from session conditions
    - RewardGranted events published on the injected channel

    Usage:
        engine = RewardEngine(store, "child-1")
        if engine.award("streak-5"):
            print(engine.new_rewards_count)
    """

    def __init__(
        self,
        store: KeyValueStore,
        learner_context: str,
        module_id: str = "global",
        channel: Optional[NotificationChannel] = None,
        rng: Optional[random.Random] = None,
        catalog: Optional[Mapping[str, RewardDefinition]] = None,
        collections: Optional[Mapping[str, CollectionDefinition]] = None,
    ):
        self.store = store
        self.key = StoreKey(learner_context, module_id, REWARD_STATE_KIND)
        self.channel = channel
        self.rng = rng or random.Random()
        self.catalog: Mapping[str, RewardDefinition] = catalog if catalog is not None else REWARDS_CATALOG
        self.collection_catalog = collections if collections is not None else COLLECTIONS_CATALOG
        self.persistence_error: Optional[PersistenceError] = None

        self._earned: Dict[str, EarnedReward] = {}
        self._new_rewards_count = 0
        self._collections: Dict[str, RewardCollection] = {
            cid: RewardCollection(definition) for cid, definition in self.collection_catalog.items()
        }
        self._load()
        self._recompute_collections()

    # ----- queries -----

    @property
    def earned(self) -> List[EarnedReward]:
        return list(self._earned.values())

    @property
    def new_rewards_count(self) -> int:
        return self._new_rewards_count

    @property
    def collections(self) -> List[RewardCollection]:
        return list(self._collections.values())

    def has(self, reward_id: str) -> bool:
        return reward_id in self._earned

    def probability(self, context: RewardContext) -> float:
        return reward_probability(context)

    # ----- grants -----

    def award(self, reward_id: str) -> bool:
        """Grant reward_id. Returns False if unknown or already held."""
        return self._grant(reward_id) is not None

    def _grant(self, reward_id: str) -> Optional[EarnedReward]:
        definition = self.catalog.get(reward_id)
        if definition is None:
            logger.warning("Unknown reward id: {}", reward_id)
            return None
        if reward_id in self._earned:
            return None

        reward = EarnedReward(definition)
        self._earned[reward_id] = reward
        self._new_rewards_count += 1
        self._recompute_collections(reward_id)
        self._persist()

        logger.info("Reward granted: {} ({})", reward_id, definition.tier.value)
        if self.channel is not None:
            self.channel.publish(RewardGranted(reward))
        return reward

    def select_random(
        self,
        tier: Optional[RewardTier] = None,
        theme: Optional[RewardTheme] = None,
        unheld_only: bool = False,
    ) -> Optional[str]:
        """Uniform draw over the catalog filtered by tier/theme; None if nothing matches."""
        eligible = [
            r.id for r in self.catalog.values()
            if (tier is None or r.tier == tier)
            and (theme is None or r.theme == theme)
            and not (unheld_only and r.id in self._earned)
        ]
        if not eligible:
            return None
        return self.rng.choice(eligible)

    def offer(self, context: RewardContext, theme: Optional[RewardTheme | str] = None) -> Optional[EarnedReward]:
        """
        Checkpoint draw: with probability(context), grant an unheld reward.

        The reward is drawn uniformly from unheld rewards of `theme` and the
        general theme (every unheld reward when theme is None).
        """
        if self.rng.random() >= self.probability(context):
            return None

        themes = None
        if theme is not None:
            themes = {RewardTheme(theme), RewardTheme.GENERAL}
        eligible = [
            r.id for r in self.catalog.values()
            if r.id not in self._earned and (themes is None or r.theme in themes)
        ]
        if not eligible:
            logger.debug("Reward checkpoint hit but every eligible reward is held")
            return None
        return self._grant(self.rng.choice(eligible))

    def check_and_award(self, conditions: Mapping[str, int | bool], theme: RewardTheme | str = "addition") -> List[EarnedReward]:
        """
        Grant every milestone satisfied by `conditions`.

        Args:
            conditions: Any of problems_completed, streak, level (1..4),
                perfect_session, improvement, perseverance, session_completed
            theme: Theme whose problem-count milestones apply

        Returns:
            Newly granted rewards, in evaluation order
        """
        theme_key = RewardTheme(theme).value
        candidates: List[str] = []

        completed = int(conditions.get("problems_completed", 0) or 0)
        for threshold, suffix in MILESTONE_THRESHOLDS:
            reward_id = f"{theme_key}-{suffix}"
            if completed >= threshold and reward_id in self.catalog:
                candidates.append(reward_id)

        streak = int(conditions.get("streak", 0) or 0)
        candidates.extend(rid for threshold, rid in STREAK_THRESHOLDS if streak >= threshold)

        level = int(conditions.get("level", 0) or 0)
        if level in LEVEL_REWARDS:
            candidates.append(LEVEL_REWARDS[level])

        for flag, reward_id in (
            ("perfect_session", "perfect-session"),
            ("improvement", "improvement-star"),
            ("perseverance", "perseverance"),
            ("session_completed", "session-complete"),
        ):
            if conditions.get(flag):
                candidates.append(reward_id)

        granted = []
        for reward_id in candidates:
            reward = self._grant(reward_id)
            if reward is not None:
                granted.append(reward)
        return granted

    # ----- album state -----

    def mark_seen(self, reward_id: str) -> bool:
        reward = self._earned.get(reward_id)
        if reward is None or reward.seen:
            return False
        reward.seen = True
        self._persist()
        return True

    def reset_new_rewards(self) -> None:
        self._new_rewards_count = 0
        self._persist()

    def _recompute_collections(self, reward_id: Optional[str] = None) -> None:
        held = set(self._earned)
        for collection in self._collections.values():
            if reward_id is None or reward_id in collection.definition.reward_ids:
                was_complete = collection.is_complete
                collection.recompute(held)
                if collection.is_complete and not was_complete and reward_id is not None:
                    logger.info("Collection completed: {}", collection.id)

    # ----- persistence -----

    def to_dict(self) -> dict:
        return {
            "earned": [r.to_dict() for r in self._earned.values()],
            "new_rewards_count": self._new_rewards_count,
        }

    def _load(self) -> None:
        try:
            payload = self.store.load(self.key)
        except PersistenceError as e:
            logger.warning("Could not load rewards for {}: {}", self.key, e)
            self.persistence_error = e
            return
        if payload is None:
            return

        result = get_validator("reward_state").validate(payload, auto_repair=True)
        if not result:
            logger.warning("Ignoring corrupt reward state for {}: {}", self.key, result.errors)
            return

        for item in result.data["earned"]:
            definition = self.catalog.get(item["id"])
            if definition is None:
                logger.warning("Dropping unknown persisted reward id: {}", item["id"])
                continue
            self._earned[item["id"]] = EarnedReward(definition, item["date_earned"], item["seen"])
        self._new_rewards_count = result.data["new_rewards_count"]

    def _persist(self) -> bool:
        try:
            self.store.save(self.key, self.to_dict())
        except PersistenceError as e:
            logger.warning("Could not persist rewards for {}: {}", self.key, e)
            self.persistence_error = e
            return False
        self.persistence_error = None
        return True
