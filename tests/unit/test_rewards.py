"""
Unit tests for the reward engine.

Tests grant idempotence, collections, the probability rules, checkpoint
offers, milestone conditions and persistence.
"""

import random

import pytest

from mathpractice.engine.notifications import RewardGranted
from mathpractice.engine.rewards import RewardContext, RewardEngine, reward_probability
from mathpractice.models.problem import DifficultyLevel
from mathpractice.models.reward import REWARDS_CATALOG, RewardTheme, RewardTier
from mathpractice.utils.persistence import StoreKey


class TestAward:
    def test_award_is_idempotent(self, reward_engine):
        assert reward_engine.award("streak-5") is True
        assert reward_engine.award("streak-5") is False
        assert len(reward_engine.earned) == 1
        assert reward_engine.new_rewards_count == 1

    def test_unknown_id_is_noop(self, reward_engine):
        assert reward_engine.award("does-not-exist") is False
        assert reward_engine.earned == []

    def test_grant_publishes_event(self, reward_engine, listener):
        reward_engine.award("perseverance")
        events = listener.of_type(RewardGranted)
        assert len(events) == 1
        assert events[0].reward.id == "perseverance"
        assert events[0].reward.seen is False

    def test_collection_progress(self, reward_engine):
        reward_engine.award("streak-5")
        streaks = {c.id: c for c in reward_engine.collections}["streak-collection"]
        assert streaks.progress == 33
        assert not streaks.is_complete

        reward_engine.award("streak-10")
        reward_engine.award("streak-20")
        streaks = {c.id: c for c in reward_engine.collections}["streak-collection"]
        assert streaks.progress == 100
        assert streaks.is_complete
        assert streaks.earned_ids == ["streak-5", "streak-10", "streak-20"]

    def test_mark_seen_and_reset(self, reward_engine):
        reward_engine.award("streak-5")
        assert reward_engine.mark_seen("streak-5") is True
        assert reward_engine.mark_seen("streak-5") is False
        assert reward_engine.mark_seen("streak-10") is False

        reward_engine.reset_new_rewards()
        assert reward_engine.new_rewards_count == 0


class TestProbability:
    def test_last_problem_without_recent_reward(self):
        context = RewardContext(problem_index=9, total_problems=10, previous_reward_index=-1)
        assert reward_probability(context) == 1.0

    def test_last_problem_with_recent_reward_falls_through(self):
        context = RewardContext(problem_index=9, total_problems=10, previous_reward_index=8)
        assert reward_probability(context) == pytest.approx(0.05)

    @pytest.mark.parametrize("streak, expected", [(7, 0.8), (9, 0.8), (5, 0.6), (6, 0.6)])
    def test_streaks(self, streak, expected):
        context = RewardContext(problem_index=2, total_problems=10, streak=streak, previous_reward_index=1)
        assert reward_probability(context) == expected

    def test_mid_point(self):
        context = RewardContext(problem_index=5, total_problems=10, previous_reward_index=1)
        assert reward_probability(context) == 0.4

    def test_mid_point_with_recent_reward(self):
        context = RewardContext(problem_index=5, total_problems=10, previous_reward_index=3)
        assert reward_probability(context) == pytest.approx(0.05)

    def test_drought_counts_from_start_when_none_shown(self):
        assert reward_probability(RewardContext(problem_index=4, total_problems=20)) == 0.3
        assert reward_probability(RewardContext(problem_index=3, total_problems=20)) == pytest.approx(0.05)

    def test_drought_since_last_reward(self):
        context = RewardContext(problem_index=12, total_problems=20, previous_reward_index=7)
        assert reward_probability(context) == 0.3

    @pytest.mark.parametrize(
        "level, expected",
        [
            (DifficultyLevel.BEGINNER, 0.05),
            (DifficultyLevel.ELEMENTARY, 0.07),
            (DifficultyLevel.INTERMEDIATE, 0.09),
            (DifficultyLevel.ADVANCED, 0.11),
            (DifficultyLevel.EXPERT, 0.13),
        ],
    )
    def test_difficulty_bonus(self, level, expected):
        context = RewardContext(problem_index=1, total_problems=20, difficulty=level)
        assert reward_probability(context) == pytest.approx(expected)

    def test_bounds(self):
        rng = random.Random(0)
        for _ in range(500):
            total = rng.randint(1, 30)
            index = rng.randint(0, total - 1)
            context = RewardContext(
                problem_index=index,
                total_problems=total,
                streak=rng.randint(0, 20),
                difficulty=rng.choice(list(DifficultyLevel)),
                previous_reward_index=rng.randint(-1, index),
            )
            assert 0.0 <= reward_probability(context) <= 1.0


class TestOffer:
    def test_certain_checkpoint_grants_unheld_reward(self, reward_engine):
        context = RewardContext(problem_index=9, total_problems=10)
        reward = reward_engine.offer(context, theme="addition")

        assert reward is not None
        assert reward.definition.theme in (RewardTheme.ADDITION, RewardTheme.GENERAL)

    def test_no_reward_when_everything_held(self, store, rng):
        engine = RewardEngine(store, "child-1", rng=rng)
        for reward_id in REWARDS_CATALOG:
            engine.award(reward_id)

        assert engine.offer(RewardContext(problem_index=9, total_problems=10)) is None

    def test_select_random_filters(self, reward_engine):
        assert reward_engine.select_random(tier=RewardTier.LEGENDARY) in {"level-expert"}
        assert reward_engine.select_random(tier=RewardTier.LEGENDARY, theme=RewardTheme.ADDITION) is None
        assert reward_engine.select_random(theme=RewardTheme.SEASONAL) is None


class TestCheckAndAward:
    def test_problems_completed_thresholds(self, reward_engine):
        granted = reward_engine.check_and_award({"problems_completed": 30})
        assert [r.id for r in granted] == ["addition-novice", "addition-enthusiast"]

    def test_theme_without_milestones(self, reward_engine):
        granted = reward_engine.check_and_award({"problems_completed": 100, "session_completed": True}, theme="fractions")
        assert [r.id for r in granted] == ["session-complete"]

    def test_all_conditions_in_order(self, reward_engine):
        granted = reward_engine.check_and_award(
            {
                "streak": 10,
                "level": 2,
                "perfect_session": True,
                "improvement": True,
                "perseverance": True,
                "session_completed": True,
            }
        )
        assert [r.id for r in granted] == [
            "streak-5",
            "streak-10",
            "level-intermediate",
            "perfect-session",
            "improvement-star",
            "perseverance",
            "session-complete",
        ]

    def test_already_held_not_returned(self, reward_engine):
        reward_engine.award("streak-5")
        granted = reward_engine.check_and_award({"streak": 5})
        assert granted == []

    def test_false_flags_ignored(self, reward_engine):
        assert reward_engine.check_and_award({"perfect_session": False, "level": 0}) == []


class TestRewardPersistence:
    def test_reload(self, store, rng):
        first = RewardEngine(store, "child-1", rng=rng)
        first.award("streak-5")
        first.mark_seen("streak-5")
        first.award("perseverance")

        second = RewardEngine(store, "child-1", rng=rng)
        assert [r.id for r in second.earned] == ["streak-5", "perseverance"]
        assert second.earned[0].seen is True
        assert second.new_rewards_count == 2
        assert {c.id: c for c in second.collections}["streak-collection"].progress == 33

    def test_unknown_persisted_ids_dropped(self, store, rng):
        store.save(
            StoreKey("child-1", "global", "rewards"),
            {
                "earned": [
                    {"id": "retired-reward", "date_earned": "2024-01-01T00:00:00+00:00", "seen": True},
                    {"id": "streak-5", "date_earned": "2024-01-01T00:00:00+00:00", "seen": False},
                ],
                "new_rewards_count": 1,
            },
        )
        engine = RewardEngine(store, "child-1", rng=rng)
        assert [r.id for r in engine.earned] == ["streak-5"]

    def test_failing_store(self, failing_store, rng):
        engine = RewardEngine(failing_store, "child-1", rng=rng)
        assert engine.award("streak-5") is True
        assert engine.has("streak-5")
        assert engine.persistence_error is not None
