"""
Data models for the exercise engine.

This module contains core data models:
- Problem, DifficultyLevel, AttemptRecord: generated problems and their outcomes
- FractionProblem: two-fraction sum, difference or comparison
- SessionState, SessionSummary: the state of one exercise run
- LevelState: persistent adaptive-difficulty state
- Reward catalog and collections
- ExerciseSettings: per-module configuration
"""

from .problem import AttemptRecord, AttemptStatus, DifficultyLevel, Layout, Problem
from .fraction import FractionKind, FractionProblem
from .level_state import LevelState
from .session_state import (
    AttemptOutcome,
    Feedback,
    FeedbackKind,
    ProblemView,
    SessionPhase,
    SessionState,
    SessionSummary,
)
from .reward import (
    COLLECTIONS_CATALOG,
    REWARDS_CATALOG,
    CollectionDefinition,
    EarnedReward,
    RewardCategory,
    RewardCollection,
    RewardDefinition,
    RewardTheme,
    RewardTier,
)
from .settings import ExerciseSettings

__all__ = [
    # Problems
    "AttemptRecord",
    "AttemptStatus",
    "DifficultyLevel",
    "Layout",
    "Problem",
    "FractionKind",
    "FractionProblem",
    # State
    "LevelState",
    "AttemptOutcome",
    "Feedback",
    "FeedbackKind",
    "ProblemView",
    "SessionPhase",
    "SessionState",
    "SessionSummary",
    # Rewards
    "COLLECTIONS_CATALOG",
    "REWARDS_CATALOG",
    "CollectionDefinition",
    "EarnedReward",
    "RewardCategory",
    "RewardCollection",
    "RewardDefinition",
    "RewardTheme",
    "RewardTier",
    # Settings
    "ExerciseSettings",
]
