"""
Adaptive exercise engine.

This module contains the engine components:
- ProblemGenerator: per-difficulty problem generation
- FractionProblemGenerator: fraction addition, subtraction and comparison
- AnswerEvaluator: precision-aware answer checking
- LevelManager: streak-driven difficulty changes
- RewardEngine: reward probability, grants and collections
- ExerciseSession: the per-problem attempt state machine
- NotificationChannel: typed events for the UI layer
"""

from .compensation import CompensationPolicy, NoCompensation, OnePerMissPolicy
from .evaluator import AnswerEvaluator, fraction_from_fields, parse_answer, parse_fraction
from .fraction_generator import FRACTION_POLICIES, FractionProblemGenerator, build_fraction_problem
from .generator import (
    OPERATIONS,
    Operation,
    ProblemGenerator,
    VerticalAlignment,
    build_problem,
    vertical_alignment,
)
from .level_manager import LevelManager, LevelResult
from .notifications import (
    LevelChanged,
    NotificationChannel,
    RecordingListener,
    RewardGranted,
    SessionCompleted,
)
from .rewards import RewardContext, RewardEngine, reward_probability
from .session import ExerciseSession
from .timers import Countdown, ElapsedClock

__all__ = [
    # Generation and evaluation
    "OPERATIONS",
    "Operation",
    "ProblemGenerator",
    "VerticalAlignment",
    "build_problem",
    "vertical_alignment",
    "FRACTION_POLICIES",
    "FractionProblemGenerator",
    "build_fraction_problem",
    "AnswerEvaluator",
    "fraction_from_fields",
    "parse_answer",
    "parse_fraction",
    # Difficulty
    "LevelManager",
    "LevelResult",
    # Rewards
    "RewardContext",
    "RewardEngine",
    "reward_probability",
    # Session
    "ExerciseSession",
    "CompensationPolicy",
    "NoCompensation",
    "OnePerMissPolicy",
    "Countdown",
    "ElapsedClock",
    # Notifications
    "LevelChanged",
    "NotificationChannel",
    "RecordingListener",
    "RewardGranted",
    "SessionCompleted",
]
