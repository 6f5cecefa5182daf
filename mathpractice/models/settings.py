"""
Exercise settings record supplied by the Settings Source.

Settings are read once at session start. Keys may arrive in camelCase (as
stored by the web settings layer) or snake_case; both are accepted.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping

from ..errors import SettingsError
from .problem import DifficultyLevel

# Keys used by the settings layer that do not map mechanically to snake_case
_ALIASES = {
    "timeValuePerProblem": "time_value",
    "enableAdaptiveDifficulty": "enable_adaptive_difficulty",
    "adaptive": "enable_adaptive_difficulty",
    "rewards": "enable_rewards",
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _ALIASES.get(key) or _CAMEL_BOUNDARY.sub("_", key).lower()


@dataclass(frozen=True)
class ExerciseSettings:
    """
    Per-module exercise configuration.

    Attributes:
        difficulty: Starting difficulty when adaptive difficulty is off
        problem_count: Problems per session
        time_value: Seconds per problem (0 = unlimited)
        max_attempts: Attempts per problem (0 = unlimited)
        enable_adaptive_difficulty: Let streaks raise/lower the level
        enable_rewards: Offer rewards at checkpoints
        reward_type: Reward presentation ("medals", "trophies", "stars")
        enable_compensation: Append extra problems for misses at the end
        auto_continue: Advance automatically after a correct answer
        fraction_type: Fraction problem kind ("addition", "subtraction", "comparison", "mixed")
    """

    difficulty: DifficultyLevel = DifficultyLevel.BEGINNER
    problem_count: int = 12
    time_value: int = 0
    max_attempts: int = 2
    show_immediate_feedback: bool = True
    show_answer_with_explanation: bool = True
    enable_adaptive_difficulty: bool = True
    enable_compensation: bool = False
    enable_rewards: bool = True
    reward_type: str = "stars"
    auto_continue: bool = False
    fraction_type: str = "mixed"

    @property
    def has_time_limit(self) -> bool:
        return self.time_value > 0

    @property
    def has_attempt_limit(self) -> bool:
        return self.max_attempts > 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], auto_repair: bool = True) -> "ExerciseSettings":
        """
        Build settings from a raw record, filling defaults for missing keys.

        Args:
            data: Raw settings (camelCase or snake_case keys)
            auto_repair: Strip unknown keys and coerce numeric strings

        Raises:
            SettingsError: If the record fails schema validation
        """
        from ..utils.validation import validate_settings

        merged = cls().to_dict()
        merged.update({_snake(key): value for key, value in data.items()})
        if isinstance(merged.get("difficulty"), str):
            merged["difficulty"] = merged["difficulty"].strip().lower()

        result = validate_settings(merged, auto_repair=auto_repair)
        if not result:
            raise SettingsError("Invalid exercise settings", errors=result.errors)

        values = dict(result.data)
        values["difficulty"] = DifficultyLevel.parse(values["difficulty"])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["difficulty"] = self.difficulty.value
        return data
