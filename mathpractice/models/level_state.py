"""Persistent difficulty state for one learner and module."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .problem import DifficultyLevel


@dataclass
class LevelState:
    """
    Current difficulty plus the two streak counters.

    Mutated only by LevelManager; survives across sessions.
    """

    current_level: DifficultyLevel = DifficultyLevel.BEGINNER
    correct_streak: int = 0
    incorrect_streak: int = 0
    adaptive_enabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_level": self.current_level.value,
            "correct_streak": self.correct_streak,
            "incorrect_streak": self.incorrect_streak,
            "adaptive_enabled": self.adaptive_enabled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LevelState":
        return cls(
            current_level=DifficultyLevel.parse(data.get("current_level", "beginner")),
            correct_streak=max(0, int(data.get("correct_streak", 0))),
            incorrect_streak=max(0, int(data.get("incorrect_streak", 0))),
            adaptive_enabled=bool(data.get("adaptive_enabled", False)),
        )
