"""
Problem and attempt models for the exercise engine.

A Problem is immutable once generated. AttemptRecords are owned by the
session and overwritten in place while their problem is active.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, Optional, Tuple


class DifficultyLevel(str, Enum):
    """Ordered difficulty tiers. Declaration order is the total order."""

    BEGINNER = "beginner"
    ELEMENTARY = "elementary"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @classmethod
    def ordered(cls) -> Tuple["DifficultyLevel", ...]:
        return tuple(cls)

    @classmethod
    def parse(cls, value: "DifficultyLevel | str") -> "DifficultyLevel":
        """Accept an enum member or its string value."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())

    @property
    def rank(self) -> int:
        return self.ordered().index(self)

    @property
    def is_max(self) -> bool:
        return self.rank == len(self.ordered()) - 1

    @property
    def is_min(self) -> bool:
        return self.rank == 0

    def next(self) -> "DifficultyLevel":
        """Next level, clamped at the maximum."""
        levels = self.ordered()
        return levels[min(self.rank + 1, len(levels) - 1)]

    def previous(self) -> "DifficultyLevel":
        """Previous level, clamped at the minimum."""
        levels = self.ordered()
        return levels[max(self.rank - 1, 0)]


class Layout(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class AttemptStatus(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    REVEALED = "revealed"
    TIMED_OUT = "timedOut"

    @property
    def is_miss(self) -> bool:
        return self is not AttemptStatus.CORRECT


def _generate_problem_id() -> str:
    return f"p-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Problem:
    """
    A single arithmetic problem.

    Attributes:
        operands: Operands in display order
        correct_answer: Operation result rounded to the answer precision
        layout: Horizontal or vertical rendering
        answer_digit_count: Digit slots needed to enter the answer
        answer_decimal_offset: Digits right of the decimal point (None for integers)
        difficulty: Level the problem was generated for
        operation: Operation kind (e.g. "addition")
        id: Unique per instance
    """

    operands: Tuple[float, ...]
    correct_answer: float
    layout: Layout
    answer_digit_count: int
    answer_decimal_offset: Optional[int]
    difficulty: DifficultyLevel
    operation: str = "addition"
    id: str = field(default_factory=_generate_problem_id)

    @property
    def precision(self) -> int:
        """Decimal places used to format and compare the answer."""
        return self.answer_decimal_offset or 0

    @property
    def answer_text(self) -> str:
        """Canonical decimal string of the correct answer."""
        return f"{self.correct_answer:.{self.precision}f}"

    def operand_text(self, index: int) -> str:
        return f"{self.operands[index]:.{self.precision}f}"

    def format_answer(self, value: float) -> str:
        if math.isnan(value):
            return "not answered"
        return f"{value:g}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "operation": self.operation,
            "operands": list(self.operands),
            "correct_answer": self.correct_answer,
            "layout": self.layout.value,
            "answer_digit_count": self.answer_digit_count,
            "answer_decimal_offset": self.answer_decimal_offset,
            "difficulty": self.difficulty.value,
        }


@dataclass
class AttemptRecord:
    """
    Outcome of the attempts spent on one problem.

    Created on the first evaluation of a problem and mutated in place by
    later attempts on the same problem.
    """

    problem_id: str
    submitted_answer: float | Fraction = math.nan
    status: AttemptStatus = AttemptStatus.INCORRECT
    attempts_used: int = 0
    failed_attempts: int = 0

    @property
    def is_correct(self) -> bool:
        return self.status is AttemptStatus.CORRECT

    @property
    def has_answer(self) -> bool:
        return not math.isnan(self.submitted_answer)

    def to_dict(self) -> Dict[str, Any]:
        submitted = self.submitted_answer
        if isinstance(submitted, Fraction):
            submitted = str(submitted)
        elif math.isnan(submitted):
            submitted = None
        return {
            "problem_id": self.problem_id,
            "submitted_answer": submitted,
            "status": self.status.value,
            "attempts_used": self.attempts_used,
        }
