"""
Fraction problem model.

A FractionProblem asks for the sum or difference of two fractions, or for
the relation between them. Values are ``fractions.Fraction`` so they are
always held in lowest terms with a positive denominator.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, Tuple

from .problem import DifficultyLevel, Layout, _generate_problem_id

# Relation codes used as the answer of a comparison problem
COMPARISON_SYMBOLS: Tuple[str, ...] = ("<", "=", ">")


class FractionKind(str, Enum):
    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    COMPARISON = "comparison"

    @property
    def symbol(self) -> str:
        return {"addition": "+", "subtraction": "-", "comparison": "?"}[self.value]


def compare_fractions(left: Fraction, right: Fraction) -> int:
    """Relation code of left to right: 0 for <, 1 for =, 2 for >."""
    if left < right:
        return 0
    if left > right:
        return 2
    return 1


@dataclass(frozen=True)
class FractionProblem:
    """
    A two-fraction problem.

    Attributes:
        kind: Addition, subtraction or comparison
        left: First fraction
        right: Second fraction
        correct_answer: Result in lowest terms, or the relation code for comparisons
        difficulty: Level the problem was generated for
        id: Unique per instance
    """

    kind: FractionKind
    left: Fraction
    right: Fraction
    correct_answer: Fraction
    difficulty: DifficultyLevel
    operation: str = "fractions"
    layout: Layout = Layout.HORIZONTAL
    id: str = field(default_factory=_generate_problem_id)

    @property
    def operands(self) -> Tuple[Fraction, Fraction]:
        return (self.left, self.right)

    @property
    def precision(self) -> int:
        return 0

    @property
    def answer_decimal_offset(self) -> None:
        return None

    @property
    def answer_digit_count(self) -> int:
        """Input fields needed: one relation, or numerator and denominator."""
        return 1 if self.kind is FractionKind.COMPARISON else 2

    @property
    def is_comparison(self) -> bool:
        return self.kind is FractionKind.COMPARISON

    @property
    def answer_text(self) -> str:
        return self.format_answer(self.correct_answer)

    def format_answer(self, value: Any) -> str:
        """Render a submitted or correct value the way the learner enters it."""
        if isinstance(value, float) and math.isnan(value):
            return "not answered"
        if self.is_comparison:
            code = int(value)
            return COMPARISON_SYMBOLS[code] if 0 <= code < len(COMPARISON_SYMBOLS) else str(value)
        return str(Fraction(value))

    def question_text(self) -> str:
        return f"{self.left} {self.kind.symbol} {self.right}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "operation": self.operation,
            "kind": self.kind.value,
            "operands": [str(self.left), str(self.right)],
            "correct_answer": self.answer_text,
            "layout": self.layout.value,
            "difficulty": self.difficulty.value,
        }
