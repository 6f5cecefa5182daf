"""
Fraction problem generation.

Each difficulty draws numerators and denominators from a fixed range.
Denominator ranges start at 2, so a zero (or unit) denominator can never be
produced:

| Level        | Numerator | Denominator | Negative numerators |
|--------------|-----------|-------------|---------------------|
| beginner     | 1-5       | 2-6         | never               |
| elementary   | 1-6       | 2-8         | never               |
| intermediate | 1-8       | 2-10        | never               |
| advanced     | 1-12      | 2-16        | 30%                 |
| expert       | 1-15      | 2-20        | 30%                 |

Drawn fractions are reduced to lowest terms by ``fractions.Fraction``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, List, Optional, Tuple

from ..models.fraction import FractionKind, FractionProblem, compare_fractions
from ..models.problem import DifficultyLevel

FRACTIONS = "fractions"
MIXED = "mixed"


@dataclass(frozen=True)
class FractionRange:
    numerator: Tuple[int, int]
    denominator: Tuple[int, int]
    negative_chance: float = 0.0


FRACTION_POLICIES: Dict[DifficultyLevel, FractionRange] = {
    DifficultyLevel.BEGINNER: FractionRange((1, 5), (2, 6)),
    DifficultyLevel.ELEMENTARY: FractionRange((1, 6), (2, 8)),
    DifficultyLevel.INTERMEDIATE: FractionRange((1, 8), (2, 10)),
    DifficultyLevel.ADVANCED: FractionRange((1, 12), (2, 16), negative_chance=0.3),
    DifficultyLevel.EXPERT: FractionRange((1, 15), (2, 20), negative_chance=0.3),
}


def build_fraction_problem(
    left: Fraction,
    right: Fraction,
    kind: FractionKind | str,
    difficulty: DifficultyLevel,
) -> FractionProblem:
    """
    Build a FractionProblem from two explicit fractions.

    Example:
        >>> p = build_fraction_problem(Fraction(1, 2), Fraction(1, 3), "addition", DifficultyLevel.BEGINNER)
        >>> p.answer_text
        '5/6'
    """
    kind = FractionKind(kind)
    if kind is FractionKind.ADDITION:
        answer = left + right
    elif kind is FractionKind.SUBTRACTION:
        answer = left - right
    else:
        answer = Fraction(compare_fractions(left, right))
    return FractionProblem(kind=kind, left=left, right=right, correct_answer=answer, difficulty=difficulty)


class FractionProblemGenerator:
    """
    Generates fraction problems from an injected random source.

    Usage:
        generator = FractionProblemGenerator("mixed", rng=random.Random(42))
        problem = generator.generate(DifficultyLevel.BEGINNER)
    """

    name = FRACTIONS

    def __init__(self, fraction_type: str = MIXED, rng: Optional[random.Random] = None):
        if fraction_type != MIXED:
            FractionKind(fraction_type)
        self.fraction_type = fraction_type
        self.rng = rng or random.Random()

    def random_fraction(self, difficulty: DifficultyLevel | str) -> Fraction:
        policy = FRACTION_POLICIES[DifficultyLevel.parse(difficulty)]
        numerator = self.rng.randint(*policy.numerator)
        denominator = self.rng.randint(*policy.denominator)
        if policy.negative_chance and self.rng.random() < policy.negative_chance:
            numerator = -numerator
        return Fraction(numerator, denominator)

    def _kind(self) -> FractionKind:
        if self.fraction_type == MIXED:
            return self.rng.choice(list(FractionKind))
        return FractionKind(self.fraction_type)

    def generate(self, difficulty: DifficultyLevel | str) -> FractionProblem:
        level = DifficultyLevel.parse(difficulty)
        kind = self._kind()
        return build_fraction_problem(self.random_fraction(level), self.random_fraction(level), kind, level)

    def generate_set(self, difficulty: DifficultyLevel | str, count: int) -> List[FractionProblem]:
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        return [self.generate(difficulty) for _ in range(count)]
