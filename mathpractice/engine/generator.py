"""
Problem generation.

Operand count, magnitude, decimal precision and layout come from a fixed
per-difficulty policy:

| Level        | Operands | Range                          | Decimals           | Layout          |
|--------------|----------|--------------------------------|--------------------|-----------------|
| beginner     | 2        | 1-9                            | 0                  | horizontal      |
| elementary   | 2        | 10-30 + 1-9, or 10-20 + 10-20  | 0                  | horizontal      |
| intermediate | 2        | 10-99                          | 1 (40% if vertical)| 75% vertical    |
| advanced     | 3        | 10 to 200-999                  | 2 (60%) else 1     | vertical        |
| expert       | 4 or 5   | 100 to 2000-9999               | 2 (75%) else 1     | vertical        |

Answers are computed with exact decimal arithmetic so the rendered
operands, the correct answer and the digit-slot sizing always share one
precision.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..models.problem import DifficultyLevel, Layout, Problem

# (operands, layout, forced decimal precision)
OperandDraw = Tuple[List[float], Layout, int]


def _random_int(rng: random.Random, low: int, high: int) -> int:
    return rng.randint(low, high)


def _random_decimal(rng: random.Random, low: float, high: float, decimals: int) -> float:
    """Sample a real in [low, high] rounded to `decimals` places."""
    if decimals == 0:
        return rng.randint(int(low), int(high))
    return round(rng.uniform(low, high), decimals)


def _chance(rng: random.Random, probability: float = 0.5) -> bool:
    return rng.random() < probability


def _beginner(rng: random.Random) -> OperandDraw:
    return [_random_int(rng, 1, 9), _random_int(rng, 1, 9)], Layout.HORIZONTAL, 0


def _elementary(rng: random.Random) -> OperandDraw:
    operands = [_random_int(rng, 10, 30), _random_int(rng, 1, 9)]
    if _chance(rng, 0.5):
        operands = [_random_int(rng, 10, 20), _random_int(rng, 10, 20)]
    return operands, Layout.HORIZONTAL, 0


def _intermediate(rng: random.Random) -> OperandDraw:
    layout = Layout.VERTICAL if _chance(rng, 0.75) else Layout.HORIZONTAL
    if layout is Layout.VERTICAL and _chance(rng, 0.4):
        return [_random_decimal(rng, 10, 99, 1), _random_decimal(rng, 10, 99, 1)], layout, 1
    return [_random_int(rng, 10, 99), _random_int(rng, 10, 99)], layout, 0


def _advanced(rng: random.Random) -> OperandDraw:
    decimals = 2 if _chance(rng, 0.6) else 1
    operands = [_random_decimal(rng, 10, _random_int(rng, 200, 999), decimals) for _ in range(3)]
    return operands, Layout.VERTICAL, decimals


def _expert(rng: random.Random) -> OperandDraw:
    lines = 4 if _chance(rng) else 5
    decimals = 2 if _chance(rng, 0.75) else 1
    operands = [_random_decimal(rng, 100, _random_int(rng, 2000, 9999), decimals) for _ in range(lines)]
    return operands, Layout.VERTICAL, decimals


DIFFICULTY_POLICIES: Dict[DifficultyLevel, Callable[[random.Random], OperandDraw]] = {
    DifficultyLevel.BEGINNER: _beginner,
    DifficultyLevel.ELEMENTARY: _elementary,
    DifficultyLevel.INTERMEDIATE: _intermediate,
    DifficultyLevel.ADVANCED: _advanced,
    DifficultyLevel.EXPERT: _expert,
}


def decimal_places(value: float) -> int:
    """Decimal places in the shortest repr of value (0 for integers)."""
    text = repr(float(value)) if not isinstance(value, int) else str(value)
    if "e" in text or "E" in text:
        return max(0, -Decimal(text).as_tuple().exponent)
    _, _, frac = text.partition(".")
    frac = frac.rstrip("0")
    return len(frac)


def _to_decimal(value: float) -> Decimal:
    return Decimal(repr(value)) if isinstance(value, float) else Decimal(value)


@dataclass(frozen=True)
class Operation:
    """
    An arithmetic operation the generator can build problems for.

    Attributes:
        name: Registry key (also stored on Problem.operation)
        symbol: Display symbol
        combine: Exact result of the operands
    """

    name: str
    symbol: str
    combine: Callable[[Sequence[Decimal]], Decimal]


def _add(values: Sequence[Decimal]) -> Decimal:
    return sum(values, Decimal(0))


OPERATIONS: Dict[str, Operation] = {
    "addition": Operation("addition", "+", _add),
}


def get_operation(name: str) -> Operation:
    try:
        return OPERATIONS[name]
    except KeyError:
        raise ValueError(f"Unknown operation: {name!r} (known: {', '.join(sorted(OPERATIONS))})") from None


def build_problem(
    operands: Sequence[float],
    difficulty: DifficultyLevel,
    layout: Layout = Layout.HORIZONTAL,
    forced_decimals: int = 0,
    operation: str = "addition",
) -> Problem:
    """
    Build a Problem from explicit operands.

    The answer precision is `forced_decimals` when positive, otherwise the
    largest decimal count among the operands.

    Example:
        >>> p = build_problem([7, 5], DifficultyLevel.BEGINNER)
        >>> p.correct_answer, p.answer_digit_count, p.answer_decimal_offset
        (12, 2, None)
    """
    op = get_operation(operation)
    precision = forced_decimals if forced_decimals > 0 else max((decimal_places(v) for v in operands), default=0)

    exact = op.combine([_to_decimal(v) for v in operands])
    quantized = exact.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)
    answer_text = f"{quantized:f}"
    int_part, _, dec_part = answer_text.lstrip("-").partition(".")

    correct_answer = float(quantized) if precision > 0 else int(quantized)
    return Problem(
        operands=tuple(operands),
        correct_answer=correct_answer,
        layout=layout,
        answer_digit_count=len(int_part) + len(dec_part),
        answer_decimal_offset=len(dec_part) if precision > 0 and dec_part else None,
        difficulty=difficulty,
        operation=op.name,
    )


class ProblemGenerator:
    """
    Generates problems for one operation from an injected random source.

    Usage:
        generator = ProblemGenerator("addition", rng=random.Random(42))
        problem = generator.generate(DifficultyLevel.BEGINNER)
    """

    def __init__(self, operation: str = "addition", rng: Optional[random.Random] = None):
        self.operation = get_operation(operation)
        self.rng = rng or random.Random()

    @property
    def name(self) -> str:
        return self.operation.name

    def generate(self, difficulty: DifficultyLevel | str) -> Problem:
        """Generate one problem at the given difficulty."""
        level = DifficultyLevel.parse(difficulty)
        operands, layout, decimals = DIFFICULTY_POLICIES[level](self.rng)
        return build_problem(operands, level, layout, decimals, self.operation.name)

    def generate_set(self, difficulty: DifficultyLevel | str, count: int) -> List[Problem]:
        """Generate `count` problems at the same difficulty."""
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        return [self.generate(difficulty) for _ in range(count)]


@dataclass(frozen=True)
class VerticalAlignment:
    """
    Column layout for rendering a vertical problem.

    Attributes:
        max_int_length: Widest integer part among the operands
        max_dec_length: Decimal places shown for every operand
        rows: (integer part right-aligned, decimal part zero-padded) per operand
        total_width: Characters needed for the answer line, point included
    """

    max_int_length: int
    max_dec_length: int
    rows: Tuple[Tuple[str, str], ...]
    total_width: int


def vertical_alignment(problem: Problem) -> VerticalAlignment:
    """Right-align operands on a common decimal precision."""
    precision = problem.precision
    parts = []
    for value in problem.operands:
        int_part, _, dec_part = f"{value:.{precision}f}".partition(".")
        parts.append((int_part, dec_part))

    max_int = max([1] + [len(i) for i, _ in parts])
    rows = tuple((i.rjust(max_int), d.ljust(precision, "0")) for i, d in parts)
    return VerticalAlignment(
        max_int_length=max_int,
        max_dec_length=precision,
        rows=rows,
        total_width=max_int + (1 if precision > 0 else 0) + precision,
    )
