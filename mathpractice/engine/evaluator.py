"""Answer checking and answer parsing from learner input."""

from __future__ import annotations

import math
from fractions import Fraction
from typing import Any, Optional, Sequence

from ..models.fraction import COMPARISON_SYMBOLS, FractionProblem
from ..models.problem import Problem


def _round_half_up(value: float, precision: int) -> int:
    factor = 10 ** precision
    return math.floor(value * factor + 0.5)


def parse_answer(text: Optional[str]) -> float:
    """
    Parse free-text input into a number.

    Accepts a comma as decimal separator. Returns NaN for empty or
    non-numeric input rather than raising.
    """
    if text is None:
        return math.nan
    cleaned = text.strip().replace(" ", "").replace(",", ".")
    if not cleaned:
        return math.nan
    try:
        value = float(cleaned)
    except ValueError:
        return math.nan
    return value if math.isfinite(value) else math.nan


def parse_fraction(text: Optional[str]) -> Fraction | float:
    """
    Parse "n/d" or a whole number into a Fraction.

    Returns NaN for empty or malformed input and for a zero denominator.
    """
    if text is None:
        return math.nan
    cleaned = text.strip().replace(" ", "")
    if not cleaned:
        return math.nan
    numerator, slash, denominator = cleaned.partition("/")
    try:
        if not slash:
            return Fraction(int(numerator))
        return fraction_from_fields(int(numerator), int(denominator))
    except ValueError:
        return math.nan


def fraction_from_fields(numerator: Any, denominator: Any) -> Fraction | float:
    """Combine separate numerator and denominator inputs; NaN if invalid."""
    try:
        numerator, denominator = int(numerator), int(denominator)
    except (TypeError, ValueError):
        return math.nan
    if denominator == 0:
        return math.nan
    return Fraction(numerator, denominator)


def _parse_relation(answer: Any) -> Fraction | float:
    if isinstance(answer, str):
        text = answer.strip()
        if text in COMPARISON_SYMBOLS:
            return Fraction(COMPARISON_SYMBOLS.index(text))
        return parse_fraction(text)
    if answer is None or (isinstance(answer, float) and not math.isfinite(answer)):
        return math.nan
    return Fraction(int(answer))


class AnswerEvaluator:
    """
    Decides whether a submitted answer matches a problem.

    Decimal problems: both values are rounded to the problem's answer
    precision (half up) before comparison, so decimal float noise never
    causes a mismatch.

    Fraction problems: values are compared as reduced fractions, so any
    equivalent form (2/4 for 1/2) is accepted. Comparison problems take the
    relation symbol or its code (0 for <, 1 for =, 2 for >).
    """

    def check(self, problem: Problem | FractionProblem, submitted_answer: float | Fraction) -> bool:
        if submitted_answer is None:
            return False
        if isinstance(problem, FractionProblem):
            return self._check_fraction(problem, submitted_answer)
        if math.isnan(submitted_answer) or math.isinf(submitted_answer):
            return False
        precision = problem.precision
        return _round_half_up(submitted_answer, precision) == _round_half_up(problem.correct_answer, precision)

    def _check_fraction(self, problem: FractionProblem, submitted_answer: float | Fraction) -> bool:
        if isinstance(submitted_answer, float) and not math.isfinite(submitted_answer):
            return False
        return Fraction(submitted_answer) == problem.correct_answer

    def check_fraction(self, problem: FractionProblem, numerator: int, denominator: int) -> bool:
        """Check separate numerator/denominator inputs. A zero denominator is never correct."""
        return self.check(problem, fraction_from_fields(numerator, denominator))

    def check_text(self, problem: Problem | FractionProblem, text: Optional[str]) -> bool:
        return self.check(problem, self.coerce(problem, text))

    def coerce(self, problem: Problem | FractionProblem, answer: Any) -> float | Fraction:
        """Turn raw learner input into the value ``check`` compares."""
        if isinstance(problem, FractionProblem):
            if problem.is_comparison:
                return _parse_relation(answer)
            if answer is None or isinstance(answer, str):
                return parse_fraction(answer)
            if isinstance(answer, tuple):
                return fraction_from_fields(*answer)
            if isinstance(answer, float):
                return Fraction(answer) if math.isfinite(answer) else math.nan
            return Fraction(answer)
        if answer is None or isinstance(answer, str):
            return parse_answer(answer)
        return float(answer)

    def answer_from_digits(self, problem: Problem | FractionProblem, slots: Sequence[str]) -> float | Fraction:
        """
        Assemble an answer from per-digit input slots.

        The first ``answer_digit_count - answer_decimal_offset`` slots are the
        integer part and the rest the decimal part. Missing decimal slots are
        padded with zeros. Returns NaN when nothing was entered or a slot
        holds something other than a single digit.

        For fraction problems the slots are the numerator and denominator
        fields (or the single relation field of a comparison).
        """
        if isinstance(problem, FractionProblem):
            fields = list(slots) + [None, None]
            if problem.is_comparison:
                return _parse_relation(fields[0])
            return fraction_from_fields(fields[0], fields[1])

        decimals = problem.answer_decimal_offset or 0
        int_count = problem.answer_digit_count - decimals

        padded = [str(s).strip() if s is not None else "" for s in slots]
        padded += [""] * (problem.answer_digit_count - len(padded))
        if not any(padded):
            return math.nan
        if any(len(s) > 1 or (s and not s.isdigit()) for s in padded):
            return math.nan

        int_part = "".join(padded[:int_count]) or "0"
        dec_part = "".join(s or "0" for s in padded[int_count:int_count + decimals])
        return float(f"{int_part}.{dec_part}") if dec_part else float(int_part)
