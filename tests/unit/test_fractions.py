"""
Unit tests for fraction problems.

Covers generation per difficulty, equivalent-fraction checking, the
comparison relation, and fraction sessions end to end.
"""

import json
import math
import random
from fractions import Fraction

import pytest

from mathpractice.engine.evaluator import AnswerEvaluator, fraction_from_fields, parse_fraction
from mathpractice.engine.fraction_generator import (
    FRACTION_POLICIES,
    FractionProblemGenerator,
    build_fraction_problem,
)
from mathpractice.engine.session import ExerciseSession
from mathpractice.models.fraction import FractionKind, compare_fractions
from mathpractice.models.problem import AttemptStatus, DifficultyLevel
from mathpractice.models.session_state import SessionPhase
from mathpractice.orchestrator import PracticeOrchestrator
from mathpractice.utils.settings_source import StaticSettingsSource


@pytest.fixture
def evaluator():
    return AnswerEvaluator()


def _half_plus_quarter():
    return build_fraction_problem(Fraction(1, 2), Fraction(1, 4), "addition", DifficultyLevel.BEGINNER)


class TestBuildFractionProblem:
    def test_addition_in_lowest_terms(self):
        problem = build_fraction_problem(Fraction(1, 2), Fraction(1, 3), "addition", DifficultyLevel.BEGINNER)
        assert problem.correct_answer == Fraction(5, 6)
        assert problem.answer_text == "5/6"
        assert problem.question_text() == "1/2 + 1/3"

    def test_subtraction_can_be_negative(self):
        problem = build_fraction_problem(Fraction(1, 3), Fraction(1, 2), "subtraction", DifficultyLevel.BEGINNER)
        assert problem.answer_text == "-1/6"

    def test_whole_result(self):
        problem = build_fraction_problem(Fraction(1, 2), Fraction(1, 2), "addition", DifficultyLevel.BEGINNER)
        assert problem.answer_text == "1"

    @pytest.mark.parametrize(
        "left, right, symbol",
        [(Fraction(1, 3), Fraction(1, 2), "<"), (Fraction(2, 4), Fraction(1, 2), "="), (Fraction(3, 4), Fraction(2, 3), ">")],
    )
    def test_comparison(self, left, right, symbol):
        problem = build_fraction_problem(left, right, FractionKind.COMPARISON, DifficultyLevel.BEGINNER)
        assert problem.answer_text == symbol
        assert problem.answer_digit_count == 1

    def test_compare_codes(self):
        assert compare_fractions(Fraction(1, 5), Fraction(1, 4)) == 0
        assert compare_fractions(Fraction(1, 4), Fraction(2, 8)) == 1
        assert compare_fractions(Fraction(1, 4), Fraction(1, 5)) == 2

    def test_to_dict_is_json_serializable(self):
        data = _half_plus_quarter().to_dict()
        assert json.loads(json.dumps(data))["operands"] == ["1/2", "1/4"]
        assert data["correct_answer"] == "3/4"


class TestFractionGenerator:
    def test_denominator_ranges_exclude_zero(self):
        for policy in FRACTION_POLICIES.values():
            assert policy.denominator[0] >= 2
            assert policy.numerator[0] >= 1
        assert set(FRACTION_POLICIES) == set(DifficultyLevel)

    @pytest.mark.parametrize("level", list(DifficultyLevel))
    def test_magnitudes_follow_policy(self, level):
        policy = FRACTION_POLICIES[level]
        bound = Fraction(policy.numerator[1], policy.denominator[0])
        generator = FractionProblemGenerator(rng=random.Random(5))

        for problem in generator.generate_set(level, 100):
            assert problem.difficulty is level
            for value in problem.operands:
                assert value.denominator >= 1
                assert abs(value) <= bound
                if not policy.negative_chance:
                    assert value > 0

    def test_advanced_levels_draw_negatives(self):
        generator = FractionProblemGenerator(rng=random.Random(8))
        values = [v for p in generator.generate_set("advanced", 100) for v in p.operands]
        assert any(v < 0 for v in values)

    @pytest.mark.parametrize("level", list(DifficultyLevel))
    def test_round_trip(self, level, evaluator):
        generator = FractionProblemGenerator(rng=random.Random(13))
        for problem in generator.generate_set(level, 50):
            assert evaluator.check(problem, problem.correct_answer)

    def test_fixed_kind(self):
        generator = FractionProblemGenerator("comparison", rng=random.Random(1))
        assert {p.kind for p in generator.generate_set("beginner", 20)} == {FractionKind.COMPARISON}

    def test_mixed_covers_every_kind(self):
        generator = FractionProblemGenerator(rng=random.Random(2))
        assert {p.kind for p in generator.generate_set("beginner", 60)} == set(FractionKind)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            FractionProblemGenerator("division")

    def test_seeded_generation_is_reproducible(self):
        a = FractionProblemGenerator(rng=random.Random(4)).generate_set("expert", 5)
        b = FractionProblemGenerator(rng=random.Random(4)).generate_set("expert", 5)
        assert [p.operands for p in a] == [p.operands for p in b]


class TestFractionEvaluation:
    def test_equivalent_forms_accepted(self, evaluator):
        problem = _half_plus_quarter()
        assert evaluator.check_text(problem, "3/4")
        assert evaluator.check_text(problem, " 6 / 8 ")
        assert evaluator.check_fraction(problem, 9, 12)
        assert evaluator.check(problem, 0.75)

    def test_wrong_and_invalid_rejected(self, evaluator):
        problem = _half_plus_quarter()
        assert not evaluator.check_text(problem, "2/3")
        assert not evaluator.check_text(problem, "3/0")
        assert not evaluator.check_fraction(problem, 3, 0)
        assert not evaluator.check_text(problem, "")
        assert not evaluator.check_text(problem, "three quarters")
        assert not evaluator.check(problem, math.nan)

    def test_comparison_by_symbol_or_code(self, evaluator):
        problem = build_fraction_problem(Fraction(3, 4), Fraction(2, 3), "comparison", DifficultyLevel.BEGINNER)
        assert evaluator.check_text(problem, ">")
        assert evaluator.check(problem, evaluator.coerce(problem, 2))
        assert not evaluator.check_text(problem, "<")
        assert not evaluator.check(problem, evaluator.coerce(problem, None))

    def test_parsing(self):
        assert parse_fraction("-2/6") == Fraction(-1, 3)
        assert parse_fraction("4") == Fraction(4)
        assert math.isnan(parse_fraction("1/0"))
        assert math.isnan(parse_fraction(None))
        assert math.isnan(fraction_from_fields("", "4"))

    def test_fields_from_slots(self, evaluator):
        problem = _half_plus_quarter()
        assert evaluator.answer_from_digits(problem, ["6", "8"]) == Fraction(3, 4)
        assert math.isnan(evaluator.answer_from_digits(problem, ["6"]))


class TestFractionSession:
    def _session(self, make_settings, **settings):
        problems = [
            _half_plus_quarter(),
            build_fraction_problem(Fraction(1, 3), Fraction(1, 4), "comparison", DifficultyLevel.BEGINNER),
        ]
        return ExerciseSession(
            make_settings(**settings),
            FractionProblemGenerator(rng=random.Random(0)),
            problems=problems,
        )

    def test_equivalent_answer_scores(self, make_settings):
        session = self._session(make_settings, problem_count=2)
        outcome = session.submit_fraction(6, 8)

        assert outcome.is_correct
        assert session.state.history[0].submitted_answer == Fraction(3, 4)
        session.advance()
        assert session.submit_answer(">").is_correct
        session.advance()

        assert session.phase is SessionPhase.COMPLETED
        assert session.summary.score == 2
        assert session.operation_id == "fractions"

    def test_zero_denominator_is_an_incorrect_attempt(self, make_settings):
        session = self._session(make_settings, problem_count=2, max_attempts=1)
        outcome = session.submit_fraction(3, 0)

        assert outcome.status is AttemptStatus.REVEALED
        assert outcome.correct_answer == Fraction(3, 4)
        assert not session.state.history[0].has_answer
        assert "3/4" in session.feedback.message

    def test_history_view_and_serialization(self, make_settings):
        session = self._session(make_settings, problem_count=2, max_attempts=1)
        session.submit_answer("2/3")
        session.advance()

        view = session.view_previous()
        assert "(2/3)" in view.feedback.message
        assert "3/4" in view.feedback.message

        data = json.loads(json.dumps(session.to_dict()))
        assert data["history"][0]["submitted_answer"] == "2/3"

    def test_timeout_evaluates_fraction_draft(self, make_settings):
        session = self._session(make_settings, problem_count=2, time_value=5)
        session.enter_draft("9/12")
        outcome = session.tick(5)
        assert outcome.is_correct


class TestFractionsModule:
    def test_orchestrator_builds_fraction_sessions(self, store, progress_store, rng):
        source = StaticSettingsSource({"fractions": {"problemCount": 4, "fractionType": "comparison"}})
        orchestrator = PracticeOrchestrator("child-1", "fractions", source, store, progress_store, rng=rng)
        session = orchestrator.start_session()

        assert session.generator.name == "fractions"
        assert all(p.kind is FractionKind.COMPARISON for p in session.state.problems)

        for _ in range(session.total_problems):
            session.submit_answer(session.active_problem.answer_text)
            session.advance()

        assert progress_store.history("fractions")[0]["score"] == 4
        assert orchestrator.reward_engine.has("perfect-session")
