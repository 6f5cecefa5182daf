"""
Exercise session state machine.

One ExerciseSession runs one practice set:

    NOT_STARTED -> ACTIVE -> WAITING_TO_ADVANCE | ACTIVE (retry) | LEVEL_UP_PAUSE
                -> ACTIVE (next problem) -> ... -> COMPLETED

All mutable state lives in a single SessionState value. Time is driven by
the host calling ``tick()`` once per second; inputs arriving in a phase
that does not accept them are ignored (logged at DEBUG, return None).
"""

from __future__ import annotations

import math
from fractions import Fraction
from typing import Any, List, Optional, Sequence

from loguru import logger

from ..config import config
from ..errors import PersistenceError, SessionStateError, SettingsError
from ..models.fraction import FractionProblem
from ..models.problem import AttemptRecord, AttemptStatus, DifficultyLevel, Problem
from ..models.reward import EarnedReward, RewardTheme
from ..models.session_state import (
    AttemptOutcome,
    Feedback,
    FeedbackKind,
    ProblemView,
    SessionPhase,
    SessionState,
    SessionSummary,
)
from ..models.settings import ExerciseSettings
from ..utils.progress import ProgressStore
from .compensation import CompensationPolicy, NoCompensation, OnePerMissPolicy
from .evaluator import AnswerEvaluator, fraction_from_fields
from .fraction_generator import FractionProblemGenerator
from .generator import ProblemGenerator
from .level_manager import LevelManager, LevelResult
from .notifications import NotificationChannel, SessionCompleted
from .rewards import RewardContext, RewardEngine
from .timers import Countdown, ElapsedClock


class ExerciseSession:
    """
    Runs the attempt/answer/timeout/reveal cycle for one practice set.

    Features:
    - Attempt limits (0 = unlimited) with automatic reveal when exhausted
    - Per-problem countdown; an expired countdown counts as an attempt
    - Streak updates through LevelManager, with a pause on level-up
    - Reward checkpoints on correct answers
    - Read-only history navigation
    - Optional auto-advance after a correct answer
    - Summary saved to the Progress Store on completion

    Usage:
        session = ExerciseSession(settings, ProblemGenerator(rng=rng), level_manager=manager)
        outcome = session.submit_answer("12")
        if session.state.phase is SessionPhase.WAITING_TO_ADVANCE:
            session.advance()
    """

    def __init__(
        self,
        settings: ExerciseSettings,
        generator: ProblemGenerator | FractionProblemGenerator,
        level_manager: Optional[LevelManager] = None,
        reward_engine: Optional[RewardEngine] = None,
        progress_store: Optional[ProgressStore] = None,
        channel: Optional[NotificationChannel] = None,
        evaluator: Optional[AnswerEvaluator] = None,
        compensation: Optional[CompensationPolicy] = None,
        operation_id: Optional[str] = None,
        learner_context: Optional[str] = None,
        problems: Optional[Sequence[Problem | FractionProblem]] = None,
    ):
        """
        Create a session and generate its problem set.

        Args:
            settings: Settings read once for this session
            generator: Problem source for the session's operation
            level_manager: Persistent streak/level state (optional)
            reward_engine: Reward checkpoints (used when settings.enable_rewards)
            progress_store: Receives the summary on completion
            channel: Where SessionCompleted is published
            compensation: Policy consulted before completing (default: one
                extra problem per miss when settings.enable_compensation)
            operation_id: Module id for the summary (default: generator operation)
            problems: Explicit problem set instead of generating one

        Raises:
            SettingsError: If the session would have no problems
        """
        self.settings = settings
        self.generator = generator
        self.level_manager = level_manager
        self.reward_engine = reward_engine
        self.progress_store = progress_store
        self.channel = channel
        self.evaluator = evaluator or AnswerEvaluator()
        if compensation is None:
            compensation = OnePerMissPolicy() if settings.enable_compensation else NoCompensation()
        self.compensation = compensation
        self.operation_id = operation_id or generator.name
        self.learner_context = learner_context

        self.difficulty = self._starting_difficulty()
        if problems is None:
            problems = generator.generate_set(self.difficulty, settings.problem_count)
        if not problems:
            raise SettingsError("A session needs at least one problem", errors=["problem_count: must be >= 1"])
        self.state = SessionState(problems=list(problems))

        self.elapsed_clock = ElapsedClock()
        self.problem_timer = Countdown(settings.time_value)
        self.advance_timer = Countdown(max(1, config.engine.auto_advance_delay_seconds))

        self.summary: Optional[SessionSummary] = None
        self.persistence_error: Optional[PersistenceError] = None
        self._torn_down = False

        logger.debug(
            "Session created: {} x{} at {}", self.operation_id, len(self.state.problems), self.difficulty.value
        )

    # ----- queries -----

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def active_problem(self) -> Problem:
        return self.state.active_problem

    @property
    def feedback(self) -> Optional[Feedback]:
        return self.state.feedback

    @property
    def score(self) -> int:
        return self.state.score

    @property
    def total_problems(self) -> int:
        return len(self.state.problems)

    @property
    def progress_percentage(self) -> float:
        if not self.state.problems:
            return 0.0
        return round(self.state.attempted_count / self.total_problems * 100, 2)

    @property
    def attempts_remaining(self) -> Optional[int]:
        if not self.settings.has_attempt_limit:
            return None
        return max(0, self.settings.max_attempts - self.state.current_attempts)

    @property
    def is_viewing_history(self) -> bool:
        return self.state.viewing_index is not None

    @property
    def adaptive(self) -> bool:
        return self.settings.enable_adaptive_difficulty and self.level_manager is not None

    def _starting_difficulty(self) -> DifficultyLevel:
        if self.adaptive:
            return self.level_manager.current_level
        return self.settings.difficulty

    def _current_difficulty(self) -> DifficultyLevel:
        if self.adaptive:
            return self.level_manager.current_level
        return self.difficulty

    def _accepts_input(self, action: str) -> bool:
        if self._torn_down or self.state.is_complete:
            logger.debug("Ignoring {}: session is closed", action)
            return False
        if self.state.phase is not SessionPhase.ACTIVE:
            logger.debug("Ignoring {} in phase {}", action, self.state.phase.value)
            return False
        if self.is_viewing_history:
            logger.debug("Ignoring {} while viewing problem {}", action, self.state.viewing_index)
            return False
        return True

    # ----- lifecycle -----

    def start(self) -> bool:
        """Start the clocks. Returns False if the session was already started."""
        if self._torn_down or self.state.is_started:
            return False
        self.state.phase = SessionPhase.ACTIVE
        self.elapsed_clock.start()
        self._restart_problem_timer()
        logger.info("Session started: {} ({} problems)", self.operation_id, self.total_problems)
        return True

    def teardown(self) -> None:
        """Stop every timer; later inputs and ticks are ignored."""
        self._stop_timers()
        self._torn_down = True

    def _stop_timers(self) -> None:
        self.elapsed_clock.stop()
        self.problem_timer.cancel()
        self.advance_timer.cancel()
        self.state.per_problem_remaining_seconds = 0

    def _restart_problem_timer(self) -> None:
        if self.settings.has_time_limit:
            self.problem_timer.start(self.settings.time_value)
        else:
            self.problem_timer.cancel()
        self.state.per_problem_remaining_seconds = self.problem_timer.remaining

    # ----- input -----

    def enter_draft(self, text: str) -> bool:
        """Record in-progress input; the first input starts the session."""
        if not self.state.is_started:
            self.start()
        if not self._accepts_input("draft"):
            return False
        self.state.draft = text or ""
        return True

    def submit_answer(self, answer: Any) -> Optional[AttemptOutcome]:
        """
        Evaluate an answer for the active problem.

        The first submission also starts the session. Returns None when the
        current phase does not accept answers.
        """
        if not self.state.is_started:
            self.start()
        if not self._accepts_input("submission"):
            return None

        return self._evaluate(self.evaluator.coerce(self.state.active_problem, answer))

    def submit_digits(self, slots: Sequence[str]) -> Optional[AttemptOutcome]:
        """Evaluate an answer assembled from per-digit input slots."""
        value = self.evaluator.answer_from_digits(self.state.active_problem, slots)
        return self.submit_answer(value)

    def submit_fraction(self, numerator: Any, denominator: Any) -> Optional[AttemptOutcome]:
        """Evaluate separate numerator and denominator inputs; a zero denominator is an incorrect attempt."""
        return self.submit_answer(fraction_from_fields(numerator, denominator))

    def reveal(self) -> Optional[AttemptOutcome]:
        """
        Show the answer for the active problem.

        Counts as an attempt while under the limit and always moves on to
        WAITING_TO_ADVANCE. Streaks are not touched.
        """
        if not self._accepts_input("reveal"):
            return None

        state = self.state
        record = self._active_record()
        if not self.settings.has_attempt_limit or state.current_attempts < self.settings.max_attempts:
            state.current_attempts += 1
        record.attempts_used = state.current_attempts
        record.status = AttemptStatus.REVEALED
        state.session_streak = 0

        self.problem_timer.cancel()
        state.per_problem_remaining_seconds = 0
        state.phase = SessionPhase.WAITING_TO_ADVANCE
        state.feedback = Feedback(FeedbackKind.REVEALED, self._answer_message(state.active_problem))
        logger.debug("Problem {} revealed", state.active_index)

        return AttemptOutcome(
            status=AttemptStatus.REVEALED,
            is_correct=False,
            attempts_used=state.current_attempts,
            attempts_remaining=self.attempts_remaining,
            phase=state.phase,
            correct_answer=state.active_problem.correct_answer,
        )

    def _active_record(self) -> AttemptRecord:
        state = self.state
        record = state.history[state.active_index]
        # a slot regenerated after a level-up keeps its old record until first evaluated
        if record is None or record.problem_id != state.active_problem.id:
            record = AttemptRecord(problem_id=state.active_problem.id)
            state.history[state.active_index] = record
        return record

    def _evaluate(self, value: float | Fraction, timed_out: bool = False) -> AttemptOutcome:
        state = self.state
        problem = state.active_problem
        record = self._active_record()

        state.current_attempts += 1
        record.attempts_used = state.current_attempts
        record.submitted_answer = value
        state.draft = ""

        if self.evaluator.check(problem, value):
            return self._on_correct(problem, record)
        return self._on_incorrect(problem, record, timed_out)

    def _on_correct(self, problem: Problem, record: AttemptRecord) -> AttemptOutcome:
        state = self.state
        record.status = AttemptStatus.CORRECT
        state.session_streak += 1
        self.problem_timer.cancel()
        state.per_problem_remaining_seconds = 0

        level = self._register(correct=True)
        reward = self._reward_checkpoint(problem)

        if level is not None and level.leveled_up:
            state.phase = SessionPhase.LEVEL_UP_PAUSE
            state.feedback = Feedback(
                FeedbackKind.LEVEL_CHANGED, f"Level up! Now at {level.new_level.value}"
            )
        else:
            state.phase = SessionPhase.WAITING_TO_ADVANCE
            state.feedback = self._immediate(Feedback(FeedbackKind.CORRECT, "Correct!"))
            if self.settings.auto_continue:
                self.advance_timer.start()

        return AttemptOutcome(
            status=AttemptStatus.CORRECT,
            is_correct=True,
            attempts_used=state.current_attempts,
            attempts_remaining=self.attempts_remaining,
            phase=state.phase,
            leveled_up=bool(level and level.leveled_up),
            new_level=level.new_level if level else None,
            reward=reward,
        )

    def _on_incorrect(self, problem: Problem, record: AttemptRecord, timed_out: bool) -> AttemptOutcome:
        state = self.state
        record.failed_attempts += 1
        state.session_streak = 0
        level = self._register(correct=False)

        exhausted = self.settings.has_attempt_limit and state.current_attempts >= self.settings.max_attempts
        correct_answer = None
        if exhausted:
            record.status = AttemptStatus.REVEALED
            correct_answer = problem.correct_answer
            self.problem_timer.cancel()
            state.per_problem_remaining_seconds = 0
            state.phase = SessionPhase.WAITING_TO_ADVANCE
            feedback = Feedback(FeedbackKind.REVEALED, self._answer_message(problem))
        else:
            record.status = AttemptStatus.TIMED_OUT if timed_out else AttemptStatus.INCORRECT
            self._restart_problem_timer()
            if timed_out:
                feedback = Feedback(FeedbackKind.TIMED_OUT, "Time is up! Try again.")
            else:
                feedback = Feedback(FeedbackKind.INCORRECT, "Incorrect, try again.")
            feedback = self._immediate(feedback)

        if feedback is not None and level is not None and level.leveled_down:
            feedback = Feedback(feedback.kind, f"Level decreased to {level.new_level.value}. {feedback.message}")
        state.feedback = feedback

        return AttemptOutcome(
            status=record.status,
            is_correct=False,
            attempts_used=state.current_attempts,
            attempts_remaining=self.attempts_remaining,
            phase=state.phase,
            correct_answer=correct_answer,
            leveled_down=bool(level and level.leveled_down),
            new_level=level.new_level if level else None,
        )

    def _immediate(self, feedback: Feedback) -> Optional[Feedback]:
        return feedback if self.settings.show_immediate_feedback else None

    def _answer_message(self, problem: Problem) -> str:
        if self.settings.show_answer_with_explanation:
            return f"The correct answer is {problem.answer_text}"
        return "No attempts left"

    def _register(self, correct: bool) -> Optional[LevelResult]:
        if self.level_manager is None:
            return None
        if correct:
            return self.level_manager.register_correct()
        return self.level_manager.register_incorrect()

    def _reward_checkpoint(self, problem: Problem) -> Optional[EarnedReward]:
        if not self.settings.enable_rewards or self.reward_engine is None:
            return None
        state = self.state
        context = RewardContext(
            problem_index=state.active_index,
            total_problems=len(state.problems),
            streak=state.session_streak,
            difficulty=problem.difficulty,
            previous_reward_index=state.last_reward_index,
        )
        theme = problem.operation if problem.operation in {t.value for t in RewardTheme} else None
        reward = self.reward_engine.offer(context, theme=theme)
        if reward is not None:
            state.last_reward_index = state.active_index
        return reward

    # ----- time -----

    def tick(self, seconds: int = 1) -> Optional[AttemptOutcome]:
        """
        Advance the session clocks.

        Returns the outcome of a per-problem timeout if one fired. An expired
        countdown evaluates a pending draft as a normal submission, otherwise
        records an empty timed-out attempt.
        """
        if self._torn_down or not self.state.is_started or self.state.is_complete:
            return None

        self.state.elapsed_seconds = self.elapsed_clock.tick(seconds)

        if self.state.phase is SessionPhase.WAITING_TO_ADVANCE and self.advance_timer.tick(seconds):
            logger.debug("Auto-advancing from problem {}", self.state.active_index)
            self._advance()
            return None

        if self.state.phase is not SessionPhase.ACTIVE or self.is_viewing_history:
            return None

        expired = self.problem_timer.tick(seconds)
        self.state.per_problem_remaining_seconds = self.problem_timer.remaining
        if not expired:
            return None

        draft = self.state.draft.strip()
        if draft:
            logger.debug("Time up on problem {}; evaluating draft", self.state.active_index)
            return self._evaluate(self.evaluator.coerce(self.state.active_problem, draft))
        logger.debug("Time up on problem {}", self.state.active_index)
        return self._evaluate(math.nan, timed_out=True)

    def cancel_auto_advance(self) -> None:
        self.advance_timer.cancel()

    # ----- transitions -----

    def advance(self) -> Optional[SessionPhase]:
        """
        Move from WAITING_TO_ADVANCE to the next problem (or complete).

        Ignored in any other phase; a pending level-up must be acknowledged
        first.
        """
        if self._torn_down or self.state.phase is not SessionPhase.WAITING_TO_ADVANCE:
            logger.debug("Ignoring advance in phase {}", self.state.phase.value)
            return None
        return self._advance()

    def _advance(self) -> SessionPhase:
        state = self.state
        self.advance_timer.cancel()
        state.viewing_index = None

        if state.active_index + 1 >= len(state.problems):
            self._compensate()

        if state.active_index + 1 < len(state.problems):
            state.active_index += 1
            state.current_attempts = 0
            state.feedback = None
            state.draft = ""
            state.phase = SessionPhase.ACTIVE
            self._restart_problem_timer()
        else:
            self.complete()
        return state.phase

    def _compensate(self) -> None:
        slots = self.compensation.extra_problems(self.state)
        if not slots:
            return
        difficulty = self._current_difficulty()
        for slot in slots:
            self.state.compensated_slots.append(slot)
            self.state.append_problem(self.generator.generate(difficulty))
        logger.info("Added {} compensation problem(s)", len(slots))

    def acknowledge_level_up(self, strict: bool = False) -> Optional[Problem]:
        """
        Release the level-up pause.

        The active slot is regenerated at the new level and the learner
        resumes on it with a fresh attempt count. The slot keeps the correct
        record that triggered the level-up until the new problem is first
        evaluated, so the score does not change here.

        Raises:
            SessionStateError: If strict and no level-up is pending
        """
        state = self.state
        if self._torn_down or state.phase is not SessionPhase.LEVEL_UP_PAUSE:
            if strict:
                raise SessionStateError(f"No level-up pending (phase: {state.phase.value})")
            logger.debug("Ignoring level-up acknowledgment in phase {}", state.phase.value)
            return None

        problem = self.generator.generate(self._current_difficulty())
        state.problems[state.active_index] = problem
        state.current_attempts = 0
        state.feedback = None
        state.draft = ""
        state.viewing_index = None
        state.phase = SessionPhase.ACTIVE
        self._restart_problem_timer()
        logger.debug("Slot {} regenerated at {}", state.active_index, problem.difficulty.value)
        return problem

    def complete(self) -> SessionSummary:
        """Finish the session and send the summary to the Progress Store."""
        if self.summary is not None:
            return self.summary

        state = self.state
        self._stop_timers()
        state.phase = SessionPhase.COMPLETED

        summary = SessionSummary(
            operation_id=self.operation_id,
            score=state.score,
            total_problems=len(state.problems),
            elapsed_seconds=state.elapsed_seconds,
            difficulty=self._current_difficulty(),
            learner_context=self.learner_context,
        )
        if self.progress_store is not None:
            try:
                self.progress_store.save(summary.to_progress_entry())
                summary.saved = True
            except PersistenceError as e:
                logger.warning("Could not save session summary: {}", e)
                self.persistence_error = e
        self.summary = summary

        logger.info(
            "Session completed: {} {}/{} in {}s",
            self.operation_id, summary.score, summary.total_problems, summary.elapsed_seconds,
        )
        if self.channel is not None:
            self.channel.publish(SessionCompleted(summary))
        return summary

    # ----- history navigation -----

    def view_previous(self) -> Optional[ProblemView]:
        """Display the problem before the one currently shown."""
        state = self.state
        if self._torn_down or not state.is_started or state.is_complete:
            return None
        base = state.viewing_index if state.viewing_index is not None else state.active_index
        target = base - 1
        if target < 0:
            return None

        if state.viewing_index is None:
            self.problem_timer.pause()
            self.advance_timer.cancel()
        state.viewing_index = target
        return self._view(target)

    def view_next(self) -> Optional[ProblemView]:
        """Step forward through history; reaching the active problem returns to it."""
        state = self.state
        if state.viewing_index is None:
            return None
        target = state.viewing_index + 1
        if target >= state.active_index:
            return self.return_to_active()
        state.viewing_index = target
        return self._view(target)

    def return_to_active(self) -> ProblemView:
        """Leave history navigation, restoring the active problem exactly."""
        state = self.state
        if state.viewing_index is not None:
            state.viewing_index = None
            if state.phase is SessionPhase.ACTIVE:
                self.problem_timer.resume()
        return self._view(state.active_index)

    def _view(self, index: int) -> ProblemView:
        state = self.state
        problem = state.problems[index]
        record = state.history[index]
        is_active = index == state.active_index
        if is_active:
            feedback = state.feedback
        elif record is None:
            feedback = Feedback(FeedbackKind.INFO, "No answer recorded for this problem")
        elif record.is_correct:
            feedback = Feedback(FeedbackKind.CORRECT, f"Your answer {problem.answer_text} was correct")
        else:
            given = problem.format_answer(record.submitted_answer)
            feedback = Feedback(
                FeedbackKind.INCORRECT,
                f"Your answer ({given}) was incorrect. The correct answer is {problem.answer_text}",
            )
        return ProblemView(index=index, problem=problem, record=record, is_active=is_active, feedback=feedback)

    # ----- serialization -----

    def to_dict(self) -> dict:
        data = self.state.to_dict()
        data.update(
            {
                "operation_id": self.operation_id,
                "difficulty": self.difficulty.value,
                "settings": self.settings.to_dict(),
                "progress_percentage": self.progress_percentage,
            }
        )
        return data

    def records(self) -> List[Optional[AttemptRecord]]:
        return list(self.state.history)
