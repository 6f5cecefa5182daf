"""
Session state models.

SessionState is the single explicit value the ExerciseSession mutates; it
owns every Problem and AttemptRecord of one run, indexed by position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .problem import AttemptRecord, AttemptStatus, DifficultyLevel, Problem


class SessionPhase(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    WAITING_TO_ADVANCE = "waiting_to_advance"
    LEVEL_UP_PAUSE = "level_up_pause"
    COMPLETED = "completed"


class FeedbackKind(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    REVEALED = "revealed"
    TIMED_OUT = "timed_out"
    LEVEL_CHANGED = "level_changed"
    INFO = "info"


@dataclass(frozen=True)
class Feedback:
    kind: FeedbackKind
    message: str


@dataclass
class SessionState:
    """
    Complete mutable state of one exercise run.

    Attributes:
        problems: Problems fixed at session start (a slot may be regenerated after a level-up)
        active_index: Index of the problem being worked on
        history: AttemptRecord per problem slot, None until first evaluated
        elapsed_seconds: Overall clock
        per_problem_remaining_seconds: Countdown for the active problem (0 when unlimited)
        current_attempts: Attempts spent on the active problem
        phase: State machine phase
        viewing_index: Problem displayed by history navigation (None when showing the active one)
    """

    problems: List[Problem]
    active_index: int = 0
    history: List[Optional[AttemptRecord]] = field(default_factory=list)
    elapsed_seconds: int = 0
    per_problem_remaining_seconds: int = 0
    current_attempts: int = 0
    phase: SessionPhase = SessionPhase.NOT_STARTED
    viewing_index: Optional[int] = None
    feedback: Optional[Feedback] = None
    draft: str = ""
    session_streak: int = 0
    last_reward_index: int = -1
    compensated_slots: List[int] = field(default_factory=list)

    def __post_init__(self):
        if not self.history:
            self.history = [None] * len(self.problems)

    @property
    def is_waiting_for_advance(self) -> bool:
        return self.phase in (SessionPhase.WAITING_TO_ADVANCE, SessionPhase.LEVEL_UP_PAUSE)

    @property
    def is_complete(self) -> bool:
        return self.phase is SessionPhase.COMPLETED

    @property
    def is_started(self) -> bool:
        return self.phase is not SessionPhase.NOT_STARTED

    @property
    def active_problem(self) -> Problem:
        return self.problems[self.active_index]

    @property
    def active_record(self) -> Optional[AttemptRecord]:
        return self.history[self.active_index]

    @property
    def score(self) -> int:
        return sum(1 for record in self.history if record is not None and record.is_correct)

    @property
    def attempted_count(self) -> int:
        return sum(1 for record in self.history if record is not None)

    def append_problem(self, problem: Problem) -> None:
        self.problems.append(problem)
        self.history.append(None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "active_index": self.active_index,
            "problems": [p.to_dict() for p in self.problems],
            "history": [r.to_dict() if r is not None else None for r in self.history],
            "elapsed_seconds": self.elapsed_seconds,
            "per_problem_remaining_seconds": self.per_problem_remaining_seconds,
            "current_attempts": self.current_attempts,
            "score": self.score,
        }


@dataclass
class SessionSummary:
    """Final result of a completed session, as sent to the Progress Store."""

    operation_id: str
    score: int
    total_problems: int
    elapsed_seconds: int
    difficulty: DifficultyLevel
    date: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    learner_context: Optional[str] = None
    saved: bool = False

    @property
    def accuracy(self) -> float:
        return self.score / self.total_problems if self.total_problems > 0 else 0.0

    @property
    def is_perfect(self) -> bool:
        return self.total_problems > 0 and self.score == self.total_problems

    def to_progress_entry(self) -> Dict[str, Any]:
        """Serialize using the Progress Store's field names."""
        entry = {
            "operationId": self.operation_id,
            "date": self.date,
            "score": self.score,
            "totalProblems": self.total_problems,
            "timeSpent": self.elapsed_seconds,
            "difficulty": self.difficulty.value,
            "accuracy": round(self.accuracy, 4),
        }
        if self.learner_context is not None:
            entry["learnerContext"] = self.learner_context
        return entry


@dataclass
class AttemptOutcome:
    """
    Result of one evaluated attempt (submission, timeout or reveal).

    Attributes:
        status: Status recorded for the problem after this attempt
        is_correct: Whether this attempt was correct
        attempts_used: Attempts spent on the problem so far
        attempts_remaining: None when attempts are unlimited
        phase: Session phase after the attempt
        correct_answer: Surfaced only when the answer was revealed
        leveled_up / leveled_down: Level transitions triggered by this attempt
        reward: Reward granted at this checkpoint, if any
    """

    status: AttemptStatus
    is_correct: bool
    attempts_used: int
    attempts_remaining: Optional[int]
    phase: SessionPhase
    correct_answer: Optional[float] = None
    leveled_up: bool = False
    leveled_down: bool = False
    new_level: Optional[DifficultyLevel] = None
    reward: Optional[Any] = None


@dataclass(frozen=True)
class ProblemView:
    """What the UI should display: a problem and its recorded outcome."""

    index: int
    problem: Problem
    record: Optional[AttemptRecord]
    is_active: bool
    feedback: Optional[Feedback] = None
