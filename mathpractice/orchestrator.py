"""
Practice orchestrator.

Wires the engine together for one learner and one module:
1. Settings read from the Settings Source at every session start
2. Persistent LevelManager and RewardEngine shared across sessions
3. One active ExerciseSession at a time (the previous one is torn down)
4. Milestone rewards evaluated when a session completes
"""

from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

from loguru import logger

from .config import config
from .engine.fraction_generator import FRACTIONS, FractionProblemGenerator
from .engine.generator import OPERATIONS, ProblemGenerator
from .engine.level_manager import LevelManager
from .engine.notifications import NotificationChannel, SessionCompleted
from .engine.rewards import RewardEngine
from .engine.session import ExerciseSession
from .models.problem import AttemptStatus
from .models.reward import EarnedReward, RewardTheme
from .models.session_state import SessionSummary
from .models.settings import ExerciseSettings
from .utils.persistence import KeyValueStore
from .utils.progress import ModuleProgress, ProgressStore, entry_accuracy
from .utils.settings_source import SettingsSource

# Accuracy gain over the previous session that earns the improvement reward
IMPROVEMENT_THRESHOLD = 0.2
# Failed attempts before a correct answer that earn the perseverance reward
PERSEVERANCE_FAILURES = 2

SUPPORTED_OPERATIONS = frozenset(OPERATIONS) | {FRACTIONS}


class PracticeOrchestrator:
    """
    Owns the engine components for one learner+module pair.

    Usage:
        orchestrator = PracticeOrchestrator("child-1", "addition", settings_source, store, progress_store)
        session = orchestrator.start_session()
        session.submit_answer("12")
    """

    def __init__(
        self,
        learner_context: str,
        module_id: str,
        settings_source: SettingsSource,
        store: KeyValueStore,
        progress_store: ProgressStore,
        channel: Optional[NotificationChannel] = None,
        rng: Optional[random.Random] = None,
        operation: Optional[str] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            learner_context: Learner identity (profile id)
            module_id: Module being practised; also the Progress Store operationId
            settings_source: Per-module settings provider
            store: Key-value store for level and reward state
            progress_store: Receives session summaries
            channel: Notification channel shared with the UI (created if None)
            rng: Random source for problems and rewards (seeded from config if None)
            operation: Generator operation ("addition" or "fractions"; default: module_id
                when it names one, else addition)
        """
        self.learner_context = learner_context
        self.module_id = module_id
        self.settings_source = settings_source
        self.store = store
        self.progress_store = progress_store
        self.channel = channel or NotificationChannel()
        self.rng = rng or random.Random(config.engine.random_seed)
        self.operation = operation or (module_id if module_id in SUPPORTED_OPERATIONS else "addition")

        settings = settings_source.get_module_settings(module_id)
        self.level_manager = LevelManager(
            store,
            learner_context,
            module_id,
            channel=self.channel,
            initial_level=settings.difficulty,
            adaptive=settings.enable_adaptive_difficulty,
        )
        self.reward_engine = RewardEngine(store, learner_context, channel=self.channel, rng=self.rng)

        self.session: Optional[ExerciseSession] = None
        self.last_milestones: List[EarnedReward] = []
        self._unsubscribe = self.channel.subscribe(self._on_session_completed, SessionCompleted)

    def start_session(self) -> ExerciseSession:
        """Tear down any running session and create a new one from fresh settings."""
        if self.session is not None:
            self.session.teardown()

        settings = self.settings_source.get_module_settings(self.module_id)
        if self.level_manager.adaptive_enabled != settings.enable_adaptive_difficulty:
            self.level_manager.set_adaptive(settings.enable_adaptive_difficulty)

        self.last_milestones = []
        self.session = ExerciseSession(
            settings,
            self._generator(settings),
            level_manager=self.level_manager,
            reward_engine=self.reward_engine,
            progress_store=self.progress_store,
            channel=self.channel,
            operation_id=self.module_id,
            learner_context=self.learner_context,
        )
        logger.info(
            "Started {} session for {} at {}",
            self.module_id, self.learner_context, self.session.difficulty.value,
        )
        return self.session

    def _generator(self, settings: ExerciseSettings) -> ProblemGenerator | FractionProblemGenerator:
        if self.operation == FRACTIONS:
            return FractionProblemGenerator(settings.fraction_type, rng=self.rng)
        return ProblemGenerator(self.operation, rng=self.rng)

    def module_progress(self) -> ModuleProgress:
        return self.progress_store.module_progress(self.module_id)

    def close(self) -> None:
        """Tear down the running session and detach from the channel."""
        if self.session is not None:
            self.session.teardown()
        self._unsubscribe()

    # ----- milestones -----

    def _on_session_completed(self, event: SessionCompleted) -> None:
        session = self.session
        if session is None or event.summary is not session.summary:
            return
        if not session.settings.enable_rewards:
            return

        conditions = self.milestone_conditions(session, event.summary)
        theme = self.module_id if self.module_id in {t.value for t in RewardTheme} else RewardTheme.GENERAL
        self.last_milestones = self.reward_engine.check_and_award(conditions, theme=theme)
        if self.last_milestones:
            logger.info("Milestones earned: {}", [r.id for r in self.last_milestones])

    def milestone_conditions(self, session: ExerciseSession, summary: SessionSummary) -> Dict[str, Any]:
        """Build check_and_award conditions for a completed session."""
        history = self.progress_store.history(self.module_id)
        completed = sum(e.get("totalProblems", 0) for e in history)
        previous = history[:-1] if summary.saved else history
        if not summary.saved:
            completed += summary.total_problems

        improvement = bool(previous) and (
            summary.accuracy - entry_accuracy(previous[-1]) >= IMPROVEMENT_THRESHOLD
        )

        records = [r for r in session.records() if r is not None]
        longest = run = 0
        for record in records:
            run = run + 1 if record.status is AttemptStatus.CORRECT else 0
            longest = max(longest, run)

        return {
            "problems_completed": completed,
            "streak": longest,
            "level": self.level_manager.current_level.rank if session.adaptive else 0,
            "perfect_session": summary.is_perfect,
            "improvement": improvement,
            "perseverance": any(r.is_correct and r.failed_attempts >= PERSEVERANCE_FAILURES for r in records),
            "session_completed": True,
        }
