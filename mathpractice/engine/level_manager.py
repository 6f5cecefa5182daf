"""
Adaptive difficulty management.

LevelManager owns the LevelState of one learner+module pair: the current
level plus consecutive-correct and consecutive-incorrect counters. Every
mutation is written through to the injected key-value store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from ..config import config
from ..errors import PersistenceError
from ..models.level_state import LevelState
from ..models.problem import DifficultyLevel
from ..utils.persistence import KeyValueStore, StoreKey
from ..utils.validation import get_validator
from .notifications import LevelChanged, NotificationChannel

LEVEL_STATE_KIND = "level_state"


@dataclass(frozen=True)
class LevelResult:
    """Outcome of registering one answer."""

    previous_level: DifficultyLevel
    new_level: DifficultyLevel
    leveled_up: bool = False
    leveled_down: bool = False
    persisted: bool = True

    @property
    def changed(self) -> bool:
        return self.leveled_up or self.leveled_down


class LevelManager:
    """
    Streak-driven difficulty state machine.

    Features:
    - 10 consecutive correct answers raise the level (adaptive mode only)
    - 5 consecutive incorrect answers lower it (adaptive mode only)
    - Levels clamp at beginner and expert
    - LevelChanged events published on the injected channel
    - Persistence failures are recorded, never raised

    Usage:
        manager = LevelManager(store, "child-1", "addition", adaptive=True)
        result = manager.register_correct()
        if result.leveled_up:
            print(f"Now at {result.new_level.value}")
    """

    def __init__(
        self,
        store: KeyValueStore,
        learner_context: str,
        module_id: str,
        channel: Optional[NotificationChannel] = None,
        initial_level: DifficultyLevel | str = DifficultyLevel.BEGINNER,
        adaptive: bool = False,
        level_up_threshold: Optional[int] = None,
        level_down_threshold: Optional[int] = None,
    ):
        """
        Initialize the manager, loading any persisted state.

        Args:
            store: Key-value store for LevelState
            learner_context: Learner identity (profile id)
            module_id: Module identity (e.g. "addition")
            channel: Where LevelChanged events are published
            initial_level: Level used when nothing is persisted
            adaptive: Adaptive flag used when nothing is persisted
        """
        self.store = store
        self.module_id = module_id
        self.key = StoreKey(learner_context, module_id, LEVEL_STATE_KIND)
        self.channel = channel
        self.level_up_threshold = level_up_threshold or config.engine.level_up_threshold
        self.level_down_threshold = level_down_threshold or config.engine.level_down_threshold
        self.persistence_error: Optional[PersistenceError] = None

        self.state = self._load() or LevelState(
            current_level=DifficultyLevel.parse(initial_level),
            adaptive_enabled=adaptive,
        )

    # ----- queries -----

    @property
    def current_level(self) -> DifficultyLevel:
        return self.state.current_level

    @property
    def correct_streak(self) -> int:
        return self.state.correct_streak

    @property
    def incorrect_streak(self) -> int:
        return self.state.incorrect_streak

    @property
    def adaptive_enabled(self) -> bool:
        return self.state.adaptive_enabled

    # ----- transitions -----

    def register_correct(self) -> LevelResult:
        """Record a correct answer; may raise the level."""
        state = self.state
        previous = state.current_level
        state.incorrect_streak = 0
        state.correct_streak += 1
        logger.debug(
            "[{}] correct streak {}/{}", self.module_id, state.correct_streak, self.level_up_threshold
        )

        leveled_up = False
        if state.adaptive_enabled and state.correct_streak >= self.level_up_threshold:
            if previous.is_max:
                logger.debug("[{}] already at maximum level {}", self.module_id, previous.value)
            else:
                state.current_level = previous.next()
                state.correct_streak = 0
                leveled_up = True

        persisted = self._persist()
        if leveled_up:
            logger.info("[{}] level up: {} -> {}", self.module_id, previous.value, state.current_level.value)
            self._publish(previous, state.current_level, "up")
        return LevelResult(previous, state.current_level, leveled_up=leveled_up, persisted=persisted)

    def register_incorrect(self) -> LevelResult:
        """Record an incorrect answer; may lower the level."""
        state = self.state
        previous = state.current_level
        state.correct_streak = 0
        state.incorrect_streak += 1
        logger.debug(
            "[{}] incorrect streak {}/{}", self.module_id, state.incorrect_streak, self.level_down_threshold
        )

        leveled_down = False
        if state.adaptive_enabled and state.incorrect_streak >= self.level_down_threshold:
            if previous.is_min:
                logger.debug("[{}] already at minimum level {}", self.module_id, previous.value)
            else:
                state.current_level = previous.previous()
                state.incorrect_streak = 0
                leveled_down = True

        persisted = self._persist()
        if leveled_down:
            logger.info("[{}] level down: {} -> {}", self.module_id, previous.value, state.current_level.value)
            self._publish(previous, state.current_level, "down")
        return LevelResult(previous, state.current_level, leveled_down=leveled_down, persisted=persisted)

    def set_level(self, level: DifficultyLevel | str) -> bool:
        """Set the level directly. Streaks are left untouched."""
        self.state.current_level = DifficultyLevel.parse(level)
        return self._persist()

    def set_adaptive(self, enabled: bool) -> bool:
        self.state.adaptive_enabled = bool(enabled)
        return self._persist()

    def reset_streaks(self) -> bool:
        self.state.correct_streak = 0
        self.state.incorrect_streak = 0
        return self._persist()

    # ----- persistence -----

    def _load(self) -> Optional[LevelState]:
        try:
            payload = self.store.load(self.key)
        except PersistenceError as e:
            logger.warning("Could not load level state for {}: {}", self.key, e)
            self.persistence_error = e
            return None
        if payload is None:
            return None

        result = get_validator("level_state").validate(payload, auto_repair=True)
        if not result:
            logger.warning("Ignoring corrupt level state for {}: {}", self.key, result.errors)
            return None
        return LevelState.from_dict(result.data)

    def _persist(self) -> bool:
        try:
            self.store.save(self.key, self.state.to_dict())
        except PersistenceError as e:
            logger.warning("Could not persist level state for {}: {}", self.key, e)
            self.persistence_error = e
            return False
        self.persistence_error = None
        return True

    def _publish(self, previous: DifficultyLevel, new: DifficultyLevel, direction: str) -> None:
        if self.channel is not None:
            self.channel.publish(LevelChanged(previous, new, direction, self.module_id))
