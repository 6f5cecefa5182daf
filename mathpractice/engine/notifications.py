"""
Notification Channel.

Engine components publish typed events; UI-side listeners subscribe. The
channel is injected wherever events originate, so there is no global bus.
Delivery is synchronous and in subscription order. A failing listener is
logged and skipped; it never stops delivery to the others.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple, Type, Union

from loguru import logger

from ..models.problem import DifficultyLevel
from ..models.reward import EarnedReward
from ..models.session_state import SessionSummary


@dataclass(frozen=True)
class LevelChanged:
    previous_level: DifficultyLevel
    new_level: DifficultyLevel
    direction: str  # "up" or "down"
    module_id: Optional[str] = None


@dataclass(frozen=True)
class RewardGranted:
    reward: EarnedReward


@dataclass(frozen=True)
class SessionCompleted:
    summary: SessionSummary


Event = Union[LevelChanged, RewardGranted, SessionCompleted]
Listener = Callable[[Any], None]


class NotificationChannel:
    """
    Synchronous publish/subscribe channel.

    Usage:
        channel = NotificationChannel()
        unsubscribe = channel.subscribe(on_level, LevelChanged)
        channel.publish(LevelChanged(DifficultyLevel.BEGINNER, DifficultyLevel.ELEMENTARY, "up"))
        unsubscribe()
    """

    def __init__(self):
        self._subscriptions: List[Tuple[Listener, Optional[Type]]] = []

    def subscribe(self, listener: Listener, event_type: Optional[Type] = None) -> Callable[[], None]:
        """
        Register a listener.

        Args:
            listener: Called with each matching event
            event_type: Only deliver events of this type (all events if None)

        Returns:
            A callable that removes this subscription
        """
        entry = (listener, event_type)
        self._subscriptions.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscriptions:
                self._subscriptions.remove(entry)

        return unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        """Remove every subscription of listener."""
        self._subscriptions = [s for s in self._subscriptions if s[0] is not listener]

    def publish(self, event: Event) -> int:
        """Deliver event to matching listeners; returns the number that received it."""
        delivered = 0
        for listener, event_type in list(self._subscriptions):
            if event_type is not None and not isinstance(event, event_type):
                continue
            try:
                listener(event)
                delivered += 1
            except Exception:
                logger.exception("Listener {!r} failed on {}", listener, type(event).__name__)
        return delivered

    def __len__(self) -> int:
        return len(self._subscriptions)


@dataclass
class RecordingListener:
    """Listener that keeps every event it receives."""

    events: List[Any] = field(default_factory=list)

    def __call__(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: Type) -> List[Any]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()
