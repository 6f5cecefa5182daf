"""
Compensation policies.

Consulted when a session would complete. A policy may ask for extra
problems to make up for missed ones; returning 0 lets the session finish.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from ..config import config
from ..models.session_state import SessionState


class CompensationPolicy(ABC):
    @abstractmethod
    def extra_problems(self, state: SessionState) -> List[int]:
        """
        Slot indices that earn one extra problem each.

        The session marks the returned slots as compensated so they are
        never counted twice.
        """


class NoCompensation(CompensationPolicy):
    def extra_problems(self, state: SessionState) -> List[int]:
        return []


class OnePerMissPolicy(CompensationPolicy):
    """One extra problem per missed slot, up to a per-session cap."""

    def __init__(self, max_extra: int | None = None):
        self.max_extra = config.engine.max_compensation_problems if max_extra is None else max_extra

    def extra_problems(self, state: SessionState) -> List[int]:
        budget = self.max_extra - len(state.compensated_slots)
        if budget <= 0:
            return []
        missed = [
            index for index, record in enumerate(state.history)
            if record is not None
            and record.status.is_miss
            and index not in state.compensated_slots
        ]
        return missed[:budget]
