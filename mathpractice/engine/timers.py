"""
Tick-driven timers.

The host calls ``tick()`` once per second. Nothing here reads the wall
clock, so a cancelled timer can never fire late into a newer state.
"""

from __future__ import annotations


class Countdown:
    """Cancelable countdown in whole seconds."""

    def __init__(self, seconds: int = 0):
        self.duration = seconds
        self.remaining = 0
        self.running = False

    def start(self, seconds: int | None = None) -> None:
        """(Re)start from `seconds` (default: the configured duration)."""
        if seconds is not None:
            self.duration = seconds
        self.remaining = self.duration
        self.running = self.remaining > 0

    def resume(self) -> None:
        """Continue from the remaining seconds after a pause."""
        self.running = self.remaining > 0

    def pause(self) -> None:
        self.running = False

    def cancel(self) -> None:
        self.running = False
        self.remaining = 0

    def tick(self, seconds: int = 1) -> bool:
        """
        Advance the countdown.

        Returns:
            True exactly once, on the tick that reaches zero
        """
        if not self.running:
            return False
        self.remaining = max(0, self.remaining - seconds)
        if self.remaining == 0:
            self.running = False
            return True
        return False

    def __repr__(self) -> str:
        return f"Countdown(remaining={self.remaining}, running={self.running})"


class ElapsedClock:
    """Counts seconds up while running."""

    def __init__(self):
        self.elapsed = 0
        self.running = False

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def tick(self, seconds: int = 1) -> int:
        if self.running:
            self.elapsed += seconds
        return self.elapsed
