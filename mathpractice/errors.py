"""Exception hierarchy for MathPractice."""

from __future__ import annotations

from typing import Optional


class MathPracticeError(Exception):
    """Base class for all MathPractice errors."""


class PersistenceError(MathPracticeError):
    """
    A store could not be read or written.

    Recoverable: in-memory engine state stays authoritative.
    """

    def __init__(self, message: str, key: Optional[object] = None):
        super().__init__(message)
        self.key = key


class SettingsError(MathPracticeError):
    """A settings record failed validation."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class SessionStateError(MathPracticeError):
    """An operation is not valid in the session's current phase."""
