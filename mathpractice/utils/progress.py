"""
Progress Store and progress analytics.

Provides:
- ProgressStore implementations receiving finished-session summaries
- Per-module aggregates (best/average accuracy, average time)
- Summary statistics and trend detection over session accuracies
"""

from __future__ import annotations

import json
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
from loguru import logger

from ..config import config
from ..errors import PersistenceError
from .validation import validate_progress_entry


@dataclass
class ModuleProgress:
    """
    Aggregate over every saved session of one module.

    Scores are accuracies in [0, 1].
    """

    operation_id: str
    total_completed: int = 0
    best_score: float = 0.0
    average_score: float = 0.0
    average_time: float = 0.0
    last_attempt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operationId": self.operation_id,
            "totalCompleted": self.total_completed,
            "bestScore": self.best_score,
            "averageScore": self.average_score,
            "averageTime": self.average_time,
            "lastAttempt": self.last_attempt,
        }


def entry_accuracy(entry: Dict[str, Any]) -> float:
    """Accuracy of one progress entry, 0 for an empty session."""
    total = entry.get("totalProblems", 0)
    return entry.get("score", 0) / total if total > 0 else 0.0


def build_module_progress(operation_id: str, entries: List[Dict[str, Any]]) -> ModuleProgress:
    """
    Aggregate progress entries of one module.

    Args:
        operation_id: Module identifier
        entries: Entries in save order (oldest first)
    """
    if not entries:
        return ModuleProgress(operation_id=operation_id)

    accuracies = np.array([entry_accuracy(e) for e in entries], dtype=float)
    times = np.array([e.get("timeSpent", 0) for e in entries], dtype=float)
    return ModuleProgress(
        operation_id=operation_id,
        total_completed=len(entries),
        best_score=round(float(accuracies.max()), 4),
        average_score=round(float(accuracies.mean()), 4),
        average_time=round(float(times.mean()), 2),
        last_attempt=max(e["date"] for e in entries),
    )


class ProgressStore(ABC):
    """Receives session summaries and answers progress queries."""

    @abstractmethod
    def save(self, entry: Dict[str, Any]) -> None:
        """
        Persist one finished-session entry.

        Raises:
            PersistenceError: If the entry is invalid or cannot be stored
        """

    @abstractmethod
    def history(self, operation_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Saved entries, oldest first, optionally filtered by module."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every saved entry."""

    def module_progress(self, operation_id: str) -> ModuleProgress:
        return build_module_progress(operation_id, self.history(operation_id))

    def _check(self, entry: Dict[str, Any]) -> None:
        result = validate_progress_entry(entry)
        if not result:
            raise PersistenceError("Invalid progress entry: " + "; ".join(result.errors))


class InMemoryProgressStore(ProgressStore):
    def __init__(self):
        self._entries: List[Dict[str, Any]] = []

    def save(self, entry: Dict[str, Any]) -> None:
        self._check(entry)
        self._entries.append(dict(entry))

    def history(self, operation_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            dict(e) for e in self._entries
            if operation_id is None or e["operationId"] == operation_id
        ]

    def clear(self) -> None:
        self._entries.clear()


class JsonProgressStore(ProgressStore):
    """
    Progress history kept in a single JSON file.

    File layout: ``{"exerciseHistory": [entry, ...]}``
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path else config.paths.progress_file
        self._lock = threading.Lock()

    def _read(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read progress file {self.path}: {e}") from e
        return list(data.get("exerciseHistory", []))

    def _write(self, entries: List[Dict[str, Any]]) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({"exerciseHistory": entries}, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Failed to write progress file {self.path}: {e}") from e

    def save(self, entry: Dict[str, Any]) -> None:
        self._check(entry)
        with self._lock:
            entries = self._read()
            entries.append(dict(entry))
            self._write(entries)
        logger.info(
            "Saved progress for {}: {}/{}",
            entry["operationId"], entry["score"], entry["totalProblems"],
        )

    def history(self, operation_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            entries = self._read()
        return [e for e in entries if operation_id is None or e.get("operationId") == operation_id]

    def clear(self) -> None:
        with self._lock:
            self._write([])


def accuracy_summary(entries: List[Dict[str, Any]]) -> Dict[str, float]:
    """
    Calculate summary statistics for session accuracies.

    Args:
        entries: Progress entries

    Returns:
        Dict with mean, median, min, max, std_dev, count

    Example:
        >>> accuracy_summary([{"score": 3, "totalProblems": 4}, {"score": 1, "totalProblems": 2}])["mean"]
        0.62
    """
    if not entries:
        return {"mean": 0.0, "median": 0.0, "min": 0.0, "max": 0.0, "std_dev": 0.0, "count": 0}

    values = np.array([entry_accuracy(e) for e in entries], dtype=float)
    return {
        "mean": round(float(values.mean()), 2),
        "median": round(float(np.median(values)), 2),
        "min": round(float(values.min()), 2),
        "max": round(float(values.max()), 2),
        "std_dev": round(float(values.std()), 2),
        "count": int(values.size),
    }


def accuracy_trend(entries: List[Dict[str, Any]], window: int = 3, tolerance: float = 0.05) -> str:
    """
    Compare the mean accuracy of the latest window against the one before it.

    Returns:
        "improving", "declining" or "stable" ("stable" when fewer than
        two sessions are available)
    """
    if len(entries) < 2:
        return "stable"

    values = np.array([entry_accuracy(e) for e in entries], dtype=float)
    window = max(1, min(window, len(values) // 2))
    recent = values[-window:].mean()
    previous = values[-2 * window:-window].mean()

    if recent - previous > tolerance:
        return "improving"
    if previous - recent > tolerance:
        return "declining"
    return "stable"
