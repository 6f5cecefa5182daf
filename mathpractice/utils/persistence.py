"""
Key-value persistence for per-learner engine state.

LevelManager and RewardEngine store their state under a StoreKey made of
(learner_context, module_id, kind). Two stores are provided:

- InMemoryStore: process-local, used by tests and as a degraded fallback
- JsonFileStore: one JSON file per key under a root directory
"""

from __future__ import annotations

import json
import os
import re
import threading
from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from ..config import config
from ..errors import PersistenceError

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class StoreKey:
    """Identity of one persisted record."""

    learner_context: str
    module_id: str
    kind: str

    def parts(self) -> tuple[str, str, str]:
        """Filesystem-safe path components."""
        return tuple(_UNSAFE_CHARS.sub("_", p) or "_" for p in (self.learner_context, self.module_id, self.kind))

    def __str__(self) -> str:
        return f"{self.learner_context}/{self.module_id}/{self.kind}"


class KeyValueStore(ABC):
    """Abstract store of JSON-compatible payloads."""

    @abstractmethod
    def load(self, key: StoreKey) -> Optional[Dict[str, Any]]:
        """Return the stored payload, or None if absent."""

    @abstractmethod
    def save(self, key: StoreKey, payload: Dict[str, Any]) -> None:
        """Store payload, replacing any previous value."""

    @abstractmethod
    def delete(self, key: StoreKey) -> None:
        """Remove the payload if present."""


class InMemoryStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[StoreKey, Dict[str, Any]] = {}

    def load(self, key: StoreKey) -> Optional[Dict[str, Any]]:
        payload = self._data.get(key)
        return deepcopy(payload) if payload is not None else None

    def save(self, key: StoreKey, payload: Dict[str, Any]) -> None:
        self._data[key] = deepcopy(payload)

    def delete(self, key: StoreKey) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore(KeyValueStore):
    """
    File-backed store: ``<root>/<learner>/<module>/<kind>.json``.

    Features:
    - Writes are serialized with a lock
    - Atomic replace so a crash never leaves a half-written file
    - I/O and decode failures raised as PersistenceError
    """

    def __init__(self, root_dir: Path | str | None = None):
        """
        Initialize the store.

        Args:
            root_dir: Root directory (default: config.paths.levels_dir)
        """
        self.root_dir = Path(root_dir) if root_dir else config.paths.levels_dir
        self._lock = threading.Lock()

    def path_for(self, key: StoreKey) -> Path:
        learner, module, kind = key.parts()
        return self.root_dir / learner / module / f"{kind}.json"

    def load(self, key: StoreKey) -> Optional[Dict[str, Any]]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to load {key}: {e}", key=key) from e

    def save(self, key: StoreKey, payload: Dict[str, Any]) -> None:
        path = self.path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, path)
            except (OSError, TypeError, ValueError) as e:
                raise PersistenceError(f"Failed to save {key}: {e}", key=key) from e
        logger.debug("Saved {} to {}", key, path)

    def delete(self, key: StoreKey) -> None:
        path = self.path_for(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise PersistenceError(f"Failed to delete {key}: {e}", key=key) from e


# Global store instance
_default_store: Optional[KeyValueStore] = None


def get_default_store() -> KeyValueStore:
    """Get or create the global file-backed store."""
    global _default_store
    if _default_store is None:
        _default_store = JsonFileStore()
    return _default_store
