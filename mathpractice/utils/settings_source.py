"""
Settings Source implementations.

A Settings Source supplies an ExerciseSettings record per module. Unknown
modules fall back to the defaults; the engine reads the record once per
session start.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from ..config import config
from ..errors import SettingsError
from ..models.settings import ExerciseSettings


class SettingsSource(ABC):
    @abstractmethod
    def get_module_settings(self, module_id: str) -> ExerciseSettings:
        """Return the settings for module_id (defaults if none stored)."""


class StaticSettingsSource(SettingsSource):
    """Settings held in memory, keyed by module id."""

    def __init__(self, module_settings: Optional[Mapping[str, Any]] = None):
        self._settings: Dict[str, ExerciseSettings] = {}
        for module_id, value in (module_settings or {}).items():
            self.set_module_settings(module_id, value)

    def set_module_settings(self, module_id: str, value: ExerciseSettings | Mapping[str, Any]) -> None:
        if not isinstance(value, ExerciseSettings):
            value = ExerciseSettings.from_mapping(value)
        self._settings[module_id] = value

    def get_module_settings(self, module_id: str) -> ExerciseSettings:
        return self._settings.get(module_id, ExerciseSettings())


class JsonSettingsSource(SettingsSource):
    """
    Settings read from a JSON file shaped like ``{"moduleSettings": {id: {...}}}``.

    The file is re-read on every call so edits apply to the next session
    without affecting one already running.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path else config.paths.settings_file

    def get_module_settings(self, module_id: str) -> ExerciseSettings:
        if not self.path.exists():
            logger.debug("No settings file at {}; using defaults for {}", self.path, module_id)
            return ExerciseSettings()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SettingsError(f"Failed to read settings file {self.path}: {e}") from e

        raw = data.get("moduleSettings", {}).get(module_id)
        if raw is None:
            return ExerciseSettings()
        return ExerciseSettings.from_mapping(raw)
