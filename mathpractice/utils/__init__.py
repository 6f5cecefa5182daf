"""
Utility modules for MathPractice.

This module contains utility functions:
- validation: JSON Schema validation with auto-repair
- persistence: Key-value store for level and reward state
- progress: Progress Store and analytics helpers
- settings_source: Per-module settings providers
- logging: loguru sink setup
"""

from .validation import (
    SchemaValidator,
    ValidationResult,
    get_validator,
    validate_progress_entry,
    validate_settings,
)
from .persistence import (
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    StoreKey,
    get_default_store,
)
from .progress import (
    InMemoryProgressStore,
    JsonProgressStore,
    ModuleProgress,
    ProgressStore,
    accuracy_summary,
    accuracy_trend,
)
from .settings_source import JsonSettingsSource, SettingsSource, StaticSettingsSource
from .logging import setup_logging

__all__ = [
    # Validation
    "SchemaValidator",
    "ValidationResult",
    "get_validator",
    "validate_progress_entry",
    "validate_settings",
    # Persistence
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "StoreKey",
    "get_default_store",
    # Progress
    "InMemoryProgressStore",
    "JsonProgressStore",
    "ModuleProgress",
    "ProgressStore",
    "accuracy_summary",
    "accuracy_trend",
    # Settings
    "JsonSettingsSource",
    "SettingsSource",
    "StaticSettingsSource",
    # Logging
    "setup_logging",
]
