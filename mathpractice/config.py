"""
Configuration management for MathPractice.

This module centralizes all configuration settings following 12-factor app principles:
- Overrides loaded from environment variables (.env supported)
- Sensible defaults for development
- Type hints for IDE support
- Single source of truth for engine thresholds and reward odds
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return int(value)


@dataclass
class EngineConfig:
    """Exercise engine thresholds and timing."""

    # Adaptive difficulty
    level_up_threshold: int = 10  # consecutive correct answers
    level_down_threshold: int = 5  # consecutive incorrect answers

    # Auto-advance after a correct answer (seconds)
    auto_advance_delay_seconds: int = 3

    # Compensation cap (extra problems per session)
    max_compensation_problems: int = 10

    # Reproducibility
    random_seed: Optional[int] = field(
        default_factory=lambda: _optional_int("MATHPRACTICE_RANDOM_SEED")
    )


@dataclass
class RewardConfig:
    """Reward opportunity probabilities, evaluated in priority order."""

    last_problem_probability: float = 1.0
    high_streak_probability: float = 0.8
    streak_probability: float = 0.6
    mid_point_probability: float = 0.4
    drought_probability: float = 0.3
    base_probability: float = 0.05

    high_streak_length: int = 7
    streak_length: int = 5

    # Minimum spacing (in problems) since the last reward shown
    last_problem_spacing: int = 2
    mid_point_spacing: int = 3
    drought_length: int = 5

    # Bonus added to the base probability, indexed by difficulty order
    difficulty_bonus: tuple = (0.0, 0.02, 0.04, 0.06, 0.08)


@dataclass
class PathConfig:
    """File system paths - single source of truth for all directories."""

    project_root: Path = field(default_factory=lambda: Path(__file__).parent.parent)
    data_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("MATHPRACTICE_DATA_DIR", str(Path(__file__).parent.parent / "data"))
        )
    )

    # Computed from data_dir
    levels_dir: Path = field(init=False)
    logs_dir: Path = field(init=False)
    progress_file: Path = field(init=False)
    settings_file: Path = field(init=False)

    # Bundled JSON schemas
    schemas_dir: Path = field(default_factory=lambda: Path(__file__).parent / "schemas")

    def __post_init__(self):
        """Initialize computed paths."""
        self.data_dir = Path(self.data_dir)
        self.levels_dir = self.data_dir / "learners"
        self.logs_dir = self.data_dir / "logs"
        self.progress_file = self.data_dir / "progress.json"
        self.settings_file = self.data_dir / "module_settings.json"

    def prepare_filesystem(self):
        """
        Create directories if they don't exist.

        Separated from __post_init__ to avoid side-effects on import.
        Call this explicitly from your app entrypoint.
        """
        for directory in [self.data_dir, self.levels_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = field(default_factory=lambda: os.getenv("MATHPRACTICE_LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("MATHPRACTICE_LOG_FILE"))
    rotation: str = "10 MB"
    retention: str = "14 days"


class Config:
    """
    Main configuration class. Singleton pattern.

    Usage:
        from mathpractice.config import config

        threshold = config.engine.level_up_threshold
        config.prepare_fs()
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.paths = PathConfig()
            cls._instance.engine = EngineConfig()
            cls._instance.rewards = RewardConfig()
            cls._instance.logging = LoggingConfig()
        return cls._instance

    def prepare_fs(self):
        """Prepare filesystem (create directories). Call once at startup."""
        self.paths.prepare_filesystem()

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        # Engine validation
        if self.engine.level_up_threshold < 1:
            errors.append(
                f"level_up_threshold must be >= 1, got {self.engine.level_up_threshold}"
            )

        if self.engine.level_down_threshold < 1:
            errors.append(
                f"level_down_threshold must be >= 1, got {self.engine.level_down_threshold}"
            )

        if self.engine.auto_advance_delay_seconds < 0:
            errors.append(
                f"auto_advance_delay_seconds must be >= 0, got {self.engine.auto_advance_delay_seconds}"
            )

        if self.engine.max_compensation_problems < 0:
            errors.append(
                f"max_compensation_problems must be >= 0, got {self.engine.max_compensation_problems}"
            )

        # Reward validation
        for name in (
            "last_problem_probability",
            "high_streak_probability",
            "streak_probability",
            "mid_point_probability",
            "drought_probability",
            "base_probability",
        ):
            value = getattr(self.rewards, name)
            if not (0 <= value <= 1):
                errors.append(f"Reward {name} must be in [0, 1], got {value}")

        if len(self.rewards.difficulty_bonus) != 5:
            errors.append(
                f"Reward difficulty_bonus must have 5 entries, got {len(self.rewards.difficulty_bonus)}"
            )
        elif self.rewards.base_probability + max(self.rewards.difficulty_bonus) > 1:
            errors.append("Reward base_probability plus difficulty bonus exceeds 1")

        # Logging validation
        if self.logging.log_level.upper() not in {
            "TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"
        }:
            errors.append(f"Unknown log level: {self.logging.log_level}")

        # Path validation
        if not self.paths.schemas_dir.exists():
            errors.append(f"Schemas directory not found: {self.paths.schemas_dir}")

        return errors


# Global config instance
config = Config()
