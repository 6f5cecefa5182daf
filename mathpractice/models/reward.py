"""
Reward catalog and collection models.

The catalog is static: reward definitions keyed by id and collections
listing their member reward ids. Earned rewards are owned by the
per-learner store and referenced by the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RewardTier(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class RewardCategory(str, Enum):
    ACHIEVEMENT = "achievement"
    MILESTONE = "milestone"
    STREAK = "streak"
    LEVEL_UP = "level-up"
    COLLECTION = "collection"


class RewardTheme(str, Enum):
    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"
    FRACTIONS = "fractions"
    GENERAL = "general"
    SEASONAL = "seasonal"


@dataclass(frozen=True)
class RewardDefinition:
    """Catalog entry for a grantable reward."""

    id: str
    name: str
    description: str
    tier: RewardTier
    category: RewardCategory
    theme: RewardTheme
    icon: str
    animation: Optional[str] = None
    sound: Optional[str] = None
    color: Optional[str] = None


@dataclass
class EarnedReward:
    """A reward held by the learner."""

    definition: RewardDefinition
    date_earned: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    seen: bool = False

    @property
    def id(self) -> str:
        return self.definition.id

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "date_earned": self.date_earned, "seen": self.seen}


@dataclass(frozen=True)
class CollectionDefinition:
    id: str
    name: str
    description: str
    theme: RewardTheme
    reward_ids: Tuple[str, ...]


@dataclass
class RewardCollection:
    """Progress of the learner through one collection."""

    definition: CollectionDefinition
    earned_ids: List[str] = field(default_factory=list)
    progress: int = 0
    is_complete: bool = False

    @property
    def id(self) -> str:
        return self.definition.id

    def recompute(self, held_ids: "set[str]") -> None:
        """Recompute progress from the set of held reward ids."""
        members = self.definition.reward_ids
        self.earned_ids = [rid for rid in members if rid in held_ids]
        self.progress = round(len(self.earned_ids) / len(members) * 100) if members else 0
        self.is_complete = self.progress == 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "earned_ids": list(self.earned_ids),
            "progress": self.progress,
            "is_complete": self.is_complete,
        }


def _milestones(theme: RewardTheme, title: str) -> List[RewardDefinition]:
    key = theme.value
    return [
        RewardDefinition(f"{key}-novice", f"{title} Apprentice",
                         f"Completed your first 10 {key} problems",
                         RewardTier.COMMON, RewardCategory.MILESTONE, theme, "Calculator", color="#4CAF50"),
        RewardDefinition(f"{key}-enthusiast", f"{title} Enthusiast",
                         f"Completed 25 {key} problems",
                         RewardTier.COMMON, RewardCategory.MILESTONE, theme, "Plus", color="#4CAF50"),
        RewardDefinition(f"{key}-expert", f"{title} Expert",
                         f"Completed 50 {key} problems",
                         RewardTier.RARE, RewardCategory.MILESTONE, theme, "Award",
                         animation="pulse", color="#2E7D32"),
        RewardDefinition(f"{key}-master", f"{title} Master",
                         f"Completed 100 {key} problems",
                         RewardTier.EPIC, RewardCategory.MILESTONE, theme, "Trophy",
                         animation="confetti", sound="achievement", color="#1B5E20"),
    ]


_DEFINITIONS: List[RewardDefinition] = [
    *_milestones(RewardTheme.ADDITION, "Addition"),
    # Streaks
    RewardDefinition("streak-5", "Streak of 5", "5 correct answers in a row!",
                     RewardTier.COMMON, RewardCategory.STREAK, RewardTheme.GENERAL, "Flame",
                     animation="bounce", color="#FF9800"),
    RewardDefinition("streak-10", "Streak of 10", "10 correct answers in a row!",
                     RewardTier.RARE, RewardCategory.STREAK, RewardTheme.GENERAL, "Flame",
                     animation="pulse", sound="streak", color="#F57C00"),
    RewardDefinition("streak-20", "Unstoppable Streak", "20 correct answers in a row!",
                     RewardTier.EPIC, RewardCategory.STREAK, RewardTheme.GENERAL, "Zap",
                     animation="confetti", sound="achievement", color="#E65100"),
    # Level-ups
    RewardDefinition("level-elementary", "Elementary Level", "Unlocked the Elementary level!",
                     RewardTier.RARE, RewardCategory.LEVEL_UP, RewardTheme.GENERAL, "ArrowUp",
                     animation="levelUp", sound="levelUp", color="#2196F3"),
    RewardDefinition("level-intermediate", "Intermediate Level", "Unlocked the Intermediate level!",
                     RewardTier.EPIC, RewardCategory.LEVEL_UP, RewardTheme.GENERAL, "ArrowUpCircle",
                     animation="levelUp", sound="levelUp", color="#1976D2"),
    RewardDefinition("level-advanced", "Advanced Level", "Unlocked the Advanced level!",
                     RewardTier.EPIC, RewardCategory.LEVEL_UP, RewardTheme.GENERAL, "Award",
                     animation="levelUp", sound="levelUp", color="#0D47A1"),
    RewardDefinition("level-expert", "Expert Level", "Unlocked the Expert level!",
                     RewardTier.LEGENDARY, RewardCategory.LEVEL_UP, RewardTheme.GENERAL, "Crown",
                     animation="levelUp", sound="levelUp", color="#6200EA"),
    # Achievements
    RewardDefinition("improvement-star", "Improvement Star", "Improved your performance considerably",
                     RewardTier.RARE, RewardCategory.ACHIEVEMENT, RewardTheme.GENERAL, "Star",
                     animation="pulse", color="#FFC107"),
    RewardDefinition("perseverance", "Perseverance", "Kept trying until you got it",
                     RewardTier.RARE, RewardCategory.ACHIEVEMENT, RewardTheme.GENERAL, "Heart",
                     animation="heartbeat", color="#E91E63"),
    RewardDefinition("surprise-gift", "Surprise Gift", "An unexpected reward!",
                     RewardTier.RARE, RewardCategory.ACHIEVEMENT, RewardTheme.GENERAL, "Gift",
                     animation="bounce", color="#9C27B0"),
    # Sessions
    RewardDefinition("session-complete", "Session Complete", "Finished a whole exercise session",
                     RewardTier.COMMON, RewardCategory.MILESTONE, RewardTheme.GENERAL, "CheckCircle",
                     animation="bounce", color="#00BCD4"),
    RewardDefinition("perfect-session", "Perfect Session", "Finished a session without mistakes",
                     RewardTier.EPIC, RewardCategory.ACHIEVEMENT, RewardTheme.GENERAL, "Award",
                     animation="confetti", sound="achievement", color="#FFD700"),
]

REWARDS_CATALOG: Dict[str, RewardDefinition] = {r.id: r for r in _DEFINITIONS}

COLLECTIONS_CATALOG: Dict[str, CollectionDefinition] = {
    c.id: c
    for c in [
        CollectionDefinition(
            "addition-collection", "Addition Collection",
            "Collect every addition reward", RewardTheme.ADDITION,
            ("addition-novice", "addition-enthusiast", "addition-expert", "addition-master"),
        ),
        CollectionDefinition(
            "streak-collection", "Streak Collection",
            "Show your consistency by reaching every streak", RewardTheme.GENERAL,
            ("streak-5", "streak-10", "streak-20"),
        ),
        CollectionDefinition(
            "levels-collection", "Levels Collection",
            "Master every difficulty level", RewardTheme.GENERAL,
            ("level-elementary", "level-intermediate", "level-advanced", "level-expert"),
        ),
    ]
}
