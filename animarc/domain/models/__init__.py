"""
Immutable domain value objects for the Animarc progression core.

These are separate from the SQLAlchemy rows in ``animarc.database.models``;
repositories convert between the two.
"""

from animarc.domain.models.base import DomainEvent, DomainValidationError
from animarc.domain.models.battler import (
    BattlerStats,
    DifficultyTier,
    Specialization,
    StatKind,
    SubscriptionTier,
)
from animarc.domain.models.combat import BattleResult, DuelOutcome, Opponent
from animarc.domain.models.progression import (
    BaseStats,
    LevelProgress,
    LevelUpEvent,
    Rank,
    RankProgress,
    RankUpEvent,
    RewardDelta,
    SessionXP,
    UserProgressSnapshot,
)
from animarc.domain.models.raid import (
    BossMap,
    BossMapStatus,
    DailyLimits,
    PortalBoss,
    PortalRaidProgress,
    RaidAttemptResult,
    RaidOutcome,
    RaidStatus,
)

__all__ = [
    "DomainEvent",
    "DomainValidationError",
    "BattlerStats",
    "DifficultyTier",
    "Specialization",
    "StatKind",
    "SubscriptionTier",
    "BattleResult",
    "DuelOutcome",
    "Opponent",
    "BaseStats",
    "LevelProgress",
    "LevelUpEvent",
    "Rank",
    "RankProgress",
    "RankUpEvent",
    "RewardDelta",
    "SessionXP",
    "UserProgressSnapshot",
    "BossMap",
    "BossMapStatus",
    "DailyLimits",
    "PortalBoss",
    "PortalRaidProgress",
    "RaidAttemptResult",
    "RaidOutcome",
    "RaidStatus",
]
