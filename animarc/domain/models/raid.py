"""
Portal raid value objects.

``PortalRaidProgress`` is the persisted damage-accumulation state for one
user against one boss. It is immutable here; every transition returns a new
value and the store applies it with a version check.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from animarc.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
)
from animarc.domain.models.battler import BattlerStats, Specialization
from animarc.domain.models.progression import BaseStats, RewardDelta
from animarc.modules.shared.constants import BASE_FOCUS_POWER


class RaidStatus(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class BossMapStatus(Enum):
    DEFEATED = "defeated"
    CURRENT = "current"
    LOCKED = "locked"


@dataclass(frozen=True)
class PortalBoss:
    """
    Immutable boss reference data supplied by the content collaborator.

    ``map_order`` defines the strict sequence used for progression gating.
    """

    id: str
    name: str
    rank: str
    boss_level: int
    specialization: Specialization
    base_stats: BaseStats
    map_order: int

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_not_empty(self.rank, "rank")
        validate_positive(self.boss_level, "boss_level")

    def battler_stats(self) -> BattlerStats:
        return BattlerStats(
            health=self.base_stats.health,
            attack=self.base_stats.attack,
            defense=self.base_stats.defense,
            speed=self.base_stats.speed,
            level=self.boss_level,
            focus_power=BASE_FOCUS_POWER + self.base_stats.total,
        )


@dataclass(frozen=True)
class PortalRaidProgress:
    """
    One user's cumulative damage against one boss.

    Invariants: ``0 <= current_damage <= max_hp``,
    ``completed == (current_damage == max_hp)``, and ``reward_granted`` only
    on a completed row.
    """

    id: int
    user_id: str
    boss_id: str
    max_hp: int
    current_damage: int = 0
    completed: bool = False
    completed_at: Optional[datetime] = None
    reward_granted: bool = False
    version: int = 1

    def __post_init__(self) -> None:
        validate_positive(self.max_hp, "max_hp")
        validate_non_negative(self.current_damage, "current_damage")
        if self.current_damage > self.max_hp:
            raise DomainValidationError(
                f"current_damage {self.current_damage} exceeds max_hp {self.max_hp}",
                field="current_damage",
            )
        if self.completed != (self.current_damage == self.max_hp):
            raise DomainValidationError(
                "completed must be true exactly when current_damage reaches max_hp",
                field="completed",
            )
        if self.reward_granted and not self.completed:
            raise DomainValidationError(
                "reward_granted requires a completed boss", field="reward_granted"
            )

    @property
    def progress_percent(self) -> float:
        return 100.0 * self.current_damage / self.max_hp

    @property
    def remaining_hp(self) -> int:
        return self.max_hp - self.current_damage

    @property
    def status(self) -> RaidStatus:
        if self.completed:
            return RaidStatus.COMPLETED
        if self.current_damage > 0:
            return RaidStatus.IN_PROGRESS
        return RaidStatus.NOT_STARTED


@dataclass(frozen=True)
class RaidAttemptResult:
    damage_dealt: int
    boss_defeated: bool
    new_total_damage: int
    new_progress_percent: float


@dataclass(frozen=True)
class BossMap:
    """Boss sequence split into defeated / current / locked, in map order."""

    defeated: Tuple[PortalBoss, ...]
    current: Optional[PortalBoss]
    locked: Tuple[PortalBoss, ...]

    def status_of(self, boss_id: str) -> BossMapStatus:
        if self.current is not None and self.current.id == boss_id:
            return BossMapStatus.CURRENT
        if any(b.id == boss_id for b in self.defeated):
            return BossMapStatus.DEFEATED
        if any(b.id == boss_id for b in self.locked):
            return BossMapStatus.LOCKED
        raise DomainValidationError(f"Boss {boss_id} is not on this map", field="boss_id")


@dataclass(frozen=True)
class DailyLimits:
    """Boss attempts used by one user on one local calendar day."""

    user_id: str
    day: date
    boss_attempts_used: int = 0

    def __post_init__(self) -> None:
        validate_not_empty(self.user_id, "user_id")
        validate_non_negative(self.boss_attempts_used, "boss_attempts_used")

    def remaining(self, max_attempts: int) -> int:
        return max(0, max_attempts - self.boss_attempts_used)


@dataclass(frozen=True)
class RaidOutcome:
    """Everything the presentation collaborator needs after one raid attempt."""

    attempt: RaidAttemptResult
    progress: PortalRaidProgress
    daily_limits: DailyLimits
    attempts_remaining: int
    reward: Optional[RewardDelta] = None
