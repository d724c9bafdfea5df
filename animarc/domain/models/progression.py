"""
Progression value objects: ranks, level progress, user progress snapshots,
reward deltas and the one-shot level/rank events they carry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from animarc.domain.models.base import (
    DomainEvent,
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
)
from animarc.domain.models.battler import StatKind


# ============================================================================
# RANKS & LEVELS
# ============================================================================


@dataclass(frozen=True)
class Rank:
    """
    One tier of the rank table.

    Attributes
    ----------
    code : str
        Short code ("E" .. "SSS")
    title : str
        Display title
    color : str
        Hex display color
    min_level : int
        First level in the tier (inclusive)
    max_level : Optional[int]
        Last level in the tier (inclusive); None for the open-ended top tier
    """

    code: str
    title: str
    color: str
    min_level: int
    max_level: Optional[int]

    def __post_init__(self) -> None:
        validate_not_empty(self.code, "code")
        validate_positive(self.min_level, "min_level")
        if self.max_level is not None and self.max_level < self.min_level:
            raise DomainValidationError(
                f"Rank {self.code} max_level {self.max_level} < min_level {self.min_level}",
                field="max_level",
            )

    def contains(self, level: int) -> bool:
        return level >= self.min_level and (
            self.max_level is None or level <= self.max_level
        )


@dataclass(frozen=True)
class LevelProgress:
    """Derived position of a total XP value within its level."""

    current_level: int
    xp_in_current_level: int
    xp_needed_for_next: int
    progress_percent: float

    @property
    def xp_to_next_level(self) -> int:
        return self.xp_needed_for_next - self.xp_in_current_level


@dataclass(frozen=True)
class RankProgress:
    """Where a level sits between its rank and the next one."""

    current: Rank
    next: Optional[Rank]
    levels_to_next: int
    progress_percent: float


# ============================================================================
# STATS & USER PROGRESS
# ============================================================================


@dataclass(frozen=True)
class BaseStats:
    """Allocatable character stats before equipment bonuses."""

    health: int = 150
    attack: int = 10
    defense: int = 10
    speed: int = 10

    def __post_init__(self) -> None:
        for kind in StatKind:
            validate_non_negative(self.stat(kind), kind.value)

    def stat(self, kind: StatKind) -> int:
        return getattr(self, kind.value)

    @property
    def total(self) -> int:
        return self.health + self.attack + self.defense + self.speed


@dataclass(frozen=True)
class UserProgressSnapshot:
    """
    Persisted progress for one user, as read from the store.

    Level and rank are derived from ``total_xp`` by ProgressionCurve and are
    never stored.
    """

    user_id: str
    total_xp: int
    gold: int
    available_stat_points: int
    stats: BaseStats
    version: int

    def __post_init__(self) -> None:
        validate_not_empty(self.user_id, "user_id")
        validate_non_negative(self.total_xp, "total_xp")
        validate_non_negative(self.gold, "gold")
        validate_non_negative(self.available_stat_points, "available_stat_points")


# ============================================================================
# REWARD DELTAS & EVENTS
# ============================================================================


@dataclass(frozen=True)
class LevelUpEvent:
    old_level: int
    new_level: int

    @property
    def levels_gained(self) -> int:
        return self.new_level - self.old_level

    def as_domain_event(self, user_id: str) -> DomainEvent:
        return DomainEvent(
            "progression.level_up",
            {"user_id": user_id, "old_level": self.old_level, "new_level": self.new_level},
        )


@dataclass(frozen=True)
class RankUpEvent:
    old_rank: Rank
    new_rank: Rank

    def as_domain_event(self, user_id: str) -> DomainEvent:
        return DomainEvent(
            "progression.rank_up",
            {
                "user_id": user_id,
                "old_rank": self.old_rank.code,
                "new_rank": self.new_rank.code,
            },
        )


@dataclass(frozen=True)
class RewardDelta:
    """
    Finalized grant for the persistence collaborator to apply atomically.

    Events describe only the transition caused by this grant.
    """

    xp_delta: int
    gold_delta: int
    stat_points_delta: int
    old_level: int
    new_level: int
    level_up: Optional[LevelUpEvent] = None
    rank_up: Optional[RankUpEvent] = None
    source: str = "unknown"

    @property
    def is_empty(self) -> bool:
        return self.xp_delta == 0 and self.gold_delta == 0 and self.stat_points_delta == 0

    def events(self) -> Tuple[object, ...]:
        return tuple(e for e in (self.level_up, self.rank_up) if e is not None)


@dataclass(frozen=True)
class SessionXP:
    """Breakdown of XP earned by one focus session."""

    base_xp: int
    completion_bonus: int = 0
    first_session_bonus: int = 0
    streak_bonus: int = 0

    @property
    def total(self) -> int:
        return self.base_xp + self.completion_bonus + self.first_session_bonus + self.streak_bonus
