"""
Duel value objects: generated opponents and resolved battle results.
"""

from __future__ import annotations

from dataclasses import dataclass

from animarc.domain.models.base import (
    validate_non_negative,
    validate_not_empty,
    validate_range,
)
from animarc.domain.models.battler import BattlerStats, DifficultyTier, Specialization
from animarc.domain.models.progression import RewardDelta


@dataclass(frozen=True)
class Opponent:
    """
    Ephemeral, procedurally generated duel opponent.

    Reproducible for identical (player_level, player_focus_power, seed_key);
    never persisted.
    """

    id: str
    name: str
    level: int
    rank: str
    stats: BattlerStats
    success_rate: int
    exact_gold_reward: int
    specialization: Specialization
    difficulty: DifficultyTier

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_range(self.success_rate, 0, 100, "success_rate")
        validate_non_negative(self.exact_gold_reward, "exact_gold_reward")

    @property
    def focus_power(self) -> int:
        return self.stats.focus_power


@dataclass(frozen=True)
class BattleResult:
    did_win: bool
    xp_earned: int
    gold_earned: int
    difficulty_tier: DifficultyTier
    performance_score: float
    opponent_name: str = ""

    def __post_init__(self) -> None:
        validate_non_negative(self.xp_earned, "xp_earned")
        validate_non_negative(self.gold_earned, "gold_earned")
        validate_range(self.performance_score, 0.0, 1.0, "performance_score")


@dataclass(frozen=True)
class DuelOutcome:
    """A resolved duel together with the reward grant it produced."""

    result: BattleResult
    reward: RewardDelta
