"""
Duel resolution.

Purpose
-------
Resolve a single duel between two stat blocks: difficulty tier, win
probability, outcome roll, performance score and reward amounts. Every
method is a pure function of its arguments; nothing here touches storage.

Responsibilities
----------------
- Classify the opponent/user focus power ratio into EASY / FAIR / HARD
- Map relative power to a win probability that never reaches 0 or 1
- Roll outcomes from a RandomSequence seeded by both stat blocks
- Scale XP and gold by outcome, tier and performance
- Derive the pre-committed ("exact") gold shown before a fight

Non-Responsibilities
--------------------
- Opponent generation (OpponentGenerator)
- Applying rewards to a user (RewardLedger + UserProgressStore)

Design Notes
------------
Win probability::

    p = floor + (1 - 2 * floor) * logistic(steepness * ln(user_fp / opponent_fp))

logistic is evaluated as ``0.5 * (1 + tanh(x / 2))`` so extreme ratios
saturate instead of overflowing. With floor > 0 the result stays inside
(floor, 1 - floor) and equal power gives exactly 0.5.

Config keys:
    combat.difficulty.easy_below / hard_above
    combat.win_probability.steepness / floor
    combat.rewards.win_xp.<tier> / loss_xp.<tier>
    combat.rewards.performance_xp_bonus
    combat.rewards.win_gold.<tier> ([low, high]) / loss_gold.<tier>
"""

from __future__ import annotations

import math
from typing import Dict, Optional, Tuple

from animarc.core.config.config_manager import ConfigManager
from animarc.core.exceptions import ConfigurationError
from animarc.domain.models.battler import BattlerStats, DifficultyTier
from animarc.domain.models.combat import BattleResult
from animarc.modules.shared.constants import (
    DIFFICULTY_EASY_BELOW,
    DIFFICULTY_HARD_ABOVE,
    LOSS_GOLD,
    LOSS_XP,
    PERFORMANCE_XP_BONUS,
    WIN_GOLD_RANGE,
    WIN_PROBABILITY_FLOOR,
    WIN_PROBABILITY_RATIO_CAP,
    WIN_PROBABILITY_STEEPNESS,
    WIN_XP,
)
from animarc.modules.shared.exceptions import ValidationError
from animarc.modules.shared.random_sequence import RandomSequence


def _tier_key(tier: DifficultyTier) -> str:
    return tier.name.lower()


class CombatResolver:
    """
    Example:
        >>> resolver = CombatResolver(ConfigManager())
        >>> result = resolver.execute_battle(user, opponent, "ShadowHunter")
        >>> result.did_win, result.xp_earned
    """

    def __init__(self, config: Optional[ConfigManager] = None) -> None:
        config = config or ConfigManager()

        self.easy_below = float(
            config.get("combat.difficulty.easy_below", default=DIFFICULTY_EASY_BELOW)
        )
        self.hard_above = float(
            config.get("combat.difficulty.hard_above", default=DIFFICULTY_HARD_ABOVE)
        )
        if not 0 < self.easy_below <= self.hard_above:
            raise ConfigurationError(
                "combat.difficulty",
                f"expected 0 < easy_below <= hard_above, got {self.easy_below}, {self.hard_above}",
            )

        self.steepness = float(
            config.get("combat.win_probability.steepness", default=WIN_PROBABILITY_STEEPNESS)
        )
        self.floor = float(
            config.get("combat.win_probability.floor", default=WIN_PROBABILITY_FLOOR)
        )
        self.ratio_cap = float(
            config.get("combat.win_probability.ratio_cap", default=WIN_PROBABILITY_RATIO_CAP)
        )
        if self.steepness <= 0:
            raise ConfigurationError("combat.win_probability.steepness", "must be positive")
        if not 0 < self.floor < 0.5:
            raise ConfigurationError("combat.win_probability.floor", "must be in (0, 0.5)")
        if self.ratio_cap <= 1:
            raise ConfigurationError("combat.win_probability.ratio_cap", "must be greater than 1")
        self._max_log_ratio = math.log(self.ratio_cap)

        self.performance_bonus = float(
            config.get("combat.rewards.performance_xp_bonus", default=PERFORMANCE_XP_BONUS)
        )

        self._win_xp: Dict[str, int] = {}
        self._loss_xp: Dict[str, int] = {}
        self._win_gold: Dict[str, Tuple[int, int]] = {}
        self._loss_gold: Dict[str, int] = {}
        for tier in DifficultyTier:
            key = _tier_key(tier)
            self._win_xp[key] = int(config.get(f"combat.rewards.win_xp.{key}", default=WIN_XP[key]))
            self._loss_xp[key] = int(
                config.get(f"combat.rewards.loss_xp.{key}", default=LOSS_XP[key])
            )
            low, high = config.get(f"combat.rewards.win_gold.{key}", default=WIN_GOLD_RANGE[key])
            self._win_gold[key] = (int(low), int(high))
            self._loss_gold[key] = int(
                config.get(f"combat.rewards.loss_gold.{key}", default=LOSS_GOLD[key])
            )

    # =========================================================================
    # DIFFICULTY & PROBABILITY
    # =========================================================================

    @staticmethod
    def power_ratio(user: BattlerStats, opponent: BattlerStats) -> float:
        """Opponent focus power relative to the user's; > 1 means the opponent is stronger."""
        return opponent.focus_power / user.focus_power

    def determine_difficulty(self, user: BattlerStats, opponent: BattlerStats) -> DifficultyTier:
        ratio = self.power_ratio(user, opponent)
        if ratio < self.easy_below:
            return DifficultyTier.EASY
        if ratio > self.hard_above:
            return DifficultyTier.HARD
        return DifficultyTier.FAIR

    def win_probability(self, user: BattlerStats, opponent: BattlerStats) -> float:
        """
        Chance the user wins; strictly inside (0, 1).

        Strictly increasing in user power while the user/opponent ratio lies in
        [1 / ratio_cap, ratio_cap]. Outside that band the ratio is clamped, so
        the probability is flat at its value on the bound.
        """
        log_ratio = math.log(user.focus_power / opponent.focus_power)
        log_ratio = max(-self._max_log_ratio, min(self._max_log_ratio, log_ratio))
        x = self.steepness * log_ratio
        logistic = 0.5 * (1.0 + math.tanh(x / 2.0))
        return self.floor + (1.0 - 2.0 * self.floor) * logistic

    # =========================================================================
    # OUTCOME
    # =========================================================================

    def simulate_battle(
        self,
        user: BattlerStats,
        opponent: BattlerStats,
        nonce: int = 0,
    ) -> Tuple[bool, DifficultyTier, float]:
        """
        Roll one duel.

        The roll is seeded by both stat blocks plus ``nonce``: replaying the
        same nonce reproduces the outcome, a fresh nonce gives an independent
        roll.

        Returns:
            (did_win, tier, performance) with performance in [0, 1]; higher
            means a more decisive win or a narrower loss.
        """
        tier = self.determine_difficulty(user, opponent)
        p = self.win_probability(user, opponent)
        rng = RandomSequence.from_values(
            "duel", *user.seed_values(), *opponent.seed_values(), nonce
        )
        roll = rng.random()

        if roll < p:
            return True, tier, (p - roll) / p
        return False, tier, (roll - p) / (1.0 - p)

    # =========================================================================
    # REWARDS
    # =========================================================================

    def calculate_rewards(
        self,
        did_win: bool,
        tier: DifficultyTier,
        performance: float,
        exact_gold: Optional[int] = None,
    ) -> Tuple[int, int]:
        """
        XP and gold for a duel outcome.

        ``exact_gold`` is the amount promised before the fight; on a win it
        replaces the computed gold exactly.

        Raises:
            ValidationError: If performance is outside [0, 1] or exact_gold is negative.
        """
        if not 0.0 <= performance <= 1.0:
            raise ValidationError("performance", f"must be in [0, 1], got {performance}")
        if exact_gold is not None and exact_gold < 0:
            raise ValidationError("exact_gold", "must be non-negative")

        key = _tier_key(tier)
        scale = 1.0 + self.performance_bonus * performance

        if did_win:
            xp = int(self._win_xp[key] * scale)
            if exact_gold is not None:
                gold = exact_gold
            else:
                low, high = self._win_gold[key]
                gold = int(round(low + (high - low) * performance))
        else:
            xp = int(self._loss_xp[key] * scale)
            gold = self._loss_gold[key]

        return xp, gold

    def calculate_exact_gold(self, opponent_key: str, tier: DifficultyTier) -> int:
        """Deterministic win gold for an opponent; independent of any outcome roll."""
        low, high = self._win_gold[_tier_key(tier)]
        return RandomSequence.from_values("exact-gold", opponent_key, tier).randint(low, high)

    def execute_battle(
        self,
        user: BattlerStats,
        opponent: BattlerStats,
        opponent_name: str = "",
        opponent_key: Optional[str] = None,
        exact_gold: Optional[int] = None,
        nonce: int = 0,
    ) -> BattleResult:
        """
        Resolve one duel into a BattleResult.

        When ``exact_gold`` is not given but ``opponent_key`` is, the promised
        gold is derived from the key so it matches what the roster showed.
        """
        did_win, tier, performance = self.simulate_battle(user, opponent, nonce)
        if exact_gold is None and opponent_key is not None:
            exact_gold = self.calculate_exact_gold(opponent_key, tier)

        xp, gold = self.calculate_rewards(did_win, tier, performance, exact_gold)
        return BattleResult(
            did_win=did_win,
            xp_earned=xp,
            gold_earned=gold,
            difficulty_tier=tier,
            performance_score=performance,
            opponent_name=opponent_name,
        )
