"""
Procedural duel opponents.

Purpose
-------
Derive a fixed-size roster of ephemeral opponents scaled to the player's
current level and focus power. The roster is a pure function of
(player_level, player_focus_power, seed_key): re-querying with the same
inputs yields identical names, stats and ranks, and the roster changes as
the player progresses.

Design Notes
------------
- Slot tiers default to [easy, fair, fair, fair, hard]; each slot draws its
  focus power from a band relative to the player (easy 55-65%, fair
  85-115%, hard 145-165%).
- Names come from a seeded shuffle of the built-in pool; each slot then
  gets its own stream seeded by its name and slot index so slots are
  statistically independent.
- Specialization is a SHA-256 hash of the name, never an RNG draw, so the
  archetype of a name is stable regardless of the roll sequence.
- The stat budget per level is fixed and split by the specialization
  weights with largest-remainder rounding, so point totals are exact.

Config keys:
    opponents.slots, opponents.power_bands.<tier>, opponents.level_offsets.<tier>
    opponents.stat_budget.base / per_level
    opponents.stat_floor, opponents.focus_power_floor, opponents.names
"""

from __future__ import annotations

import hashlib
from typing import Dict, List, Mapping, Optional, Tuple

from animarc.core.config.config_manager import ConfigManager
from animarc.core.exceptions import ConfigurationError
from animarc.core.logging.logger import get_logger
from animarc.domain.models.battler import BattlerStats, Specialization, StatKind
from animarc.domain.models.combat import Opponent
from animarc.modules.combat.resolver import CombatResolver
from animarc.modules.progression.curve import ProgressionCurve
from animarc.modules.shared.constants import (
    DEFAULT_ATTACK,
    DEFAULT_DEFENSE,
    DEFAULT_HEALTH,
    DEFAULT_SPEED,
    HEALTH_PER_POINT,
    OPPONENT_FOCUS_POWER_FLOOR,
    OPPONENT_LEVEL_OFFSETS,
    OPPONENT_NAMES,
    OPPONENT_POWER_BANDS,
    OPPONENT_SLOTS,
    OPPONENT_STAT_BUDGET_BASE,
    OPPONENT_STAT_FLOOR,
    OPPONENT_STAT_POINTS_PER_LEVEL,
    OTHER_STAT_PER_POINT,
    SPECIALIZATION_WEIGHTS,
)
from animarc.modules.shared.random_sequence import RandomSequence

logger = get_logger(__name__)

_SPECIALIZATION_ORDER: Tuple[Specialization, ...] = (
    Specialization.TANK,
    Specialization.GLASS_CANNON,
    Specialization.SPEEDSTER,
    Specialization.BALANCED,
)

_BASE_STATS: Dict[StatKind, int] = {
    StatKind.HEALTH: DEFAULT_HEALTH,
    StatKind.ATTACK: DEFAULT_ATTACK,
    StatKind.DEFENSE: DEFAULT_DEFENSE,
    StatKind.SPEED: DEFAULT_SPEED,
}


def specialization_for(name: str) -> Specialization:
    """Stable archetype for a name (SHA-256, not ``hash()``)."""
    digest = hashlib.sha256(name.encode("utf-8")).digest()
    index = int.from_bytes(digest[:8], "big") % len(_SPECIALIZATION_ORDER)
    return _SPECIALIZATION_ORDER[index]


def distribute_points(total: int, weights: Mapping[StatKind, float]) -> Dict[StatKind, int]:
    """
    Split ``total`` points by ``weights`` so the parts sum to exactly ``total``.

    Largest-remainder rounding; ties go to the earlier StatKind.
    """
    weight_sum = sum(weights.values())
    raw = {kind: total * weights.get(kind, 0.0) / weight_sum for kind in StatKind}
    parts = {kind: int(value) for kind, value in raw.items()}
    leftover = total - sum(parts.values())

    order = list(StatKind)
    by_remainder = sorted(order, key=lambda k: (-(raw[k] - parts[k]), order.index(k)))
    for kind in by_remainder[:leftover]:
        parts[kind] += 1
    return parts


class OpponentGenerator:
    """
    Example:
        >>> generator = OpponentGenerator(ConfigManager())
        >>> roster = generator.generate(player_level=5, player_focus_power=1500)
        >>> [o.difficulty.display_name for o in roster]
        ['Easy', 'Fair', 'Fair', 'Fair', 'Hard']
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        resolver: Optional[CombatResolver] = None,
        curve: Optional[ProgressionCurve] = None,
    ) -> None:
        config = config or ConfigManager()
        self._resolver = resolver or CombatResolver(config)
        self._curve = curve or ProgressionCurve(config)

        self._slots: Tuple[str, ...] = tuple(
            str(s) for s in config.get("opponents.slots", default=OPPONENT_SLOTS)
        )
        self._power_bands: Dict[str, Tuple[float, float]] = {}
        self._level_offsets: Dict[str, Tuple[int, int]] = {}
        for tier in set(self._slots):
            if tier not in OPPONENT_POWER_BANDS:
                raise ConfigurationError("opponents.slots", f"Unknown slot tier '{tier}'")
            low, high = config.get(
                f"opponents.power_bands.{tier}", default=OPPONENT_POWER_BANDS[tier]
            )
            self._power_bands[tier] = (float(low), float(high))
            low_off, high_off = config.get(
                f"opponents.level_offsets.{tier}", default=OPPONENT_LEVEL_OFFSETS[tier]
            )
            self._level_offsets[tier] = (int(low_off), int(high_off))

        self._budget_base = int(
            config.get("opponents.stat_budget.base", default=OPPONENT_STAT_BUDGET_BASE)
        )
        self._budget_per_level = int(
            config.get("opponents.stat_budget.per_level", default=OPPONENT_STAT_POINTS_PER_LEVEL)
        )
        self._stat_floor = int(config.get("opponents.stat_floor", default=OPPONENT_STAT_FLOOR))
        self._fp_floor = int(
            config.get("opponents.focus_power_floor", default=OPPONENT_FOCUS_POWER_FLOOR)
        )
        self._names: Tuple[str, ...] = tuple(
            config.get("opponents.names", default=OPPONENT_NAMES)
        )
        if len(self._names) < len(self._slots):
            raise ConfigurationError(
                "opponents.names",
                f"Need at least {len(self._slots)} names, got {len(self._names)}",
            )

        self._weights: Dict[Specialization, Dict[StatKind, float]] = {
            spec: {
                kind: float(
                    config.get(
                        f"opponents.specialization_weights.{spec.value}.{kind.value}",
                        default=SPECIALIZATION_WEIGHTS[spec.value][kind.value],
                    )
                )
                for kind in StatKind
            }
            for spec in Specialization
        }

    @property
    def roster_size(self) -> int:
        return len(self._slots)

    # =========================================================================
    # ROSTER
    # =========================================================================

    def generate(
        self,
        player_level: int,
        player_focus_power: int,
        seed_key: str = "",
    ) -> List[Opponent]:
        """
        Build the roster for one player state.

        Raises:
            DomainValidationError: If ``player_level`` < 1 or ``player_focus_power`` <= 0
                (via the BattlerStats boundary check).
        """
        player = BattlerStats(
            health=DEFAULT_HEALTH,
            attack=DEFAULT_ATTACK,
            defense=DEFAULT_DEFENSE,
            speed=DEFAULT_SPEED,
            level=player_level,
            focus_power=player_focus_power,
        )

        names = RandomSequence.from_values(
            "roster", player_level, player_focus_power, seed_key
        ).shuffled(self._names)

        roster = [
            self._build_opponent(player, names[slot], slot, tier, seed_key)
            for slot, tier in enumerate(self._slots)
        ]

        logger.debug(
            "Generated opponent roster",
            extra={
                "player_level": player_level,
                "player_focus_power": player_focus_power,
                "opponents": [o.name for o in roster],
            },
        )
        return roster

    def _build_opponent(
        self,
        player: BattlerStats,
        name: str,
        slot: int,
        tier: str,
        seed_key: str,
    ) -> Opponent:
        rng = RandomSequence.from_values(
            "opponent", name, player.level, player.focus_power, seed_key, slot
        )

        low_off, high_off = self._level_offsets[tier]
        level = max(1, player.level + rng.randint(low_off, high_off))

        low_band, high_band = self._power_bands[tier]
        focus_power = max(self._fp_floor, int(player.focus_power * rng.uniform(low_band, high_band)))

        specialization = specialization_for(name)
        stats = self.build_stats(level, focus_power, specialization)

        difficulty = self._resolver.determine_difficulty(player, stats)
        success_rate = int(self._resolver.win_probability(player, stats) * 100)

        return Opponent(
            id=name,
            name=name,
            level=level,
            rank=self._curve.rank_for_level(level).code,
            stats=stats,
            success_rate=success_rate,
            exact_gold_reward=self._resolver.calculate_exact_gold(name, difficulty),
            specialization=specialization,
            difficulty=difficulty,
        )

    # =========================================================================
    # STATS
    # =========================================================================

    def stat_budget(self, level: int) -> int:
        return self._budget_base + self._budget_per_level * (max(1, level) - 1)

    def build_stats(
        self,
        level: int,
        focus_power: int,
        specialization: Specialization,
    ) -> BattlerStats:
        """Stat block for ``level`` with the budget split by ``specialization``."""
        points = self.points_by_stat(level, specialization)

        values: Dict[str, int] = {}
        for kind in StatKind:
            per_point = HEALTH_PER_POINT if kind is StatKind.HEALTH else OTHER_STAT_PER_POINT
            values[kind.value] = max(self._stat_floor, _BASE_STATS[kind] + per_point * points[kind])

        return BattlerStats(level=level, focus_power=focus_power, **values)

    def points_by_stat(self, level: int, specialization: Specialization) -> Dict[StatKind, int]:
        """Raw stat points for a level, before base values are added."""
        return distribute_points(self.stat_budget(level), self._weights[specialization])

