"""
RaidEngine - persistent multi-attempt boss encounters.

Purpose
-------
Own the portal raid rules: boss HP pools, per-attempt damage, cumulative
progress transitions, completion detection and boss-sequence navigation.

State machine per (user, boss)::

    NOT_STARTED --attempt--> IN_PROGRESS --damage reaches max_hp--> COMPLETED

COMPLETED is terminal: further attempts or damage raise InvalidStateError.

Responsibilities
----------------
- Compute a boss's HP pool once, when its progress row is first created
- Roll attempt damage from the user/boss power ratio with bounded variance
- Clamp the final attempt to the remaining HP so damage never exceeds max_hp
- Produce the next progress value (the store applies it with a version check)
- Split a boss list into defeated / current / locked by map order
- Estimate attempts left and compute boss-defeat rewards

Non-Responsibilities
--------------------
- Persistence and optimistic locking (RaidProgressStore)
- Daily attempt limits (DailyLimitPolicy)
- Granting rewards to the user (RewardLedger)

Design Notes
------------
Expected damage at power factor f = clamp(user_fp / boss_fp, min, max)::

    expected = base_damage * f ** exponent

Each attempt multiplies by uniform(1 - variance, 1 + variance), rounds, and
never deals less than 1.

Config keys:
    raids.boss_hp.base.<rank>, raids.boss_hp.multiplier.<specialization>
    raids.boss_hp.level_scaling
    raids.damage.base / exponent / min_power_factor / max_power_factor / variance
    raids.rewards.<rank> ([xp, gold]), raids.rewards.level_scaling
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Collection, Dict, List, Optional, Sequence, Tuple

from animarc.core.config.config_manager import ConfigManager
from animarc.domain.models.battler import BattlerStats, Specialization
from animarc.domain.models.raid import (
    BossMap,
    PortalBoss,
    PortalRaidProgress,
    RaidAttemptResult,
)
from animarc.modules.combat.resolver import CombatResolver
from animarc.modules.shared.constants import (
    BOSS_BASE_HP,
    BOSS_HP_LEVEL_SCALING,
    BOSS_HP_MULTIPLIER,
    BOSS_REWARD_LEVEL_SCALING,
    BOSS_REWARDS,
    RAID_BASE_DAMAGE,
    RAID_DAMAGE_EXPONENT,
    RAID_DAMAGE_VARIANCE,
    RAID_MAX_POWER_FACTOR,
    RAID_MIN_POWER_FACTOR,
)
from animarc.modules.shared.exceptions import InvalidStateError, ValidationError
from animarc.modules.shared.random_sequence import RandomSequence


class RaidEngine:
    """
    Example:
        >>> engine = RaidEngine(ConfigManager())
        >>> engine.compute_max_hp("C", Specialization.TANK, 30)
        1920
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        resolver: Optional[CombatResolver] = None,
    ) -> None:
        config = config or ConfigManager()
        self._resolver = resolver or CombatResolver(config)

        self._base_hp: Dict[str, int] = {
            rank: int(config.get(f"raids.boss_hp.base.{rank}", default=hp))
            for rank, hp in BOSS_BASE_HP.items()
        }
        self._hp_multiplier: Dict[str, float] = {
            spec: float(config.get(f"raids.boss_hp.multiplier.{spec}", default=mult))
            for spec, mult in BOSS_HP_MULTIPLIER.items()
        }
        self._hp_level_scaling = float(
            config.get("raids.boss_hp.level_scaling", default=BOSS_HP_LEVEL_SCALING)
        )

        self._base_damage = float(config.get("raids.damage.base", default=RAID_BASE_DAMAGE))
        self._damage_exponent = float(
            config.get("raids.damage.exponent", default=RAID_DAMAGE_EXPONENT)
        )
        self._min_factor = float(
            config.get("raids.damage.min_power_factor", default=RAID_MIN_POWER_FACTOR)
        )
        self._max_factor = float(
            config.get("raids.damage.max_power_factor", default=RAID_MAX_POWER_FACTOR)
        )
        self._variance = float(config.get("raids.damage.variance", default=RAID_DAMAGE_VARIANCE))

        self._rewards: Dict[str, Tuple[int, int]] = {}
        for rank, (xp, gold) in BOSS_REWARDS.items():
            r_xp, r_gold = config.get(f"raids.rewards.{rank}", default=(xp, gold))
            self._rewards[rank] = (int(r_xp), int(r_gold))
        self._reward_level_scaling = float(
            config.get("raids.rewards.level_scaling", default=BOSS_REWARD_LEVEL_SCALING)
        )

    # =========================================================================
    # BOSS SEQUENCE
    # =========================================================================

    @staticmethod
    def resolve_current_boss(
        bosses: Sequence[PortalBoss],
        completed_ids: Collection[str],
    ) -> Optional[PortalBoss]:
        """First boss in map order the user has not defeated, or None when all are."""
        for boss in sorted(bosses, key=lambda b: b.map_order):
            if boss.id not in completed_ids:
                return boss
        return None

    @classmethod
    def categorize_bosses(
        cls,
        bosses: Sequence[PortalBoss],
        completed_ids: Collection[str],
    ) -> BossMap:
        current = cls.resolve_current_boss(bosses, completed_ids)
        defeated: List[PortalBoss] = []
        locked: List[PortalBoss] = []
        for boss in sorted(bosses, key=lambda b: b.map_order):
            if boss.id in completed_ids:
                defeated.append(boss)
            elif current is not None and boss.id != current.id:
                locked.append(boss)
        return BossMap(defeated=tuple(defeated), current=current, locked=tuple(locked))

    # =========================================================================
    # HP POOL
    # =========================================================================

    def compute_max_hp(self, rank: str, specialization: Specialization, level: int) -> int:
        """
        HP pool for a boss. Only used when its progress row is created; the
        stored value is never recomputed.

        Raises:
            ValidationError: Unknown rank or level < 1.
        """
        if rank not in self._base_hp:
            raise ValidationError("rank", f"unknown boss rank '{rank}'")
        if level < 1:
            raise ValidationError("level", f"must be >= 1, got {level}")

        hp = (
            self._base_hp[rank]
            * self._hp_multiplier[specialization.value]
            * (1.0 + self._hp_level_scaling * level)
        )
        return max(1, int(round(hp)))

    def start_progress(self, user_id: str, boss: PortalBoss) -> PortalRaidProgress:
        """Unsaved initial progress for (user, boss); ``id`` is assigned by the store."""
        return PortalRaidProgress(
            id=0,
            user_id=user_id,
            boss_id=boss.id,
            max_hp=self.compute_max_hp(boss.rank, boss.specialization, boss.boss_level),
        )

    # =========================================================================
    # DAMAGE
    # =========================================================================

    def power_factor(self, user: BattlerStats, boss: BattlerStats) -> float:
        inverse = 1.0 / self._resolver.power_ratio(user, boss)
        return min(self._max_factor, max(self._min_factor, inverse))

    def expected_damage(self, user: BattlerStats, boss: BattlerStats) -> float:
        return self._base_damage * self.power_factor(user, boss) ** self._damage_exponent

    def roll_damage(self, user: BattlerStats, boss: BattlerStats, rng: RandomSequence) -> int:
        """Unclamped damage for one attempt; always >= 1."""
        spread = rng.uniform(1.0 - self._variance, 1.0 + self._variance)
        return max(1, int(round(self.expected_damage(user, boss) * spread)))

    def attempt(
        self,
        user: BattlerStats,
        boss: BattlerStats,
        progress: PortalRaidProgress,
        seed_key: Optional[str] = None,
    ) -> RaidAttemptResult:
        """
        Roll one attempt against the progress row.

        Seeded by (progress.id, progress.current_damage, user focus power) plus
        ``seed_key``, so a retry against the same fresh row replays the same
        roll.

        Raises:
            InvalidStateError: If the progress is already completed.
        """
        if progress.completed:
            raise InvalidStateError(
                "raid.attempt",
                "Boss already defeated",
                details={"progress_id": progress.id, "boss_id": progress.boss_id},
            )

        rng = RandomSequence.from_values(
            "raid-attempt",
            progress.id,
            progress.current_damage,
            user.focus_power,
            seed_key,
        )
        return self.resolve_attempt(progress, self.roll_damage(user, boss, rng))

    def resolve_attempt(self, progress: PortalRaidProgress, raw_damage: int) -> RaidAttemptResult:
        """
        Clamp ``raw_damage`` to the remaining HP and describe the outcome.

        Raises:
            InvalidStateError: If the progress is already completed.
            ValidationError: If ``raw_damage`` is not positive.
        """
        if progress.completed:
            raise InvalidStateError("raid.attempt", "Boss already defeated")
        if raw_damage <= 0:
            raise ValidationError("damage", f"must be positive, got {raw_damage}")

        dealt = min(raw_damage, progress.remaining_hp)
        new_total = progress.current_damage + dealt
        return RaidAttemptResult(
            damage_dealt=dealt,
            boss_defeated=new_total == progress.max_hp,
            new_total_damage=new_total,
            new_progress_percent=100.0 * new_total / progress.max_hp,
        )

    def apply_damage(
        self,
        progress: PortalRaidProgress,
        damage_dealt: int,
        now: Optional[datetime] = None,
    ) -> PortalRaidProgress:
        """
        Next progress value after ``damage_dealt``.

        A completing hit is stamped with ``now`` (default: current UTC time);
        callers pass the same moment to the store so both agree.

        Raises:
            InvalidStateError: If the progress is already completed.
            ValidationError: If damage is not positive or exceeds the remaining HP.
        """
        if progress.completed:
            raise InvalidStateError(
                "raid.apply_damage",
                "Boss already defeated",
                details={"progress_id": progress.id},
            )
        if damage_dealt <= 0:
            raise ValidationError("damage_dealt", f"must be positive, got {damage_dealt}")
        if damage_dealt > progress.remaining_hp:
            raise ValidationError(
                "damage_dealt",
                f"{damage_dealt} exceeds remaining HP {progress.remaining_hp}",
            )

        new_total = progress.current_damage + damage_dealt
        completed = new_total == progress.max_hp
        return replace(
            progress,
            current_damage=new_total,
            completed=completed,
            completed_at=(now or datetime.now(timezone.utc)) if completed else None,
        )

    # =========================================================================
    # ESTIMATES & REWARDS
    # =========================================================================

    def estimate_attempts_needed(
        self,
        user: BattlerStats,
        boss: BattlerStats,
        remaining_hp: int,
    ) -> Tuple[int, int]:
        """
        (best case, worst case) attempts to finish ``remaining_hp``.

        Raises:
            ValidationError: If ``remaining_hp`` is negative.
        """
        if remaining_hp < 0:
            raise ValidationError("remaining_hp", f"must be non-negative, got {remaining_hp}")
        if remaining_hp == 0:
            return 0, 0

        expected = self.expected_damage(user, boss)
        best_hit = max(1.0, round(expected * (1.0 + self._variance)))
        worst_hit = max(1.0, round(expected * (1.0 - self._variance)))
        minimum = max(1, math.ceil(remaining_hp / best_hit))
        maximum = max(minimum, math.ceil(remaining_hp / worst_hit))
        return minimum, maximum

    def calculate_boss_rewards(self, rank: str, level: int) -> Tuple[int, int]:
        """
        (xp, gold) for defeating a boss of ``rank`` at ``level``.

        Raises:
            ValidationError: Unknown rank.
        """
        if rank not in self._rewards:
            raise ValidationError("rank", f"unknown boss rank '{rank}'")
        xp, gold = self._rewards[rank]
        scale = 1.0 + self._reward_level_scaling * level
        return int(xp * scale), int(gold * scale)
