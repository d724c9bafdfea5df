"""
Stat point allocation.

Points are spent on the fixed stat fields only. Health gains
``progression.allocation.health_per_point`` per point; every other stat gains
``progression.allocation.other_per_point``. No stat may exceed
``progression.allocation.max_points_per_stat`` points spent in one call.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from animarc.core.config.config_manager import ConfigManager
from animarc.domain.models.battler import StatKind
from animarc.domain.models.progression import BaseStats
from animarc.modules.shared.constants import (
    HEALTH_PER_POINT,
    MAX_POINTS_PER_STAT,
    OTHER_STAT_PER_POINT,
)
from animarc.modules.shared.exceptions import ValidationError


class StatAllocator:
    def __init__(self, config: Optional[ConfigManager] = None) -> None:
        config = config or ConfigManager()
        self._health_per_point = int(
            config.get("progression.allocation.health_per_point", default=HEALTH_PER_POINT)
        )
        self._other_per_point = int(
            config.get("progression.allocation.other_per_point", default=OTHER_STAT_PER_POINT)
        )
        self._max_points = int(
            config.get("progression.allocation.max_points_per_stat", default=MAX_POINTS_PER_STAT)
        )

    def gain_per_point(self, kind: StatKind) -> int:
        if kind is StatKind.HEALTH:
            return self._health_per_point
        return self._other_per_point

    def allocate(
        self,
        stats: BaseStats,
        available_points: int,
        allocation: Mapping[StatKind, int],
    ) -> Tuple[BaseStats, int]:
        """
        Spend points on stats.

        Returns:
            (new_stats, points_spent)

        Raises:
            ValidationError: Negative, empty, oversized or over-budget allocation.
        """
        spent = 0
        for kind, points in allocation.items():
            if not isinstance(kind, StatKind):
                raise ValidationError("allocation", f"unknown stat {kind!r}")
            if points < 0:
                raise ValidationError(kind.value, "points must be non-negative")
            if points > self._max_points:
                raise ValidationError(kind.value, f"at most {self._max_points} points per stat")
            spent += points

        if spent == 0:
            raise ValidationError("allocation", "no points allocated")
        if spent > available_points:
            raise ValidationError(
                "allocation",
                f"allocating {spent} points but only {available_points} available",
            )

        updated: Dict[str, int] = {}
        for kind in StatKind:
            gain = allocation.get(kind, 0) * self.gain_per_point(kind)
            updated[kind.value] = stats.stat(kind) + gain

        return BaseStats(**updated), spent
