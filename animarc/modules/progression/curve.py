"""
ProgressionCurve - pure XP/level/rank lookups.

Purpose
-------
Map total accumulated experience to a level, a level to its rank, and back.
Every function is pure: the same total always maps to the same level.

Curve
-----
XP required to *reach* level N:

    threshold(N) = int(base * (N - 1) ** exponent)     threshold(1) == 0

With exponent > 1 the XP needed per level strictly increases, so leveling
gets harder at higher tiers. The curve is uncapped; the top rank is
open-ended.

Config keys:
    progression.xp_curve.base      (default 100)
    progression.xp_curve.exponent  (default 1.5)
"""

from __future__ import annotations

from typing import Optional, Tuple

from animarc.core.config.config_manager import ConfigManager
from animarc.core.exceptions import ConfigurationError
from animarc.domain.models.progression import LevelProgress, Rank
from animarc.modules.progression.ranks import RankTable
from animarc.modules.shared.constants import XP_CURVE_BASE, XP_CURVE_EXPONENT


class ProgressionCurve:
    """
    Example:
        >>> curve = ProgressionCurve(ConfigManager())
        >>> curve.level_for_total_xp(0)
        1
        >>> curve.xp_for_level(2)
        100
        >>> curve.level_progress(150).progress_percent
        ~27.0
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        rank_table: Optional[RankTable] = None,
    ) -> None:
        config = config or ConfigManager()
        self._base = float(config.get("progression.xp_curve.base", default=XP_CURVE_BASE))
        self._exponent = float(
            config.get("progression.xp_curve.exponent", default=XP_CURVE_EXPONENT)
        )
        if self._base <= 0:
            raise ConfigurationError("progression.xp_curve.base", "must be positive")
        if self._exponent <= 1.0:
            raise ConfigurationError(
                "progression.xp_curve.exponent",
                "must be greater than 1 so per-level XP strictly increases",
            )
        self._ranks = rank_table or RankTable(config)

    @property
    def rank_table(self) -> RankTable:
        return self._ranks

    # =========================================================================
    # XP <-> LEVEL
    # =========================================================================

    def xp_for_level(self, level: int) -> int:
        """Total XP at which ``level`` is reached."""
        if level <= 1:
            return 0
        return int(self._base * (level - 1) ** self._exponent)

    def xp_required_for_level_up(self, level: int) -> int:
        """XP needed to go from ``level`` to ``level + 1``."""
        return self.xp_for_level(level + 1) - self.xp_for_level(level)

    def level_for_total_xp(self, total: int) -> int:
        """
        Level reached with ``total`` XP. Non-decreasing in ``total``; >= 1.

        Raises:
            ValueError: If ``total`` is negative.
        """
        if total < 0:
            raise ValueError(f"total XP must be non-negative, got {total}")

        # Closed-form estimate, corrected for float rounding
        level = 1 + int((total / self._base) ** (1.0 / self._exponent))
        while level > 1 and self.xp_for_level(level) > total:
            level -= 1
        while self.xp_for_level(level + 1) <= total:
            level += 1
        return level

    def level_progress(self, total: int) -> LevelProgress:
        """
        Position of ``total`` inside its level.

        Guarantees ``0 <= xp_in_current_level < xp_needed_for_next`` and
        ``progress_percent == 100 * xp_in_current_level / xp_needed_for_next``.
        """
        level = self.level_for_total_xp(total)
        floor = self.xp_for_level(level)
        needed = self.xp_for_level(level + 1) - floor
        into = total - floor
        return LevelProgress(
            current_level=level,
            xp_in_current_level=into,
            xp_needed_for_next=needed,
            progress_percent=100.0 * into / needed,
        )

    # =========================================================================
    # LEVEL -> RANK
    # =========================================================================

    def rank_for_level(self, level: int) -> Rank:
        return self._ranks.for_level(level)

    def rank_up(self, old_level: int, new_level: int) -> Optional[Tuple[Rank, Rank]]:
        """(old_rank, new_rank) when the transition changes rank, else None."""
        old_rank = self.rank_for_level(old_level)
        new_rank = self.rank_for_level(new_level)
        if old_rank == new_rank:
            return None
        return old_rank, new_rank
