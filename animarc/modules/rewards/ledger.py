"""
RewardLedger - converts outcomes into reward deltas.

Purpose
-------
Aggregate duel results, raid attempts and focus sessions into a single
RewardDelta (XP, gold, stat points) plus the level-up / rank-up events
caused by that grant.

Design Notes
------------
- Events are derived only from the grant's own before/after totals
  (``prior_total_xp`` -> ``prior_total_xp + xp_delta``). Re-reading an
  already-leveled profile never yields an event, so each level-up and
  rank-up fires exactly once.
- A raid attempt that did not defeat the boss grants nothing.
- PendingCelebrations is the one-shot hand-off to presentation: events are
  drained once and then gone.

Config keys:
    rewards.points_per_level (default 5)
"""

from __future__ import annotations

from typing import List, Optional

from animarc.core.config.config_manager import ConfigManager
from animarc.core.logging.logger import get_logger
from animarc.domain.models.combat import BattleResult
from animarc.domain.models.progression import (
    LevelUpEvent,
    RankUpEvent,
    RewardDelta,
    SessionXP,
)
from animarc.domain.models.raid import PortalBoss, RaidAttemptResult
from animarc.modules.progression.curve import ProgressionCurve
from animarc.modules.raid.engine import RaidEngine
from animarc.modules.shared.constants import POINTS_PER_LEVEL
from animarc.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)


class RewardLedger:
    """
    Example:
        >>> ledger = RewardLedger(ConfigManager())
        >>> delta = ledger.for_battle(result, prior_total_xp=90)
        >>> delta.level_up
        LevelUpEvent(old_level=1, new_level=2)
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        curve: Optional[ProgressionCurve] = None,
        raid_engine: Optional[RaidEngine] = None,
    ) -> None:
        config = config or ConfigManager()
        self._curve = curve or ProgressionCurve(config)
        self._raid_engine = raid_engine or RaidEngine(config)
        self._points_per_level = int(
            config.get("rewards.points_per_level", default=POINTS_PER_LEVEL)
        )

    # =========================================================================
    # GRANTS
    # =========================================================================

    def for_battle(self, result: BattleResult, prior_total_xp: int) -> RewardDelta:
        return self._grant(result.xp_earned, result.gold_earned, prior_total_xp, "duel")

    def for_raid(
        self,
        attempt: RaidAttemptResult,
        boss: PortalBoss,
        prior_total_xp: int,
    ) -> RewardDelta:
        """Boss rewards when ``attempt`` defeated the boss; an empty delta otherwise."""
        if not attempt.boss_defeated:
            return self._grant(0, 0, prior_total_xp, "raid")
        xp, gold = self._raid_engine.calculate_boss_rewards(boss.rank, boss.boss_level)
        return self._grant(xp, gold, prior_total_xp, "raid")

    def for_focus_session(self, session_xp: SessionXP, prior_total_xp: int) -> RewardDelta:
        return self._grant(session_xp.total, 0, prior_total_xp, "focus_session")

    def _grant(self, xp: int, gold: int, prior_total_xp: int, source: str) -> RewardDelta:
        if prior_total_xp < 0:
            raise ValidationError("prior_total_xp", "must be non-negative")
        if xp < 0 or gold < 0:
            raise ValidationError("reward", f"negative grant xp={xp} gold={gold}")

        old_level = self._curve.level_for_total_xp(prior_total_xp)
        new_level = self._curve.level_for_total_xp(prior_total_xp + xp)

        level_up: Optional[LevelUpEvent] = None
        rank_up: Optional[RankUpEvent] = None
        if new_level > old_level:
            level_up = LevelUpEvent(old_level, new_level)
            ranks = self._curve.rank_up(old_level, new_level)
            if ranks is not None:
                rank_up = RankUpEvent(*ranks)

        delta = RewardDelta(
            xp_delta=xp,
            gold_delta=gold,
            stat_points_delta=self._points_per_level * (new_level - old_level),
            old_level=old_level,
            new_level=new_level,
            level_up=level_up,
            rank_up=rank_up,
            source=source,
        )
        if level_up is not None:
            logger.info(
                "Reward grant crosses a level boundary",
                extra={
                    "source": source,
                    "old_level": old_level,
                    "new_level": new_level,
                    "rank_up": rank_up.new_rank.code if rank_up else None,
                },
            )
        return delta


class PendingCelebrations:
    """One-shot queue of level/rank events awaiting presentation."""

    def __init__(self) -> None:
        self._events: List[object] = []

    def record(self, delta: RewardDelta) -> None:
        self._events.extend(delta.events())

    def drain(self) -> List[object]:
        events, self._events = self._events, []
        return events

    def __len__(self) -> int:
        return len(self._events)
