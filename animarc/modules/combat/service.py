"""
Duel service: opponent rosters and resolved duels with rewards.

Duel Flow:
1. Roster is generated from the user's derived level and current focus power
2. The user picks an opponent; the promised gold is fixed on the Opponent
3. CombatResolver rolls the duel, seeded by both stat blocks and a nonce.
   The nonce defaults to the user's progress-row version, which every
   granted duel bumps, so repeat fights roll independently
4. The result is granted through ProgressionService with optimistic locking
"""

from __future__ import annotations

from typing import List, Optional

from animarc.core.config.config_manager import ConfigManager
from animarc.core.logging.logger import LogContext, get_logger
from animarc.domain.models.battler import BattlerStats
from animarc.domain.models.combat import DuelOutcome, Opponent
from animarc.modules.combat.opponents import OpponentGenerator
from animarc.modules.combat.resolver import CombatResolver
from animarc.modules.progression.service import ProgressionService
from animarc.modules.shared.base_service import BaseService

logger = get_logger(__name__)


class DuelService(BaseService):
    def __init__(
        self,
        config_manager: ConfigManager,
        progression: ProgressionService,
        *,
        resolver: Optional[CombatResolver] = None,
        generator: Optional[OpponentGenerator] = None,
    ) -> None:
        super().__init__(config_manager, logger)
        self._progression = progression
        self._resolver = resolver or CombatResolver(config_manager)
        self._generator = generator or OpponentGenerator(
            config_manager, resolver=self._resolver, curve=progression.curve
        )

    async def list_opponents(
        self,
        user_id: str,
        focus_power: int,
        seed_key: str = "",
    ) -> List[Opponent]:
        """
        Roster for the user's current level.

        Raises:
            NotFoundError: No progress row for ``user_id``.
            ValidationError: ``focus_power`` is not positive.
        """
        self.validate_positive_int(focus_power, "focus_power")
        snapshot = await self._progression.get_progress(user_id)
        level = self._progression.curve.level_for_total_xp(snapshot.total_xp)
        return self._generator.generate(level, focus_power, seed_key)

    async def fight(
        self,
        user_id: str,
        user_stats: BattlerStats,
        opponent: Opponent,
        nonce: Optional[int] = None,
    ) -> DuelOutcome:
        """
        Resolve a duel against ``opponent`` and grant its rewards.

        A win pays exactly ``opponent.exact_gold_reward``. Pass ``nonce`` only
        to replay a known roll.

        Raises:
            NotFoundError: No progress row for ``user_id``.
            ConcurrencyConflictError: The reward grant kept losing races.
        """
        async with LogContext(user_id=user_id, component="combat", operation="duel"):
            if nonce is None:
                nonce = (await self._progression.get_progress(user_id)).version
            result = self._resolver.execute_battle(
                user_stats,
                opponent.stats,
                opponent_name=opponent.name,
                opponent_key=opponent.id,
                exact_gold=opponent.exact_gold_reward,
                nonce=nonce,
            )
            delta, _ = await self._progression.grant_rewards(
                user_id,
                lambda snapshot: self._progression.ledger.for_battle(result, snapshot.total_xp),
                operation="combat.duel",
            )
            logger.info(
                "Duel resolved",
                extra={
                    "opponent": opponent.name,
                    "nonce": nonce,
                    "did_win": result.did_win,
                    "difficulty": result.difficulty_tier.display_name,
                    "performance": round(result.performance_score, 3),
                    "xp": result.xp_earned,
                    "gold": result.gold_earned,
                },
            )
        return DuelOutcome(result=result, reward=delta)
