"""
Progression service: focus-session XP, reward grants and stat allocation.

Features:
- Focus sessions converted to XP through SessionXPCalculator
- Reward grants applied with optimistic locking and bounded retries
- Level-up / rank-up events derived once per grant and queued for presentation
- Stat point spending on the fixed stat fields

Grant Flow:
1. Read the user's progress snapshot (NotFoundError if missing)
2. Build the RewardDelta from the snapshot's total XP
3. Write the delta with ``expected_version``
4. On conflict, re-read and rebuild; events always reflect the write that landed
"""

from __future__ import annotations

from typing import Callable, Mapping, Optional, Tuple

from animarc.core.config.config_manager import ConfigManager
from animarc.core.logging.logger import LogContext, get_logger
from animarc.domain.models.battler import StatKind
from animarc.domain.models.progression import (
    LevelProgress,
    RankProgress,
    RewardDelta,
    UserProgressSnapshot,
)
from animarc.modules.progression.allocation import StatAllocator
from animarc.modules.progression.curve import ProgressionCurve
from animarc.modules.progression.session_xp import SessionXPCalculator
from animarc.modules.rewards.ledger import PendingCelebrations, RewardLedger
from animarc.modules.shared.base_service import BaseService
from animarc.modules.shared.exceptions import NotFoundError, ValidationError
from animarc.modules.shared.persistence import UserProgressStore

logger = get_logger(__name__)

DeltaBuilder = Callable[[UserProgressSnapshot], RewardDelta]


class ProgressionService(BaseService):
    def __init__(
        self,
        config_manager: ConfigManager,
        user_store: UserProgressStore,
        *,
        curve: Optional[ProgressionCurve] = None,
        ledger: Optional[RewardLedger] = None,
        session_xp: Optional[SessionXPCalculator] = None,
        allocator: Optional[StatAllocator] = None,
        celebrations: Optional[PendingCelebrations] = None,
    ) -> None:
        super().__init__(config_manager, logger)
        self._users = user_store
        self.curve = curve or ProgressionCurve(config_manager)
        self.ledger = ledger or RewardLedger(config_manager, curve=self.curve)
        self._session_xp = session_xp or SessionXPCalculator(config_manager)
        self._allocator = allocator or StatAllocator(config_manager)
        self.celebrations = celebrations if celebrations is not None else PendingCelebrations()

    # =========================================================================
    # READS
    # =========================================================================

    async def get_progress(self, user_id: str) -> UserProgressSnapshot:
        """
        Raises:
            NotFoundError: No progress row for ``user_id``.
        """
        self.validate_user_id(user_id)
        snapshot = await self._users.fetch_user_progress(user_id)
        if snapshot is None:
            raise NotFoundError("UserProgress", user_id)
        return snapshot

    async def get_or_create_progress(self, user_id: str) -> UserProgressSnapshot:
        self.validate_user_id(user_id)
        snapshot = await self._users.fetch_user_progress(user_id)
        if snapshot is None:
            snapshot = await self._users.create_user_progress(user_id)
        return snapshot

    async def get_level_progress(self, user_id: str) -> LevelProgress:
        snapshot = await self.get_progress(user_id)
        return self.curve.level_progress(snapshot.total_xp)

    async def get_rank_progress(self, user_id: str) -> RankProgress:
        snapshot = await self.get_progress(user_id)
        level = self.curve.level_for_total_xp(snapshot.total_xp)
        return self.curve.rank_table.progress_to_next_rank(level)

    # =========================================================================
    # GRANTS
    # =========================================================================

    async def grant_rewards(
        self,
        user_id: str,
        build_delta: DeltaBuilder,
        operation: str = "progression.grant",
    ) -> Tuple[RewardDelta, UserProgressSnapshot]:
        """
        Apply the delta built by ``build_delta`` from the freshest snapshot.

        ``build_delta`` is re-invoked after every conflict so the level and
        rank events always match the write that actually landed.

        Raises:
            NotFoundError: No progress row for ``user_id``.
            ConcurrencyConflictError: Conflicts persisted past the retry budget.
        """

        async def _attempt() -> Tuple[RewardDelta, UserProgressSnapshot]:
            snapshot = await self.get_progress(user_id)
            delta = build_delta(snapshot)
            if delta.is_empty:
                return delta, snapshot
            updated = await self._users.update_xp_and_gold(
                user_id,
                delta.xp_delta,
                delta.gold_delta,
                stat_points_delta=delta.stat_points_delta,
                expected_version=snapshot.version,
            )
            return delta, updated

        delta, snapshot = await self.with_conflict_retry(operation, _attempt, user_id=user_id)
        self.celebrations.record(delta)
        self.log_operation(
            operation,
            user_id=user_id,
            source=delta.source,
            xp_delta=delta.xp_delta,
            gold_delta=delta.gold_delta,
            new_level=delta.new_level,
        )
        return delta, snapshot

    async def record_focus_session(
        self,
        user_id: str,
        duration_minutes: int,
        completed: bool = True,
        first_session_today: bool = False,
        streak_days: int = 0,
    ) -> RewardDelta:
        """Grant XP for one focus session."""
        session_xp = self._session_xp.calculate(
            duration_minutes,
            completed=completed,
            first_session_today=first_session_today,
            streak_days=streak_days,
        )
        async with LogContext(user_id=user_id, component="progression", operation="focus_session"):
            delta, _ = await self.grant_rewards(
                user_id,
                lambda snapshot: self.ledger.for_focus_session(session_xp, snapshot.total_xp),
                operation="progression.focus_session",
            )
        return delta

    # =========================================================================
    # STAT ALLOCATION
    # =========================================================================

    async def allocate_stats(
        self,
        user_id: str,
        allocation: Mapping[StatKind, int],
    ) -> UserProgressSnapshot:
        """
        Spend unspent stat points.

        Raises:
            NotFoundError: No progress row for ``user_id``.
            ValidationError: Invalid or over-budget allocation.
        """
        if not allocation:
            raise ValidationError("allocation", "no points allocated")

        async def _attempt() -> UserProgressSnapshot:
            snapshot = await self.get_progress(user_id)
            stats, spent = self._allocator.allocate(
                snapshot.stats, snapshot.available_stat_points, allocation
            )
            return await self._users.save_stat_allocation(
                user_id, stats, spent, expected_version=snapshot.version
            )

        async with LogContext(user_id=user_id, component="progression", operation="allocate_stats"):
            updated = await self.with_conflict_retry(
                "progression.allocate_stats", _attempt, user_id=user_id
            )
            self.log_operation(
                "progression.allocate_stats",
                user_id=user_id,
                allocation={k.value: v for k, v in allocation.items()},
                remaining_points=updated.available_stat_points,
            )
        return updated
