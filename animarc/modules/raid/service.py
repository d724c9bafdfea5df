"""
Portal raid service: daily-limited attempts against persistent bosses.

Features:
- Boss map (defeated / current / locked) from the user's completed bosses
- HP pool frozen when the user first engages a boss
- One atomic attempt-token consumption per attack
- Damage written with compare-and-swap; conflicts re-read and re-roll
- Boss-defeat rewards claimed on the progress row, then granted once through
  ProgressionService; a failed grant is settled by the next attack

Attack Flow:
1. Require the user's progress row, so rewards can land
2. Fetch or create progress for (user, boss)
3. Reject a defeated, rewarded boss before any attempt is consumed
4. Consume today's attempt (InvalidStateError when none remain)
5. Roll the attempt against the freshest row and save with the row version;
   refund the attempt if no damage landed
6. On defeat, claim and grant the boss rewards
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence, Tuple

from animarc.core.config.config_manager import ConfigManager
from animarc.core.logging.logger import LogContext, get_logger
from animarc.domain.models.battler import BattlerStats, SubscriptionTier
from animarc.domain.models.progression import RewardDelta
from animarc.domain.models.raid import (
    BossMap,
    DailyLimits,
    PortalBoss,
    PortalRaidProgress,
    RaidAttemptResult,
    RaidOutcome,
)
from animarc.modules.progression.service import ProgressionService
from animarc.modules.raid.daily_limits import DailyLimitPolicy
from animarc.modules.raid.engine import RaidEngine
from animarc.modules.shared.base_service import BaseService
from animarc.modules.shared.exceptions import (
    ConcurrencyConflictError,
    InvalidStateError,
    NotFoundError,
)
from animarc.modules.shared.persistence import RaidProgressStore

logger = get_logger(__name__)


class PortalRaidService(BaseService):
    def __init__(
        self,
        config_manager: ConfigManager,
        raid_store: RaidProgressStore,
        progression: ProgressionService,
        *,
        engine: Optional[RaidEngine] = None,
        limits: Optional[DailyLimitPolicy] = None,
    ) -> None:
        super().__init__(config_manager, logger)
        self._raids = raid_store
        self._progression = progression
        self._engine = engine or RaidEngine(config_manager)
        self._limits = limits or DailyLimitPolicy(config_manager)

    # =========================================================================
    # READS
    # =========================================================================

    async def get_boss_map(self, user_id: str, bosses: Sequence[PortalBoss]) -> BossMap:
        self.validate_user_id(user_id)
        completed = await self._raids.fetch_completed_boss_ids(user_id)
        return self._engine.categorize_bosses(bosses, completed)

    async def get_progress(self, user_id: str, boss: PortalBoss) -> Optional[PortalRaidProgress]:
        return await self._raids.fetch_progress(user_id, boss.id)

    async def get_daily_limits(
        self,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> DailyLimits:
        return await self._raids.fetch_or_create_daily_limits(user_id, self._limits.today(now))

    async def attempts_remaining(
        self,
        user_id: str,
        tier: SubscriptionTier,
        now: Optional[datetime] = None,
    ) -> int:
        limits = await self.get_daily_limits(user_id, now)
        return self._limits.remaining(limits, tier)

    async def estimate_attempts(
        self,
        user_id: str,
        user_stats: BattlerStats,
        boss: PortalBoss,
    ) -> Tuple[int, int]:
        """(best, worst) attempts left; a boss never engaged counts its full HP."""
        progress = await self._raids.fetch_progress(user_id, boss.id)
        if progress is None:
            remaining = self._engine.start_progress(user_id, boss).max_hp
        else:
            remaining = progress.remaining_hp
        return self._engine.estimate_attempts_needed(
            user_stats, boss.battler_stats(), remaining
        )

    # =========================================================================
    # ATTACK
    # =========================================================================

    async def attack(
        self,
        user_id: str,
        user_stats: BattlerStats,
        boss: PortalBoss,
        tier: SubscriptionTier,
        now: Optional[datetime] = None,
    ) -> RaidOutcome:
        """
        Spend one daily attempt on ``boss``.

        A boss that was defeated without its rewards landing is settled
        instead: the rewards are granted and no attempt is consumed.

        Raises:
            NotFoundError: The user has no progress row (checked before any
                write), or the raid progress vanished mid-attack.
            InvalidStateError: Boss already defeated and rewarded, or no
                attempts left today.
            ConcurrencyConflictError: Damage writes kept losing races.
        """
        self.validate_user_id(user_id)

        async with LogContext(
            user_id=user_id, component="raid", operation="attack", boss_id=boss.id
        ):
            await self._progression.get_progress(user_id)

            progress = await self._fetch_or_start(user_id, boss)
            if progress.completed:
                if progress.reward_granted:
                    raise InvalidStateError(
                        "raid.attack",
                        "Boss already defeated",
                        details={"boss_id": boss.id},
                    )
                return await self._settle_unpaid_defeat(user_id, boss, progress, tier, now)

            moment = now or self._limits.now()
            day = self._limits.today(moment)
            limits = await self._raids.increment_boss_attempts(
                user_id, day, max_attempts=self._limits.max_attempts(tier)
            )
            seed_key = f"{day.isoformat()}#{limits.boss_attempts_used}"
            boss_stats = boss.battler_stats()

            async def _strike() -> Tuple[RaidAttemptResult, PortalRaidProgress]:
                fresh = await self._raids.fetch_progress(user_id, boss.id)
                if fresh is None:
                    raise NotFoundError("PortalRaidProgress", f"{user_id}/{boss.id}")
                attempt = self._engine.attempt(user_stats, boss_stats, fresh, seed_key=seed_key)
                updated = self._engine.apply_damage(fresh, attempt.damage_dealt, now=moment)
                saved = await self._raids.apply_damage_and_save(
                    fresh.id,
                    updated.current_damage,
                    updated.progress_percent,
                    expected_version=fresh.version,
                    completed_at=updated.completed_at,
                )
                return attempt, saved

            try:
                attempt, saved = await self.with_conflict_retry(
                    "raid.attack", _strike, user_id=user_id, boss_id=boss.id
                )
            except (InvalidStateError, NotFoundError, ConcurrencyConflictError) as exc:
                # No damage landed; the attempt goes back
                await self._raids.refund_boss_attempt(user_id, day)
                self.log.warning(
                    "Raid attack dealt no damage, attempt refunded",
                    extra={
                        "user_id": user_id,
                        "boss_id": boss.id,
                        "day": day.isoformat(),
                        "error_type": type(exc).__name__,
                    },
                )
                raise

            reward = None
            if attempt.boss_defeated:
                reward, saved = await self._grant_boss_reward(user_id, boss, attempt, saved)

            self.log_operation(
                "raid.attack",
                user_id=user_id,
                boss_id=boss.id,
                damage=attempt.damage_dealt,
                total_damage=saved.current_damage,
                max_hp=saved.max_hp,
                boss_defeated=attempt.boss_defeated,
                attempts_used=limits.boss_attempts_used,
            )

        return RaidOutcome(
            attempt=attempt,
            progress=saved,
            daily_limits=limits,
            attempts_remaining=self._limits.remaining(limits, tier),
            reward=reward,
        )

    # =========================================================================
    # BOSS REWARDS
    # =========================================================================

    async def _grant_boss_reward(
        self,
        user_id: str,
        boss: PortalBoss,
        attempt: RaidAttemptResult,
        progress: PortalRaidProgress,
    ) -> Tuple[Optional[RewardDelta], PortalRaidProgress]:
        """
        Claim the defeat reward on the progress row, then pay it out.

        A failed payout releases the claim so a later attack can settle it.
        Returns ``(None, progress)`` when another caller holds the claim.
        """

        async def _claim() -> Optional[PortalRaidProgress]:
            fresh = await self._raids.fetch_progress(user_id, boss.id)
            if fresh is None:
                raise NotFoundError("PortalRaidProgress", f"{user_id}/{boss.id}")
            if fresh.reward_granted:
                return None
            return await self._raids.set_reward_granted(
                fresh.id, True, expected_version=fresh.version
            )

        claimed = await self.with_conflict_retry(
            "raid.claim_reward", _claim, user_id=user_id, boss_id=boss.id
        )
        if claimed is None:
            return None, progress

        try:
            reward, _ = await self._progression.grant_rewards(
                user_id,
                lambda snapshot: self._progression.ledger.for_raid(
                    attempt, boss, snapshot.total_xp
                ),
                operation="raid.boss_defeated",
            )
        except Exception:
            await self._raids.set_reward_granted(
                claimed.id, False, expected_version=claimed.version
            )
            self.log.warning(
                "Boss reward grant failed, claim released",
                extra={"user_id": user_id, "boss_id": boss.id},
            )
            raise

        return reward, claimed

    async def _settle_unpaid_defeat(
        self,
        user_id: str,
        boss: PortalBoss,
        progress: PortalRaidProgress,
        tier: SubscriptionTier,
        now: Optional[datetime],
    ) -> RaidOutcome:
        attempt = RaidAttemptResult(
            damage_dealt=0,
            boss_defeated=True,
            new_total_damage=progress.max_hp,
            new_progress_percent=100.0,
        )
        reward, saved = await self._grant_boss_reward(user_id, boss, attempt, progress)
        if reward is None:
            raise InvalidStateError(
                "raid.attack",
                "Boss already defeated",
                details={"boss_id": boss.id},
            )

        limits = await self.get_daily_limits(user_id, now)
        self.log_operation(
            "raid.reward_settled",
            user_id=user_id,
            boss_id=boss.id,
            xp=reward.xp_delta,
            gold=reward.gold_delta,
        )
        return RaidOutcome(
            attempt=attempt,
            progress=saved,
            daily_limits=limits,
            attempts_remaining=self._limits.remaining(limits, tier),
            reward=reward,
        )

    async def _fetch_or_start(self, user_id: str, boss: PortalBoss) -> PortalRaidProgress:
        progress = await self._raids.fetch_progress(user_id, boss.id)
        if progress is not None:
            return progress
        initial = self._engine.start_progress(user_id, boss)
        return await self._raids.create_progress(user_id, boss.id, initial.max_hp)
