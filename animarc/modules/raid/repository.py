"""
SQLAlchemy implementation of RaidProgressStore.

Purpose
-------
Persist portal raid progress and daily attempt counters with the atomicity
the raid rules need: versioned compare-and-swap on progress rows and a
single-statement check-and-increment on daily attempts.

Design Notes
------------
- Every public method opens its own transaction through DatabaseService.
- Damage writes are ``UPDATE ... WHERE id = :id AND version = :expected AND
  completed = false``; zero affected rows means another writer won.
- Attempt consumption is ``UPDATE ... SET used = used + 1 WHERE used < :cap``
  so two concurrent callers can never both take the last attempt. A refund
  is the mirror image, guarded by ``used > 0``.
- The boss-reward claim is a versioned flip of ``reward_granted``.
- Rows whose damage already equals max_hp but were never flagged completed
  are reconciled on read.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Set

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from animarc.core.database.service import DatabaseService
from animarc.core.logging.logger import get_logger
from animarc.database.models.progression.daily_limits import DailyLimitsRecord
from animarc.database.models.raid.portal_raid_progress import PortalRaidProgressRecord
from animarc.domain.models.raid import DailyLimits, PortalRaidProgress
from animarc.modules.shared.exceptions import (
    ConcurrencyConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


def _to_progress(record: PortalRaidProgressRecord) -> PortalRaidProgress:
    return PortalRaidProgress(
        id=record.id,
        user_id=record.user_id,
        boss_id=record.boss_id,
        max_hp=record.max_hp,
        current_damage=record.current_damage,
        completed=record.completed,
        completed_at=record.completed_at,
        reward_granted=record.reward_granted,
        version=record.version,
    )


def _to_limits(record: DailyLimitsRecord) -> DailyLimits:
    return DailyLimits(
        user_id=record.user_id,
        day=record.day,
        boss_attempts_used=record.boss_attempts_used,
    )


class SqlRaidProgressStore:
    """
    Example:
        >>> store = SqlRaidProgressStore(db)
        >>> progress = await store.create_progress("user-1", "boss-01", 1000)
        >>> progress = await store.apply_damage_and_save(
        ...     progress.id, 300, 30.0, expected_version=progress.version
        ... )
    """

    def __init__(self, db: DatabaseService) -> None:
        self._db = db

    # =========================================================================
    # PROGRESS
    # =========================================================================

    async def fetch_progress(self, user_id: str, boss_id: str) -> Optional[PortalRaidProgress]:
        async with self._db.get_transaction() as session:
            record = await self._select_progress(session, user_id, boss_id)
            if record is None:
                return None
            if not record.completed and record.current_damage == record.max_hp:
                return await self._complete(session, record)
            return _to_progress(record)

    async def create_progress(self, user_id: str, boss_id: str, max_hp: int) -> PortalRaidProgress:
        """Insert a fresh row, or return the row a concurrent writer created first."""
        if max_hp <= 0:
            raise ValidationError("max_hp", f"must be positive, got {max_hp}")

        try:
            async with self._db.get_transaction() as session:
                record = PortalRaidProgressRecord(
                    user_id=user_id,
                    boss_id=boss_id,
                    max_hp=max_hp,
                    current_damage=0,
                    progress_percent=0.0,
                    completed=False,
                    version=1,
                )
                session.add(record)
                await session.flush()
                progress = _to_progress(record)
        except IntegrityError:
            logger.info(
                "Raid progress already exists, returning existing row",
                extra={"user_id": user_id, "boss_id": boss_id},
            )
            existing = await self.fetch_progress(user_id, boss_id)
            if existing is None:
                raise
            return existing

        logger.info(
            "Raid progress created",
            extra={"user_id": user_id, "boss_id": boss_id, "max_hp": max_hp},
        )
        return progress

    async def apply_damage_and_save(
        self,
        progress_id: int,
        new_damage: int,
        new_percent: float,
        *,
        expected_version: int,
        completed_at: Optional[datetime] = None,
    ) -> PortalRaidProgress:
        """
        Store ``new_damage`` if the row is still at ``expected_version``.

        Completion is set in the same statement when ``new_damage`` reaches
        max_hp, stamped with ``completed_at`` or the current UTC time.

        Raises:
            NotFoundError: No such row.
            ConcurrencyConflictError: The row moved past ``expected_version``.
            InvalidStateError: The boss is already defeated.
            ValidationError: ``new_damage`` would decrease damage or exceed max_hp.
        """
        async with self._db.get_transaction() as session:
            record = await session.get(PortalRaidProgressRecord, progress_id)
            if record is None:
                raise NotFoundError("PortalRaidProgress", progress_id)
            if record.version != expected_version:
                raise ConcurrencyConflictError(
                    "PortalRaidProgress", progress_id, expected_version
                )
            if record.completed:
                raise InvalidStateError(
                    "raid.apply_damage",
                    "Boss already defeated",
                    details={"progress_id": progress_id},
                )
            if not record.current_damage <= new_damage <= record.max_hp:
                raise ValidationError(
                    "new_damage",
                    f"{new_damage} outside [{record.current_damage}, {record.max_hp}]",
                )

            completed = new_damage == record.max_hp
            if completed:
                completed_at = completed_at or datetime.now(timezone.utc)
            else:
                completed_at = None
            result = await session.execute(
                update(PortalRaidProgressRecord)
                .where(
                    PortalRaidProgressRecord.id == progress_id,
                    PortalRaidProgressRecord.version == expected_version,
                    PortalRaidProgressRecord.completed.is_(False),
                )
                .values(
                    current_damage=new_damage,
                    progress_percent=new_percent,
                    completed=completed,
                    completed_at=completed_at,
                    version=PortalRaidProgressRecord.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConcurrencyConflictError(
                    "PortalRaidProgress", progress_id, expected_version
                )

            saved = PortalRaidProgress(
                id=record.id,
                user_id=record.user_id,
                boss_id=record.boss_id,
                max_hp=record.max_hp,
                current_damage=new_damage,
                completed=completed,
                completed_at=completed_at,
                version=expected_version + 1,
            )

        logger.info(
            "Raid damage saved",
            extra={
                "progress_id": progress_id,
                "user_id": saved.user_id,
                "boss_id": saved.boss_id,
                "current_damage": new_damage,
                "completed": completed,
                "version": saved.version,
            },
        )
        return saved

    async def set_reward_granted(
        self,
        progress_id: int,
        granted: bool,
        *,
        expected_version: int,
    ) -> PortalRaidProgress:
        """
        Claim (``granted=True``) or release the boss-defeat reward.

        Raises:
            NotFoundError: No such row.
            ConcurrencyConflictError: The row moved past ``expected_version``.
            InvalidStateError: Claiming an undefeated boss or an already
                claimed reward.
        """
        async with self._db.get_transaction() as session:
            record = await session.get(PortalRaidProgressRecord, progress_id)
            if record is None:
                raise NotFoundError("PortalRaidProgress", progress_id)
            if record.version != expected_version:
                raise ConcurrencyConflictError(
                    "PortalRaidProgress", progress_id, expected_version
                )
            if granted and not record.completed:
                raise InvalidStateError(
                    "raid.claim_reward",
                    "Boss not defeated",
                    details={"progress_id": progress_id},
                )
            if granted and record.reward_granted:
                raise InvalidStateError(
                    "raid.claim_reward",
                    "Boss reward already granted",
                    details={"progress_id": progress_id},
                )

            result = await session.execute(
                update(PortalRaidProgressRecord)
                .where(
                    PortalRaidProgressRecord.id == progress_id,
                    PortalRaidProgressRecord.version == expected_version,
                )
                .values(
                    reward_granted=granted,
                    version=PortalRaidProgressRecord.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConcurrencyConflictError(
                    "PortalRaidProgress", progress_id, expected_version
                )

            saved = PortalRaidProgress(
                id=record.id,
                user_id=record.user_id,
                boss_id=record.boss_id,
                max_hp=record.max_hp,
                current_damage=record.current_damage,
                completed=record.completed,
                completed_at=record.completed_at,
                reward_granted=granted,
                version=expected_version + 1,
            )

        logger.info(
            "Raid reward claim updated",
            extra={
                "progress_id": progress_id,
                "user_id": saved.user_id,
                "boss_id": saved.boss_id,
                "reward_granted": granted,
                "version": saved.version,
            },
        )
        return saved

    async def mark_completed(self, progress_id: int) -> PortalRaidProgress:
        """
        Flag a fully damaged row as completed.

        Raises:
            NotFoundError: No such row.
            InvalidStateError: Already completed, or damage has not reached max_hp.
        """
        async with self._db.get_transaction() as session:
            record = await session.get(PortalRaidProgressRecord, progress_id)
            if record is None:
                raise NotFoundError("PortalRaidProgress", progress_id)
            if record.completed:
                raise InvalidStateError("raid.mark_completed", "Progress already completed")
            if record.current_damage != record.max_hp:
                raise InvalidStateError(
                    "raid.mark_completed",
                    f"Damage {record.current_damage} has not reached max_hp {record.max_hp}",
                )
            return await self._complete(session, record)

    async def fetch_completed_boss_ids(self, user_id: str) -> Set[str]:
        async with self._db.get_session() as session:
            result = await session.execute(
                select(PortalRaidProgressRecord.boss_id).where(
                    PortalRaidProgressRecord.user_id == user_id,
                    PortalRaidProgressRecord.completed.is_(True),
                )
            )
            return set(result.scalars().all())

    async def _select_progress(
        self, session: AsyncSession, user_id: str, boss_id: str
    ) -> Optional[PortalRaidProgressRecord]:
        result = await session.execute(
            select(PortalRaidProgressRecord).where(
                PortalRaidProgressRecord.user_id == user_id,
                PortalRaidProgressRecord.boss_id == boss_id,
            )
        )
        return result.scalar_one_or_none()

    async def _complete(
        self, session: AsyncSession, record: PortalRaidProgressRecord
    ) -> PortalRaidProgress:
        record.completed = True
        record.completed_at = datetime.now(timezone.utc)
        record.progress_percent = 100.0
        record.version = record.version + 1
        await session.flush()
        logger.warning(
            "Reconciled raid progress at full damage without completion flag",
            extra={"progress_id": record.id, "user_id": record.user_id, "boss_id": record.boss_id},
        )
        return _to_progress(record)

    # =========================================================================
    # DAILY LIMITS
    # =========================================================================

    async def fetch_or_create_daily_limits(self, user_id: str, day: date) -> DailyLimits:
        """Today's counter row; a new day starts at zero attempts used."""
        async with self._db.get_session() as session:
            record = await self._select_limits(session, user_id, day)
            if record is not None:
                return _to_limits(record)

        try:
            async with self._db.get_transaction() as session:
                record = DailyLimitsRecord(user_id=user_id, day=day, boss_attempts_used=0)
                session.add(record)
                await session.flush()
                return _to_limits(record)
        except IntegrityError:
            async with self._db.get_session() as session:
                record = await self._select_limits(session, user_id, day)
                if record is None:
                    raise
                return _to_limits(record)

    async def increment_boss_attempts(
        self,
        user_id: str,
        day: date,
        *,
        max_attempts: int,
    ) -> DailyLimits:
        """
        Atomically consume one attempt.

        Raises:
            InvalidStateError: ``max_attempts`` already used on ``day``.
        """
        await self.fetch_or_create_daily_limits(user_id, day)

        async with self._db.get_transaction() as session:
            result = await session.execute(
                update(DailyLimitsRecord)
                .where(
                    DailyLimitsRecord.user_id == user_id,
                    DailyLimitsRecord.day == day,
                    DailyLimitsRecord.boss_attempts_used < max_attempts,
                )
                .values(boss_attempts_used=DailyLimitsRecord.boss_attempts_used + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidStateError(
                    "raid.consume_attempt",
                    "No boss attempts remaining today",
                    details={
                        "user_id": user_id,
                        "day": day.isoformat(),
                        "max_attempts": max_attempts,
                    },
                )
            record = await self._select_limits(session, user_id, day)
            if record is None:
                raise NotFoundError("DailyLimits", f"{user_id}/{day.isoformat()}")
            limits = _to_limits(record)

        logger.info(
            "Boss attempt consumed",
            extra={
                "user_id": user_id,
                "day": day.isoformat(),
                "used": limits.boss_attempts_used,
                "max_attempts": max_attempts,
            },
        )
        return limits

    async def refund_boss_attempt(self, user_id: str, day: date) -> DailyLimits:
        """Give back one attempt; a counter already at zero is left alone."""
        async with self._db.get_transaction() as session:
            result = await session.execute(
                update(DailyLimitsRecord)
                .where(
                    DailyLimitsRecord.user_id == user_id,
                    DailyLimitsRecord.day == day,
                    DailyLimitsRecord.boss_attempts_used > 0,
                )
                .values(boss_attempts_used=DailyLimitsRecord.boss_attempts_used - 1)
                .execution_options(synchronize_session=False)
            )
            refunded = result.rowcount > 0

        limits = await self.fetch_or_create_daily_limits(user_id, day)
        if refunded:
            logger.info(
                "Boss attempt refunded",
                extra={
                    "user_id": user_id,
                    "day": day.isoformat(),
                    "used": limits.boss_attempts_used,
                },
            )
        return limits

    async def _select_limits(
        self, session: AsyncSession, user_id: str, day: date
    ) -> Optional[DailyLimitsRecord]:
        result = await session.execute(
            select(DailyLimitsRecord).where(
                DailyLimitsRecord.user_id == user_id,
                DailyLimitsRecord.day == day,
            )
        )
        return result.scalar_one_or_none()
