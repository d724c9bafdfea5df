"""
SQLAlchemy implementation of UserProgressStore.

Reward grants and stat allocations are versioned compare-and-swap updates:
``UPDATE ... WHERE user_id = :id AND version = :expected``. Deltas are
applied in SQL (``total_xp = total_xp + :delta``) so a successful write can
never lose a concurrent grant.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from animarc.core.database.service import DatabaseService
from animarc.core.logging.logger import get_logger
from animarc.database.models.progression.user_progress import UserProgress
from animarc.domain.models.progression import BaseStats, UserProgressSnapshot
from animarc.modules.shared.constants import (
    DEFAULT_ATTACK,
    DEFAULT_DEFENSE,
    DEFAULT_HEALTH,
    DEFAULT_SPEED,
)
from animarc.modules.shared.exceptions import (
    ConcurrencyConflictError,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


def _to_snapshot(record: UserProgress) -> UserProgressSnapshot:
    return UserProgressSnapshot(
        user_id=record.user_id,
        total_xp=record.total_xp,
        gold=record.gold,
        available_stat_points=record.available_stat_points,
        stats=BaseStats(
            health=record.health,
            attack=record.attack,
            defense=record.defense,
            speed=record.speed,
        ),
        version=record.version,
    )


class SqlUserProgressStore:
    def __init__(self, db: DatabaseService) -> None:
        self._db = db

    async def fetch_user_progress(self, user_id: str) -> Optional[UserProgressSnapshot]:
        async with self._db.get_session() as session:
            record = await self._select(session, user_id)
            return _to_snapshot(record) if record is not None else None

    async def create_user_progress(self, user_id: str) -> UserProgressSnapshot:
        """Insert a default row, or return the existing one."""
        try:
            async with self._db.get_transaction() as session:
                record = UserProgress(
                    user_id=user_id,
                    total_xp=0,
                    gold=0,
                    available_stat_points=0,
                    health=DEFAULT_HEALTH,
                    attack=DEFAULT_ATTACK,
                    defense=DEFAULT_DEFENSE,
                    speed=DEFAULT_SPEED,
                    version=1,
                )
                session.add(record)
                await session.flush()
                snapshot = _to_snapshot(record)
        except IntegrityError:
            existing = await self.fetch_user_progress(user_id)
            if existing is None:
                raise
            return existing

        logger.info("User progress created", extra={"user_id": user_id})
        return snapshot

    async def update_xp_and_gold(
        self,
        user_id: str,
        xp_delta: int,
        gold_delta: int,
        *,
        stat_points_delta: int = 0,
        expected_version: int,
    ) -> UserProgressSnapshot:
        """
        Apply a reward delta.

        Raises:
            ValidationError: A delta is negative.
            NotFoundError: No progress row for ``user_id``.
            ConcurrencyConflictError: The row moved past ``expected_version``.
        """
        if xp_delta < 0 or gold_delta < 0 or stat_points_delta < 0:
            raise ValidationError(
                "reward",
                f"negative delta xp={xp_delta} gold={gold_delta} points={stat_points_delta}",
            )

        snapshot = await self._compare_and_swap(
            user_id,
            expected_version,
            {
                "total_xp": UserProgress.total_xp + xp_delta,
                "gold": UserProgress.gold + gold_delta,
                "available_stat_points": UserProgress.available_stat_points + stat_points_delta,
            },
        )
        logger.info(
            "Rewards applied",
            extra={
                "user_id": user_id,
                "xp_delta": xp_delta,
                "gold_delta": gold_delta,
                "stat_points_delta": stat_points_delta,
                "version": snapshot.version,
            },
        )
        return snapshot

    async def save_stat_allocation(
        self,
        user_id: str,
        stats: BaseStats,
        points_spent: int,
        *,
        expected_version: int,
    ) -> UserProgressSnapshot:
        """
        Store new base stats and deduct the points spent.

        Raises:
            NotFoundError: No progress row for ``user_id``.
            ConcurrencyConflictError: The row moved past ``expected_version``.
        """
        if points_spent <= 0:
            raise ValidationError("points_spent", "must be positive")

        return await self._compare_and_swap(
            user_id,
            expected_version,
            {
                "health": stats.health,
                "attack": stats.attack,
                "defense": stats.defense,
                "speed": stats.speed,
                "available_stat_points": UserProgress.available_stat_points - points_spent,
            },
        )

    async def _compare_and_swap(
        self,
        user_id: str,
        expected_version: int,
        values: Dict[str, Any],
    ) -> UserProgressSnapshot:
        async with self._db.get_transaction() as session:
            result = await session.execute(
                update(UserProgress)
                .where(
                    UserProgress.user_id == user_id,
                    UserProgress.version == expected_version,
                )
                .values(version=UserProgress.version + 1, **values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                if await self._select(session, user_id) is None:
                    raise NotFoundError("UserProgress", user_id)
                raise ConcurrencyConflictError("UserProgress", user_id, expected_version)

            record = await self._select(session, user_id)
            if record is None:
                raise NotFoundError("UserProgress", user_id)
            return _to_snapshot(record)

    async def _select(self, session: AsyncSession, user_id: str) -> Optional[UserProgress]:
        result = await session.execute(
            select(UserProgress).where(UserProgress.user_id == user_id)
        )
        return result.scalar_one_or_none()
