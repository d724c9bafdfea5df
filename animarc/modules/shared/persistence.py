"""
Persistence collaborator contracts.

Purpose
-------
Define the async store interfaces the services depend on. Any backend that
honours these contracts (the SQLAlchemy stores in this package, an HTTP
client, an in-memory fake in tests) can be injected.

Contract Notes
--------------
- Every mutating call on a versioned row takes ``expected_version`` and
  raises ConcurrencyConflictError when the stored version differs. The
  caller re-reads and retries; nothing is silently overwritten.
- ``increment_boss_attempts`` is a single atomic check-and-increment. It
  raises InvalidStateError when the cap is already reached.
- ``refund_boss_attempt`` gives back one attempt taken by an attack that
  dealt no damage. It never takes the counter below zero.
- ``set_reward_granted`` is the claim on a defeated boss's rewards. It is
  versioned like the damage write, so only one caller can claim.
- ``create_progress`` is idempotent under races: if another writer created
  the row first, the existing row is returned.
- Missing rows raise NotFoundError; they are never defaulted.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Set, runtime_checkable

from animarc.domain.models.progression import BaseStats, UserProgressSnapshot
from animarc.domain.models.raid import DailyLimits, PortalRaidProgress


@runtime_checkable
class RaidProgressStore(Protocol):
    async def fetch_progress(self, user_id: str, boss_id: str) -> Optional[PortalRaidProgress]:
        ...

    async def create_progress(self, user_id: str, boss_id: str, max_hp: int) -> PortalRaidProgress:
        ...

    async def apply_damage_and_save(
        self,
        progress_id: int,
        new_damage: int,
        new_percent: float,
        *,
        expected_version: int,
        completed_at: Optional[datetime] = None,
    ) -> PortalRaidProgress:
        ...

    async def set_reward_granted(
        self,
        progress_id: int,
        granted: bool,
        *,
        expected_version: int,
    ) -> PortalRaidProgress:
        ...

    async def mark_completed(self, progress_id: int) -> PortalRaidProgress:
        ...

    async def fetch_completed_boss_ids(self, user_id: str) -> Set[str]:
        ...

    async def fetch_or_create_daily_limits(self, user_id: str, day: date) -> DailyLimits:
        ...

    async def increment_boss_attempts(
        self,
        user_id: str,
        day: date,
        *,
        max_attempts: int,
    ) -> DailyLimits:
        ...

    async def refund_boss_attempt(self, user_id: str, day: date) -> DailyLimits:
        ...


@runtime_checkable
class UserProgressStore(Protocol):
    async def fetch_user_progress(self, user_id: str) -> Optional[UserProgressSnapshot]:
        ...

    async def create_user_progress(self, user_id: str) -> UserProgressSnapshot:
        ...

    async def update_xp_and_gold(
        self,
        user_id: str,
        xp_delta: int,
        gold_delta: int,
        *,
        stat_points_delta: int = 0,
        expected_version: int,
    ) -> UserProgressSnapshot:
        ...

    async def save_stat_allocation(
        self,
        user_id: str,
        stats: BaseStats,
        points_spent: int,
        *,
        expected_version: int,
    ) -> UserProgressSnapshot:
        ...
