"""
Pytest Configuration and Fixtures for Animarc Tests
===================================================

Purpose
-------
Centralized fixtures for the Animarc test suite: balance config, engines,
domain factories, in-memory store fakes for service unit tests and an
isolated database for integration tests.

Architecture Notes
------------------
- Unit tests use the pure engines and in-memory fakes (fast, isolated)
- Integration tests use a fresh in-memory SQLite database per test
- Fakes honour the same version / not-found / cap semantics as the SQL stores
"""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from dataclasses import replace  # noqa: E402
from datetime import date, datetime, timezone  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import AsyncGenerator, Dict, Optional, Set, Tuple  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from animarc.core.config.config_manager import ConfigManager  # noqa: E402
from animarc.core.database.service import DatabaseService  # noqa: E402
from animarc.domain.models import (  # noqa: E402
    BaseStats,
    BattlerStats,
    DailyLimits,
    PortalBoss,
    PortalRaidProgress,
    Specialization,
    UserProgressSnapshot,
)
from animarc.modules.combat.opponents import OpponentGenerator  # noqa: E402
from animarc.modules.combat.resolver import CombatResolver  # noqa: E402
from animarc.modules.progression.curve import ProgressionCurve  # noqa: E402
from animarc.modules.raid.engine import RaidEngine  # noqa: E402
from animarc.modules.rewards.ledger import RewardLedger  # noqa: E402
from animarc.modules.shared.exceptions import (  # noqa: E402
    ConcurrencyConflictError,
    InvalidStateError,
    NotFoundError,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]


# ============================================================================
# CONFIG & ENGINE FIXTURES
# ============================================================================


@pytest.fixture
def config() -> ConfigManager:
    """Empty manager: every engine falls back to its code defaults."""
    return ConfigManager()


@pytest.fixture
def yaml_config() -> ConfigManager:
    """The shipped balance files under config/."""
    return ConfigManager.from_directory(PROJECT_ROOT / "config")


@pytest.fixture
def curve(config) -> ProgressionCurve:
    return ProgressionCurve(config)


@pytest.fixture
def resolver(config) -> CombatResolver:
    return CombatResolver(config)


@pytest.fixture
def generator(config, resolver, curve) -> OpponentGenerator:
    return OpponentGenerator(config, resolver=resolver, curve=curve)


@pytest.fixture
def raid_engine(config, resolver) -> RaidEngine:
    return RaidEngine(config, resolver=resolver)


@pytest.fixture
def ledger(config, curve, raid_engine) -> RewardLedger:
    return RewardLedger(config, curve=curve, raid_engine=raid_engine)


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================


def make_stats(focus_power: int = 1000, level: int = 5, **overrides: int) -> BattlerStats:
    values = {"health": 150, "attack": 10, "defense": 10, "speed": 10}
    values.update(overrides)
    return BattlerStats(level=level, focus_power=focus_power, **values)


def make_boss(
    boss_id: str = "boss-01",
    rank: str = "E",
    level: int = 1,
    map_order: int = 1,
    specialization: Specialization = Specialization.BALANCED,
) -> PortalBoss:
    return PortalBoss(
        id=boss_id,
        name=f"Guardian {boss_id}",
        rank=rank,
        boss_level=level,
        specialization=specialization,
        base_stats=BaseStats(),
        map_order=map_order,
    )


@pytest.fixture
def user_stats() -> BattlerStats:
    return make_stats(focus_power=1180, level=5)


@pytest.fixture
def boss() -> PortalBoss:
    return make_boss()


@pytest.fixture
def stats_factory():
    """Factory for BattlerStats with default stat values."""
    return make_stats


@pytest.fixture
def boss_factory():
    """Factory for PortalBoss reference rows."""
    return make_boss


# ============================================================================
# IN-MEMORY STORES (Service Unit Tests)
# ============================================================================


class InMemoryUserProgressStore:
    """UserProgressStore fake with compare-and-swap on ``version``."""

    def __init__(self) -> None:
        self.rows: Dict[str, UserProgressSnapshot] = {}

    async def fetch_user_progress(self, user_id: str) -> Optional[UserProgressSnapshot]:
        return self.rows.get(user_id)

    async def create_user_progress(self, user_id: str) -> UserProgressSnapshot:
        if user_id not in self.rows:
            self.rows[user_id] = UserProgressSnapshot(
                user_id=user_id,
                total_xp=0,
                gold=0,
                available_stat_points=0,
                stats=BaseStats(),
                version=1,
            )
        return self.rows[user_id]

    def _checked(self, user_id: str, expected_version: int) -> UserProgressSnapshot:
        row = self.rows.get(user_id)
        if row is None:
            raise NotFoundError("UserProgress", user_id)
        if row.version != expected_version:
            raise ConcurrencyConflictError("UserProgress", user_id, expected_version)
        return row

    async def update_xp_and_gold(
        self,
        user_id: str,
        xp_delta: int,
        gold_delta: int,
        *,
        stat_points_delta: int = 0,
        expected_version: int,
    ) -> UserProgressSnapshot:
        row = self._checked(user_id, expected_version)
        self.rows[user_id] = replace(
            row,
            total_xp=row.total_xp + xp_delta,
            gold=row.gold + gold_delta,
            available_stat_points=row.available_stat_points + stat_points_delta,
            version=row.version + 1,
        )
        return self.rows[user_id]

    async def save_stat_allocation(
        self,
        user_id: str,
        stats: BaseStats,
        points_spent: int,
        *,
        expected_version: int,
    ) -> UserProgressSnapshot:
        row = self._checked(user_id, expected_version)
        self.rows[user_id] = replace(
            row,
            stats=stats,
            available_stat_points=row.available_stat_points - points_spent,
            version=row.version + 1,
        )
        return self.rows[user_id]


class InMemoryRaidProgressStore:
    """RaidProgressStore fake with version checks and capped attempt counters."""

    def __init__(self) -> None:
        self.progress: Dict[int, PortalRaidProgress] = {}
        self.limits: Dict[Tuple[str, date], DailyLimits] = {}
        self._next_id = 1

    def _find(self, user_id: str, boss_id: str) -> Optional[PortalRaidProgress]:
        for row in self.progress.values():
            if row.user_id == user_id and row.boss_id == boss_id:
                return row
        return None

    async def fetch_progress(self, user_id: str, boss_id: str) -> Optional[PortalRaidProgress]:
        return self._find(user_id, boss_id)

    async def create_progress(self, user_id: str, boss_id: str, max_hp: int) -> PortalRaidProgress:
        existing = self._find(user_id, boss_id)
        if existing is not None:
            return existing
        row = PortalRaidProgress(id=self._next_id, user_id=user_id, boss_id=boss_id, max_hp=max_hp)
        self.progress[row.id] = row
        self._next_id += 1
        return row

    async def apply_damage_and_save(
        self,
        progress_id: int,
        new_damage: int,
        new_percent: float,
        *,
        expected_version: int,
        completed_at: Optional[datetime] = None,
    ) -> PortalRaidProgress:
        row = self._checked(progress_id, expected_version)
        if row.completed:
            raise InvalidStateError("raid.apply_damage", "Boss already defeated")
        completed = new_damage == row.max_hp
        self.progress[progress_id] = replace(
            row,
            current_damage=new_damage,
            completed=completed,
            completed_at=(completed_at or datetime.now(timezone.utc)) if completed else None,
            version=row.version + 1,
        )
        return self.progress[progress_id]

    async def set_reward_granted(
        self,
        progress_id: int,
        granted: bool,
        *,
        expected_version: int,
    ) -> PortalRaidProgress:
        row = self._checked(progress_id, expected_version)
        if granted and (not row.completed or row.reward_granted):
            raise InvalidStateError("raid.claim_reward", "Reward not claimable")
        self.progress[progress_id] = replace(
            row, reward_granted=granted, version=row.version + 1
        )
        return self.progress[progress_id]

    def _checked(self, progress_id: int, expected_version: int) -> PortalRaidProgress:
        row = self.progress.get(progress_id)
        if row is None:
            raise NotFoundError("PortalRaidProgress", progress_id)
        if row.version != expected_version:
            raise ConcurrencyConflictError("PortalRaidProgress", progress_id, expected_version)
        return row

    async def mark_completed(self, progress_id: int) -> PortalRaidProgress:
        row = self.progress[progress_id]
        if row.completed or row.current_damage != row.max_hp:
            raise InvalidStateError("raid.mark_completed", "Not completable")
        self.progress[progress_id] = replace(row, completed=True, version=row.version + 1)
        return self.progress[progress_id]

    async def fetch_completed_boss_ids(self, user_id: str) -> Set[str]:
        return {r.boss_id for r in self.progress.values() if r.user_id == user_id and r.completed}

    async def fetch_or_create_daily_limits(self, user_id: str, day: date) -> DailyLimits:
        key = (user_id, day)
        if key not in self.limits:
            self.limits[key] = DailyLimits(user_id=user_id, day=day, boss_attempts_used=0)
        return self.limits[key]

    async def increment_boss_attempts(
        self,
        user_id: str,
        day: date,
        *,
        max_attempts: int,
    ) -> DailyLimits:
        current = await self.fetch_or_create_daily_limits(user_id, day)
        if current.boss_attempts_used >= max_attempts:
            raise InvalidStateError("raid.consume_attempt", "No boss attempts remaining today")
        self.limits[(user_id, day)] = replace(
            current, boss_attempts_used=current.boss_attempts_used + 1
        )
        return self.limits[(user_id, day)]

    async def refund_boss_attempt(self, user_id: str, day: date) -> DailyLimits:
        current = await self.fetch_or_create_daily_limits(user_id, day)
        if current.boss_attempts_used > 0:
            self.limits[(user_id, day)] = replace(
                current, boss_attempts_used=current.boss_attempts_used - 1
            )
        return self.limits[(user_id, day)]


@pytest.fixture
def user_store() -> InMemoryUserProgressStore:
    return InMemoryUserProgressStore()


@pytest.fixture
def raid_store() -> InMemoryRaidProgressStore:
    return InMemoryRaidProgressStore()


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[DatabaseService, None]:
    """
    Fresh in-memory SQLite database with the full schema.

    Scope: function (clean slate per test)
    """
    db = DatabaseService("sqlite+aiosqlite:///:memory:", echo=False)
    await db.initialize()
    await db.create_all()
    yield db
    await db.shutdown()
