"""
Integration Tests for the Raid and Progression Flow
===================================================

Purpose
-------
Run PortalRaidService, ProgressionService and DuelService end to end on the
SQLAlchemy stores.

Test Coverage
-------------
- Daily attempt caps persisted across calls
- Damage accumulation, boss defeat rewards and the boss map
- Focus session grants and stat allocation
- Duel reward writes

Testing Strategy
----------------
- Integration tests (in-memory SQLite per test)
- Fixed clock for the daily reset
"""

from datetime import datetime, timedelta, timezone

import pytest

from animarc.core.config.config_manager import ConfigManager
from animarc.domain.models.battler import StatKind, SubscriptionTier
from animarc.domain.models.raid import BossMapStatus
from animarc.modules.combat.service import DuelService
from animarc.modules.progression.repository import SqlUserProgressStore
from animarc.modules.progression.service import ProgressionService
from animarc.modules.raid.daily_limits import DailyLimitPolicy
from animarc.modules.raid.repository import SqlRaidProgressStore
from animarc.modules.raid.service import PortalRaidService
from animarc.modules.shared.exceptions import InvalidStateError

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _wire(config, database):
    progression = ProgressionService(config, SqlUserProgressStore(database))
    raids = PortalRaidService(
        config,
        SqlRaidProgressStore(database),
        progression,
        limits=DailyLimitPolicy(config, clock=lambda: NOW),
    )
    return progression, raids


@pytest.fixture
def utc_config():
    return ConfigManager({"raids": {"daily_reset_timezone": "UTC"}})


@pytest.mark.integration
@pytest.mark.database
class TestRaidFlow:
    """Attacks persisted through SqlRaidProgressStore."""

    async def test_free_user_one_attempt_per_day(self, utc_config, database, user_stats, boss):
        # Arrange
        progression, raids = _wire(utc_config, database)
        await progression.get_or_create_progress("user-1")

        # Act
        first = await raids.attack("user-1", user_stats, boss, SubscriptionTier.FREE)

        # Assert
        assert first.attempts_remaining == 0
        with pytest.raises(InvalidStateError):
            await raids.attack("user-1", user_stats, boss, SubscriptionTier.FREE)
        progress = await raids.get_progress("user-1", boss)
        assert progress.current_damage == first.attempt.damage_dealt
        assert progress.version == 2

    async def test_damage_accumulates_across_days(self, utc_config, database, user_stats, boss):
        # Arrange
        progression, raids = _wire(utc_config, database)
        await progression.get_or_create_progress("user-1")

        # Act
        day_one = await raids.attack("user-1", user_stats, boss, SubscriptionTier.FREE, now=NOW)
        day_two = await raids.attack(
            "user-1", user_stats, boss, SubscriptionTier.FREE, now=NOW + timedelta(days=1)
        )

        # Assert
        assert day_two.progress.current_damage == (
            day_one.attempt.damage_dealt + day_two.attempt.damage_dealt
        )
        assert day_two.daily_limits.boss_attempts_used == 1
        assert day_two.progress.max_hp == 306

    async def test_boss_defeat_grants_rewards_and_advances_map(
        self, database, user_stats, boss_factory
    ):
        # Arrange
        config = ConfigManager(
            {"raids": {"daily_reset_timezone": "UTC", "boss_hp": {"base": {"E": 1}}}}
        )
        progression, raids = _wire(config, database)
        await progression.get_or_create_progress("user-1")
        bosses = [boss_factory(f"b{i}", map_order=i) for i in (1, 2)]

        # Act
        outcome = await raids.attack("user-1", user_stats, bosses[0], SubscriptionTier.PAID)
        boss_map = await raids.get_boss_map("user-1", bosses)

        # Assert
        assert outcome.attempt.boss_defeated
        assert outcome.progress.reward_granted
        # SQLite drops the offset on read
        assert outcome.progress.completed_at.replace(tzinfo=None) == NOW.replace(tzinfo=None)
        assert outcome.reward.xp_delta == 102
        assert outcome.reward.gold_delta == 51
        snapshot = await progression.get_progress("user-1")
        assert snapshot.total_xp == 102
        assert snapshot.gold == 51
        assert boss_map.status_of("b1") is BossMapStatus.DEFEATED
        assert boss_map.current.id == "b2"
        with pytest.raises(InvalidStateError):
            await raids.attack("user-1", user_stats, bosses[0], SubscriptionTier.PAID)
        assert await raids.attempts_remaining("user-1", SubscriptionTier.PAID) == 2


@pytest.mark.integration
@pytest.mark.database
class TestProgressionFlow:
    """Focus sessions, allocation and duels persisted through SqlUserProgressStore."""

    async def test_session_then_allocation(self, config, database):
        # Arrange
        progression = ProgressionService(config, SqlUserProgressStore(database))
        await progression.get_or_create_progress("user-1")

        # Act
        delta = await progression.record_focus_session(
            "user-1", 25, completed=True, first_session_today=True
        )
        snapshot = await progression.allocate_stats("user-1", {StatKind.HEALTH: 1})

        # Assert
        assert delta.level_up is not None
        assert snapshot.total_xp == delta.xp_delta
        assert snapshot.stats.health == 155
        assert snapshot.available_stat_points == delta.stat_points_delta - 1
        assert snapshot.version == 3

    async def test_duel_rewards_persist(self, config, database, stats_factory):
        # Arrange
        progression = ProgressionService(config, SqlUserProgressStore(database))
        duels = DuelService(config, progression)
        await progression.get_or_create_progress("user-1")
        opponent = (await duels.list_opponents("user-1", 1500, seed_key="2026-10-19"))[0]

        # Act
        outcome = await duels.fight(
            "user-1", stats_factory(focus_power=1500, level=1), opponent, nonce=3
        )

        # Assert
        snapshot = await progression.get_progress("user-1")
        assert snapshot.total_xp == outcome.result.xp_earned
        assert snapshot.gold == outcome.result.gold_earned
