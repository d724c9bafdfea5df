"""
Integration Tests for SqlRaidProgressStore
==========================================

Purpose
-------
Verify the versioned damage writes, completion handling and capped daily
attempt counters against a real database.

Test Coverage
-------------
- Idempotent progress creation
- Compare-and-swap damage writes and their failure modes
- Reconciliation of full-damage rows missing the completion flag
- Boss-reward claims
- Daily attempt counters per (user, day), including refunds

Testing Strategy
----------------
- Integration tests (in-memory SQLite per test)
- AAA pattern (Arrange, Act, Assert)
"""

from datetime import date, datetime, timezone

import pytest

from animarc.database.models import PortalRaidProgressRecord
from animarc.domain.models.raid import RaidStatus
from animarc.modules.raid.repository import SqlRaidProgressStore
from animarc.modules.shared.exceptions import (
    ConcurrencyConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

DAY = date(2026, 10, 19)


@pytest.fixture
def store(database):
    return SqlRaidProgressStore(database)


# ============================================================================
# PROGRESS ROWS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestProgressCreation:
    """Creating and reading progress rows."""

    async def test_create_and_fetch(self, store):
        # Act
        created = await store.create_progress("user-1", "boss-01", 1000)
        fetched = await store.fetch_progress("user-1", "boss-01")

        # Assert
        assert fetched == created
        assert created.current_damage == 0
        assert created.version == 1
        assert created.status is RaidStatus.NOT_STARTED

    async def test_create_is_idempotent(self, store):
        first = await store.create_progress("user-1", "boss-01", 1000)
        second = await store.create_progress("user-1", "boss-01", 1000)
        assert second.id == first.id

    async def test_missing_progress(self, store):
        assert await store.fetch_progress("user-1", "boss-99") is None

    async def test_non_positive_hp_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.create_progress("user-1", "boss-01", 0)


@pytest.mark.integration
@pytest.mark.database
class TestDamageWrites:
    """Compare-and-swap on the version column."""

    async def test_write_bumps_version(self, store):
        # Arrange
        progress = await store.create_progress("user-1", "boss-01", 1000)

        # Act
        saved = await store.apply_damage_and_save(progress.id, 300, 30.0, expected_version=1)

        # Assert
        assert saved.current_damage == 300
        assert saved.version == 2
        assert not saved.completed
        assert await store.fetch_progress("user-1", "boss-01") == saved

    async def test_stale_version_conflicts(self, store):
        # Arrange
        progress = await store.create_progress("user-1", "boss-01", 1000)
        await store.apply_damage_and_save(progress.id, 300, 30.0, expected_version=1)

        # Act / Assert
        with pytest.raises(ConcurrencyConflictError):
            await store.apply_damage_and_save(progress.id, 450, 45.0, expected_version=1)
        current = await store.fetch_progress("user-1", "boss-01")
        assert current.current_damage == 300

    async def test_missing_row(self, store):
        with pytest.raises(NotFoundError):
            await store.apply_damage_and_save(404, 10, 1.0, expected_version=1)

    async def test_damage_above_max_rejected(self, store):
        progress = await store.create_progress("user-1", "boss-01", 1000)
        with pytest.raises(ValidationError):
            await store.apply_damage_and_save(progress.id, 1001, 100.1, expected_version=1)

    async def test_damage_cannot_decrease(self, store):
        progress = await store.create_progress("user-1", "boss-01", 1000)
        await store.apply_damage_and_save(progress.id, 300, 30.0, expected_version=1)
        with pytest.raises(ValidationError):
            await store.apply_damage_and_save(progress.id, 200, 20.0, expected_version=2)

    async def test_full_damage_completes(self, store):
        # Arrange
        progress = await store.create_progress("user-1", "boss-01", 1000)

        # Act
        saved = await store.apply_damage_and_save(progress.id, 1000, 100.0, expected_version=1)

        # Assert
        assert saved.completed
        assert saved.completed_at is not None
        assert await store.fetch_completed_boss_ids("user-1") == {"boss-01"}

    async def test_completion_uses_given_timestamp(self, store):
        # Arrange
        progress = await store.create_progress("user-1", "boss-01", 1000)
        stamp = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

        # Act
        saved = await store.apply_damage_and_save(
            progress.id, 1000, 100.0, expected_version=1, completed_at=stamp
        )

        # Assert
        assert saved.completed_at == stamp
        stored = await store.fetch_progress("user-1", "boss-01")
        assert stored.completed_at.replace(tzinfo=None) == stamp.replace(tzinfo=None)

    async def test_partial_damage_ignores_timestamp(self, store):
        progress = await store.create_progress("user-1", "boss-01", 1000)
        saved = await store.apply_damage_and_save(
            progress.id, 10, 1.0, expected_version=1, completed_at=datetime.now(timezone.utc)
        )
        assert saved.completed_at is None

    async def test_completed_row_rejects_damage(self, store):
        progress = await store.create_progress("user-1", "boss-01", 1000)
        await store.apply_damage_and_save(progress.id, 1000, 100.0, expected_version=1)
        with pytest.raises(InvalidStateError):
            await store.apply_damage_and_save(progress.id, 1000, 100.0, expected_version=2)


@pytest.mark.integration
@pytest.mark.database
class TestRewardClaim:
    """set_reward_granted on defeated bosses."""

    async def _defeated(self, store):
        progress = await store.create_progress("user-1", "boss-01", 10)
        return await store.apply_damage_and_save(progress.id, 10, 100.0, expected_version=1)

    async def test_claim_and_release(self, store):
        # Arrange
        defeated = await self._defeated(store)

        # Act
        claimed = await store.set_reward_granted(defeated.id, True, expected_version=2)
        released = await store.set_reward_granted(defeated.id, False, expected_version=3)

        # Assert
        assert claimed.reward_granted
        assert claimed.version == 3
        assert not released.reward_granted
        assert await store.fetch_progress("user-1", "boss-01") == released

    async def test_claim_is_persisted(self, store):
        defeated = await self._defeated(store)
        await store.set_reward_granted(defeated.id, True, expected_version=2)
        assert (await store.fetch_progress("user-1", "boss-01")).reward_granted

    async def test_second_claim_rejected(self, store):
        defeated = await self._defeated(store)
        await store.set_reward_granted(defeated.id, True, expected_version=2)
        with pytest.raises(InvalidStateError):
            await store.set_reward_granted(defeated.id, True, expected_version=3)

    async def test_stale_claim_conflicts(self, store):
        defeated = await self._defeated(store)
        await store.set_reward_granted(defeated.id, True, expected_version=2)
        with pytest.raises(ConcurrencyConflictError):
            await store.set_reward_granted(defeated.id, False, expected_version=2)

    async def test_undefeated_boss_cannot_be_claimed(self, store):
        progress = await store.create_progress("user-1", "boss-01", 10)
        with pytest.raises(InvalidStateError):
            await store.set_reward_granted(progress.id, True, expected_version=1)

    async def test_claim_missing_row(self, store):
        with pytest.raises(NotFoundError):
            await store.set_reward_granted(404, True, expected_version=1)


@pytest.mark.integration
@pytest.mark.database
class TestCompletion:
    """mark_completed and read-time reconciliation."""

    async def _insert_unflagged(self, database, user_id="user-1", boss_id="boss-01"):
        async with database.get_transaction() as session:
            record = PortalRaidProgressRecord(
                user_id=user_id,
                boss_id=boss_id,
                max_hp=500,
                current_damage=500,
                progress_percent=100.0,
                completed=False,
                version=4,
            )
            session.add(record)
            await session.flush()
            return record.id

    async def test_fetch_reconciles_full_damage(self, database, store):
        # Arrange
        await self._insert_unflagged(database)

        # Act
        progress = await store.fetch_progress("user-1", "boss-01")

        # Assert
        assert progress.completed
        assert progress.version == 5
        assert await store.fetch_completed_boss_ids("user-1") == {"boss-01"}

    async def test_mark_completed(self, database, store):
        # Arrange
        progress_id = await self._insert_unflagged(database)

        # Act
        progress = await store.mark_completed(progress_id)

        # Assert
        assert progress.completed
        assert progress.completed_at is not None

    async def test_mark_completed_twice(self, database, store):
        progress_id = await self._insert_unflagged(database)
        await store.mark_completed(progress_id)
        with pytest.raises(InvalidStateError):
            await store.mark_completed(progress_id)

    async def test_mark_completed_partial_damage(self, store):
        progress = await store.create_progress("user-1", "boss-01", 1000)
        await store.apply_damage_and_save(progress.id, 999, 99.9, expected_version=1)
        with pytest.raises(InvalidStateError):
            await store.mark_completed(progress.id)

    async def test_mark_completed_missing(self, store):
        with pytest.raises(NotFoundError):
            await store.mark_completed(404)

    async def test_completed_ids_are_per_user(self, store):
        # Arrange
        mine = await store.create_progress("user-1", "boss-01", 10)
        theirs = await store.create_progress("user-2", "boss-02", 10)
        await store.create_progress("user-1", "boss-03", 10)

        # Act
        await store.apply_damage_and_save(mine.id, 10, 100.0, expected_version=1)
        await store.apply_damage_and_save(theirs.id, 10, 100.0, expected_version=1)

        # Assert
        assert await store.fetch_completed_boss_ids("user-1") == {"boss-01"}


# ============================================================================
# DAILY LIMITS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestDailyLimits:
    """Per-day attempt counters."""

    async def test_fresh_day_starts_at_zero(self, store):
        limits = await store.fetch_or_create_daily_limits("user-1", DAY)
        assert limits.boss_attempts_used == 0
        assert limits.day == DAY

    async def test_fetch_or_create_is_idempotent(self, store):
        await store.fetch_or_create_daily_limits("user-1", DAY)
        again = await store.fetch_or_create_daily_limits("user-1", DAY)
        assert again.boss_attempts_used == 0

    async def test_increment_to_cap(self, store):
        # Act
        first = await store.increment_boss_attempts("user-1", DAY, max_attempts=1)

        # Assert
        assert first.boss_attempts_used == 1
        with pytest.raises(InvalidStateError):
            await store.increment_boss_attempts("user-1", DAY, max_attempts=1)
        current = await store.fetch_or_create_daily_limits("user-1", DAY)
        assert current.boss_attempts_used == 1

    async def test_paid_cap(self, store):
        for expected in (1, 2, 3):
            limits = await store.increment_boss_attempts("user-1", DAY, max_attempts=3)
            assert limits.boss_attempts_used == expected
        with pytest.raises(InvalidStateError):
            await store.increment_boss_attempts("user-1", DAY, max_attempts=3)

    async def test_next_day_is_separate(self, store):
        # Arrange
        await store.increment_boss_attempts("user-1", DAY, max_attempts=1)

        # Act
        tomorrow = await store.fetch_or_create_daily_limits("user-1", date(2026, 10, 20))

        # Assert
        assert tomorrow.boss_attempts_used == 0

    async def test_users_are_separate(self, store):
        await store.increment_boss_attempts("user-1", DAY, max_attempts=1)
        other = await store.increment_boss_attempts("user-2", DAY, max_attempts=1)
        assert other.boss_attempts_used == 1

    async def test_refund_returns_an_attempt(self, store):
        # Arrange
        await store.increment_boss_attempts("user-1", DAY, max_attempts=1)

        # Act
        refunded = await store.refund_boss_attempt("user-1", DAY)

        # Assert
        assert refunded.boss_attempts_used == 0
        again = await store.increment_boss_attempts("user-1", DAY, max_attempts=1)
        assert again.boss_attempts_used == 1

    async def test_refund_never_goes_negative(self, store):
        limits = await store.refund_boss_attempt("user-1", DAY)
        assert limits.boss_attempts_used == 0
