"""
Unit tests for DuelService.
"""

import pytest

from animarc.modules.combat.service import DuelService
from animarc.modules.progression.service import ProgressionService
from animarc.modules.shared.exceptions import NotFoundError, ValidationError


@pytest.fixture
def progression(config, user_store, curve, ledger):
    return ProgressionService(config, user_store, curve=curve, ledger=ledger)


@pytest.fixture
def duels(config, progression, resolver, generator):
    return DuelService(config, progression, resolver=resolver, generator=generator)


@pytest.mark.unit
class TestOpponentListing:
    """Rosters are derived from the stored level."""

    async def test_roster_uses_derived_level(self, duels, progression, generator):
        # Arrange
        await progression.get_or_create_progress("user-1")

        # Act
        roster = await duels.list_opponents("user-1", 1500, seed_key="2026-10-19")

        # Assert
        assert roster == generator.generate(1, 1500, "2026-10-19")

    async def test_unknown_user(self, duels):
        with pytest.raises(NotFoundError):
            await duels.list_opponents("ghost", 1500)

    async def test_focus_power_must_be_positive(self, duels, progression):
        await progression.get_or_create_progress("user-1")
        with pytest.raises(ValidationError):
            await duels.list_opponents("user-1", 0)


@pytest.mark.unit
class TestFight:
    """Duel resolution and reward grant."""

    async def test_rewards_are_applied(self, duels, progression, user_store, stats_factory):
        # Arrange
        await progression.get_or_create_progress("user-1")
        roster = await duels.list_opponents("user-1", 1500)
        opponent = roster[2]
        user = stats_factory(focus_power=1500, level=1)

        # Act
        outcome = await duels.fight("user-1", user, opponent, nonce=1)

        # Assert
        snapshot = user_store.rows["user-1"]
        assert outcome.reward.xp_delta == outcome.result.xp_earned
        assert snapshot.total_xp == outcome.result.xp_earned
        assert snapshot.gold == outcome.result.gold_earned
        assert outcome.result.opponent_name == opponent.name

    async def test_win_pays_promised_gold(self, duels, progression, stats_factory):
        # Arrange: an overwhelming user wins almost every nonce
        await progression.get_or_create_progress("user-1")
        opponent = (await duels.list_opponents("user-1", 1500))[0]
        user = stats_factory(focus_power=10**6, level=1)

        # Act
        outcomes = [await duels.fight("user-1", user, opponent, nonce=n) for n in range(10)]

        # Assert
        wins = [o for o in outcomes if o.result.did_win]
        assert wins
        for outcome in wins:
            assert outcome.result.gold_earned == opponent.exact_gold_reward

    async def test_same_nonce_replays(self, duels, progression, stats_factory):
        await progression.get_or_create_progress("user-1")
        opponent = (await duels.list_opponents("user-1", 1500))[1]
        user = stats_factory(focus_power=1500, level=1)

        first = await duels.fight("user-1", user, opponent, nonce=5)
        second = await duels.fight("user-1", user, opponent, nonce=5)

        assert first.result == second.result

    async def test_unknown_user(self, duels, progression, stats_factory, generator):
        opponent = generator.generate(1, 1500)[0]
        with pytest.raises(NotFoundError):
            await duels.fight("ghost", stats_factory(focus_power=1500, level=1), opponent)

    async def test_repeat_fights_roll_independently(self, duels, progression, generator):
        # Arrange: an evenly matched opponent, fought with no explicit nonce
        await progression.get_or_create_progress("user-1")
        opponent = generator.generate(1, 1500, "2026-10-19")[1]
        user = opponent.stats

        # Act
        outcomes = [await duels.fight("user-1", user, opponent) for _ in range(30)]

        # Assert
        assert {o.result.did_win for o in outcomes} == {True, False}

    async def test_default_nonce_is_progress_version(
        self, duels, progression, resolver, stats_factory, generator
    ):
        # Arrange
        snapshot = await progression.get_or_create_progress("user-1")
        opponent = generator.generate(1, 1500, "2026-10-19")[2]
        user = stats_factory(focus_power=1500, level=1)

        # Act
        outcome = await duels.fight("user-1", user, opponent)

        # Assert
        assert outcome.result == resolver.execute_battle(
            user,
            opponent.stats,
            opponent_name=opponent.name,
            opponent_key=opponent.id,
            exact_gold=opponent.exact_gold_reward,
            nonce=snapshot.version,
        )
