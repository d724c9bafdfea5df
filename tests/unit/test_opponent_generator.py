"""
Unit tests for OpponentGenerator.

Tests roster determinism, slot difficulty pattern, stat budgets and floors.
"""

import pytest

from animarc.core.config.config_manager import ConfigManager
from animarc.core.exceptions import ConfigurationError
from animarc.domain.models.base import DomainValidationError
from animarc.domain.models.battler import DifficultyTier, Specialization, StatKind
from animarc.modules.combat.opponents import (
    OpponentGenerator,
    distribute_points,
    specialization_for,
)
from animarc.modules.shared.constants import SPECIALIZATION_WEIGHTS


def _weights(spec: Specialization):
    return {kind: SPECIALIZATION_WEIGHTS[spec.value][kind.value] for kind in StatKind}


@pytest.mark.unit
class TestRoster:
    """Roster shape and reproducibility."""

    def test_same_inputs_same_roster(self, generator):
        assert generator.generate(10, 1500, "2026-10-19") == generator.generate(10, 1500, "2026-10-19")

    def test_roster_size(self, generator):
        roster = generator.generate(10, 1500)
        assert len(roster) == generator.roster_size == 5

    def test_names_unique(self, generator):
        roster = generator.generate(10, 1500)
        assert len({o.name for o in roster}) == len(roster)

    def test_difficulty_pattern(self, generator):
        roster = generator.generate(10, 1500)
        assert [o.difficulty for o in roster] == [
            DifficultyTier.EASY,
            DifficultyTier.FAIR,
            DifficultyTier.FAIR,
            DifficultyTier.FAIR,
            DifficultyTier.HARD,
        ]

    def test_roster_changes_with_progress(self, generator):
        assert generator.generate(10, 1500) != generator.generate(11, 1500)
        assert generator.generate(10, 1500) != generator.generate(10, 1600)

    def test_roster_changes_with_seed_key(self, generator):
        assert generator.generate(10, 1500, "a") != generator.generate(10, 1500, "b")

    def test_easy_slot_more_winnable_than_hard(self, generator):
        roster = generator.generate(20, 2000)
        assert roster[0].success_rate > roster[-1].success_rate

    def test_opponent_id_is_name(self, generator):
        for opponent in generator.generate(10, 1500):
            assert opponent.id == opponent.name


@pytest.mark.unit
class TestOpponentStats:
    """Per-opponent levels, ranks, stats and gold."""

    def test_levels_follow_slot_offsets(self, generator):
        roster = generator.generate(10, 1500)
        assert 7 <= roster[0].level <= 9
        for fair in roster[1:4]:
            assert 8 <= fair.level <= 12
        assert 11 <= roster[4].level <= 14

    def test_rank_matches_level(self, generator, curve):
        for opponent in generator.generate(24, 3000):
            assert opponent.rank == curve.rank_for_level(opponent.level).code

    def test_stat_points_sum_to_budget(self, generator):
        for opponent in generator.generate(15, 1800):
            stats = opponent.stats
            spent = (
                (stats.health - 150) // 5
                + (stats.attack - 10)
                + (stats.defense - 10)
                + (stats.speed - 10)
            )
            assert spent == generator.stat_budget(opponent.level)

    def test_specialization_from_name(self, generator):
        for opponent in generator.generate(10, 1500):
            assert opponent.specialization is specialization_for(opponent.name)

    def test_promised_gold_matches_resolver(self, generator, resolver):
        for opponent in generator.generate(10, 1500):
            assert opponent.exact_gold_reward == resolver.calculate_exact_gold(
                opponent.name, opponent.difficulty
            )

    def test_floors_at_minimum_player(self, generator):
        # Act
        roster = generator.generate(1, 1)

        # Assert
        for opponent in roster:
            assert opponent.level >= 1
            assert opponent.focus_power >= 1
            assert min(opponent.stats.stat(kind) for kind in StatKind) >= 1

    def test_invalid_player_level(self, generator):
        with pytest.raises(DomainValidationError):
            generator.generate(0, 1500)

    def test_stat_budget_grows_per_level(self, generator):
        assert generator.stat_budget(1) == 10
        assert generator.stat_budget(11) == 60


@pytest.mark.unit
class TestPointDistribution:
    """Largest-remainder split of a stat budget."""

    @pytest.mark.parametrize("spec", list(Specialization))
    @pytest.mark.parametrize("total", [0, 1, 7, 10, 123])
    def test_parts_sum_exactly(self, spec, total):
        parts = distribute_points(total, _weights(spec))
        assert sum(parts.values()) == total
        assert all(value >= 0 for value in parts.values())

    def test_balanced_split(self):
        parts = distribute_points(12, _weights(Specialization.BALANCED))
        assert set(parts.values()) == {3}

    def test_glass_cannon_favours_attack(self):
        parts = distribute_points(100, _weights(Specialization.GLASS_CANNON))
        assert max(parts, key=parts.get) is StatKind.ATTACK

    def test_specialization_is_stable(self):
        assert specialization_for("ShadowHunter") is specialization_for("ShadowHunter")


@pytest.mark.unit
class TestGeneratorConfig:
    """Roster configuration validation."""

    def test_too_few_names(self):
        config = ConfigManager({"opponents": {"names": ["Solo", "Duo"]}})
        with pytest.raises(ConfigurationError):
            OpponentGenerator(config)

    def test_unknown_slot_tier(self):
        config = ConfigManager({"opponents": {"slots": ["easy", "legendary"]}})
        with pytest.raises(ConfigurationError):
            OpponentGenerator(config)

    def test_custom_slots(self):
        # Arrange
        config = ConfigManager({"opponents": {"slots": ["hard", "hard"]}})

        # Act
        roster = OpponentGenerator(config).generate(10, 1500)

        # Assert
        assert [o.difficulty for o in roster] == [DifficultyTier.HARD, DifficultyTier.HARD]
