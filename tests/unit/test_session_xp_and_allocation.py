"""
Unit tests for SessionXPCalculator and StatAllocator.
"""

import pytest

from animarc.core.config.config_manager import ConfigManager
from animarc.domain.models.battler import StatKind
from animarc.domain.models.progression import BaseStats
from animarc.modules.progression.allocation import StatAllocator
from animarc.modules.progression.session_xp import SessionXPCalculator
from animarc.modules.shared.exceptions import ValidationError


@pytest.fixture
def calculator(config):
    return SessionXPCalculator(config)


@pytest.fixture
def allocator(config):
    return StatAllocator(config)


@pytest.mark.unit
class TestSessionXP:
    """XP breakdown for focus sessions."""

    def test_all_bonuses(self, calculator):
        # Act
        xp = calculator.calculate(25, completed=True, first_session_today=True, streak_days=7)

        # Assert
        assert xp.base_xp == 25
        assert xp.completion_bonus == 25
        assert xp.first_session_bonus == 50
        assert xp.streak_bonus == 200
        assert xp.total == 300

    def test_short_session_gets_base_only(self, calculator):
        xp = calculator.calculate(4, completed=True, first_session_today=True, streak_days=7)
        assert xp.total == 4

    def test_abandoned_session_has_no_completion_bonus(self, calculator):
        xp = calculator.calculate(30, completed=False)
        assert xp.completion_bonus == 0
        assert xp.total == 30

    def test_streak_bonus_needs_first_session(self, calculator):
        assert calculator.calculate(30, streak_days=14).streak_bonus == 0

    def test_streak_bonus_only_on_interval(self, calculator):
        assert calculator.calculate(30, first_session_today=True, streak_days=6).streak_bonus == 0
        assert calculator.calculate(30, first_session_today=True, streak_days=14).streak_bonus == 200

    def test_zero_streak_no_bonus(self, calculator):
        assert calculator.calculate(30, first_session_today=True, streak_days=0).streak_bonus == 0

    @pytest.mark.parametrize("minutes,streak", [(-1, 0), (10, -1)])
    def test_negative_inputs(self, calculator, minutes, streak):
        with pytest.raises(ValidationError):
            calculator.calculate(minutes, streak_days=streak)

    def test_configured_rate(self):
        config = ConfigManager({"progression": {"session": {"xp_per_minute": 2}}})
        assert SessionXPCalculator(config).calculate(10, completed=False).base_xp == 20


@pytest.mark.unit
class TestStatAllocation:
    """Spending stat points."""

    def test_allocate(self, allocator):
        # Act
        stats, spent = allocator.allocate(
            BaseStats(), 5, {StatKind.HEALTH: 2, StatKind.ATTACK: 3}
        )

        # Assert
        assert spent == 5
        assert stats == BaseStats(health=160, attack=13, defense=10, speed=10)

    def test_partial_spend(self, allocator):
        stats, spent = allocator.allocate(BaseStats(), 10, {StatKind.SPEED: 4})
        assert spent == 4
        assert stats.speed == 14

    def test_over_budget(self, allocator):
        with pytest.raises(ValidationError):
            allocator.allocate(BaseStats(), 3, {StatKind.DEFENSE: 4})

    def test_negative_points(self, allocator):
        with pytest.raises(ValidationError):
            allocator.allocate(BaseStats(), 10, {StatKind.DEFENSE: -1, StatKind.ATTACK: 2})

    def test_nothing_allocated(self, allocator):
        with pytest.raises(ValidationError):
            allocator.allocate(BaseStats(), 10, {StatKind.DEFENSE: 0})

    def test_unknown_stat(self, allocator):
        with pytest.raises(ValidationError):
            allocator.allocate(BaseStats(), 10, {"luck": 1})

    def test_per_stat_cap(self):
        config = ConfigManager({"progression": {"allocation": {"max_points_per_stat": 2}}})
        with pytest.raises(ValidationError):
            StatAllocator(config).allocate(BaseStats(), 10, {StatKind.ATTACK: 3})

    def test_gain_per_point(self, allocator):
        assert allocator.gain_per_point(StatKind.HEALTH) == 5
        assert allocator.gain_per_point(StatKind.SPEED) == 1
