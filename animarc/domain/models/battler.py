"""
Combat stat value objects.

``BattlerStats`` is the only stat representation the engines accept. Stats
are fixed named fields; ``StatKind`` gives exhaustive enum-keyed access so no
code path addresses a stat by a free-form string.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, IntEnum

from animarc.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_positive,
)


class StatKind(Enum):
    HEALTH = "health"
    ATTACK = "attack"
    DEFENSE = "defense"
    SPEED = "speed"


class DifficultyTier(IntEnum):
    """Relative power bucket between two combatants. EASY < FAIR < HARD."""

    EASY = 1
    FAIR = 2
    HARD = 3

    @property
    def display_name(self) -> str:
        return self.name.capitalize()


class Specialization(Enum):
    """Opponent/boss archetype. Values are the display strings used by reference data."""

    TANK = "Tank"
    GLASS_CANNON = "Glass Cannon"
    SPEEDSTER = "Speedster"
    BALANCED = "Balanced"

    @classmethod
    def from_display(cls, value: str) -> "Specialization":
        normalized = value.strip().lower().replace("_", " ")
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise DomainValidationError(f"Unknown specialization '{value}'", field="specialization")


class SubscriptionTier(Enum):
    FREE = "free"
    PAID = "paid"


@dataclass(frozen=True)
class BattlerStats:
    """
    Stat block for one combatant.

    ``focus_power`` is supplied by the equipment collaborator and is the
    primary axis for power comparisons; it is never recomputed here.
    """

    health: int
    attack: int
    defense: int
    speed: int
    level: int
    focus_power: int

    def __post_init__(self) -> None:
        for kind in StatKind:
            validate_non_negative(self.stat(kind), kind.value)
        validate_positive(self.level, "level")
        validate_positive(self.focus_power, "focus_power")

    def stat(self, kind: StatKind) -> int:
        if kind is StatKind.HEALTH:
            return self.health
        if kind is StatKind.ATTACK:
            return self.attack
        if kind is StatKind.DEFENSE:
            return self.defense
        if kind is StatKind.SPEED:
            return self.speed
        raise DomainValidationError(f"Unknown stat {kind!r}", field="kind")

    def with_stat(self, kind: StatKind, value: int) -> "BattlerStats":
        return replace(self, **{kind.value: value})

    @property
    def stat_total(self) -> int:
        return self.health + self.attack + self.defense + self.speed

    def seed_values(self) -> tuple:
        """Stable field tuple used to seed RandomSequence."""
        return (
            self.health,
            self.attack,
            self.defense,
            self.speed,
            self.level,
            self.focus_power,
        )
