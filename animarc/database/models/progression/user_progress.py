"""
UserProgress: XP, gold, unspent stat points and base stats for one user.
Schema only.

Level and rank are derived from ``total_xp``; they are never stored.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from animarc.core.database.base import Base, IdMixin, TimestampMixin
from animarc.modules.shared.constants import (
    DEFAULT_ATTACK,
    DEFAULT_DEFENSE,
    DEFAULT_HEALTH,
    DEFAULT_SPEED,
)


class UserProgress(Base, IdMixin, TimestampMixin):
    """One row per user."""

    __tablename__ = "user_progress"
    __table_args__ = (
        CheckConstraint("total_xp >= 0", name="total_xp_non_negative"),
        CheckConstraint("gold >= 0", name="gold_non_negative"),
        CheckConstraint("available_stat_points >= 0", name="stat_points_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)

    version: Mapped[int] = mapped_column(
        nullable=False,
        default=1,
        doc="Optimistic locking version",
    )

    total_xp: Mapped[int] = mapped_column(nullable=False, default=0)
    gold: Mapped[int] = mapped_column(nullable=False, default=0)
    available_stat_points: Mapped[int] = mapped_column(nullable=False, default=0)

    health: Mapped[int] = mapped_column(nullable=False, default=DEFAULT_HEALTH)
    attack: Mapped[int] = mapped_column(nullable=False, default=DEFAULT_ATTACK)
    defense: Mapped[int] = mapped_column(nullable=False, default=DEFAULT_DEFENSE)
    speed: Mapped[int] = mapped_column(nullable=False, default=DEFAULT_SPEED)
