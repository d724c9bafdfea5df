"""
PortalRaidProgressRecord: cumulative damage by one user against one boss.
Schema only.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from animarc.core.database.base import Base, IdMixin, TimestampMixin


class PortalRaidProgressRecord(Base, IdMixin, TimestampMixin):
    """
    One row per (user, boss).

    ``max_hp`` is frozen at creation. ``completed`` is set in the same
    statement that brings ``current_damage`` to ``max_hp``. ``reward_granted``
    records that the boss-defeat rewards were paid out.
    """

    __tablename__ = "portal_raid_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "boss_id", name="uq_portal_raid_progress_user_boss"),
        CheckConstraint("max_hp > 0", name="max_hp_positive"),
        CheckConstraint(
            "current_damage >= 0 AND current_damage <= max_hp",
            name="damage_within_hp",
        ),
        CheckConstraint("NOT reward_granted OR completed", name="reward_after_completion"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    boss_id: Mapped[str] = mapped_column(String(128), nullable=False)

    version: Mapped[int] = mapped_column(
        nullable=False,
        default=1,
        doc="Optimistic locking version",
    )

    max_hp: Mapped[int] = mapped_column(nullable=False)
    current_damage: Mapped[int] = mapped_column(nullable=False, default=0)
    progress_percent: Mapped[float] = mapped_column(nullable=False, default=0.0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reward_granted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
