"""
DailyLimitsRecord: boss attempts used by one user on one local day.
Schema only.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import CheckConstraint, Date, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from animarc.core.database.base import Base, IdMixin, TimestampMixin


class DailyLimitsRecord(Base, IdMixin, TimestampMixin):
    """
    One row per user per local calendar day.
    A new day starts a new row; old rows are history.
    """

    __tablename__ = "daily_limits"
    __table_args__ = (
        UniqueConstraint("user_id", "day", name="uq_daily_limits_user_day"),
        CheckConstraint("boss_attempts_used >= 0", name="attempts_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    boss_attempts_used: Mapped[int] = mapped_column(nullable=False, default=0)
