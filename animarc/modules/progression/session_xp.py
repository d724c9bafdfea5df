"""
XP awarded for completed focus sessions.

Rules (all configurable under ``progression.session``):
- ``xp_per_minute`` XP for every full minute focused
- ``completion_bonus`` when the session ran to completion
- ``first_session_bonus`` for the first session of the local day
- ``streak_bonus`` on the first session of a day whose streak is a positive
  multiple of ``streak_interval_days``

Bonuses only apply when the session lasted at least ``min_minutes_for_bonus``.
"""

from __future__ import annotations

from typing import Optional

from animarc.core.config.config_manager import ConfigManager
from animarc.domain.models.progression import SessionXP
from animarc.modules.shared.constants import (
    FIRST_SESSION_BONUS,
    MIN_MINUTES_FOR_BONUS,
    SESSION_COMPLETION_BONUS,
    STREAK_BONUS,
    STREAK_BONUS_INTERVAL_DAYS,
    XP_PER_MINUTE,
)
from animarc.modules.shared.exceptions import ValidationError


class SessionXPCalculator:
    def __init__(self, config: Optional[ConfigManager] = None) -> None:
        config = config or ConfigManager()
        self._xp_per_minute = int(
            config.get("progression.session.xp_per_minute", default=XP_PER_MINUTE)
        )
        self._completion_bonus = int(
            config.get("progression.session.completion_bonus", default=SESSION_COMPLETION_BONUS)
        )
        self._first_session_bonus = int(
            config.get("progression.session.first_session_bonus", default=FIRST_SESSION_BONUS)
        )
        self._streak_bonus = int(
            config.get("progression.session.streak_bonus", default=STREAK_BONUS)
        )
        self._streak_interval = int(
            config.get(
                "progression.session.streak_interval_days", default=STREAK_BONUS_INTERVAL_DAYS
            )
        )
        self._min_minutes = int(
            config.get("progression.session.min_minutes_for_bonus", default=MIN_MINUTES_FOR_BONUS)
        )

    def calculate(
        self,
        duration_minutes: int,
        completed: bool = True,
        first_session_today: bool = False,
        streak_days: int = 0,
    ) -> SessionXP:
        """
        Break down the XP earned by one session.

        Raises:
            ValidationError: If ``duration_minutes`` or ``streak_days`` is negative.
        """
        if duration_minutes < 0:
            raise ValidationError("duration_minutes", "must be non-negative")
        if streak_days < 0:
            raise ValidationError("streak_days", "must be non-negative")

        base_xp = duration_minutes * self._xp_per_minute
        if duration_minutes < self._min_minutes:
            return SessionXP(base_xp=base_xp)

        streak_hit = (
            first_session_today
            and streak_days > 0
            and streak_days % self._streak_interval == 0
        )
        return SessionXP(
            base_xp=base_xp,
            completion_bonus=self._completion_bonus if completed else 0,
            first_session_bonus=self._first_session_bonus if first_session_today else 0,
            streak_bonus=self._streak_bonus if streak_hit else 0,
        )
