"""
Daily boss-attempt limits.

Free users get one boss attempt per local calendar day, paid users three.
The day rolls over at local midnight in ``raids.daily_reset_timezone``
(falling back to ``Config.DAILY_RESET_TIMEZONE``, then the system zone). A
new day is a new DailyLimits row with zero attempts used.

The clock is injectable so tests can cross the midnight boundary.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from animarc.core.config import Config
from animarc.core.config.config_manager import ConfigManager
from animarc.core.exceptions import ConfigurationError
from animarc.domain.models.battler import SubscriptionTier
from animarc.domain.models.raid import DailyLimits
from animarc.modules.shared.constants import DAILY_BOSS_ATTEMPTS
from animarc.modules.shared.exceptions import InvalidStateError

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DailyLimitPolicy:
    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        config = config or ConfigManager()
        self._clock = clock or _utc_now
        self._caps = {
            tier: int(
                config.get(
                    f"raids.daily_attempts.{tier.value}",
                    default=DAILY_BOSS_ATTEMPTS[tier.value],
                )
            )
            for tier in SubscriptionTier
        }

        tz_name = config.get("raids.daily_reset_timezone", default=Config.DAILY_RESET_TIMEZONE)
        self._tz: Optional[ZoneInfo] = None
        if tz_name:
            try:
                self._tz = ZoneInfo(tz_name)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ConfigurationError(
                    "raids.daily_reset_timezone", f"Unknown timezone '{tz_name}'"
                ) from exc

    def max_attempts(self, tier: SubscriptionTier) -> int:
        return self._caps[tier]

    def now(self) -> datetime:
        return self._clock()

    def today(self, now: Optional[datetime] = None) -> date:
        """Local calendar date for ``now`` (default: the injected clock)."""
        moment = now or self.now()
        if self._tz is not None:
            return moment.astimezone(self._tz).date()
        # Naive datetimes are taken as system-local by astimezone()
        return moment.astimezone().date()

    def current(
        self,
        user_id: str,
        limits: Optional[DailyLimits],
        now: Optional[datetime] = None,
    ) -> DailyLimits:
        """``limits`` if it belongs to today, otherwise a fresh row for today."""
        day = self.today(now)
        if limits is None or limits.day != day:
            return DailyLimits(user_id=user_id, day=day, boss_attempts_used=0)
        return limits

    def remaining(self, limits: DailyLimits, tier: SubscriptionTier) -> int:
        return limits.remaining(self.max_attempts(tier))

    def check_can_attempt(self, limits: DailyLimits, tier: SubscriptionTier) -> None:
        """
        Raises:
            InvalidStateError: If no attempts remain today.
        """
        if self.remaining(limits, tier) <= 0:
            raise InvalidStateError(
                "raid.consume_attempt",
                "No boss attempts remaining today",
                details={
                    "user_id": limits.user_id,
                    "day": limits.day.isoformat(),
                    "used": limits.boss_attempts_used,
                    "max_attempts": self.max_attempts(tier),
                },
            )
