"""
Progression ORM models.

Exports:
- UserProgress
- DailyLimitsRecord
"""

from .daily_limits import DailyLimitsRecord
from .user_progress import UserProgress

__all__ = [
    "DailyLimitsRecord",
    "UserProgress",
]
