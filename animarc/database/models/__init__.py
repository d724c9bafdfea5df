"""
Database Models Package
=======================

SQLAlchemy ORM models for Animarc, organized by domain.

All models:
- Are schema-only, no business logic
- Use Mapped[] syntax with mapped_column()
- Inherit from IdMixin and TimestampMixin
- Carry a ``version`` column when they are updated with optimistic locking

Domain Organization:
--------------------
- progression: user progress and daily limits
- raid: portal raid progress
"""

from animarc.core.database.base import Base

from .progression import DailyLimitsRecord, UserProgress
from .raid import PortalRaidProgressRecord

__all__ = [
    "Base",
    "DailyLimitsRecord",
    "PortalRaidProgressRecord",
    "UserProgress",
]
