"""
Portal raid ORM models.

Exports:
- PortalRaidProgressRecord
"""

from .portal_raid_progress import PortalRaidProgressRecord

__all__ = [
    "PortalRaidProgressRecord",
]
