"""
Portal Raid Module
==================

- RaidEngine: boss HP, attempt damage, progress transitions, boss map
- DailyLimitPolicy: per-tier daily attempt caps with local-midnight reset

PortalRaidService (``animarc.modules.raid.service``) and SqlRaidProgressStore
(``animarc.modules.raid.repository``) add persistence.
"""

from animarc.modules.raid.daily_limits import DailyLimitPolicy
from animarc.modules.raid.engine import RaidEngine

__all__ = [
    "DailyLimitPolicy",
    "RaidEngine",
]
