"""
Progression Module
==================

- ProgressionCurve / RankTable: XP <-> level <-> rank
- SessionXPCalculator: XP for focus sessions
- StatAllocator: spending stat points

ProgressionService (``animarc.modules.progression.service``) applies grants
with optimistic locking.
"""

from animarc.modules.progression.allocation import StatAllocator
from animarc.modules.progression.curve import ProgressionCurve
from animarc.modules.progression.ranks import RankTable
from animarc.modules.progression.session_xp import SessionXPCalculator

__all__ = [
    "ProgressionCurve",
    "RankTable",
    "SessionXPCalculator",
    "StatAllocator",
]
