"""
Combat Module
=============

Duels against procedurally generated opponents:
- CombatResolver: difficulty, win probability, outcome and rewards
- OpponentGenerator: deterministic opponent rosters

DuelService (``animarc.modules.combat.service``) orchestrates both with
persistence.
"""

from animarc.modules.combat.opponents import OpponentGenerator
from animarc.modules.combat.resolver import CombatResolver

__all__ = [
    "CombatResolver",
    "OpponentGenerator",
]
