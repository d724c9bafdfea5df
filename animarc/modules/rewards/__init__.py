"""
Rewards Module
==============

RewardLedger turns duel, raid and focus-session outcomes into RewardDeltas
with one-shot level-up / rank-up events.
"""

from animarc.modules.rewards.ledger import PendingCelebrations, RewardLedger

__all__ = [
    "PendingCelebrations",
    "RewardLedger",
]
