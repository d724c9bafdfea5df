"""
Animarc progression core.

Deterministic combat and progression simulation for a gamified focus timer:
seeded opponent rosters, duel resolution, multi-attempt portal raids, the
reward ledger, and async services over a versioned persistence contract.
"""

__version__ = "1.0.0"
