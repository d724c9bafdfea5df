"""
Animarc Domain Constants

Purpose
-------
Provide the stock balance values for progression, combat, raids and rewards.
Every engine reads its tunables through ConfigManager using these constants
as defaults, so the YAML files under config/ only need to list overrides.

IMPORTANT:
This module contains GAMEPLAY constants only. Infrastructure settings
(database pools, logging) live in animarc.core.config.config.

Design Notes
------------
- Values are annotated with typing.Final to signal immutability
- Grouped by game system
- Mapping-valued tables are keyed by rank code or enum value strings, matching
  the YAML layout
"""

from __future__ import annotations

from typing import Dict, Final, Tuple

# ============================================================================
# STATS & FOCUS POWER
# ============================================================================

BASE_FOCUS_POWER: Final[int] = 1000  # Floor every focus power is built on
DEFAULT_HEALTH: Final[int] = 150
DEFAULT_ATTACK: Final[int] = 10
DEFAULT_DEFENSE: Final[int] = 10
DEFAULT_SPEED: Final[int] = 10

POINTS_PER_LEVEL: Final[int] = 5  # Stat points granted per level up
HEALTH_PER_POINT: Final[int] = 5
OTHER_STAT_PER_POINT: Final[int] = 1
MAX_POINTS_PER_STAT: Final[int] = 999

# ============================================================================
# LEVELING CURVE
# ============================================================================

# XP threshold for level N = int(XP_CURVE_BASE * (N - 1) ** XP_CURVE_EXPONENT)
XP_CURVE_BASE: Final[int] = 100
XP_CURVE_EXPONENT: Final[float] = 1.5

# ============================================================================
# RANKS
# ============================================================================

# (code, title, color, min_level); each tier ends where the next begins
RANK_TABLE: Final[Tuple[Tuple[str, str, str, int], ...]] = (
    ("E", "Beginner Scholar", "#4A90A4", 1),
    ("D", "Rising Student", "#CD7F32", 10),
    ("C", "Focused Apprentice", "#4CAF50", 25),
    ("B", "Dedicated Learner", "#2196F3", 45),
    ("A", "Elite Scholar", "#9C27B0", 70),
    ("S", "Master of Focus", "#FFD700", 100),
    ("SS", "Legendary Hunter", "#E6A8D7", 130),
    ("SSS", "Transcendent Being", "#FFFFFF", 150),
)
MAX_BOSS_LEVEL: Final[int] = 200  # Upper bound for the open-ended top rank

# ============================================================================
# FOCUS SESSIONS
# ============================================================================

XP_PER_MINUTE: Final[int] = 1
SESSION_COMPLETION_BONUS: Final[int] = 25
FIRST_SESSION_BONUS: Final[int] = 50
STREAK_BONUS: Final[int] = 200
STREAK_BONUS_INTERVAL_DAYS: Final[int] = 7
MIN_MINUTES_FOR_BONUS: Final[int] = 5

# ============================================================================
# DUELS
# ============================================================================

DIFFICULTY_EASY_BELOW: Final[float] = 0.8  # opponent/user power ratio
DIFFICULTY_HARD_ABOVE: Final[float] = 1.25

WIN_PROBABILITY_STEEPNESS: Final[float] = 4.0
WIN_PROBABILITY_FLOOR: Final[float] = 0.05  # Also the distance of the ceiling from 1
WIN_PROBABILITY_RATIO_CAP: Final[float] = 1000.0  # Power ratios beyond this are treated as equal to it

WIN_XP: Final[Dict[str, int]] = {"easy": 40, "fair": 50, "hard": 75}
LOSS_XP: Final[Dict[str, int]] = {"easy": 8, "fair": 10, "hard": 15}
PERFORMANCE_XP_BONUS: Final[float] = 0.2
WIN_GOLD_RANGE: Final[Dict[str, Tuple[int, int]]] = {
    "easy": (5, 12),
    "fair": (18, 32),
    "hard": (40, 60),
}
LOSS_GOLD: Final[Dict[str, int]] = {"easy": 1, "fair": 2, "hard": 4}

# ============================================================================
# OPPONENT GENERATION
# ============================================================================

OPPONENT_SLOTS: Final[Tuple[str, ...]] = ("easy", "fair", "fair", "fair", "hard")
OPPONENT_POWER_BANDS: Final[Dict[str, Tuple[float, float]]] = {
    "easy": (0.55, 0.65),
    "fair": (0.85, 1.15),
    "hard": (1.45, 1.65),
}
OPPONENT_LEVEL_OFFSETS: Final[Dict[str, Tuple[int, int]]] = {
    "easy": (-3, -1),
    "fair": (-2, 2),
    "hard": (1, 4),
}
OPPONENT_STAT_BUDGET_BASE: Final[int] = 10
OPPONENT_STAT_POINTS_PER_LEVEL: Final[int] = 5
OPPONENT_STAT_FLOOR: Final[int] = 1
OPPONENT_FOCUS_POWER_FLOOR: Final[int] = 1

# Share of the stat budget per stat, keyed by specialization value
SPECIALIZATION_WEIGHTS: Final[Dict[str, Dict[str, float]]] = {
    "Tank": {"health": 0.40, "attack": 0.15, "defense": 0.35, "speed": 0.10},
    "Glass Cannon": {"health": 0.10, "attack": 0.60, "defense": 0.10, "speed": 0.20},
    "Speedster": {"health": 0.10, "attack": 0.35, "defense": 0.10, "speed": 0.45},
    "Balanced": {"health": 0.25, "attack": 0.25, "defense": 0.25, "speed": 0.25},
}

OPPONENT_NAMES: Final[Tuple[str, ...]] = (
    "ShadowHunter", "FocusMaster", "ZenWarrior99", "DeepWorkKing", "StudyNinja",
    "MidnightGrinder", "FlowStateGod", "HustleHero", "IronWilliam", "TaskSlayer",
    "PixelMonk", "CodeSamurai", "BookWorm", "FocusPhantom", "GrindMachine",
    "AlphaLearner", "SilentScholar", "RushWarrior", "ThinkTank", "ChillHustle",
    "NeonFocus", "QuantumMind", "SteelDiscipline", "EchoHunter", "PeakPerformer",
    "VoidWalker", "CrystalClear", "ZenMaster", "FlashFocus", "IceBreaker",
    "ThunderStudy", "WaveRider", "MysticGrind", "PhoenixRise", "ShadowStep",
    "LightSpeed", "FrostBite", "BlazePath", "StormChaser", "SilverBullet",
    "GoldRush", "DiamondMind", "RubyFocus", "SapphireWill", "EmeraldFlow",
    "OnyxWarrior", "PearlWisdom", "TopazHunter", "AmethystDream", "ObsidianGrit",
)

# ============================================================================
# PORTAL RAIDS
# ============================================================================

BOSS_BASE_HP: Final[Dict[str, int]] = {
    "E": 300, "D": 500, "C": 800, "B": 1200,
    "A": 1800, "S": 2500, "SS": 3400, "SSS": 4500,
}
BOSS_HP_MULTIPLIER: Final[Dict[str, float]] = {
    "Tank": 1.5, "Balanced": 1.0, "Speedster": 0.7, "Glass Cannon": 0.6,
}
BOSS_HP_LEVEL_SCALING: Final[float] = 0.02

RAID_BASE_DAMAGE: Final[int] = 120  # Expected damage per attempt at equal power
RAID_DAMAGE_EXPONENT: Final[float] = 1.0
RAID_MIN_POWER_FACTOR: Final[float] = 0.25
RAID_MAX_POWER_FACTOR: Final[float] = 4.0
RAID_DAMAGE_VARIANCE: Final[float] = 0.2  # Uniform band [1 - v, 1 + v]

BOSS_REWARDS: Final[Dict[str, Tuple[int, int]]] = {
    "E": (100, 50), "D": (200, 100), "C": (350, 200), "B": (500, 350),
    "A": (750, 500), "S": (1000, 750), "SS": (1400, 1050), "SSS": (2000, 1500),
}
BOSS_REWARD_LEVEL_SCALING: Final[float] = 0.02

DAILY_BOSS_ATTEMPTS: Final[Dict[str, int]] = {"free": 1, "paid": 3}

# ============================================================================
# PERSISTENCE
# ============================================================================

MAX_CONFLICT_RETRIES: Final[int] = 3
