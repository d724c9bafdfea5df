"""
Rank reference table.

Ranks partition the level axis into contiguous, non-overlapping tiers. The
table is ordered; each tier ends one level before the next begins and the
top tier is open-ended.

Config keys (optional override of the whole table):
    progression.ranks: list of {code, title, color, min_level}
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple, Union

from animarc.core.config.config_manager import ConfigManager
from animarc.core.exceptions import ConfigurationError
from animarc.domain.models.progression import Rank, RankProgress
from animarc.modules.shared.constants import MAX_BOSS_LEVEL, RANK_TABLE
from animarc.modules.shared.exceptions import NotFoundError
from animarc.modules.shared.random_sequence import RandomSequence


class RankTable:
    """Ordered rank tiers with lookup by level or code."""

    def __init__(self, config: Optional[ConfigManager] = None) -> None:
        config = config or ConfigManager()
        rows = config.get("progression.ranks", default=None)
        if rows is None:
            entries: Sequence[Tuple[str, str, str, int]] = RANK_TABLE
        else:
            try:
                entries = [
                    (str(r["code"]), str(r["title"]), str(r["color"]), int(r["min_level"]))
                    for r in rows
                ]
            except (KeyError, TypeError, ValueError) as exc:
                raise ConfigurationError("progression.ranks", f"Malformed rank row: {exc}") from exc

        self._ranks: Tuple[Rank, ...] = self._build(entries)
        self._by_code: Dict[str, Rank] = {r.code: r for r in self._ranks}
        self._max_boss_level = int(
            config.get("progression.max_boss_level", default=MAX_BOSS_LEVEL)
        )

    @staticmethod
    def _build(entries: Sequence[Tuple[str, str, str, int]]) -> Tuple[Rank, ...]:
        if not entries:
            raise ConfigurationError("progression.ranks", "Rank table is empty")
        ordered = sorted(entries, key=lambda e: e[3])
        if ordered[0][3] != 1:
            raise ConfigurationError("progression.ranks", "First rank must start at level 1")

        ranks: List[Rank] = []
        for index, (code, title, color, min_level) in enumerate(ordered):
            if index + 1 < len(ordered):
                next_min = ordered[index + 1][3]
                if next_min == min_level:
                    raise ConfigurationError(
                        "progression.ranks", f"Duplicate min_level {min_level}"
                    )
                max_level: Optional[int] = next_min - 1
            else:
                max_level = None
            ranks.append(Rank(code, title, color, min_level, max_level))
        return tuple(ranks)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    @property
    def ranks(self) -> Tuple[Rank, ...]:
        return self._ranks

    def for_level(self, level: int) -> Rank:
        """Rank containing ``level``; levels below 1 map to the first rank."""
        for rank in reversed(self._ranks):
            if level >= rank.min_level:
                return rank
        return self._ranks[0]

    def by_code(self, code: str) -> Rank:
        try:
            return self._by_code[code]
        except KeyError:
            raise NotFoundError("Rank", code) from None

    def index_of(self, code: str) -> int:
        return self._ranks.index(self.by_code(code))

    def next_rank(self, code: str) -> Optional[Rank]:
        index = self.index_of(code)
        if index + 1 < len(self._ranks):
            return self._ranks[index + 1]
        return None

    def progress_to_next_rank(self, level: int) -> RankProgress:
        current = self.for_level(level)
        upcoming = self.next_rank(current.code)
        if upcoming is None:
            return RankProgress(current, None, 0, 100.0)

        span = upcoming.min_level - current.min_level
        done = level - current.min_level
        return RankProgress(
            current=current,
            next=upcoming,
            levels_to_next=upcoming.min_level - level,
            progress_percent=100.0 * done / span,
        )

    def boss_level_for_rank(self, code: str, seed_key: Union[str, int]) -> int:
        """
        Deterministic boss level inside the rank's level range.

        The open-ended top rank is bounded by ``progression.max_boss_level``.
        """
        rank = self.by_code(code)
        upper = rank.max_level if rank.max_level is not None else max(
            rank.min_level, self._max_boss_level
        )
        rng = RandomSequence.from_values("boss-level", code, seed_key)
        return rng.randint(rank.min_level, upper)
