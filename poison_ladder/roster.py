"""
Working roster and read-side projections.

The working roster is an ordered list of competitor snapshots where list
position is the rank. Transitions only ever reorder the list, so a roster
always describes a permutation of 1..N.
"""

from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

from .exceptions import CompetitorNotFound, InvalidRank
from .interfaces import RankUpdate
from .logging_config import get_logger
from .models import Competitor, LeaderboardEntry

logger = get_logger("roster")


class WorkingRoster:
    """Ordered competitor list; ``rank == index + 1``."""

    def __init__(self, competitors: Iterable[Competitor] = ()):
        self._order: list[Competitor] = list(competitors)
        self._index: dict[str, int] = {
            c.competitor_id: i for i, c in enumerate(self._order)
        }

    @classmethod
    def from_baseline(cls, competitors: Iterable[Competitor]) -> "WorkingRoster":
        """Order competitors by baseline rank, ties broken by creation order."""
        ordered = sorted(
            competitors,
            key=lambda c: (c.baseline_rank, c.created_at, c.competitor_id),
        )
        return cls(replace(c) for c in ordered)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Competitor]:
        return iter(self._order)

    def __contains__(self, competitor_id: object) -> bool:
        return competitor_id in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WorkingRoster):
            return NotImplemented
        return self.ids() == other.ids()

    def __repr__(self) -> str:
        return f"WorkingRoster({[c.name for c in self._order]})"

    def ids(self) -> list[str]:
        return [c.competitor_id for c in self._order]

    def rank_of(self, competitor_id: str) -> int:
        """1-based rank of a competitor."""
        try:
            return self._index[competitor_id] + 1
        except KeyError:
            raise CompetitorNotFound(f"competitor {competitor_id} is not on the roster") from None

    def competitor(self, competitor_id: str) -> Competitor:
        return self._order[self.rank_of(competitor_id) - 1]

    def at(self, rank: int) -> Competitor:
        """Competitor holding a 1-based rank."""
        if not 1 <= rank <= len(self._order):
            raise InvalidRank(f"rank {rank} outside 1..{len(self._order)}")
        return self._order[rank - 1]

    def move(self, competitor_id: str, target_rank: int) -> "WorkingRoster":
        """
        Return a new roster with the competitor spliced into target_rank.

        Everybody between the old and new position shifts by one towards the
        vacated slot; positions outside that window are untouched.
        """
        if not 1 <= target_rank <= len(self._order):
            raise InvalidRank(f"rank {target_rank} outside 1..{len(self._order)}")
        old_index = self.rank_of(competitor_id) - 1
        order = list(self._order)
        mover = order.pop(old_index)
        order.insert(target_rank - 1, mover)
        return WorkingRoster(order)

    def ranked(self) -> list[Competitor]:
        """Snapshots with current_rank set from list position."""
        return [replace(c, current_rank=i) for i, c in enumerate(self._order, 1)]

    def rank_updates(self) -> list[RankUpdate]:
        return [
            RankUpdate(competitor_id=c.competitor_id, current_rank=i)
            for i, c in enumerate(self._order, 1)
        ]


def active_leaderboard(competitors: Iterable[Competitor]) -> list[LeaderboardEntry]:
    """
    Project the roster onto active competitors with a dense display rank.

    current_rank is never modified; display_rank runs 1..k over the k active
    competitors in current_rank order.
    """
    active = sorted(
        (c for c in competitors if c.is_active),
        key=lambda c: c.current_rank,
    )
    return [LeaderboardEntry(competitor=c, display_rank=i) for i, c in enumerate(active, 1)]


@dataclass
class RankAnomalies:
    """Gaps and duplicates found in a set of stored ranks."""

    missing: list[int]
    duplicates: dict[int, int]

    @property
    def clean(self) -> bool:
        return not self.missing and not self.duplicates


def rank_anomalies(competitors: Iterable[Competitor]) -> RankAnomalies:
    """Find ranks in 1..N nobody holds and ranks held more than once."""
    counts = Counter(c.current_rank for c in competitors)
    total = sum(counts.values())
    return RankAnomalies(
        missing=[r for r in range(1, total + 1) if r not in counts],
        duplicates={r: n for r, n in sorted(counts.items()) if n > 1},
    )


def normalize_ranks(competitors: Iterable[Competitor]) -> list[Competitor]:
    """
    Repair duplicate or missing ranks.

    Sorts by the existing current_rank (stable on ties) and reassigns 1..N
    by position.
    """
    ordered = sorted(competitors, key=lambda c: c.current_rank)
    normalized = [replace(c, current_rank=i) for i, c in enumerate(ordered, 1)]
    for before, after in zip(ordered, normalized):
        if before.current_rank != after.current_rank:
            logger.info(f"{before.name}: {before.current_rank} -> {after.current_rank}")
    return normalized
