"""
Per-competitor contest statistics.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from .models import ContestRecord


@dataclass
class CompetitorStats:
    """Aggregated results for one competitor."""

    competitor_id: str
    contests: int = 0
    wins: int = 0
    losses: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0

    @property
    def win_percentage(self) -> float:
        if self.contests == 0:
            return 0.0
        return self.wins / self.contests * 100.0


def competitor_stats(competitor_id: str, contests: Iterable[ContestRecord]) -> CompetitorStats:
    """
    Tally a competitor's record across contests.

    Tiebreak points are not counted as games. Sets of retired contests that
    cannot be scored (level games) are left out of the set tally.
    """
    stats = CompetitorStats(competitor_id=competitor_id)
    for contest in contests:
        if not contest.involves(competitor_id):
            continue
        side = 1 if contest.competitor1_id == competitor_id else 2
        stats.contests += 1
        if contest.winning_side == side:
            stats.wins += 1
        else:
            stats.losses += 1

        for games in (contest.scores.set1, contest.scores.set2):
            mine, theirs = (games[0], games[1]) if side == 1 else (games[1], games[0])
            stats.games_won += mine
            stats.games_lost += theirs
            if mine > theirs:
                stats.sets_won += 1
            elif theirs > mine:
                stats.sets_lost += 1
    return stats
