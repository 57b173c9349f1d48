"""
Ladder transition rules.

Both rules are pure: they take a working roster and return a new one,
leaving the input untouched.
"""

from dataclasses import dataclass

from ..exceptions import InvalidRank
from ..models import ContestRecord
from ..roster import WorkingRoster


@dataclass
class Transition:
    """Result of applying one event to a roster."""

    roster: WorkingRoster
    competitor_id: str
    old_rank: int
    new_rank: int

    @property
    def changed(self) -> bool:
        return self.old_rank != self.new_rank


def apply_contest(roster: WorkingRoster, contest: ContestRecord) -> Transition:
    """
    Apply the poison ladder rule for a decided contest.

    A winner ranked numerically worse than the loser takes the loser's slot;
    everyone from the loser's old rank down to just above the winner's old
    rank shifts down one place. A winner already ranked equal or better leaves
    the roster unchanged.

    Raises:
        CompetitorNotFound: if either competitor is missing from the roster
    """
    winner_id = contest.winner_id
    winner_rank = roster.rank_of(winner_id)
    loser_rank = roster.rank_of(contest.loser_id)

    if winner_rank <= loser_rank:
        return Transition(roster, winner_id, winner_rank, winner_rank)

    return Transition(roster.move(winner_id, loser_rank), winner_id, winner_rank, loser_rank)


def apply_adjustment(roster: WorkingRoster, competitor_id: str, target_rank: int) -> Transition:
    """
    Move a competitor to target_rank by list splice.

    Raises:
        InvalidRank: if target_rank is outside 1..N
        CompetitorNotFound: if the competitor is missing from the roster
    """
    if not 1 <= target_rank <= len(roster):
        raise InvalidRank(f"target rank {target_rank} outside 1..{len(roster)}")
    old_rank = roster.rank_of(competitor_id)
    return Transition(roster.move(competitor_id, target_rank), competitor_id, old_rank, target_rank)
