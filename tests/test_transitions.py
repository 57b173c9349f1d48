"""
Tests for the ladder transition rules.

Focus on the poison ladder window shift and list-splice adjustments.
"""

import random

import pytest

from poison_ladder.exceptions import CompetitorNotFound, InvalidRank
from poison_ladder.models import Competitor, ContestRecord, ContestScores
from poison_ladder.roster import WorkingRoster
from poison_ladder.rules.transitions import apply_adjustment, apply_contest

NAMES = ["Ann", "Ben", "Cat", "Dan", "Eve", "Fay"]


def make_roster(names: list[str] = NAMES) -> WorkingRoster:
    """Roster where each competitor's ID is their lowercase name."""
    return WorkingRoster(
        Competitor(competitor_id=name.lower(), name=name, baseline_rank=i, current_rank=i)
        for i, name in enumerate(names, 1)
    )


def beats(winner: str, loser: str) -> ContestRecord:
    return ContestRecord(
        contest_id=f"{winner}-{loser}",
        competitor1_id=winner,
        competitor2_id=loser,
        scores=ContestScores(set1=(6, 3), set2=(6, 2)),
        winning_side=1,
    )


class TestApplyContest:
    """Test the poison ladder rule."""

    def test_window_shift_when_lower_ranked_winner(self) -> None:
        """Rank 5 beating rank 2 takes slot 2; ranks 2..4 shift to 3..5."""
        # Arrange
        roster = make_roster()

        # Act
        transition = apply_contest(roster, beats("eve", "ben"))

        # Assert
        result = transition.roster
        assert result.ids() == ["ann", "eve", "ben", "cat", "dan", "fay"]
        assert result.rank_of("eve") == 2, "Winner takes the loser's slot"
        assert result.rank_of("ben") == 3, "Loser lands one below their old rank"
        assert result.rank_of("cat") == 4
        assert result.rank_of("dan") == 5
        assert result.rank_of("ann") == 1, "Rank above the window is untouched"
        assert result.rank_of("fay") == 6, "Rank below the window is untouched"
        assert (transition.old_rank, transition.new_rank) == (5, 2)
        assert transition.changed

    def test_no_change_when_winner_already_ranked_higher(self) -> None:
        # Arrange
        roster = make_roster()

        # Act
        transition = apply_contest(roster, beats("ann", "dan"))

        # Assert
        assert transition.roster.ids() == roster.ids(), "Roster should be unchanged"
        assert transition.old_rank == transition.new_rank == 1
        assert not transition.changed

    def test_adjacent_swap(self) -> None:
        transition = apply_contest(make_roster(), beats("cat", "ben"))

        assert transition.roster.ids() == ["ann", "cat", "ben", "dan", "eve", "fay"]

    def test_winner_from_side_two(self) -> None:
        """winning_side=2 makes competitor2 the winner."""
        contest = ContestRecord(
            contest_id="c1",
            competitor1_id="ann",
            competitor2_id="fay",
            scores=ContestScores(set1=(1, 6), set2=(2, 6)),
            winning_side=2,
        )

        transition = apply_contest(make_roster(), contest)

        assert transition.roster.ids() == ["fay", "ann", "ben", "cat", "dan", "eve"]

    def test_input_roster_is_not_mutated(self) -> None:
        roster = make_roster()

        _ = apply_contest(roster, beats("fay", "ann"))

        assert roster.ids() == ["ann", "ben", "cat", "dan", "eve", "fay"]

    def test_missing_competitor_raises(self) -> None:
        with pytest.raises(CompetitorNotFound):
            apply_contest(make_roster(), beats("zed", "ann"))


class TestApplyAdjustment:
    """Test list-splice manual adjustments."""

    def test_move_up_shifts_everyone_between_down(self) -> None:
        transition = apply_adjustment(make_roster(), "fay", 1)

        assert transition.roster.ids() == ["fay", "ann", "ben", "cat", "dan", "eve"]
        assert (transition.old_rank, transition.new_rank) == (6, 1)

    def test_move_down_shifts_everyone_between_up(self) -> None:
        transition = apply_adjustment(make_roster(), "ann", 4)

        assert transition.roster.ids() == ["ben", "cat", "dan", "ann", "eve", "fay"]

    def test_move_to_same_rank_is_a_no_op(self) -> None:
        roster = make_roster()

        transition = apply_adjustment(roster, "cat", 3)

        assert transition.roster.ids() == roster.ids()
        assert not transition.changed

    @pytest.mark.parametrize("target", [0, 7, -1])
    def test_out_of_bounds_rank_raises(self, target: int) -> None:
        with pytest.raises(InvalidRank):
            apply_adjustment(make_roster(), "cat", target)

    def test_missing_competitor_raises(self) -> None:
        with pytest.raises(CompetitorNotFound):
            apply_adjustment(make_roster(), "zed", 2)


class TestPermutationInvariant:
    """Any sequence of transitions keeps ranks a permutation of 1..N."""

    def test_random_transition_sequence(self) -> None:
        # Arrange
        rng = random.Random(7)
        roster = make_roster()
        ids = roster.ids()

        # Act
        for _ in range(200):
            if rng.random() < 0.7:
                winner, loser = rng.sample(ids, 2)
                roster = apply_contest(roster, beats(winner, loser)).roster
            else:
                roster = apply_adjustment(roster, rng.choice(ids), rng.randint(1, len(ids))).roster

        # Assert
        ranks = sorted(c.current_rank for c in roster.ranked())
        assert ranks == list(range(1, len(ids) + 1))
        assert sorted(roster.ids()) == sorted(ids), "No competitor lost or duplicated"
