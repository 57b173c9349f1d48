"""
Contest outcome resolution.

Decides the winning side of a two-set contest from raw games, an optional
tiebreak and an optional retirement.
"""

from ..exceptions import InvalidInput
from ..models import ContestScores, Side, other_side


def _check_non_negative(pair: tuple[int, int], label: str) -> None:
    first, second = pair
    if first < 0 or second < 0:
        raise InvalidInput(f"{label} cannot contain negative values: {first}-{second}")


def _pair_winner(pair: tuple[int, int], label: str) -> Side:
    """Return the side with strictly more points in a set or tiebreak."""
    _check_non_negative(pair, label)
    first, second = pair
    if first == second:
        raise InvalidInput(f"{label} cannot be level: {first}-{second}")
    return 1 if first > second else 2


def set_winners(scores: ContestScores) -> tuple[Side, Side]:
    """Winners of set 1 and set 2."""
    return _pair_winner(scores.set1, "set 1"), _pair_winner(scores.set2, "set 2")


def resolve_outcome(scores: ContestScores) -> Side:
    """
    Determine the winning side of a contest.

    A retirement hands the contest to the other side regardless of the score.
    Otherwise two sets to one side win outright; a 1-1 split goes to the
    tiebreak, or to the higher total of games when no tiebreak was played.

    Raises:
        InvalidInput: if the scores are malformed or no single winner emerges
    """
    if scores.retired_side is not None:
        if scores.retired_side not in (1, 2):
            raise InvalidInput(f"retired_side must be 1 or 2, got {scores.retired_side}")
        # Unfinished sets may be level but never negative
        _check_non_negative(scores.set1, "set 1")
        _check_non_negative(scores.set2, "set 2")
        if scores.tiebreak is not None:
            _check_non_negative(scores.tiebreak, "tiebreak")
        return other_side(scores.retired_side)

    first, second = set_winners(scores)
    if first == second:
        return first

    if scores.tiebreak is not None:
        return _pair_winner(scores.tiebreak, "tiebreak")

    side1_games = scores.set1[0] + scores.set2[0]
    side2_games = scores.set1[1] + scores.set2[1]
    if side1_games == side2_games:
        raise InvalidInput(
            f"sets split 1-1 with level games ({side1_games}-{side2_games}) and no tiebreak"
        )
    return 1 if side1_games > side2_games else 2
