"""
Core dataclasses for the poison ladder system.

Defines competitors, contest records and the timeline event union with
validation.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

from .exceptions import InvalidInput

Side: TypeAlias = Literal[1, 2]


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return uuid.uuid4().hex


def other_side(side: Side) -> Side:
    return 2 if side == 1 else 1


@dataclass
class Competitor:
    """A ladder participant; rank 1 is the top of the ladder."""

    competitor_id: str
    name: str
    baseline_rank: int
    current_rank: int
    is_active: bool = True
    created_at: float = field(default_factory=time.time)
    email: str | None = None
    notes: str = ""

    def __post_init__(self) -> None:
        """Validate competitor data."""
        if not self.competitor_id:
            raise InvalidInput("competitor_id cannot be empty")
        if not self.name:
            raise InvalidInput("name cannot be empty")


@dataclass
class ContestScores:
    """Raw games per set for both sides, as (side 1, side 2) pairs."""

    set1: tuple[int, int]
    set2: tuple[int, int]
    tiebreak: tuple[int, int] | None = None
    retired_side: Side | None = None


@dataclass
class ContestRecord:
    """A recorded contest between two competitors."""

    contest_id: str
    competitor1_id: str
    competitor2_id: str
    scores: ContestScores
    winning_side: Side
    created_at: float = field(default_factory=time.time)
    played_on: str | None = None

    def __post_init__(self) -> None:
        """Validate contest data."""
        if not self.contest_id:
            raise InvalidInput("contest_id cannot be empty")
        if self.competitor1_id == self.competitor2_id:
            raise InvalidInput("a contest needs two different competitors")
        if self.winning_side not in (1, 2):
            raise InvalidInput(f"winning_side must be 1 or 2, got {self.winning_side}")

    @property
    def winner_id(self) -> str:
        return self.competitor1_id if self.winning_side == 1 else self.competitor2_id

    @property
    def loser_id(self) -> str:
        return self.competitor2_id if self.winning_side == 1 else self.competitor1_id

    def involves(self, competitor_id: str) -> bool:
        return competitor_id in (self.competitor1_id, self.competitor2_id)


@dataclass
class ContestEvent:
    """
    Timeline entry for a recorded contest.

    old_rank/new_rank hold the winning side's rank before and after the
    contest as observed by the most recent rebuild.
    """

    event_id: str
    contest_id: str
    timestamp: float
    sequence: int = 0
    old_rank: int | None = None
    new_rank: int | None = None
    note: str = ""
    kind: Literal["contest"] = "contest"


@dataclass
class AdjustmentEvent:
    """
    Timeline entry for an administrator moving a competitor to target_rank.

    old_rank/new_rank start out as the ranks seen when the adjustment was
    requested and are overwritten by every rebuild.
    """

    event_id: str
    competitor_id: str
    target_rank: int
    timestamp: float
    reason: str = "Manual adjustment"
    actor: str = "admin"
    sequence: int = 0
    old_rank: int | None = None
    new_rank: int | None = None
    note: str = ""
    kind: Literal["manual_adjustment"] = "manual_adjustment"


TimelineEvent: TypeAlias = ContestEvent | AdjustmentEvent


@dataclass
class LeaderboardEntry:
    """An active competitor with its dense display rank."""

    competitor: Competitor
    display_rank: int


@dataclass
class RebuildResult:
    """Outcome of a full replay."""

    success: bool
    updated_competitors: list[Competitor]
    error_count: int = 0
    success_count: int = 0
    skipped_events: list[str] = field(default_factory=list)
