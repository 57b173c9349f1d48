"""
Poison Ladder - Event-Sourced Ladder Rankings

Keeps a total ordering of competitors. A winner ranked below their opponent
takes the opponent's slot, administrators can move competitors directly, and
the current ladder is always the replay of the full event timeline over a
baseline ordering.
"""

from .config import LadderConfig
from .interfaces import LadderStore, RankUpdate
from .models import (
    AdjustmentEvent,
    Competitor,
    ContestEvent,
    ContestRecord,
    ContestScores,
    LeaderboardEntry,
    RebuildResult,
    TimelineEvent,
)
from .rebuild import RebuildEngine
from .roster import WorkingRoster, active_leaderboard, normalize_ranks
from .rules import apply_adjustment, apply_contest, resolve_outcome
from .service import LadderService

__version__ = "0.1.0"
__all__ = [
    "LadderConfig",
    "LadderStore",
    "RankUpdate",
    "AdjustmentEvent",
    "Competitor",
    "ContestEvent",
    "ContestRecord",
    "ContestScores",
    "LeaderboardEntry",
    "RebuildResult",
    "TimelineEvent",
    "RebuildEngine",
    "WorkingRoster",
    "active_leaderboard",
    "normalize_ranks",
    "apply_adjustment",
    "apply_contest",
    "resolve_outcome",
    "LadderService",
]
