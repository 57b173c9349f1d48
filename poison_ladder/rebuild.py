"""
Rebuild engine for the ladder.

Replays the whole timeline over the baseline ordering and commits the
resulting ranks. Poison ladder moves cannot be undone one at a time, so every
edit to history is followed by a full replay from the baseline.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from typing_extensions import assert_never

if TYPE_CHECKING:
    from loguru import Logger

from .exceptions import (
    CompetitorNotFound,
    ContestNotFound,
    InvalidRank,
    PersistenceFailure,
)
from .interfaces import AuditUpdate, LadderStore
from .logging_config import get_logger
from .models import AdjustmentEvent, ContestEvent, RebuildResult, TimelineEvent
from .roster import WorkingRoster
from .rules.transitions import Transition, apply_adjustment, apply_contest
from .timeline import replay_order

# Errors that skip a single event instead of aborting the replay
RECOVERABLE_ERRORS = (CompetitorNotFound, ContestNotFound, InvalidRank)


@dataclass
class ReplayPass:
    """In-memory result of a replay, before anything is written."""

    roster: WorkingRoster
    audits: list[AuditUpdate] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    events: dict[str, TimelineEvent] = field(default_factory=dict)


class RebuildEngine:
    """
    Folds every timeline event over the baseline roster.

    The engine holds no state between runs and does no locking; callers make
    sure only one rebuild runs against a store at a time.
    """

    def __init__(self, store: LadderStore, strict: bool = False):
        """
        Initialize the engine.

        Args:
            store: Persistence collaborator
            strict: Raise on unresolvable events instead of skipping them
        """
        self.store: LadderStore = store
        self.strict: bool = strict
        self.logger: Logger = get_logger("rebuild")

    def replay(self) -> ReplayPass:
        """Run baseline construction and replay without writing anything."""
        competitors = self.store.list_competitors()
        roster = WorkingRoster.from_baseline(competitors)
        self.logger.info(f"Baseline roster of {len(roster)} competitors")
        self.logger.debug(f"Baseline order: {[c.name for c in roster]}")

        events = replay_order(self.store.list_timeline_events())
        self.logger.info(f"Replaying {len(events)} events")

        result = ReplayPass(roster=roster, events={e.event_id: e for e in events})
        for event in events:
            try:
                transition, note = self._apply(result.roster, event)
            except RECOVERABLE_ERRORS as e:
                if self.strict:
                    raise
                self.logger.warning(f"Skipping event {event.event_id}: {e}")
                result.skipped.append(event.event_id)
                result.audits.append(
                    AuditUpdate(event_id=event.event_id, old_rank=None, new_rank=None, note=f"skipped: {e}")
                )
                continue

            result.roster = transition.roster
            result.audits.append(
                AuditUpdate(
                    event_id=event.event_id,
                    old_rank=transition.old_rank,
                    new_rank=transition.new_rank,
                    note=note,
                )
            )
            self.logger.debug(f"{note} -> {[c.name for c in result.roster]}")

        return result

    def rebuild(self) -> RebuildResult:
        """Replay the timeline and commit ranks and audit fields."""
        replayed = self.replay()

        # Ranks go out as one batch; a failure here leaves the old ranks intact
        updates = replayed.roster.rank_updates()
        try:
            written = self.store.write_competitor_ranks(updates) if updates else 0
        except PersistenceFailure as e:
            self.logger.error(f"Rank write-back failed, previous ranks kept: {e}")
            raise

        changed = [
            audit for audit in replayed.audits
            if self._audit_changed(replayed.events[audit["event_id"]], audit)
        ]
        failed = self.store.update_timeline_event_audits(changed) if changed else []
        error_count = len(failed)

        self.logger.info(
            f"Rebuild complete: {written} ranks written, {len(replayed.skipped)} events skipped, {error_count} audit errors"
        )
        return RebuildResult(
            success=error_count == 0,
            updated_competitors=replayed.roster.ranked(),
            error_count=error_count,
            success_count=written,
            skipped_events=replayed.skipped,
        )

    def _apply(self, roster: WorkingRoster, event: TimelineEvent) -> tuple[Transition, str]:
        """Apply one event; the union is handled exhaustively."""
        if isinstance(event, ContestEvent):
            contest = self.store.get_contest_record(event.contest_id)
            transition = apply_contest(roster, contest)
            winner = roster.competitor(contest.winner_id).name
            loser = roster.competitor(contest.loser_id).name
            if transition.changed:
                note = f"{winner} beat {loser}: {transition.old_rank} -> {transition.new_rank}"
            else:
                note = f"{winner} beat {loser}: no rank change, already ranked higher"
            return transition, note
        elif isinstance(event, AdjustmentEvent):
            transition = apply_adjustment(roster, event.competitor_id, event.target_rank)
            name = roster.competitor(event.competitor_id).name
            note = f"{name} moved from {transition.old_rank} to {transition.new_rank}: {event.reason}"
            return transition, note
        else:
            assert_never(event)

    @staticmethod
    def _audit_changed(event: TimelineEvent, audit: AuditUpdate) -> bool:
        return (event.old_rank, event.new_rank, event.note) != (
            audit["old_rank"],
            audit["new_rank"],
            audit["note"],
        )
