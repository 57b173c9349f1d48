"""
Ladder service.

The calling surface for UI/API layers: validates input, appends timeline
events and triggers a full rebuild after every change to history.
"""

import threading
import time
from collections.abc import Mapping
from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .config import LadderConfig
from .exceptions import (
    CompetitorInUse,
    ContestNotFound,
    EventNotFound,
    InvalidInput,
    InvalidRank,
    PersistenceFailure,
)
from .interfaces import LadderStore
from .logging_config import get_logger
from .models import (
    AdjustmentEvent,
    Competitor,
    ContestEvent,
    ContestRecord,
    ContestScores,
    LeaderboardEntry,
    RebuildResult,
    TimelineEvent,
    new_id,
)
from .rebuild import RebuildEngine
from .roster import RankAnomalies, WorkingRoster, active_leaderboard, normalize_ranks, rank_anomalies
from .rules.outcome import resolve_outcome
from .rules.transitions import apply_contest
from .stats import CompetitorStats, competitor_stats
from .timeline import references_competitor, replay_order


class LadderService:
    """
    Entry point for recording contests and adjustments.

    Every mutation of history is followed by a rebuild. Mutations and
    rebuilds are serialised with a lock so at most one rebuild runs per
    service; reads never take the lock.
    """

    def __init__(self, store: LadderStore, config: LadderConfig | None = None):
        """
        Initialize the service.

        Args:
            store: Persistence collaborator
            config: Ladder configuration (defaults apply when omitted)
        """
        self.store: LadderStore = store
        self.config: LadderConfig = config or LadderConfig()
        self.engine: RebuildEngine = RebuildEngine(store, strict=self.config.strict_replay)
        self._lock: threading.RLock = threading.RLock()
        self.logger: Logger = get_logger("service")

    # -- rebuild -----------------------------------------------------------

    def rebuild_all(self) -> RebuildResult:
        """Replay the full timeline and commit the resulting ranks."""
        with self._lock:
            return self.engine.rebuild()

    # -- competitors -------------------------------------------------------

    def add_competitor(self, name: str, email: str | None = None, notes: str = "") -> Competitor:
        """Add a competitor at the bottom of the ladder."""
        with self._lock:
            competitors = self.store.list_competitors()
            baseline = max((c.baseline_rank for c in competitors), default=0) + 1
            competitor = Competitor(
                competitor_id=new_id(),
                name=name,
                baseline_rank=baseline,
                current_rank=len(competitors) + 1,
                email=email,
                notes=notes,
            )
            self.store.add_competitor(competitor)
        self.logger.info(f"Added {name} at rank {competitor.current_rank}")
        return competitor

    def set_competitor_active(self, competitor_id: str, active: bool) -> Competitor:
        """Activate or deactivate a competitor; their rank slot is kept either way."""
        with self._lock:
            competitor = replace(self.store.get_competitor(competitor_id), is_active=active)
            self.store.update_competitor(competitor)
        self.logger.info(f"{competitor.name} is now {'active' if active else 'inactive'}")
        return competitor

    def delete_competitor(self, competitor_id: str) -> RebuildResult:
        """
        Delete a competitor with no history.

        Raises:
            CompetitorInUse: if any contest or adjustment references them
        """
        with self._lock:
            competitor = self.store.get_competitor(competitor_id)
            in_contests = any(c.involves(competitor_id) for c in self.store.list_contest_records())
            if in_contests or self.rank_history(competitor_id):
                raise CompetitorInUse(
                    f"{competitor.name} is referenced by contests or timeline events; deactivate instead"
                )
            self.store.delete_competitor(competitor_id)
            self.logger.info(f"Deleted {competitor.name}")
            return self.engine.rebuild()

    def set_initial_rankings(self, ranks: Mapping[str, int]) -> list[Competitor]:
        """
        Reset the ladder to a new starting order.

        Sets baseline and current rank of every competitor to the given
        values in one batch, then clears every contest and timeline event.

        Raises:
            InvalidInput: if ranks does not cover exactly the known competitors
            InvalidRank: if the ranks are not a permutation of 1..N
        """
        with self._lock:
            competitors = self.store.list_competitors()
            known = {c.competitor_id for c in competitors}
            if set(ranks) != known:
                raise InvalidInput("initial rankings must list every competitor exactly once")
            if sorted(ranks.values()) != list(range(1, len(competitors) + 1)):
                raise InvalidRank(f"initial ranks must be unique and run from 1 to {len(competitors)}")

            # Baselines go out as one batch before history is dropped
            self.store.write_competitor_ranks([
                {"competitor_id": cid, "current_rank": rank, "baseline_rank": rank}
                for cid, rank in ranks.items()
            ])
            self.store.clear_history()
            self.logger.warning(f"Ladder reset to initial rankings for {len(competitors)} competitors")
        return self.get_roster()

    # -- contests ----------------------------------------------------------

    def record_contest(
        self,
        competitor1_id: str,
        competitor2_id: str,
        scores: ContestScores,
        *,
        played_on: str | None = None,
        timestamp: float | None = None,
    ) -> ContestRecord:
        """
        Record a contest and rebuild the ladder.

        Args:
            timestamp: Position of the contest in replay order; defaults to now.
                Passing an earlier time inserts the contest into history.

        Raises:
            InvalidInput: if the scores do not decide a winner or both sides
                are the same competitor
            CompetitorNotFound: if either competitor is unknown
        """
        if competitor1_id == competitor2_id:
            raise InvalidInput("a contest needs two different competitors")
        winning_side = resolve_outcome(scores)

        with self._lock:
            self.store.get_competitor(competitor1_id)
            self.store.get_competitor(competitor2_id)

            created_at = timestamp if timestamp is not None else time.time()
            contest = ContestRecord(
                contest_id=new_id(),
                competitor1_id=competitor1_id,
                competitor2_id=competitor2_id,
                scores=scores,
                winning_side=winning_side,
                created_at=created_at,
                played_on=played_on,
            )

            # Audit as seen against the ladder right now; the rebuild corrects it
            current = WorkingRoster(sorted(self.store.list_competitors(), key=lambda c: c.current_rank))
            preview = apply_contest(current, contest)

            self.store.save_contest_record(contest)
            try:
                self.store.append_timeline_event(
                    ContestEvent(
                        event_id=new_id(),
                        contest_id=contest.contest_id,
                        timestamp=created_at,
                        old_rank=preview.old_rank,
                        new_rank=preview.new_rank,
                    )
                )
            except PersistenceFailure:
                # A contest without its event must not linger
                self.store.delete_contest_record(contest.contest_id)
                raise
            self.logger.info(
                f"Recorded contest {contest.contest_id}: side {winning_side} won, winner {preview.old_rank} -> {preview.new_rank}"
            )
            self.engine.rebuild()
        return contest

    def update_contest(
        self, contest_id: str, scores: ContestScores, played_on: str | None = None
    ) -> ContestRecord:
        """Correct the scores of a recorded contest and rebuild."""
        winning_side = resolve_outcome(scores)
        with self._lock:
            contest = self.store.get_contest_record(contest_id)
            contest = replace(
                contest,
                scores=scores,
                winning_side=winning_side,
                played_on=played_on if played_on is not None else contest.played_on,
            )
            self.store.save_contest_record(contest)
            self.logger.info(f"Updated contest {contest_id}: side {winning_side} won")
            self.engine.rebuild()
        return contest

    def delete_contest(self, contest_id: str) -> None:
        """Retract a contest together with its timeline event."""
        with self._lock:
            for event in self.store.list_timeline_events():
                if isinstance(event, ContestEvent) and event.contest_id == contest_id:
                    self.delete_event(event.event_id)
                    return
            # Contest without an event never affected ranks
            self.store.delete_contest_record(contest_id)

    # -- adjustments -------------------------------------------------------

    def record_manual_adjustment(
        self,
        competitor_id: str,
        target_rank: int,
        reason: str | None = None,
        actor: str | None = None,
        *,
        timestamp: float | None = None,
    ) -> AdjustmentEvent:
        """
        Move a competitor to target_rank and rebuild.

        Args:
            actor: Opaque identity of whoever ordered the change

        Raises:
            InvalidRank: if target_rank is outside 1..N
            CompetitorNotFound: if the competitor is unknown
        """
        with self._lock:
            total = len(self.store.list_competitors())
            if not 1 <= target_rank <= total:
                raise InvalidRank(f"rank must be between 1 and {total}, got {target_rank}")
            competitor = self.store.get_competitor(competitor_id)

            event = self.store.append_timeline_event(
                AdjustmentEvent(
                    event_id=new_id(),
                    competitor_id=competitor_id,
                    target_rank=target_rank,
                    timestamp=timestamp if timestamp is not None else time.time(),
                    reason=reason or self.config.default_reason,
                    actor=actor or self.config.default_actor,
                    old_rank=competitor.current_rank,
                    new_rank=target_rank,
                )
            )
            self.logger.info(
                f"{event.actor} moved {competitor.name} from {competitor.current_rank} to {target_rank}: {event.reason}"
            )
            self.engine.rebuild()
        return event

    # -- timeline ----------------------------------------------------------

    def delete_event(self, event_id: str) -> None:
        """
        Remove an event from the timeline and rebuild.

        Removing a contest event also removes its contest record.

        Raises:
            EventNotFound: if no such event exists
        """
        with self._lock:
            events = {e.event_id: e for e in self.store.list_timeline_events()}
            if event_id not in events:
                raise EventNotFound(f"event {event_id} not found")
            event = events[event_id]
            self.store.delete_timeline_event(event_id)
            if isinstance(event, ContestEvent):
                try:
                    self.store.delete_contest_record(event.contest_id)
                except ContestNotFound:
                    self.logger.warning(f"Contest {event.contest_id} was already gone")
            self.logger.info(f"Deleted {event.kind} event {event_id}")
            self.engine.rebuild()

    def get_timeline(self) -> list[TimelineEvent]:
        """All events in replay order."""
        return replay_order(self.store.list_timeline_events())

    def rank_history(self, competitor_id: str) -> list[TimelineEvent]:
        """Events, in replay order, that involve a competitor."""
        participants = {
            c.contest_id: (c.competitor1_id, c.competitor2_id)
            for c in self.store.list_contest_records()
        }
        return [
            e for e in self.get_timeline()
            if references_competitor(e, competitor_id, participants)
        ]

    # -- reads -------------------------------------------------------------

    def get_roster(self) -> list[Competitor]:
        """Every competitor in current_rank order."""
        return sorted(self.store.list_competitors(), key=lambda c: c.current_rank)

    def get_active_leaderboard(self) -> list[LeaderboardEntry]:
        return active_leaderboard(self.store.list_competitors())

    def competitor_stats(self, competitor_id: str) -> CompetitorStats:
        self.store.get_competitor(competitor_id)
        return competitor_stats(competitor_id, self.store.list_contest_records())

    # -- repair ------------------------------------------------------------

    def normalize_all(self) -> RankAnomalies:
        """
        Repair gaps and duplicates in stored ranks.

        Returns:
            The anomalies found before repair
        """
        with self._lock:
            competitors = self.store.list_competitors()
            anomalies = rank_anomalies(competitors)
            if anomalies.missing:
                self.logger.warning(f"Missing ranks detected: {anomalies.missing}")
            for rank, count in anomalies.duplicates.items():
                self.logger.warning(f"Duplicate rank {rank}: {count} competitors")

            normalized = normalize_ranks(competitors)
            written = self.store.write_competitor_ranks(
                [{"competitor_id": c.competitor_id, "current_rank": c.current_rank} for c in normalized]
            )
            self.logger.info(f"Normalization complete: {written} ranks written")
        return anomalies
