"""
In-memory storage implementation.

Dict-backed LadderStore for tests and embedding. Records are copied on the
way in and out so callers never share state with the store.
"""

import copy
from collections.abc import Sequence

from typing_extensions import override

from ..exceptions import (
    CompetitorNotFound,
    ContestNotFound,
    EventNotFound,
    InvalidInput,
    PersistenceFailure,
)
from ..interfaces import LadderStore, RankUpdate
from ..logging_config import get_logger
from ..models import Competitor, ContestRecord, TimelineEvent

logger = get_logger("memory_storage")


class MemoryLadderStore(LadderStore):
    """Volatile store keeping everything in dictionaries."""

    def __init__(self) -> None:
        self.competitors = dict[str, Competitor]()
        self.contests = dict[str, ContestRecord]()
        self.events = dict[str, TimelineEvent]()
        self._next_sequence: int = 1

    @override
    def list_competitors(self) -> list[Competitor]:
        return [copy.deepcopy(c) for c in self.competitors.values()]

    @override
    def get_competitor(self, competitor_id: str) -> Competitor:
        if competitor_id not in self.competitors:
            raise CompetitorNotFound(f"competitor {competitor_id} not found")
        return copy.deepcopy(self.competitors[competitor_id])

    @override
    def add_competitor(self, competitor: Competitor) -> None:
        if competitor.competitor_id in self.competitors:
            raise InvalidInput(f"competitor {competitor.competitor_id} already exists")
        self.competitors[competitor.competitor_id] = copy.deepcopy(competitor)

    @override
    def update_competitor(self, competitor: Competitor) -> None:
        if competitor.competitor_id not in self.competitors:
            raise CompetitorNotFound(f"competitor {competitor.competitor_id} not found")
        self.competitors[competitor.competitor_id] = copy.deepcopy(competitor)

    @override
    def delete_competitor(self, competitor_id: str) -> None:
        if self.competitors.pop(competitor_id, None) is None:
            raise CompetitorNotFound(f"competitor {competitor_id} not found")

    @override
    def write_competitor_ranks(self, updates: Sequence[RankUpdate]) -> int:
        unknown = [u["competitor_id"] for u in updates if u["competitor_id"] not in self.competitors]
        if unknown:
            raise PersistenceFailure(f"rank batch references unknown competitors: {unknown}")
        for update in updates:
            self.competitors[update["competitor_id"]].current_rank = update["current_rank"]
            if "baseline_rank" in update:
                self.competitors[update["competitor_id"]].baseline_rank = update["baseline_rank"]
        logger.debug(f"Wrote {len(updates)} ranks")
        return len(updates)

    @override
    def get_contest_record(self, contest_id: str) -> ContestRecord:
        if contest_id not in self.contests:
            raise ContestNotFound(f"contest {contest_id} not found")
        return copy.deepcopy(self.contests[contest_id])

    @override
    def list_contest_records(self) -> list[ContestRecord]:
        return [copy.deepcopy(c) for c in self.contests.values()]

    @override
    def save_contest_record(self, contest: ContestRecord) -> None:
        self.contests[contest.contest_id] = copy.deepcopy(contest)

    @override
    def delete_contest_record(self, contest_id: str) -> None:
        if self.contests.pop(contest_id, None) is None:
            raise ContestNotFound(f"contest {contest_id} not found")

    @override
    def list_timeline_events(self) -> list[TimelineEvent]:
        return [copy.deepcopy(e) for e in self.events.values()]

    @override
    def append_timeline_event(self, event: TimelineEvent) -> TimelineEvent:
        stored = copy.deepcopy(event)
        stored.sequence = self._next_sequence
        self._next_sequence += 1
        self.events[stored.event_id] = stored
        return copy.deepcopy(stored)

    @override
    def update_timeline_event_audit(
        self, event_id: str, old_rank: int | None, new_rank: int | None, note: str
    ) -> None:
        if event_id not in self.events:
            raise EventNotFound(f"event {event_id} not found")
        event = self.events[event_id]
        event.old_rank = old_rank
        event.new_rank = new_rank
        event.note = note

    @override
    def delete_timeline_event(self, event_id: str) -> None:
        if self.events.pop(event_id, None) is None:
            raise EventNotFound(f"event {event_id} not found")

    @override
    def clear_history(self) -> None:
        self.contests.clear()
        self.events.clear()
