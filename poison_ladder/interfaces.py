"""
Abstract base classes defining the persistence boundary of the ladder.

All interfaces are synchronous; every method is an I/O boundary of a rebuild.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import NotRequired, TypedDict

from .exceptions import EventNotFound, PersistenceFailure
from .logging_config import get_logger
from .models import Competitor, ContestRecord, TimelineEvent

logger = get_logger("interfaces")


class RankUpdate(TypedDict):
    """One row of a batch rank write; baseline_rank is only set on a reset."""
    competitor_id: str
    current_rank: int
    baseline_rank: NotRequired[int]


class AuditUpdate(TypedDict):
    """Audit fields of one event as observed by a replay."""
    event_id: str
    old_rank: int | None
    new_rank: int | None
    note: str


class LadderStore(ABC):
    """Interface for persisting competitors, contests and timeline events."""

    @abstractmethod
    def list_competitors(self) -> list[Competitor]:
        """Return all competitors, active and inactive."""
        pass

    @abstractmethod
    def get_competitor(self, competitor_id: str) -> Competitor:
        """
        Get a specific competitor by ID.

        Raises:
            CompetitorNotFound: if no such competitor exists
        """
        pass

    @abstractmethod
    def add_competitor(self, competitor: Competitor) -> None:
        """Insert a new competitor."""
        pass

    @abstractmethod
    def update_competitor(self, competitor: Competitor) -> None:
        """Replace the stored competitor with the same ID."""
        pass

    @abstractmethod
    def delete_competitor(self, competitor_id: str) -> None:
        """Remove a competitor. Callers check history references first."""
        pass

    @abstractmethod
    def write_competitor_ranks(self, updates: Sequence[RankUpdate]) -> int:
        """
        Write current_rank (and baseline_rank where given) for many
        competitors as one all-or-nothing batch.

        Returns:
            Number of competitors written

        Raises:
            PersistenceFailure: if the batch could not be written; no rank
                from the batch is visible afterwards
        """
        pass

    @abstractmethod
    def get_contest_record(self, contest_id: str) -> ContestRecord:
        """
        Get a specific contest by ID.

        Raises:
            ContestNotFound: if no such contest exists
        """
        pass

    @abstractmethod
    def list_contest_records(self) -> list[ContestRecord]:
        """Return all stored contests."""
        pass

    @abstractmethod
    def save_contest_record(self, contest: ContestRecord) -> None:
        """Insert or replace a contest record."""
        pass

    @abstractmethod
    def delete_contest_record(self, contest_id: str) -> None:
        """Remove a contest record."""
        pass

    @abstractmethod
    def list_timeline_events(self) -> list[TimelineEvent]:
        """Return all timeline events in no guaranteed order."""
        pass

    @abstractmethod
    def append_timeline_event(self, event: TimelineEvent) -> TimelineEvent:
        """
        Append an event to the timeline.

        The store assigns the event's monotonic ``sequence``.

        Returns:
            The stored event
        """
        pass

    @abstractmethod
    def update_timeline_event_audit(
        self, event_id: str, old_rank: int | None, new_rank: int | None, note: str
    ) -> None:
        """Overwrite the audit fields of an event."""
        pass

    def update_timeline_event_audits(self, audits: Sequence[AuditUpdate]) -> list[str]:
        """
        Overwrite the audit fields of many events.

        A failed event does not stop the others. Stores that rewrite whole
        files override this to write the batch once.

        Returns:
            IDs of the events whose audit could not be written
        """
        failed = list[str]()
        for audit in audits:
            try:
                self.update_timeline_event_audit(
                    audit["event_id"], audit["old_rank"], audit["new_rank"], audit["note"]
                )
            except (PersistenceFailure, EventNotFound) as e:
                logger.warning(f"Failed to update audit for event {audit['event_id']}: {e}")
                failed.append(audit["event_id"])
        return failed

    @abstractmethod
    def delete_timeline_event(self, event_id: str) -> None:
        """Remove an event from the timeline."""
        pass

    @abstractmethod
    def clear_history(self) -> None:
        """Remove every contest record and timeline event."""
        pass
