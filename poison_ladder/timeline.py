"""
Timeline ordering helpers.
"""

from collections.abc import Iterable

from .models import AdjustmentEvent, ContestEvent, TimelineEvent


def replay_order(events: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    """Sort events by (timestamp, sequence), the order in which they replay."""
    return sorted(events, key=lambda e: (e.timestamp, e.sequence))


def describe(event: TimelineEvent) -> str:
    """One-line human summary of an event and its last audited move."""
    if isinstance(event, ContestEvent):
        subject = f"contest {event.contest_id}"
    else:
        subject = f"adjustment of {event.competitor_id} to #{event.target_rank} ({event.reason})"
    if event.old_rank is None or event.new_rank is None:
        return f"{subject}: not yet replayed"
    return f"{subject}: {event.old_rank} -> {event.new_rank}"


def references_competitor(
    event: TimelineEvent, competitor_id: str, contest_participants: dict[str, tuple[str, str]]
) -> bool:
    """
    Whether an event involves a competitor.

    Args:
        contest_participants: contest_id -> (competitor1_id, competitor2_id)
    """
    if isinstance(event, AdjustmentEvent):
        return event.competitor_id == competitor_id
    return competitor_id in contest_participants.get(event.contest_id, ())
