"""
JSONL storage implementation.

Persists contests and timeline events to append-only JSONL files and the
competitor table to a JSON snapshot. Audit updates, deletions and rank
batches rewrite the affected file through a temporary file and an atomic
rename, so a failed write never leaves a half-updated file behind.
"""

import json
import os
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import asdict, replace
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import override

from ..exceptions import (
    CompetitorNotFound,
    ContestNotFound,
    EventNotFound,
    InvalidInput,
    LadderError,
    PersistenceFailure,
)
from ..interfaces import AuditUpdate, LadderStore, RankUpdate
from ..logging_config import get_logger
from ..models import AdjustmentEvent, Competitor, ContestEvent, ContestRecord, TimelineEvent

# Module-level logger
logger = get_logger("jsonl_storage")

COMPETITORS_ADAPTER = TypeAdapter(list[Competitor])
CONTEST_ADAPTER = TypeAdapter(ContestRecord)
EVENT_ADAPTER: TypeAdapter[TimelineEvent] = TypeAdapter(
    Annotated[ContestEvent | AdjustmentEvent, Field(discriminator="kind")]
)


class JSONLLadderStore(LadderStore):
    """
    File-backed store.

    Layout inside ``data_dir``:
    - competitors.json: full competitor table, rewritten on every change
    - contests.jsonl: one contest record per line
    - events.jsonl: one timeline event per line, in append order
    """

    competitors_path: Path
    contests_path: Path
    events_path: Path

    def __init__(self, data_dir: Path):
        """
        Initialize JSONL storage.

        Args:
            data_dir: Directory holding the ladder files (created if missing)
        """
        data_dir = Path(data_dir)
        self.competitors_path = data_dir / "competitors.json"
        self.contests_path = data_dir / "contests.jsonl"
        self.events_path = data_dir / "events.jsonl"

        try:
            data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceFailure(f"cannot create data directory {data_dir}: {e}") from e

        logger.info(
            f"JSONL storage initialized: competitors={self.competitors_path}, contests={self.contests_path}, events={self.events_path}"
        )

    # -- low level helpers -------------------------------------------------

    def _rewrite(self, path: Path, lines: Iterable[str]) -> None:
        """Replace a file's contents atomically."""
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                for line in lines:
                    f.write(line)
                    f.write("\n")
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceFailure(f"failed to write {path}: {e}") from e

    def _append(self, path: Path, data: dict[str, Any]) -> None:
        try:
            with open(path, "a", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
                f.write("\n")
        except OSError as e:
            raise PersistenceFailure(f"failed to append to {path}: {e}") from e

    def _read_lines(self, path: Path) -> Iterator[dict[str, Any]]:
        """Yield decoded JSON objects, skipping corrupted lines."""
        if not path.exists():
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except OSError as e:
            raise PersistenceFailure(f"failed to read {path}: {e}") from e

        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
                assert isinstance(data, dict), "record must be a JSON object"
                yield data
            except (json.JSONDecodeError, AssertionError) as e:
                logger.warning(f"Skipping invalid JSON line in {path}: {e}")

    @staticmethod
    def _dump(record: object) -> str:
        return json.dumps(asdict(record), ensure_ascii=False)  # type: ignore[call-overload]

    # -- competitors -------------------------------------------------------

    def _load_competitors(self) -> dict[str, Competitor]:
        if not self.competitors_path.exists():
            return {}
        try:
            with open(self.competitors_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            competitors = COMPETITORS_ADAPTER.validate_python(raw)
        except OSError as e:
            raise PersistenceFailure(f"failed to read {self.competitors_path}: {e}") from e
        except (json.JSONDecodeError, PydanticValidationError, LadderError) as e:
            raise PersistenceFailure(f"corrupted competitor table {self.competitors_path}: {e}") from e
        return {c.competitor_id: c for c in competitors}

    def _save_competitors(self, competitors: dict[str, Competitor]) -> None:
        payload = json.dumps([asdict(c) for c in competitors.values()], indent=2, ensure_ascii=False)
        self._rewrite(self.competitors_path, [payload])

    @override
    def list_competitors(self) -> list[Competitor]:
        return list(self._load_competitors().values())

    @override
    def get_competitor(self, competitor_id: str) -> Competitor:
        competitors = self._load_competitors()
        if competitor_id not in competitors:
            raise CompetitorNotFound(f"competitor {competitor_id} not found")
        return competitors[competitor_id]

    @override
    def add_competitor(self, competitor: Competitor) -> None:
        competitors = self._load_competitors()
        if competitor.competitor_id in competitors:
            raise InvalidInput(f"competitor {competitor.competitor_id} already exists")
        competitors[competitor.competitor_id] = competitor
        self._save_competitors(competitors)
        logger.debug(f"Added competitor {competitor.name} ({competitor.competitor_id})")

    @override
    def update_competitor(self, competitor: Competitor) -> None:
        competitors = self._load_competitors()
        if competitor.competitor_id not in competitors:
            raise CompetitorNotFound(f"competitor {competitor.competitor_id} not found")
        competitors[competitor.competitor_id] = competitor
        self._save_competitors(competitors)

    @override
    def delete_competitor(self, competitor_id: str) -> None:
        competitors = self._load_competitors()
        if competitors.pop(competitor_id, None) is None:
            raise CompetitorNotFound(f"competitor {competitor_id} not found")
        self._save_competitors(competitors)

    @override
    def write_competitor_ranks(self, updates: Sequence[RankUpdate]) -> int:
        competitors = self._load_competitors()
        unknown = [u["competitor_id"] for u in updates if u["competitor_id"] not in competitors]
        if unknown:
            raise PersistenceFailure(f"rank batch references unknown competitors: {unknown}")
        for update in updates:
            competitors[update["competitor_id"]].current_rank = update["current_rank"]
            if "baseline_rank" in update:
                competitors[update["competitor_id"]].baseline_rank = update["baseline_rank"]
        # Single rewrite keeps the batch all-or-nothing
        self._save_competitors(competitors)
        logger.debug(f"Wrote {len(updates)} ranks to {self.competitors_path}")
        return len(updates)

    # -- contests ----------------------------------------------------------

    def _load_contests(self) -> dict[str, ContestRecord]:
        contests = dict[str, ContestRecord]()
        for data in self._read_lines(self.contests_path):
            try:
                contest = CONTEST_ADAPTER.validate_python(data)
            except (PydanticValidationError, LadderError) as e:
                logger.warning(f"Skipping invalid contest in {self.contests_path}: {e}")
                continue
            contests[contest.contest_id] = contest
        return contests

    @override
    def get_contest_record(self, contest_id: str) -> ContestRecord:
        contests = self._load_contests()
        if contest_id not in contests:
            raise ContestNotFound(f"contest {contest_id} not found")
        return contests[contest_id]

    @override
    def list_contest_records(self) -> list[ContestRecord]:
        return list(self._load_contests().values())

    @override
    def save_contest_record(self, contest: ContestRecord) -> None:
        contests = self._load_contests()
        if contest.contest_id not in contests:
            self._append(self.contests_path, asdict(contest))
            return
        contests[contest.contest_id] = contest
        self._rewrite(self.contests_path, (self._dump(c) for c in contests.values()))

    @override
    def delete_contest_record(self, contest_id: str) -> None:
        contests = self._load_contests()
        if contests.pop(contest_id, None) is None:
            raise ContestNotFound(f"contest {contest_id} not found")
        self._rewrite(self.contests_path, (self._dump(c) for c in contests.values()))

    # -- timeline ----------------------------------------------------------

    def _load_events(self) -> dict[str, TimelineEvent]:
        events = dict[str, TimelineEvent]()
        for data in self._read_lines(self.events_path):
            try:
                event = EVENT_ADAPTER.validate_python(data)
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid event in {self.events_path}: {e}")
                continue
            events[event.event_id] = event
        return events

    @override
    def list_timeline_events(self) -> list[TimelineEvent]:
        return list(self._load_events().values())

    @override
    def append_timeline_event(self, event: TimelineEvent) -> TimelineEvent:
        events = self._load_events()
        stored = replace(event, sequence=max((e.sequence for e in events.values()), default=0) + 1)
        self._append(self.events_path, asdict(stored))
        logger.debug(f"Appended {stored.kind} event {stored.event_id} (sequence {stored.sequence})")
        return stored

    @override
    def update_timeline_event_audit(
        self, event_id: str, old_rank: int | None, new_rank: int | None, note: str
    ) -> None:
        events = self._load_events()
        if event_id not in events:
            raise EventNotFound(f"event {event_id} not found")
        event = events[event_id]
        event.old_rank = old_rank
        event.new_rank = new_rank
        event.note = note
        self._rewrite(self.events_path, (self._dump(e) for e in events.values()))

    @override
    def update_timeline_event_audits(self, audits: Sequence[AuditUpdate]) -> list[str]:
        """Apply every audit in memory and rewrite events.jsonl once."""
        try:
            events = self._load_events()
        except PersistenceFailure as e:
            logger.warning(f"Failed to load events for {len(audits)} audits: {e}")
            return [a["event_id"] for a in audits]
        failed = list[str]()
        for audit in audits:
            event = events.get(audit["event_id"])
            if event is None:
                logger.warning(f"Cannot update audit, event {audit['event_id']} not found")
                failed.append(audit["event_id"])
                continue
            event.old_rank = audit["old_rank"]
            event.new_rank = audit["new_rank"]
            event.note = audit["note"]

        written = [a["event_id"] for a in audits if a["event_id"] not in failed]
        if not written:
            return failed
        try:
            self._rewrite(self.events_path, (self._dump(e) for e in events.values()))
        except PersistenceFailure as e:
            logger.warning(f"Failed to write {len(written)} audits: {e}")
            return failed + written
        logger.debug(f"Wrote {len(written)} audits to {self.events_path}")
        return failed

    @override
    def delete_timeline_event(self, event_id: str) -> None:
        events = self._load_events()
        if events.pop(event_id, None) is None:
            raise EventNotFound(f"event {event_id} not found")
        self._rewrite(self.events_path, (self._dump(e) for e in events.values()))

    @override
    def clear_history(self) -> None:
        self._rewrite(self.contests_path, [])
        self._rewrite(self.events_path, [])
        logger.info("Cleared all contests and timeline events")

    def get_event_count(self) -> int:
        """Get number of stored timeline events."""
        return len(self._load_events())
