"""
Tests for JSONLLadderStore implementation.

Focus on persistence and data integrity.
"""

import json
import tempfile
from collections.abc import Iterable
from pathlib import Path

import pytest

from poison_ladder.exceptions import CompetitorNotFound, ContestNotFound, EventNotFound, PersistenceFailure
from poison_ladder.models import AdjustmentEvent, Competitor, ContestEvent, ContestRecord, ContestScores
from poison_ladder.rebuild import RebuildEngine
from poison_ladder.storage.jsonl_storage import JSONLLadderStore


def make_competitor(name: str, rank: int) -> Competitor:
    return Competitor(competitor_id=name.lower(), name=name, baseline_rank=rank, current_rank=rank)


class RewriteCountingStore(JSONLLadderStore):
    """File store that counts rewrites of events.jsonl."""

    def __init__(self, data_dir: Path):
        super().__init__(data_dir)
        self.event_rewrites: int = 0

    def _rewrite(self, path: Path, lines: Iterable[str]) -> None:
        if path == self.events_path:
            self.event_rewrites += 1
        super()._rewrite(path, lines)


def make_contest(contest_id: str = "c1", tiebreak: tuple[int, int] | None = None) -> ContestRecord:
    return ContestRecord(
        contest_id=contest_id,
        competitor1_id="bob",
        competitor2_id="alice",
        scores=ContestScores(set1=(6, 4), set2=(3, 6), tiebreak=tiebreak),
        winning_side=1,
        created_at=10.0,
        played_on="2024-05-01",
    )


class TestJSONLLadderStore:
    """Test JSONLLadderStore behavior through public interface."""

    def test_missing_files_read_as_empty(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONLLadderStore(Path(temp_dir) / "new")

            assert storage.list_competitors() == []
            assert storage.list_contest_records() == []
            assert storage.list_timeline_events() == []
            assert storage.get_event_count() == 0

    def test_competitor_round_trip(self) -> None:
        """Competitors written by one store are read by another."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLLadderStore(Path(temp_dir))
            alice = Competitor(
                competitor_id="alice",
                name="Alice",
                baseline_rank=1,
                current_rank=1,
                email="alice@example.com",
                notes="left-handed",
            )

            # Act
            storage.add_competitor(alice)
            loaded = JSONLLadderStore(Path(temp_dir)).get_competitor("alice")

            # Assert
            assert loaded == alice
            with pytest.raises(CompetitorNotFound):
                storage.get_competitor("nobody")

    def test_contest_round_trip_keeps_score_pairs(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLLadderStore(Path(temp_dir))
            contest = make_contest(tiebreak=(10, 7))

            # Act
            storage.save_contest_record(contest)
            loaded = storage.get_contest_record("c1")

            # Assert
            assert loaded == contest
            assert loaded.scores.set1 == (6, 4), "Score pairs should load as tuples"
            assert loaded.scores.tiebreak == (10, 7)

    def test_saving_existing_contest_replaces_it(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONLLadderStore(Path(temp_dir))
            storage.save_contest_record(make_contest())
            storage.save_contest_record(make_contest("c2"))

            edited = make_contest()
            edited.winning_side = 2
            storage.save_contest_record(edited)

            contests = {c.contest_id: c for c in storage.list_contest_records()}
            assert len(contests) == 2
            assert contests["c1"].winning_side == 2

    def test_delete_contest(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONLLadderStore(Path(temp_dir))
            storage.save_contest_record(make_contest())

            storage.delete_contest_record("c1")

            assert storage.list_contest_records() == []
            with pytest.raises(ContestNotFound):
                storage.delete_contest_record("c1")

    def test_events_keep_their_kind_and_sequence(self) -> None:
        """Both event kinds load back as the right type with increasing sequence."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLLadderStore(Path(temp_dir))

            # Act
            storage.append_timeline_event(ContestEvent(event_id="e1", contest_id="c1", timestamp=5.0))
            storage.append_timeline_event(
                AdjustmentEvent(
                    event_id="e2",
                    competitor_id="alice",
                    target_rank=1,
                    timestamp=5.0,
                    reason="returning champion",
                    actor="club-secretary",
                )
            )
            events = JSONLLadderStore(Path(temp_dir)).list_timeline_events()

            # Assert
            assert len(events) == 2
            first, second = events
            assert isinstance(first, ContestEvent)
            assert first.sequence == 1
            assert isinstance(second, AdjustmentEvent)
            assert second.sequence == 2
            assert second.actor == "club-secretary"
            assert second.reason == "returning champion"

    def test_audit_update_rewrites_only_audit_fields(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLLadderStore(Path(temp_dir))
            storage.append_timeline_event(ContestEvent(event_id="e1", contest_id="c1", timestamp=5.0))

            # Act
            storage.update_timeline_event_audit("e1", 3, 1, "Bob beat Alice: 3 -> 1")

            # Assert
            (event,) = storage.list_timeline_events()
            assert isinstance(event, ContestEvent)
            assert (event.old_rank, event.new_rank, event.note) == (3, 1, "Bob beat Alice: 3 -> 1")
            assert event.contest_id == "c1"
            assert event.sequence == 1
            with pytest.raises(EventNotFound):
                storage.update_timeline_event_audit("missing", None, None, "")

    def test_delete_event(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONLLadderStore(Path(temp_dir))
            storage.append_timeline_event(ContestEvent(event_id="e1", contest_id="c1", timestamp=1.0))
            storage.append_timeline_event(ContestEvent(event_id="e2", contest_id="c2", timestamp=2.0))

            storage.delete_timeline_event("e1")

            assert [e.event_id for e in storage.list_timeline_events()] == ["e2"]
            with pytest.raises(EventNotFound):
                storage.delete_timeline_event("e1")

    def test_corrupted_lines_are_skipped(self) -> None:
        """Invalid JSON lines should be skipped gracefully."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLLadderStore(Path(temp_dir))
            storage.append_timeline_event(ContestEvent(event_id="e1", contest_id="c1", timestamp=1.0))
            with open(Path(temp_dir) / "events.jsonl", "a") as f:
                _ = f.write("{not json\n")
                _ = f.write(json.dumps({"kind": "unknown", "event_id": "x"}) + "\n")
                _ = f.write("\n")
            storage.append_timeline_event(ContestEvent(event_id="e2", contest_id="c2", timestamp=2.0))

            # Act
            events = storage.list_timeline_events()

            # Assert
            assert [e.event_id for e in events] == ["e1", "e2"], "Only valid events should load"
            assert events[1].sequence == 2

    def test_rank_batch_with_unknown_id_writes_nothing(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLLadderStore(Path(temp_dir))
            storage.add_competitor(make_competitor("Alice", 1))
            storage.add_competitor(make_competitor("Bob", 2))
            before = (Path(temp_dir) / "competitors.json").read_text()

            # Act
            with pytest.raises(PersistenceFailure):
                storage.write_competitor_ranks([
                    {"competitor_id": "alice", "current_rank": 2},
                    {"competitor_id": "ghost", "current_rank": 1},
                ])

            # Assert
            assert (Path(temp_dir) / "competitors.json").read_text() == before
            assert storage.get_competitor("alice").current_rank == 1

    def test_rank_batch_updates_every_competitor(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONLLadderStore(Path(temp_dir))
            storage.add_competitor(make_competitor("Alice", 1))
            storage.add_competitor(make_competitor("Bob", 2))

            written = storage.write_competitor_ranks([
                {"competitor_id": "alice", "current_rank": 2},
                {"competitor_id": "bob", "current_rank": 1},
            ])

            assert written == 2
            assert {c.name: c.current_rank for c in storage.list_competitors()} == {"Alice": 2, "Bob": 1}

    def test_corrupted_competitor_table_raises(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONLLadderStore(Path(temp_dir))
            _ = (Path(temp_dir) / "competitors.json").write_text("[{broken")

            with pytest.raises(PersistenceFailure):
                storage.list_competitors()

    def test_clear_history_keeps_competitors(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONLLadderStore(Path(temp_dir))
            storage.add_competitor(make_competitor("Alice", 1))
            storage.save_contest_record(make_contest())
            storage.append_timeline_event(ContestEvent(event_id="e1", contest_id="c1", timestamp=1.0))

            storage.clear_history()

            assert storage.list_contest_records() == []
            assert storage.list_timeline_events() == []
            assert len(storage.list_competitors()) == 1

    def test_rebuild_over_files(self) -> None:
        """The rebuild engine works end to end against the file store."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLLadderStore(Path(temp_dir))
            storage.add_competitor(make_competitor("Alice", 1))
            storage.add_competitor(make_competitor("Bob", 2))
            storage.save_contest_record(make_contest())
            storage.append_timeline_event(ContestEvent(event_id="e1", contest_id="c1", timestamp=10.0))

            # Act
            result = RebuildEngine(storage).rebuild()

            # Assert
            assert result.success
            reloaded = JSONLLadderStore(Path(temp_dir))
            assert {c.name: c.current_rank for c in reloaded.list_competitors()} == {"Bob": 1, "Alice": 2}
            (event,) = reloaded.list_timeline_events()
            assert (event.old_rank, event.new_rank) == (2, 1)
            assert event.note == "Bob beat Alice: 2 -> 1"

    def test_append_does_not_modify_callers_event(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONLLadderStore(Path(temp_dir))
            storage.append_timeline_event(ContestEvent(event_id="e1", contest_id="c1", timestamp=1.0))
            event = ContestEvent(event_id="e2", contest_id="c2", timestamp=2.0)

            stored = storage.append_timeline_event(event)

            assert stored.sequence == 2
            assert event.sequence == 0, "Caller's event keeps its original sequence"

    def test_batch_audit_update_rewrites_events_once(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = RewriteCountingStore(Path(temp_dir))
            for i in range(1, 4):
                storage.append_timeline_event(ContestEvent(event_id=f"e{i}", contest_id=f"c{i}", timestamp=float(i)))

            # Act
            failed = storage.update_timeline_event_audits([
                {"event_id": "e1", "old_rank": 3, "new_rank": 1, "note": "first"},
                {"event_id": "missing", "old_rank": 1, "new_rank": 1, "note": "lost"},
                {"event_id": "e3", "old_rank": 2, "new_rank": 2, "note": "third"},
            ])

            # Assert
            assert failed == ["missing"]
            assert storage.event_rewrites == 1, "Whole batch is one rewrite"
            events = {e.event_id: e for e in storage.list_timeline_events()}
            assert (events["e1"].old_rank, events["e1"].new_rank, events["e1"].note) == (3, 1, "first")
            assert events["e2"].note == ""
            assert events["e3"].note == "third"

    def test_rebuild_rewrites_events_once(self) -> None:
        """A backdated contest changes every later audit in a single rewrite."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = RewriteCountingStore(Path(temp_dir))
            storage.add_competitor(make_competitor("Alice", 1))
            storage.add_competitor(make_competitor("Bob", 2))
            for i in range(1, 4):
                storage.save_contest_record(make_contest(f"c{i}"))
                storage.append_timeline_event(ContestEvent(event_id=f"e{i}", contest_id=f"c{i}", timestamp=float(i)))

            # Act
            result = RebuildEngine(storage).rebuild()

            # Assert
            assert result.success
            assert storage.event_rewrites == 1
            assert all(e.note.startswith("Bob beat Alice") for e in storage.list_timeline_events())

    def test_rank_batch_can_set_baselines(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONLLadderStore(Path(temp_dir))
            storage.add_competitor(make_competitor("Alice", 1))
            storage.add_competitor(make_competitor("Bob", 2))

            storage.write_competitor_ranks([
                {"competitor_id": "alice", "current_rank": 2, "baseline_rank": 2},
                {"competitor_id": "bob", "current_rank": 1, "baseline_rank": 1},
            ])

            reloaded = {c.name: (c.baseline_rank, c.current_rank) for c in storage.list_competitors()}
            assert reloaded == {"Alice": (2, 2), "Bob": (1, 1)}
