"""
CLI entry point for the poison ladder.

Parses arguments, wires the JSONL store into a LadderService and runs one
command.
"""

import argparse
import sys
from argparse import Namespace
from collections.abc import Sequence
from pathlib import Path

from prettytable import PrettyTable

from .config import LadderConfig
from .exceptions import ConfigurationError, InvalidInput, LadderError
from .logging_config import get_logger, setup_logging
from .models import Competitor, ContestScores
from .service import LadderService
from .storage.jsonl_storage import JSONLLadderStore
from .timeline import describe


def parse_pair(text: str) -> tuple[int, int]:
    """Parse a score such as ``6-4``."""
    try:
        first, second = text.split("-")
        return int(first), int(second)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a score like 6-4, got {text!r}") from None


def parse_args(argv: Sequence[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="poison_ladder",
        description="Poison Ladder - event-sourced ladder rankings",
    )
    _ = parser.add_argument(
        "--data-dir",
        default="ladder_data",
        help="Directory holding competitors and timeline files (default: ladder_data)"
    )
    _ = parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail rebuilds on unresolvable events instead of skipping them"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set logging level (default: WARNING)"
    )
    _ = parser.add_argument(
        "--log-file",
        help="Also write INFO and above to this rotating log file"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add-player", help="Add a competitor at the bottom of the ladder")
    _ = add.add_argument("name")
    _ = add.add_argument("--email")
    _ = add.add_argument("--notes", default="")

    remove = commands.add_parser("remove-player", help="Delete a competitor with no history")
    _ = remove.add_argument("player")

    for name, text in (("activate", "Reactivate a competitor"), ("deactivate", "Hide a competitor from the leaderboard")):
        toggle = commands.add_parser(name, help=text)
        _ = toggle.add_argument("player")

    _ = commands.add_parser("list", help="Show every competitor, active or not")
    _ = commands.add_parser("leaderboard", help="Show active competitors with display ranks")

    for name, text in (("record", "Record a contest"), ("edit-contest", "Correct a contest's scores")):
        contest = commands.add_parser(name, help=text)
        if name == "record":
            _ = contest.add_argument("player1")
            _ = contest.add_argument("player2")
        else:
            _ = contest.add_argument("contest_id")
        _ = contest.add_argument("--set1", type=parse_pair, required=True, help="Games in set 1, e.g. 6-4")
        _ = contest.add_argument("--set2", type=parse_pair, required=True, help="Games in set 2, e.g. 3-6")
        _ = contest.add_argument("--tiebreak", type=parse_pair, help="Tiebreak points, e.g. 10-8")
        _ = contest.add_argument("--retired", type=int, choices=[1, 2], help="Side that retired")
        _ = contest.add_argument("--played-on", help="Display date of the contest")

    adjust = commands.add_parser("adjust", help="Move a competitor to a rank")
    _ = adjust.add_argument("player")
    _ = adjust.add_argument("rank", type=int)
    _ = adjust.add_argument("--reason")
    _ = adjust.add_argument("--actor")

    delete = commands.add_parser("delete-event", help="Retract a timeline event")
    _ = delete.add_argument("event_id")

    _ = commands.add_parser("rebuild", help="Replay the timeline from the baseline")
    _ = commands.add_parser("normalize", help="Repair gaps and duplicates in stored ranks")
    _ = commands.add_parser("timeline", help="Show all events in replay order")

    stats = commands.add_parser("stats", help="Show a competitor's record")
    _ = stats.add_argument("player")

    init = commands.add_parser("init-ranks", help="Reset history and set starting ranks (NAME=RANK ...)")
    _ = init.add_argument("assignments", nargs="+")

    return parser.parse_args(argv)


def find_competitor(service: LadderService, key: str) -> Competitor:
    """Look a competitor up by ID or, failing that, by exact name."""
    roster = service.get_roster()
    for competitor in roster:
        if competitor.competitor_id == key:
            return competitor
    matches = [c for c in roster if c.name == key]
    if len(matches) != 1:
        raise InvalidInput(f"no unique competitor named or identified by {key!r}")
    return matches[0]


def scores_from_args(args: Namespace) -> ContestScores:
    return ContestScores(
        set1=args.set1,
        set2=args.set2,
        tiebreak=args.tiebreak,
        retired_side=args.retired,
    )


def print_roster(competitors: Sequence[Competitor]) -> None:
    table = PrettyTable()
    table.field_names = ["Rank", "Name", "Active", "Baseline", "ID"]
    table.align["Rank"] = "r"
    table.align["Name"] = "l"
    table.align["Baseline"] = "r"
    for c in competitors:
        table.add_row([c.current_rank, c.name, "yes" if c.is_active else "no", c.baseline_rank, c.competitor_id])
    print(table)


def print_leaderboard(service: LadderService) -> None:
    table = PrettyTable()
    table.field_names = ["#", "Name", "Ladder Rank"]
    table.align["#"] = "r"
    table.align["Name"] = "l"
    table.align["Ladder Rank"] = "r"
    for entry in service.get_active_leaderboard():
        table.add_row([entry.display_rank, entry.competitor.name, entry.competitor.current_rank])
    print(table)


def print_timeline(service: LadderService) -> None:
    table = PrettyTable()
    table.field_names = ["Seq", "Kind", "Old", "New", "Note", "Event ID"]
    table.align["Note"] = "l"
    for event in service.get_timeline():
        table.add_row([
            event.sequence,
            event.kind,
            "" if event.old_rank is None else event.old_rank,
            "" if event.new_rank is None else event.new_rank,
            event.note or describe(event),
            event.event_id,
        ])
    print(table)


def print_stats(service: LadderService, competitor: Competitor) -> None:
    stats = service.competitor_stats(competitor.competitor_id)
    table = PrettyTable()
    table.field_names = ["Name", "Played", "W", "L", "Win%", "Sets", "Games"]
    table.add_row([
        competitor.name,
        stats.contests,
        stats.wins,
        stats.losses,
        f"{stats.win_percentage:.1f}%",
        f"{stats.sets_won}-{stats.sets_lost}",
        f"{stats.games_won}-{stats.games_lost}",
    ])
    print(table)


def parse_assignments(service: LadderService, assignments: Sequence[str]) -> dict[str, int]:
    ranks = dict[str, int]()
    for item in assignments:
        key, sep, rank = item.rpartition("=")
        if not sep or not rank.isdigit():
            raise InvalidInput(f"expected NAME=RANK, got {item!r}")
        ranks[find_competitor(service, key).competitor_id] = int(rank)
    return ranks


def run_command(service: LadderService, args: Namespace) -> None:
    """Dispatch a parsed command."""
    logger = get_logger("cli")
    command: str = args.command
    logger.debug(f"Running command {command}")

    if command == "add-player":
        competitor = service.add_competitor(args.name, email=args.email, notes=args.notes)
        print(f"Added {competitor.name} at rank {competitor.current_rank} ({competitor.competitor_id})")
    elif command == "remove-player":
        competitor = find_competitor(service, args.player)
        service.delete_competitor(competitor.competitor_id)
        print(f"Removed {competitor.name}")
    elif command in ("activate", "deactivate"):
        competitor = find_competitor(service, args.player)
        service.set_competitor_active(competitor.competitor_id, command == "activate")
        print(f"{competitor.name} {command}d")
    elif command == "list":
        print_roster(service.get_roster())
    elif command == "leaderboard":
        print_leaderboard(service)
    elif command == "record":
        first = find_competitor(service, args.player1)
        second = find_competitor(service, args.player2)
        contest = service.record_contest(
            first.competitor_id, second.competitor_id, scores_from_args(args), played_on=args.played_on
        )
        winner = first if contest.winning_side == 1 else second
        print(f"Recorded contest {contest.contest_id}: {winner.name} won")
        print_leaderboard(service)
    elif command == "edit-contest":
        contest = service.update_contest(args.contest_id, scores_from_args(args), played_on=args.played_on)
        print(f"Updated contest {contest.contest_id}: side {contest.winning_side} won")
        print_leaderboard(service)
    elif command == "adjust":
        competitor = find_competitor(service, args.player)
        service.record_manual_adjustment(competitor.competitor_id, args.rank, args.reason, args.actor)
        print(f"Moved {competitor.name} to rank {args.rank}")
        print_leaderboard(service)
    elif command == "delete-event":
        service.delete_event(args.event_id)
        print(f"Deleted event {args.event_id}")
    elif command == "rebuild":
        result = service.rebuild_all()
        print(f"Rebuilt {result.success_count} ranks, {len(result.skipped_events)} events skipped, {result.error_count} errors")
        print_roster(result.updated_competitors)
    elif command == "normalize":
        anomalies = service.normalize_all()
        if anomalies.clean:
            print("Ranks were already dense")
        else:
            print(f"Repaired ranks: missing={anomalies.missing}, duplicates={anomalies.duplicates}")
    elif command == "timeline":
        print_timeline(service)
    elif command == "stats":
        print_stats(service, find_competitor(service, args.player))
    elif command == "init-ranks":
        print_roster(service.set_initial_rankings(parse_assignments(service, args.assignments)))
    else:
        raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    args = parse_args(argv)
    setup_logging(level=args.log_level, debug=args.debug, log_file=args.log_file)
    logger = get_logger("main")

    try:
        config = LadderConfig(data_dir=Path(args.data_dir), strict_replay=args.strict)
        service = LadderService(JSONLLadderStore(config.data_dir), config)
        run_command(service, args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"Error: {e}")
        sys.exit(2)
    except LadderError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        print("\nInterrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
