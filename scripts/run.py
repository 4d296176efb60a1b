"""Listening Patterns -- CLI entry point."""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.config import load_settings, setup_logging
from src.engine import REPORT_TYPES, ListeningReportEngine
from src.errors import InvalidParameterError, UpstreamUnavailableError
from src.reporter import export_report_json, generate_report, render_markdown, to_json
from src.store import SQLiteEventStore, load_events_json

logger = logging.getLogger("listening_patterns")


def cmd_load(args, settings):
    """Import a JSON listens export into the SQLite store."""
    events = load_events_json(args.file)
    store = SQLiteEventStore(args.db or settings.db_path)
    store.init_db()
    inserted = store.insert_events(events)

    print(f"\nLoad complete:")
    print(f"  Listens in file: {len(events)}")
    print(f"  New listens stored: {inserted}")
    print(f"  Total listens: {store.count_events()}")


def _report_params(args):
    params = {}

    if args.type in ("yearly", "year_comparison"):
        params["year"] = args.year
        params["timezone"] = args.timezone
    else:
        params["start"] = args.start
        params["end"] = args.end
    if args.type == "year_comparison":
        params["previous_year"] = args.previous_year
    if args.type in ("sessions", "transitions", "yearly", "year_comparison"):
        params["gap_threshold_minutes"] = args.gap
    if args.type == "sessions":
        params["min_tracks"] = args.min_tracks
        params["source"] = args.source
    if args.type == "heatmap":
        params["timezone"] = args.timezone
        # Unset flag leaves the configured default in place
        params["normalize"] = True if args.normalize else None
    if args.type in ("novelty", "diversity"):
        params["granularity"] = args.granularity
    if args.type == "transitions":
        params["min_count"] = args.min_count
        params["include_self_transitions"] = args.include_self
    if args.type == "stats":
        params["limit"] = args.limit

    return params


def cmd_report(args, settings):
    """Build one report and print or write it."""
    store = SQLiteEventStore(args.db or settings.db_path)
    engine = ListeningReportEngine(store, settings)
    report = engine.generate(args.type, **_report_params(args))

    if args.out:
        if args.format == "json":
            export_report_json(report, args.out)
        else:
            generate_report(report, args.out)
        print(f"Report written to {args.out}")
    elif args.format == "json":
        print(to_json(report))
    else:
        print(render_markdown(report))


def build_parser():
    parser = argparse.ArgumentParser(
        description="Listening Patterns -- sessions, heatmaps, novelty, transitions and diversity"
    )
    parser.add_argument("--db", help="Path to the listens SQLite database")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # load
    load_p = subparsers.add_parser("load", help="Import a JSON listens export")
    load_p.add_argument("file", help="JSON file with a list of listens")

    # report
    report_p = subparsers.add_parser("report", help="Generate a report")
    report_p.add_argument("type", choices=REPORT_TYPES, help="Report to generate")
    report_p.add_argument("--start", help="Range start (ISO-8601, inclusive)")
    report_p.add_argument("--end", help="Range end (ISO-8601, inclusive)")
    report_p.add_argument("--gap", type=int, help="Session gap threshold in minutes")
    report_p.add_argument("--min-tracks", type=int, help="Minimum tracks per listed session")
    report_p.add_argument("--source", help="Only sessions from this source")
    report_p.add_argument("--timezone", help="IANA timezone for the heatmap and yearly patterns")
    report_p.add_argument("--normalize", action="store_true", help="Heatmap counts per week")
    report_p.add_argument("--granularity", choices=["day", "week", "month"],
                          help="Timeline bucket size")
    report_p.add_argument("--min-count", type=int, help="Minimum transition count")
    report_p.add_argument("--include-self", action="store_true",
                          help="Count transitions from an artist to itself")
    report_p.add_argument("--year", type=int, help="Calendar year for yearly reports")
    report_p.add_argument("--previous-year", type=int, help="Year to compare against (default: year - 1)")
    report_p.add_argument("--limit", type=int, help="Entries per top list in stats")
    report_p.add_argument("--format", choices=["md", "json"], default="md", help="Output format")
    report_p.add_argument("--out", help="Write the report to this file")

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    settings = load_settings(project_root / ".env")
    setup_logging(settings.log_level)

    try:
        if args.command == "load":
            cmd_load(args, settings)
        elif args.command == "report":
            cmd_report(args, settings)
        else:
            parser.print_help()
    except InvalidParameterError as e:
        print(f"ERROR: {e}")
        sys.exit(2)
    except UpstreamUnavailableError:
        logger.exception("Event store failure")
        print("ERROR: listen data unavailable")
        sys.exit(1)


if __name__ == "__main__":
    main()
