"""
productivity-engine: batch attribution over a date range from JSON exports.

    productivity-engine --shifts shifts.json --revenue hourly.json \
        --location loc-1 --start 2025-03-01 --end 2025-03-31 \
        --period week --json out.json --xlsx out.xlsx

Exit codes: 0 success, 2 invalid arguments or configuration.
"""
import argparse
import logging
import sys
from datetime import date
from typing import List, Optional

from productivity import config
from productivity.services.goal_classifier import GoalClassifier
from productivity.services.logging_config import setup_logging
from productivity.services.perf_monitor import tracker
from productivity.services.period_aggregator import aggregate_attributed_revenue
from productivity.services.productivity_pipeline import ProductivityEngine, ProductivitySources
from productivity.services.productivity_report import ProductivityReport
from productivity.services.sources import JsonFileSource
from productivity.services.team_classifier import TeamClassifier

logger = logging.getLogger("productivity-engine.cli")

EXIT_OK = 0
EXIT_USAGE = 2


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date (YYYY-MM-DD): {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="productivity-engine",
        description="Time-weighted revenue attribution and productivity hierarchy per location and day.",
    )
    parser.add_argument("--shifts", required=True, help="JSON array of shift records")
    parser.add_argument("--revenue", required=True, help="JSON array of hourly division revenue")
    parser.add_argument("--tagged", help="JSON array of worker-tagged POS revenue")
    parser.add_argument("--wages", help="JSON array of hourly wage profiles")
    parser.add_argument("--team-mapping", help="JSON team mapping (replaces the built-in table)")
    parser.add_argument("--goals", help="JSON goal thresholds")
    parser.add_argument("--location", action="append", required=True, dest="locations",
                        help="location id; repeat for several")
    parser.add_argument("--start", required=True, type=_iso_date)
    parser.add_argument("--end", required=True, type=_iso_date)
    parser.add_argument("--period", choices=config.PERIOD_TYPES, default="day")
    parser.add_argument("--json", dest="json_out", help="write unit results (+ periods) as JSON")
    parser.add_argument("--xlsx", dest="xlsx_out", help="write an xlsx workbook")
    parser.add_argument("--workers", type=int, default=config.DEFAULT_MAX_WORKERS,
                        help="parallel units (thread pool size)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return EXIT_OK if e.code == 0 else EXIT_USAGE

    setup_logging(config.LOG_LEVEL, config.LOG_JSON)

    if args.end < args.start:
        logger.error("--end is before --start")
        return EXIT_USAGE
    if args.workers < 1:
        logger.error("--workers must be at least 1")
        return EXIT_USAGE

    try:
        classifier = (
            TeamClassifier.from_file(args.team_mapping) if args.team_mapping else TeamClassifier.default()
        )
        goals = GoalClassifier.from_file(args.goals) if args.goals else GoalClassifier.default()
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_USAGE

    sources = ProductivitySources(
        shifts=JsonFileSource(args.shifts),
        hourly_revenue=JsonFileSource(args.revenue),
        tagged_revenue=JsonFileSource(args.tagged) if args.tagged else None,
        wages=JsonFileSource(args.wages) if args.wages else None,
    )
    engine = ProductivityEngine(classifier=classifier, goals=goals)
    try:
        results = engine.run_range(sources, args.locations, args.start, args.end, max_workers=args.workers)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read input: {e}")
        return EXIT_USAGE

    rows = [row for result in results for row in result.attributed_revenue]
    periods = aggregate_attributed_revenue(rows, args.period, goals)

    report = ProductivityReport()
    if args.json_out:
        with open(args.json_out, "w", encoding="utf-8") as f:
            f.write(report.to_json(results, periods))
    if args.xlsx_out:
        report.write_workbook(results, args.xlsx_out, periods)
    if not args.json_out and not args.xlsx_out:
        sys.stdout.write(report.to_json(results, periods) + "\n")

    logger.info("run complete", extra={"reason": str(tracker.get_metrics())})
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
