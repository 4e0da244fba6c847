"""
Review Insight CLI
==================

Command-line interface for the review analysis pipeline over JSON review
dumps (an array of records, or an object with a "reviews" array).

Commands:
    analyze   - Run the full pipeline and write the aggregated result as JSON
    summary   - Print summary statistics and the ranked insight digest

Usage:
    python -m src.orchestrator.cli analyze reviews.json --period month --output result.json
    python -m src.orchestrator.cli analyze reviews.json --csv reviews.csv --csv-dialect standard
    python -m src.orchestrator.cli summary reviews.json --versions 2.0.0 2.1.0
    python -m src.orchestrator.cli --json-logs analyze reviews.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..reviews.review_models import AggregatedResult, TimePeriod
from ..reviews.review_options import CSV_DIALECTS, InvalidOptionsError
from .logging_config import setup_logging_from_settings, setup_logging
from .review_pipeline import AnalysisJob, AnalysisJobRunner, JobStatus

logger = logging.getLogger(__name__)


def load_records(path: str) -> List[Any]:
    """Read review records from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("reviews", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of reviews")
    return data


def build_option_overrides(args) -> Dict[str, Any]:
    """Option overrides from CLI flags (unset flags keep the defaults)."""
    return {
        "time_period": args.period,
        "max_data_points": args.max_data_points,
        "cluster_threshold": args.threshold,
        "csv_dialect": getattr(args, "csv_dialect", None),
    }


def _run_job(args) -> Optional[AnalysisJob]:
    records = load_records(args.input)
    runner = AnalysisJobRunner(use_cache=False)
    job = runner.run(
        lambda: records,
        source=Path(args.input).name,
        options=build_option_overrides(args),
        app_versions=args.versions,
    )
    if job.status != JobStatus.COMPLETED:
        print(f"ERROR: Analysis failed: {job.error}", file=sys.stderr)
        return None
    return job


def cmd_analyze(args):
    """Run the pipeline and write the result."""
    try:
        job = _run_job(args)
    except InvalidOptionsError as e:
        print(f"ERROR: Invalid options: {e}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as e:
        print(f"ERROR: Could not read {args.input}: {e}", file=sys.stderr)
        return 1

    if job is None:
        return 1

    result: AggregatedResult = job.result
    payload = result.to_dict()
    payload["job"] = job.get_summary()
    rendered = json.dumps(payload, indent=2 if args.pretty else None, ensure_ascii=False, default=str)

    if args.output:
        Path(args.output).write_text(rendered, encoding="utf-8")
        print(f"Result written to {args.output}", file=sys.stderr)
    else:
        print(rendered)

    if args.csv:
        Path(args.csv).write_text(result.export.csv, encoding="utf-8")
        print(f"CSV export written to {args.csv}", file=sys.stderr)

    return 0


def cmd_summary(args):
    """Print summary statistics and insights."""
    try:
        job = _run_job(args)
    except InvalidOptionsError as e:
        print(f"ERROR: Invalid options: {e}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as e:
        print(f"ERROR: Could not read {args.input}: {e}", file=sys.stderr)
        return 1

    if job is None:
        return 1

    result: AggregatedResult = job.result
    summary = result.summary
    sentiment = summary.sentiment_distribution
    trend = result.trends.overall

    print("=" * 60)
    print(f"REVIEW INSIGHTS: {job.source}")
    print("=" * 60)
    print(f"Reviews: {summary.total_reviews}")
    print(f"Average rating: {summary.average_rating:.2f}")
    print(f"Sentiment: {sentiment.positive} positive / {sentiment.neutral} neutral / {sentiment.negative} negative")
    print(f"Trend ({trend.time_period.value}): {trend.trend.value} ({trend.percent_change:+.1f}%)")
    print()

    if result.top_features:
        print("Top feature requests:")
        for feature in result.top_features:
            print(f"  - {feature.name} ({feature.count} reviews, priority {feature.priority.value})")
        print()

    if result.critical_bugs:
        print("Critical bugs:")
        for bug in result.critical_bugs:
            versions = f", versions {', '.join(bug.affected_versions)}" if bug.affected_versions else ""
            print(f"  - {bug.name} ({bug.count} reviews, severity {bug.severity.value}{versions})")
        print()

    print("Insights:")
    if not result.insights:
        print("  (none)")
    for i, insight in enumerate(result.insights, 1):
        print(f"{i}. [{insight.priority.value.upper()}] {insight.title}")
        print(f"   {insight.description}")
        if insight.recommendation:
            print(f"   -> {insight.recommendation}")

    return 0


def _add_run_arguments(sub):
    sub.add_argument("input", help="JSON file with review records")
    sub.add_argument(
        "--period",
        choices=[p.value for p in TimePeriod],
        help="Trend bucket granularity (default: week)",
    )
    sub.add_argument(
        "--max-data-points",
        type=int,
        help="Number of trend buckets (default: 12)",
    )
    sub.add_argument(
        "--threshold",
        type=float,
        help="Cluster merge threshold between 0 and 1 (default: 0.6)",
    )
    sub.add_argument(
        "--versions",
        nargs="+",
        help="Known app versions for affected-version detection",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="review-insights",
        description="Review Insight Pipeline CLI",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON structured logs",
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file (rotated)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Run the pipeline and write the result JSON")
    _add_run_arguments(analyze_parser)
    analyze_parser.add_argument(
        "--output", "-o",
        help="Write the result JSON to this file instead of stdout",
    )
    analyze_parser.add_argument(
        "--csv",
        help="Also write the CSV export to this file",
    )
    analyze_parser.add_argument(
        "--csv-dialect",
        choices=CSV_DIALECTS,
        help="CSV export dialect (default: legacy)",
    )
    analyze_parser.add_argument(
        "--pretty",
        action="store_true",
        help="Indent the result JSON",
    )

    # summary command
    summary_parser = subparsers.add_parser("summary", help="Print summary statistics and insights")
    _add_run_arguments(summary_parser)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.json_logs or args.log_file:
        setup_logging(
            level="DEBUG" if args.verbose else "INFO",
            json_output=args.json_logs,
            log_file=args.log_file,
        )
    else:
        setup_logging_from_settings(verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "analyze": cmd_analyze,
        "summary": cmd_summary,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
