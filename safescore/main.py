"""
Command line entry point for the SafeScore prediction pipeline.

This module is the composition root: it owns the cache, the API client and
the history storage, and wires them into the commands:

    predict     Fetch fixtures, score them and print (optionally save) picks
    settle      Settle pending predictions against match results
    warm-cache  Pre-fetch standings tables into the cache
    stats       Show stored prediction accuracy
    schedule    Run settlement and warm-up periodically
"""

import argparse
import logging
import signal
import sys
import time
from datetime import date
from pathlib import Path
from typing import Optional

from safescore.cache import TTLCache
from safescore.config import Config
from safescore.fetcher import DAY_SPANS, FootballDataClient
from safescore.models import Prediction, RiskProfile
from safescore.predictor import run_prediction_pipeline
from safescore.reporter import format_accuracy, generate_daily_report, generate_prediction_report, generate_settlement_report
from safescore.results import BBCResultScraper, FootballDataResultSource, ResultSource
from safescore.scheduler import SETTLE_JOB_ID, WARM_JOB_ID, get_scheduler, get_scheduler_status, start_scheduler, stop_scheduler
from safescore.selector import parse_profile
from safescore.settlement import SettlementSummary, settle_pending
from safescore.storage import HistoryStorage
from safescore.telegram_notifier import send_predictions, send_settlement_summary
from safescore.utils import today_utc


# Configure logging
def setup_logging() -> None:
    """Configure logging for the application."""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_level = getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if Config.LOG_FILE:
        Config.ensure_directories()
        handlers.append(logging.FileHandler(Config.LOG_FILE))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers
    )


logger = logging.getLogger(__name__)


def _check_config(require_api_key: bool) -> bool:
    is_valid, errors = Config.validate(require_api_key=require_api_key)
    if not is_valid:
        logger.error("Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
    return is_valid


def build_client(cache: Optional[TTLCache] = None) -> FootballDataClient:
    return FootballDataClient(cache=cache or TTLCache(cache_dir=Config.CACHE_DIR))


def build_result_source(name: str, client: Optional[FootballDataClient] = None) -> ResultSource:
    """Create the result source selected on the command line."""
    if name == "api":
        return FootballDataResultSource(client or build_client())
    return BBCResultScraper()


def group_by_kickoff_date(predictions: list[Prediction]) -> dict[str, list[Prediction]]:
    """
    Group predictions by the UTC date of their kickoff.

    History records are keyed by match date so settlement asks the result
    feed for the day the match is played. A kickoff of "TBD" or any value
    without a leading ISO date is filed under today.
    """
    groups: dict[str, list[Prediction]] = {}
    for prediction in predictions:
        match_date = (prediction.match_time or "")[:10]
        try:
            date.fromisoformat(match_date)
        except ValueError:
            match_date = today_utc()
        groups.setdefault(match_date, []).append(prediction)
    return groups


# Commands

def cmd_predict(args: argparse.Namespace) -> int:
    if not _check_config(require_api_key=True):
        return 1

    leagues = args.leagues or Config.DEFAULT_LEAGUES
    profile: Optional[RiskProfile] = parse_profile(args.profile)

    logger.info("=" * 80)
    logger.info(f"Prediction run: leagues={leagues}, day={args.day}, profile={args.profile or 'generic'}")
    logger.info("=" * 80)

    client = build_client()
    predictions = run_prediction_pipeline(client, leagues, args.day, profile)

    if not predictions:
        print("No matches found")
        return 0

    if args.output:
        report = generate_prediction_report(predictions, Path(args.output))
    elif args.save:
        report = generate_daily_report(predictions)
    else:
        report = generate_prediction_report(predictions)
    print(report)

    if args.save:
        Config.ensure_directories()
        storage = HistoryStorage()
        for match_date, day_predictions in group_by_kickoff_date(predictions).items():
            if not storage.save_to_history(day_predictions, match_date):
                logger.error(f"Predictions for {match_date} could not be saved to history")
                return 1

    if args.notify:
        if send_predictions(predictions):
            logger.info("Telegram notification sent successfully")
        else:
            logger.debug("Telegram notification skipped (not configured or failed)")

    return 0


def run_settlement(
    source_name: str = "bbc",
    dates: Optional[list[str]] = None,
    notify: bool = False,
    client: Optional[FootballDataClient] = None
) -> SettlementSummary:
    """Settle pending predictions; shared by the settle command and the scheduler."""
    Config.ensure_directories()
    storage = HistoryStorage()
    source = build_result_source(source_name, client=client)

    summary = settle_pending(storage, source, dates=dates)

    print(generate_settlement_report(summary, storage.get_accuracy()))

    if notify and send_settlement_summary(summary):
        logger.info("Settlement summary sent to Telegram")

    return summary


def cmd_settle(args: argparse.Namespace) -> int:
    if not _check_config(require_api_key=args.source == "api"):
        return 1

    run_settlement(args.source, dates=args.date or None, notify=args.notify)
    return 0


def run_warm_cache(leagues: Optional[list[str]] = None, client: Optional[FootballDataClient] = None) -> int:
    """Warm the standings cache; returns the number of leagues available."""
    return (client or build_client()).warm_standings_cache(leagues)


def cmd_warm_cache(args: argparse.Namespace) -> int:
    if not _check_config(require_api_key=True):
        return 1

    if not Config.CACHE_DIR:
        logger.warning("CACHE_DIR is not set; warmed standings last only for this process")

    available = run_warm_cache(args.leagues)
    print(f"Standings cached for {available} league(s)")
    return 0 if available else 1


def cmd_stats(args: argparse.Namespace) -> int:
    if not _check_config(require_api_key=False):
        return 1

    Config.ensure_directories()
    storage = HistoryStorage()

    print(format_accuracy(storage.get_accuracy()))

    dates = storage.list_dates()
    print(f"\nStored dates: {len(dates)}" + (f" ({dates[-1]} .. {dates[0]})" if dates else ""))

    pending = storage.get_pending_items()
    if pending:
        print("\nPENDING")
        for date, item in pending:
            print(f"  {date}  {item.home_team} vs {item.away_team}  [{item.prediction}]")

    return 0


def cmd_schedule(args: argparse.Namespace) -> int:
    """
    Run settlement (and standings warm-up when an API key is set) periodically.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    if not _check_config(require_api_key=args.source == "api"):
        return 1

    logger.info("Starting in scheduled mode")

    # Setup signal handlers for graceful shutdown
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        stop_scheduler(wait=True)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    # One client, and therefore one cache, for the life of the process
    client = build_client() if Config.FOOTBALL_DATA_API_KEY else None

    def settle_job():
        return run_settlement(args.source, notify=args.notify, client=client).to_dict()

    warm_job = (lambda: run_warm_cache(client=client)) if client else None

    if not start_scheduler(settle_job, warm_job, settle_interval_hours=args.interval):
        logger.error("Failed to start scheduler")
        return 1

    status = get_scheduler_status()
    logger.info(f"Intervals: {status['intervals']}")
    for job_id, next_run in status["next_run_times"].items():
        logger.info(f"Next {job_id}: {next_run}")

    # Initial runs
    scheduler = get_scheduler()
    if warm_job:
        scheduler.run_now(WARM_JOB_ID)
    scheduler.run_now(SETTLE_JOB_ID)

    logger.info("Scheduler is running. Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        stop_scheduler(wait=True)
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="safescore",
        description="SafeScore football prediction and settlement pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Predict today's Premier League and La Liga matches and store them
  python -m safescore.main predict --leagues "Premier League" "La Liga" --save

  # Weekend over/under picks
  python -m safescore.main predict --day weekend --profile over-under

  # Settle pending predictions from the BBC results page
  python -m safescore.main settle

  # Settle a specific date from the football-data.org API
  python -m safescore.main settle --date 2026-01-10 --source api

  # Settle every 3 hours in the background
  python -m safescore.main schedule --interval 3
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    predict = subparsers.add_parser("predict", help="Generate predictions for upcoming fixtures")
    predict.add_argument("--leagues", nargs="+", default=None,
                         help="League names or codes (default: DEFAULT_LEAGUES)")
    predict.add_argument("--day", choices=sorted(DAY_SPANS), default="today",
                         help="Fixture window (default: today)")
    predict.add_argument("--profile", choices=[p.value for p in RiskProfile], default=None,
                         help="Preferred market family")
    predict.add_argument("--save", action="store_true", help="Store predictions in history and write the report under REPORT_OUTPUT_DIR")
    predict.add_argument("--notify", action="store_true", help="Send predictions to Telegram")
    predict.add_argument("--output", default=None, help="Also write the report to this file")
    predict.set_defaults(func=cmd_predict)

    settle = subparsers.add_parser("settle", help="Settle pending predictions")
    settle.add_argument("--date", nargs="+", default=None,
                        help="Dates to settle, YYYY-MM-DD (default: every date with pending items)")
    settle.add_argument("--source", choices=["bbc", "api"], default="bbc", help="Result source (default: bbc)")
    settle.add_argument("--notify", action="store_true", help="Send the summary to Telegram")
    settle.set_defaults(func=cmd_settle)

    warm = subparsers.add_parser("warm-cache", help="Pre-fetch standings into the cache")
    warm.add_argument("--leagues", nargs="+", default=None, help="League names or codes (default: all)")
    warm.set_defaults(func=cmd_warm_cache)

    stats = subparsers.add_parser("stats", help="Show prediction accuracy")
    stats.set_defaults(func=cmd_stats)

    schedule = subparsers.add_parser("schedule", help="Run settlement periodically")
    schedule.add_argument("--interval", type=int, default=None,
                          help="Hours between settlement runs (overrides SETTLE_INTERVAL_HOURS)")
    schedule.add_argument("--source", choices=["bbc", "api"], default="bbc", help="Result source (default: bbc)")
    schedule.add_argument("--notify", action="store_true", help="Send summaries to Telegram")
    schedule.set_defaults(func=cmd_schedule)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for failure, 130 when interrupted)
    """
    args = build_parser().parse_args(argv)

    setup_logging()

    try:
        return args.func(args)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
