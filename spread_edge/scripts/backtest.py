#!/usr/bin/env python3
"""
Point-in-time backtesting script.

Loads frozen games, line snapshots and ratings from CSV or Parquet files and
replays the edge pipeline at a decision label:
1. Ratings are read as of the snapshot capture time (no look-ahead)
2. Qualifying picks are graded against final scores
3. Results are bucketed by edge with significance vs break-even

Usage:
    python -m spread_edge.scripts.backtest --games games.csv --lines lines.csv \\
        --ratings ratings.csv --start 2023-08-01 --end 2024-01-31 --min-edge 1.0
    python -m spread_edge.scripts.backtest ... --seasons 2022 2023 --label t-30
    python -m spread_edge.scripts.backtest ... --json report.json
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from loguru import logger as engine_logger

from spread_edge.analysis.backtest_runner import BacktestConfig, BacktestResult, BacktestRunner
from spread_edge.config.constants import LineLabel, MarketType
from spread_edge.config.settings import get_settings
from spread_edge.dashboard.terminal import TerminalReport
from spread_edge.data.sources.memory import InMemoryStore
from spread_edge.errors import InvalidConfigError
from spread_edge.models.projector import ModelProjector

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

DECISION_LABELS = [label.value for label in LineLabel if label != LineLabel.CLOSE]


async def run_backtest(
    games_path: Path,
    lines_path: Path,
    ratings_path: Path,
    config: BacktestConfig,
) -> BacktestResult:
    """
    Load inputs into an in-memory store and run the backtest.

    Args:
        games_path: Games file (CSV or Parquet)
        lines_path: Line snapshots file
        ratings_path: Team ratings file
        config: Backtest configuration

    Returns:
        BacktestResult
    """
    settings = get_settings()
    store = InMemoryStore.from_files(games_path, lines_path, ratings_path)
    runner = BacktestRunner(
        store,
        projector=ModelProjector(settings.projection),
        edge_settings=settings.edge,
    )
    return await runner.run(config)


def write_json(result: BacktestResult, target: str) -> None:
    payload = json.dumps(result.to_dict(), indent=2, default=str)
    if target == "-":
        print(payload)
        return
    Path(target).write_text(payload)
    logger.info(f"Report written to {target}")


def configure_logging(verbose: bool = False) -> str:
    """Apply the configured log level to both loggers and return it."""
    settings = get_settings()
    if verbose or settings.debug:
        level = "DEBUG"
    else:
        level = settings.log_level.upper()
    logging.getLogger().setLevel(level)
    engine_logger.remove()
    engine_logger.add(sys.stderr, level=level)
    return level


def build_config(args: argparse.Namespace) -> BacktestConfig:
    settings = get_settings()
    overrides = {
        "start_date": args.start,
        "end_date": args.end,
        "seasons": args.seasons,
        "providers": args.providers,
    }
    if args.min_edge is not None:
        overrides["edge_threshold"] = args.min_edge
    if args.total_min_edge is not None:
        overrides["total_edge_threshold"] = args.total_min_edge
    if args.label is not None:
        overrides["decision_label"] = LineLabel(args.label)
    if args.markets:
        overrides["markets"] = tuple(MarketType(m) for m in args.markets)
    if args.bucket_width is not None:
        overrides["bucket_width"] = args.bucket_width
    if args.odds is not None:
        overrides["american_odds"] = args.odds
    if args.concurrency is not None:
        overrides["max_concurrency"] = args.concurrency

    return BacktestConfig.from_settings(
        settings.backtest,
        settings.qualification,
        **overrides,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Point-in-time backtest of spread and total edges"
    )
    parser.add_argument("--games", type=Path, required=True, help="Games file (CSV or Parquet)")
    parser.add_argument("--lines", type=Path, required=True, help="Line snapshots file")
    parser.add_argument("--ratings", type=Path, required=True, help="Team ratings file")
    parser.add_argument(
        "--start",
        type=date.fromisoformat,
        help="First game date (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--end",
        type=date.fromisoformat,
        help="Last game date (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--seasons",
        type=int,
        nargs="+",
        help="Seasons to include",
    )
    parser.add_argument(
        "--min-edge",
        type=float,
        help="Minimum edge in points (default: from settings, 1.0)",
    )
    parser.add_argument(
        "--total-min-edge",
        type=float,
        help="Minimum total edge in points (default: same as --min-edge)",
    )
    parser.add_argument(
        "--label",
        choices=DECISION_LABELS,
        help="Decision snapshot label (default: t-60)",
    )
    parser.add_argument(
        "--markets",
        nargs="+",
        choices=[m.value for m in MarketType],
        help="Markets to include (default: all)",
    )
    parser.add_argument("--providers", nargs="+", help="Providers to include (default: all)")
    parser.add_argument("--bucket-width", type=float, help="Calibration bucket width in points")
    parser.add_argument("--odds", type=int, help="American odds for profit (default: -110)")
    parser.add_argument("--concurrency", type=int, help="Maximum concurrent games")
    parser.add_argument(
        "--json",
        nargs="?",
        const="-",
        metavar="PATH",
        help="Dump the report as JSON to PATH (or stdout)",
    )
    parser.add_argument(
        "--picks",
        type=int,
        default=0,
        help="Show the first N picks",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    config = build_config(args)

    logger.info("=" * 60)
    logger.info("SPREAD EDGE - Point-in-Time Backtest")
    logger.info("=" * 60)
    logger.info(f"Range: {config.start_date} - {config.end_date}")
    logger.info(f"Seasons: {config.seasons or 'all'}")
    logger.info(f"Decision label: {config.decision_label.value}")
    logger.info(f"Min Edge: {config.edge_threshold:g} pts")
    logger.info("=" * 60)

    try:
        result = asyncio.run(run_backtest(args.games, args.lines, args.ratings, config))
    except InvalidConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    if args.json:
        write_json(result, args.json)
        if args.json == "-":
            return 0

    TerminalReport().show_backtest(result, max_picks=args.picks)
    return 0


if __name__ == "__main__":
    sys.exit(main())
