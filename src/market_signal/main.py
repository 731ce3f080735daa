"""Entry point for manual analysis runs."""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import suppress

from rich.logging import RichHandler

from market_signal.core.config import Config
from market_signal.core.errors import AnalysisError
from market_signal.core.models import Interval
from market_signal.monitoring.logger import StrategyLogger
from market_signal.scheduler.tasks import AnalysisTasks


def cli(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Technical-indicator signal analysis")
    parser.add_argument("--config", type=str, help="Path to YAML config", default=None)
    parser.add_argument("--symbol", type=str, default="BTCUSDT")
    parser.add_argument(
        "--interval", type=str, default="1h", choices=[i.value for i in Interval]
    )
    parser.add_argument(
        "--all", action="store_true", help="Analyse every configured symbol and interval"
    )
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )

    cfg = Config.load(args.config)
    strategy_logger = StrategyLogger()
    tasks = AnalysisTasks(cfg, strategy_logger=strategy_logger)
    try:
        if args.all:
            return 0 if tasks.run_watchlist() else 1
        try:
            result = tasks.run_analysis(args.symbol, args.interval)
        except AnalysisError as exc:
            strategy_logger.log_failure("Analysis failed", exc, fatal=True)
            return 1
        strategy_logger.log_signal(result)
        return 0
    finally:
        with suppress(Exception):
            tasks.shutdown()


if __name__ == "__main__":
    sys.exit(cli())
