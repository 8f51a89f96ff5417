"""CLI entry point for the backtesting system.

Runs the technical signal generator over synthetic one-minute candles.

Usage:
    python -m backtest --symbol EUR/USD
    python -m backtest --symbol GBP/USD --days 7 --balance 5000 --seed 42
    python -m backtest --symbol BTC/USD --output results.json
"""

import argparse
import logging
import os
import sys

import numpy as np

# Add backend to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.market_data import generate_backtest_candles

from backtest.engine import BacktestEngine
from backtest.report import ReportFormatter


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number: {value}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"Must be at least 1: {value}")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Backtest the technical signal generator on synthetic candles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m backtest --symbol EUR/USD
  python -m backtest --symbol GBP/USD --days 7 --balance 5000 --seed 42
  python -m backtest --symbol BTC/USD --output results.json
        """,
    )
    parser.add_argument(
        "--symbol",
        type=str,
        required=True,
        help="Symbol to backtest (e.g. EUR/USD)",
    )
    parser.add_argument(
        "--days",
        type=positive_int,
        default=30,
        help="Days of one-minute candles to simulate (default: 30)",
    )
    parser.add_argument(
        "--balance",
        type=float,
        default=1000.0,
        help="Initial account balance (default: 1000)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible runs",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    rng = np.random.default_rng(args.seed)
    candles = generate_backtest_candles(args.symbol, days=args.days, rng=rng)

    print(f"\nBacktest: {args.symbol}")
    print(f"Candles: {len(candles):,} ({args.days} days)")
    print("\nRunning backtest...")

    result = BacktestEngine(args.symbol, rng=rng).run(candles, args.balance)

    ReportFormatter.print_console(result)

    if args.output:
        ReportFormatter.save_json(result, args.output)


if __name__ == "__main__":
    main()
