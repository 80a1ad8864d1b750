#!/usr/bin/env python3
"""
Stock Simulation Runner

Wires the pieces together for a command-line run:
- Validates symbols and fetches daily closes (AlpacaDataFetcher)
- Builds one trader per requested strategy and starting capital
- Replays the market day by day (SimulationClock)
- Saves sampled portfolio values to CSV and renders a chart

Usage:
    python -m stocksim.main --symbols AAPL MSFT --trader "Buy and Hold=10000" \\
        --trader "RSI=10000" --years 5
"""

import argparse
import sys
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from stocksim.alpaca.data_fetcher import AlpacaDataFetcher, DataFetchError, cutoff_date
from stocksim.backtesting import (
    SimulationClock,
    SimulationResult,
    plot_portfolio_values,
    summarize_result,
    write_portfolio_values_csv,
)
from stocksim.config import RANDOM_SEED, SIMULATION_CONFIG
from stocksim.market.timeline import SecurityTimeline
from stocksim.trading.strategy import available_strategies, create_strategy
from stocksim.trading.trader import Trader
from stocksim.utils.logging_config import logger


@dataclass
class SimulationConfig:
    """Configuration for one simulation run."""

    symbols: List[str] = field(default_factory=lambda: list(SIMULATION_CONFIG['symbols']))
    # (strategy name, starting capital) per trader
    traders: List[Tuple[str, float]] = field(default_factory=lambda: [
        ("Buy and Hold", SIMULATION_CONFIG['initial_capital'])
    ])
    years_back: int = SIMULATION_CONFIG['years_back']
    seed: int = RANDOM_SEED
    execute_sells: bool = SIMULATION_CONFIG['execute_sells']

    # Output
    output_csv: Optional[str] = SIMULATION_CONFIG['output_csv']
    output_chart: Optional[str] = SIMULATION_CONFIG['output_chart']
    show_chart: bool = False

    def validate(self) -> None:
        if not self.symbols:
            raise ValueError("At least one stock symbol is required")
        if len(self.symbols) > SIMULATION_CONFIG['max_symbols']:
            raise ValueError(f"Please enter up to {SIMULATION_CONFIG['max_symbols']} stock symbols")
        if self.years_back <= 0:
            raise ValueError("Please enter a positive number for the number of years")
        if not self.traders:
            raise ValueError("At least one trader is required")
        for name, capital in self.traders:
            if capital <= 0:
                raise ValueError(f"Starting money for {name} must be positive")


def parse_trader_spec(spec: str) -> Tuple[str, float]:
    """
    Parse a "STRATEGY=CAPITAL" trader spec, e.g. "Buy and Hold=10000".

    Raises:
        ValueError: Malformed or invalid trader spec
    """
    name, sep, capital = spec.rpartition('=')
    if not sep or not name.strip():
        raise ValueError(f"Trader spec must look like 'STRATEGY=CAPITAL', got {spec!r}")

    name = name.strip()
    if name.lower() not in {s.lower() for s in available_strategies()}:
        raise ValueError(f"Unknown strategy {name!r}. Choose from {available_strategies()}")

    try:
        amount = float(capital)
    except ValueError:
        raise ValueError(f"Invalid starting money in {spec!r}") from None

    if amount <= 0:
        raise ValueError(f"Starting money must be positive in {spec!r}")

    return name, amount


def build_traders(config: SimulationConfig) -> List[Trader]:
    """
    One trader per (strategy, capital) pair.

    Random strategies share one seeded generator so the whole run is
    reproducible from config.seed. Duplicate display names get a suffix.
    """
    rng = np.random.default_rng(config.seed)
    traders = []
    seen = {}

    for strategy_name, capital in config.traders:
        strategy = create_strategy(strategy_name, rng=rng)
        trader = Trader(strategy, capital, execute_sells=config.execute_sells)

        count = seen.get(trader.name, 0) + 1
        seen[trader.name] = count
        if count > 1:
            trader.name = f"{trader.name} #{count}"

        traders.append(trader)

    return traders


def run_simulation(config: SimulationConfig,
                   stocks: Sequence[SecurityTimeline],
                   today: Optional[date] = None) -> SimulationResult:
    """
    Run a simulation over already-fetched stocks and write the outputs.

    Args:
        config: Run configuration
        stocks: Security timelines covering the look-back horizon
        today: Last simulated day (defaults to date.today())

    Returns:
        SimulationResult of the run
    """
    today = today or date.today()
    traders = build_traders(config)
    clock = SimulationClock(stocks, traders, start_date=cutoff_date(config.years_back, today))
    result = clock.run(today=today)

    if config.output_csv:
        write_portfolio_values_csv(result.snapshots, config.output_csv)

    if config.output_chart or config.show_chart:
        plot_portfolio_values(result.snapshots, result.symbols, config.output_chart, show=config.show_chart)

    return result


def print_summary(result: SimulationResult) -> None:
    summary = summarize_result(result)

    print("\n" + "=" * 50)
    print(f"Simulation complete up to {result.end_date}")
    print("=" * 50)

    if summary.empty:
        print("No traders to report.")
        return

    with pd.option_context("display.max_columns", None, "display.width", None):
        print(summary[['final_value', 'total_return_pct', 'max_drawdown_pct', 'total_trades']].round(2))

    for trader in result.traders:
        print(f"\n{trader.name}: cash ${trader.cash:,.2f}, holdings {trader.get_portfolio()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Backtest trading strategies on daily closing prices")
    parser.add_argument('--symbols', nargs='+', default=SIMULATION_CONFIG['symbols'],
                        help=f"Stock symbols (up to {SIMULATION_CONFIG['max_symbols']})")
    parser.add_argument('--trader', action='append', dest='traders', metavar='STRATEGY=CAPITAL',
                        help=f"Trader to simulate, repeatable. Strategies: {available_strategies()}")
    parser.add_argument('--years', type=int, default=SIMULATION_CONFIG['years_back'],
                        help='Number of years to simulate')
    parser.add_argument('--seed', type=int, default=RANDOM_SEED,
                        help='Seed for the Random strategy')
    parser.add_argument('--execute-sells', action='store_true',
                        help='Execute sell instructions (ignored by default)')
    parser.add_argument('--output', default=SIMULATION_CONFIG['output_csv'],
                        help='CSV file for sampled portfolio values')
    parser.add_argument('--chart', default=SIMULATION_CONFIG['output_chart'],
                        help='PNG file for the portfolio chart')
    parser.add_argument('--no-chart', action='store_true', help='Skip rendering the chart')
    parser.add_argument('--show', action='store_true', help='Display the chart window')
    return parser


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    traders = [parse_trader_spec(spec) for spec in (args.traders or [])]

    config = SimulationConfig(
        symbols=[symbol.strip().upper() for symbol in args.symbols],
        years_back=args.years,
        seed=args.seed,
        execute_sells=args.execute_sells or SIMULATION_CONFIG['execute_sells'],
        output_csv=args.output,
        output_chart=None if args.no_chart else args.chart,
        show_chart=args.show and not args.no_chart,
    )
    if traders:
        config.traders = traders

    config.validate()
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        logger.error(str(e))
        return 2

    try:
        fetcher = AlpacaDataFetcher()
    except ValueError as e:
        logger.error(str(e))
        return 1

    invalid = [symbol for symbol in config.symbols if not fetcher.is_valid_stock_symbol(symbol)]
    if invalid:
        for symbol in invalid:
            logger.error(f"Invalid stock symbol: {symbol}")
        return 2

    try:
        stocks = fetcher.fetch_historical_data(config.symbols, config.years_back)
    except DataFetchError as e:
        logger.error(f"Data fetch failed: {e}")
        return 1

    result = run_simulation(config, stocks)
    print_summary(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
