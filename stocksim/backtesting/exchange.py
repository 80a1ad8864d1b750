#!/usr/bin/env python3
"""
Simulated Stock Exchange

Steps a shared calendar one day at a time from the start date up to
"today", moving every security timeline forward in lockstep and letting each
trader act once per day. Portfolio values are sampled on the first day of
every month.

Tick order:
1. Every trader decides and executes against the current prices
2. On the first day of a month, record every trader's total value
3. Advance the date by one day
4. Advance every security timeline by one step
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

from stocksim.market.timeline import SecurityTimeline, market_symbols
from stocksim.trading.portfolio import PortfolioLedger
from stocksim.trading.trader import Trader
from stocksim.utils.logging_config import logger


class ClockState(Enum):
    """Simulation clock states."""
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(frozen=True)
class ValuationSnapshot:
    """Every trader's total value on one sampling day."""
    date: date
    values: Dict[str, float]


@dataclass
class SimulationResult:
    """Everything a run produces, for reporting."""
    start_date: date
    end_date: date
    symbols: List[str]
    snapshots: List[ValuationSnapshot]
    traders: List[Trader] = field(default_factory=list)
    final_values: Dict[str, float] = field(default_factory=dict)
    days_simulated: int = 0

    @property
    def final_ledgers(self) -> Dict[str, PortfolioLedger]:
        return {trader.name: trader.ledger for trader in self.traders}


def is_sampling_day(day: date) -> bool:
    """Valuations are recorded on the first calendar day of each month."""
    return day.day == 1


class SimulationClock:
    """
    Drives securities and traders through simulated time.

    Empty timelines are dropped at construction with a warning, so traders
    only ever see securities that have a current price.
    """

    def __init__(self, stocks: Sequence[SecurityTimeline], traders: Sequence[Trader], start_date: date):
        """
        Args:
            stocks: Securities in the market, in market order
            traders: Traders, processed in this order every day
            start_date: First simulated day
        """
        self.stocks: List[SecurityTimeline] = []
        for stock in stocks:
            if stock.is_empty:
                logger.warning(f"No price history for {stock.symbol}; leaving it out of the simulation")
                continue
            self.stocks.append(stock)

        self.traders = list(traders)
        self.start_date = start_date
        self.current_date = start_date
        self.today: Optional[date] = None
        self.snapshots: List[ValuationSnapshot] = []
        self.days_simulated = 0

        logger.info(
            f"SimulationClock initialized: {len(self.stocks)} stocks, "
            f"{len(self.traders)} traders, starting {start_date}"
        )

    @property
    def state(self) -> ClockState:
        if self.today is not None and self.current_date > self.today:
            return ClockState.FINISHED
        return ClockState.RUNNING

    def get_stock_symbols(self) -> List[str]:
        return market_symbols(self.stocks)

    def step(self) -> None:
        """Run one simulated day."""
        if self.today is None:
            self.today = date.today()

        if self.state is ClockState.FINISHED:
            raise RuntimeError(f"Simulation already finished at {self.current_date}")

        for trader in self.traders:
            trader.make_decision(self.stocks, self.current_date)

        if is_sampling_day(self.current_date):
            self._record_snapshot()

        self.current_date += timedelta(days=1)

        for stock in self.stocks:
            stock.advance()

        self.days_simulated += 1

    def run(self, today: Optional[date] = None) -> SimulationResult:
        """
        Run until the simulated date passes today.

        Args:
            today: Last day to simulate; captured once (defaults to date.today())

        Returns:
            SimulationResult with the valuation snapshots and final traders
        """
        self.today = today if today is not None else date.today()
        logger.info(f"Running simulation from {self.current_date} to {self.today}")

        while self.state is ClockState.RUNNING:
            self.step()

        logger.info(
            f"Simulation complete up to {self.today}: {self.days_simulated} days, "
            f"{len(self.snapshots)} snapshots"
        )

        return SimulationResult(
            start_date=self.start_date,
            end_date=self.today,
            symbols=self.get_stock_symbols(),
            snapshots=list(self.snapshots),
            traders=list(self.traders),
            final_values={trader.name: trader.total_value(self.stocks) for trader in self.traders},
            days_simulated=self.days_simulated,
        )

    def _record_snapshot(self) -> None:
        values = {trader.name: trader.total_value(self.stocks) for trader in self.traders}
        self.snapshots.append(ValuationSnapshot(self.current_date, values))
        logger.debug(f"Snapshot {self.current_date}: {values}")
