#!/usr/bin/env python3
"""
Trading Strategy Framework

Provides the strategy interface and the five built-in strategies.

A strategy looks at the market (every security timeline, read through its
cursor) and a read-only view of the trader's ledger, and returns a decision:
symbol -> signed dollar amount. Positive amounts are buy instructions,
negative amounts are sell instructions.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence
import numpy as np

from stocksim.config import STRATEGY_CONFIG
from stocksim.market.timeline import SecurityTimeline
from stocksim.trading.portfolio import LedgerView
from stocksim.utils.logging_config import logger


Decision = Dict[str, float]


class Strategy(ABC):
    """Interface every trading strategy implements."""

    name: str = "Strategy"

    @abstractmethod
    def make_decision(self, market: Sequence[SecurityTimeline], ledger: LedgerView) -> Decision:
        """
        Decide how many dollars to move into or out of each symbol.

        Args:
            market: Every security in the simulation, in market order
            ledger: Read-only view of the trader's cash and holdings

        Returns:
            Dict[symbol, amount]; positive buys, negative sells
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _holding_value(stock: SecurityTimeline, ledger: LedgerView) -> float:
    return ledger.shares(stock.symbol) * stock.current_price()


def _split_cash(ledger: LedgerView, symbols: List[str]) -> Decision:
    """Allocate the ledger's cash evenly across symbols."""
    if not symbols:
        return {}
    cash_per_stock = ledger.cash / len(symbols)
    return {symbol: cash_per_stock for symbol in symbols}


class BuyAndHoldEvenly(Strategy):
    """Spend all cash evenly across the market once, then never trade again."""

    name = "Buy and Hold"

    def __init__(self):
        self._has_bought = False

    def make_decision(self, market: Sequence[SecurityTimeline], ledger: LedgerView) -> Decision:
        if self._has_bought:
            return {}

        self._has_bought = True

        if not market:
            return {}

        allocation = ledger.cash / len(market)
        return {stock.symbol: allocation for stock in market}


class RandomStrategy(Strategy):
    """
    Each day, pick one symbol and randomly buy, sell or hold it.

    Randomness comes from an injected numpy Generator so runs are
    reproducible. Sell amounts are in dollars: a random fraction of the
    current holding's value, emitted as a negative amount.
    """

    name = "Random"

    SELL, HOLD, BUY = -1, 0, 1

    def __init__(self, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
        """
        Args:
            rng: Random generator to draw from
            seed: Seed for a fresh generator when rng is not given
        """
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def make_decision(self, market: Sequence[SecurityTimeline], ledger: LedgerView) -> Decision:
        if not market:
            return {}

        stock = market[int(self.rng.integers(len(market)))]
        action = int(self.rng.integers(3)) - 1

        if action == self.BUY:
            return {stock.symbol: float(self.rng.random()) * ledger.cash}

        if action == self.SELL:
            return {stock.symbol: -float(self.rng.random()) * _holding_value(stock, ledger)}

        return {}


class MovingAverageCrossover(Strategy):
    """
    Golden/death cross on the 50- and 200-day simple moving averages.

    Short SMA below long SMA: sell the whole holding. Short SMA above long
    SMA: buy, with cash split evenly across every such symbol.
    """

    name = "Moving Average"

    def __init__(self,
                 short_window: int = STRATEGY_CONFIG['sma_short_window'],
                 long_window: int = STRATEGY_CONFIG['sma_long_window']):
        self.short_window = short_window
        self.long_window = long_window

    def make_decision(self, market: Sequence[SecurityTimeline], ledger: LedgerView) -> Decision:
        decision: Decision = {}
        to_buy = []

        for stock in market:
            short_sma = stock.moving_average(self.short_window)
            long_sma = stock.moving_average(self.long_window)

            if short_sma < long_sma:
                decision[stock.symbol] = -_holding_value(stock, ledger)
            elif short_sma > long_sma:
                to_buy.append(stock.symbol)

        decision.update(_split_cash(ledger, to_buy))
        return decision


class RSIStrategy(Strategy):
    """Sell overbought symbols (RSI > 70), buy oversold ones (RSI < 30)."""

    name = "RSI"

    def __init__(self,
                 period: int = STRATEGY_CONFIG['rsi_period'],
                 overbought: float = STRATEGY_CONFIG['rsi_overbought'],
                 oversold: float = STRATEGY_CONFIG['rsi_oversold']):
        self.period = period
        self.overbought = overbought
        self.oversold = oversold

    def make_decision(self, market: Sequence[SecurityTimeline], ledger: LedgerView) -> Decision:
        decision: Decision = {}
        to_buy = []

        for stock in market:
            rsi = stock.rsi(self.period)

            if rsi > self.overbought:
                decision[stock.symbol] = -_holding_value(stock, ledger)
            elif rsi < self.oversold:
                to_buy.append(stock.symbol)

        decision.update(_split_cash(ledger, to_buy))
        return decision


class MeanReversionStrategy(Strategy):
    """
    Bollinger-style mean reversion around the 50-day average.

    Above SMA + 1 std: sell held shares. Below SMA - 1 std: buy with an
    equal share (cash / market size) of the cash.
    """

    name = "Mean Reversion"

    def __init__(self,
                 window: int = STRATEGY_CONFIG['mean_reversion_window'],
                 threshold: float = STRATEGY_CONFIG['mean_reversion_threshold']):
        self.window = window
        self.threshold = threshold

    def make_decision(self, market: Sequence[SecurityTimeline], ledger: LedgerView) -> Decision:
        decision: Decision = {}

        for stock in market:
            sma = stock.moving_average(self.window)
            std_dev = stock.standard_deviation(self.window)
            price = stock.current_price()

            if price > sma + self.threshold * std_dev and ledger.holds(stock.symbol):
                decision[stock.symbol] = -_holding_value(stock, ledger)

            if price < sma - self.threshold * std_dev:
                decision[stock.symbol] = ledger.cash / len(market)

        return decision


STRATEGIES = {
    BuyAndHoldEvenly.name: BuyAndHoldEvenly,
    RandomStrategy.name: RandomStrategy,
    MovingAverageCrossover.name: MovingAverageCrossover,
    RSIStrategy.name: RSIStrategy,
    MeanReversionStrategy.name: MeanReversionStrategy,
}


def available_strategies() -> List[str]:
    """Names accepted by create_strategy."""
    return list(STRATEGIES)


def create_strategy(strategy_type: str,
                    rng: Optional[np.random.Generator] = None,
                    seed: Optional[int] = None) -> Strategy:
    """
    Create a trading strategy instance.

    Args:
        strategy_type: Strategy name, case-insensitive (see available_strategies)
        rng: Random generator for the Random strategy
        seed: Seed for the Random strategy when rng is not given

    Returns:
        Strategy instance
    """
    lookup = {name.lower(): cls for name, cls in STRATEGIES.items()}
    strategy_cls = lookup.get(strategy_type.strip().lower())

    if strategy_cls is None:
        raise ValueError(
            f"Unknown strategy type: {strategy_type}. Choose from {available_strategies()}"
        )

    if strategy_cls is RandomStrategy:
        strategy = RandomStrategy(rng=rng, seed=seed)
    else:
        strategy = strategy_cls()

    logger.info(f"Created strategy {type(strategy).__name__}")
    return strategy
