#!/usr/bin/env python3
"""
Security Timeline

Holds one security's daily closing prices and a cursor marking "today" in
simulated time. Every indicator is computed over a trailing window that ends
at the cursor, so nothing downstream can read prices from the simulated
future.

Indicators:
- Simple moving average over an inclusive trailing window
- Population standard deviation (volatility) over the same window
- Relative Strength Index (RSI) over the trailing daily changes
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence, Tuple, Union
import numpy as np
import pandas as pd


NEUTRAL_RSI = 50.0


class EmptySeriesError(ValueError):
    """Raised when a price or indicator is requested from a timeline with no data."""


@dataclass(frozen=True)
class PricePoint:
    """A single daily closing price."""
    date: date
    price: float


class SecurityTimeline:
    """
    Price history for a single security, read through a forward-only cursor.

    The history is fixed at construction. `advance()` moves the cursor one
    trading day forward and holds once the last point is reached; running
    past the available data is a normal end state, not an error.
    """

    def __init__(self, symbol: str, history: Iterable[PricePoint]):
        """
        Args:
            symbol: Ticker symbol (e.g. "AAPL")
            history: Price points ordered oldest-first with unique dates
        """
        self.symbol = symbol
        self._history: Tuple[PricePoint, ...] = tuple(history)
        self._prices = np.array([point.price for point in self._history], dtype=float)
        self._index = 0

    @classmethod
    def from_frame(cls, symbol: str, closes: Union[pd.Series, pd.DataFrame]) -> "SecurityTimeline":
        """
        Build a timeline from closing prices indexed by date.

        Args:
            symbol: Ticker symbol
            closes: Series of closes, or DataFrame with a 'close' column,
                indexed by date or timestamp

        Returns:
            SecurityTimeline ordered oldest-first
        """
        if isinstance(closes, pd.DataFrame):
            closes = closes['close']

        closes = closes.sort_index()
        history = [
            PricePoint(date=pd.Timestamp(ts).date(), price=float(price))
            for ts, price in closes.items()
        ]
        return cls(symbol, history)

    def __len__(self) -> int:
        return len(self._history)

    def __repr__(self) -> str:
        return f"SecurityTimeline({self.symbol!r}, points={len(self)}, index={self._index})"

    @property
    def history(self) -> Tuple[PricePoint, ...]:
        return self._history

    @property
    def index(self) -> int:
        """Cursor position in the history."""
        return self._index

    @property
    def is_empty(self) -> bool:
        return len(self._history) == 0

    def current_price(self) -> float:
        """Closing price at the cursor."""
        self._check_not_empty()
        return float(self._prices[self._index])

    def current_date(self) -> date:
        """Date of the price at the cursor."""
        self._check_not_empty()
        return self._history[self._index].date

    def advance(self) -> None:
        """Move the cursor to the next day; no-op at the end of history."""
        if self._index < len(self._history) - 1:
            self._index += 1

    def moving_average(self, window: int) -> float:
        """
        Mean price over indices [max(0, cursor - window), cursor].

        The window shrinks near the start of history.
        """
        return float(np.mean(self._window(window)))

    def standard_deviation(self, window: int) -> float:
        """
        Population standard deviation over the same window as moving_average.

        Divides by the number of points in the window, so a single-point
        window gives exactly 0.
        """
        prices = self._window(window)
        mean = self.moving_average(window)
        return float(np.sqrt(np.sum((prices - mean) ** 2) / len(prices)))

    def volatility(self, window: int) -> float:
        return self.standard_deviation(window)

    def rsi(self, period: int) -> float:
        """
        Relative Strength Index over the last `period` daily changes.

        Returns the neutral value 50 until `period` points precede the
        cursor. With no losses in the window the RSI is 100.
        """
        self._check_window(period)
        self._check_not_empty()

        if self._index < period:
            return NEUTRAL_RSI

        changes = np.diff(self._prices[self._index - period:self._index + 1])
        avg_gain = np.sum(changes[changes > 0]) / period
        avg_loss = -np.sum(changes[changes < 0]) / period

        if avg_loss == 0:
            return 100.0

        rs = avg_gain / avg_loss
        return float(100.0 - 100.0 / (1.0 + rs))

    def _window(self, window: int) -> np.ndarray:
        self._check_window(window)
        self._check_not_empty()

        if not 0 <= self._index < len(self._prices):
            raise RuntimeError(f"Cursor {self._index} out of bounds for {self.symbol}")

        start = max(0, self._index - window)
        return self._prices[start:self._index + 1]

    def _check_not_empty(self) -> None:
        if self.is_empty:
            raise EmptySeriesError(f"No price history for {self.symbol}")

    @staticmethod
    def _check_window(window: int) -> None:
        if window <= 0:
            raise ValueError(f"Window must be positive, got {window}")


def market_symbols(market: Sequence[SecurityTimeline]) -> list:
    """Symbols of the given timelines, in market order."""
    return [timeline.symbol for timeline in market]
