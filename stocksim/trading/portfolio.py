from typing import Callable, Dict, Mapping, Optional
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
import math

from stocksim.utils.logging_config import logger


# Absorbs float error when a sell amount is exactly holding * price.
_SHARE_EPSILON = 1e-9


@dataclass(frozen=True)
class Trade:
    """A filled order."""
    date: Optional[date]
    symbol: str
    side: str  # 'buy' or 'sell'
    shares: int
    price: float

    @property
    def value(self) -> float:
        return self.shares * self.price


@dataclass(frozen=True)
class LedgerView:
    """Read-only snapshot of a ledger handed to strategies."""
    cash: float
    holdings: Mapping[str, int]

    def shares(self, symbol: str) -> int:
        return self.holdings.get(symbol, 0)

    def holds(self, symbol: str) -> bool:
        return self.holdings.get(symbol, 0) > 0


class PortfolioLedger:
    """
    Cash balance and whole-share holdings for one trader.

    Orders that cannot be filled (not enough cash, less than one share) are
    no-ops rather than errors; cash never goes negative.
    """

    def __init__(self, initial_cash: float):
        """
        Args:
            initial_cash: Starting cash, must be non-negative
        """
        if initial_cash < 0:
            raise ValueError(f"Initial cash must be non-negative, got {initial_cash}")

        self.initial_cash = float(initial_cash)
        self._cash = float(initial_cash)
        self._holdings: Dict[str, int] = {}

    @property
    def cash(self) -> float:
        return self._cash

    def holdings(self, symbol: str) -> int:
        """Shares held in symbol (0 if none)."""
        return self._holdings.get(symbol, 0)

    def positions(self) -> Dict[str, int]:
        """Copy of all holdings."""
        return dict(self._holdings)

    def view(self) -> LedgerView:
        return LedgerView(cash=self._cash, holdings=MappingProxyType(dict(self._holdings)))

    def valuation(self, price_of: Callable[[str], float]) -> float:
        """
        Total value: cash plus market value of every holding.

        Args:
            price_of: Maps a held symbol to its current price
        """
        return self._cash + sum(
            shares * price_of(symbol) for symbol, shares in self._holdings.items()
        )

    def buy(self, symbol: str, price: float, dollar_amount: float) -> int:
        """
        Buy as many whole shares as dollar_amount covers.

        Returns:
            Number of shares bought (0 if the order could not be filled)
        """
        self._check_price(symbol, price)

        shares = math.floor(dollar_amount / price)
        cost = shares * price

        if shares <= 0 or self._cash < cost:
            return 0

        self._cash -= cost
        self._holdings[symbol] = self._holdings.get(symbol, 0) + shares

        logger.debug(f"Bought {shares} {symbol} @ ${price:.2f} (cash left ${self._cash:.2f})")
        return shares

    def sell(self, symbol: str, price: float, dollar_amount: float) -> int:
        """
        Sell whole shares worth up to dollar_amount, capped at the holding.

        Returns:
            Number of shares sold (0 if nothing could be sold)
        """
        self._check_price(symbol, price)

        held = self._holdings.get(symbol, 0)
        if held <= 0 or dollar_amount <= 0:
            return 0

        shares = min(held, math.floor(dollar_amount / price + _SHARE_EPSILON))
        if shares <= 0:
            return 0

        self._cash += shares * price
        remaining = held - shares
        if remaining > 0:
            self._holdings[symbol] = remaining
        else:
            del self._holdings[symbol]

        logger.debug(f"Sold {shares} {symbol} @ ${price:.2f} (cash now ${self._cash:.2f})")
        return shares

    @staticmethod
    def _check_price(symbol: str, price: float) -> None:
        if price <= 0:
            raise ValueError(f"Price for {symbol} must be positive, got {price}")

    def get_portfolio_summary(self) -> Dict:
        """Get portfolio summary for end-of-run reporting."""
        return {
            'initial_cash': self.initial_cash,
            'cash': self._cash,
            'total_positions': len(self._holdings),
            'positions': dict(self._holdings),
        }
