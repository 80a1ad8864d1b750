from typing import Dict, List, Optional, Sequence
from datetime import date

from stocksim.market.timeline import SecurityTimeline
from stocksim.trading.portfolio import PortfolioLedger, Trade
from stocksim.trading.strategy import Decision, Strategy
from stocksim.utils.logging_config import logger


class Trader:
    """
    A strategy bound to its own portfolio ledger.

    Each simulated day the trader asks its strategy for a decision and turns
    it into orders at the current prices. Only buy instructions are executed
    unless execute_sells is enabled; sell instructions are otherwise inert.
    """

    def __init__(self, strategy: Strategy, initial_cash: float, execute_sells: bool = False,
                 name: Optional[str] = None):
        """
        Args:
            strategy: Strategy that produces the daily decision
            initial_cash: Starting cash for the ledger
            execute_sells: Execute negative (sell) amounts as sell orders
            name: Display name, defaults to "<StrategyClass> with <cash>"
        """
        self.strategy = strategy
        self.name = name or f"{type(strategy).__name__} with {float(initial_cash)}"
        self.ledger = PortfolioLedger(initial_cash)
        self.execute_sells = execute_sells
        self.trades: List[Trade] = []

        logger.info(f"Trader '{self.name}' initialized (execute_sells={execute_sells})")

    def __repr__(self) -> str:
        return f"Trader({self.name!r})"

    @property
    def cash(self) -> float:
        return self.ledger.cash

    def get_portfolio(self) -> Dict[str, int]:
        return self.ledger.positions()

    def decide(self, market: Sequence[SecurityTimeline]) -> Decision:
        """Ask the strategy for today's decision."""
        return self.strategy.make_decision(market, self.ledger.view())

    def execute(self, decision: Decision, market: Sequence[SecurityTimeline],
                on_date: Optional[date] = None) -> List[Trade]:
        """
        Execute a decision against current market prices.

        Args:
            decision: Dict[symbol, amount] from decide()
            market: Securities providing the current prices
            on_date: Simulation date recorded on fills

        Returns:
            Trades filled in this step
        """
        fills = []
        by_symbol = {stock.symbol: stock for stock in market}

        for symbol in decision:
            if symbol not in by_symbol:
                logger.debug(f"{self.name}: ignoring decision for unknown symbol {symbol}")

        for stock in market:
            amount = decision.get(stock.symbol, 0.0)

            if amount > 0:
                price = stock.current_price()
                shares = self.ledger.buy(stock.symbol, price, amount)
                if shares > 0:
                    fills.append(Trade(on_date, stock.symbol, 'buy', shares, price))

            elif amount < 0 and self.execute_sells:
                price = stock.current_price()
                shares = self.ledger.sell(stock.symbol, price, -amount)
                if shares > 0:
                    fills.append(Trade(on_date, stock.symbol, 'sell', shares, price))

        for trade in fills:
            logger.debug(f"{self.name}: {trade.side.upper()} {trade.shares} {trade.symbol} @ ${trade.price:.2f}")

        self.trades.extend(fills)
        return fills

    def make_decision(self, market: Sequence[SecurityTimeline], on_date: Optional[date] = None) -> List[Trade]:
        """Decide and execute in one step."""
        return self.execute(self.decide(market), market, on_date)

    def stock_total_value(self, stock: SecurityTimeline) -> float:
        """Market value of the shares held in one security."""
        shares = self.ledger.holdings(stock.symbol)
        if shares == 0:
            return 0.0
        return shares * stock.current_price()

    def total_value(self, market: Sequence[SecurityTimeline]) -> float:
        """Cash plus the market value of every holding."""
        prices = {stock.symbol: stock.current_price() for stock in market if not stock.is_empty}
        return self.ledger.valuation(lambda symbol: prices.get(symbol, 0.0))
