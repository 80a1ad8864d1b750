#!/usr/bin/env python3
"""
Alpaca Historical Data Fetcher

Fetches daily closing prices from Alpaca and turns them into security
timelines for the simulation. Also checks ticker symbols against Alpaca's
asset list before a run.

Raw bars are cached as parquet files under DATA_DIR to avoid re-downloading.
"""

import os
import re
from datetime import date, datetime
from typing import List, Optional, Sequence
import pandas as pd
from alpaca.data.historical import StockHistoricalDataClient
from alpaca.data.requests import StockBarsRequest
from alpaca.data.timeframe import TimeFrame
from alpaca.data.enums import DataFeed
from alpaca.trading.client import TradingClient
from alpaca.common.exceptions import APIError
from requests.exceptions import RequestException

from stocksim.config import ALPACA_API_KEY, ALPACA_SECRET_KEY, DATA_DIR
from stocksim.market.timeline import SecurityTimeline
from stocksim.utils.logging_config import logger


SYMBOL_PATTERN = re.compile(r"^[A-Z][A-Z0-9.\-]{0,9}$")


class DataFetchError(Exception):
    """Raised when historical data cannot be retrieved."""


class APILimitExceededError(DataFetchError):
    """Raised when the data API rejects a request for exceeding its rate limit."""


def _is_rate_limit(error: Exception) -> bool:
    status_code = getattr(error, 'status_code', None)
    return status_code == 429 or "rate limit" in str(error).lower()


def cutoff_date(years_back: int, today: Optional[date] = None) -> date:
    """First date kept when looking back years_back years from today."""
    today = today or date.today()
    return (pd.Timestamp(today) - pd.DateOffset(years=years_back)).date()


def bars_to_closes(bars: pd.DataFrame, cutoff: Optional[date] = None) -> pd.Series:
    """
    Reduce an Alpaca bars frame to daily closes.

    Args:
        bars: Bars indexed by (symbol, timestamp) or by timestamp, with a 'close' column
        cutoff: Drop bars dated before this day

    Returns:
        Series of closes indexed by date, oldest first, one value per date
    """
    if bars.empty:
        return pd.Series(dtype=float, name='close')

    df = bars.reset_index()
    dates = pd.to_datetime(df['timestamp']).dt.date
    closes = pd.Series(df['close'].astype(float).values, index=dates, name='close')

    if cutoff is not None:
        closes = closes[closes.index >= cutoff]

    closes = closes[~closes.index.duplicated(keep='last')]
    return closes.sort_index()


class AlpacaDataFetcher:
    """
    Market data provider and symbol checker backed by Alpaca.

    Requires ALPACA_API_KEY and ALPACA_SECRET_KEY (e.g. in a .env file).
    """

    def __init__(self,
                 api_key: str = ALPACA_API_KEY,
                 secret_key: str = ALPACA_SECRET_KEY,
                 feed: DataFeed = DataFeed.IEX,
                 data_dir: str = DATA_DIR,
                 use_cache: bool = True):
        """
        Args:
            api_key: Alpaca API key
            secret_key: Alpaca secret key
            feed: Market data feed to request bars from
            data_dir: Directory for cached parquet files
            use_cache: Read and write cached bars
        """
        if api_key == '' or secret_key == '':
            raise ValueError("Alpaca API keys must be set in the .env file.")

        self.client = StockHistoricalDataClient(api_key, secret_key)
        self.trading_client = TradingClient(api_key=api_key, secret_key=secret_key, paper=True)
        self.feed = feed
        self.data_dir = data_dir
        self.use_cache = use_cache

        logger.info(f"AlpacaDataFetcher initialized (feed={feed.value}, cache={use_cache})")

    def is_valid_stock_symbol(self, symbol: str) -> bool:
        """
        Check that symbol names a tradable asset.

        Args:
            symbol: Ticker symbol (case-insensitive)

        Returns:
            True if Alpaca knows the asset and it is tradable
        """
        symbol = symbol.strip().upper()
        if not SYMBOL_PATTERN.match(symbol):
            return False

        try:
            asset = self.trading_client.get_asset(symbol)
        except APIError as e:
            logger.debug(f"Asset lookup failed for {symbol}: {e}")
            return False

        return bool(asset.tradable)

    def fetch_bars(self, symbol: str, start: date, end: date) -> pd.DataFrame:
        """
        Fetch daily bars for one symbol, using the parquet cache when present.

        Raises:
            APILimitExceededError: Rate limit hit
            DataFetchError: Any other API or connection failure
        """
        file_path = os.path.join(self.data_dir, f"{symbol}_1Day_{start}_to_{end}.parquet")

        if self.use_cache and os.path.exists(file_path):
            logger.info(f"Data for {symbol} already exists locally. Skipping download.")
            return pd.read_parquet(file_path)

        request_params = StockBarsRequest(
            symbol_or_symbols=[symbol],
            timeframe=TimeFrame.Day,
            start=datetime.combine(start, datetime.min.time()),
            end=datetime.combine(end, datetime.min.time()),
            feed=self.feed,
        )

        try:
            bars = self.client.get_stock_bars(request_params).df
        except APIError as e:
            if _is_rate_limit(e):
                raise APILimitExceededError(f"API rate limit exceeded: {e}") from e
            raise DataFetchError(f"Failed to fetch data for {symbol}: {e}") from e
        except RequestException as e:
            raise DataFetchError(f"Connection error fetching data for {symbol}: {e}") from e

        if self.use_cache and not bars.empty:
            os.makedirs(self.data_dir, exist_ok=True)
            bars.to_parquet(file_path)
            logger.info(f"Saved {len(bars)} bars for {symbol} to {file_path}")

        return bars

    def fetch_historical_data(self, symbols: Sequence[str], years_back: int,
                              today: Optional[date] = None) -> List[SecurityTimeline]:
        """
        Fetch daily closes for each symbol covering the last years_back years.

        Symbols without any data are logged and skipped.

        Args:
            symbols: Ticker symbols to fetch
            years_back: Look-back horizon in years
            today: End of the horizon (defaults to date.today())

        Returns:
            One SecurityTimeline per symbol with data, in the order requested
        """
        today = today or date.today()
        start = cutoff_date(years_back, today)
        stocks = []

        for symbol in symbols:
            logger.info(f"Processing data for {symbol}...")
            bars = self.fetch_bars(symbol, start, today)
            closes = bars_to_closes(bars, cutoff=start)

            if closes.empty:
                logger.warning(f"No data found for {symbol}")
                continue

            stocks.append(SecurityTimeline.from_frame(symbol, closes))
            logger.info(f"Fetched {len(closes)} daily closes for {symbol}")

        return stocks
