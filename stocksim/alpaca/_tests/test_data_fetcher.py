#!/usr/bin/env python3
"""
Unit tests for stocksim/alpaca/data_fetcher.py - Alpaca Historical Data Fetcher
"""

import pytest
import pandas as pd
from datetime import date
from unittest.mock import Mock, patch
from alpaca.common.exceptions import APIError
from requests.exceptions import ConnectionError as RequestsConnectionError

from stocksim.alpaca.data_fetcher import (
    AlpacaDataFetcher, DataFetchError, APILimitExceededError,
    bars_to_closes, cutoff_date
)


def make_bars(symbol, rows):
    """Alpaca-style bars frame indexed by (symbol, timestamp)."""
    index = pd.MultiIndex.from_tuples(
        [(symbol, pd.Timestamp(ts, tz='UTC')) for ts, _ in rows],
        names=['symbol', 'timestamp'],
    )
    return pd.DataFrame({'close': [close for _, close in rows], 'volume': 1000}, index=index)


@pytest.fixture
def mock_clients():
    with patch('stocksim.alpaca.data_fetcher.StockHistoricalDataClient') as mock_data_client, \
         patch('stocksim.alpaca.data_fetcher.TradingClient') as mock_trading_client:
        yield mock_data_client.return_value, mock_trading_client.return_value


@pytest.fixture
def fetcher(mock_clients, tmp_path):
    return AlpacaDataFetcher(api_key="key", secret_key="secret", data_dir=str(tmp_path))


class TestHelpers:
    """Test module-level helpers."""

    def test_cutoff_date(self):
        """Test the horizon starts years_back years before today."""
        assert cutoff_date(5, today=date(2024, 3, 15)) == date(2019, 3, 15)
        assert cutoff_date(1, today=date(2024, 2, 29)) == date(2023, 2, 28)

    def test_bars_to_closes(self):
        """Test closes are filtered, de-duplicated and sorted by date."""
        bars = make_bars("AAPL", [
            ("2024-03-04 05:00", 102.0),
            ("2024-02-28 05:00", 99.0),
            ("2024-03-01 05:00", 100.0),
            ("2024-03-01 21:00", 101.0),
        ])

        closes = bars_to_closes(bars, cutoff=date(2024, 3, 1))

        assert list(closes.index) == [date(2024, 3, 1), date(2024, 3, 4)]
        assert list(closes) == [101.0, 102.0]

    def test_bars_to_closes_empty(self):
        """Test an empty frame gives an empty series."""
        assert bars_to_closes(pd.DataFrame()).empty


class TestAlpacaDataFetcher:
    """Test AlpacaDataFetcher."""

    def test_missing_keys(self, mock_clients):
        """Test empty API keys are rejected."""
        with pytest.raises(ValueError, match="Alpaca API keys must be set"):
            AlpacaDataFetcher(api_key="", secret_key="secret")

    def test_valid_symbol(self, fetcher, mock_clients):
        """Test a tradable asset is a valid symbol."""
        _, trading_client = mock_clients
        trading_client.get_asset.return_value = Mock(tradable=True)

        assert fetcher.is_valid_stock_symbol("aapl")
        trading_client.get_asset.assert_called_once_with("AAPL")

    def test_invalid_symbol(self, fetcher, mock_clients):
        """Test unknown, untradable and malformed symbols are rejected."""
        _, trading_client = mock_clients

        trading_client.get_asset.side_effect = APIError("asset not found")
        assert not fetcher.is_valid_stock_symbol("ZZZZ")

        trading_client.get_asset.side_effect = None
        trading_client.get_asset.return_value = Mock(tradable=False)
        assert not fetcher.is_valid_stock_symbol("OTC")

        trading_client.get_asset.reset_mock()
        assert not fetcher.is_valid_stock_symbol("not a symbol!")
        trading_client.get_asset.assert_not_called()

    def test_fetch_bars_caches_to_parquet(self, fetcher, mock_clients, tmp_path):
        """Test downloaded bars are written once and then read from disk."""
        data_client, _ = mock_clients
        bars = make_bars("AAPL", [("2024-03-01 05:00", 100.0)])
        data_client.get_stock_bars.return_value = Mock(df=bars)

        first = fetcher.fetch_bars("AAPL", date(2024, 3, 1), date(2024, 3, 5))
        second = fetcher.fetch_bars("AAPL", date(2024, 3, 1), date(2024, 3, 5))

        assert data_client.get_stock_bars.call_count == 1
        assert (tmp_path / "AAPL_1Day_2024-03-01_to_2024-03-05.parquet").exists()
        assert list(second['close']) == list(first['close']) == [100.0]

    def test_fetch_bars_rate_limit(self, fetcher, mock_clients):
        """Test rate limit errors map to APILimitExceededError."""
        data_client, _ = mock_clients
        data_client.get_stock_bars.side_effect = APIError("rate limit exceeded")

        with pytest.raises(APILimitExceededError):
            fetcher.fetch_bars("AAPL", date(2024, 3, 1), date(2024, 3, 5))

    def test_fetch_bars_api_error(self, fetcher, mock_clients):
        """Test other API failures map to DataFetchError."""
        data_client, _ = mock_clients
        data_client.get_stock_bars.side_effect = APIError("forbidden")

        with pytest.raises(DataFetchError) as exc_info:
            fetcher.fetch_bars("AAPL", date(2024, 3, 1), date(2024, 3, 5))

        assert not isinstance(exc_info.value, APILimitExceededError)

    def test_fetch_historical_data(self, fetcher, mock_clients):
        """Test timelines are built per symbol and empty symbols skipped."""
        data_client, _ = mock_clients
        data_client.get_stock_bars.side_effect = [
            Mock(df=make_bars("AAPL", [
                ("2023-03-09 05:00", 90.0),
                ("2024-03-01 05:00", 100.0),
                ("2024-03-04 05:00", 102.0),
            ])),
            Mock(df=pd.DataFrame()),
        ]

        stocks = fetcher.fetch_historical_data(["AAPL", "NODATA"], years_back=1, today=date(2024, 3, 10))

        assert [stock.symbol for stock in stocks] == ["AAPL"]
        assert [p.price for p in stocks[0].history] == [100.0, 102.0]
        assert stocks[0].current_date() == date(2024, 3, 1)

    def test_fetch_bars_connection_error(self, fetcher, mock_clients):
        """Test transport failures outside APIError map to DataFetchError."""
        data_client, _ = mock_clients
        data_client.get_stock_bars.side_effect = RequestsConnectionError("connection refused")

        with pytest.raises(DataFetchError, match="Connection error fetching data for AAPL"):
            fetcher.fetch_historical_data(["AAPL"], years_back=1, today=date(2024, 3, 10))
