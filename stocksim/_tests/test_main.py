#!/usr/bin/env python3
"""
Unit tests for stocksim/main.py - Stock Simulation Runner
"""

import matplotlib
matplotlib.use("Agg")

import pytest
import pandas as pd
from datetime import date, timedelta
from unittest.mock import Mock, patch
from requests.exceptions import ConnectionError as RequestsConnectionError

from stocksim.alpaca.data_fetcher import AlpacaDataFetcher, DataFetchError
from stocksim.main import (
    SimulationConfig, parse_trader_spec, build_traders, run_simulation,
    config_from_args, build_parser, main
)
from stocksim.market.timeline import SecurityTimeline, PricePoint
from stocksim.trading.strategy import RandomStrategy


def flat_timeline(symbol, price=100.0, days=3, start=date(2024, 3, 1)):
    return SecurityTimeline(symbol, [
        PricePoint(start + timedelta(days=i), price) for i in range(days)
    ])


class TestParseTraderSpec:
    """Test STRATEGY=CAPITAL parsing."""

    def test_valid_spec(self):
        """Test names with spaces and case-insensitive lookup."""
        assert parse_trader_spec("Buy and Hold=10000") == ("Buy and Hold", 10000.0)
        assert parse_trader_spec("rsi=2500.5") == ("rsi", 2500.5)

    @pytest.mark.parametrize("spec", [
        "RSI",
        "=100",
        "Momentum=100",
        "RSI=abc",
        "RSI=0",
        "RSI=-5",
    ])
    def test_invalid_spec(self, spec):
        """Test malformed specs raise ValueError."""
        with pytest.raises(ValueError):
            parse_trader_spec(spec)


class TestSimulationConfig:
    """Test run configuration validation."""

    def test_defaults_are_valid(self):
        """Test the default config validates."""
        SimulationConfig().validate()

    @pytest.mark.parametrize("overrides", [
        {'symbols': []},
        {'symbols': [f"S{i}" for i in range(26)]},
        {'years_back': 0},
        {'traders': []},
        {'traders': [("RSI", 0.0)]},
    ])
    def test_invalid_config(self, overrides):
        """Test out-of-range values are rejected."""
        with pytest.raises(ValueError):
            SimulationConfig(**overrides).validate()

    def test_config_from_args(self):
        """Test CLI arguments map onto the config."""
        args = build_parser().parse_args([
            '--symbols', 'aapl', 'msft',
            '--trader', 'RSI=500',
            '--trader', 'Random=250',
            '--years', '2',
            '--execute-sells',
            '--no-chart',
        ])

        config = config_from_args(args)

        assert config.symbols == ["AAPL", "MSFT"]
        assert config.traders == [("RSI", 500.0), ("Random", 250.0)]
        assert config.years_back == 2
        assert config.execute_sells is True
        assert config.output_chart is None


class TestBuildTraders:
    """Test trader construction."""

    def test_one_trader_per_entry(self):
        """Test strategies, capital and sell mode are applied."""
        config = SimulationConfig(traders=[("Buy and Hold", 1000.0), ("RSI", 500.0)], execute_sells=True)

        traders = build_traders(config)

        assert [t.cash for t in traders] == [1000.0, 500.0]
        assert all(t.execute_sells for t in traders)

    def test_duplicate_names_get_suffix(self):
        """Test display names stay unique."""
        config = SimulationConfig(traders=[("Random", 100.0), ("Random", 100.0)])

        names = [t.name for t in build_traders(config)]

        assert names == ["RandomStrategy with 100.0", "RandomStrategy with 100.0 #2"]

    def test_random_traders_share_seeded_generator(self):
        """Test Random strategies draw from one generator seeded by config."""
        traders = build_traders(SimulationConfig(traders=[("Random", 100.0), ("Random", 100.0)], seed=3))

        assert all(isinstance(t.strategy, RandomStrategy) for t in traders)
        assert traders[0].strategy.rng is traders[1].strategy.rng


class TestRunSimulation:
    """Test a full run over prepared timelines."""

    def test_writes_outputs(self, tmp_path):
        """Test a year-long run samples monthly and writes CSV and chart."""
        csv_path = tmp_path / "values.csv"
        chart_path = tmp_path / "chart.png"
        config = SimulationConfig(
            symbols=["X"],
            traders=[("Buy and Hold", 1000.0)],
            years_back=1,
            output_csv=str(csv_path),
            output_chart=str(chart_path),
        )

        result = run_simulation(config, [flat_timeline("X")], today=date(2024, 3, 2))

        # 2023-04-01 .. 2024-03-01
        assert len(result.snapshots) == 12
        assert result.traders[0].get_portfolio() == {"X": 10}

        df = pd.read_csv(csv_path)
        assert list(df.columns) == ['Date', 'Trader', 'Portfolio Value']
        assert (df['Portfolio Value'] == 1000.0).all()
        assert chart_path.exists()


class TestMain:
    """Test the command-line entry point."""

    @pytest.fixture
    def mock_fetcher(self):
        with patch('stocksim.main.AlpacaDataFetcher') as mock_cls:
            fetcher = mock_cls.return_value
            fetcher.is_valid_stock_symbol.return_value = True
            fetcher.fetch_historical_data.return_value = [flat_timeline("AAPL")]
            yield fetcher

    def test_success(self, mock_fetcher, tmp_path):
        """Test a run with valid input exits 0 and writes the CSV."""
        csv_path = tmp_path / "out.csv"

        code = main(['--symbols', 'AAPL', '--years', '1', '--output', str(csv_path), '--no-chart'])

        assert code == 0
        assert csv_path.exists()
        mock_fetcher.fetch_historical_data.assert_called_once_with(["AAPL"], 1)

    def test_invalid_symbol(self, mock_fetcher):
        """Test unknown symbols exit 2 before fetching."""
        mock_fetcher.is_valid_stock_symbol.side_effect = lambda s: s != "NOPE"

        assert main(['--symbols', 'AAPL', 'NOPE', '--no-chart']) == 2
        mock_fetcher.fetch_historical_data.assert_not_called()

    def test_invalid_trader(self, mock_fetcher):
        """Test a bad trader spec exits 2."""
        assert main(['--trader', 'Momentum=100']) == 2

    def test_too_many_symbols(self, mock_fetcher):
        """Test more than 25 symbols exits 2."""
        assert main(['--symbols'] + [f"S{i}" for i in range(26)]) == 2

    def test_missing_api_keys(self):
        """Test missing credentials exit 1."""
        with patch('stocksim.main.AlpacaDataFetcher', side_effect=ValueError("Alpaca API keys must be set")):
            assert main(['--symbols', 'AAPL']) == 1

    def test_data_fetch_error(self, mock_fetcher):
        """Test data failures exit 1."""
        mock_fetcher.fetch_historical_data.side_effect = DataFetchError("boom")

        assert main(['--symbols', 'AAPL', '--no-chart']) == 1

    def test_connection_failure_exits_1(self, tmp_path):
        """Test a dropped connection while downloading bars exits 1."""
        with patch('stocksim.alpaca.data_fetcher.StockHistoricalDataClient') as mock_data_client, \
             patch('stocksim.alpaca.data_fetcher.TradingClient') as mock_trading_client, \
             patch('stocksim.main.AlpacaDataFetcher',
                   lambda: AlpacaDataFetcher(api_key="key", secret_key="secret", data_dir=str(tmp_path))):
            mock_trading_client.return_value.get_asset.return_value = Mock(tradable=True)
            mock_data_client.return_value.get_stock_bars.side_effect = RequestsConnectionError("reset")

            assert main(['--symbols', 'AAPL', '--no-chart']) == 1
