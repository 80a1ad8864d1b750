#!/usr/bin/env python3
"""
Simulation Runner Script

Backtests trading strategies on daily closing prices fetched from Alpaca.

Usage:
    python run_simulation.py --symbols AAPL MSFT --trader "RSI=10000" --years 3
    python run_simulation.py --help
"""

import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(__file__))

from stocksim.main import main


if __name__ == "__main__":
    print("📈 Stock Simulation - Strategy Backtester")
    print("=" * 50)
    exit_code = main()
    sys.exit(exit_code)
