import os
from dotenv import load_dotenv

# Load `environment` variables from .env file
load_dotenv()


# --- Alpaca API Configuration ---
# Only the data fetcher needs these; it raises if they are missing.
ALPACA_API_KEY = os.getenv("ALPACA_API_KEY") or ''
ALPACA_SECRET_KEY = os.getenv("ALPACA_SECRET_KEY") or ''


# --- File Paths ---
DATA_DIR = "data"
LOGS_DIR = "logs"


# --- Random Seed ---
RANDOM_SEED = 0


# --- Simulation Configuration ---
SIMULATION_CONFIG = {
    'symbols': ["AAPL", "MSFT", "GOOG"],
    'years_back': 5,
    'initial_capital': 10000.0,
    'max_symbols': 25,
    'execute_sells': False,         # sell instructions are inert unless enabled
    'output_csv': "portfolio_values.csv",
    'output_chart': "portfolio_chart.png",
}


# --- Strategy Configuration ---
STRATEGY_CONFIG = {
    'sma_short_window': 50,         # moving average crossover
    'sma_long_window': 200,
    'rsi_period': 14,
    'rsi_overbought': 70.0,         # sell above
    'rsi_oversold': 30.0,           # buy below
    'mean_reversion_window': 50,
    'mean_reversion_threshold': 1.0,  # standard deviations
}
