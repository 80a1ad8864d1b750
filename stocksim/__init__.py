"""
stock-sim

Daily-close backtester: replays historical closing prices day by day and lets
capitalized traders, each following a strategy, buy into the market.
"""

__version__ = "0.1.0"
