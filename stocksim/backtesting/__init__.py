"""
Backtesting Module

Provides the simulation clock and the reporting tools for its results.

Components:
- SimulationClock: Day-by-day replay driving securities and traders
- ValuationSnapshot / SimulationResult: Sampled portfolio values and final state
- Analytics: CSV export, charting and per-trader summaries
"""

from .exchange import (
    SimulationClock,
    ClockState,
    ValuationSnapshot,
    SimulationResult,
    is_sampling_day
)

from .analytics import (
    snapshots_to_frame,
    write_portfolio_values_csv,
    plot_portfolio_values,
    summarize_result
)

__all__ = [
    # Simulation
    'SimulationClock',
    'ClockState',
    'ValuationSnapshot',
    'SimulationResult',
    'is_sampling_day',

    # Analytics
    'snapshots_to_frame',
    'write_portfolio_values_csv',
    'plot_portfolio_values',
    'summarize_result'
]
