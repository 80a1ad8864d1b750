#!/usr/bin/env python3
"""
Backtesting Analytics

Turns the valuation snapshots of a simulation run into tables, files and
charts for reporting.

Features:
- Snapshot table (date, trader, value)
- CSV export of sampled portfolio values
- Portfolio value chart per trader
- Per-trader summary: total return and drawdown over the sampled values
"""

from typing import List, Optional, Sequence
import pandas as pd
import numpy as np
import matplotlib
import matplotlib.pyplot as plt

from stocksim.backtesting.exchange import SimulationResult, ValuationSnapshot
from stocksim.utils.logging_config import logger


CSV_COLUMNS = {'date': 'Date', 'trader': 'Trader', 'value': 'Portfolio Value'}


def snapshots_to_frame(snapshots: Sequence[ValuationSnapshot]) -> pd.DataFrame:
    """
    Flatten snapshots into one row per (date, trader).

    Returns:
        DataFrame with columns date, trader, value ordered by date
    """
    rows = [
        {'date': snapshot.date, 'trader': trader, 'value': value}
        for snapshot in snapshots
        for trader, value in snapshot.values.items()
    ]
    df = pd.DataFrame(rows, columns=['date', 'trader', 'value'])
    return df.sort_values('date', kind='stable').reset_index(drop=True)


def write_portfolio_values_csv(snapshots: Sequence[ValuationSnapshot], path: str) -> str:
    """
    Save sampled portfolio values as CSV (Date, Trader, Portfolio Value).

    Returns:
        Path written
    """
    df = snapshots_to_frame(snapshots).rename(columns=CSV_COLUMNS)
    df.to_csv(path, index=False)
    logger.info(f"Portfolio values saved to {path}")
    return path


def plot_portfolio_values(snapshots: Sequence[ValuationSnapshot],
                          symbols: Sequence[str],
                          path: Optional[str] = None,
                          show: bool = False) -> Optional[plt.Figure]:
    """
    Plot one portfolio value line per trader.

    Args:
        snapshots: Valuation snapshots from a run
        symbols: Stock symbols shown in the subtitle
        path: Save the chart as PNG here if given
        show: Display the chart window

    Returns:
        The matplotlib Figure (closed unless shown), or None when there is
        nothing to plot
    """
    df = snapshots_to_frame(snapshots)
    if df.empty:
        logger.warning("No portfolio values to plot")
        return None

    pivot = df.pivot_table(index='date', columns='trader', values='value', sort=False)
    pivot.index = pd.to_datetime(pivot.index)

    # 800x600 px
    fig, ax = plt.subplots(figsize=(8, 6), dpi=100)
    for trader in pivot.columns:
        ax.plot(pivot.index, pivot[trader], label=trader)

    fig.suptitle("Trader Portfolio Values Over Time")
    ax.set_title(f"Stocks: {', '.join(symbols)}", fontsize=9)
    ax.set_xlabel("Date")
    ax.set_ylabel("Portfolio Value")
    ax.set_xlim(pivot.index.min(), pivot.index.max())
    ax.legend()
    fig.autofmt_xdate()

    if path:
        fig.savefig(path)
        logger.info(f"Chart saved as {path}")

    if show and matplotlib.get_backend().lower() != 'agg':
        plt.show()
    else:
        plt.close(fig)

    return fig


def _max_drawdown_pct(values: pd.Series) -> float:
    if values.empty:
        return 0.0
    running_max = values.cummax()
    drawdowns = np.where(running_max > 0, (running_max - values) / running_max, 0.0)
    return float(np.max(drawdowns) * 100)


def summarize_result(result: SimulationResult) -> pd.DataFrame:
    """
    Per-trader summary of a run.

    Final value is computed from the final ledger at the last prices; return
    and drawdown use the sampled values.

    Returns:
        DataFrame indexed by trader name
    """
    df = snapshots_to_frame(result.snapshots)
    rows: List[dict] = []

    for trader in result.traders:
        sampled = df.loc[df['trader'] == trader.name, 'value'].reset_index(drop=True)
        initial = trader.ledger.initial_cash
        final_value = result.final_values.get(
            trader.name, sampled.iloc[-1] if not sampled.empty else initial
        )

        rows.append({
            'trader': trader.name,
            'initial_cash': initial,
            'final_value': float(final_value),
            'total_return_pct': (final_value - initial) / initial * 100 if initial > 0 else 0.0,
            'max_drawdown_pct': _max_drawdown_pct(sampled),
            'total_trades': len(trader.trades),
            'final_cash': trader.ledger.cash,
            'holdings': trader.ledger.positions(),
        })

    return pd.DataFrame(rows).set_index('trader') if rows else pd.DataFrame()
