"""Monte Carlo equity projection.

Usage:
    >>> from strategy_report.libraries.simulation import run_monte_carlo
    >>> result = run_monte_carlo(report.trades, initial_capital=10000.0, seed=7)
    >>> result.statistics.median_final_equity
"""

from strategy_report.libraries.simulation.models import MonteCarloResult, MonteCarloStatistics
from strategy_report.libraries.simulation.monte_carlo import outcome_distribution, run_monte_carlo, simulate_path

__all__ = [
    "MonteCarloResult",
    "MonteCarloStatistics",
    "run_monte_carlo",
    "outcome_distribution",
    "simulate_path",
]
