"""Monte Carlo simulation result models."""

import numpy as np
from pydantic import BaseModel, Field


class MonteCarloStatistics(BaseModel):
    """
    Aggregate statistics across simulated equity paths.

    Confidence intervals are (low, high) percentiles of final equity:
    50% spans the 25th to 75th percentile, 90% the 5th to 95th.
    """

    initial_capital: float
    num_simulations: int
    horizon: int
    median_final_equity: float
    best_final_equity: float
    worst_final_equity: float
    mean_final_equity: float
    confidence_50: tuple[float, float]
    confidence_90: tuple[float, float]
    median_max_drawdown_pct: float
    worst_max_drawdown_pct: float
    probability_of_profit: float  # Percent of paths ending above initial capital
    ruined_paths: int
    win_probability: float  # Share of winning outcomes in the sampled distribution


class MonteCarloResult(BaseModel):
    """
    Simulated equity paths plus their statistics.

    Each path has horizon + 1 points and starts at the initial capital.
    Ruined paths are zero after the period equity reached zero.
    """

    paths: list[list[float]] = Field(default_factory=list)
    statistics: MonteCarloStatistics

    def percentile_band(self, percentile: float) -> list[float]:
        """Per-period equity at the given percentile across paths."""
        if not self.paths:
            return []
        return np.percentile(np.asarray(self.paths), percentile, axis=0).tolist()
