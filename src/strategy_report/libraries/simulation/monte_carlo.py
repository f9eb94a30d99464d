"""Monte Carlo projection of future equity paths.

Methodology
-----------
Each countable historical trade becomes a fixed-magnitude outcome: a winner
returns +win_return and anything else -loss_return on a stake of
position_fraction of current equity. For every simulated path and period one
outcome is drawn uniformly with replacement and applied to running equity.
A path whose equity reaches zero is ruined and stays at zero.

Randomness
----------
All draws come from a numpy Generator. Child generators are spawned from the
parent before any path runs, one per path, so the result for a given seed is
the same regardless of how many worker threads execute the paths.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

import numpy as np

from strategy_report.errors import ValidationError
from strategy_report.libraries.parsing.models import TradeEvent
from strategy_report.libraries.simulation.models import MonteCarloResult, MonteCarloStatistics
from strategy_report.system.log_system import LoggerFactory

logger = LoggerFactory.get_logger()

DEFAULT_SIMULATIONS = 100
DEFAULT_HORIZON = 250
DEFAULT_WIN_RETURN = 0.05
DEFAULT_LOSS_RETURN = 0.03
DEFAULT_POSITION_FRACTION = 0.10


def outcome_distribution(
    trades: Sequence[TradeEvent],
    win_return: float = DEFAULT_WIN_RETURN,
    loss_return: float = DEFAULT_LOSS_RETURN,
) -> np.ndarray:
    """
    Per-trade stake returns for every countable trade.

    Returns:
        1-D array of +win_return / -loss_return values in trade order
    """
    return np.array(
        [win_return if trade.is_winner else -loss_return for trade in trades if trade.is_countable],
        dtype=float,
    )


def simulate_path(
    outcomes: np.ndarray,
    initial_capital: float,
    horizon: int,
    position_fraction: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Simulate one equity path.

    Returns:
        Array of horizon + 1 equity values starting at initial_capital
    """
    path = np.zeros(horizon + 1)
    path[0] = initial_capital
    picks = rng.integers(0, len(outcomes), size=horizon)

    equity = initial_capital
    for step, pick in enumerate(picks, start=1):
        equity += equity * position_fraction * outcomes[pick]
        if equity <= 0:
            break
        path[step] = equity
    return path


def _validate(initial_capital: float, num_simulations: int, horizon: int, position_fraction: float) -> None:
    if initial_capital <= 0:
        raise ValidationError(f"Initial capital must be positive, got {initial_capital}")
    if num_simulations < 1:
        raise ValidationError(f"Number of simulations must be at least 1, got {num_simulations}")
    if horizon < 1:
        raise ValidationError(f"Horizon must be at least 1 period, got {horizon}")
    if not 0 < position_fraction <= 1:
        raise ValidationError(f"Position fraction must be in (0, 1], got {position_fraction}")


def run_monte_carlo(
    trades: Sequence[TradeEvent],
    initial_capital: float,
    num_simulations: int = DEFAULT_SIMULATIONS,
    horizon: int = DEFAULT_HORIZON,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
    workers: int = 1,
    win_return: float = DEFAULT_WIN_RETURN,
    loss_return: float = DEFAULT_LOSS_RETURN,
    position_fraction: float = DEFAULT_POSITION_FRACTION,
) -> MonteCarloResult:
    """
    Project future equity paths by resampling historical trade outcomes.

    Args:
        trades: Trade history; only countable trades form the distribution
        initial_capital: Starting equity of every path
        num_simulations: Number of paths
        horizon: Periods per path
        rng: Random source (takes precedence over seed)
        seed: Seed for a fresh generator when rng is not given
        workers: Threads used to run paths; 1 runs them inline
        win_return: Stake return of a winning outcome
        loss_return: Stake loss magnitude of a non-winning outcome
        position_fraction: Share of current equity staked per period

    Returns:
        MonteCarloResult with all paths and aggregate statistics

    Raises:
        ValidationError: Invalid parameters or no countable trades

    Example:
        >>> result = run_monte_carlo(report.trades, 10000.0, seed=42)
        >>> low, high = result.statistics.confidence_90
    """
    _validate(initial_capital, num_simulations, horizon, position_fraction)

    outcomes = outcome_distribution(trades, win_return, loss_return)
    if outcomes.size == 0:
        raise ValidationError("Monte Carlo needs at least one closed trade with realized profit")

    parent = rng if rng is not None else np.random.default_rng(seed)
    children = parent.spawn(num_simulations)

    def run(child: np.random.Generator) -> np.ndarray:
        return simulate_path(outcomes, initial_capital, horizon, position_fraction, child)

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            paths = np.vstack(list(executor.map(run, children)))
    else:
        paths = np.vstack([run(child) for child in children])

    closed = [trade for trade in trades if trade.is_countable]
    win_probability = sum(1 for trade in closed if trade.is_winner) / len(closed)

    statistics = _summarize(paths, initial_capital, win_probability)
    logger.info(
        "monte_carlo.completed",
        simulations=num_simulations,
        horizon=horizon,
        workers=workers,
        median_final=round(statistics.median_final_equity, 2),
        ruined=statistics.ruined_paths,
    )
    return MonteCarloResult(paths=paths.tolist(), statistics=statistics)


def _summarize(paths: np.ndarray, initial_capital: float, win_probability: float) -> MonteCarloStatistics:
    finals = paths[:, -1]
    p5, p25, p75, p95 = np.percentile(finals, [5, 25, 75, 95])

    # Running peak per path; the first column is the positive initial capital
    running_max = np.maximum.accumulate(paths, axis=1)
    max_drawdowns = ((running_max - paths) / running_max * 100).max(axis=1)

    return MonteCarloStatistics(
        initial_capital=initial_capital,
        num_simulations=paths.shape[0],
        horizon=paths.shape[1] - 1,
        median_final_equity=float(np.median(finals)),
        best_final_equity=float(finals.max()),
        worst_final_equity=float(finals.min()),
        mean_final_equity=float(finals.mean()),
        confidence_50=(float(p25), float(p75)),
        confidence_90=(float(p5), float(p95)),
        median_max_drawdown_pct=float(np.median(max_drawdowns)),
        worst_max_drawdown_pct=float(max_drawdowns.max()),
        probability_of_profit=float(np.mean(finals > initial_capital) * 100),
        ruined_paths=int(np.count_nonzero(finals <= 0)),
        win_probability=win_probability,
    )
