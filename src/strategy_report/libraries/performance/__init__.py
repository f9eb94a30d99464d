"""Performance metrics library for trade history analysis.

1. **Models** (`models.py`): Pydantic data structures
   - MetricsSnapshot: Full statistics for one history
   - DrawdownPeriod: Peak-bottom-recovery episode
   - EquityPoint / DrawdownAnalysis: Equity curve plus episodes
   - GroupStats / MonthlyStats: Symbol, month, month-of-year, weekday and hour breakdowns

2. **Metrics** (`metrics.py`): Pure calculation functions
   - Balance: initial/final balance, net profit, balance shifting
   - Risk: max drawdown, recovery factor, value at risk
   - Risk-adjusted: Sharpe, Sortino, Calmar, CAGR
   - Return distribution: skewness, kurtosis, tail ratio, autocorrelation
   - Trade stats: win rate, profit factor, expectancy, streaks, durations

3. **Drawdown** (`drawdown.py`): Stateful DrawdownCalculator and compute_drawdowns()

4. **Aggregations** (`aggregations.py`): Grouped statistics

Usage:
    >>> from strategy_report.libraries.performance import compute_metrics, compute_drawdowns
    >>> snapshot = compute_metrics(report.trades)
    >>> analysis = compute_drawdowns(report.trades)
    >>> print(f"Max DD: {snapshot.max_drawdown:.2f} ({snapshot.relative_drawdown:.2f}%)")
"""

from strategy_report.libraries.performance.aggregations import (
    aggregate_by_calendar_month,
    aggregate_by_hour,
    aggregate_by_month,
    aggregate_by_symbol,
    aggregate_by_weekday,
)
from strategy_report.libraries.performance.drawdown import DrawdownCalculator, compute_drawdowns
from strategy_report.libraries.performance.metrics import (
    calculate_autocorrelation,
    calculate_average_trade_duration,
    calculate_cagr,
    calculate_calmar_ratio,
    calculate_expectancy,
    calculate_kurtosis,
    calculate_max_drawdown,
    calculate_profit_factor,
    calculate_sharpe_ratio,
    calculate_skewness,
    calculate_sortino_ratio,
    calculate_streak_amounts,
    calculate_tail_ratio,
    calculate_win_rate,
    compute_metrics,
    recalculate_with_initial_balance,
    shift_balances,
)
from strategy_report.libraries.performance.models import (
    DrawdownAnalysis,
    DrawdownPeriod,
    EquityPoint,
    GroupStats,
    MetricsSnapshot,
    MonthlyStats,
)

__all__ = [
    # Models
    "MetricsSnapshot",
    "DrawdownPeriod",
    "DrawdownAnalysis",
    "EquityPoint",
    "GroupStats",
    "MonthlyStats",
    # Metrics (pure functions)
    "compute_metrics",
    "recalculate_with_initial_balance",
    "shift_balances",
    "calculate_win_rate",
    "calculate_profit_factor",
    "calculate_max_drawdown",
    "calculate_sharpe_ratio",
    "calculate_sortino_ratio",
    "calculate_calmar_ratio",
    "calculate_cagr",
    "calculate_expectancy",
    "calculate_skewness",
    "calculate_kurtosis",
    "calculate_tail_ratio",
    "calculate_autocorrelation",
    "calculate_streak_amounts",
    "calculate_average_trade_duration",
    # Drawdown
    "DrawdownCalculator",
    "compute_drawdowns",
    # Aggregations
    "aggregate_by_symbol",
    "aggregate_by_month",
    "aggregate_by_calendar_month",
    "aggregate_by_weekday",
    "aggregate_by_hour",
]
