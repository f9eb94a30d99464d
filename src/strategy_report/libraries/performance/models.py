"""Performance analysis data models.

Pydantic models for the derived outputs of the metrics engine and the
drawdown analyzer. They are recomputed from a TradeEvent sequence on demand
and never persisted.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class DrawdownPeriod(BaseModel):
    """
    One drawdown episode (peak to bottom to recovery).

    Opened when the balance first drops below the running peak, extended
    while it sets new lows, closed when the balance exceeds the peak.
    An episode still open at the end of the history has no recovery fields.
    """

    start: datetime  # Time of the preceding peak
    peak: float
    peak_time: datetime
    bottom: float
    bottom_time: datetime
    recovery_value: float | None = None
    recovery_time: datetime | None = None
    drawdown_amount: float  # peak - bottom
    drawdown_percent: float  # Amount as percent of peak
    duration_days: int  # Peak to bottom, rounded up
    recovery_duration_days: int | None = None  # Bottom to recovery, rounded up

    @property
    def recovered(self) -> bool:
        """Balance exceeded the peak again."""
        return self.recovery_time is not None


class EquityPoint(BaseModel):
    """Single point on the equity curve."""

    time: datetime
    equity: float
    drawdown_percent: float  # Distance below running peak, >= 0


class DrawdownAnalysis(BaseModel):
    """
    Equity curve and drawdown episodes for one trade history.

    Attributes:
        equity_curve: One point per balance-bearing event, in input order
        drawdown_periods: Episodes above the noise threshold, largest amount first
        all_periods: Every episode in chronological order
    """

    equity_curve: list[EquityPoint] = Field(default_factory=list)
    drawdown_periods: list[DrawdownPeriod] = Field(default_factory=list)
    all_periods: list[DrawdownPeriod] = Field(default_factory=list)

    @property
    def max_drawdown(self) -> float:
        """Largest drawdown amount across all episodes."""
        return max((period.drawdown_amount for period in self.all_periods), default=0.0)

    @property
    def max_drawdown_percent(self) -> float:
        """Largest drawdown percent across all episodes."""
        return max((period.drawdown_percent for period in self.all_periods), default=0.0)


class MetricsSnapshot(BaseModel):
    """
    Aggregate statistics over a full trade history.

    Balance figures come from the report's balance snapshots; trade
    statistics only count closed trades with realized profit.
    """

    # Balance
    initial_balance: float
    final_balance: float
    total_net_profit: float

    # Trade statistics
    gross_profit: float
    gross_loss: float  # Magnitude, >= 0
    profit_factor: float  # 0 when there are no losses
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float  # Percent, 0-100
    expected_payoff: float
    average_trade: float
    average_win: float
    average_loss: float  # Negative or 0
    largest_win: float
    largest_loss: float
    win_loss_ratio: float
    expectancy: float
    long_trades: int
    short_trades: int
    max_consecutive_wins: int
    max_consecutive_losses: int
    avg_consecutive_wins: float
    avg_consecutive_losses: float
    max_win_streak_amount: float
    max_loss_streak_amount: float  # Negative or 0
    average_trade_duration_hours: float

    # Costs
    total_commission: float
    total_swap: float

    # Risk
    max_drawdown: float
    relative_drawdown: float  # Percent of peak at the max-amount point
    recovery_factor: float

    # Risk-adjusted
    sharpe_ratio: float
    sortino_ratio: float
    calmar_ratio: float
    cagr: float  # Percent

    # Return distribution
    return_mean_pct: float
    return_median_pct: float
    value_at_risk_95_pct: float
    return_skewness: float
    return_kurtosis: float  # Excess, 0 for a normal distribution
    tail_ratio: float
    return_autocorrelation: float  # Lag 1

    first_trade_time: datetime | None = None
    last_trade_time: datetime | None = None


class GroupStats(BaseModel):
    """
    Trade statistics for one group (symbol, month, weekday or hour).

    profit_factor is None when the group has no losing trades; no_losses
    flags that case explicitly.
    """

    key: str
    trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    gross_profit: float
    gross_loss: float
    net_profit: float
    average_trade: float
    profit_factor: float | None
    no_losses: bool = False


class MonthlyStats(GroupStats):
    """Calendar month statistics with the month's balance change."""

    start_balance: float | None = None
    end_balance: float | None = None
    return_pct: float | None = None
