"""Performance metrics calculation functions.

Pure functions over a TradeEvent sequence. None of them modify their inputs;
every division by zero yields 0 instead of raising.

Usage:
    >>> from strategy_report.libraries.performance import metrics
    >>> snapshot = metrics.compute_metrics(report.trades)
    >>> snapshot.profit_factor
    2.0
    >>>
    >>> # Same history, different starting balance
    >>> shifted = metrics.recalculate_with_initial_balance(report.trades, 50000.0)
"""

import math
import statistics
from collections import deque
from datetime import datetime
from typing import Sequence

from strategy_report.errors import ValidationError
from strategy_report.libraries.parsing.models import Direction, EventType, TradeEvent
from strategy_report.libraries.performance.models import MetricsSnapshot
from strategy_report.system.log_system import LoggerFactory

logger = LoggerFactory.get_logger()

DEFAULT_ANNUALIZATION_FACTOR = 252


def countable_trades(trades: Sequence[TradeEvent]) -> list[TradeEvent]:
    """Closed trades with realized profit, in sequence order."""
    return [trade for trade in trades if trade.is_countable]


def balance_points(trades: Sequence[TradeEvent]) -> list[tuple[datetime, float]]:
    """(time, balance) for every balance-bearing event, in sequence order."""
    return [(trade.open_time, trade.balance) for trade in trades if trade.balance is not None]


def calculate_balance_bounds(trades: Sequence[TradeEvent]) -> tuple[float, float]:
    """
    First and last reported balance.

    Returns:
        (initial_balance, final_balance), both 0 when no event carries a balance
    """
    points = balance_points(trades)
    if not points:
        return 0.0, 0.0
    return points[0][1], points[-1][1]


def calculate_win_rate(trades: Sequence[TradeEvent]) -> float:
    """
    Percentage of countable trades with positive profit.

    Example:
        >>> calculate_win_rate([winner, loser])
        50.0
    """
    closed = countable_trades(trades)
    if not closed:
        return 0.0
    winners = sum(1 for trade in closed if trade.is_winner)
    return winners / len(closed) * 100


def calculate_gross(trades: Sequence[TradeEvent]) -> tuple[float, float]:
    """
    Gross profit and gross loss magnitude of countable trades.

    Returns:
        (gross_profit, gross_loss), both >= 0
    """
    profits = [trade.profit for trade in countable_trades(trades) if trade.profit is not None]
    gross_profit = sum(p for p in profits if p > 0)
    gross_loss = abs(sum(p for p in profits if p < 0))
    return gross_profit, gross_loss


def calculate_profit_factor(gross_profit: float, gross_loss: float) -> float:
    """
    Gross profit over gross loss.

    Returns:
        Profit factor, or 0 when there are no losses

    Example:
        >>> calculate_profit_factor(100.0, 50.0)
        2.0
        >>> calculate_profit_factor(100.0, 0.0)
        0.0
    """
    if gross_loss == 0:
        return 0.0
    return gross_profit / gross_loss


def calculate_max_drawdown(balances: Sequence[float]) -> tuple[float, float]:
    """
    Largest peak-to-trough balance decline.

    Single running-peak scan. The relative figure is the decline as a
    percentage of the peak at the point where the amount was largest.

    Args:
        balances: Balance snapshots in sequence order

    Returns:
        (max_drawdown, relative_drawdown_pct)

    Example:
        >>> calculate_max_drawdown([10000.0, 10100.0, 10050.0])
        (50.0, 0.49504950495049505)
    """
    if not balances:
        return 0.0, 0.0

    peak = balances[0]
    max_drawdown = 0.0
    relative = 0.0
    for balance in balances:
        if balance > peak:
            peak = balance
        drawdown = peak - balance
        if drawdown > max_drawdown:
            max_drawdown = drawdown
            relative = drawdown / peak * 100 if peak > 0 else 0.0
    return max_drawdown, relative


def calculate_recovery_factor(net_profit: float, max_drawdown: float) -> float:
    """Net profit over max drawdown, 0 when there was no drawdown."""
    if max_drawdown == 0:
        return 0.0
    return net_profit / max_drawdown


def calculate_trade_returns(trades: Sequence[TradeEvent]) -> list[float]:
    """
    Per-event fractional balance returns.

    A return is taken at every balance-bearing trade row, relative to the
    previous balance-bearing row of any type. Funding rows only move the
    reference balance.
    """
    returns: list[float] = []
    previous: float | None = None
    for trade in trades:
        if trade.balance is None:
            continue
        if previous is not None and previous != 0 and trade.type == EventType.TRADE:
            returns.append((trade.balance - previous) / previous)
        previous = trade.balance
    return returns


def calculate_sharpe_ratio(
    returns: Sequence[float],
    annualization_factor: int = DEFAULT_ANNUALIZATION_FACTOR,
) -> float:
    """
    Annualized Sharpe ratio of per-event returns.

    Sharpe = mean / population stddev * sqrt(annualization_factor)

    Returns:
        Sharpe ratio, or 0 with fewer than 2 returns or zero deviation
    """
    if len(returns) < 2:
        return 0.0

    mean_return = sum(returns) / len(returns)
    variance = sum((r - mean_return) ** 2 for r in returns) / len(returns)
    std_dev = math.sqrt(variance)
    if std_dev == 0:
        return 0.0

    return mean_return / std_dev * math.sqrt(annualization_factor)


def calculate_sortino_ratio(
    returns: Sequence[float],
    annualization_factor: int = DEFAULT_ANNUALIZATION_FACTOR,
) -> float:
    """
    Annualized Sortino ratio (mean over downside deviation).

    Downside deviation is the root mean square of negative returns over all
    periods.

    Returns:
        Sortino ratio, or 0 when there are no negative returns
    """
    if len(returns) < 2:
        return 0.0

    downside = [r for r in returns if r < 0]
    if not downside:
        return 0.0

    mean_return = sum(returns) / len(returns)
    downside_deviation = math.sqrt(sum(r**2 for r in downside) / len(returns))
    if downside_deviation == 0:
        return 0.0

    return mean_return / downside_deviation * math.sqrt(annualization_factor)


def calculate_cagr(
    initial_balance: float,
    final_balance: float,
    start: datetime | None,
    end: datetime | None,
) -> float:
    """
    Compound annual growth rate as a percentage.

    Uses a 365.25-day year. Histories shorter than one day report the
    simple return instead.

    Example:
        >>> calculate_cagr(100000.0, 150000.0, datetime(2023, 1, 1), datetime(2025, 1, 1))
        22.44...
    """
    if initial_balance <= 0 or start is None or end is None:
        return 0.0
    if final_balance <= 0:
        return -100.0

    ratio = final_balance / initial_balance
    days = (end - start).total_seconds() / 86400
    if days < 1:
        return (ratio - 1) * 100

    try:
        return (ratio ** (365.25 / days) - 1) * 100
    except OverflowError:
        return (ratio - 1) * 100


def calculate_calmar_ratio(cagr: float, relative_drawdown: float) -> float:
    """CAGR over relative drawdown, 0 when there was no drawdown."""
    if relative_drawdown == 0:
        return 0.0
    return cagr / relative_drawdown


def calculate_value_at_risk(returns: Sequence[float], confidence: float = 0.95) -> float:
    """
    Historical value at risk as a positive percentage loss.

    Returns:
        Loss not exceeded with the given confidence, or 0 with fewer than
        10 returns
    """
    if len(returns) < 10:
        return 0.0
    ordered = sorted(returns)
    index = int(math.floor((1 - confidence) * len(ordered)))
    return max(-ordered[index] * 100, 0.0)


def calculate_skewness(returns: Sequence[float]) -> float:
    """
    Sample skewness of returns (adjusted Fisher-Pearson, as Excel SKEW).

    Positive values mean a longer right tail: occasional large gains.

    Returns:
        Skewness, or 0 with fewer than 3 returns or zero deviation

    Example:
        >>> calculate_skewness([0.0, 0.0, 3.0])
        1.7320508075688772
    """
    n = len(returns)
    if n < 3:
        return 0.0
    mean_return = statistics.fmean(returns)
    std_dev = statistics.stdev(returns)
    if std_dev == 0:
        return 0.0
    cubed = sum(((r - mean_return) / std_dev) ** 3 for r in returns)
    return n / ((n - 1) * (n - 2)) * cubed


def calculate_kurtosis(returns: Sequence[float]) -> float:
    """
    Sample excess kurtosis of returns (as Excel KURT); 0 for a normal distribution.

    Returns:
        Excess kurtosis, or 0 with fewer than 4 returns or zero deviation
    """
    n = len(returns)
    if n < 4:
        return 0.0
    mean_return = statistics.fmean(returns)
    std_dev = statistics.stdev(returns)
    if std_dev == 0:
        return 0.0
    fourth = sum(((r - mean_return) / std_dev) ** 4 for r in returns)
    scale = n * (n + 1) / ((n - 1) * (n - 2) * (n - 3))
    correction = 3 * (n - 1) ** 2 / ((n - 2) * (n - 3))
    return scale * fourth - correction


def calculate_tail_ratio(returns: Sequence[float]) -> float:
    """
    95th percentile return over the magnitude of the 5th percentile return.

    Percentiles are taken by index into the sorted returns. Above 1 the
    right tail (gains) is fatter than the left tail (losses).

    Returns:
        Tail ratio, or 1 with fewer than 20 returns or when either tail has
        the wrong sign
    """
    if len(returns) < 20:
        return 1.0
    ordered = sorted(returns)
    p5 = ordered[int(len(ordered) * 0.05)]
    p95 = ordered[int(len(ordered) * 0.95)]
    if p5 >= 0 or p95 <= 0:
        return 1.0
    return abs(p95 / p5)


def calculate_autocorrelation(returns: Sequence[float]) -> float:
    """
    Lag-1 autocorrelation of returns.

    Positive values mean results cluster (wins follow wins), negative
    values mean they alternate.

    Returns:
        Autocorrelation in [-1, 1], or 0 with fewer than 10 returns or zero variance
    """
    n = len(returns)
    if n < 10:
        return 0.0
    mean_return = statistics.fmean(returns)
    denominator = sum((r - mean_return) ** 2 for r in returns)
    if denominator == 0:
        return 0.0
    numerator = sum((returns[i] - mean_return) * (returns[i + 1] - mean_return) for i in range(n - 1))
    return numerator / denominator


def calculate_expectancy(profits: Sequence[float]) -> float:
    """
    Expected value per trade.

    Expectancy = P(win) * AvgWin + P(loss) * AvgLoss, with AvgLoss negative.
    Breakeven trades count toward the denominator only.
    """
    if not profits:
        return 0.0

    wins = [p for p in profits if p > 0]
    losses = [p for p in profits if p < 0]
    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = sum(losses) / len(losses) if losses else 0.0
    return len(wins) / len(profits) * avg_win + len(losses) / len(profits) * avg_loss


def calculate_streaks(profits: Sequence[float]) -> tuple[int, int, float, float]:
    """
    Consecutive win and loss streaks.

    Breakeven trades neither extend nor break a streak.

    Returns:
        (max_wins, max_losses, avg_wins, avg_losses)
    """
    win_streaks: list[int] = []
    loss_streaks: list[int] = []
    wins = 0
    losses = 0

    for profit in profits:
        if profit > 0:
            if losses:
                loss_streaks.append(losses)
                losses = 0
            wins += 1
        elif profit < 0:
            if wins:
                win_streaks.append(wins)
                wins = 0
            losses += 1

    if wins:
        win_streaks.append(wins)
    if losses:
        loss_streaks.append(losses)

    return (
        max(win_streaks, default=0),
        max(loss_streaks, default=0),
        sum(win_streaks) / len(win_streaks) if win_streaks else 0.0,
        sum(loss_streaks) / len(loss_streaks) if loss_streaks else 0.0,
    )


def calculate_streak_amounts(profits: Sequence[float]) -> tuple[float, float]:
    """
    Total profit of the longest win streak and of the longest loss streak.

    Streaks follow calculate_streaks; when two streaks tie for length the
    earlier one counts.

    Returns:
        (win_streak_amount, loss_streak_amount), the latter negative or 0

    Example:
        >>> calculate_streak_amounts([10.0, 20.0, -5.0, 30.0])
        (30.0, -5.0)
    """
    best = {True: (0, 0.0), False: (0, 0.0)}
    current_winning: bool | None = None
    count = 0
    amount = 0.0

    for profit in [*profits, None]:
        winning = None if profit is None or profit == 0 else profit > 0
        if profit is not None and winning is None:
            continue
        if winning != current_winning:
            if current_winning is not None and count > best[current_winning][0]:
                best[current_winning] = (count, amount)
            current_winning = winning
            count = 0
            amount = 0.0
        if profit is not None:
            count += 1
            amount += profit

    return best[True][1], best[False][1]


def calculate_average_trade_duration(trades: Sequence[TradeEvent]) -> float:
    """
    Mean time in hours from a position's opening deal to its closing deal.

    Each closing (OUT) deal is paired with an open IN deal of the same
    symbol: the one with the same order id when there is one (TradingView
    repeats the trade number), otherwise the oldest (FIFO, as MT5 netting
    accounts close). Closing deals with no open entry are ignored.

    Returns:
        Average duration in hours, 0 when no deal could be paired
    """
    open_entries: dict[str | None, deque[TradeEvent]] = {}
    durations: list[float] = []

    for trade in trades:
        if trade.type != EventType.TRADE:
            continue
        if trade.direction == Direction.IN:
            open_entries.setdefault(trade.symbol, deque()).append(trade)
        elif trade.direction == Direction.OUT:
            queue = open_entries.get(trade.symbol)
            if not queue:
                continue
            entry = next((candidate for candidate in queue if trade.order and candidate.order == trade.order), queue[0])
            queue.remove(entry)
            durations.append((trade.open_time - entry.open_time).total_seconds() / 3600)

    return statistics.fmean(durations) if durations else 0.0


def position_side(trade: TradeEvent) -> str | None:
    """
    Long/short side of the position a deal belongs to.

    MT5 closes a long position with a sell deal, so the side of an OUT
    deal is the opposite of its deal type.
    """
    side = (trade.side or "").lower()
    if side in ("long", "short"):
        return side
    if side == "buy":
        return "short" if trade.direction == Direction.OUT else "long"
    if side == "sell":
        return "long" if trade.direction == Direction.OUT else "short"
    return None


def shift_balances(trades: Sequence[TradeEvent], offset: float) -> list[TradeEvent]:
    """Return a copy of the sequence with every balance snapshot moved by offset."""
    if offset == 0:
        return list(trades)
    return [
        trade.model_copy(update={"balance": trade.balance + offset}) if trade.balance is not None else trade
        for trade in trades
    ]


def compute_metrics(
    trades: Sequence[TradeEvent],
    initial_balance_override: float | None = None,
    annualization_factor: int = DEFAULT_ANNUALIZATION_FACTOR,
) -> MetricsSnapshot:
    """
    Compute the full metrics snapshot for a trade history.

    Args:
        trades: Events ordered by open_time
        initial_balance_override: Replace the first reported balance; every
            balance snapshot is shifted by the same offset
        annualization_factor: Periods per year for Sharpe/Sortino

    Returns:
        MetricsSnapshot

    Raises:
        ValidationError: If initial_balance_override is not positive
    """
    if initial_balance_override is not None:
        return recalculate_with_initial_balance(trades, initial_balance_override, annualization_factor)
    return _compute(trades, annualization_factor)


def recalculate_with_initial_balance(
    trades: Sequence[TradeEvent],
    new_initial_balance: float,
    annualization_factor: int = DEFAULT_ANNUALIZATION_FACTOR,
) -> MetricsSnapshot:
    """
    Recompute metrics as if the account had started with a different balance.

    Balance snapshots are shifted by (new - original initial balance); trades
    are not replayed, so broker-side adjustments baked into the reported
    balances are preserved.

    When no event carries a balance there is nothing to shift: the override
    has no effect, a "metrics.rebalance_ignored" warning is logged and the
    snapshot equals compute_metrics(trades).

    Raises:
        ValidationError: If new_initial_balance is not positive
    """
    if new_initial_balance <= 0:
        raise ValidationError(f"Initial balance must be positive, got {new_initial_balance}")

    if not balance_points(trades):
        logger.warning("metrics.rebalance_ignored", new_initial_balance=new_initial_balance, reason="no balances")
        return _compute(trades, annualization_factor)

    original_initial, _ = calculate_balance_bounds(trades)
    offset = new_initial_balance - original_initial
    logger.debug("metrics.rebalanced", original=original_initial, new=new_initial_balance, offset=offset)
    return _compute(shift_balances(trades, offset), annualization_factor)


def _compute(trades: Sequence[TradeEvent], annualization_factor: int) -> MetricsSnapshot:
    points = balance_points(trades)
    balances = [balance for _, balance in points]
    initial_balance, final_balance = calculate_balance_bounds(trades)
    net_profit = final_balance - initial_balance

    closed = countable_trades(trades)
    profits = [trade.profit for trade in closed if trade.profit is not None]
    wins = [p for p in profits if p > 0]
    losses = [p for p in profits if p < 0]
    gross_profit, gross_loss = calculate_gross(closed)

    average_win = sum(wins) / len(wins) if wins else 0.0
    average_loss = sum(losses) / len(losses) if losses else 0.0
    max_wins, max_losses, avg_wins, avg_losses = calculate_streaks(profits)
    win_streak_amount, loss_streak_amount = calculate_streak_amounts(profits)

    max_drawdown, relative_drawdown = calculate_max_drawdown(balances)
    returns = calculate_trade_returns(trades)
    start = points[0][0] if points else None
    end = points[-1][0] if points else None
    cagr = calculate_cagr(initial_balance, final_balance, start, end)

    sides = [position_side(trade) for trade in closed]

    snapshot = MetricsSnapshot(
        initial_balance=initial_balance,
        final_balance=final_balance,
        total_net_profit=net_profit,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        profit_factor=calculate_profit_factor(gross_profit, gross_loss),
        total_trades=len(closed),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=calculate_win_rate(closed),
        expected_payoff=net_profit / len(closed) if closed else 0.0,
        average_trade=sum(profits) / len(profits) if profits else 0.0,
        average_win=average_win,
        average_loss=average_loss,
        largest_win=max(wins, default=0.0),
        largest_loss=min(losses, default=0.0),
        win_loss_ratio=average_win / abs(average_loss) if average_loss else 0.0,
        expectancy=calculate_expectancy(profits),
        long_trades=sides.count("long"),
        short_trades=sides.count("short"),
        max_consecutive_wins=max_wins,
        max_consecutive_losses=max_losses,
        avg_consecutive_wins=avg_wins,
        avg_consecutive_losses=avg_losses,
        max_win_streak_amount=win_streak_amount,
        max_loss_streak_amount=loss_streak_amount,
        average_trade_duration_hours=calculate_average_trade_duration(trades),
        total_commission=sum(trade.commission or 0.0 for trade in trades),
        total_swap=sum(trade.swap or 0.0 for trade in trades),
        max_drawdown=max_drawdown,
        relative_drawdown=relative_drawdown,
        recovery_factor=calculate_recovery_factor(net_profit, max_drawdown),
        sharpe_ratio=calculate_sharpe_ratio(returns, annualization_factor),
        sortino_ratio=calculate_sortino_ratio(returns, annualization_factor),
        calmar_ratio=calculate_calmar_ratio(cagr, relative_drawdown),
        cagr=cagr,
        return_mean_pct=statistics.fmean(returns) * 100 if returns else 0.0,
        return_median_pct=statistics.median(returns) * 100 if returns else 0.0,
        value_at_risk_95_pct=calculate_value_at_risk(returns),
        return_skewness=calculate_skewness(returns),
        return_kurtosis=calculate_kurtosis(returns),
        tail_ratio=calculate_tail_ratio(returns),
        return_autocorrelation=calculate_autocorrelation(returns),
        first_trade_time=closed[0].open_time if closed else None,
        last_trade_time=closed[-1].open_time if closed else None,
    )

    logger.debug(
        "metrics.computed",
        trades=snapshot.total_trades,
        net_profit=round(net_profit, 2),
        win_rate=round(snapshot.win_rate, 2),
    )
    return snapshot
