"""Grouped trade statistics.

Groups countable trades by symbol, calendar month, month of year, weekday
or hour of day
and computes the same statistics for each group. Groups without losing
trades report profit_factor=None with no_losses=True.
"""

from collections import defaultdict
from typing import Callable, Sequence

from strategy_report.libraries.parsing.models import TradeEvent
from strategy_report.libraries.performance.metrics import countable_trades
from strategy_report.libraries.performance.models import GroupStats, MonthlyStats

UNKNOWN_SYMBOL = "UNKNOWN"

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def _group(trades: Sequence[TradeEvent], key: Callable[[TradeEvent], str]) -> dict[str, list[TradeEvent]]:
    groups: dict[str, list[TradeEvent]] = defaultdict(list)
    for trade in countable_trades(trades):
        groups[key(trade)].append(trade)
    return groups


def _stats_fields(trades: Sequence[TradeEvent]) -> dict:
    profits = [trade.profit for trade in trades if trade.profit is not None]
    winners = sum(1 for p in profits if p > 0)
    losers = sum(1 for p in profits if p < 0)
    gross_profit = sum(p for p in profits if p > 0)
    gross_loss = abs(sum(p for p in profits if p < 0))
    net_profit = sum(profits)

    return {
        "trades": len(profits),
        "winning_trades": winners,
        "losing_trades": losers,
        "win_rate": winners / len(profits) * 100 if profits else 0.0,
        "gross_profit": gross_profit,
        "gross_loss": gross_loss,
        "net_profit": net_profit,
        "average_trade": net_profit / len(profits) if profits else 0.0,
        "profit_factor": gross_profit / gross_loss if gross_loss else None,
        "no_losses": gross_loss == 0,
    }


def group_stats(key: str, trades: Sequence[TradeEvent]) -> GroupStats:
    """Statistics for one group of countable trades."""
    return GroupStats(key=key, **_stats_fields(trades))


def aggregate_by_symbol(trades: Sequence[TradeEvent]) -> list[GroupStats]:
    """
    Per-symbol statistics, best net profit first.

    Trades without a symbol (TradingView exports) are grouped as UNKNOWN.
    """
    groups = _group(trades, lambda trade: trade.symbol or UNKNOWN_SYMBOL)
    stats = [group_stats(symbol, members) for symbol, members in groups.items()]
    return sorted(stats, key=lambda item: (-item.net_profit, item.key))


def aggregate_by_month(trades: Sequence[TradeEvent]) -> list[MonthlyStats]:
    """
    Per calendar month (YYYY-MM) statistics in chronological order.

    The month's start balance is the last balance reported before the month
    (or its first balance when the history starts inside it); the end balance
    is the last balance reported within it.
    """
    groups = _group(trades, lambda trade: trade.open_time.strftime("%Y-%m"))

    month_balances: dict[str, tuple[float | None, float]] = {}
    previous: float | None = None
    for trade in trades:
        if trade.balance is None:
            continue
        month = trade.open_time.strftime("%Y-%m")
        if month not in month_balances:
            month_balances[month] = (previous if previous is not None else trade.balance, trade.balance)
        else:
            month_balances[month] = (month_balances[month][0], trade.balance)
        previous = trade.balance

    result = []
    for month in sorted(groups):
        start_balance, end_balance = month_balances.get(month, (None, None))
        return_pct = None
        if start_balance and end_balance is not None:
            return_pct = (end_balance - start_balance) / start_balance * 100
        result.append(
            MonthlyStats(
                key=month,
                start_balance=start_balance,
                end_balance=end_balance,
                return_pct=return_pct,
                **_stats_fields(groups[month]),
            )
        )
    return result


def aggregate_by_calendar_month(trades: Sequence[TradeEvent]) -> list[GroupStats]:
    """
    Statistics by month of year across all years, January first.

    Shows seasonality: March 2023 and March 2024 fall into the same "March"
    group. Months without countable trades are omitted.
    """
    groups = _group(trades, lambda trade: _MONTHS[trade.open_time.month - 1])
    return [group_stats(month, groups[month]) for month in _MONTHS if month in groups]


def aggregate_by_weekday(trades: Sequence[TradeEvent]) -> list[GroupStats]:
    """Statistics by weekday of the closing deal, Monday first."""
    groups = _group(trades, lambda trade: _WEEKDAYS[trade.open_time.weekday()])
    return [group_stats(day, groups[day]) for day in _WEEKDAYS if day in groups]


def aggregate_by_hour(trades: Sequence[TradeEvent]) -> list[GroupStats]:
    """Statistics by hour of the closing deal ("00:00" to "23:00")."""
    groups = _group(trades, lambda trade: f"{trade.open_time.hour:02d}:00")
    return [group_stats(hour, groups[hour]) for hour in sorted(groups)]
