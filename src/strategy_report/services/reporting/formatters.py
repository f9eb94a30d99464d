"""Rich console formatters for analysis reports.

Terminal rendering of an AnalysisResult: summary, risk, trade statistics,
symbol and monthly breakdowns, drawdown episodes and the Monte Carlo
projection.
"""

from typing import Literal

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from strategy_report.libraries.performance.models import DrawdownPeriod, GroupStats, MetricsSnapshot, MonthlyStats
from strategy_report.libraries.simulation.models import MonteCarloStatistics
from strategy_report.services.analysis.models import AnalysisResult

DetailLevel = Literal["summary", "standard", "full"]


def _format_pct(value: float, precision: int = 2) -> str:
    return f"{value:.{precision}f}%"


def _format_money(value: float, precision: int = 2) -> str:
    return f"{value:,.{precision}f}"


def format_duration(hours: float) -> str:
    """Hours as "2d 3h 15m", or "3h 15m" under a day."""
    total_minutes = int(round(hours * 60))
    days, remainder = divmod(total_minutes, 24 * 60)
    if days:
        return f"{days}d {remainder // 60}h {remainder % 60}m"
    return f"{remainder // 60}h {remainder % 60}m"


def _get_color(value: float) -> str:
    """Get color based on positive/negative value."""
    if value > 0:
        return "green"
    elif value < 0:
        return "red"
    return "white"


def _ratio_color(value: float, good: float, fair: float) -> str:
    if value > good:
        return "green"
    if value > fair:
        return "yellow"
    return "red"


def _create_summary_table(result: AnalysisResult) -> Table:
    """Create summary table."""
    metrics = result.metrics
    table = Table(title="📊 Report Summary", show_header=False, box=None, padding=(0, 2))

    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Source", f"{result.report.dialect.value.upper()} {result.report.format.value.upper()}")
    if metrics.first_trade_time and metrics.last_trade_time:
        table.add_row(
            "Period",
            f"{metrics.first_trade_time:%Y-%m-%d} to {metrics.last_trade_time:%Y-%m-%d}",
        )
    table.add_row("", "")  # Spacer

    table.add_row("Initial Balance", _format_money(metrics.initial_balance))
    table.add_row("Final Balance", _format_money(metrics.final_balance))

    net_color = _get_color(metrics.total_net_profit)
    table.add_row("Total Net Profit", f"[{net_color}]{_format_money(metrics.total_net_profit)}[/{net_color}]")

    cagr_color = _get_color(metrics.cagr)
    table.add_row("CAGR", f"[{cagr_color}]{_format_pct(metrics.cagr)}[/{cagr_color}]")

    return table


def _create_risk_table(metrics: MetricsSnapshot) -> Table:
    """Create risk metrics table."""
    table = Table(title="⚠️  Risk Metrics", show_header=False, box=None, padding=(0, 2))

    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row(
        "Max Drawdown",
        f"[red]{_format_money(metrics.max_drawdown)} ({_format_pct(metrics.relative_drawdown)})[/red]",
    )
    table.add_row("Recovery Factor", f"{metrics.recovery_factor:.2f}")
    table.add_row("Value at Risk (95%)", _format_pct(metrics.value_at_risk_95_pct))

    sharpe_color = _ratio_color(metrics.sharpe_ratio, 1.0, 0.0)
    table.add_row("Sharpe Ratio", f"[{sharpe_color}]{metrics.sharpe_ratio:.2f}[/{sharpe_color}]")
    sortino_color = _ratio_color(metrics.sortino_ratio, 1.0, 0.0)
    table.add_row("Sortino Ratio", f"[{sortino_color}]{metrics.sortino_ratio:.2f}[/{sortino_color}]")
    calmar_color = _ratio_color(metrics.calmar_ratio, 1.0, 0.0)
    table.add_row("Calmar Ratio", f"[{calmar_color}]{metrics.calmar_ratio:.2f}[/{calmar_color}]")

    table.add_row("", "")  # Spacer
    table.add_row("Return Skew", f"{metrics.return_skewness:.2f}")
    table.add_row("Return Kurtosis", f"{metrics.return_kurtosis:.2f}")
    table.add_row("Tail Ratio", f"{metrics.tail_ratio:.2f}")
    table.add_row("Autocorrelation", f"{metrics.return_autocorrelation:.2f}")

    return table


def _create_trade_stats_table(metrics: MetricsSnapshot) -> Table:
    """Create trade statistics table."""
    table = Table(title="💼 Trade Statistics", show_header=False, box=None, padding=(0, 2))

    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total Trades", f"{metrics.total_trades:,}")
    table.add_row("Winning Trades", f"[green]{metrics.winning_trades:,}[/green]")
    table.add_row("Losing Trades", f"[red]{metrics.losing_trades:,}[/red]")
    table.add_row("Long / Short", f"{metrics.long_trades:,} / {metrics.short_trades:,}")

    win_rate_color = _ratio_color(metrics.win_rate, 50.0, 40.0)
    table.add_row("Win Rate", f"[{win_rate_color}]{_format_pct(metrics.win_rate)}[/{win_rate_color}]")

    if metrics.gross_loss > 0:
        pf_color = _ratio_color(metrics.profit_factor, 2.0, 1.0)
        table.add_row("Profit Factor", f"[{pf_color}]{metrics.profit_factor:.2f}[/{pf_color}]")
    else:
        table.add_row("Profit Factor", "N/A (no losses)")

    expectancy_color = _get_color(metrics.expectancy)
    table.add_row("Expectancy", f"[{expectancy_color}]{_format_money(metrics.expectancy)}[/{expectancy_color}]")
    table.add_row("Expected Payoff", _format_money(metrics.expected_payoff))

    table.add_row("", "")  # Spacer
    table.add_row("Avg Win", f"[green]{_format_money(metrics.average_win)}[/green]")
    table.add_row("Avg Loss", f"[red]{_format_money(metrics.average_loss)}[/red]")
    table.add_row("Largest Win", f"[green]{_format_money(metrics.largest_win)}[/green]")
    table.add_row("Largest Loss", f"[red]{_format_money(metrics.largest_loss)}[/red]")
    table.add_row("Win/Loss Ratio", f"{metrics.win_loss_ratio:.2f}")
    table.add_row(
        "Max Consecutive Wins",
        f"{metrics.max_consecutive_wins:,} [green]({_format_money(metrics.max_win_streak_amount)})[/green]",
    )
    table.add_row(
        "Max Consecutive Losses",
        f"{metrics.max_consecutive_losses:,} [red]({_format_money(metrics.max_loss_streak_amount)})[/red]",
    )
    table.add_row("Avg Trade Duration", format_duration(metrics.average_trade_duration_hours))

    return table


def _create_group_table(groups: list[GroupStats], title: str, key_label: str) -> Table | None:
    """Create a symbol/weekday/hour breakdown table."""
    if not groups:
        return None

    table = Table(title=title, box=None, padding=(0, 1))

    table.add_column(key_label, style="cyan")
    table.add_column("Trades", justify="right")
    table.add_column("Win Rate", justify="right")
    table.add_column("Net Profit", justify="right")
    table.add_column("Avg Trade", justify="right")
    table.add_column("Profit Factor", justify="right")

    for group in groups:
        net_color = _get_color(group.net_profit)
        pf = f"{group.profit_factor:.2f}" if group.profit_factor is not None else "no losses"
        table.add_row(
            group.key,
            f"{group.trades:,}",
            _format_pct(group.win_rate),
            f"[{net_color}]{_format_money(group.net_profit)}[/{net_color}]",
            _format_money(group.average_trade),
            pf,
        )

    return table


def _create_monthly_table(months: list[MonthlyStats]) -> Table | None:
    """Create monthly returns table."""
    if not months:
        return None

    table = Table(title="📅 Monthly Returns", box=None, padding=(0, 1))

    table.add_column("Month", style="cyan")
    table.add_column("Return", justify="right")
    table.add_column("Net Profit", justify="right")
    table.add_column("Trades", justify="right")
    table.add_column("Win Rate", justify="right")

    for month in months:
        if month.return_pct is not None:
            return_color = _get_color(month.return_pct)
            return_str = f"[{return_color}]{_format_pct(month.return_pct)}[/{return_color}]"
        else:
            return_str = "—"
        table.add_row(
            month.key,
            return_str,
            _format_money(month.net_profit),
            f"{month.trades:,}",
            _format_pct(month.win_rate),
        )

    return table


def _create_drawdown_table(drawdowns: list[DrawdownPeriod], max_rows: int = 5) -> Table | None:
    """Create top drawdowns table."""
    if not drawdowns:
        return None

    # Already ordered largest amount first
    shown = drawdowns[:max_rows]

    table = Table(title=f"📉 Top {len(shown)} Drawdowns", box=None, padding=(0, 1))

    table.add_column("Rank", justify="right", style="dim")
    table.add_column("Amount", justify="right", style="red")
    table.add_column("Depth", justify="right", style="red")
    table.add_column("Start", style="cyan")
    table.add_column("Duration", justify="right")
    table.add_column("Recovery", justify="right")
    table.add_column("Status", justify="center")

    for i, dd in enumerate(shown, 1):
        status = "✅" if dd.recovered else "🔴"
        recovery_str = f"{dd.recovery_duration_days} days" if dd.recovery_duration_days is not None else "—"

        table.add_row(
            str(i),
            _format_money(dd.drawdown_amount),
            _format_pct(dd.drawdown_percent),
            dd.start.strftime("%Y-%m-%d"),
            f"{dd.duration_days} days",
            recovery_str,
            status,
        )

    return table


def _create_monte_carlo_table(stats: MonteCarloStatistics) -> Table:
    """Create Monte Carlo projection table."""
    table = Table(
        title=f"🎲 Monte Carlo ({stats.num_simulations} paths x {stats.horizon} periods)",
        show_header=False,
        box=None,
        padding=(0, 2),
    )

    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Median Final Equity", _format_money(stats.median_final_equity))
    table.add_row("Best Case", f"[green]{_format_money(stats.best_final_equity)}[/green]")
    table.add_row("Worst Case", f"[red]{_format_money(stats.worst_final_equity)}[/red]")
    low, high = stats.confidence_50
    table.add_row("50% Interval", f"{_format_money(low)} to {_format_money(high)}")
    low, high = stats.confidence_90
    table.add_row("90% Interval", f"{_format_money(low)} to {_format_money(high)}")
    table.add_row("Median Max Drawdown", _format_pct(stats.median_max_drawdown_pct))
    table.add_row("Worst Max Drawdown", _format_pct(stats.worst_max_drawdown_pct))
    table.add_row("Probability of Profit", _format_pct(stats.probability_of_profit))
    table.add_row("Ruined Paths", f"{stats.ruined_paths:,}")

    return table


def display_analysis_report(
    result: AnalysisResult,
    detail_level: DetailLevel = "standard",
    console: Console | None = None,
) -> None:
    """
    Display an analysis result in Rich-formatted console output.

    Args:
        result: Analysis result
        detail_level: Level of detail to display:
            - "summary": Balance and net profit only
            - "standard": Summary + risk + trade statistics + Monte Carlo
            - "full": Everything including symbol, month, weekday, hour and drawdown tables
        console: Rich Console instance (creates new if None)
    """
    if console is None:
        console = Console()

    metrics = result.metrics
    console.print()

    console.print(_create_summary_table(result))
    console.print()

    if detail_level in ["standard", "full"]:
        console.print(_create_risk_table(metrics))
        console.print()

        if metrics.total_trades > 0:
            console.print(_create_trade_stats_table(metrics))
            console.print()

        console.print(
            Panel(
                f"Total Commission: {_format_money(metrics.total_commission)}\n"
                f"Total Swap: {_format_money(metrics.total_swap)}",
                title="💰 Costs",
                border_style="yellow",
            )
        )
        console.print()

        if result.monte_carlo is not None:
            console.print(_create_monte_carlo_table(result.monte_carlo.statistics))
            console.print()

    if detail_level == "full":
        tables = [
            _create_group_table(result.by_symbol, "🎯 Symbol Performance", "Symbol"),
            _create_monthly_table(result.by_month),
            _create_group_table(result.by_calendar_month, "🗓️  By Month of Year", "Month"),
            _create_group_table(result.by_weekday, "🗓️  By Weekday", "Weekday"),
            _create_group_table(result.by_hour, "🕐 By Hour", "Hour"),
            _create_drawdown_table(result.drawdowns.drawdown_periods),
        ]
        for table in tables:
            if table is not None:
                console.print(table)
                console.print()

    if result.warnings:
        console.print(f"[yellow]{len(result.warnings)} row(s) skipped while parsing[/yellow]")
        console.print()

    summary_text = Text()
    summary_text.append("🏁 Analysis Complete: ", style="bold")
    summary_text.append(
        f"{_format_money(metrics.initial_balance)} → {_format_money(metrics.final_balance)}", style="bold cyan"
    )
    summary_text.append(
        f" ({_format_money(metrics.total_net_profit)})", style=f"bold {_get_color(metrics.total_net_profit)}"
    )

    console.print(Panel(summary_text, border_style="green" if metrics.total_net_profit > 0 else "red"))
    console.print()
