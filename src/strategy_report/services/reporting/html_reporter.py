"""HTML Report Generator for strategy analysis results.

Generates a standalone, interactive HTML report with embedded charts that
users can open directly in their browser. Plotly is loaded from its CDN;
everything else is inline.
"""

import html
from collections import defaultdict
from datetime import datetime
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from strategy_report.libraries.performance.models import MetricsSnapshot
from strategy_report.services.analysis.models import AnalysisResult
from strategy_report.services.reporting.formatters import format_duration
from strategy_report.system.log_system import LoggerFactory

logger = LoggerFactory.get_logger()

_PLOTLY_CDN = "https://cdn.plot.ly/plotly-2.27.0.min.js"

_STYLE = """
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            background: #f5f5f7;
            color: #1d1d1f;
            line-height: 1.6;
        }
        .container { max-width: 1400px; margin: 0 auto; padding: 2rem; }
        header {
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            color: white;
            padding: 2rem;
            border-radius: 12px;
            margin-bottom: 2rem;
            box-shadow: 0 4px 6px rgba(0,0,0,0.1);
        }
        header h1 { font-size: 2rem; font-weight: 700; margin-bottom: 0.5rem; }
        header p { opacity: 0.9; font-size: 0.95rem; }
        .metrics-grid {
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
            gap: 1rem;
            margin-bottom: 2rem;
        }
        .metric-card {
            background: white;
            padding: 1.5rem;
            border-radius: 8px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.05);
            border-left: 4px solid #667eea;
        }
        .metric-card.positive { border-left-color: #10b981; }
        .metric-card.negative { border-left-color: #ef4444; }
        .metric-label {
            font-size: 0.85rem;
            color: #6b7280;
            text-transform: uppercase;
            letter-spacing: 0.5px;
            margin-bottom: 0.5rem;
        }
        .metric-value { font-size: 1.75rem; font-weight: 700; }
        .chart-container {
            background: white;
            padding: 2rem;
            border-radius: 12px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.05);
            margin-bottom: 2rem;
        }
        .chart-title { font-size: 1.25rem; font-weight: 600; margin-bottom: 1rem; }
        table { width: 100%; background: white; border-collapse: collapse; }
        th {
            background: #f9fafb;
            padding: 0.75rem 1rem;
            text-align: left;
            font-weight: 600;
            color: #374151;
            border-bottom: 2px solid #e5e7eb;
        }
        td { padding: 0.75rem 1rem; border-bottom: 1px solid #e5e7eb; }
        tr:last-child td { border-bottom: none; }
        td.num, th.num { text-align: right; }
        .positive { color: #065f46; }
        .negative { color: #991b1b; }
        .heatmap-table td, .heatmap-table th { text-align: center; font-size: 0.875rem; }
        .heatmap-table td.positive { background: #d1fae5; }
        .heatmap-table td.negative { background: #fee2e2; }
        .heatmap-table td.neutral { background: #f9fafb; color: #6b7280; }
        .badge {
            display: inline-block;
            padding: 0.25rem 0.75rem;
            border-radius: 12px;
            font-size: 0.75rem;
            font-weight: 600;
            text-transform: uppercase;
        }
        .badge.success { background: #d1fae5; color: #065f46; }
        .badge.warning { background: #fef3c7; color: #92400e; }
        .info-section {
            background: white;
            padding: 1.5rem;
            border-radius: 8px;
            margin-bottom: 2rem;
            box-shadow: 0 2px 4px rgba(0,0,0,0.05);
        }
        .info-section h3 { font-size: 1rem; font-weight: 600; margin-bottom: 1rem; color: #374151; }
        .info-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(250px, 1fr)); gap: 1rem; }
        .info-item {
            display: flex;
            justify-content: space-between;
            padding: 0.5rem 0;
            border-bottom: 1px solid #f3f4f6;
        }
        .info-label { color: #6b7280; font-size: 0.875rem; }
        .info-value { font-weight: 600; font-size: 0.875rem; }
        .footer { text-align: center; padding: 2rem; color: #6b7280; font-size: 0.875rem; }
"""


def _sign_class(value: float) -> str:
    if value > 0:
        return "positive"
    if value < 0:
        return "negative"
    return ""


class HTMLReportGenerator:
    """Generates standalone HTML reports for analysis results."""

    def __init__(self, result: AnalysisResult, title: str = "Strategy Report"):
        """
        Initialize HTML report generator.

        Args:
            result: Analysis result to render
            title: Report heading and document title
        """
        self.result = result
        self.title = title

    def generate(self, path: Path) -> Path:
        """
        Write the HTML report.

        Args:
            path: Target file (parent directories are created)

        Returns:
            Path to the written report
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        logger.info("report.html_written", path=str(path), bytes=path.stat().st_size)
        return path

    def render(self) -> str:
        """Build the complete HTML document."""
        result = self.result
        metrics = result.metrics
        title = html.escape(self.title)

        period = ""
        if metrics.first_trade_time and metrics.last_trade_time:
            period = f"{metrics.first_trade_time:%Y-%m-%d} to {metrics.last_trade_time:%Y-%m-%d}"

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <script src="{_PLOTLY_CDN}"></script>
    <style>{_STYLE}    </style>
</head>
<body>
    <div class="container">
        <header>
            <h1>📊 {title}</h1>
            <p>{period}</p>
            {self._build_badges()}
        </header>

        {self._build_key_metrics(metrics)}

        {self._build_report_summary()}

        <div class="chart-container">
            <div class="chart-title">📈 Equity and Drawdown</div>
            {self._create_combined_chart()}
        </div>

        {self._create_monthly_returns_chart()}

        {self._build_monthly_heatmap()}

        {self._build_symbol_table()}

        {self._build_session_table()}

        {self._build_drawdown_table()}

        {self._build_monte_carlo_section()}

        {self._build_performance_table(metrics)}

        <div class="footer">
            <p>Generated by Strategy Report • {result.generated_at:%Y-%m-%d %H:%M:%S}</p>
        </div>
    </div>
</body>
</html>
"""

    def _build_badges(self) -> str:
        """Build source and warning badges."""
        report = self.result.report
        badges = [
            f'<span class="badge success">{report.dialect.value.upper()}</span>',
            f'<span class="badge success">{report.format.value.upper()}</span>',
        ]
        if report.skipped_rows:
            badges.append(f'<span class="badge warning">{report.skipped_rows} rows skipped</span>')
        if self.result.initial_balance_override is not None:
            badges.append(
                f'<span class="badge warning">Initial balance set to {self.result.initial_balance_override:,.2f}</span>'
            )
        return f'<p style="margin-top: 1rem;">{" ".join(badges)}</p>'

    def _build_key_metrics(self, metrics: MetricsSnapshot) -> str:
        """Build key metrics cards."""
        pf_value = f"{metrics.profit_factor:.2f}" if metrics.gross_loss > 0 else "N/A"
        cards = [
            ("Total Net Profit", f"{metrics.total_net_profit:,.2f}", _sign_class(metrics.total_net_profit)),
            ("Profit Factor", pf_value, "positive" if metrics.profit_factor > 1 else ""),
            ("Win Rate", f"{metrics.win_rate:.2f}%", ""),
            (
                "Max Drawdown",
                f"{metrics.max_drawdown:,.2f} ({metrics.relative_drawdown:.2f}%)",
                "negative" if metrics.relative_drawdown > 10 else "",
            ),
            ("Sharpe Ratio", f"{metrics.sharpe_ratio:.2f}", _sign_class(metrics.sharpe_ratio)),
            ("Recovery Factor", f"{metrics.recovery_factor:.2f}", ""),
            ("Total Trades", f"{metrics.total_trades:,}", ""),
        ]
        items = "".join(
            f"""
            <div class="metric-card {css}">
                <div class="metric-label">{label}</div>
                <div class="metric-value">{value}</div>
            </div>"""
            for label, value, css in cards
        )
        return f'<div class="metrics-grid">{items}\n        </div>'

    def _build_report_summary(self) -> str:
        """Build the summary block taken from the report itself."""
        summary = self.result.report.summary
        if not summary:
            return ""

        items = "".join(
            f'<div class="info-item"><span class="info-label">{html.escape(key)}</span>'
            f'<span class="info-value">{html.escape(value)}</span></div>'
            for key, value in summary.items()
        )
        return f"""
        <div class="info-section">
            <h3>Report Summary</h3>
            <div class="info-grid">
                {items}
            </div>
        </div>
        """

    def _equity_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [point.model_dump() for point in self.result.drawdowns.equity_curve],
            columns=["time", "equity", "drawdown_percent"],
        )

    def _create_combined_chart(self) -> str:
        """Create combined equity curve and drawdown chart."""
        equity_curve = self._equity_frame()
        if equity_curve.empty:
            return "<p>Equity curve data not available</p>"

        fig = make_subplots(
            rows=2,
            cols=1,
            row_heights=[0.7, 0.3],
            subplot_titles=["Balance", "Drawdown"],
            vertical_spacing=0.1,
            shared_xaxes=True,
        )

        fig.add_trace(
            go.Scatter(
                x=equity_curve["time"].tolist(),
                y=equity_curve["equity"].tolist(),
                mode="lines",
                name="Balance",
                line=dict(color="#667eea", width=2),
            ),
            row=1,
            col=1,
        )
        fig.add_trace(
            go.Scatter(
                x=equity_curve["time"].tolist(),
                y=(-equity_curve["drawdown_percent"]).tolist(),
                mode="lines",
                name="Drawdown %",
                line=dict(color="#ef4444", width=2),
                fill="tozeroy",
                fillcolor="rgba(239, 68, 68, 0.2)",
            ),
            row=2,
            col=1,
        )

        fig.update_layout(
            height=600,
            showlegend=True,
            hovermode="x unified",
            plot_bgcolor="white",
            paper_bgcolor="white",
            margin=dict(l=50, r=50, t=50, b=50),
        )
        fig.update_xaxes(showgrid=True, gridwidth=1, gridcolor="#f0f0f0")
        fig.update_yaxes(showgrid=True, gridwidth=1, gridcolor="#f0f0f0")
        fig.update_yaxes(title_text="Balance", row=1, col=1)
        fig.update_yaxes(title_text="Drawdown (%)", row=2, col=1)
        fig.update_xaxes(title_text="Date", row=2, col=1)

        chart: str = fig.to_html(include_plotlyjs=False, div_id="equity-chart")
        return chart

    def _monthly_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(
            [month.model_dump() for month in self.result.by_month],
            columns=["key", "return_pct", "net_profit", "trades"],
        )
        return frame.dropna(subset=["return_pct"])

    def _create_monthly_returns_chart(self) -> str:
        """Create monthly returns bar chart."""
        monthly = self._monthly_frame()
        if monthly.empty:
            return ""

        returns = monthly["return_pct"].astype(float).tolist()
        colors = ["#10b981" if r >= 0 else "#ef4444" for r in returns]

        fig = go.Figure()
        fig.add_trace(
            go.Bar(
                x=monthly["key"].tolist(),
                y=returns,
                marker_color=colors,
                name="Monthly Return",
                customdata=monthly["net_profit"].tolist(),
                hovertemplate="<b>%{x}</b><br>Return: %{y:.2f}%<br>Net: %{customdata:,.2f}<extra></extra>",
            )
        )
        fig.update_layout(
            xaxis_title="Month",
            yaxis_title="Return (%)",
            height=350,
            plot_bgcolor="white",
            paper_bgcolor="white",
            showlegend=False,
        )
        fig.update_xaxes(showgrid=False, type="category")
        fig.update_yaxes(
            showgrid=True, gridwidth=1, gridcolor="#f0f0f0", zeroline=True, zerolinewidth=2, zerolinecolor="#9ca3af"
        )

        return f"""
        <div class="chart-container">
            <div class="chart-title">📅 Monthly Returns</div>
            {fig.to_html(include_plotlyjs=False, div_id="monthly-chart")}
        </div>
        """

    def _build_monthly_heatmap(self) -> str:
        """Build monthly returns heatmap table (years x months)."""
        monthly = self._monthly_frame()
        if monthly.empty:
            return ""

        data_by_year: dict[str, dict[str, float]] = defaultdict(dict)
        for key, return_pct in zip(monthly["key"], monthly["return_pct"]):
            year, month = key.split("-")
            data_by_year[year][month] = float(return_pct)

        month_names = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
        header = "<tr><th>Year</th>" + "".join(f"<th>{name}</th>" for name in month_names) + "<th>YTD</th></tr>"

        rows = []
        for year in sorted(data_by_year):
            cells = [f"<td><strong>{year}</strong></td>"]
            ytd = 1.0  # Compounded
            for number in range(1, 13):
                ret = data_by_year[year].get(f"{number:02d}")
                if ret is None:
                    cells.append('<td class="neutral">—</td>')
                    continue
                ytd *= 1 + ret / 100
                cells.append(f'<td class="{_sign_class(ret) or "neutral"}"><strong>{ret:.2f}%</strong></td>')
            ytd_pct = (ytd - 1) * 100
            cells.append(f'<td class="{_sign_class(ytd_pct) or "neutral"}"><strong>{ytd_pct:.2f}%</strong></td>')
            rows.append("<tr>" + "".join(cells) + "</tr>")

        return f"""
        <div class="chart-container">
            <div class="chart-title">🗓️ Monthly Returns Heatmap</div>
            <table class="heatmap-table">
                <thead>{header}</thead>
                <tbody>{"".join(rows)}</tbody>
            </table>
        </div>
        """

    def _build_symbol_table(self) -> str:
        """Build per-symbol performance table."""
        if not self.result.by_symbol:
            return ""

        rows = []
        for group in self.result.by_symbol:
            pf = f"{group.profit_factor:.2f}" if group.profit_factor is not None else "No losses"
            rows.append(
                f"""
                <tr>
                    <td><strong>{html.escape(group.key)}</strong></td>
                    <td class="num">{group.trades:,}</td>
                    <td class="num">{group.win_rate:.2f}%</td>
                    <td class="num {_sign_class(group.net_profit)}"><strong>{group.net_profit:,.2f}</strong></td>
                    <td class="num">{group.average_trade:,.2f}</td>
                    <td class="num">{pf}</td>
                </tr>"""
            )

        return f"""
        <div class="chart-container">
            <div class="chart-title">🎯 Symbol Performance</div>
            <table>
                <thead>
                    <tr>
                        <th>Symbol</th>
                        <th class="num">Trades</th>
                        <th class="num">Win Rate</th>
                        <th class="num">Net Profit</th>
                        <th class="num">Avg Trade</th>
                        <th class="num">Profit Factor</th>
                    </tr>
                </thead>
                <tbody>{"".join(rows)}</tbody>
            </table>
        </div>
        """

    def _build_session_table(self) -> str:
        """Build month-of-year, weekday and hour-of-day distribution tables side by side."""
        columns = [
            ("Month", self.result.by_calendar_month),
            ("Weekday", self.result.by_weekday),
            ("Hour", self.result.by_hour),
        ]
        if not any(groups for _, groups in columns):
            return ""

        blocks = []
        for label, groups in columns:
            rows = "".join(
                f"<tr><td>{group.key}</td><td class='num'>{group.trades:,}</td>"
                f"<td class='num'>{group.win_rate:.2f}%</td>"
                f"<td class='num {_sign_class(group.net_profit)}'>{group.net_profit:,.2f}</td></tr>"
                for group in groups
            )
            blocks.append(
                f"""
                    <div class="chart-container" style="margin-bottom: 0;">
                        <div class="chart-title">🕒 By {label}</div>
                        <table>
                            <thead><tr><th>{label}</th><th class="num">Trades</th><th class="num">Win Rate</th><th class="num">Net Profit</th></tr></thead>
                            <tbody>{rows}</tbody>
                        </table>
                    </div>
                """
            )

        return (
            '<div style="display: grid; grid-template-columns: 1fr 1fr 1fr; gap: 1rem; margin-bottom: 2rem;">'
            + "".join(blocks)
            + "</div>"
        )

    def _build_drawdown_table(self, max_rows: int = 10) -> str:
        """Build table of the largest drawdown episodes."""
        periods = self.result.drawdowns.drawdown_periods[:max_rows]
        if not periods:
            return ""

        rows = []
        for rank, dd in enumerate(periods, 1):
            if dd.recovered and dd.recovery_time is not None:
                status = '<span class="badge success">Recovered</span>'
                recovery = f"{dd.recovery_time:%Y-%m-%d} ({dd.recovery_duration_days} days)"
            else:
                status = '<span class="badge warning">Open</span>'
                recovery = "—"
            rows.append(
                f"""
                <tr>
                    <td class="num">{rank}</td>
                    <td>{dd.start:%Y-%m-%d %H:%M}</td>
                    <td class="num">{dd.peak:,.2f}</td>
                    <td class="num">{dd.bottom:,.2f}</td>
                    <td class="num negative"><strong>{dd.drawdown_amount:,.2f}</strong></td>
                    <td class="num negative">{dd.drawdown_percent:.2f}%</td>
                    <td class="num">{dd.duration_days} days</td>
                    <td>{recovery}</td>
                    <td>{status}</td>
                </tr>"""
            )

        return f"""
        <div class="chart-container">
            <div class="chart-title">📉 Largest Drawdowns</div>
            <table>
                <thead>
                    <tr>
                        <th class="num">#</th>
                        <th>Peak Time</th>
                        <th class="num">Peak</th>
                        <th class="num">Bottom</th>
                        <th class="num">Amount</th>
                        <th class="num">Depth</th>
                        <th class="num">Duration</th>
                        <th>Recovery</th>
                        <th>Status</th>
                    </tr>
                </thead>
                <tbody>{"".join(rows)}</tbody>
            </table>
        </div>
        """

    def _build_monte_carlo_section(self) -> str:
        """Build Monte Carlo percentile fan and statistics."""
        monte_carlo = self.result.monte_carlo
        if monte_carlo is None:
            return ""

        stats = monte_carlo.statistics
        bands = pd.DataFrame({p: monte_carlo.percentile_band(p) for p in (5, 25, 50, 75, 95)})
        periods = list(range(len(bands)))

        fig = go.Figure()
        fig.add_trace(go.Scatter(x=periods, y=bands[95].tolist(), mode="lines", line=dict(width=0), showlegend=False))
        fig.add_trace(
            go.Scatter(
                x=periods,
                y=bands[5].tolist(),
                mode="lines",
                line=dict(width=0),
                fill="tonexty",
                fillcolor="rgba(102, 126, 234, 0.15)",
                name="5th-95th percentile",
            )
        )
        fig.add_trace(go.Scatter(x=periods, y=bands[75].tolist(), mode="lines", line=dict(width=0), showlegend=False))
        fig.add_trace(
            go.Scatter(
                x=periods,
                y=bands[25].tolist(),
                mode="lines",
                line=dict(width=0),
                fill="tonexty",
                fillcolor="rgba(102, 126, 234, 0.35)",
                name="25th-75th percentile",
            )
        )
        fig.add_trace(
            go.Scatter(x=periods, y=bands[50].tolist(), mode="lines", line=dict(color="#667eea", width=2), name="Median")
        )
        fig.update_layout(
            height=400,
            hovermode="x unified",
            plot_bgcolor="white",
            paper_bgcolor="white",
            xaxis_title="Period",
            yaxis_title="Equity",
        )
        fig.update_xaxes(showgrid=True, gridwidth=1, gridcolor="#f0f0f0")
        fig.update_yaxes(showgrid=True, gridwidth=1, gridcolor="#f0f0f0")

        low50, high50 = stats.confidence_50
        low90, high90 = stats.confidence_90
        items = [
            ("Initial Capital", f"{stats.initial_capital:,.2f}"),
            ("Median Final Equity", f"{stats.median_final_equity:,.2f}"),
            ("Best Case", f"{stats.best_final_equity:,.2f}"),
            ("Worst Case", f"{stats.worst_final_equity:,.2f}"),
            ("50% Interval", f"{low50:,.2f} to {high50:,.2f}"),
            ("90% Interval", f"{low90:,.2f} to {high90:,.2f}"),
            ("Median Max Drawdown", f"{stats.median_max_drawdown_pct:.2f}%"),
            ("Worst Max Drawdown", f"{stats.worst_max_drawdown_pct:.2f}%"),
            ("Probability of Profit", f"{stats.probability_of_profit:.1f}%"),
            ("Ruined Paths", f"{stats.ruined_paths}"),
        ]
        rows = "".join(f"<tr><td>{label}</td><td class='num'><strong>{value}</strong></td></tr>" for label, value in items)

        return f"""
        <div class="chart-container">
            <div class="chart-title">🎲 Monte Carlo Projection ({stats.num_simulations} paths x {stats.horizon} periods)</div>
            {fig.to_html(include_plotlyjs=False, div_id="monte-carlo-chart")}
            <table style="margin-top: 1rem;">
                <tbody>{rows}</tbody>
            </table>
        </div>
        """

    def _build_performance_table(self, metrics: MetricsSnapshot) -> str:
        """Build detailed metrics tables in a two-column layout."""
        sections = [
            (
                "Balance",
                [
                    ("Initial Balance", f"{metrics.initial_balance:,.2f}"),
                    ("Final Balance", f"{metrics.final_balance:,.2f}"),
                    ("Total Net Profit", f"{metrics.total_net_profit:,.2f}"),
                    ("Gross Profit", f"{metrics.gross_profit:,.2f}"),
                    ("Gross Loss", f"{metrics.gross_loss:,.2f}"),
                    ("Total Commission", f"{metrics.total_commission:,.2f}"),
                    ("Total Swap", f"{metrics.total_swap:,.2f}"),
                ],
            ),
            (
                "Risk",
                [
                    ("Max Drawdown", f"{metrics.max_drawdown:,.2f}"),
                    ("Relative Drawdown", f"{metrics.relative_drawdown:.2f}%"),
                    ("Recovery Factor", f"{metrics.recovery_factor:.2f}"),
                    ("Value at Risk (95%)", f"{metrics.value_at_risk_95_pct:.2f}%"),
                    ("Sharpe Ratio", f"{metrics.sharpe_ratio:.2f}"),
                    ("Sortino Ratio", f"{metrics.sortino_ratio:.2f}"),
                    ("Calmar Ratio", f"{metrics.calmar_ratio:.2f}"),
                    ("CAGR", f"{metrics.cagr:.2f}%"),
                ],
            ),
            (
                "Trades",
                [
                    ("Total Trades", f"{metrics.total_trades:,}"),
                    ("Winning / Losing", f"{metrics.winning_trades:,} / {metrics.losing_trades:,}"),
                    ("Long / Short", f"{metrics.long_trades:,} / {metrics.short_trades:,}"),
                    ("Win Rate", f"{metrics.win_rate:.2f}%"),
                    ("Expected Payoff", f"{metrics.expected_payoff:,.2f}"),
                    ("Expectancy", f"{metrics.expectancy:,.2f}"),
                ],
            ),
            (
                "Trade Extremes",
                [
                    ("Average Win", f"{metrics.average_win:,.2f}"),
                    ("Average Loss", f"{metrics.average_loss:,.2f}"),
                    ("Largest Win", f"{metrics.largest_win:,.2f}"),
                    ("Largest Loss", f"{metrics.largest_loss:,.2f}"),
                    ("Max Consecutive Wins", f"{metrics.max_consecutive_wins} ({metrics.max_win_streak_amount:,.2f})"),
                    (
                        "Max Consecutive Losses",
                        f"{metrics.max_consecutive_losses} ({metrics.max_loss_streak_amount:,.2f})",
                    ),
                    ("Avg Trade Duration", format_duration(metrics.average_trade_duration_hours)),
                ],
            ),
            (
                "Return Distribution",
                [
                    ("Mean Return", f"{metrics.return_mean_pct:.3f}%"),
                    ("Median Return", f"{metrics.return_median_pct:.3f}%"),
                    ("Skew", f"{metrics.return_skewness:.2f}"),
                    ("Excess Kurtosis", f"{metrics.return_kurtosis:.2f}"),
                    ("Tail Ratio", f"{metrics.tail_ratio:.2f}"),
                    ("Autocorrelation", f"{metrics.return_autocorrelation:.2f}"),
                ],
            ),
        ]

        sections_html = []
        for i in range(0, len(sections), 2):
            pair_html = '<div style="display: grid; grid-template-columns: 1fr 1fr; gap: 1rem; margin-bottom: 1rem;">'
            for section_title, items in sections[i : i + 2]:
                rows = "".join(f"<tr><td>{label}</td><td class='num'><strong>{value}</strong></td></tr>" for label, value in items)
                pair_html += f"""
                    <div class="chart-container" style="margin-bottom: 0;">
                        <div class="chart-title">{section_title}</div>
                        <table><tbody>{rows}</tbody></table>
                    </div>
                """
            pair_html += "</div>"
            sections_html.append(pair_html)

        return "".join(sections_html)


def default_report_path(report_dir: Path, timestamp_format: str, now: datetime | None = None) -> Path:
    """Timestamped report file name inside report_dir."""
    stamp = (now or datetime.now()).strftime(timestamp_format)
    return Path(report_dir) / f"strategy_report_{stamp}.html"
