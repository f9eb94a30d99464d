"""Analysis result model."""

from datetime import datetime

from pydantic import BaseModel, Field

from strategy_report.libraries.parsing.models import ParsedReport, TradeEvent
from strategy_report.libraries.performance.models import DrawdownAnalysis, GroupStats, MetricsSnapshot, MonthlyStats
from strategy_report.libraries.simulation.models import MonteCarloResult


class AnalysisResult(BaseModel):
    """
    Everything derived from one parsed report.

    trades holds the events the figures were computed from: the parsed
    events, with balances shifted when an initial balance override applies.
    The parsed report itself is never modified.
    """

    report: ParsedReport
    trades: list[TradeEvent]
    metrics: MetricsSnapshot
    drawdowns: DrawdownAnalysis
    by_symbol: list[GroupStats] = Field(default_factory=list)
    by_month: list[MonthlyStats] = Field(default_factory=list)
    by_calendar_month: list[GroupStats] = Field(default_factory=list)
    by_weekday: list[GroupStats] = Field(default_factory=list)
    by_hour: list[GroupStats] = Field(default_factory=list)
    monte_carlo: MonteCarloResult | None = None
    initial_balance_override: float | None = None
    generated_at: datetime = Field(default_factory=datetime.now)

    @property
    def warnings(self) -> list[str]:
        """Row-level warnings raised while parsing."""
        return list(self.report.warnings)
