"""Report analysis service.

Wires the parser, metrics engine, drawdown analyzer and Monte Carlo
simulator together. Settings are injected through the constructor.
"""

from pathlib import Path

import numpy as np

from strategy_report.errors import ValidationError
from strategy_report.libraries.parsing import ParsedReport, ParseLimits, ReportDialect, ReportFormat, TradeEvent, parse
from strategy_report.libraries.performance.aggregations import (
    aggregate_by_calendar_month,
    aggregate_by_hour,
    aggregate_by_month,
    aggregate_by_symbol,
    aggregate_by_weekday,
)
from strategy_report.libraries.performance.drawdown import compute_drawdowns
from strategy_report.libraries.performance.metrics import calculate_balance_bounds, compute_metrics, shift_balances
from strategy_report.libraries.simulation.models import MonteCarloResult
from strategy_report.libraries.simulation.monte_carlo import run_monte_carlo
from strategy_report.services.analysis.models import AnalysisResult
from strategy_report.system.config import AnalysisConfig, SimulationConfig
from strategy_report.system.log_system import LoggerFactory

logger = LoggerFactory.get_logger()


class ReportAnalyzer:
    """Analyzer for broker trade history reports.

    Attributes:
        config: Parsing bounds and metric constants
        simulation: Monte Carlo parameters

    Example:
        >>> analyzer = ReportAnalyzer(AnalysisConfig(), SimulationConfig(seed=42))
        >>> parsed = analyzer.load(Path("ReportHistory.html"))
        >>> result = analyzer.analyze(parsed)
        >>> result.metrics.profit_factor
        1.84
        >>>
        >>> # User edits the starting balance
        >>> updated = analyzer.rebalance(result, 50000.0)
    """

    def __init__(self, config: AnalysisConfig, simulation: SimulationConfig) -> None:
        self.config = config
        self.simulation = simulation

    def load(
        self,
        source: str | bytes | Path,
        format_hint: ReportFormat | None = None,
        dialect: ReportDialect | None = None,
    ) -> ParsedReport:
        """Parse a report within the configured size and row bounds."""
        limits = ParseLimits.from_megabytes(self.config.max_file_size_mb, self.config.max_rows)
        return parse(
            source,
            format_hint=format_hint,
            dialect=dialect,
            initial_balance=self.config.default_initial_balance,
            limits=limits,
        )

    def analyze(
        self,
        parsed: ParsedReport,
        initial_balance_override: float | None = None,
        run_simulation: bool = True,
        rng: np.random.Generator | None = None,
    ) -> AnalysisResult:
        """
        Compute metrics, drawdowns, aggregates and (optionally) Monte Carlo.

        Args:
            parsed: Parsed report
            initial_balance_override: Shift every balance so the history starts here
            run_simulation: Run the Monte Carlo projection
            rng: Random source for the simulation (defaults to the configured seed)

        Raises:
            ValidationError: If initial_balance_override is not positive
        """
        if initial_balance_override is not None and initial_balance_override <= 0:
            raise ValidationError(f"Initial balance must be positive, got {initial_balance_override}")

        trades = parsed.trades
        if initial_balance_override is not None:
            original_initial, _ = calculate_balance_bounds(trades)
            trades = shift_balances(trades, initial_balance_override - original_initial)

        metrics = compute_metrics(trades, annualization_factor=self.config.annualization_factor)
        drawdowns = compute_drawdowns(trades, noise_threshold_pct=self.config.drawdown_noise_threshold_pct)

        monte_carlo = None
        if run_simulation:
            initial_capital = metrics.initial_balance if metrics.initial_balance > 0 else self.config.default_initial_balance
            monte_carlo = self._simulate(trades, metrics.total_trades, initial_capital, rng)

        logger.info(
            "analysis.completed",
            dialect=parsed.dialect.value,
            trades=metrics.total_trades,
            net_profit=round(metrics.total_net_profit, 2),
            drawdowns=len(drawdowns.drawdown_periods),
            simulated=monte_carlo is not None,
        )

        return AnalysisResult(
            report=parsed,
            trades=list(trades),
            metrics=metrics,
            drawdowns=drawdowns,
            by_symbol=aggregate_by_symbol(trades),
            by_month=aggregate_by_month(trades),
            by_calendar_month=aggregate_by_calendar_month(trades),
            by_weekday=aggregate_by_weekday(trades),
            by_hour=aggregate_by_hour(trades),
            monte_carlo=monte_carlo,
            initial_balance_override=initial_balance_override,
        )

    def rebalance(
        self,
        result: AnalysisResult,
        new_initial_balance: float,
        rng: np.random.Generator | None = None,
    ) -> AnalysisResult:
        """
        Recompute a result for a different starting balance.

        Returns a new AnalysisResult; the given one is left untouched. The
        simulation is rerun only if the original result had one.

        Raises:
            ValidationError: If new_initial_balance is not positive
        """
        if new_initial_balance <= 0:
            raise ValidationError(f"Initial balance must be positive, got {new_initial_balance}")

        logger.debug("analysis.rebalanced", new_initial_balance=new_initial_balance)
        return self.analyze(
            result.report,
            initial_balance_override=new_initial_balance,
            run_simulation=result.monte_carlo is not None,
            rng=rng,
        )

    def _simulate(
        self,
        trades: list[TradeEvent],
        countable: int,
        initial_capital: float,
        rng: np.random.Generator | None,
    ) -> MonteCarloResult | None:
        if countable == 0:
            logger.warning("analysis.simulation_skipped", reason="no closed trades")
            return None

        settings = self.simulation
        return run_monte_carlo(
            trades,
            initial_capital,
            num_simulations=settings.num_simulations,
            horizon=settings.horizon,
            rng=rng,
            seed=settings.seed,
            workers=settings.workers,
            win_return=settings.win_return,
            loss_return=settings.loss_return,
            position_fraction=settings.position_fraction,
        )
