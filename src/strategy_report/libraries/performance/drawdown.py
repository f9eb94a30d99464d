"""Equity curve and drawdown episode analysis.

DrawdownCalculator walks balance snapshots once, tracking the running peak
and the open episode. compute_drawdowns() feeds it the balance-bearing
events of a trade history.

Usage:
    >>> calc = DrawdownCalculator()
    >>> calc.update(datetime(2024, 1, 1), 10000.0)
    >>> calc.update(datetime(2024, 1, 2), 9500.0)   # Episode opens
    >>> calc.current_drawdown_percent
    5.0
    >>> calc.update(datetime(2024, 1, 5), 10200.0)  # Recovered
    >>> calc.finalize()[0].recovery_duration_days
    3
"""

import math
from datetime import datetime, timedelta
from typing import Sequence

from strategy_report.libraries.parsing.models import TradeEvent
from strategy_report.libraries.performance.models import DrawdownAnalysis, DrawdownPeriod, EquityPoint
from strategy_report.system.log_system import LoggerFactory

logger = LoggerFactory.get_logger()

DEFAULT_NOISE_THRESHOLD_PCT = 0.5

_ONE_DAY = timedelta(days=1)


def _days_ceil(delta: timedelta) -> int:
    return math.ceil(delta / _ONE_DAY)


class DrawdownCalculator:
    """
    Tracks drawdown episodes incrementally.

    A new high closes the open episode (if any) and moves the peak. A balance
    below the peak opens an episode or deepens the open one. A balance equal
    to the peak changes nothing.
    """

    def __init__(self) -> None:
        self._peak: float | None = None
        self._peak_time: datetime | None = None
        self._current: DrawdownPeriod | None = None
        self._periods: list[DrawdownPeriod] = []
        self._current_drawdown_percent = 0.0

    def update(self, time: datetime, balance: float) -> EquityPoint:
        """
        Process one balance snapshot.

        Returns:
            Equity point with the distance below the running peak
        """
        if self._peak is None or self._peak_time is None:
            self._peak = balance
            self._peak_time = time
            self._current_drawdown_percent = 0.0
            return EquityPoint(time=time, equity=balance, drawdown_percent=0.0)

        if balance > self._peak:
            if self._current is not None:
                self._close_current(time, balance)
            self._peak = balance
            self._peak_time = time
        elif balance < self._peak:
            if self._current is None:
                self._current = self._new_period(time, balance)
            elif balance < self._current.bottom:
                self._current = self._new_period(time, balance, start=self._current.start)

        self._current_drawdown_percent = self._percent_below_peak(balance)
        return EquityPoint(time=time, equity=balance, drawdown_percent=self._current_drawdown_percent)

    def _percent_below_peak(self, balance: float) -> float:
        if self._peak is None or self._peak <= 0 or balance >= self._peak:
            return 0.0
        return (self._peak - balance) / self._peak * 100

    def _new_period(self, time: datetime, bottom: float, start: datetime | None = None) -> DrawdownPeriod:
        assert self._peak is not None and self._peak_time is not None
        amount = self._peak - bottom
        return DrawdownPeriod(
            start=start or self._peak_time,
            peak=self._peak,
            peak_time=self._peak_time,
            bottom=bottom,
            bottom_time=time,
            drawdown_amount=amount,
            drawdown_percent=amount / self._peak * 100 if self._peak > 0 else 0.0,
            duration_days=_days_ceil(time - self._peak_time),
        )

    def _close_current(self, time: datetime, balance: float) -> None:
        assert self._current is not None
        closed = self._current.model_copy(
            update={
                "recovery_value": balance,
                "recovery_time": time,
                "recovery_duration_days": _days_ceil(time - self._current.bottom_time),
            }
        )
        self._periods.append(closed)
        self._current = None

    def finalize(self) -> list[DrawdownPeriod]:
        """
        All episodes in chronological order.

        An episode still open is included without recovery fields.
        """
        periods = list(self._periods)
        if self._current is not None:
            periods.append(self._current)
        return periods

    @property
    def peak(self) -> float | None:
        """Running peak balance."""
        return self._peak

    @property
    def current_drawdown_percent(self) -> float:
        """Distance of the last balance below the peak."""
        return self._current_drawdown_percent

    @property
    def max_drawdown(self) -> float:
        """Largest episode amount so far, including the open one."""
        return max((period.drawdown_amount for period in self.finalize()), default=0.0)

    @property
    def max_drawdown_percent(self) -> float:
        """Largest episode percent so far, including the open one."""
        return max((period.drawdown_percent for period in self.finalize()), default=0.0)

    @property
    def is_underwater(self) -> bool:
        """True while an episode is open."""
        return self._current is not None


def compute_drawdowns(
    trades: Sequence[TradeEvent],
    noise_threshold_pct: float = DEFAULT_NOISE_THRESHOLD_PCT,
) -> DrawdownAnalysis:
    """
    Build the equity curve and enumerate drawdown episodes.

    Args:
        trades: Events ordered by open_time; only balance-bearing events are used
        noise_threshold_pct: Episodes at or below this percent are left out of
            drawdown_periods (they stay in all_periods)

    Returns:
        DrawdownAnalysis with one equity point per balance-bearing event
    """
    calc = DrawdownCalculator()
    equity_curve = [
        calc.update(trade.open_time, trade.balance) for trade in trades if trade.balance is not None
    ]
    all_periods = calc.finalize()
    reported = sorted(
        (period for period in all_periods if period.drawdown_percent > noise_threshold_pct),
        key=lambda period: period.drawdown_amount,
        reverse=True,
    )

    logger.debug(
        "drawdown.analyzed",
        points=len(equity_curve),
        episodes=len(all_periods),
        reported=len(reported),
    )
    return DrawdownAnalysis(equity_curve=equity_curve, drawdown_periods=reported, all_periods=all_periods)
