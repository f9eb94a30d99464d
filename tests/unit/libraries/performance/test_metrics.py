"""Tests for performance metrics calculations."""

import math
from datetime import datetime, timedelta

import pytest

from strategy_report.errors import ValidationError
from strategy_report.libraries.parsing import parse
from strategy_report.libraries.parsing.models import Direction, EventType, TradeEvent
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
    calculate_streaks,
    calculate_tail_ratio,
    calculate_trade_returns,
    calculate_value_at_risk,
    calculate_win_rate,
    compute_metrics,
    position_side,
    recalculate_with_initial_balance,
    shift_balances,
)

T0 = datetime(2024, 3, 1, 10, 0)


@pytest.fixture
def scenario_a(make_trade, make_deposit):
    """Deposit, one winner, one loser."""
    return [
        make_deposit(T0, 10000.0),
        make_trade(T0 + timedelta(days=1), 100.0, 10100.0),
        make_trade(T0 + timedelta(days=2), -50.0, 10050.0),
    ]


class TestScenarios:
    """End-to-end metric scenarios."""

    def test_scenario_a(self, scenario_a):
        """Net profit, win rate, profit factor and drawdown of a small history."""
        # Act
        metrics = compute_metrics(scenario_a)

        # Assert
        assert metrics.total_net_profit == 50.0
        assert metrics.win_rate == 50.0
        assert metrics.profit_factor == 2.0
        assert metrics.max_drawdown == 50.0
        assert metrics.total_trades == 2

    def test_scenario_b_single_balance(self, make_deposit):
        """One balance point gives no returns and therefore no Sharpe ratio."""
        metrics = compute_metrics([make_deposit(T0, 10000.0)])

        assert metrics.sharpe_ratio == 0.0
        assert metrics.sortino_ratio == 0.0
        assert metrics.max_drawdown == 0.0
        assert metrics.total_trades == 0

    def test_sample_report(self, mt5_csv_text):
        """Full snapshot of the sample MT5 history."""
        # Arrange
        trades = parse(mt5_csv_text).trades

        # Act
        metrics = compute_metrics(trades)

        # Assert
        assert metrics.initial_balance == 10000.0
        assert metrics.final_balance == 10100.0
        assert metrics.total_net_profit == 100.0
        assert metrics.gross_profit == 200.0
        assert metrics.gross_loss == 100.0
        assert metrics.profit_factor == 2.0
        assert metrics.winning_trades == 2
        assert metrics.losing_trades == 1
        assert metrics.win_rate == pytest.approx(66.6667, abs=1e-3)
        assert metrics.expected_payoff == pytest.approx(100.0 / 3)
        assert metrics.average_trade == pytest.approx(100.0 / 3)
        assert metrics.average_win == 100.0
        assert metrics.average_loss == -100.0
        assert metrics.largest_win == 150.0
        assert metrics.largest_loss == -100.0
        assert metrics.win_loss_ratio == 1.0
        assert metrics.long_trades == 2
        assert metrics.short_trades == 1
        assert metrics.max_drawdown == 100.0
        assert metrics.relative_drawdown == pytest.approx(100.0 / 10050.0 * 100)
        assert metrics.recovery_factor == 1.0
        assert metrics.total_commission == pytest.approx(-1.4)
        assert metrics.total_swap == pytest.approx(-0.6)
        assert metrics.max_win_streak_amount == 50.0
        assert metrics.max_loss_streak_amount == -100.0
        assert metrics.average_trade_duration_hours == pytest.approx(80.0 / 3)
        assert metrics.tail_ratio == 1.0
        assert metrics.first_trade_time == datetime(2024, 1, 3, 15, 0)
        assert metrics.last_trade_time == datetime(2024, 2, 2, 11, 0)

    def test_empty_history(self):
        """No events yields an all-zero snapshot rather than an error."""
        metrics = compute_metrics([])

        assert metrics.total_trades == 0
        assert metrics.win_rate == 0.0
        assert metrics.profit_factor == 0.0
        assert metrics.cagr == 0.0
        assert metrics.first_trade_time is None


class TestWinRate:
    """Test win rate bounds."""

    def test_no_countable_trades(self, make_deposit, make_trade):
        """Zero countable trades gives 0, not NaN."""
        trades = [
            make_deposit(T0, 1000.0),
            make_trade(T0, None, 1000.0, direction=Direction.IN),
        ]

        assert calculate_win_rate(trades) == 0.0

    def test_balance_rows_excluded(self, make_trade):
        """Balance-type rows with profit never count."""
        trades = [
            make_trade(T0, 10.0, 1010.0),
            make_trade(T0, 500.0, 1510.0, event_type=EventType.BALANCE),
            make_trade(T0, -10.0, 1500.0),
        ]

        assert calculate_win_rate(trades) == 50.0

    @pytest.mark.parametrize("profits", [[1.0], [-1.0], [0.0], [1.0, -1.0, 0.0, 2.0]])
    def test_bounds(self, make_trade, profits):
        """Win rate stays within 0-100."""
        trades = [make_trade(T0, p, None) for p in profits]

        assert 0.0 <= calculate_win_rate(trades) <= 100.0


class TestProfitFactor:
    """Test profit factor guard."""

    def test_ratio(self):
        """Gross profit over gross loss."""
        assert calculate_profit_factor(300.0, 150.0) == 2.0

    def test_no_losses_is_zero(self):
        """No losses yields the 0 sentinel, not infinity."""
        assert calculate_profit_factor(100.0, 0.0) == 0.0

    def test_all_winners_snapshot(self, make_deposit, make_trade):
        """An all-winning history reports profit factor 0."""
        trades = [make_deposit(T0, 1000.0), make_trade(T0, 10.0, 1010.0), make_trade(T0, 5.0, 1015.0)]

        metrics = compute_metrics(trades)

        assert metrics.profit_factor == 0.0
        assert math.isfinite(metrics.win_loss_ratio)


class TestDrawdown:
    """Test peak-to-trough scan."""

    def test_max_drawdown(self):
        """Amount and relative figure at the largest decline."""
        amount, relative = calculate_max_drawdown([10000.0, 10100.0, 10050.0])

        assert amount == 50.0
        assert relative == pytest.approx(50.0 / 10100.0 * 100)

    def test_relative_taken_at_max_amount(self):
        """Relative drawdown belongs to the largest amount, not the largest percent."""
        # 100 -> 50 is 50%, 1000 -> 900 is 10% but 100 in amount
        amount, relative = calculate_max_drawdown([100.0, 50.0, 1000.0, 900.0])

        assert amount == 100.0
        assert relative == pytest.approx(10.0)

    def test_monotonic_rise(self):
        """No decline, no drawdown."""
        assert calculate_max_drawdown([1.0, 2.0, 3.0]) == (0.0, 0.0)
        assert calculate_max_drawdown([]) == (0.0, 0.0)


class TestReturnsAndRatios:
    """Test return series and risk-adjusted ratios."""

    def test_trade_returns_skip_funding(self, make_deposit, make_trade):
        """Funding rows move the reference balance but produce no return."""
        trades = [
            make_deposit(T0, 10000.0),
            make_trade(T0 + timedelta(hours=1), 100.0, 10100.0),
            make_deposit(T0 + timedelta(hours=2), 20100.0),
            make_trade(T0 + timedelta(hours=3), -100.0, 20000.0),
        ]

        returns = calculate_trade_returns(trades)

        assert returns == pytest.approx([0.01, -100.0 / 20100.0])

    def test_trade_returns_skip_zero_reference(self, make_deposit, make_trade):
        """A zero previous balance yields no return."""
        trades = [make_deposit(T0, 0.0), make_trade(T0, 100.0, 100.0)]

        assert calculate_trade_returns(trades) == []

    def test_sharpe(self):
        """Mean over population standard deviation, annualized."""
        returns = [0.01, -0.01, 0.02, 0.0]
        expected = 0.005 / math.sqrt(1.25e-4) * math.sqrt(252)

        assert calculate_sharpe_ratio(returns) == pytest.approx(expected)

    def test_sharpe_degenerate(self):
        """Fewer than two returns or zero deviation gives 0."""
        assert calculate_sharpe_ratio([0.05]) == 0.0
        assert calculate_sharpe_ratio([0.01, 0.01, 0.01]) == 0.0

    def test_sortino(self):
        """Downside deviation uses negative returns over all periods."""
        returns = [0.02, -0.01, 0.03, -0.02]
        expected = 0.005 / math.sqrt(5e-4 / 4) * math.sqrt(252)

        assert calculate_sortino_ratio(returns) == pytest.approx(expected)

    def test_sortino_no_losses(self):
        """No negative returns gives 0."""
        assert calculate_sortino_ratio([0.01, 0.02]) == 0.0

    def test_value_at_risk(self):
        """Historical 95% VaR as a positive percentage."""
        returns = [-0.05, -0.04] + [0.01] * 18

        assert calculate_value_at_risk(returns) == pytest.approx(4.0)

    def test_value_at_risk_needs_ten_returns(self):
        """Short series report 0."""
        assert calculate_value_at_risk([-0.5] * 9) == 0.0


class TestReturnDistribution:
    """Test skewness, kurtosis, tail ratio and autocorrelation of returns."""

    def test_skewness(self):
        """Matches the adjusted sample skewness; symmetric series are 0."""
        assert calculate_skewness([0.0, 0.0, 3.0]) == pytest.approx(math.sqrt(3))
        assert calculate_skewness([-1.0, 0.0, 1.0]) == pytest.approx(0.0)
        assert calculate_skewness([0.0, 0.0, -3.0]) < 0

    def test_kurtosis(self):
        """Excess kurtosis: heavy tail positive, flat distribution negative."""
        assert calculate_kurtosis([0.0, 0.0, 0.0, 4.0]) == pytest.approx(4.0)
        assert calculate_kurtosis([1.0, 2.0, 3.0, 4.0]) == pytest.approx(-1.2)

    @pytest.mark.parametrize("returns", [[], [0.1, 0.2], [0.5] * 5])
    def test_moments_degenerate(self, returns):
        """Too few returns or zero deviation yield 0."""
        assert calculate_skewness(returns) == 0.0
        assert calculate_kurtosis(returns) == 0.0

    def test_tail_ratio(self):
        """95th percentile over the 5th, both taken by index into sorted returns."""
        # Arrange
        returns = [0.06, -0.04, 0.01, -0.02] + [0.0] * 16

        # Act
        ratio = calculate_tail_ratio(returns)

        # Assert
        assert ratio == pytest.approx(3.0)

    def test_tail_ratio_short_series(self):
        """Fewer than 20 returns report a neutral 1."""
        assert calculate_tail_ratio([0.5, -0.1] * 9) == 1.0

    def test_tail_ratio_one_sided(self):
        """Without losses in the left tail the ratio is 1."""
        assert calculate_tail_ratio([0.01] * 20) == 1.0

    def test_autocorrelation_alternating(self):
        """Alternating results are negatively correlated."""
        assert calculate_autocorrelation([0.01, -0.01] * 5) == pytest.approx(-0.9)

    def test_autocorrelation_trending(self):
        """Steadily rising returns are positively correlated."""
        assert calculate_autocorrelation([0.001 * i for i in range(12)]) > 0.5

    def test_autocorrelation_guards(self):
        """Short or constant series report 0."""
        assert calculate_autocorrelation([0.01, -0.01] * 4) == 0.0
        assert calculate_autocorrelation([0.5] * 12) == 0.0


class TestGrowth:
    """Test CAGR and Calmar."""

    def test_cagr_two_years(self):
        """21% over two years is 10% a year."""
        start = datetime(2022, 1, 1)
        end = start + timedelta(days=730.5)

        assert calculate_cagr(100000.0, 121000.0, start, end) == pytest.approx(10.0)

    def test_cagr_short_span_is_simple_return(self):
        """Less than a day of history reports the simple return."""
        assert calculate_cagr(1000.0, 1100.0, T0, T0 + timedelta(hours=12)) == pytest.approx(10.0)

    def test_cagr_guards(self):
        """Degenerate balances or missing dates."""
        assert calculate_cagr(0.0, 1000.0, T0, T0 + timedelta(days=10)) == 0.0
        assert calculate_cagr(1000.0, 0.0, T0, T0 + timedelta(days=10)) == -100.0
        assert calculate_cagr(1000.0, 1100.0, None, None) == 0.0

    def test_calmar(self):
        """CAGR over relative drawdown, 0 without drawdown."""
        assert calculate_calmar_ratio(20.0, 10.0) == 2.0
        assert calculate_calmar_ratio(20.0, 0.0) == 0.0


class TestTradeStatistics:
    """Test expectancy, streaks and position sides."""

    def test_expectancy(self):
        """Breakeven trades only dilute the probabilities."""
        assert calculate_expectancy([100.0, -50.0, 0.0]) == pytest.approx(50.0 / 3)
        assert calculate_expectancy([]) == 0.0

    def test_streaks(self):
        """Breakeven trades neither extend nor break a streak."""
        assert calculate_streaks([1.0, 2.0, -1.0, 0.0, -2.0, -3.0, 4.0]) == (2, 3, 1.5, 3.0)

    def test_streaks_empty(self):
        """No trades, no streaks."""
        assert calculate_streaks([]) == (0, 0, 0.0, 0.0)

    def test_streak_amounts(self):
        """Amounts belong to the longest streaks; breakeven trades are skipped."""
        profits = [10.0, 20.0, -5.0, 30.0, 0.0, 40.0, 50.0, -1.0, -2.0]

        assert calculate_streak_amounts(profits) == (120.0, -3.0)

    def test_streak_amounts_tie_keeps_first(self):
        """Equal-length streaks report the earlier one."""
        assert calculate_streak_amounts([10.0, -5.0, 20.0, -7.0]) == (10.0, -5.0)
        assert calculate_streak_amounts([]) == (0.0, 0.0)

    def test_average_trade_duration_fifo_by_symbol(self, make_trade):
        """Closing deals pair with the oldest open entry of their symbol."""
        # Arrange
        trades = [
            make_trade(T0, None, None, symbol="EURUSD", direction=Direction.IN),
            make_trade(T0 + timedelta(hours=1), None, None, symbol="GBPUSD", direction=Direction.IN),
            make_trade(T0 + timedelta(hours=2), None, None, symbol="EURUSD", direction=Direction.IN),
            make_trade(T0 + timedelta(hours=4), 10.0, None, symbol="EURUSD"),
            make_trade(T0 + timedelta(hours=7), -5.0, None, symbol="GBPUSD"),
            make_trade(T0 + timedelta(hours=8), 10.0, None, symbol="EURUSD"),
        ]

        # Act
        hours = calculate_average_trade_duration(trades)

        # Assert
        assert hours == pytest.approx((4 + 6 + 6) / 3)

    def test_average_trade_duration_by_trade_number(self, tradingview_csv_file):
        """TradingView entries and exits pair by trade number."""
        trades = parse(tradingview_csv_file).trades

        assert calculate_average_trade_duration(trades) == pytest.approx(24.0)

    def test_average_trade_duration_unpaired(self, make_trade):
        """Exits without an entry are ignored."""
        assert calculate_average_trade_duration([make_trade(T0, 10.0, 100.0)]) == 0.0

    @pytest.mark.parametrize(
        "side, direction, expected",
        [
            ("sell", Direction.OUT, "long"),
            ("buy", Direction.OUT, "short"),
            ("buy", Direction.IN, "long"),
            ("sell", Direction.IN, "short"),
            ("long", Direction.OUT, "long"),
            ("short", Direction.OUT, "short"),
            (None, Direction.OUT, None),
        ],
    )
    def test_position_side(self, side, direction, expected):
        """MT5 deal types map to the side of the position they belong to."""
        trade = TradeEvent(open_time=T0, side=side, direction=direction)

        assert position_side(trade) == expected


class TestInitialBalanceOverride:
    """Test balance-shift recomputation."""

    def test_idempotent_with_original_balance(self, mt5_csv_text):
        """Overriding with the original initial balance reproduces the snapshot."""
        trades = parse(mt5_csv_text).trades

        assert recalculate_with_initial_balance(trades, 10000.0) == compute_metrics(trades)

    def test_shift(self, scenario_a):
        """Every balance moves by the same offset; P&L figures are unchanged."""
        # Act
        metrics = compute_metrics(scenario_a, initial_balance_override=20000.0)

        # Assert
        assert metrics.initial_balance == 20000.0
        assert metrics.final_balance == 20050.0
        assert metrics.total_net_profit == 50.0
        assert metrics.max_drawdown == 50.0
        assert metrics.relative_drawdown == pytest.approx(50.0 / 20100.0 * 100)

    def test_inputs_not_modified(self, scenario_a):
        """Recomputation never mutates the given events."""
        before = [trade.balance for trade in scenario_a]

        recalculate_with_initial_balance(scenario_a, 500.0)

        assert [trade.balance for trade in scenario_a] == before

    @pytest.mark.parametrize("value", [0.0, -100.0])
    def test_non_positive_rejected(self, scenario_a, value):
        """Non-positive overrides raise before any computation."""
        with pytest.raises(ValidationError):
            recalculate_with_initial_balance(scenario_a, value)
        with pytest.raises(ValidationError):
            compute_metrics(scenario_a, initial_balance_override=value)

    def test_override_without_balances_warns(self, make_trade, caplog):
        """With no balance snapshots the override is ignored and a warning is logged."""
        # Arrange
        import logging

        caplog.set_level(logging.WARNING)
        trades = [make_trade(T0, 100.0, None), make_trade(T0 + timedelta(days=1), -40.0, None)]

        # Act
        metrics = recalculate_with_initial_balance(trades, 50000.0)

        # Assert
        assert metrics == compute_metrics(trades)
        assert metrics.initial_balance == 0.0
        assert metrics.gross_profit == 100.0
        assert "metrics.rebalance_ignored" in caplog.text

    def test_shift_balances_skips_missing(self, make_trade):
        """Events without a balance are left alone."""
        trades = [make_trade(T0, 1.0, None), make_trade(T0, 1.0, 100.0)]

        shifted = shift_balances(trades, 50.0)

        assert shifted[0] is trades[0]
        assert shifted[1].balance == 150.0

    def test_shift_by_zero_returns_same_events(self, scenario_a):
        """A zero offset copies the list, not the events."""
        shifted = shift_balances(scenario_a, 0.0)

        assert shifted == scenario_a
        assert shifted is not scenario_a
        assert all(a is b for a, b in zip(shifted, scenario_a))
