"""Analysis results shared by the reporting tests."""

import pytest

from strategy_report.services.analysis import ReportAnalyzer
from strategy_report.system.config import AnalysisConfig, SimulationConfig


@pytest.fixture
def analyzer():
    return ReportAnalyzer(AnalysisConfig(), SimulationConfig(num_simulations=10, horizon=12, seed=3))


@pytest.fixture
def analysis_result(analyzer, mt5_csv_file):
    """Sample MT5 history with a Monte Carlo projection."""
    return analyzer.analyze(analyzer.load(mt5_csv_file))


@pytest.fixture
def tradingview_result(analyzer, tradingview_csv_file):
    """TradingView history without a projection."""
    return analyzer.analyze(analyzer.load(tradingview_csv_file), run_simulation=False)
