"""Analysis service: parse, measure and simulate one report."""

from strategy_report.services.analysis.models import AnalysisResult
from strategy_report.services.analysis.service import ReportAnalyzer

__all__ = [
    "ReportAnalyzer",
    "AnalysisResult",
]
