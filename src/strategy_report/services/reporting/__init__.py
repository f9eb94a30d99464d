"""Reporting service: HTML report, Rich console output and CSV export."""

from strategy_report.services.reporting.csv_export import export_trades_csv, trades_frame
from strategy_report.services.reporting.formatters import display_analysis_report
from strategy_report.services.reporting.html_reporter import HTMLReportGenerator, default_report_path

__all__ = [
    "HTMLReportGenerator",
    "default_report_path",
    "display_analysis_report",
    "export_trades_csv",
    "trades_frame",
]
