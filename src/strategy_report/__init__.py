"""
Strategy Report - Trading Strategy Report Analyzer

Public API for parsing broker trade exports and deriving performance,
drawdown and Monte Carlo statistics from them.
"""

from importlib.metadata import version

try:
    __version__ = version("strategy-report")
except Exception:
    __version__ = "0.0.0.dev"  # Fallback for development


__all__ = [
    "__version__",
]
