"""CLI commands."""

from strategy_report.cli.commands.analyze import analyze_command

__all__ = ["analyze_command"]
