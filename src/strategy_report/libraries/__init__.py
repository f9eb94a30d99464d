"""Calculation libraries: report parsing, performance metrics and Monte Carlo simulation."""
