"""Trade history parsing library.

Converts broker exports into normalized TradeEvents:

1. **Models** (`models.py`): TradeEvent, ParsedReport and the format/dialect enums
2. **Normalize** (`normalize.py`): Locale number and timestamp parsing
3. **Readers** (`readers.py`): CSV and HTML row grids
4. **Dialects** (`dialects.py`): MT5 and TradingView column mapping
5. **Parser** (`parser.py`): parse() entry point

Usage:
    >>> from pathlib import Path
    >>> from strategy_report.libraries.parsing import parse
    >>> report = parse(Path("ReportHistory.html"))
    >>> len(report.trades)
    42
"""

from strategy_report.libraries.parsing.models import (
    Direction,
    EventType,
    ParsedReport,
    ReportDialect,
    ReportFormat,
    TradeEvent,
)
from strategy_report.libraries.parsing.parser import DEFAULT_INITIAL_BALANCE, ParseLimits, parse

__all__ = [
    # Models
    "TradeEvent",
    "ParsedReport",
    "EventType",
    "Direction",
    "ReportFormat",
    "ReportDialect",
    # Parser
    "parse",
    "ParseLimits",
    "DEFAULT_INITIAL_BALANCE",
]
