"""Broker export parser.

Turns an MT5 or TradingView trade history export (HTML, CSV or XLSX) into a
ParsedReport: time-ordered TradeEvents plus the report's summary block.

Pipeline:
    1. Load and bound-check the source (path, bytes or text)
    2. Resolve container format (hint, file suffix, then content sniffing)
    3. Flatten into a row grid and locate the dialect header
    4. Convert data rows until the section ends; skip malformed rows
    5. Stable-sort by time and let the dialect finalize (TradingView balances)
    6. Collect "Label:" summary cells and fill in computed keys
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from strategy_report.errors import NoValidDataError, ParseError, ValidationError
from strategy_report.libraries.parsing.dialects import DIALECTS, BaseDialect
from strategy_report.libraries.parsing.models import (
    Direction,
    EventType,
    ParsedReport,
    ReportDialect,
    ReportFormat,
    TradeEvent,
)
from strategy_report.libraries.parsing.readers import (
    decode_source,
    detect_format,
    is_xlsx,
    read_rows,
    read_xlsx_rows,
)
from strategy_report.system.log_system import LoggerFactory

logger = LoggerFactory.get_logger()

DEFAULT_INITIAL_BALANCE = 10000.0

_SUFFIX_FORMATS = {
    ".csv": ReportFormat.CSV,
    ".txt": ReportFormat.CSV,
    ".htm": ReportFormat.HTML,
    ".html": ReportFormat.HTML,
    ".xlsx": ReportFormat.XLSX,
}


@dataclass(frozen=True)
class ParseLimits:
    """Input bounds applied before any row is converted."""

    max_bytes: int = 25 * 1024 * 1024
    max_rows: int = 200_000

    @classmethod
    def from_megabytes(cls, max_file_size_mb: float, max_rows: int) -> "ParseLimits":
        return cls(max_bytes=int(max_file_size_mb * 1024 * 1024), max_rows=max_rows)


def parse(
    source: str | bytes | Path,
    format_hint: ReportFormat | None = None,
    dialect: ReportDialect | None = None,
    initial_balance: float | None = None,
    limits: ParseLimits | None = None,
) -> ParsedReport:
    """
    Parse a broker trade history export.

    Args:
        source: Report text, raw bytes, or a path to the export file
        format_hint: Force CSV, HTML or XLSX instead of detecting it
        dialect: Force MT5 or TradingView instead of detecting it from the header
        initial_balance: Starting balance for dialects without a balance column
        limits: Size and row bounds (defaults to ParseLimits())

    Returns:
        ParsedReport with events ordered by open_time (ties keep source order)

    Raises:
        ParseError: Source is empty, undecodable, oversized or of unknown layout
        NoValidDataError: Header was found but no data row could be parsed
        ValidationError: initial_balance is not positive

    Example:
        >>> report = parse(Path("ReportHistory.html"))
        >>> report.dialect
        <ReportDialect.MT5: 'mt5'>
    """
    limits = limits or ParseLimits()
    if initial_balance is not None and initial_balance <= 0:
        raise ValidationError(f"Initial balance must be positive, got {initial_balance}")

    data, suffix_format = _load_source(source, limits)
    report_format, rows = _read_grid(data, format_hint or suffix_format)
    if len(rows) > limits.max_rows:
        raise ParseError(f"Report has {len(rows)} rows, limit is {limits.max_rows}")

    header_index, parser_cls = _find_header(rows, dialect)
    parser_impl = parser_cls()
    parser_impl.bind(rows[header_index])

    events, warnings, data_end = _read_events(parser_impl, rows, header_index)
    if not events:
        raise NoValidDataError(
            f"{parser_impl.dialect.value} header found but no valid rows "
            f"({len(warnings)} skipped)"
        )

    events.sort(key=lambda event: event.open_time)
    start_balance = initial_balance if initial_balance is not None else DEFAULT_INITIAL_BALANCE
    events = parser_impl.finalize(events, start_balance)

    summary_rows = rows[:header_index] + rows[data_end:]
    summary = _extract_summary(summary_rows)
    _add_computed_summary(summary, events)

    logger.info(
        "parser.completed",
        format=report_format.value,
        dialect=parser_impl.dialect.value,
        events=len(events),
        skipped=len(warnings),
    )

    return ParsedReport(
        trades=events,
        summary=summary,
        format=report_format,
        dialect=parser_impl.dialect,
        warnings=warnings,
        skipped_rows=len(warnings),
    )


def _load_source(source: str | bytes | Path, limits: ParseLimits) -> tuple[str | bytes, ReportFormat | None]:
    if isinstance(source, Path):
        if not source.is_file():
            raise ParseError(f"Report file not found: {source}")
        size = source.stat().st_size
        if size > limits.max_bytes:
            raise ParseError(f"Report file is {size} bytes, limit is {limits.max_bytes}")
        return source.read_bytes(), _SUFFIX_FORMATS.get(source.suffix.lower())

    if isinstance(source, bytes):
        if len(source) > limits.max_bytes:
            raise ParseError(f"Report is {len(source)} bytes, limit is {limits.max_bytes}")
        return source, None

    if len(source.encode("utf-8")) > limits.max_bytes:
        raise ParseError(f"Report text exceeds {limits.max_bytes} bytes")
    return source, None


def _read_grid(data: str | bytes, report_format: ReportFormat | None) -> tuple[ReportFormat, list[list[str]]]:
    """Resolve the container format and flatten the source into rows."""
    if isinstance(data, bytes) and (report_format == ReportFormat.XLSX or (report_format is None and is_xlsx(data))):
        logger.debug("parser.started", format=ReportFormat.XLSX.value, size=len(data))
        return ReportFormat.XLSX, read_xlsx_rows(data)

    text = decode_source(data) if isinstance(data, bytes) else data
    if not text.strip():
        raise ParseError("Report source is empty")

    report_format = report_format or detect_format(text)
    logger.debug("parser.started", format=report_format.value, size=len(text))
    return report_format, read_rows(text, report_format)


def _find_header(
    rows: list[list[str]], dialect: ReportDialect | None
) -> tuple[int, type[BaseDialect]]:
    candidates = [DIALECTS[dialect]] if dialect else list(DIALECTS.values())
    for index, row in enumerate(rows):
        for candidate in candidates:
            if candidate.matches_header(row):
                return index, candidate

    expected = dialect.value if dialect else "MT5 or TradingView"
    raise ParseError(f"No {expected} trade table header found in report")


def _is_section_break(row: Sequence[str]) -> bool:
    filled = [cell for cell in row if cell.strip()]
    if len(filled) == 1:
        return True
    # Summary block after the deals table ("Balance:", "Profit Factor:", ...)
    return bool(filled) and filled[0].rstrip().endswith(":")


def _read_events(
    parser_impl: BaseDialect, rows: list[list[str]], header_index: int
) -> tuple[list[TradeEvent], list[str], int]:
    events: list[TradeEvent] = []
    warnings: list[str] = []
    data_end = len(rows)

    for index in range(header_index + 1, len(rows)):
        row = rows[index]
        if not any(cell.strip() for cell in row):
            continue
        if _is_section_break(row):
            data_end = index
            break

        try:
            event = parser_impl.parse_row(row)
        except ValueError as e:
            message = f"Row {index + 1} skipped: {e}"
            warnings.append(message)
            logger.warning("parser.row_skipped", row=index + 1, reason=str(e))
            continue

        if event is not None:
            events.append(event)

    return events, warnings, data_end


def _extract_summary(rows: list[list[str]]) -> dict[str, str]:
    """Map each "Label:" cell to the next non-empty cell in its row."""
    summary: dict[str, str] = {}
    for row in rows:
        for position, cell in enumerate(row):
            label = cell.strip()
            if len(label) < 2 or not label.endswith(":"):
                continue
            for value in row[position + 1 :]:
                value = value.strip()
                if value:
                    if not value.endswith(":"):
                        summary.setdefault(label[:-1].strip(), value)
                    break
    return summary


def _add_computed_summary(summary: dict[str, str], events: list[TradeEvent]) -> None:
    countable = [event for event in events if event.is_countable]
    winners = sum(1 for event in countable if event.is_winner)
    losers = sum(1 for event in countable if event.is_loser)
    deals = [event for event in events if event.type == EventType.TRADE]
    balances = [event.balance for event in events if event.balance is not None]

    win_rate = winners / len(countable) * 100 if countable else 0.0
    net_profit = sum(event.profit or 0.0 for event in countable)

    summary.setdefault("Total Trades", str(len(countable)))
    summary.setdefault("Profitable Trades", str(winners))
    summary.setdefault("Loss Trades", str(losers))
    summary.setdefault("Win Rate", f"{win_rate:.2f}%")
    summary.setdefault("Total Net Profit", f"{net_profit:.2f}")
    if balances:
        summary.setdefault("Initial Balance", f"{balances[0]:.2f}")
        summary.setdefault("Final Balance", f"{balances[-1]:.2f}")
    summary.setdefault("Total Deals", str(len(deals)))
    summary.setdefault("In Deals", str(sum(1 for event in deals if event.direction == Direction.IN)))
    summary.setdefault("Out Deals", str(sum(1 for event in deals if event.direction == Direction.OUT)))
