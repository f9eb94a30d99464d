"""Shared fixtures: sample broker exports and quiet logging."""

from datetime import datetime

import pandas as pd
import pytest

from strategy_report.libraries.parsing.models import Direction, EventType, TradeEvent
from strategy_report.system import LoggerFactory, LoggingConfig

# Configure before test modules import library loggers, so no log file is opened
LoggerFactory.configure(LoggingConfig(level="WARNING", enable_file=False))


MT5_HEADER = "Time,Deal,Symbol,Type,Direction,Volume,Price,Order,Commission,Swap,Profit,Balance,Comment"

# Deposit, then three round trips: EURUSD +50, GBPUSD -100, EURUSD +150
MT5_ROWS = [
    "2024.01.02 09:00:00,1,,balance,,,,,0.00,0.00,0.00,10000.00,Initial deposit",
    "2024.01.02 10:00:00,2,EURUSD,buy,in,0.10,1.10000,2,0.00,0.00,0.00,10000.00,",
    "2024.01.03 15:00:00,3,EURUSD,sell,out,0.10,1.10500,3,0.00,0.00,50.00,10050.00,tp 1.10500",
    "2024.01.04 10:00:00,4,GBPUSD,sell,in,0.20,1.27000,4,0.00,0.00,0.00,10050.00,",
    "2024.01.05 12:00:00,5,GBPUSD,buy,out,0.20,1.27500,5,-1.40,-0.60,-100.00,9950.00,sl 1.27500",
    "2024.02.01 10:00:00,6,EURUSD,buy,in,0.10,1.09000,6,0.00,0.00,0.00,9950.00,",
    "2024.02.02 11:00:00,7,EURUSD,sell,out,0.10,1.10500,7,0.00,0.00,150.00,10100.00,",
]

MT5_CSV = "\n".join([MT5_HEADER, *MT5_ROWS]) + "\n"


def _html_row(cells: list[str]) -> str:
    return "<tr>" + "".join(f"<td>{cell}</td>" for cell in cells) + "</tr>"


MT5_HTML = (
    "<!DOCTYPE html><html><head><title>Report</title></head><body><table>"
    '<tr><th colspan="13"><div>Trade History Report</div></th></tr>'
    '<tr><td colspan="3">Name:</td><td colspan="10"><b>Demo Account</b></td></tr>'
    '<tr><td colspan="3">Account:</td><td colspan="10"><b>12345678 (USD, Demo)</b></td></tr>'
    '<tr><th colspan="13"><div><b>Deals</b></div></th></tr>'
    + _html_row(MT5_HEADER.split(","))
    + "".join(_html_row(row.split(",")) for row in MT5_ROWS)
    + '<tr><td colspan="8"></td><td>-1.40</td><td>-0.60</td><td>100.00</td><td>10100.00</td><td></td></tr>'
    + '<tr><td colspan="3">Total Net Profit:</td><td colspan="2"><b>100.00</b></td>'
    '<td colspan="3">Gross Profit:</td><td colspan="2"><b>200.00</b></td></tr>'
    '<tr><td colspan="3">Profit Factor:</td><td colspan="2"><b>2.00</b></td></tr>'
    "</table></body></html>"
)

# Long +50, then short -40; entry rows repeat the trade's profit as TradingView does
TRADINGVIEW_CSV = (
    "Trade #,Type,Signal,Date/Time,Price USD,Contracts,Profit USD,Profit %,"
    "Cumulative profit USD,Cumulative profit %\n"
    "1,Entry Long,Long,2024-01-02 10:00,100.00,10,50.00,5.00,50.00,0.50\n"
    "1,Exit Long,Close,2024-01-03 10:00,105.00,10,50.00,5.00,50.00,0.50\n"
    "2,Entry Short,Short,2024-01-04 10:00,106.00,10,-40.00,-3.77,10.00,0.10\n"
    "2,Exit Short,Close,2024-01-05 10:00,110.00,10,-40.00,-3.77,10.00,0.10\n"
)


@pytest.fixture
def mt5_csv_text() -> str:
    """MT5 deals history as CSV text."""
    return MT5_CSV


@pytest.fixture
def mt5_csv_file(tmp_path):
    """MT5 deals history written to a .csv file."""
    path = tmp_path / "ReportHistory.csv"
    path.write_text(MT5_CSV, encoding="utf-8")
    return path


@pytest.fixture
def mt5_html_file(tmp_path):
    """MT5 HTML report (UTF-16 with BOM, as MT5 saves it)."""
    path = tmp_path / "ReportHistory.html"
    path.write_bytes(MT5_HTML.encode("utf-16"))
    return path


@pytest.fixture
def mt5_xlsx_file(tmp_path):
    """MT5 deals history saved as an Excel workbook, one cell per field."""
    path = tmp_path / "ReportHistory.xlsx"
    grid = [line.split(",") for line in [MT5_HEADER, *MT5_ROWS]]
    pd.DataFrame(grid).to_excel(path, header=False, index=False)
    return path


@pytest.fixture
def tradingview_csv_file(tmp_path):
    """TradingView Strategy Tester list of trades."""
    path = tmp_path / "List_of_trades.csv"
    path.write_text(TRADINGVIEW_CSV, encoding="utf-8")
    return path


@pytest.fixture
def make_trade():
    """Factory for closed trade events with a balance snapshot."""

    def _make(
        time: datetime,
        profit: float | None,
        balance: float | None,
        symbol: str | None = "EURUSD",
        side: str | None = "sell",
        event_type: EventType = EventType.TRADE,
        direction: Direction | None = Direction.OUT,
    ) -> TradeEvent:
        return TradeEvent(
            open_time=time,
            symbol=symbol,
            type=event_type,
            direction=direction,
            profit=profit,
            balance=balance,
            side=side,
        )

    return _make


@pytest.fixture
def make_deposit():
    """Factory for balance (funding) events."""

    def _make(time: datetime, balance: float) -> TradeEvent:
        return TradeEvent(open_time=time, type=EventType.BALANCE, balance=balance, comment="Deposit")

    return _make


@pytest.fixture
def mt5_rows() -> list[str]:
    """MT5 sample data rows (without header)."""
    return list(MT5_ROWS)


@pytest.fixture
def build_mt5_csv():
    """Build MT5 CSV text from data rows under the standard header."""

    def _build(*rows: str) -> str:
        return "\n".join([MT5_HEADER, *rows]) + "\n"

    return _build
