"""Data models for parsed trade history.

Defines the normalized record every analysis component consumes:
- TradeEvent: One deal, balance operation or unclassified row
- ParsedReport: Ordered events plus the report summary block
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """Classification of a trade history row."""

    TRADE = "trade"
    BALANCE = "balance"
    EMPTY = "empty"


class Direction(str, Enum):
    """Whether a deal opened or closed a position."""

    IN = "in"
    OUT = "out"


class ReportFormat(str, Enum):
    """Container format of the broker export."""

    CSV = "csv"
    HTML = "html"
    XLSX = "xlsx"


class ReportDialect(str, Enum):
    """Broker report layout."""

    MT5 = "mt5"
    TRADINGVIEW = "tradingview"


class TradeEvent(BaseModel):
    """
    Normalized trade history row.

    Balance and empty rows are account funding or unclassified entries. They
    never count as trades but still carry balance snapshots for the equity
    curve. Every optional field is None when the source did not provide it.

    Attributes:
        open_time: When the deal or balance operation happened
        symbol: Instrument (None for balance rows or dialects without symbols)
        type: Row classification
        direction: IN opens a position, OUT closes one and realizes profit
        profit: Realized P&L (only set on OUT trade rows)
        balance: Account balance after this row, when reported
        side: buy/sell (MT5) or long/short (TradingView)
        stop_loss: Parsed from "sl X" comment marker
        take_profit: Parsed from "tp X" comment marker

    Example:
        >>> event = TradeEvent(
        ...     open_time=datetime(2024, 3, 1, 10, 30),
        ...     symbol="EURUSD",
        ...     type=EventType.TRADE,
        ...     direction=Direction.OUT,
        ...     profit=125.40,
        ...     balance=10125.40,
        ... )
        >>> event.is_countable
        True
    """

    open_time: datetime
    symbol: str | None = None
    type: EventType = EventType.TRADE
    direction: Direction | None = None
    profit: float | None = None
    balance: float | None = None
    side: str | None = None
    deal_id: str | None = None
    order: str | None = None
    volume: float | None = None
    price: float | None = None
    commission: float | None = None
    swap: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    comment: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_countable(self) -> bool:
        """Closed trade with realized profit; the only rows in win/loss statistics."""
        return self.direction == Direction.OUT and self.profit is not None and self.type == EventType.TRADE

    @property
    def is_winner(self) -> bool:
        """Countable trade with positive profit."""
        return self.is_countable and self.profit is not None and self.profit > 0

    @property
    def is_loser(self) -> bool:
        """Countable trade with negative profit."""
        return self.is_countable and self.profit is not None and self.profit < 0

    @property
    def has_balance(self) -> bool:
        """Row carries a balance snapshot (equity curve point)."""
        return self.balance is not None


class ParsedReport(BaseModel):
    """Result of parsing one broker export."""

    trades: list[TradeEvent]
    summary: dict[str, str] = Field(default_factory=dict)
    format: ReportFormat
    dialect: ReportDialect
    warnings: list[str] = Field(default_factory=list)
    skipped_rows: int = 0
