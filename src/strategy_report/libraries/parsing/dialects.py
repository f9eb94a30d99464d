"""Broker report dialects.

A dialect recognizes its header row, binds column positions from it and
converts each data row into a TradeEvent. Two dialects are supported:

- MT5Dialect: MetaTrader 5 "Deals" history (Time, Deal, Symbol, Type,
  Direction, Volume, Price, Order, Commission, Swap, Profit, Balance, Comment)
- TradingViewDialect: Strategy Tester "List of trades" (Trade #, Type, Signal,
  Date/Time, Price, Contracts, Profit, Cumulative profit). It has no balance
  column, so balances are rebuilt from an initial balance in finalize().

parse_row() returns None for rows that carry no data (blank lines, totals)
and raises ValueError for malformed rows; the parser turns the latter into
skipped-row warnings.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from strategy_report.libraries.parsing.models import Direction, EventType, ReportDialect, TradeEvent
from strategy_report.libraries.parsing.normalize import extract_stop_levels, parse_number, parse_timestamp

# MT5 deal types that move the balance without opening or closing a position
_FUNDING_TYPES = frozenset(
    {
        "balance",
        "credit",
        "deposit",
        "withdrawal",
        "correction",
        "bonus",
        "charge",
        "commission",
        "interest",
        "dividend",
    }
)
_TRADE_TYPES = frozenset({"buy", "sell"})


class BaseDialect(ABC):
    """Column binding and row conversion for one report layout."""

    dialect: ReportDialect

    def __init__(self) -> None:
        self._columns: dict[str, int] = {}

    @classmethod
    @abstractmethod
    def matches_header(cls, row: Sequence[str]) -> bool:
        """True if row is this dialect's trade table header."""

    @abstractmethod
    def bind(self, header: Sequence[str]) -> None:
        """Resolve column positions from the header row."""

    @abstractmethod
    def parse_row(self, row: Sequence[str]) -> TradeEvent | None:
        """Convert one data row; None for rows without data."""

    def finalize(self, events: list[TradeEvent], initial_balance: float) -> list[TradeEvent]:
        """Post-process time-ordered events. Default: unchanged."""
        return events

    @property
    def columns(self) -> dict[str, int]:
        """Bound column positions by canonical name."""
        return dict(self._columns)

    def _cell(self, row: Sequence[str], name: str) -> str:
        index = self._columns.get(name)
        if index is None or index >= len(row):
            return ""
        return row[index].strip()


class MT5Dialect(BaseDialect):
    """MetaTrader 5 deals history."""

    dialect = ReportDialect.MT5

    _KNOWN_COLUMNS = (
        "time",
        "deal",
        "symbol",
        "type",
        "direction",
        "volume",
        "price",
        "order",
        "commission",
        "fee",
        "swap",
        "profit",
        "balance",
        "comment",
    )

    @classmethod
    def matches_header(cls, row: Sequence[str]) -> bool:
        if len(row) < 2:
            return False
        return "time" in row[0].lower() and "deal" in row[1].lower()

    def bind(self, header: Sequence[str]) -> None:
        self._columns = {}
        for index, cell in enumerate(header):
            name = cell.strip().lower()
            if name in self._KNOWN_COLUMNS and name not in self._columns:
                self._columns[name] = index
        # "Time" can carry a suffix such as "Time (UTC)"
        self._columns.setdefault("time", 0)
        self._columns.setdefault("deal", 1)

    def parse_row(self, row: Sequence[str]) -> TradeEvent | None:
        time_raw = self._cell(row, "time")
        deal_raw = self._cell(row, "deal")
        if not time_raw and not deal_raw:
            return None

        open_time = parse_timestamp(time_raw)
        if open_time is None:
            raise ValueError(f"missing time for deal {deal_raw!r}")

        type_raw = self._cell(row, "type").lower()
        event_type = self._classify(type_raw)
        direction = self._direction(self._cell(row, "direction").lower())

        commission = parse_number(self._cell(row, "commission"))
        fee = parse_number(self._cell(row, "fee"))
        if fee is not None:
            commission = (commission or 0.0) + fee

        profit = parse_number(self._cell(row, "profit"))
        if event_type != EventType.TRADE or direction != Direction.OUT:
            profit = None

        comment = self._cell(row, "comment") or None
        stop_loss, take_profit = extract_stop_levels(comment)

        return TradeEvent(
            open_time=open_time,
            symbol=self._cell(row, "symbol") or None,
            type=event_type,
            direction=direction,
            profit=profit,
            balance=parse_number(self._cell(row, "balance")),
            side=type_raw if type_raw in _TRADE_TYPES else None,
            deal_id=deal_raw or None,
            order=self._cell(row, "order") or None,
            volume=parse_number(self._volume_cell(row)),
            price=parse_number(self._cell(row, "price")),
            commission=commission,
            swap=parse_number(self._cell(row, "swap")),
            stop_loss=stop_loss,
            take_profit=take_profit,
            comment=comment,
        )

    def _volume_cell(self, row: Sequence[str]) -> str:
        # HTML reports write partially filled volume as "0.10 / 0.10"
        return self._cell(row, "volume").split("/")[0]

    @staticmethod
    def _classify(type_raw: str) -> EventType:
        if type_raw in _TRADE_TYPES:
            return EventType.TRADE
        if type_raw in _FUNDING_TYPES:
            return EventType.BALANCE
        return EventType.EMPTY

    @staticmethod
    def _direction(direction_raw: str) -> Direction | None:
        if direction_raw == "in":
            return Direction.IN
        if direction_raw in ("out", "in/out", "out by", "inout"):
            return Direction.OUT
        return None


class TradingViewDialect(BaseDialect):
    """TradingView Strategy Tester list of trades."""

    dialect = ReportDialect.TRADINGVIEW

    # canonical name -> (keywords in preference order, substrings that disqualify a header)
    _COLUMN_KEYWORDS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
        "trade": (("trade #", "trade", "id", "deal"), ()),
        "type": (("type", "action"), ()),
        "signal": (("signal", "direction", "side"), ()),
        "datetime": (("date/time", "date", "time", "datetime"), ()),
        "price": (("price usd", "price", "entry price"), ()),
        "contracts": (("contracts", "quantity", "volume", "size", "lot"), ()),
        "profit": (("profit usd", "net p&l usd", "profit", "net p&l", "p/l"), ("cumulative", "%")),
    }

    @classmethod
    def matches_header(cls, row: Sequence[str]) -> bool:
        cells = [cell.strip().lower() for cell in row]
        joined = " ".join(cells)
        if "trade #" in joined or "cumulative profit" in joined:
            return True
        return "signal" in cells and "type" in cells

    def bind(self, header: Sequence[str]) -> None:
        names = [cell.strip().lower() for cell in header]
        self._columns = {}
        claimed: set[int] = set()
        for canonical, (keywords, excluded) in self._COLUMN_KEYWORDS.items():
            index = self._find_column(names, keywords, excluded, claimed)
            if index is not None:
                self._columns[canonical] = index
                claimed.add(index)

    @staticmethod
    def _find_column(
        names: list[str], keywords: tuple[str, ...], excluded: tuple[str, ...], claimed: set[int]
    ) -> int | None:
        candidates = [
            (index, name)
            for index, name in enumerate(names)
            if index not in claimed and not any(bad in name for bad in excluded)
        ]
        for keyword in keywords:
            for index, name in candidates:
                if name == keyword:
                    return index
        for keyword in keywords:
            for index, name in candidates:
                if keyword in name:
                    return index
        return None

    def parse_row(self, row: Sequence[str]) -> TradeEvent | None:
        if not any(cell.strip() for cell in row):
            return None

        trade_no = self._cell(row, "trade")
        type_raw = self._cell(row, "type")
        signal = self._cell(row, "signal")

        open_time = parse_timestamp(self._cell(row, "datetime"))
        if open_time is None:
            raise ValueError(f"missing date/time for trade {trade_no!r}")

        type_lower = type_raw.lower()
        if "entry" in type_lower:
            direction: Direction | None = Direction.IN
        elif "exit" in type_lower:
            direction = Direction.OUT
        else:
            direction = None

        side = None
        for text in (signal.lower(), type_lower):
            if "long" in text:
                side = "long"
                break
            if "short" in text:
                side = "short"
                break

        profit = parse_number(self._cell(row, "profit")) if direction == Direction.OUT else None

        return TradeEvent(
            open_time=open_time,
            type=EventType.TRADE if direction is not None else EventType.EMPTY,
            direction=direction,
            profit=profit,
            side=side,
            deal_id=trade_no or None,
            order=trade_no or None,
            volume=parse_number(self._cell(row, "contracts")),
            price=parse_number(self._cell(row, "price")),
            comment=signal or None,
        )

    def finalize(self, events: list[TradeEvent], initial_balance: float) -> list[TradeEvent]:
        """
        Rebuild running balances from the initial balance.

        Emits an opening balance event at the first row's time, then adds each
        closed trade's profit in time order.
        """
        if not events:
            return events

        running = initial_balance
        rebuilt = [
            TradeEvent(
                open_time=events[0].open_time,
                type=EventType.BALANCE,
                balance=running,
                comment="Initial balance",
            )
        ]
        for event in events:
            if event.direction == Direction.OUT and event.profit is not None:
                running += event.profit
                rebuilt.append(event.model_copy(update={"balance": running}))
            else:
                rebuilt.append(event)
        return rebuilt


DIALECTS: dict[ReportDialect, type[BaseDialect]] = {
    ReportDialect.MT5: MT5Dialect,
    ReportDialect.TRADINGVIEW: TradingViewDialect,
}
