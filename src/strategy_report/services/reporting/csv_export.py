"""Normalized trade list export.

Writes parsed events in the MT5 deals column layout so exports from either
dialect can be re-imported or compared side by side.
"""

from pathlib import Path
from typing import Sequence

import pandas as pd

from strategy_report.libraries.parsing.models import TradeEvent
from strategy_report.system.log_system import LoggerFactory

logger = LoggerFactory.get_logger()

MT5_COLUMNS = [
    "Time",
    "Deal",
    "Symbol",
    "Type",
    "Direction",
    "Volume",
    "Price",
    "Order",
    "Commission",
    "Swap",
    "Profit",
    "Balance",
    "Comment",
]


def _deal_type(trade: TradeEvent) -> str:
    if trade.side in ("buy", "sell"):
        return trade.side
    # TradingView sides: entries buy a long, exits sell it
    if trade.side in ("long", "short") and trade.direction is not None:
        opening = trade.direction.value == "in"
        if trade.side == "long":
            return "buy" if opening else "sell"
        return "sell" if opening else "buy"
    return trade.type.value


def trades_frame(trades: Sequence[TradeEvent]) -> pd.DataFrame:
    """Events as a DataFrame with MT5 deal columns, one row per event."""
    rows = [
        {
            "Time": trade.open_time.strftime("%Y.%m.%d %H:%M:%S"),
            "Deal": trade.deal_id or "",
            "Symbol": trade.symbol or "",
            "Type": _deal_type(trade),
            "Direction": trade.direction.value if trade.direction else "",
            "Volume": trade.volume,
            "Price": trade.price,
            "Order": trade.order or "",
            "Commission": trade.commission,
            "Swap": trade.swap,
            "Profit": trade.profit,
            "Balance": trade.balance,
            "Comment": trade.comment or "",
        }
        for trade in trades
    ]
    return pd.DataFrame(rows, columns=MT5_COLUMNS)


def export_trades_csv(trades: Sequence[TradeEvent], path: Path) -> Path:
    """
    Write events to a CSV file.

    Missing numeric values are written as empty cells.

    Returns:
        Path to the written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    trades_frame(trades).to_csv(path, index=False)
    logger.info("report.csv_written", path=str(path), rows=len(trades))
    return path
