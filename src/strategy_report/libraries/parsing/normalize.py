"""Locale-tolerant number and timestamp normalization.

Broker exports mix thousands separators, comma decimals and several date
layouts. These helpers turn raw cell text into floats and naive datetimes,
returning None for blank cells and raising ValueError for malformed ones so
the caller can skip the row.
"""

import re
from datetime import datetime

_WHITESPACE = re.compile(r"[\s\u00a0\u2009\u202f]+")
# Thousands groups are always exactly three digits
_COMMA_GROUPED = re.compile(r"^[-+]?\d{1,3}(,\d{3})+$")
_DOT_GROUPED = re.compile(r"^[-+]?\d{1,3}(\.\d{3})+$")
_STOP_LOSS = re.compile(r"\bsl\s*[:=]?\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_TAKE_PROFIT = re.compile(r"\btp\s*[:=]?\s*(\d+(?:\.\d+)?)", re.IGNORECASE)

# Tried in order; month-first slash format is the unambiguous US export layout
_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y.%m.%d %H:%M:%S",
    "%Y.%m.%d %H:%M",
    "%Y.%m.%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
)


def parse_number(raw: str | None) -> float | None:
    """
    Parse a locale-formatted number.

    Rules:
        - Whitespace (including non-breaking and thin spaces) is removed
        - Both ',' and '.' present: whichever comes last is the decimal point
        - Only ',' present: thousands separator when every group after the
          first has exactly three digits ("1,234", "12,345,678"), otherwise a
          single comma is the decimal point ("12,5", "1,10523")
        - Only '.' present more than once: thousands separators ("1.234.567")

    Args:
        raw: Cell text

    Returns:
        Parsed float, or None for blank input

    Raises:
        ValueError: If text is not numeric

    Example:
        >>> parse_number("1 234,56")
        1234.56
        >>> parse_number("1,234.56")
        1234.56
        >>> parse_number("1,234")
        1234.0
        >>> parse_number("1,10523")
        1.10523
    """
    if raw is None:
        return None

    cleaned = _WHITESPACE.sub("", str(raw)).replace("\u2212", "-")
    if not cleaned:
        return None

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        if _COMMA_GROUPED.match(cleaned):
            cleaned = cleaned.replace(",", "")
        elif cleaned.count(",") == 1:
            cleaned = cleaned.replace(",", ".")
    elif cleaned.count(".") > 1 and _DOT_GROUPED.match(cleaned):
        cleaned = cleaned.replace(".", "")

    try:
        return float(cleaned)
    except ValueError:
        raise ValueError(f"Not a number: {raw!r}") from None


def parse_timestamp(raw: str | None) -> datetime | None:
    """
    Parse a report timestamp into a naive datetime.

    Accepts YYYY-MM-DD, YYYY.MM.DD and MM/DD/YYYY layouts, each with optional
    HH:MM[:SS], plus ISO-8601 strings.

    Returns:
        Parsed datetime, or None for blank input

    Raises:
        ValueError: If no supported layout matches
    """
    if raw is None:
        return None

    text = " ".join(str(raw).split())
    if not text:
        return None

    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Unrecognized date: {raw!r}") from None
    return parsed.replace(tzinfo=None)


def extract_stop_levels(comment: str | None) -> tuple[float | None, float | None]:
    """
    Extract stop-loss and take-profit levels from a deal comment.

    Example:
        >>> extract_stop_levels("sl 1.0850")
        (1.085, None)
        >>> extract_stop_levels("[tp 1.1000]")
        (None, 1.1)
    """
    if not comment:
        return None, None

    sl_match = _STOP_LOSS.search(comment)
    tp_match = _TAKE_PROFIT.search(comment)
    stop_loss = float(sl_match.group(1)) if sl_match else None
    take_profit = float(tp_match.group(1)) if tp_match else None
    return stop_loss, take_profit
