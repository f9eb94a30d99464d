"""Tests for locale-tolerant number and timestamp normalization."""

from datetime import datetime

import pytest

from strategy_report.libraries.parsing.normalize import extract_stop_levels, parse_number, parse_timestamp


class TestParseNumber:
    """Test parse_number separator handling."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1234.56", 1234.56),
            ("1 234.56", 1234.56),
            ("1 234,56", 1234.56),
            ("1,234.56", 1234.56),
            ("1.234,56", 1234.56),
            ("1,234", 1234.0),
            ("12,5", 12.5),
            ("1,10523", 1.10523),
            ("1,10000", 1.1),
            ("0,1", 0.1),
            ("12,345,678", 12345678.0),
            ("1.234.567", 1234567.0),
            ("-1.234.567", -1234567.0),
            ("-100.00", -100.0),
            ("−100.00", -100.0),
            ("0", 0.0),
        ],
    )
    def test_formats(self, raw, expected):
        """Test supported separator layouts."""
        assert parse_number(raw) == pytest.approx(expected)

    def test_blank_is_none(self):
        """Blank and None cells are missing values, not errors."""
        assert parse_number("") is None
        assert parse_number("   ") is None
        assert parse_number(None) is None

    def test_malformed_raises(self):
        """Non-numeric text raises ValueError."""
        with pytest.raises(ValueError, match="Not a number"):
            parse_number("abc")

    @pytest.mark.parametrize("raw", ["1,2,3", "1.23.4"])
    def test_irregular_groups_raise(self, raw):
        """Repeated separators that are not three-digit groups are rejected."""
        with pytest.raises(ValueError, match="Not a number"):
            parse_number(raw)


class TestParseTimestamp:
    """Test parse_timestamp layouts."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2024.01.02 09:30:15", datetime(2024, 1, 2, 9, 30, 15)),
            ("2024.01.02 09:30", datetime(2024, 1, 2, 9, 30)),
            ("2024-01-02 09:30", datetime(2024, 1, 2, 9, 30)),
            ("2024-01-02", datetime(2024, 1, 2)),
            ("01/02/2024 09:30", datetime(2024, 1, 2, 9, 30)),
            ("2024-01-02T09:30:00+02:00", datetime(2024, 1, 2, 9, 30)),
            ("  2024.01.02   09:30:15 ", datetime(2024, 1, 2, 9, 30, 15)),
        ],
    )
    def test_layouts(self, raw, expected):
        """Test supported date layouts."""
        assert parse_timestamp(raw) == expected

    def test_result_is_naive(self):
        """Timezone offsets are dropped."""
        assert parse_timestamp("2024-01-02T09:30:00Z").tzinfo is None

    def test_blank_is_none(self):
        """Blank cells return None."""
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None

    def test_malformed_raises(self):
        """Unrecognized text raises ValueError."""
        with pytest.raises(ValueError, match="Unrecognized date"):
            parse_timestamp("yesterday")


class TestExtractStopLevels:
    """Test stop-loss / take-profit comment markers."""

    def test_both_levels(self):
        """Both markers in one comment."""
        assert extract_stop_levels("sl 1.0850 tp 1.1000") == (1.085, 1.1)

    def test_bracketed_take_profit(self):
        """MT5 writes triggered levels in brackets."""
        assert extract_stop_levels("[tp 1.1000]") == (None, 1.1)

    def test_case_insensitive(self):
        """Markers match regardless of case."""
        assert extract_stop_levels("SL: 95.5") == (95.5, None)

    def test_no_markers(self):
        """Comments without markers yield no levels."""
        assert extract_stop_levels("Initial deposit") == (None, None)
        assert extract_stop_levels(None) == (None, None)
