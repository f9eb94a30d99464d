"""Tests for CSV, HTML and XLSX row grid readers."""

import io
from datetime import datetime

import pandas as pd
import pytest

from strategy_report.errors import ParseError
from strategy_report.libraries.parsing.models import ReportFormat
from strategy_report.libraries.parsing.normalize import parse_timestamp
from strategy_report.libraries.parsing.readers import (
    decode_source,
    detect_format,
    is_xlsx,
    read_csv_rows,
    read_html_rows,
    read_xlsx_rows,
)


class TestDecodeSource:
    """Test byte decoding."""

    def test_utf16_with_bom(self):
        """MT5 UTF-16 exports are decoded via their BOM."""
        text = "Time,Deal\n2024.01.02,1\n"

        assert decode_source(text.encode("utf-16")) == text

    def test_utf8_with_bom(self):
        """UTF-8 BOM is stripped."""
        assert decode_source(b"\xef\xbb\xbfTime") == "Time"

    def test_cp1252_fallback(self):
        """Bytes that are not UTF-8 fall back to cp1252."""
        assert decode_source("Profit €".encode("cp1252")) == "Profit €"


class TestDetectFormat:
    """Test content sniffing."""

    def test_html(self):
        """Markup is detected as HTML."""
        assert detect_format("<html><body><table></table></body></html>") == ReportFormat.HTML

    def test_table_after_long_preamble(self):
        """A table beyond the sniffing window still means HTML."""
        assert detect_format(" " * 10000 + "<table>") == ReportFormat.HTML

    def test_csv(self):
        """Anything else is CSV."""
        assert detect_format("Time,Deal\n1,2\n") == ReportFormat.CSV


class TestReadCsvRows:
    """Test delimited text reading."""

    def test_comma(self):
        """Comma separated cells are stripped."""
        rows = read_csv_rows("Time, Deal\n2024.01.02 , 1\n")

        assert rows == [["Time", "Deal"], ["2024.01.02", "1"]]

    def test_semicolon(self):
        """Semicolon delimiter is sniffed (comma decimals stay intact)."""
        rows = read_csv_rows("Time;Profit;Balance\n2024.01.02;12,50;10012,50\n2024.01.03;-2,50;10010,00\n")

        assert rows[1] == ["2024.01.02", "12,50", "10012,50"]

    def test_tab(self):
        """Tab delimiter is sniffed."""
        rows = read_csv_rows("Time\tDeal\tProfit\n2024.01.02\t1\t5.00\n2024.01.03\t2\t6.00\n")

        assert rows[2] == ["2024.01.03", "2", "6.00"]


class TestReadHtmlRows:
    """Test HTML table flattening."""

    def test_colspan_padding(self):
        """Spanning cells are padded so columns line up."""
        html = '<table><tr><td colspan="3">Name:</td><td>Demo</td></tr></table>'

        assert read_html_rows(html) == [["Name:", "", "", "Demo"]]

    def test_header_and_data_cells(self):
        """<th> and <td> cells are both kept, nested markup flattened."""
        html = "<table><tr><th>Time</th><th><b>Deal</b></th></tr><tr><td>2024.01.02</td><td>1</td></tr></table>"

        assert read_html_rows(html) == [["Time", "Deal"], ["2024.01.02", "1"]]

    def test_multiple_tables_in_order(self):
        """Rows from several tables are concatenated in document order."""
        html = "<table><tr><td>a</td></tr></table><p>x</p><table><tr><td>b</td></tr></table>"

        assert read_html_rows(html) == [["a"], ["b"]]

    def test_no_table_raises(self):
        """HTML without tables cannot be a report."""
        with pytest.raises(ParseError, match="no <table>"):
            read_html_rows("<html><body><p>nothing</p></body></html>")


def _workbook(grid: list[list[object]]) -> bytes:
    buffer = io.BytesIO()
    pd.DataFrame(grid).to_excel(buffer, header=False, index=False)
    return buffer.getvalue()


class TestReadXlsxRows:
    """Test reading the first worksheet of a workbook."""

    def test_text_cells(self):
        """String cells come back stripped, in sheet order."""
        # Arrange
        data = _workbook([["Time", "Deal", "Profit"], ["2024.01.02 10:00:00", " 7 ", "50.00"]])

        # Act
        rows = read_xlsx_rows(data)

        # Assert
        assert rows == [["Time", "Deal", "Profit"], ["2024.01.02 10:00:00", "7", "50.00"]]

    def test_typed_cells_become_text(self):
        """Numbers and datetimes stored natively are read as text the parser understands."""
        data = _workbook([["Time", "Deal", "Profit"], [datetime(2024, 1, 2, 9, 30), 1, 50.5]])

        rows = read_xlsx_rows(data)

        assert rows[1][1] == "1"
        assert rows[1][2] == "50.5"
        assert parse_timestamp(rows[1][0]) == datetime(2024, 1, 2, 9, 30)

    def test_empty_cells(self):
        """Missing cells are empty strings."""
        data = _workbook([["Time", "Symbol", "Profit"], ["2024.01.02 10:00:00", None, "1.00"]])

        assert read_xlsx_rows(data)[1] == ["2024.01.02 10:00:00", "", "1.00"]

    def test_zip_signature(self):
        """Workbooks are recognized by their zip signature."""
        assert is_xlsx(_workbook([["a"]]))
        assert not is_xlsx(b"Time,Deal\n")

    def test_not_a_workbook_raises(self):
        """Bytes that are not a workbook are a parse error."""
        with pytest.raises(ParseError, match="XLSX"):
            read_xlsx_rows(b"PK\x03\x04 truncated")
