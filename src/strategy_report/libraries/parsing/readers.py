"""Row grid readers for CSV, HTML and XLSX broker exports.

All readers flatten their input into a list of rows, each a list of cell
strings, so dialect handling never needs to know the container format.
HTML exports may spread the history over several <table> elements; their
rows are concatenated in document order. Workbooks contribute their first
sheet only.
"""

import csv
import io
import zipfile

import pandas as pd
from bs4 import BeautifulSoup

from strategy_report.errors import ParseError
from strategy_report.libraries.parsing.models import ReportFormat

# MT5 "Save as Report" writes UTF-16 with BOM; other tools write UTF-8
_BOMS = (
    (b"\xef\xbb\xbf", "utf-8-sig"),
    (b"\xff\xfe", "utf-16"),
    (b"\xfe\xff", "utf-16"),
)

# XLSX workbooks are zip archives
_ZIP_MAGIC = b"PK\x03\x04"


def decode_source(data: bytes) -> str:
    """
    Decode raw export bytes.

    Honors a byte-order mark when present, then tries UTF-8 and finally
    cp1252, which accepts any byte sequence.
    """
    for bom, encoding in _BOMS:
        if data.startswith(bom):
            try:
                return data.decode(encoding)
            except UnicodeDecodeError as e:
                raise ParseError(f"Cannot decode report as {encoding}: {e}") from e

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("cp1252", errors="replace")


def detect_format(text: str) -> ReportFormat:
    """Sniff container format from content."""
    head = text[:4096].lower()
    if "<table" in head or "<html" in head or "<!doctype html" in head:
        return ReportFormat.HTML
    if "<table" in text.lower():
        return ReportFormat.HTML
    return ReportFormat.CSV


def read_csv_rows(text: str) -> list[list[str]]:
    """
    Split delimited text into rows of stripped cells.

    The delimiter is sniffed from the first lines (comma, semicolon or tab),
    defaulting to comma.
    """
    sample = "\n".join(text.splitlines()[:20])
    try:
        dialect: type[csv.Dialect] | csv.Dialect = csv.Sniffer().sniff(sample, delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel

    reader = csv.reader(io.StringIO(text), dialect)
    return [[cell.strip() for cell in row] for row in reader]


def read_html_rows(text: str) -> list[list[str]]:
    """
    Extract table rows from an HTML export.

    Header (<th>) and data (<td>) cells are both kept. A cell spanning
    several columns is repeated as empty cells after its text so column
    positions line up with the header row.
    """
    soup = BeautifulSoup(text, "html.parser")
    tables = soup.find_all("table")
    if not tables:
        raise ParseError("HTML document contains no <table> elements")

    rows: list[list[str]] = []
    for table in tables:
        for tr in table.find_all("tr"):
            # Nested tables contribute their own rows
            if tr.find_parent("table") is not table:
                continue
            cells: list[str] = []
            for cell in tr.find_all(["td", "th"], recursive=False):
                cells.append(cell.get_text(" ", strip=True))
                span = _colspan(cell.get("colspan"))
                cells.extend([""] * (span - 1))
            rows.append(cells)
    return rows


def _colspan(value: object) -> int:
    try:
        span = int(str(value)) if value is not None else 1
    except ValueError:
        return 1
    return max(span, 1)


def read_rows(text: str, report_format: ReportFormat) -> list[list[str]]:
    """Read a row grid for the given container format."""
    if report_format == ReportFormat.HTML:
        return read_html_rows(text)
    if report_format == ReportFormat.XLSX:
        raise ParseError("XLSX reports must be given as bytes or a file path")
    return read_csv_rows(text)


def is_xlsx(data: bytes) -> bool:
    """True when the bytes look like an XLSX workbook (a zip archive)."""
    return data.startswith(_ZIP_MAGIC)


def read_xlsx_rows(data: bytes) -> list[list[str]]:
    """
    Read the first worksheet of an XLSX workbook into a row grid.

    Every cell is read as text; empty cells become "". Dates stored as
    Excel datetimes come through as "YYYY-MM-DD HH:MM:SS".
    """
    try:
        frame = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=str)
    except (ValueError, KeyError, zipfile.BadZipFile) as e:
        raise ParseError(f"Cannot read XLSX workbook: {e}") from e

    frame = frame.fillna("")
    return [[str(cell).strip() for cell in row] for row in frame.itertuples(index=False, name=None)]
