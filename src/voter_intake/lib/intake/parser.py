"""Spreadsheet parser: upload bytes → row candidates keyed by record field.

Reads the first sheet of an ``.xlsx`` workbook (or a CSV export of the same
template), checks the header row against the template, and maps every data
row through ``COLUMNS``. Parsing never rejects an individual row; field-level
problems are left for the validator so every error can be reported at once.
"""

import io
import math
import numbers
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import pandas as pd
from loguru import logger

from voter_intake.lib.intake.errors import FormatError
from voter_intake.lib.intake.template import COLUMNS, EXPECTED_HEADERS, ColumnKind

FIRST_DATA_ROW = 2

_NO_DATA_MESSAGE = "file must contain header and data"
_XLSX_SIGNATURE = b"PK\x03\x04"
_XLS_SIGNATURE = b"\xd0\xcf\x11\xe0"
_NON_DIGITS = re.compile(r"\D")


@dataclass
class ParsedRow:
    """One data row of the sheet.

    Attributes:
        row_number: Sheet row number (the header is row 1).
        fields: Record field name → coerced cell value.
    """

    row_number: int
    fields: dict[str, Any]


@dataclass
class ParsedSheet:
    """Result of parsing an upload."""

    rows: list[ParsedRow]
    ignored_headers: list[str] = field(default_factory=list)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _cell_text(value: Any) -> str:
    """Render a cell as trimmed text; integral floats lose their ``.0``."""
    if _is_blank(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real) and float(value).is_integer():
        return str(int(value))
    return str(value).strip()


def _coerce_integer(value: Any) -> int | str | None:
    """Parse an integer cell; text that is not a whole number is returned as-is."""
    if _is_blank(value):
        return None
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        number = float(value)
        return int(number) if math.isfinite(number) and number.is_integer() else _cell_text(value)
    text = _cell_text(value)
    try:
        return int(text)
    except ValueError:
        try:
            number = float(text)
        except ValueError:
            return text
        return int(number) if math.isfinite(number) and number.is_integer() else text


def coerce_cell(value: Any, kind: ColumnKind) -> Any:
    """Apply a column's coercion to a raw cell value."""
    if kind is ColumnKind.INTEGER:
        return _coerce_integer(value)
    if kind is ColumnKind.PHONE:
        return _NON_DIGITS.sub("", _cell_text(value))
    return _cell_text(value)


def rows_from_grid(grid: Sequence[Sequence[Any]]) -> ParsedSheet:
    """Map a raw cell grid (row 1 = header) onto template fields.

    Args:
        grid: Rows of raw cell values as read from the first sheet.

    Returns:
        The parsed rows, numbered from 2.

    Raises:
        FormatError: If the grid lacks a header or data row, or the header
            row is missing template columns.
    """
    if len(grid) < FIRST_DATA_ROW:
        raise FormatError(_NO_DATA_MESSAGE)

    headers = [_cell_text(v) for v in grid[0]]
    missing = [h for h in EXPECTED_HEADERS if h not in headers]
    if missing:
        raise FormatError(f"Missing required headers: {', '.join(missing)}", missing_headers=missing)

    # First occurrence wins when a header is repeated
    positions: dict[str, int] = {}
    for idx, header in enumerate(headers):
        positions.setdefault(header, idx)
    ignored = [h for h in headers if h and h not in EXPECTED_HEADERS]
    for header in ignored:
        logger.debug(f"Ignoring unknown column: {header!r}")

    rows: list[ParsedRow] = []
    for row_number, cells in enumerate(grid[1:], start=FIRST_DATA_ROW):
        if all(_is_blank(v) for v in cells):
            continue
        fields: dict[str, Any] = {}
        for column in COLUMNS:
            idx = positions[column.header]
            raw = cells[idx] if idx < len(cells) else None
            fields[column.field] = coerce_cell(raw, column.kind)
        rows.append(ParsedRow(row_number=row_number, fields=fields))

    if not rows:
        raise FormatError(_NO_DATA_MESSAGE)

    return ParsedSheet(rows=rows, ignored_headers=ignored)


def _decode_text(data: bytes) -> str:
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    msg = "Cannot detect file encoding"
    raise FormatError(msg)


def detect_delimiter(first_line: str) -> str:
    """Pick the most frequent of comma, tab and semicolon in the header line.

    Raises:
        FormatError: If none of them occurs.
    """
    counts = {",": first_line.count(","), "\t": first_line.count("\t"), ";": first_line.count(";")}
    delimiter = max(counts, key=counts.get)  # type: ignore[arg-type]
    if counts[delimiter] == 0:
        msg = "Cannot detect delimiter in header row"
        raise FormatError(msg)
    return delimiter


def _read_excel_grid(data: bytes) -> list[list[Any]]:
    try:
        frame = pd.read_excel(
            io.BytesIO(data),
            sheet_name=0,
            header=None,
            dtype=object,
            engine="openpyxl",
            keep_default_na=False,
            na_values=[],
        )
    except Exception as exc:  # openpyxl/zipfile raise a variety of types for corrupt files
        msg = f"Unreadable spreadsheet: {exc}"
        raise FormatError(msg) from exc
    return frame.values.tolist()


def _read_csv_grid(data: bytes) -> list[list[Any]]:
    text = _decode_text(data)
    if not text.strip():
        raise FormatError(_NO_DATA_MESSAGE)
    header_line = text.splitlines()[0]
    delimiter = detect_delimiter(header_line)
    width = len(header_line.split(delimiter))

    def truncate(bad_line: list[str]) -> list[str]:
        # Rows wider than the header keep their first ``width`` cells
        logger.warning(f"CSV row with {len(bad_line)} fields truncated to the {width} header columns")
        return bad_line[:width]

    try:
        frame = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            engine="python",
            on_bad_lines=truncate,
        )
    except (pd.errors.ParserError, ValueError) as exc:
        msg = f"Unreadable CSV file: {exc}"
        raise FormatError(msg) from exc
    return frame.values.tolist()


def parse_workbook(data: bytes) -> ParsedSheet:
    """Parse an uploaded spreadsheet.

    Args:
        data: Raw upload bytes (``.xlsx`` or CSV).

    Returns:
        The parsed sheet.

    Raises:
        FormatError: On unreadable input, missing headers, or no data rows.
    """
    if not data:
        raise FormatError(_NO_DATA_MESSAGE)
    if data.startswith(_XLS_SIGNATURE):
        msg = "Legacy .xls workbooks are not supported; save the file as .xlsx"
        raise FormatError(msg)

    if data.startswith(_XLSX_SIGNATURE):
        grid = _read_excel_grid(data)
        source = "xlsx"
    else:
        grid = _read_csv_grid(data)
        source = "csv"

    sheet = rows_from_grid(grid)
    logger.info(f"Parsed {len(sheet.rows)} data rows from {source} upload ({len(sheet.ignored_headers)} extra columns)")
    return sheet
