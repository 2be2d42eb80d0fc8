"""Upload template definition: the fixed header row and its field mapping.

``COLUMNS`` is the single ordered table mapping spreadsheet headers to record
fields and their coercion kind. ``EXPECTED_HEADERS`` is the header row users
must provide; the two are checked against each other at import time.
"""

import io
from dataclasses import dataclass
from enum import StrEnum

import pandas as pd

TEMPLATE_SHEET_NAME = "Voter Template"


class ColumnKind(StrEnum):
    """How a cell value is coerced while parsing."""

    TEXT = "text"
    INTEGER = "integer"
    PHONE = "phone"


@dataclass(frozen=True)
class ColumnSpec:
    """One template column.

    Attributes:
        header: Exact header text in row 1 of the sheet.
        field: Record field the column populates.
        kind: Coercion applied to the cell value.
        max_length: Longest accepted value, matching the storage column width.
    """

    header: str
    field: str
    kind: ColumnKind = ColumnKind.TEXT
    max_length: int | None = None


EXPECTED_HEADERS: tuple[str, ...] = (
    "Surname",
    "Name",
    "Father/Husband Name",
    "Gender",
    "Age",
    "Qualification",
    "Caste",
    "Sub-Caste",
    "PC",
    "AC",
    "Mandal/Ward/Division",
    "Panchayat Name",
    "Village Name",
    "Booth",
    "VoterID",
    "PhoneNumber-10digit",
)

COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("Surname", "surname", max_length=200),
    ColumnSpec("Name", "name", max_length=200),
    ColumnSpec("Father/Husband Name", "father_husband_name", max_length=200),
    ColumnSpec("Gender", "gender", max_length=10),
    ColumnSpec("Age", "age", ColumnKind.INTEGER),
    ColumnSpec("Qualification", "qualification", max_length=200),
    ColumnSpec("Caste", "caste", max_length=100),
    ColumnSpec("Sub-Caste", "sub_caste", max_length=100),
    ColumnSpec("PC", "parliamentary_constituency", max_length=200),
    ColumnSpec("AC", "assembly_constituency", max_length=200),
    ColumnSpec("Mandal/Ward/Division", "mandal_ward_division", max_length=200),
    ColumnSpec("Panchayat Name", "panchayat_name", max_length=200),
    ColumnSpec("Village Name", "village_name", max_length=200),
    ColumnSpec("Booth", "booth", max_length=100),
    ColumnSpec("VoterID", "voter_id", max_length=50),
    ColumnSpec("PhoneNumber-10digit", "phone_number", ColumnKind.PHONE, max_length=10),
)


def check_columns(columns: tuple[ColumnSpec, ...], expected_headers: tuple[str, ...]) -> None:
    """Raise RuntimeError if the mapping table drifts from the published header row."""
    if tuple(c.header for c in columns) != expected_headers:
        msg = "COLUMNS does not match EXPECTED_HEADERS"
        raise RuntimeError(msg)
    if len({c.field for c in columns}) != len(columns):
        msg = "COLUMNS maps two headers to the same field"
        raise RuntimeError(msg)


check_columns(COLUMNS, EXPECTED_HEADERS)

FIELD_TO_HEADER: dict[str, str] = {c.field: c.header for c in COLUMNS}
FIELD_MAX_LENGTH: dict[str, int] = {c.field: c.max_length for c in COLUMNS if c.max_length is not None}


def build_template() -> bytes:
    """Build an empty upload template workbook.

    Returns:
        ``.xlsx`` bytes with the header row on a sheet named "Voter Template".
    """
    buffer = io.BytesIO()
    frame = pd.DataFrame(columns=list(EXPECTED_HEADERS))
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=TEMPLATE_SHEET_NAME, index=False)
    return buffer.getvalue()
