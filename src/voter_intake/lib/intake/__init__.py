"""Intake library public API.

Provides the upload template, spreadsheet parsing, and record validation.
"""

from voter_intake.lib.intake.errors import DuplicateSubmissionError, FormatError
from voter_intake.lib.intake.parser import ParsedRow, ParsedSheet, parse_workbook
from voter_intake.lib.intake.template import COLUMNS, EXPECTED_HEADERS, FIELD_TO_HEADER, build_template
from voter_intake.lib.intake.validator import ValidationIssue, ValidationResult, validate_record, validate_rows

__all__ = [
    "COLUMNS",
    "EXPECTED_HEADERS",
    "FIELD_TO_HEADER",
    "DuplicateSubmissionError",
    "FormatError",
    "ParsedRow",
    "ParsedSheet",
    "ValidationIssue",
    "ValidationResult",
    "build_template",
    "parse_workbook",
    "validate_record",
    "validate_rows",
]
