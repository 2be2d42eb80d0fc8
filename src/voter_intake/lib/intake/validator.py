"""Voter record validation rules.

Every rule is evaluated so a row reports all of its problems at once.
Validation is pure: it returns issues as data and never raises.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from voter_intake.lib.intake.template import FIELD_MAX_LENGTH, FIELD_TO_HEADER

VALID_GENDERS = ("Male", "Female", "Other")
MIN_AGE = 18
MAX_AGE = 120
PHONE_LENGTH = 10

RECORD_FIELDS: tuple[str, ...] = tuple(FIELD_TO_HEADER)

# Fields whose own rules already bound their length
_SELF_BOUNDED = frozenset({"phone_number", "gender", "age"})

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class ValidationIssue:
    """A single field-level problem.

    Attributes:
        row_number: Sheet row the issue belongs to (None for single records).
        field: Spreadsheet column name of the offending field.
        message: Human-readable description.
    """

    row_number: int | None
    field: str
    message: str


@dataclass
class ValidationResult:
    row_number: int | None
    record: dict[str, Any]
    errors: list[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def valid_record(self) -> dict[str, Any] | None:
        """The normalized record, or None when any rule failed."""
        return self.record if self.is_valid else None

    @property
    def messages(self) -> list[str]:
        return [issue.message for issue in self.errors]


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_age(value: Any) -> int | None:
    """Return the age as an int, or None when it is not a whole number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def validate_record(fields: dict[str, Any], row_number: int | None = None) -> ValidationResult:
    """Validate and normalize one voter record.

    Args:
        fields: Record field name → raw value (parser output or API payload).
        row_number: Sheet row number, carried onto every issue.

    Returns:
        The result with the normalized record. Values that fail a rule are
        set to None in ``record``.
    """
    record: dict[str, Any] = {name: _text(fields.get(name)) for name in RECORD_FIELDS}
    errors: list[ValidationIssue] = []

    def fail(field_name: str, message: str) -> None:
        errors.append(ValidationIssue(row_number, FIELD_TO_HEADER[field_name], message))

    if not record["voter_id"]:
        fail("voter_id", "Voter ID is required")

    phone = _NON_DIGITS.sub("", record["phone_number"] or "")
    if not phone:
        fail("phone_number", "Phone number is required")
        record["phone_number"] = None
    elif len(phone) != PHONE_LENGTH:
        fail("phone_number", "Phone number must be exactly 10 digits")
        record["phone_number"] = None
    else:
        record["phone_number"] = phone

    if not record["name"]:
        fail("name", "Name is required")

    if record["gender"] is not None and record["gender"] not in VALID_GENDERS:
        fail("gender", "Gender must be Male, Female, or Other")
        record["gender"] = None

    raw_age = fields.get("age")
    if _text(raw_age) is None:
        record["age"] = None
    else:
        age = _parse_age(raw_age)
        if age is None or not MIN_AGE <= age <= MAX_AGE:
            fail("age", "Age must be between 18 and 120")
            record["age"] = None
        else:
            record["age"] = age

    for name, limit in FIELD_MAX_LENGTH.items():
        value = record[name]
        if name in _SELF_BOUNDED or value is None or len(value) <= limit:
            continue
        fail(name, f"{FIELD_TO_HEADER[name]} must be at most {limit} characters")
        record[name] = None

    return ValidationResult(row_number=row_number, record=record, errors=errors)


def validate_rows(
    rows: Iterable[tuple[int, dict[str, Any]]],
) -> tuple[list[ValidationResult], list[ValidationResult]]:
    """Validate parsed rows.

    Args:
        rows: ``(row_number, fields)`` pairs.

    Returns:
        Tuple of (valid results, results with errors), each in input order.
    """
    valid: list[ValidationResult] = []
    invalid: list[ValidationResult] = []
    for row_number, row_fields in rows:
        result = validate_record(row_fields, row_number=row_number)
        (valid if result.is_valid else invalid).append(result)
    return valid, invalid
