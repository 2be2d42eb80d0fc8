"""Error types raised by the intake library."""

import uuid


class FormatError(ValueError):
    """Structural spreadsheet problem: unreadable file, missing headers, or no data.

    Args:
        message: Human-readable description.
        missing_headers: Expected column names absent from the header row.
    """

    def __init__(self, message: str, missing_headers: list[str] | None = None) -> None:
        self.message = message
        self.missing_headers = missing_headers or []
        super().__init__(message)


class DuplicateSubmissionError(ValueError):
    """A single-record create or edit collides with a stored record.

    Bulk ingestion reports duplicates as row outcomes instead of raising this.
    """

    def __init__(self, voter_id: str, phone_number: str, existing_id: uuid.UUID | None = None) -> None:
        self.voter_id = voter_id
        self.phone_number = phone_number
        self.existing_id = existing_id
        super().__init__(f"A voter with ID {voter_id} and phone {phone_number} already exists")
