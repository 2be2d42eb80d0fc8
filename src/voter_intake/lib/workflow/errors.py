"""Error types raised by the approval workflow."""

import uuid


class TransitionError(ValueError):
    """The requested action is not allowed from the record's current status."""


class SubmissionInvalidError(TransitionError):
    """A draft cannot be submitted because its stored data fails validation.

    Args:
        messages: The validation messages for the stored record.
    """

    def __init__(self, messages: list[str]) -> None:
        self.messages = messages
        super().__init__("Record is not valid for submission: " + "; ".join(messages))


class AuthorizationError(PermissionError):
    """The acting user lacks the capability for the requested operation."""


class SubmissionNotFoundError(LookupError):
    """No live record exists with the given id."""

    def __init__(self, record_id: uuid.UUID) -> None:
        self.record_id = record_id
        super().__init__(f"Submission {record_id} not found")


class BatchNotFoundError(LookupError):
    """No batch exists with the given id."""

    def __init__(self, batch_id: uuid.UUID) -> None:
        self.batch_id = batch_id
        super().__init__(f"Batch {batch_id} not found")
