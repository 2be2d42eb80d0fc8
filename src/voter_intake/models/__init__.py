"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from voter_intake.models.approval_log import ApprovalLog, LogAction
from voter_intake.models.submission_batch import BatchStatus, SubmissionBatch
from voter_intake.models.user import User
from voter_intake.models.voter_submission import VOTER_DATA_FIELDS, SubmissionStatus, VoterSubmission

__all__ = [
    "VOTER_DATA_FIELDS",
    "ApprovalLog",
    "BatchStatus",
    "LogAction",
    "SubmissionBatch",
    "SubmissionStatus",
    "User",
    "VoterSubmission",
]
