"""Dashboard statistics schema."""

from pydantic import BaseModel, Field


class DashboardStats(BaseModel):
    """Record counts for the caller's dashboard.

    Submitters see counts for their own records; reviewers see all records.
    """

    total_submissions: int = 0
    draft: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total_batches: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
