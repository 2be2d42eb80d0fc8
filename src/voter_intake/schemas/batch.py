"""Submission batch Pydantic v2 response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from voter_intake.schemas.common import PaginationMeta


class BatchResponse(BaseModel):
    """Batch metadata and derived record counters."""

    id: UUID
    batch_name: str
    file_name: str | None = None
    total_records: int
    approved_records: int
    rejected_records: int
    pending_records: int
    status: str
    submitted_by: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaginatedBatchResponse(BaseModel):
    items: list[BatchResponse]
    pagination: PaginationMeta


class BatchSubmitResponse(BaseModel):
    """Outcome of submitting every draft of a batch."""

    batch: BatchResponse
    submitted: int
    invalid: int
