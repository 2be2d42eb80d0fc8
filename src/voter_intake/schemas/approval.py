"""Approval workflow Pydantic v2 schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class TransitionRequest(BaseModel):
    """Request a lifecycle action on a record."""

    action: str = Field(pattern="^(submit|approve|reject|withdraw)$")
    comments: str | None = Field(default=None, max_length=2000)


class ApprovalLogResponse(BaseModel):
    """One audit trail entry."""

    id: UUID
    submission_id: UUID
    action: str
    performed_by: UUID | None = None
    comments: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
