"""Voter submission Pydantic v2 request/response schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from voter_intake.schemas.common import PaginationMeta


class VoterFields(BaseModel):
    """Voter data fields shared by create and update payloads.

    Values are validated by the intake validator, not here, so that a draft
    can be saved with incomplete data.
    """

    surname: str | None = Field(default=None, max_length=200)
    name: str | None = Field(default=None, max_length=200)
    father_husband_name: str | None = Field(default=None, max_length=200)
    gender: str | None = Field(default=None, max_length=10)
    age: int | str | None = None
    qualification: str | None = Field(default=None, max_length=200)
    caste: str | None = Field(default=None, max_length=100)
    sub_caste: str | None = Field(default=None, max_length=100)
    parliamentary_constituency: str | None = Field(default=None, max_length=200)
    assembly_constituency: str | None = Field(default=None, max_length=200)
    mandal_ward_division: str | None = Field(default=None, max_length=200)
    panchayat_name: str | None = Field(default=None, max_length=200)
    village_name: str | None = Field(default=None, max_length=200)
    booth: str | None = Field(default=None, max_length=100)
    voter_id: str | None = Field(default=None, max_length=50)
    phone_number: str | None = Field(default=None, max_length=20)


class SubmissionCreateRequest(VoterFields):
    """Create a single record, either as a draft or straight into review."""

    mode: Literal["draft", "submit"] = "draft"


class SubmissionUpdateRequest(VoterFields):
    """Edit a draft record. Only fields present in the payload are changed."""


class SubmissionResponse(BaseModel):
    """A stored voter record with its review state."""

    id: UUID
    surname: str | None = None
    name: str | None = None
    father_husband_name: str | None = None
    gender: str | None = None
    age: int | None = None
    qualification: str | None = None
    caste: str | None = None
    sub_caste: str | None = None
    parliamentary_constituency: str | None = None
    assembly_constituency: str | None = None
    mandal_ward_division: str | None = None
    panchayat_name: str | None = None
    village_name: str | None = None
    booth: str | None = None
    voter_id: str | None = None
    phone_number: str | None = None
    status: str
    batch_id: UUID | None = None
    submitted_by: UUID | None = None
    approved_by: UUID | None = None
    rejection_reason: str | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaginatedSubmissionResponse(BaseModel):
    items: list[SubmissionResponse]
    pagination: PaginationMeta
