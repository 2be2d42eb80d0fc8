"""Bulk ingestion result schemas.

``IngestResult`` accounts for every parsed row exactly once through
``row_outcomes``; the totals are derived from the same outcomes.
"""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

# "ready" appears only in previews: the row would be inserted
RowOutcomeKind = Literal["validation_error", "duplicate", "inserted", "skipped", "ready"]
DuplicateReason = Literal["existing", "in_batch", "commit_time"]


class RowOutcome(BaseModel):
    """What happened to one parsed row."""

    row_number: int
    outcome: RowOutcomeKind
    errors: list[str] = Field(default_factory=list)
    duplicate_reason: DuplicateReason | None = None
    submission_id: UUID | None = None


class ChunkFailure(BaseModel):
    """The chunk that stopped an ingestion run.

    ``committed_rows`` counts rows persisted by earlier chunks; the failed
    chunk itself was rolled back in full.
    """

    kind: Literal["duplicate_at_commit", "persist_error"]
    chunk_index: int
    committed_rows: int
    message: str


class ValidationIssueResponse(BaseModel):
    row_number: int | None
    field: str
    message: str


class IngestResult(BaseModel):
    """Summary of one bulk ingestion run."""

    batch_id: UUID | None = None
    status: Literal["completed", "partial"]
    mode: Literal["draft", "submit"]
    total_parsed: int
    total_errors: int
    total_duplicates: int
    total_inserted: int
    total_skipped: int
    row_outcomes: list[RowOutcome]
    validation_issues: list[ValidationIssueResponse] = Field(default_factory=list)
    failure: ChunkFailure | None = None


class IngestPreview(BaseModel):
    """What an ingest would do with an upload; nothing is stored."""

    mode: Literal["draft", "submit"]
    total_parsed: int
    total_errors: int
    total_duplicates: int
    total_ready: int
    row_outcomes: list[RowOutcome]
    validation_issues: list[ValidationIssueResponse] = Field(default_factory=list)
