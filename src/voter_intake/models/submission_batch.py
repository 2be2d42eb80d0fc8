"""SubmissionBatch model: records uploaded together from one spreadsheet."""

import enum
import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from voter_intake.models.base import Base, TimestampMixin, UUIDMixin


class BatchStatus(enum.StrEnum):
    """Batch lifecycle status."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SubmissionBatch(Base, UUIDMixin, TimestampMixin):
    """A group of voter submissions created by one bulk upload.

    The record counters are derived from the submissions that reference the
    batch and are recomputed by ``batch_service.refresh_batch_counts``.
    Records reference the batch weakly: deleting a batch leaves them in place
    with ``batch_id`` set to NULL.
    """

    __tablename__ = "submission_batches"

    batch_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    total_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    approved_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    rejected_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    pending_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BatchStatus.DRAFT,
        server_default="draft",
    )
    submitted_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'under_review', 'completed', 'cancelled')",
            name="status",
        ),
        Index("ix_submission_batches_submitted_by", "submitted_by"),
        Index("ix_submission_batches_status", "status"),
    )
