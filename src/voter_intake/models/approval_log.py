"""ApprovalLog model: append-only audit trail of submission lifecycle actions."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from voter_intake.models.base import Base, UUIDMixin


class LogAction(enum.StrEnum):
    """Actions recorded in the approval log."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ApprovalLog(Base, UUIDMixin):
    """Immutable record of one successful lifecycle transition. Write-only (no updates or deletes)."""

    __tablename__ = "approval_logs"

    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("voter_submissions.id"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    performed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("action IN ('submitted', 'approved', 'rejected', 'cancelled')", name="action"),
        Index("ix_approval_logs_submission_id", "submission_id"),
        Index("ix_approval_logs_performed_by", "performed_by"),
    )
