"""VoterSubmission model: one voter registration entry and its review state."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from voter_intake.models.base import Base, SoftDeleteMixin, TimestampMixin, UUIDMixin


class SubmissionStatus(enum.StrEnum):
    """Record lifecycle status."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Voter data columns, in template order. Shared by the ingest and submission
# services when copying validated records onto the model.
VOTER_DATA_FIELDS: tuple[str, ...] = (
    "surname",
    "name",
    "father_husband_name",
    "gender",
    "age",
    "qualification",
    "caste",
    "sub_caste",
    "parliamentary_constituency",
    "assembly_constituency",
    "mandal_ward_division",
    "panchayat_name",
    "village_name",
    "booth",
    "voter_id",
    "phone_number",
)

_LIVE_ROWS = "deleted_at IS NULL"


class VoterSubmission(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """A voter record moving through draft → pending → approved/rejected.

    ``(voter_id, phone_number)`` is the identity key and is unique among
    rows that are not soft-deleted. ``voter_id``, ``phone_number`` and
    ``name`` are nullable so incomplete drafts can be stored; a record must
    validate cleanly before it can leave ``draft``.

    Attributes:
        batch_id: Weak back-reference to the originating upload batch.
        submitted_by: Owning submitter.
        approved_by: Reviewer who approved or rejected the record.
        approved_at: When the approval or rejection happened.
        rejection_reason: Reviewer comment on rejection (may be empty).
    """

    __tablename__ = "voter_submissions"

    # Identity
    voter_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Personal details
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    surname: Mapped[str | None] = mapped_column(String(200), nullable=True)
    father_husband_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    gender: Mapped[str | None] = mapped_column(String(10), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    qualification: Mapped[str | None] = mapped_column(String(200), nullable=True)
    caste: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sub_caste: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Electoral geography
    parliamentary_constituency: Mapped[str | None] = mapped_column(String(200), nullable=True)
    assembly_constituency: Mapped[str | None] = mapped_column(String(200), nullable=True)
    mandal_ward_division: Mapped[str | None] = mapped_column(String(200), nullable=True)
    panchayat_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    village_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    booth: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Lifecycle
    batch_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("submission_batches.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SubmissionStatus.DRAFT,
        server_default="draft",
    )
    submitted_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'pending', 'approved', 'rejected')", name="status"),
        CheckConstraint("gender IS NULL OR gender IN ('Male', 'Female', 'Other')", name="gender"),
        CheckConstraint("age IS NULL OR (age >= 18 AND age <= 120)", name="age"),
        Index(
            "uq_voter_submissions_voter_phone",
            "voter_id",
            "phone_number",
            unique=True,
            postgresql_where=text(_LIVE_ROWS),
            sqlite_where=text(_LIVE_ROWS),
        ),
        Index("ix_voter_submissions_status", "status"),
        Index("ix_voter_submissions_submitted_by", "submitted_by"),
        Index("ix_voter_submissions_batch_id", "batch_id"),
    )
