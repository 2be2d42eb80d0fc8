"""Initial schema: users, submission batches, voter submissions, approval logs.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_LIVE_ROWS = sa.text("deleted_at IS NULL")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="submitter"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('submitter', 'approver', 'admin')", name="ck_users_role"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "submission_batches",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("batch_name", sa.String(255), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("total_records", sa.Integer, nullable=False, server_default="0"),
        sa.Column("approved_records", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rejected_records", sa.Integer, nullable=False, server_default="0"),
        sa.Column("pending_records", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("submitted_by", sa.Uuid, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'submitted', 'under_review', 'completed', 'cancelled')",
            name="ck_submission_batches_status",
        ),
    )
    op.create_index("ix_submission_batches_submitted_by", "submission_batches", ["submitted_by"])
    op.create_index("ix_submission_batches_status", "submission_batches", ["status"])

    op.create_table(
        "voter_submissions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("voter_id", sa.String(50), nullable=True),
        sa.Column("phone_number", sa.String(10), nullable=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("surname", sa.String(200), nullable=True),
        sa.Column("father_husband_name", sa.String(200), nullable=True),
        sa.Column("gender", sa.String(10), nullable=True),
        sa.Column("age", sa.Integer, nullable=True),
        sa.Column("qualification", sa.String(200), nullable=True),
        sa.Column("caste", sa.String(100), nullable=True),
        sa.Column("sub_caste", sa.String(100), nullable=True),
        sa.Column("parliamentary_constituency", sa.String(200), nullable=True),
        sa.Column("assembly_constituency", sa.String(200), nullable=True),
        sa.Column("mandal_ward_division", sa.String(200), nullable=True),
        sa.Column("panchayat_name", sa.String(200), nullable=True),
        sa.Column("village_name", sa.String(200), nullable=True),
        sa.Column("booth", sa.String(100), nullable=True),
        sa.Column("batch_id", sa.Uuid, sa.ForeignKey("submission_batches.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("submitted_by", sa.Uuid, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("approved_by", sa.Uuid, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('draft', 'pending', 'approved', 'rejected')", name="ck_voter_submissions_status"
        ),
        sa.CheckConstraint(
            "gender IS NULL OR gender IN ('Male', 'Female', 'Other')", name="ck_voter_submissions_gender"
        ),
        sa.CheckConstraint("age IS NULL OR (age >= 18 AND age <= 120)", name="ck_voter_submissions_age"),
    )
    # Identity key is unique among live (not soft-deleted) records only
    op.create_index(
        "uq_voter_submissions_voter_phone",
        "voter_submissions",
        ["voter_id", "phone_number"],
        unique=True,
        postgresql_where=_LIVE_ROWS,
        sqlite_where=_LIVE_ROWS,
    )
    op.create_index("ix_voter_submissions_status", "voter_submissions", ["status"])
    op.create_index("ix_voter_submissions_submitted_by", "voter_submissions", ["submitted_by"])
    op.create_index("ix_voter_submissions_batch_id", "voter_submissions", ["batch_id"])

    op.create_table(
        "approval_logs",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("submission_id", sa.Uuid, sa.ForeignKey("voter_submissions.id"), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("performed_by", sa.Uuid, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("comments", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "action IN ('submitted', 'approved', 'rejected', 'cancelled')", name="ck_approval_logs_action"
        ),
    )
    op.create_index("ix_approval_logs_submission_id", "approval_logs", ["submission_id"])
    op.create_index("ix_approval_logs_performed_by", "approval_logs", ["performed_by"])


def downgrade() -> None:
    op.drop_table("approval_logs")
    op.drop_table("voter_submissions")
    op.drop_table("submission_batches")
    op.drop_table("users")
