"""Single-record submission service.

Covers the one-at-a-time entry path (create, edit and delete drafts), record
listing, and dashboard counts. Bulk uploads go through ``ingest_service``.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.core.permissions import Action, Actor
from voter_intake.lib.intake import DuplicateSubmissionError, validate_record
from voter_intake.lib.workflow import (
    AuthorizationError,
    SubmissionInvalidError,
    SubmissionNotFoundError,
    TransitionError,
)
from voter_intake.models.submission_batch import SubmissionBatch
from voter_intake.models.voter_submission import VOTER_DATA_FIELDS, SubmissionStatus, VoterSubmission
from voter_intake.schemas.dashboard import DashboardStats
from voter_intake.services.approval_service import ensure_owner, get_live_submission
from voter_intake.services.batch_service import refresh_batch_counts
from voter_intake.services.dedupe_service import find_existing, insert_unique


async def create_submission(
    session: AsyncSession,
    fields: dict[str, Any],
    actor: Actor,
    *,
    mode: str = "draft",
) -> VoterSubmission:
    """Create one voter record as a draft or directly as pending.

    Args:
        session: The database session.
        fields: Voter data fields (unvalidated).
        actor: The creating user; becomes the owner.
        mode: ``draft`` stores the record even when incomplete; ``submit``
            requires it to validate and stores it as pending.

    Returns:
        The created record.

    Raises:
        AuthorizationError: If the actor may not create (or submit) records.
        SubmissionInvalidError: If ``mode`` is submit and the data fails validation.
        DuplicateSubmissionError: If the identity key is already taken.
    """
    if not actor.can(Action.CREATE) or (mode == "submit" and not actor.can(Action.SUBMIT)):
        msg = f"Role '{actor.role}' may not create records"
        raise AuthorizationError(msg)

    result = validate_record(fields)
    if mode == "submit" and not result.is_valid:
        raise SubmissionInvalidError(result.messages)

    voter_id, phone = result.record["voter_id"], result.record["phone_number"]
    if voter_id and phone:
        existing = await find_existing(session, voter_id, phone)
        if existing is not None:
            raise DuplicateSubmissionError(voter_id, phone, existing.id)

    now = datetime.now(UTC)
    status = SubmissionStatus.PENDING if mode == "submit" else SubmissionStatus.DRAFT
    row = {name: result.record[name] for name in VOTER_DATA_FIELDS}
    row.update(
        id=uuid.uuid4(),
        status=status,
        submitted_by=actor.user_id,
        submitted_at=now if status == SubmissionStatus.PENDING else None,
        created_at=now,
        updated_at=now,
    )
    inserted = await insert_unique(session, [row])
    if row["id"] not in inserted:
        # Lost a race with another request between the check and the insert
        await session.rollback()
        raise DuplicateSubmissionError(voter_id or "", phone or "")
    await session.commit()

    record = await session.get(VoterSubmission, row["id"])
    if record is None:
        raise SubmissionNotFoundError(row["id"])
    logger.info(f"User {actor.user_id} created {status} record {record.id}")
    return record


async def get_submission(session: AsyncSession, record_id: uuid.UUID, actor: Actor) -> VoterSubmission:
    """Load a record the actor may see.

    Raises:
        SubmissionNotFoundError: If the record does not exist or was deleted.
        AuthorizationError: If a submitter asks for someone else's record.
    """
    record = await get_live_submission(session, record_id)
    if record is None:
        raise SubmissionNotFoundError(record_id)
    if record.submitted_by != actor.user_id and not actor.can(Action.VIEW_ALL):
        msg = "You may only view your own records"
        raise AuthorizationError(msg)
    return record


async def list_submissions(
    session: AsyncSession,
    actor: Actor,
    *,
    status: str | None = None,
    batch_id: uuid.UUID | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[VoterSubmission], int]:
    """List live records, newest first.

    Submitters only see their own records; reviewers see everything.

    Args:
        session: The database session.
        actor: The authenticated caller.
        status: Filter by lifecycle status.
        batch_id: Filter by originating batch.
        search: Case-insensitive partial match on name, surname, voter id or phone.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (records, total count).
    """
    conditions = [VoterSubmission.deleted_at.is_(None)]
    if not actor.can(Action.VIEW_ALL):
        conditions.append(VoterSubmission.submitted_by == actor.user_id)
    if status:
        conditions.append(VoterSubmission.status == status)
    if batch_id is not None:
        conditions.append(VoterSubmission.batch_id == batch_id)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(
                VoterSubmission.name.ilike(pattern),
                VoterSubmission.surname.ilike(pattern),
                VoterSubmission.voter_id.ilike(pattern),
                VoterSubmission.phone_number.ilike(pattern),
            )
        )

    total = (await session.execute(select(func.count(VoterSubmission.id)).where(*conditions))).scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(
        select(VoterSubmission)
        .where(*conditions)
        .order_by(VoterSubmission.created_at.desc(), VoterSubmission.id)
        .offset(offset)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def _load_own_draft(session: AsyncSession, record_id: uuid.UUID, actor: Actor) -> VoterSubmission:
    record = await get_live_submission(session, record_id)
    if record is None:
        raise SubmissionNotFoundError(record_id)
    ensure_owner(record, actor)
    if record.status != SubmissionStatus.DRAFT:
        msg = f"Only draft records can be changed (current status: {record.status})"
        raise TransitionError(msg)
    return record


async def update_draft(
    session: AsyncSession,
    record_id: uuid.UUID,
    updates: dict[str, Any],
    actor: Actor,
) -> VoterSubmission:
    """Edit the data of a draft record.

    The merged record is normalized by the validator; values that fail a
    rule are cleared, as for any draft.

    Raises:
        SubmissionNotFoundError: If the record does not exist or was deleted.
        AuthorizationError: If the actor does not own the record.
        TransitionError: If the record is no longer a draft.
        DuplicateSubmissionError: If the edit moves the record onto a taken identity key.
    """
    record = await _load_own_draft(session, record_id, actor)

    merged = {name: getattr(record, name) for name in VOTER_DATA_FIELDS}
    merged.update({k: v for k, v in updates.items() if k in VOTER_DATA_FIELDS})
    normalized = validate_record(merged).record

    voter_id, phone = normalized["voter_id"], normalized["phone_number"]
    if voter_id and phone:
        existing = await find_existing(session, voter_id, phone)
        if existing is not None and existing.id != record.id:
            raise DuplicateSubmissionError(voter_id, phone, existing.id)

    for name in VOTER_DATA_FIELDS:
        setattr(record, name, normalized[name])
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise DuplicateSubmissionError(voter_id or "", phone or "") from e
    await session.refresh(record)
    logger.info(f"User {actor.user_id} updated draft {record_id}")
    return record


async def delete_draft(session: AsyncSession, record_id: uuid.UUID, actor: Actor) -> None:
    """Soft-delete a draft record, freeing its identity key.

    Raises:
        SubmissionNotFoundError: If the record does not exist or was deleted.
        AuthorizationError: If the actor does not own the record.
        TransitionError: If the record is no longer a draft.
    """
    record = await _load_own_draft(session, record_id, actor)
    record.deleted_at = datetime.now(UTC)
    await session.flush()
    if record.batch_id is not None:
        await refresh_batch_counts(session, record.batch_id)
    await session.commit()
    logger.info(f"User {actor.user_id} deleted draft {record_id}")


async def get_dashboard_stats(session: AsyncSession, actor: Actor) -> DashboardStats:
    """Count records per status, and batches, visible to the actor."""
    record_query = select(VoterSubmission.status, func.count(VoterSubmission.id)).where(
        VoterSubmission.deleted_at.is_(None)
    )
    batch_query = select(func.count(SubmissionBatch.id))
    if not actor.can(Action.VIEW_ALL):
        record_query = record_query.where(VoterSubmission.submitted_by == actor.user_id)
        batch_query = batch_query.where(SubmissionBatch.submitted_by == actor.user_id)

    result = await session.execute(record_query.group_by(VoterSubmission.status))
    by_status = {status: count for status, count in result.all()}
    total_batches = (await session.execute(batch_query)).scalar_one()

    return DashboardStats(
        total_submissions=sum(by_status.values()),
        draft=by_status.get(SubmissionStatus.DRAFT, 0),
        pending=by_status.get(SubmissionStatus.PENDING, 0),
        approved=by_status.get(SubmissionStatus.APPROVED, 0),
        rejected=by_status.get(SubmissionStatus.REJECTED, 0),
        total_batches=total_batches,
        by_status=by_status,
    )
