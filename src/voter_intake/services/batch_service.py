"""Submission batch service.

Batches are bookkeeping for bulk uploads. Their record counters are derived
from the submissions that reference them and are never incremented in place.
"""

import uuid

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.core.permissions import Action, Actor
from voter_intake.lib.workflow import AuthorizationError, BatchNotFoundError, TransitionError
from voter_intake.models.submission_batch import BatchStatus, SubmissionBatch
from voter_intake.models.voter_submission import SubmissionStatus, VoterSubmission

# Batches in these states follow their records' review progress
_REVIEW_TRACKING = frozenset({BatchStatus.SUBMITTED, BatchStatus.UNDER_REVIEW, BatchStatus.COMPLETED})


async def count_batch_records(session: AsyncSession, batch_id: uuid.UUID) -> dict[str, int]:
    """Return live record counts per status for a batch."""
    result = await session.execute(
        select(VoterSubmission.status, func.count(VoterSubmission.id))
        .where(VoterSubmission.batch_id == batch_id, VoterSubmission.deleted_at.is_(None))
        .group_by(VoterSubmission.status)
    )
    return {status: count for status, count in result.all()}


async def refresh_batch_counts(session: AsyncSession, batch_id: uuid.UUID) -> SubmissionBatch | None:
    """Recompute a batch's counters and review status from its records.

    Does not commit; callers fold this into their own transaction.

    Args:
        session: The database session.
        batch_id: The batch to refresh.

    Returns:
        The refreshed batch, or None if it no longer exists.
    """
    batch = await session.get(SubmissionBatch, batch_id)
    if batch is None:
        return None

    counts = await count_batch_records(session, batch_id)
    batch.total_records = sum(counts.values())
    batch.approved_records = counts.get(SubmissionStatus.APPROVED, 0)
    batch.rejected_records = counts.get(SubmissionStatus.REJECTED, 0)
    batch.pending_records = counts.get(SubmissionStatus.PENDING, 0)

    decided = batch.approved_records + batch.rejected_records
    if batch.status in _REVIEW_TRACKING and decided:
        batch.status = BatchStatus.COMPLETED if batch.pending_records == 0 else BatchStatus.UNDER_REVIEW

    await session.flush()
    return batch


def _ensure_visible(batch: SubmissionBatch, actor: Actor) -> None:
    if batch.submitted_by != actor.user_id and not actor.can(Action.VIEW_ALL):
        msg = "You may only view your own batches"
        raise AuthorizationError(msg)


def _ensure_owner(batch: SubmissionBatch, actor: Actor) -> None:
    if batch.submitted_by != actor.user_id and not actor.can(Action.MANAGE_USERS):
        msg = "Only the uploading user may change this batch"
        raise AuthorizationError(msg)


async def get_batch(session: AsyncSession, batch_id: uuid.UUID, actor: Actor) -> SubmissionBatch:
    """Load a batch the actor may see.

    Raises:
        BatchNotFoundError: If no such batch exists.
        AuthorizationError: If a submitter asks for someone else's batch.
    """
    batch = await session.get(SubmissionBatch, batch_id)
    if batch is None:
        raise BatchNotFoundError(batch_id)
    _ensure_visible(batch, actor)
    return batch


async def list_batches(
    session: AsyncSession,
    actor: Actor,
    *,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[SubmissionBatch], int]:
    """List batches, newest first. Submitters only see their own.

    Returns:
        Tuple of (batches, total count).
    """
    query = select(SubmissionBatch)
    count_query = select(func.count(SubmissionBatch.id))
    if not actor.can(Action.VIEW_ALL):
        query = query.where(SubmissionBatch.submitted_by == actor.user_id)
        count_query = count_query.where(SubmissionBatch.submitted_by == actor.user_id)
    if status:
        query = query.where(SubmissionBatch.status == status)
        count_query = count_query.where(SubmissionBatch.status == status)

    total = (await session.execute(count_query)).scalar_one()
    offset = (page - 1) * page_size
    result = await session.execute(
        query.order_by(SubmissionBatch.created_at.desc(), SubmissionBatch.id).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total


async def cancel_batch(session: AsyncSession, batch_id: uuid.UUID, actor: Actor) -> SubmissionBatch:
    """Mark a draft batch as cancelled. Its records are left untouched.

    Raises:
        BatchNotFoundError: If no such batch exists.
        AuthorizationError: If the actor does not own the batch.
        TransitionError: If the batch is no longer a draft.
    """
    batch = await session.get(SubmissionBatch, batch_id)
    if batch is None:
        raise BatchNotFoundError(batch_id)
    _ensure_owner(batch, actor)
    if batch.status != BatchStatus.DRAFT:
        msg = f"Only draft batches can be cancelled (current status: {batch.status})"
        raise TransitionError(msg)

    batch.status = BatchStatus.CANCELLED
    await session.commit()
    await session.refresh(batch)
    logger.info(f"User {actor.user_id} cancelled batch {batch_id}")
    return batch


async def delete_batch(session: AsyncSession, batch_id: uuid.UUID, actor: Actor) -> None:
    """Delete a batch. Its records survive with ``batch_id`` cleared.

    Raises:
        BatchNotFoundError: If no such batch exists.
        AuthorizationError: If the actor does not own the batch.
    """
    batch = await session.get(SubmissionBatch, batch_id)
    if batch is None:
        raise BatchNotFoundError(batch_id)
    _ensure_owner(batch, actor)

    detached = await session.execute(
        update(VoterSubmission)
        .where(VoterSubmission.batch_id == batch_id)
        .values(batch_id=None)
        .execution_options(synchronize_session=False)
    )
    await session.delete(batch)
    await session.commit()
    logger.info(f"User {actor.user_id} deleted batch {batch_id} ({detached.rowcount} records detached)")
