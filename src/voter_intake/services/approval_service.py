"""Approval workflow service: lifecycle transitions and their audit trail.

A transition is a conditional ``UPDATE ... WHERE status = <source>`` plus one
approval log entry, committed together. When two callers race on the same
record only one update matches; the other gets a ``TransitionError`` and
writes nothing.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.core.permissions import Action, Actor
from voter_intake.lib.intake import validate_record
from voter_intake.lib.workflow import (
    TRANSITIONS,
    AuthorizationError,
    BatchNotFoundError,
    SubmissionInvalidError,
    SubmissionNotFoundError,
    Transition,
    TransitionAction,
    TransitionError,
    plan_transition,
)
from voter_intake.models.approval_log import ApprovalLog
from voter_intake.models.submission_batch import BatchStatus, SubmissionBatch
from voter_intake.models.voter_submission import VOTER_DATA_FIELDS, SubmissionStatus, VoterSubmission
from voter_intake.services.batch_service import refresh_batch_counts

_OWNER_ACTIONS = frozenset({TransitionAction.SUBMIT, TransitionAction.WITHDRAW})


async def get_live_submission(session: AsyncSession, record_id: uuid.UUID) -> VoterSubmission | None:
    """Return the record unless it does not exist or is soft-deleted."""
    result = await session.execute(
        select(VoterSubmission).where(VoterSubmission.id == record_id, VoterSubmission.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


def ensure_owner(record: VoterSubmission, actor: Actor) -> None:
    """Raise unless ``actor`` owns the record or manages users (admin).

    Raises:
        AuthorizationError: If the actor neither owns the record nor is an admin.
    """
    if record.submitted_by != actor.user_id and not actor.can(Action.MANAGE_USERS):
        msg = "Only the submitting user may change this record"
        raise AuthorizationError(msg)


def _transition_values(transition: Transition, actor: Actor, comments: str | None, now: datetime) -> dict[str, Any]:
    values: dict[str, Any] = {"status": transition.target, "updated_at": now}
    if transition.action is TransitionAction.SUBMIT:
        values["submitted_at"] = now
    elif transition.action is TransitionAction.WITHDRAW:
        values["submitted_at"] = None
    elif transition.action is TransitionAction.APPROVE:
        values.update(approved_by=actor.user_id, approved_at=now, rejection_reason=None)
    elif transition.action is TransitionAction.REJECT:
        values.update(approved_by=actor.user_id, approved_at=now, rejection_reason=comments or "")
    return values


async def apply_transition(
    session: AsyncSession,
    record: VoterSubmission,
    transition: Transition,
    actor: Actor,
    comments: str | None = None,
) -> None:
    """Apply a planned transition and stage its log entry without committing.

    Raises:
        TransitionError: If the record left the transition's source status
            since it was read.
    """
    now = datetime.now(UTC)
    result = await session.execute(
        update(VoterSubmission)
        .where(
            VoterSubmission.id == record.id,
            VoterSubmission.status == transition.source,
            VoterSubmission.deleted_at.is_(None),
        )
        .values(**_transition_values(transition, actor, comments, now))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        msg = f"Record {record.id} was changed by another request; it is no longer {transition.source}"
        raise TransitionError(msg)

    session.add(
        ApprovalLog(
            submission_id=record.id,
            action=transition.log_action,
            performed_by=actor.user_id,
            comments=comments,
            created_at=now,
        )
    )


def stored_record_errors(record: VoterSubmission) -> list[str]:
    """Validation messages for the data currently stored on ``record``."""
    fields = {name: getattr(record, name) for name in VOTER_DATA_FIELDS}
    return validate_record(fields).messages


async def transition(
    session: AsyncSession,
    record_id: uuid.UUID,
    action: str,
    actor: Actor,
    comments: str | None = None,
) -> VoterSubmission:
    """Move a record along the approval state machine.

    Args:
        session: The database session.
        record_id: The record to transition.
        action: One of submit, approve, reject, withdraw.
        actor: The authenticated caller.
        comments: Reviewer comment; stored as the rejection reason on reject.

    Returns:
        The updated record.

    Raises:
        SubmissionNotFoundError: If the record does not exist or was deleted.
        AuthorizationError: If the actor's role or ownership does not permit the action.
        TransitionError: If the record is not in the action's source status.
        SubmissionInvalidError: If a draft being submitted fails validation.
    """
    record = await get_live_submission(session, record_id)
    if record is None:
        raise SubmissionNotFoundError(record_id)

    if action in _OWNER_ACTIONS:
        ensure_owner(record, actor)
    planned = plan_transition(record.status, action, actor.role)

    if planned.action is TransitionAction.SUBMIT:
        errors = stored_record_errors(record)
        if errors:
            raise SubmissionInvalidError(errors)

    await apply_transition(session, record, planned, actor, comments)
    if record.batch_id is not None:
        await refresh_batch_counts(session, record.batch_id)
    await session.commit()
    await session.refresh(record)

    logger.info(f"User {actor.user_id} ({actor.role}) {planned.action.value} record {record_id} → {planned.target}")
    return record


async def get_history(session: AsyncSession, record_id: uuid.UUID) -> list[ApprovalLog]:
    """Return the record's approval log, oldest first."""
    result = await session.execute(
        select(ApprovalLog)
        .where(ApprovalLog.submission_id == record_id)
        .order_by(ApprovalLog.created_at, ApprovalLog.id)
    )
    return list(result.scalars().all())


async def submit_batch(
    session: AsyncSession, batch_id: uuid.UUID, actor: Actor
) -> tuple[SubmissionBatch, int, int]:
    """Submit every valid draft record of a draft batch for review.

    Drafts that fail validation stay in draft and are counted as invalid.
    All submissions and the batch status change commit together.

    Args:
        session: The database session.
        batch_id: The batch to submit.
        actor: The authenticated caller; must own the batch (or be an admin).

    Returns:
        Tuple of (batch, submitted count, invalid count).

    Raises:
        BatchNotFoundError: If no such batch exists.
        AuthorizationError: If the actor may not submit or does not own the batch.
        TransitionError: If the batch is not a draft.
    """
    submit = TRANSITIONS[TransitionAction.SUBMIT]
    if not actor.can(submit.capability):
        msg = f"Role '{actor.role}' may not submit records"
        raise AuthorizationError(msg)

    batch = await session.get(SubmissionBatch, batch_id)
    if batch is None:
        raise BatchNotFoundError(batch_id)
    if batch.submitted_by != actor.user_id and not actor.can(Action.MANAGE_USERS):
        msg = "Only the uploading user may submit this batch"
        raise AuthorizationError(msg)
    if batch.status != BatchStatus.DRAFT:
        msg = f"Batch is not in draft (current status: {batch.status})"
        raise TransitionError(msg)

    result = await session.execute(
        select(VoterSubmission)
        .where(
            VoterSubmission.batch_id == batch_id,
            VoterSubmission.status == SubmissionStatus.DRAFT,
            VoterSubmission.deleted_at.is_(None),
        )
        .order_by(VoterSubmission.created_at, VoterSubmission.id)
    )
    submitted = invalid = 0
    for record in result.scalars().all():
        if stored_record_errors(record):
            invalid += 1
            continue
        await apply_transition(session, record, submit, actor)
        submitted += 1

    batch.status = BatchStatus.SUBMITTED
    await refresh_batch_counts(session, batch_id)
    await session.commit()
    await session.refresh(batch)

    logger.info(f"User {actor.user_id} submitted batch {batch_id}: {submitted} records submitted, {invalid} invalid")
    return batch, submitted, invalid
