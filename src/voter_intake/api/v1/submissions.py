"""Voter submission API endpoints with the approval workflow."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.api.errors import DOMAIN_ERRORS, to_http_exception
from voter_intake.core.dependencies import get_async_session, get_current_actor, require_capability
from voter_intake.core.permissions import Action, Actor
from voter_intake.lib.workflow import SubmissionInvalidError
from voter_intake.models.voter_submission import VoterSubmission
from voter_intake.schemas.approval import ApprovalLogResponse, TransitionRequest
from voter_intake.schemas.common import PaginationMeta
from voter_intake.schemas.submission import (
    PaginatedSubmissionResponse,
    SubmissionCreateRequest,
    SubmissionResponse,
    SubmissionUpdateRequest,
)
from voter_intake.services import approval_service, submission_service

submissions_router = APIRouter(prefix="/submissions", tags=["submissions"])


@submissions_router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    body: SubmissionCreateRequest,
    actor: Annotated[Actor, Depends(require_capability(Action.CREATE))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VoterSubmission:
    """Add a single voter record as a draft or straight into review."""
    fields = body.model_dump(exclude={"mode"})
    try:
        return await submission_service.create_submission(session, fields, actor, mode=body.mode)
    except SubmissionInvalidError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e


@submissions_router.get("", response_model=PaginatedSubmissionResponse)
async def list_submissions(
    actor: Annotated[Actor, Depends(get_current_actor)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    submission_status: str | None = Query(None, alias="status", description="Filter by status"),
    batch_id: uuid.UUID | None = Query(None, description="Filter by batch"),
    search: str | None = Query(None, min_length=1, description="Name, surname, voter ID or phone"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedSubmissionResponse:
    """List records. Submitters see their own; reviewers see all."""
    records, total = await submission_service.list_submissions(
        session,
        actor,
        status=submission_status,
        batch_id=batch_id,
        search=search,
        page=page,
        page_size=page_size,
    )
    return PaginatedSubmissionResponse(
        items=[SubmissionResponse.model_validate(r) for r in records],
        pagination=PaginationMeta.build(total, page, page_size),
    )


@submissions_router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: uuid.UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VoterSubmission:
    try:
        return await submission_service.get_submission(session, submission_id, actor)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e


@submissions_router.patch("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: uuid.UUID,
    body: SubmissionUpdateRequest,
    actor: Annotated[Actor, Depends(require_capability(Action.CREATE))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VoterSubmission:
    """Edit a draft record (owner only)."""
    try:
        return await submission_service.update_draft(
            session, submission_id, body.model_dump(exclude_unset=True), actor
        )
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e


@submissions_router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
    submission_id: uuid.UUID,
    actor: Annotated[Actor, Depends(require_capability(Action.CREATE))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> None:
    """Soft-delete a draft record (owner only)."""
    try:
        await submission_service.delete_draft(session, submission_id, actor)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e


@submissions_router.post("/{submission_id}/transition", response_model=SubmissionResponse)
async def transition_submission(
    submission_id: uuid.UUID,
    body: TransitionRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VoterSubmission:
    """Submit, approve, reject or withdraw a record.

    Returns 403 when the caller's role or ownership does not allow the
    action and 409 when the record is not in the action's source status.
    """
    try:
        return await approval_service.transition(session, submission_id, body.action, actor, body.comments)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e


@submissions_router.get("/{submission_id}/history", response_model=list[ApprovalLogResponse])
async def submission_history(
    submission_id: uuid.UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> list[ApprovalLogResponse]:
    """Return the record's audit trail, oldest first."""
    try:
        await submission_service.get_submission(session, submission_id, actor)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    entries = await approval_service.get_history(session, submission_id)
    return [ApprovalLogResponse.model_validate(entry) for entry in entries]
