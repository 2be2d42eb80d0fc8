"""Submission batch API endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.api.errors import DOMAIN_ERRORS, to_http_exception
from voter_intake.core.dependencies import get_async_session, get_current_actor, require_capability
from voter_intake.core.permissions import Action, Actor
from voter_intake.models.submission_batch import SubmissionBatch
from voter_intake.schemas.batch import BatchResponse, BatchSubmitResponse, PaginatedBatchResponse
from voter_intake.schemas.common import PaginationMeta
from voter_intake.services import approval_service, batch_service

batches_router = APIRouter(prefix="/batches", tags=["batches"])


@batches_router.get("", response_model=PaginatedBatchResponse)
async def list_batches(
    actor: Annotated[Actor, Depends(get_current_actor)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    batch_status: str | None = Query(None, alias="status", description="Filter by status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedBatchResponse:
    batches, total = await batch_service.list_batches(
        session, actor, status=batch_status, page=page, page_size=page_size
    )
    return PaginatedBatchResponse(
        items=[BatchResponse.model_validate(b) for b in batches],
        pagination=PaginationMeta.build(total, page, page_size),
    )


@batches_router.get("/{batch_id}", response_model=BatchResponse)
async def get_batch(
    batch_id: uuid.UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> SubmissionBatch:
    try:
        return await batch_service.get_batch(session, batch_id, actor)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e


@batches_router.post("/{batch_id}/submit", response_model=BatchSubmitResponse)
async def submit_batch(
    batch_id: uuid.UUID,
    actor: Annotated[Actor, Depends(require_capability(Action.SUBMIT))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> BatchSubmitResponse:
    """Submit every valid draft in a draft batch for review."""
    try:
        batch, submitted, invalid = await approval_service.submit_batch(session, batch_id, actor)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
    return BatchSubmitResponse(batch=BatchResponse.model_validate(batch), submitted=submitted, invalid=invalid)


@batches_router.post("/{batch_id}/cancel", response_model=BatchResponse)
async def cancel_batch(
    batch_id: uuid.UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> SubmissionBatch:
    try:
        return await batch_service.cancel_batch(session, batch_id, actor)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e


@batches_router.delete("/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_batch(
    batch_id: uuid.UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> None:
    """Delete a batch. Its records are kept and detached from it."""
    try:
        await batch_service.delete_batch(session, batch_id, actor)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e) from e
