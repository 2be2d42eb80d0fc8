"""Dashboard statistics endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.core.dependencies import get_async_session, get_current_actor
from voter_intake.core.permissions import Actor
from voter_intake.schemas.dashboard import DashboardStats
from voter_intake.services import submission_service

dashboard_router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@dashboard_router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    actor: Annotated[Actor, Depends(get_current_actor)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> DashboardStats:
    """Record counts per status. Submitters see their own records only."""
    return await submission_service.get_dashboard_stats(session, actor)
