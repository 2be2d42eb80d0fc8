"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from voter_intake.api.middleware import RequestContextMiddleware, SecurityHeadersMiddleware, setup_cors
from voter_intake.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included."""
    from voter_intake.api.v1.auth import router as auth_router
    from voter_intake.api.v1.batches import batches_router
    from voter_intake.api.v1.dashboard import dashboard_router
    from voter_intake.api.v1.ingest import ingest_router
    from voter_intake.api.v1.submissions import submissions_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(auth_router)
    root_router.include_router(ingest_router)
    root_router.include_router(submissions_router)
    root_router.include_router(batches_router)
    root_router.include_router(dashboard_router)
    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    Middleware added last runs first, so the request context wraps everything.
    """
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
