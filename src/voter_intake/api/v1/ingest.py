"""Bulk ingestion API endpoints.

POST /ingest uploads a filled template, POST /ingest/preview reports what an
upload would do without storing it, and GET /ingest/template downloads the
empty template workbook.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.api.errors import to_http_exception
from voter_intake.core.config import Settings, get_settings
from voter_intake.core.dependencies import get_async_session, require_capability
from voter_intake.core.permissions import Action, Actor
from voter_intake.lib.intake import FormatError, build_template
from voter_intake.schemas.ingest import IngestPreview, IngestResult
from voter_intake.services import ingest_service

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
TEMPLATE_FILE_NAME = "voter_template.xlsx"

ingest_router = APIRouter(prefix="/ingest", tags=["ingest"])


async def read_upload(file: UploadFile, settings: Settings) -> bytes:
    """Read an upload, refusing it with 413 once it exceeds the size limit.

    The declared size is checked first; the read itself is bounded so an
    upload without a declared size cannot be buffered past the limit.
    """
    limit = settings.ingest_max_file_size_bytes
    too_large = HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"File exceeds maximum size of {settings.ingest_max_file_size_mb} MB",
    )
    if file.size is not None and file.size > limit:
        raise too_large
    content = await file.read(limit + 1)
    if len(content) > limit:
        raise too_large
    return content


@ingest_router.post("", response_model=IngestResult, status_code=status.HTTP_201_CREATED)
async def upload_spreadsheet(
    file: UploadFile,
    batch_name: Annotated[str, Form(min_length=1, max_length=255)],
    actor: Annotated[Actor, Depends(require_capability(Action.INGEST))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    mode: Annotated[Literal["draft", "submit"], Form()] = "submit",
) -> IngestResult:
    """Parse, validate, deduplicate and store an uploaded template.

    Row-level problems are reported in the result; only a structurally
    unusable file fails the request.
    """
    content = await read_upload(file, settings)
    try:
        return await ingest_service.ingest(
            session,
            file_bytes=content,
            batch_name=batch_name,
            file_name=file.filename,
            actor=actor,
            mode=mode,
            chunk_size=settings.ingest_chunk_size,
            chunk_timeout=settings.ingest_chunk_timeout_seconds,
        )
    except (FormatError, PermissionError) as e:
        raise to_http_exception(e) from e


@ingest_router.post("/preview", response_model=IngestPreview)
async def preview_spreadsheet(
    file: UploadFile,
    actor: Annotated[Actor, Depends(require_capability(Action.INGEST))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    mode: Annotated[Literal["draft", "submit"], Form()] = "submit",
) -> IngestPreview:
    """Validate and duplicate-check an upload without storing anything."""
    content = await read_upload(file, settings)
    try:
        return await ingest_service.preview(session, file_bytes=content, actor=actor, mode=mode)
    except (FormatError, PermissionError) as e:
        raise to_http_exception(e) from e


@ingest_router.get("/template")
async def download_template(
    _actor: Annotated[Actor, Depends(require_capability(Action.INGEST))],
) -> Response:
    """Download the empty upload template."""
    return Response(
        content=build_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILE_NAME}"'},
    )
