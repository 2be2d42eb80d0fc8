"""Ingest service: parse, validate, dedupe and persist an uploaded spreadsheet.

Rows are inserted in fixed-size chunks, strictly in sequence, each committed
on its own. The first failing chunk is rolled back in full and the remaining
chunks are skipped; rows committed by earlier chunks stay in place and the
run returns a ``partial`` result.

Each chunk is a single ``INSERT ... ON CONFLICT DO NOTHING RETURNING id``
against the partial unique index on ``(voter_id, phone_number)``. A record
created by a concurrent upload after the duplicate pre-check shows up as a
missing id in the returned set, which is reported as a commit-time
duplicate rather than recognized from a driver error code.
"""

import asyncio
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.core.permissions import Action, Actor
from voter_intake.lib.intake import ValidationResult, parse_workbook, validate_record
from voter_intake.lib.workflow import AuthorizationError
from voter_intake.models.submission_batch import BatchStatus, SubmissionBatch
from voter_intake.models.voter_submission import VOTER_DATA_FIELDS, SubmissionStatus
from voter_intake.schemas.ingest import (
    ChunkFailure,
    IngestPreview,
    IngestResult,
    RowOutcome,
    ValidationIssueResponse,
)
from voter_intake.services.batch_service import refresh_batch_counts
from voter_intake.services.dedupe_service import has_identity_key, insert_unique, resolve_duplicates

IngestMode = Literal["draft", "submit"]

DEFAULT_CHUNK_SIZE = 100


@dataclass(frozen=True)
class IngestProgress:
    """Progress after a chunk commit.

    Attributes:
        inserted: Rows committed so far.
        total: Rows scheduled for insertion.
        chunk_index: Zero-based index of the chunk just committed.
        chunk_count: Number of chunks in the run.
    """

    inserted: int
    total: int
    chunk_index: int
    chunk_count: int

    @property
    def percent(self) -> float:
        return 100.0 * self.inserted / self.total if self.total else 100.0


ProgressCallback = Callable[[IngestProgress], None]


def _prepare_row(
    result: ValidationResult,
    *,
    batch_id: uuid.UUID,
    actor: Actor,
    status: SubmissionStatus,
    now: datetime,
) -> dict[str, Any]:
    row = {name: result.record.get(name) for name in VOTER_DATA_FIELDS}
    row.update(
        id=uuid.uuid4(),
        batch_id=batch_id,
        status=status,
        submitted_by=actor.user_id,
        submitted_at=now if status == SubmissionStatus.PENDING else None,
        created_at=now,
        updated_at=now,
    )
    return row


def _outcome(result: ValidationResult, outcome: str, **extra: Any) -> RowOutcome:
    return RowOutcome(row_number=result.row_number, outcome=outcome, errors=result.messages, **extra)


def _chunks(items: Sequence[ValidationResult], size: int) -> list[Sequence[ValidationResult]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


@dataclass
class _Screening:
    """Parsed, validated and duplicate-checked rows of one upload."""

    results: list[ValidationResult]
    outcomes: dict[int, RowOutcome]
    issues: list[ValidationIssueResponse]
    to_insert: list[ValidationResult]
    total_errors: int
    total_duplicates: int


def _check_request(actor: Actor, mode: str) -> None:
    if not actor.can(Action.INGEST):
        msg = f"Role '{actor.role}' may not upload records"
        raise AuthorizationError(msg)
    if mode not in ("draft", "submit"):
        msg = f"Invalid ingest mode: {mode}"
        raise ValueError(msg)


async def _screen(session: AsyncSession, file_bytes: bytes, mode: IngestMode) -> _Screening:
    """Parse, validate and dedupe an upload. Reads the store, writes nothing."""
    sheet = parse_workbook(file_bytes)
    results = [validate_record(row.fields, row_number=row.row_number) for row in sheet.rows]
    outcomes: dict[int, RowOutcome] = {}
    issues = [
        ValidationIssueResponse(row_number=issue.row_number, field=issue.field, message=issue.message)
        for result in results
        for issue in result.errors
    ]

    if mode == "submit":
        proceeding = [r for r in results if r.is_valid]
        for r in results:
            if not r.is_valid:
                outcomes[r.row_number] = _outcome(r, "validation_error")
    else:
        proceeding = list(results)

    # Draft rows with other field errors still collide on the unique index
    resolution = await resolve_duplicates(session, [r for r in proceeding if has_identity_key(r.record)])
    for dup in resolution.duplicates:
        outcomes[dup.row_number] = RowOutcome(
            row_number=dup.row_number, outcome="duplicate", duplicate_reason=dup.reason
        )
    duplicate_rows = {dup.row_number for dup in resolution.duplicates}

    return _Screening(
        results=results,
        outcomes=outcomes,
        issues=issues,
        to_insert=[r for r in proceeding if r.row_number not in duplicate_rows],
        total_errors=sum(1 for r in results if not r.is_valid),
        total_duplicates=len(resolution.duplicates),
    )


async def preview(
    session: AsyncSession,
    *,
    file_bytes: bytes,
    actor: Actor,
    mode: IngestMode = "submit",
) -> IngestPreview:
    """Report what an ingest of ``file_bytes`` would do, without storing anything.

    Rows that would be inserted are reported as ``ready``.

    Raises:
        AuthorizationError: If the actor may not ingest.
        FormatError: If the file is structurally unusable.
        ValueError: If ``mode`` is invalid.
    """
    _check_request(actor, mode)
    screening = await _screen(session, file_bytes, mode)
    for r in screening.to_insert:
        screening.outcomes[r.row_number] = _outcome(r, "ready")

    logger.info(
        f"Preview ({mode}): {len(screening.results)} rows parsed, {screening.total_errors} with errors, "
        f"{screening.total_duplicates} duplicates, {len(screening.to_insert)} ready"
    )
    return IngestPreview(
        mode=mode,
        total_parsed=len(screening.results),
        total_errors=screening.total_errors,
        total_duplicates=screening.total_duplicates,
        total_ready=len(screening.to_insert),
        row_outcomes=[screening.outcomes[r.row_number] for r in screening.results],
        validation_issues=screening.issues,
    )


async def ingest(
    session: AsyncSession,
    *,
    file_bytes: bytes,
    batch_name: str,
    file_name: str | None,
    actor: Actor,
    mode: IngestMode = "submit",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_timeout: float | None = None,
    on_progress: ProgressCallback | None = None,
) -> IngestResult:
    """Ingest an uploaded spreadsheet.

    Args:
        session: Database session.
        file_bytes: Raw upload (``.xlsx`` or CSV).
        batch_name: Display name for the created batch.
        file_name: Original file name, stored on the batch.
        actor: The uploading user.
        mode: ``submit`` persists only error-free rows as ``pending``;
            ``draft`` persists every row as ``draft``.
        chunk_size: Rows per insert statement and commit.
        chunk_timeout: Seconds a chunk may take before it counts as failed.
        on_progress: Called after each chunk commit.

    Returns:
        The ingestion result with one outcome per parsed row.

    Raises:
        AuthorizationError: If the actor may not ingest.
        FormatError: If the file is structurally unusable. Nothing is persisted.
        ValueError: If ``mode`` or ``chunk_size`` is invalid.
    """
    _check_request(actor, mode)
    if chunk_size < 1:
        msg = "chunk_size must be positive"
        raise ValueError(msg)

    run_start = time.monotonic()
    screening = await _screen(session, file_bytes, mode)
    results, outcomes, to_insert = screening.results, screening.outcomes, screening.to_insert

    logger.info(
        f"Ingest '{batch_name}' ({mode}): {len(results)} rows parsed, {screening.total_errors} with errors, "
        f"{screening.total_duplicates} duplicates, {len(to_insert)} to insert"
    )

    batch_id: uuid.UUID | None = None
    failure: ChunkFailure | None = None
    committed = 0

    if to_insert:
        batch = SubmissionBatch(
            batch_name=batch_name,
            file_name=file_name,
            total_records=len(to_insert),
            pending_records=len(to_insert) if mode == "submit" else 0,
            status=BatchStatus.SUBMITTED if mode == "submit" else BatchStatus.DRAFT,
            submitted_by=actor.user_id,
        )
        session.add(batch)
        await session.commit()
        batch_id = batch.id

        status = SubmissionStatus.PENDING if mode == "submit" else SubmissionStatus.DRAFT
        now = datetime.now(UTC)
        chunks = _chunks(to_insert, chunk_size)

        for chunk_index, chunk in enumerate(chunks):
            if failure is not None:
                for r in chunk:
                    outcomes[r.row_number] = _outcome(r, "skipped")
                continue

            chunk_start = time.monotonic()
            rows = [_prepare_row(r, batch_id=batch_id, actor=actor, status=status, now=now) for r in chunk]
            try:
                inserted_ids = await asyncio.wait_for(insert_unique(session, rows), timeout=chunk_timeout)
                if len(inserted_ids) == len(rows):
                    await session.commit()
            except (SQLAlchemyError, TimeoutError) as e:
                await session.rollback()
                message = str(e) or f"Chunk exceeded {chunk_timeout}s timeout"
                failure = ChunkFailure(
                    kind="persist_error", chunk_index=chunk_index, committed_rows=committed, message=message
                )
                logger.error(f"Chunk {chunk_index + 1}/{len(chunks)} failed, rolled back: {message}")
                for r in chunk:
                    outcomes[r.row_number] = _outcome(r, "skipped")
                continue

            if len(inserted_ids) < len(rows):
                await session.rollback()
                conflicts = len(rows) - len(inserted_ids)
                failure = ChunkFailure(
                    kind="duplicate_at_commit",
                    chunk_index=chunk_index,
                    committed_rows=committed,
                    message=f"{conflicts} rows collided with records stored after the duplicate check",
                )
                logger.warning(f"Chunk {chunk_index + 1}/{len(chunks)} rolled back: {failure.message}")
                for r, row in zip(chunk, rows, strict=True):
                    if row["id"] in inserted_ids:
                        outcomes[r.row_number] = _outcome(r, "skipped")
                    else:
                        outcomes[r.row_number] = _outcome(r, "duplicate", duplicate_reason="commit_time")
                continue

            committed += len(rows)
            for r, row in zip(chunk, rows, strict=True):
                outcomes[r.row_number] = _outcome(r, "inserted", submission_id=row["id"])

            progress = IngestProgress(
                inserted=committed, total=len(to_insert), chunk_index=chunk_index, chunk_count=len(chunks)
            )
            logger.info(
                f"Chunk {chunk_index + 1}/{len(chunks)} committed: {len(rows)} rows "
                f"({time.monotonic() - chunk_start:.1f}s) | {committed}/{len(to_insert)} inserted"
            )
            if on_progress is not None:
                on_progress(progress)

        await refresh_batch_counts(session, batch_id)
        await session.commit()

    row_outcomes = [outcomes[r.row_number] for r in results]
    ingest_result = IngestResult(
        batch_id=batch_id,
        status="partial" if failure is not None else "completed",
        mode=mode,
        total_parsed=len(results),
        total_errors=screening.total_errors,
        total_duplicates=sum(1 for o in row_outcomes if o.outcome == "duplicate"),
        total_inserted=committed,
        total_skipped=sum(1 for o in row_outcomes if o.outcome == "skipped"),
        row_outcomes=row_outcomes,
        validation_issues=screening.issues,
        failure=failure,
    )
    logger.info(
        f"Ingest '{batch_name}' {ingest_result.status} in {time.monotonic() - run_start:.1f}s: "
        f"{ingest_result.total_inserted} inserted, {ingest_result.total_duplicates} duplicates, "
        f"{ingest_result.total_skipped} skipped"
    )
    return ingest_result
