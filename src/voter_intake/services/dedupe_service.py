"""Duplicate resolution on the ``(voter_id, phone_number)`` identity key.

The lookup here is advisory: it lets an upload report duplicates row by row
before anything is written. The partial unique index on
``voter_submissions`` remains the authority at commit time.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.core.database import dialect_insert
from voter_intake.lib.intake import ValidationResult
from voter_intake.models.voter_submission import VoterSubmission

# Keep IN lists well under driver parameter limits
_IN_CLAUSE_BATCH = 1000

IdentityKey = tuple[str, str]


@dataclass(frozen=True)
class DuplicateRef:
    """A candidate row that matches an existing record or an earlier row.

    Attributes:
        row_number: Sheet row of the duplicate candidate.
        voter_id: Identity key, voter id part.
        phone_number: Identity key, phone part.
        reason: ``existing`` for a stored match, ``in_batch`` for an earlier
            row of the same upload.
        existing_id: Id of the stored record (``existing`` only).
        duplicate_of_row: Row number of the earlier row (``in_batch`` only).
    """

    row_number: int | None
    voter_id: str
    phone_number: str
    reason: Literal["existing", "in_batch"]
    existing_id: uuid.UUID | None = None
    duplicate_of_row: int | None = None


@dataclass
class DuplicateResolution:
    unique: list[ValidationResult] = field(default_factory=list)
    duplicates: list[DuplicateRef] = field(default_factory=list)


def identity_key(record: dict) -> IdentityKey:
    return (record["voter_id"], record["phone_number"])


def has_identity_key(record: dict) -> bool:
    """True when both halves of the identity key survived normalization."""
    return bool(record["voter_id"]) and bool(record["phone_number"])


async def find_existing(session: AsyncSession, voter_id: str, phone_number: str) -> VoterSubmission | None:
    """Return the live record holding this identity key, or None."""
    result = await session.execute(
        select(VoterSubmission).where(
            VoterSubmission.voter_id == voter_id,
            VoterSubmission.phone_number == phone_number,
            VoterSubmission.deleted_at.is_(None),
        )
    )
    return result.scalar_one_or_none()


async def _load_existing_keys(session: AsyncSession, keys: set[IdentityKey]) -> dict[IdentityKey, uuid.UUID]:
    """Map each stored identity key among ``keys`` to its record id."""
    voter_ids = sorted({voter_id for voter_id, _ in keys})
    existing: dict[IdentityKey, uuid.UUID] = {}
    for i in range(0, len(voter_ids), _IN_CLAUSE_BATCH):
        batch = voter_ids[i : i + _IN_CLAUSE_BATCH]
        result = await session.execute(
            select(VoterSubmission.id, VoterSubmission.voter_id, VoterSubmission.phone_number).where(
                VoterSubmission.voter_id.in_(batch),
                VoterSubmission.deleted_at.is_(None),
            )
        )
        for row in result.all():
            key = (row.voter_id, row.phone_number)
            if key in keys:
                existing[key] = row.id
    return existing


async def resolve_duplicates(session: AsyncSession, candidates: Sequence[ValidationResult]) -> DuplicateResolution:
    """Split validated candidates into unique rows and duplicates.

    Args:
        session: The database session.
        candidates: Results whose records carry a complete identity key, in
            sheet order. Other validation errors do not matter here.

    Returns:
        The resolution. The first occurrence of a key within the upload is
        kept unless the key is already stored.
    """
    resolution = DuplicateResolution()
    if not candidates:
        return resolution

    keys = {identity_key(c.record) for c in candidates}
    existing = await _load_existing_keys(session, keys)

    first_seen: dict[IdentityKey, int | None] = {}
    for candidate in candidates:
        key = identity_key(candidate.record)
        if key in existing:
            resolution.duplicates.append(
                DuplicateRef(candidate.row_number, *key, reason="existing", existing_id=existing[key])
            )
        elif key in first_seen:
            resolution.duplicates.append(
                DuplicateRef(candidate.row_number, *key, reason="in_batch", duplicate_of_row=first_seen[key])
            )
        else:
            first_seen[key] = candidate.row_number
            resolution.unique.append(candidate)

    logger.info(
        f"Duplicate check: {len(candidates)} candidates, {len(resolution.unique)} unique, "
        f"{len(resolution.duplicates)} duplicates"
    )
    return resolution


async def insert_unique(session: AsyncSession, rows: list[dict[str, Any]]) -> set[uuid.UUID]:
    """Insert submission rows, skipping any whose identity key is already live.

    Rows must carry their own ``id``. Does not commit.

    Returns:
        Ids of the rows actually inserted; an id missing from the set marks a
        row that collided on ``(voter_id, phone_number)``.
    """
    stmt = dialect_insert(session)(VoterSubmission).values(rows)
    stmt = stmt.on_conflict_do_nothing(
        index_elements=["voter_id", "phone_number"],
        index_where=VoterSubmission.deleted_at.is_(None),
    ).returning(VoterSubmission.id)
    result = await session.execute(stmt)
    return set(result.scalars().all())
