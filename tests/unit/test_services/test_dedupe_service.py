"""Tests for duplicate resolution on the (voter_id, phone_number) key."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers import store_submission, voter_fields
from voter_intake.core.permissions import Actor
from voter_intake.lib.intake import validate_record
from voter_intake.models.voter_submission import VOTER_DATA_FIELDS, VoterSubmission
from voter_intake.services.dedupe_service import find_existing, insert_unique, resolve_duplicates


def _candidate(row_number: int, index: int, **overrides: object):  # type: ignore[no-untyped-def]
    return validate_record(voter_fields(index, **overrides), row_number=row_number)


def _row(owner: uuid.UUID, index: int, **overrides: object) -> dict:
    now = datetime.now(UTC)
    row = {name: value for name, value in voter_fields(index, **overrides).items() if name in VOTER_DATA_FIELDS}
    row.update(id=uuid.uuid4(), status="draft", submitted_by=owner, created_at=now, updated_at=now)
    return row


class TestResolveDuplicates:
    async def test_all_unique(self, async_session: AsyncSession, submitter: Actor) -> None:
        resolution = await resolve_duplicates(async_session, [_candidate(2, 1), _candidate(3, 2)])
        assert [c.row_number for c in resolution.unique] == [2, 3]
        assert resolution.duplicates == []

    async def test_empty_candidates(self, async_session: AsyncSession) -> None:
        resolution = await resolve_duplicates(async_session, [])
        assert resolution.unique == []
        assert resolution.duplicates == []

    async def test_existing_record(self, async_session: AsyncSession, submitter: Actor) -> None:
        stored = await store_submission(async_session, submitter.user_id, 1)

        resolution = await resolve_duplicates(async_session, [_candidate(2, 1), _candidate(3, 2)])

        assert [c.row_number for c in resolution.unique] == [3]
        (dup,) = resolution.duplicates
        assert dup.row_number == 2
        assert dup.reason == "existing"
        assert dup.existing_id == stored.id

    async def test_first_occurrence_in_upload_kept(self, async_session: AsyncSession) -> None:
        resolution = await resolve_duplicates(async_session, [_candidate(2, 1), _candidate(5, 1), _candidate(9, 1)])

        assert [c.row_number for c in resolution.unique] == [2]
        assert [(d.row_number, d.reason, d.duplicate_of_row) for d in resolution.duplicates] == [
            (5, "in_batch", 2),
            (9, "in_batch", 2),
        ]

    async def test_stored_key_wins_over_first_occurrence(self, async_session: AsyncSession, submitter: Actor) -> None:
        await store_submission(async_session, submitter.user_id, 1)
        resolution = await resolve_duplicates(async_session, [_candidate(2, 1), _candidate(3, 1)])
        assert resolution.unique == []
        assert {d.reason for d in resolution.duplicates} == {"existing"}

    async def test_key_needs_both_parts(self, async_session: AsyncSession, submitter: Actor) -> None:
        await store_submission(async_session, submitter.user_id, 1)
        same_voter = _candidate(2, 1, phone_number="9111111111")
        same_phone = _candidate(3, 2, phone_number="9800000001")
        resolution = await resolve_duplicates(async_session, [same_voter, same_phone])
        assert len(resolution.unique) == 2

    async def test_soft_deleted_record_ignored(self, async_session: AsyncSession, submitter: Actor) -> None:
        stored = await store_submission(async_session, submitter.user_id, 1)
        stored.deleted_at = datetime.now(UTC)
        await async_session.commit()

        resolution = await resolve_duplicates(async_session, [_candidate(2, 1)])
        assert len(resolution.unique) == 1


class TestFindExisting:
    async def test_found(self, async_session: AsyncSession, submitter: Actor) -> None:
        stored = await store_submission(async_session, submitter.user_id, 3)
        found = await find_existing(async_session, "ABC0000003", "9800000003")
        assert found is not None
        assert found.id == stored.id

    async def test_not_found(self, async_session: AsyncSession) -> None:
        assert await find_existing(async_session, "ABC0000003", "9800000003") is None


class TestInsertUnique:
    async def test_inserts_all(self, async_session: AsyncSession, submitter: Actor) -> None:
        rows = [_row(submitter.user_id, i) for i in range(3)]
        inserted = await insert_unique(async_session, rows)
        await async_session.commit()
        assert inserted == {row["id"] for row in rows}

    async def test_conflicting_row_skipped(self, async_session: AsyncSession, submitter: Actor) -> None:
        await store_submission(async_session, submitter.user_id, 1)
        rows = [_row(submitter.user_id, 1), _row(submitter.user_id, 2)]

        inserted = await insert_unique(async_session, rows)
        await async_session.commit()

        assert inserted == {rows[1]["id"]}
        total = await async_session.execute(select(func.count(VoterSubmission.id)))
        assert total.scalar_one() == 2

    async def test_soft_deleted_key_can_be_reused(self, async_session: AsyncSession, submitter: Actor) -> None:
        stored = await store_submission(async_session, submitter.user_id, 1)
        stored.deleted_at = datetime.now(UTC)
        await async_session.commit()

        row = _row(submitter.user_id, 1)
        assert await insert_unique(async_session, [row]) == {row["id"]}

    async def test_incomplete_keys_never_conflict(self, async_session: AsyncSession, submitter: Actor) -> None:
        rows = [_row(submitter.user_id, 1, phone_number=None), _row(submitter.user_id, 1, phone_number=None)]
        inserted = await insert_unique(async_session, rows)
        assert len(inserted) == 2
