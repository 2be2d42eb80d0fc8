"""Tests for single-record submission, listing and dashboard counts."""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers import store_batch, store_submission, voter_fields
from voter_intake.core.permissions import Actor
from voter_intake.lib.intake import DuplicateSubmissionError
from voter_intake.lib.workflow import (
    AuthorizationError,
    SubmissionInvalidError,
    SubmissionNotFoundError,
    TransitionError,
)
from voter_intake.models.voter_submission import VoterSubmission
from voter_intake.services.submission_service import (
    create_submission,
    delete_draft,
    get_dashboard_stats,
    get_submission,
    list_submissions,
    update_draft,
)


async def _total(session: AsyncSession) -> int:
    return (await session.execute(select(func.count(VoterSubmission.id)))).scalar_one()


class TestCreateSubmission:
    async def test_incomplete_draft(self, async_session: AsyncSession, submitter: Actor) -> None:
        record = await create_submission(async_session, {"name": " Lakshmi ", "age": "12"}, submitter)

        assert record.status == "draft"
        assert record.name == "Lakshmi"
        assert record.age is None
        assert record.submitted_by == submitter.user_id
        assert record.submitted_at is None

    async def test_submit_mode(self, async_session: AsyncSession, submitter: Actor) -> None:
        record = await create_submission(
            async_session, voter_fields(1, phone_number="98000-00001"), submitter, mode="submit"
        )
        assert record.status == "pending"
        assert record.phone_number == "9800000001"
        assert record.submitted_at is not None

    async def test_submit_mode_requires_valid_data(self, async_session: AsyncSession, submitter: Actor) -> None:
        with pytest.raises(SubmissionInvalidError) as exc_info:
            await create_submission(async_session, voter_fields(1, name=None), submitter, mode="submit")
        assert exc_info.value.messages == ["Name is required"]
        assert await _total(async_session) == 0

    async def test_duplicate_key(self, async_session: AsyncSession, submitter: Actor) -> None:
        stored = await store_submission(async_session, submitter.user_id, 1)

        with pytest.raises(DuplicateSubmissionError) as exc_info:
            await create_submission(async_session, voter_fields(1), submitter)

        assert exc_info.value.existing_id == stored.id
        assert await _total(async_session) == 1

    async def test_approver_may_not_create(self, async_session: AsyncSession, approver: Actor) -> None:
        with pytest.raises(AuthorizationError):
            await create_submission(async_session, voter_fields(1), approver)


class TestGetSubmission:
    async def test_visibility(
        self, async_session: AsyncSession, submitter: Actor, other_submitter: Actor, approver: Actor
    ) -> None:
        record = await store_submission(async_session, submitter.user_id)

        assert (await get_submission(async_session, record.id, submitter)).id == record.id
        assert (await get_submission(async_session, record.id, approver)).id == record.id
        with pytest.raises(AuthorizationError):
            await get_submission(async_session, record.id, other_submitter)

    async def test_unknown(self, async_session: AsyncSession, approver: Actor) -> None:
        with pytest.raises(SubmissionNotFoundError):
            await get_submission(async_session, uuid.uuid4(), approver)


class TestListSubmissions:
    async def test_submitter_sees_own(
        self, async_session: AsyncSession, submitter: Actor, other_submitter: Actor, approver: Actor
    ) -> None:
        mine = await store_submission(async_session, submitter.user_id, 1)
        await store_submission(async_session, other_submitter.user_id, 2)

        records, total = await list_submissions(async_session, submitter)
        assert total == 1
        assert [r.id for r in records] == [mine.id]

        _, total_all = await list_submissions(async_session, approver)
        assert total_all == 2

    async def test_filters(self, async_session: AsyncSession, submitter: Actor) -> None:
        batch = await store_batch(async_session, submitter.user_id)
        await store_submission(async_session, submitter.user_id, 1, status="pending", batch_id=batch.id)
        await store_submission(async_session, submitter.user_id, 2, surname="Naidu")
        await store_submission(async_session, submitter.user_id, 3, status="pending")

        _, pending = await list_submissions(async_session, submitter, status="pending")
        _, in_batch = await list_submissions(async_session, submitter, batch_id=batch.id)
        found, by_name = await list_submissions(async_session, submitter, search="naidu")
        _, by_phone = await list_submissions(async_session, submitter, search="9800000003")

        assert (pending, in_batch, by_name, by_phone) == (2, 1, 1, 1)
        assert found[0].surname == "Naidu"

    async def test_pagination(self, async_session: AsyncSession, submitter: Actor) -> None:
        for i in range(5):
            await store_submission(async_session, submitter.user_id, i)

        page_two, total = await list_submissions(async_session, submitter, page=2, page_size=2)
        assert total == 5
        assert len(page_two) == 2


class TestUpdateDraft:
    async def test_partial_update(self, async_session: AsyncSession, submitter: Actor) -> None:
        record = await store_submission(async_session, submitter.user_id, 1)

        updated = await update_draft(async_session, record.id, {"booth": " 7A ", "gender": "Other"}, submitter)

        assert updated.booth == "7A"
        assert updated.gender == "Other"
        assert updated.name == "Voter 1"

    async def test_invalid_value_cleared(self, async_session: AsyncSession, submitter: Actor) -> None:
        record = await store_submission(async_session, submitter.user_id, 1)
        updated = await update_draft(async_session, record.id, {"age": 200}, submitter)
        assert updated.age is None

    async def test_move_onto_taken_key(self, async_session: AsyncSession, submitter: Actor) -> None:
        await store_submission(async_session, submitter.user_id, 1)
        record = await store_submission(async_session, submitter.user_id, 2)

        with pytest.raises(DuplicateSubmissionError):
            await update_draft(
                async_session, record.id, {"voter_id": "ABC0000001", "phone_number": "9800000001"}, submitter
            )

    async def test_own_key_is_not_a_duplicate(self, async_session: AsyncSession, submitter: Actor) -> None:
        record = await store_submission(async_session, submitter.user_id, 1)
        updated = await update_draft(async_session, record.id, {"voter_id": "ABC0000001"}, submitter)
        assert updated.voter_id == "ABC0000001"

    async def test_pending_is_locked(self, async_session: AsyncSession, submitter: Actor) -> None:
        record = await store_submission(async_session, submitter.user_id, 1, status="pending")
        with pytest.raises(TransitionError, match="Only draft records"):
            await update_draft(async_session, record.id, {"booth": "9"}, submitter)

    async def test_other_owner_refused(
        self, async_session: AsyncSession, submitter: Actor, other_submitter: Actor
    ) -> None:
        record = await store_submission(async_session, submitter.user_id, 1)
        with pytest.raises(AuthorizationError):
            await update_draft(async_session, record.id, {"booth": "9"}, other_submitter)


class TestDeleteDraft:
    async def test_soft_delete_frees_key(self, async_session: AsyncSession, submitter: Actor) -> None:
        record = await store_submission(async_session, submitter.user_id, 1)

        await delete_draft(async_session, record.id, submitter)

        with pytest.raises(SubmissionNotFoundError):
            await get_submission(async_session, record.id, submitter)
        again = await create_submission(async_session, voter_fields(1), submitter)
        assert again.id != record.id

    async def test_batch_counts_refreshed(self, async_session: AsyncSession, submitter: Actor) -> None:
        batch = await store_batch(async_session, submitter.user_id)
        record = await store_submission(async_session, submitter.user_id, 1, batch_id=batch.id)
        await store_submission(async_session, submitter.user_id, 2, batch_id=batch.id)

        await delete_draft(async_session, record.id, submitter)

        await async_session.refresh(batch)
        assert batch.total_records == 1

    async def test_pending_cannot_be_deleted(self, async_session: AsyncSession, submitter: Actor) -> None:
        record = await store_submission(async_session, submitter.user_id, 1, status="pending")
        with pytest.raises(TransitionError):
            await delete_draft(async_session, record.id, submitter)


class TestDashboardStats:
    async def test_counts(
        self, async_session: AsyncSession, submitter: Actor, other_submitter: Actor, approver: Actor
    ) -> None:
        await store_batch(async_session, submitter.user_id)
        await store_submission(async_session, submitter.user_id, 1)
        await store_submission(async_session, submitter.user_id, 2, status="pending")
        await store_submission(async_session, submitter.user_id, 3, status="approved")
        await store_submission(async_session, other_submitter.user_id, 4, status="rejected")

        own = await get_dashboard_stats(async_session, submitter)
        everyone = await get_dashboard_stats(async_session, approver)

        assert (own.total_submissions, own.draft, own.pending, own.approved, own.rejected) == (3, 1, 1, 1, 0)
        assert own.total_batches == 1
        assert everyone.total_submissions == 4
        assert everyone.by_status["rejected"] == 1
