from __future__ import annotations

import asyncio

import pytest

from conftest import ADMIN_ID, seed_approved
from ideahub.errors import AllocationFailed, NotFound
from ideahub.models import SubmissionStatus
from ideahub.services import sequence


@pytest.mark.asyncio
async def test_concurrent_approvals_get_distinct_gap_free_numbers(harness) -> None:
    subs = [await harness.lifecycle.submit(100 + i, f"Idea number {i} for the town", None) for i in range(10)]

    approved = await asyncio.gather(*(harness.lifecycle.approve(s.submission_id, ADMIN_ID) for s in subs))

    assert sorted(a.number for a in approved) == list(range(1, 11))
    assert await harness.allocator.current() == 10


@pytest.mark.asyncio
async def test_allocation_continues_from_existing_approved_numbers(harness) -> None:
    await seed_approved(harness.settings.sqlite_path, harness.submissions, [5, 6, 7])
    assert await harness.allocator.current() == 0  # no counter row yet

    sub = await harness.lifecycle.submit(10, "I love pizza #food", "@alice")
    approved = await harness.lifecycle.approve(sub.submission_id, ADMIN_ID)

    assert approved.number == 8
    assert await harness.allocator.current() == 8


@pytest.mark.asyncio
async def test_reject_never_consumes_a_number(harness) -> None:
    a = await harness.lifecycle.submit(10, "First idea worth reading", None)
    b = await harness.lifecycle.submit(11, "Second idea worth reading", None)

    rejected = await harness.lifecycle.reject(a.submission_id, ADMIN_ID, "Duplicate")
    assert rejected.status is SubmissionStatus.REJECTED
    assert rejected.number is None
    assert await harness.allocator.current() == 0

    approved = await harness.lifecycle.approve(b.submission_id, ADMIN_ID)
    assert approved.number == 1


@pytest.mark.asyncio
async def test_second_approval_is_not_found_and_allocates_nothing(harness) -> None:
    sub = await harness.lifecycle.submit(10, "Approve me exactly once", None)
    first = await harness.lifecycle.approve(sub.submission_id, ADMIN_ID)

    with pytest.raises(NotFound):
        await harness.lifecycle.approve(sub.submission_id, ADMIN_ID)

    assert first.number == 1
    assert await harness.allocator.current() == 1


@pytest.mark.asyncio
async def test_racing_approvals_of_one_submission(harness) -> None:
    sub = await harness.lifecycle.submit(10, "Two moderators click at once", None)

    results = await asyncio.gather(
        harness.lifecycle.approve(sub.submission_id, ADMIN_ID),
        harness.lifecycle.approve(sub.submission_id, ADMIN_ID),
        return_exceptions=True,
    )

    ok = [r for r in results if not isinstance(r, Exception)]
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(ok) == 1 and ok[0].number == 1
    assert len(errors) == 1 and isinstance(errors[0], NotFound)
    assert await harness.allocator.current() == 1


@pytest.mark.asyncio
async def test_approving_rejected_submission_is_refused(harness) -> None:
    sub = await harness.lifecycle.submit(10, "Rejected before approval", None)
    await harness.lifecycle.reject(sub.submission_id, ADMIN_ID, "Off topic")

    with pytest.raises(NotFound):
        await harness.lifecycle.approve(sub.submission_id, ADMIN_ID)
    assert await harness.allocator.current() == 0


@pytest.mark.asyncio
async def test_exhausted_retries_raise_and_leave_submission_pending(harness, monkeypatch) -> None:
    sub = await harness.lifecycle.submit(10, "Contended approval here", None)

    async def always_conflict(db):
        raise sequence._Conflict()

    monkeypatch.setattr(harness.allocator, "_advance", always_conflict)

    with pytest.raises(AllocationFailed):
        await harness.lifecycle.approve(sub.submission_id, ADMIN_ID)

    stored = await harness.submissions.get(sub.submission_id)
    assert stored.status is SubmissionStatus.PENDING
    assert stored.number is None


@pytest.mark.asyncio
async def test_allocate_next_is_monotonic(harness) -> None:
    numbers = await asyncio.gather(*(harness.allocator.allocate_next() for _ in range(5)))
    assert sorted(numbers) == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_interleaved_rejects_and_approvals_number_only_approvals(harness) -> None:
    subs = [await harness.lifecycle.submit(300 + i, f"Interleaved idea {i} here", None) for i in range(12)]
    to_approve, to_reject = subs[::2], subs[1::2]

    results = await asyncio.gather(
        *(harness.lifecycle.approve(s.submission_id, ADMIN_ID) for s in to_approve),
        *(harness.lifecycle.reject(s.submission_id, ADMIN_ID, "Not this time") for s in to_reject),
    )

    approved = results[: len(to_approve)]
    rejected = results[len(to_approve):]
    assert sorted(a.number for a in approved) == list(range(1, len(to_approve) + 1))
    assert all(r.number is None for r in rejected)
    assert await harness.allocator.current() == len(to_approve)
