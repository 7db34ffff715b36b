"""
Shared fixtures: a fully wired service graph over a temporary SQLite file,
with in-memory transport/publisher fakes and a controllable clock.
"""

from __future__ import annotations

import itertools
from dataclasses import replace
from types import SimpleNamespace

import aiosqlite
import pytest
import pytest_asyncio

from ideahub.config import Settings
from ideahub.database import initialize_database
from ideahub.services.achievements_store import AchievementsStore
from ideahub.services.comments import CommentService
from ideahub.services.comments_store import CommentsStore
from ideahub.services.conversation import ConversationRouter
from ideahub.services.fanout import NotificationFanout
from ideahub.services.lifecycle import SubmissionLifecycle
from ideahub.services.rate_limits import RateLimiter
from ideahub.services.sequence import SequenceAllocator
from ideahub.services.sessions import SessionTable
from ideahub.services.stats import RuntimeStats
from ideahub.services.submissions_store import SubmissionsStore
from ideahub.services.users_store import UsersStore
from ideahub.testing.fakes import FakePublisher, FakeTransport

ADMIN_ID = 1
CHANNEL_ID = 99


class FakeClock:
    """Wall clock in seconds that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides) -> Settings:
    base = Settings(
        token="test-token",
        admin_ids=frozenset({ADMIN_ID}),
        channel_id=CHANNEL_ID,
        submission_cooldown_ms=0,
    )
    return replace(base, **overrides)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def make_harness(tmp_path, clock):
    counter = itertools.count()

    async def _make(failing=(), **overrides):
        settings = make_settings(sqlite_path=str(tmp_path / f"ideahub-{next(counter)}.sqlite3"), **overrides)
        path = settings.sqlite_path

        stats = RuntimeStats()
        transport = FakeTransport(failing)
        publisher = FakePublisher()

        users = UsersStore(path)
        submissions = SubmissionsStore(path)
        comments_store = CommentsStore(path, submissions)
        achievements = AchievementsStore(path)
        rate_limiter = RateLimiter(path, clock=clock)
        allocator = SequenceAllocator(
            path, submissions, max_retries=settings.allocator_max_retries, backoff_seconds=0.0
        )
        await initialize_database(
            path, [users, submissions, comments_store, achievements, rate_limiter, allocator]
        )

        fanout = NotificationFanout(transport, settings.admin_ids, stats)
        lifecycle = SubmissionLifecycle(
            settings,
            submissions=submissions,
            users=users,
            allocator=allocator,
            rate_limiter=rate_limiter,
            achievements=achievements,
            fanout=fanout,
            publisher=publisher,
            stats=stats,
        )
        comments = CommentService(
            settings,
            comments=comments_store,
            submissions=submissions,
            users=users,
            rate_limiter=rate_limiter,
            fanout=fanout,
            publisher=publisher,
            stats=stats,
        )
        sessions = SessionTable(ttl_seconds=settings.session_ttl_seconds, clock=clock)
        router = ConversationRouter(
            settings,
            sessions=sessions,
            lifecycle=lifecycle,
            comments=comments,
            users=users,
            fanout=fanout,
        )
        return SimpleNamespace(
            settings=settings,
            clock=clock,
            stats=stats,
            transport=transport,
            publisher=publisher,
            users=users,
            submissions=submissions,
            comments_store=comments_store,
            achievements=achievements,
            rate_limiter=rate_limiter,
            allocator=allocator,
            fanout=fanout,
            lifecycle=lifecycle,
            comments=comments,
            sessions=sessions,
            router=router,
        )

    return _make


@pytest_asyncio.fixture
async def harness(make_harness):
    return await make_harness()


async def seed_approved(path: str, submissions: SubmissionsStore, numbers) -> list[str]:
    """Insert already-approved rows directly, as an older deployment would have left them."""
    ids = []
    for n in numbers:
        sub = await submissions.create(500 + n, f"legacy idea {n}", [])
        async with aiosqlite.connect(path) as db:
            await db.execute(
                "UPDATE submissions SET status='approved', number=?, publish_ref=? WHERE submission_id=?",
                (n, f"legacy-{n}", sub.submission_id),
            )
            await db.commit()
        ids.append(sub.submission_id)
    return ids


async def approved_idea(h, author_id: int = 10, text: str = "Community garden on the roof", handle: str = "@writer"):
    sub = await h.lifecycle.submit(author_id, text, handle)
    return await h.lifecycle.approve(sub.submission_id, ADMIN_ID)
