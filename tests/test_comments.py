from __future__ import annotations

import asyncio

import pytest

from conftest import ADMIN_ID, approved_idea
from ideahub.errors import NotFound, NotPermitted, RateLimited, ValidationError
from ideahub.events import ActionKind
from ideahub.models import Visibility


@pytest.mark.asyncio
async def test_public_comment_updates_counter_and_notifies_author(harness) -> None:
    idea = await approved_idea(harness, author_id=10)

    comment = await harness.comments.add_comment(idea.submission_id, 20, "Great idea!", handle="@bob")

    assert comment.visibility is Visibility.PUBLIC
    stored = await harness.submissions.get(idea.submission_id)
    assert stored.comment_count == 1

    ref, controls = harness.publisher.updates[-1]
    assert ref == idea.publish_ref
    assert controls[0][0].label == "💬 Comments (1)"

    notice = harness.transport.to(10)[-1]
    assert "Great idea!" in notice.text
    assert "@bob" not in notice.text

    oversight = harness.transport.to(ADMIN_ID)[-1]
    assert "@bob" in oversight.text and "PUBLIC COMMENT" in oversight.text

    listed = await harness.comments.list_public(idea.submission_id)
    assert [c.comment_id for c in listed] == [comment.comment_id]


@pytest.mark.asyncio
async def test_author_commenting_on_own_idea_is_not_notified(harness) -> None:
    idea = await approved_idea(harness, author_id=10)
    before = len(harness.transport.to(10))
    await harness.comments.add_comment(idea.submission_id, 10, "Thanks all")
    assert len(harness.transport.to(10)) == before


@pytest.mark.asyncio
async def test_concurrent_comments_are_all_counted(harness) -> None:
    idea = await approved_idea(harness, author_id=10)

    await asyncio.gather(
        *(harness.comments.add_comment(idea.submission_id, 200 + i, f"Comment {i}") for i in range(8))
    )

    stored = await harness.submissions.get(idea.submission_id)
    assert stored.comment_count == 8
    labels = sorted(controls[0][0].label for _, controls in harness.publisher.updates)
    assert labels == sorted(f"💬 Comments ({n})" for n in range(1, 9))


@pytest.mark.asyncio
async def test_comment_counter_survives_failed_refresh(harness) -> None:
    idea = await approved_idea(harness, author_id=10)
    harness.publisher.fail_updates = True

    await harness.comments.add_comment(idea.submission_id, 20, "Still counted")
    assert (await harness.submissions.get(idea.submission_id)).comment_count == 1


@pytest.mark.asyncio
async def test_comments_need_a_published_idea(harness) -> None:
    pending = await harness.lifecycle.submit(10, "Still waiting for review", None)
    with pytest.raises(NotFound):
        await harness.comments.add_comment(pending.submission_id, 20, "Too early")
    with pytest.raises(NotFound):
        await harness.comments.add_comment("idea_missing", 20, "Nothing here")


@pytest.mark.asyncio
async def test_comment_length_bounds(harness) -> None:
    idea = await approved_idea(harness, author_id=10)
    with pytest.raises(ValidationError):
        await harness.comments.add_comment(idea.submission_id, 20, "x")
    with pytest.raises(ValidationError):
        await harness.comments.add_comment(idea.submission_id, 20, "x" * 501)
    assert (await harness.submissions.get(idea.submission_id)).comment_count == 0


@pytest.mark.asyncio
async def test_comment_rate_limit_window(harness) -> None:
    idea = await approved_idea(harness, author_id=10)
    for i in range(3):
        await harness.comments.add_comment(idea.submission_id, 20, f"Comment {i}")

    with pytest.raises(RateLimited) as exc:
        await harness.comments.add_comment(idea.submission_id, 20, "One too many")
    assert exc.value.retry_after_ms == 30_000
    assert (await harness.submissions.get(idea.submission_id)).comment_count == 3

    harness.clock.advance(30)
    await harness.comments.add_comment(idea.submission_id, 20, "Allowed again")


@pytest.mark.asyncio
async def test_blocked_user_cannot_comment(harness) -> None:
    idea = await approved_idea(harness, author_id=10)
    await harness.users.ensure(20)
    await harness.users.set_active(20, False)
    with pytest.raises(NotPermitted):
        await harness.comments.add_comment(idea.submission_id, 20, "Let me in")


@pytest.mark.asyncio
async def test_private_message_and_anonymous_reply(harness) -> None:
    idea = await approved_idea(harness, author_id=10, handle="@writer")

    message = await harness.comments.add_comment(
        idea.submission_id, 20, "Can I help build this?", Visibility.PRIVATE, handle="@bob"
    )
    assert message.recipient_id == 10
    # Private messages never touch the public counter
    assert (await harness.submissions.get(idea.submission_id)).comment_count == 0
    assert harness.publisher.updates == []

    relay = harness.transport.to(10)[-1]
    assert "Can I help build this?" in relay.text
    assert "@bob" not in relay.text and "20" not in relay.text
    reply_button = relay.controls[0][0]
    assert reply_button.action.kind is ActionKind.REPLY_PRIVATE
    assert reply_button.action.entity_id == message.comment_id

    oversight = harness.transport.to(ADMIN_ID)[-1]
    assert "PRIVATE MESSAGE" in oversight.text and "@bob" in oversight.text and "@writer" in oversight.text

    reply = await harness.comments.add_comment(
        idea.submission_id, 10, "Yes please!", Visibility.PRIVATE, reply_to=message.comment_id
    )
    assert reply.recipient_id == 20
    assert reply.reply_to == message.comment_id
    answer = harness.transport.to(20)[-1]
    assert "Anonymous reply" in answer.text and "Yes please!" in answer.text
    assert "@writer" not in answer.text


@pytest.mark.asyncio
async def test_private_message_to_yourself_is_refused(harness) -> None:
    idea = await approved_idea(harness, author_id=10)
    with pytest.raises(ValidationError):
        await harness.comments.add_comment(idea.submission_id, 10, "Note to self", Visibility.PRIVATE)


@pytest.mark.asyncio
async def test_reply_to_unknown_message(harness) -> None:
    idea = await approved_idea(harness, author_id=10)
    with pytest.raises(NotFound):
        await harness.comments.add_comment(
            idea.submission_id, 10, "Hello there", Visibility.PRIVATE, reply_to="private_missing"
        )


@pytest.mark.asyncio
async def test_admin_oversight_can_be_switched_off(make_harness) -> None:
    h = await make_harness(notify_admins_on_activity=False)
    idea = await approved_idea(h, author_id=10)
    before = len(h.transport.to(ADMIN_ID))
    await h.comments.add_comment(idea.submission_id, 20, "Quiet comment")
    await h.comments.add_comment(idea.submission_id, 20, "Quiet message", Visibility.PRIVATE)
    assert len(h.transport.to(ADMIN_ID)) == before


@pytest.mark.asyncio
async def test_window_limit_above_default_history_is_enforced(make_harness) -> None:
    h = await make_harness(comment_rate_limit=25, comment_rate_window_ms=60_000)
    idea = await approved_idea(h, author_id=10)

    for i in range(25):
        await h.comments.add_comment(idea.submission_id, 77, f"Comment number {i}")

    with pytest.raises(RateLimited):
        await h.comments.add_comment(idea.submission_id, 77, "Comment number 25")
    assert (await h.submissions.get(idea.submission_id)).comment_count == 25
