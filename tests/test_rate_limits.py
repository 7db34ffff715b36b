from __future__ import annotations

import pytest

from ideahub.constants import ACTION_COMMENT, ACTION_SUBMIT


@pytest.mark.asyncio
async def test_cooldown_counts_down_from_last_action(harness) -> None:
    limiter = harness.rate_limiter
    assert await limiter.cooldown_remaining_ms(7, ACTION_SUBMIT, 60_000) == 0

    await limiter.record(7, ACTION_SUBMIT, keep_ms=60_000)
    assert await limiter.cooldown_remaining_ms(7, ACTION_SUBMIT, 60_000) == 60_000

    harness.clock.advance(45)
    assert await limiter.cooldown_remaining_ms(7, ACTION_SUBMIT, 60_000) == 15_000

    harness.clock.advance(15)
    assert await limiter.cooldown_remaining_ms(7, ACTION_SUBMIT, 60_000) == 0


@pytest.mark.asyncio
async def test_sliding_window_blocks_fourth_and_frees_after_window(harness) -> None:
    limiter = harness.rate_limiter
    for _ in range(3):
        assert await limiter.window_retry_after_ms(7, ACTION_COMMENT, 3, 30_000) == 0
        await limiter.record(7, ACTION_COMMENT, keep_ms=30_000)
        harness.clock.advance(1)

    # Oldest of the three was 3s ago; it ages out 27s from now.
    assert await limiter.window_retry_after_ms(7, ACTION_COMMENT, 3, 30_000) == 27_000

    harness.clock.advance(27)
    assert await limiter.window_retry_after_ms(7, ACTION_COMMENT, 3, 30_000) == 0


@pytest.mark.asyncio
async def test_limits_are_per_user_and_per_action(harness) -> None:
    limiter = harness.rate_limiter
    await limiter.record(7, ACTION_SUBMIT)
    assert await limiter.cooldown_remaining_ms(8, ACTION_SUBMIT, 60_000) == 0
    assert await limiter.cooldown_remaining_ms(7, ACTION_COMMENT, 60_000) == 0


@pytest.mark.asyncio
async def test_record_evicts_expired_and_bounds_history(harness) -> None:
    limiter = harness.rate_limiter
    await limiter.record(7, ACTION_COMMENT, keep_ms=30_000)
    harness.clock.advance(31)
    await limiter.record(7, ACTION_COMMENT, keep_ms=30_000)
    assert len(await limiter.stamps(7, ACTION_COMMENT)) == 1

    for _ in range(30):
        await limiter.record(7, ACTION_SUBMIT)
    assert len(await limiter.stamps(7, ACTION_SUBMIT)) == harness.rate_limiter._history


@pytest.mark.asyncio
async def test_keep_count_widens_the_history_bound(harness) -> None:
    limiter = harness.rate_limiter
    for _ in range(30):
        await limiter.record(7, ACTION_COMMENT, keep_ms=60_000, keep_count=25)
    assert len(await limiter.stamps(7, ACTION_COMMENT)) == 25
    assert await limiter.window_retry_after_ms(7, ACTION_COMMENT, 25, 60_000) == 60_000
