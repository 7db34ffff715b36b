from __future__ import annotations

import pytest

from ideahub.services.fanout import NotificationFanout
from ideahub.services.stats import RuntimeStats
from ideahub.testing.fakes import FakeTransport


class ExplodingTransport(FakeTransport):
    async def send(self, recipient_id, text, controls=None):
        if recipient_id == 3:
            raise RuntimeError("socket closed")
        await super().send(recipient_id, text, controls)


@pytest.mark.asyncio
async def test_one_failing_recipient_does_not_stop_the_rest() -> None:
    transport = FakeTransport(failing={2})
    stats = RuntimeStats()
    fanout = NotificationFanout(transport, [1, 2, 3], stats)

    result = await fanout.notify_admins("new idea")

    assert result.delivered == [1, 3]
    assert set(result.failed) == {2}
    assert not result.ok and result.any_delivered
    assert stats.deliveries_ok == 2 and stats.deliveries_failed == 1


@pytest.mark.asyncio
async def test_unexpected_transport_errors_are_contained() -> None:
    transport = ExplodingTransport()
    fanout = NotificationFanout(transport, [1, 3, 4])

    result = await fanout.notify_admins("hello")

    assert result.delivered == [1, 4]
    assert "RuntimeError" in result.failed[3]


@pytest.mark.asyncio
async def test_duplicates_are_sent_once_and_exclusions_respected() -> None:
    transport = FakeTransport()
    fanout = NotificationFanout(transport, [1, 2])

    await fanout.notify([5, 5, 6], "x")
    assert [s.recipient_id for s in transport.sent] == [5, 6]

    result = await fanout.notify_admins("y", exclude=(1,))
    assert result.delivered == [2]


@pytest.mark.asyncio
async def test_notify_user_reports_delivery() -> None:
    fanout = NotificationFanout(FakeTransport(failing={9}), [])
    assert await fanout.notify_user(8, "hi") is True
    assert await fanout.notify_user(9, "hi") is False
