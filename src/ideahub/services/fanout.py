from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..errors import DeliveryFailed
from ..events import Controls
from ..interfaces import Transport
from .stats import RuntimeStats

log = logging.getLogger("ideahub.fanout")


@dataclass
class FanoutResult:
    delivered: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def any_delivered(self) -> bool:
        return bool(self.delivered)


class NotificationFanout:
    """Best-effort delivery to one or many recipients.

    Every recipient is attempted on its own; one unreachable user never stops
    delivery to the rest, and ``notify`` itself never raises. Callers inspect
    the returned :class:`FanoutResult` when they care who got the message.
    """

    def __init__(self, transport: Transport, admin_ids: Iterable[int], stats: Optional[RuntimeStats] = None) -> None:
        self._transport = transport
        self._admin_ids = tuple(sorted({int(a) for a in admin_ids}))
        self._stats = stats or RuntimeStats()

    @property
    def admin_ids(self) -> tuple[int, ...]:
        return self._admin_ids

    async def notify(self, recipients: Iterable[int], text: str, controls: Optional[Controls] = None) -> FanoutResult:
        result = FanoutResult()
        seen: set[int] = set()
        for rid in recipients:
            rid = int(rid)
            if rid in seen:
                continue
            seen.add(rid)
            try:
                await self._transport.send(rid, text, controls)
            except DeliveryFailed as e:
                result.failed[rid] = e.reason
                self._stats.deliveries_failed += 1
                log.warning("Delivery to %s failed: %s", rid, e.reason)
            except Exception as e:
                result.failed[rid] = f"{type(e).__name__}: {e}"
                self._stats.deliveries_failed += 1
                log.exception("Unexpected error delivering to %s", rid)
            else:
                result.delivered.append(rid)
                self._stats.deliveries_ok += 1
        return result

    async def notify_user(self, user_id: int, text: str, controls: Optional[Controls] = None) -> bool:
        result = await self.notify((user_id,), text, controls)
        return result.ok

    async def notify_admins(self, text: str, controls: Optional[Controls] = None, *, exclude: Iterable[int] = ()) -> FanoutResult:
        skip = {int(x) for x in exclude}
        targets = [a for a in self._admin_ids if a not in skip]
        result = await self.notify(targets, text, controls)
        if targets and not result.any_delivered:
            log.error("Admin notification reached none of %d admins", len(targets))
        return result
