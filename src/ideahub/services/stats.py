from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field


@dataclass
class RuntimeStats:
    started_at: float = field(default_factory=time.time)
    submissions_received: int = 0
    approvals: int = 0
    rejections: int = 0
    comments_added: int = 0
    private_messages_relayed: int = 0
    deliveries_ok: int = 0
    deliveries_failed: int = 0
    # Approved ideas whose channel post failed and still need reconciliation
    publish_failures: int = 0

    def uptime_seconds(self) -> int:
        return int(time.time() - self.started_at)

    def snapshot(self) -> dict:
        data = asdict(self)
        data["uptime_seconds"] = self.uptime_seconds()
        return data
