from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from . import constants

log = logging.getLogger("ideahub.config")


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _get_id_list(name: str) -> frozenset[int]:
    ids: set[int] = set()
    for part in os.getenv(name, "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.add(int(part))
        except ValueError:
            log.warning("Ignoring non-numeric id %r in %s", part, name)
    return frozenset(ids)


@dataclass(frozen=True)
class Settings:
    token: str
    # Static moderator allow-list; the only authentication the bot does.
    admin_ids: frozenset[int] = field(default_factory=frozenset)
    # Broadcast channel approved ideas are posted to.
    channel_id: int = 0
    # Used to build "open the bot" hints in public posts.
    bot_handle: str = ""
    sync_guild_id: int = 0
    sqlite_path: str = "ideahub.sqlite3"
    log_level: str = "INFO"
    port: int = 10000

    submission_cooldown_ms: int = constants.SUBMISSION_COOLDOWN_MS
    comment_rate_limit: int = constants.COMMENT_RATE_LIMIT
    comment_rate_window_ms: int = constants.COMMENT_RATE_WINDOW_MS
    min_submission_length: int = constants.MIN_SUBMISSION_LENGTH
    max_submission_length: int = constants.MAX_SUBMISSION_LENGTH
    min_comment_length: int = constants.MIN_COMMENT_LENGTH
    max_comment_length: int = constants.MAX_COMMENT_LENGTH
    reputation_per_approval: int = constants.REPUTATION_PER_APPROVAL
    allocator_max_retries: int = constants.ALLOCATOR_MAX_RETRIES
    # 0 disables expiry: an abandoned flow waits until overwritten or completed.
    session_ttl_seconds: int = 0
    # Admins get a copy of comments and private messages with the real handle.
    notify_admins_on_activity: bool = True

    def is_admin(self, user_id: int) -> bool:
        return int(user_id) in self.admin_ids


def load_settings() -> Settings:
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token:
        raise RuntimeError("DISCORD_TOKEN is required")
    admin_ids = _get_id_list("ADMIN_IDS")
    if not admin_ids:
        log.warning("ADMIN_IDS is empty; nobody will be able to review submissions")
    return Settings(
        token=token,
        admin_ids=admin_ids,
        channel_id=_get_int("CHANNEL_ID", 0),
        bot_handle=os.getenv("BOT_HANDLE", "").strip(),
        sync_guild_id=_get_int("SYNC_GUILD_ID", 0),
        sqlite_path=(os.getenv("SQLITE_PATH", "ideahub.sqlite3").strip() or "ideahub.sqlite3"),
        log_level=(os.getenv("LOG_LEVEL", "INFO").strip() or "INFO"),
        port=_get_int("PORT", 10000),
        submission_cooldown_ms=_get_int("SUBMISSION_COOLDOWN_MS", constants.SUBMISSION_COOLDOWN_MS),
        comment_rate_limit=_get_int("COMMENT_RATE_LIMIT", constants.COMMENT_RATE_LIMIT),
        comment_rate_window_ms=_get_int("COMMENT_RATE_WINDOW_MS", constants.COMMENT_RATE_WINDOW_MS),
        min_submission_length=_get_int("MIN_SUBMISSION_LENGTH", constants.MIN_SUBMISSION_LENGTH),
        max_submission_length=_get_int("MAX_SUBMISSION_LENGTH", constants.MAX_SUBMISSION_LENGTH),
        min_comment_length=_get_int("MIN_COMMENT_LENGTH", constants.MIN_COMMENT_LENGTH),
        max_comment_length=_get_int("MAX_COMMENT_LENGTH", constants.MAX_COMMENT_LENGTH),
        reputation_per_approval=_get_int("REPUTATION_PER_APPROVAL", constants.REPUTATION_PER_APPROVAL),
        allocator_max_retries=_get_int("ALLOCATOR_MAX_RETRIES", constants.ALLOCATOR_MAX_RETRIES),
        session_ttl_seconds=_get_int("SESSION_TTL_SECONDS", 0),
        notify_admins_on_activity=_get_bool("NOTIFY_ADMINS_ON_ACTIVITY", True),
    )
