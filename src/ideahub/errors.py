from __future__ import annotations

from typing import Any, Optional


class IdeaHubError(Exception):
    """Base error for everything the bot reports back to a user or moderator."""

    code = "ideahub_error"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(IdeaHubError):
    """Input outside policy bounds. The user can correct it and resend."""

    code = "validation_error"


class CooldownActive(IdeaHubError):
    code = "cooldown_active"

    def __init__(self, remaining_ms: int, message: Optional[str] = None) -> None:
        self.remaining_ms = max(0, int(remaining_ms))
        super().__init__(message or f"Please wait {self.remaining_ms / 1000:.0f}s before submitting again.")


class RateLimited(IdeaHubError):
    code = "rate_limited"

    def __init__(self, retry_after_ms: int, message: Optional[str] = None) -> None:
        self.retry_after_ms = max(0, int(retry_after_ms))
        super().__init__(message or f"You're doing that too often. Try again in {self.retry_after_ms / 1000:.0f}s.")


class NotFound(IdeaHubError):
    """Entity missing, or already in a terminal state."""

    code = "not_found"


class NotPermitted(IdeaHubError):
    code = "not_permitted"


class AllocationFailed(IdeaHubError):
    """The sequence counter could not be advanced within the retry budget."""

    code = "allocation_failed"


class DeliveryFailed(IdeaHubError):
    code = "delivery_failed"

    def __init__(self, recipient_id: int, reason: str) -> None:
        self.recipient_id = int(recipient_id)
        self.reason = reason
        super().__init__(f"Could not deliver to {recipient_id}: {reason}")


class PublishFailed(IdeaHubError):
    """Posting to the broadcast channel failed.

    When raised from an approval the submission already holds its number;
    ``submission`` carries it so the moderator can be told which idea needs
    reconciliation.
    """

    code = "publish_failed"

    def __init__(self, message: str, *, submission: Any = None) -> None:
        super().__init__(message)
        self.submission = submission
